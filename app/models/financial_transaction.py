# app/models/financial_transaction.py
from sqlalchemy import CheckConstraint, Column, Date, DateTime, Float, Index, Integer, String, Text

from app.db.base import Base, utcnow


class FinancialTransaction(Base):
    """
    Manual income or expense entry (rent, materials, extra revenue, ...),
    recorded next to the session revenue in the financial summary.
    """

    __tablename__ = "financial_transactions"

    id = Column(Integer, primary_key=True, index=True)

    # Income / Expense
    kind = Column(String(10), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    value = Column(Float, nullable=False)
    date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        CheckConstraint("value > 0", name="ck_financial_transactions_value_positive"),
        Index("ix_financial_transactions_date_kind", "date", "kind"),
    )

    def __repr__(self) -> str:
        return (
            f"<FinancialTransaction id={self.id} kind={self.kind} "
            f"category={self.category!r} value={self.value}>"
        )
