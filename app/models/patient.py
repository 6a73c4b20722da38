# app/models/patient.py
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String

from app.db.base import Base, utcnow


class Patient(Base):
    """
    A patient followed by the clinic. Minors are reached through their guardian,
    so contact details belong to the responsible adult.
    """

    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    birth_date = Column(Date, nullable=True)

    guardian_name = Column(String(255), nullable=True)
    guardian_phone = Column(String(32), nullable=True)
    guardian_email = Column(String(255), nullable=True)

    origin = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Patient id={self.id} name={self.name!r}>"
