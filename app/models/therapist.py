# app/models/therapist.py
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String

from app.db.base import Base, utcnow


class Therapist(Base):
    """
    A clinician who owns appointments and is paid per session.
    """

    __tablename__ = "therapists"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(32), nullable=True)
    pix_key = Column(String(255), nullable=True)
    start_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Therapist id={self.id} email={self.email!r}>"
