# app/models/appointment.py
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from app.db.base import Base, utcnow


class Appointment(Base):
    """
    A single calendar occurrence between a patient and a therapist.

    Occurrences generated from the same recurring request share a
    `recurrence_id`; one-off appointments leave it NULL.
    """

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    recurrence_id = Column(String(36), nullable=True, index=True)

    patient_id = Column(
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    therapist_id = Column(
        Integer,
        ForeignKey("therapists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date = Column(Date, nullable=False, index=True)
    # HH:MM, local clinic time
    time = Column(String(5), nullable=False)

    location = Column(String(50), nullable=False)
    modality = Column(String(20), nullable=False)
    type = Column(String(50), nullable=False)
    value = Column(Float, nullable=False, default=0.0)
    status = Column(String(20), nullable=False, default="Confirmed", index=True)
    notes = Column(Text, nullable=True)

    session_occurred = Column(Boolean, nullable=False, default=False)
    missed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("ix_appointments_recurrence_date", "recurrence_id", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment id={self.id} recurrence_id={self.recurrence_id} "
            f"date={self.date} time={self.time} status={self.status}>"
        )
