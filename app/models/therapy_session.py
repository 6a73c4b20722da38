# app/models/therapy_session.py
from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)

from app.db.base import Base, utcnow


class TherapySession(Base):
    """
    Billing/clinical record derived from exactly one Appointment.

    Patient and therapist are denormalized from the appointment so financial
    reports can be computed without joining through it.
    """

    __tablename__ = "therapy_sessions"

    id = Column(Integer, primary_key=True, index=True)

    appointment_id = Column(
        Integer,
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    therapist_id = Column(
        Integer,
        ForeignKey("therapists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    patient_id = Column(
        Integer,
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type = Column(String(50), nullable=False)
    value = Column(Float, nullable=False, default=0.0)
    payment_status = Column(String(20), nullable=False, default="Pending", index=True)

    # Therapist payout. A NULL payout_value means "use the tenure-based rate".
    payout_value = Column(Float, nullable=True)
    payout_status = Column(String(20), nullable=False, default="Pending", index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint("appointment_id", name="uq_therapy_sessions_appointment"),
    )

    def __repr__(self) -> str:
        return (
            f"<TherapySession id={self.id} appointment_id={self.appointment_id} "
            f"payment_status={self.payment_status}>"
        )
