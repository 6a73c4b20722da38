# app/models/recurrence.py
from sqlalchemy import Column, DateTime, String

from app.db.base import Base, utcnow


class Recurrence(Base):
    """
    Registry row claimed by a recurring series when it is materialized.

    The primary key makes a recurrence id usable once: a second series
    racing for the same id fails on insert instead of merging into the
    first one. Occurrences point back through `Appointment.recurrence_id`.
    """

    __tablename__ = "recurrences"

    id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Recurrence id={self.id}>"
