# app/db/base.py
from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the Clinic Scheduler service.
    """
    pass


def utcnow() -> datetime:
    """
    Python-side timestamp default, so values are populated on the instance at
    flush time instead of being expired and lazily reloaded.
    """
    return datetime.now(tz=timezone.utc)
