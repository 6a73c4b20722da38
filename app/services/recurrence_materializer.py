# app/services/recurrence_materializer.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date as date_type
from typing import Iterable, List, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.appointment import Appointment
from app.models.recurrence import Recurrence
from app.models.therapy_session import TherapySession
from app.schemas.appointment import AppointmentCreate, AppointmentRead
from app.services.appointment_service import ensure_references, to_read
from app.services.errors import DuplicateRecurrence
from app.services.read_model_cache import ReadModelCache, invalidate_financial_views
from app.services.session_sync import build_session, normalize_status_flags
from app.services.transaction import run_atomic

logger = logging.getLogger(__name__)


@dataclass
class MaterializeResult:
    """
    Appointments (each paired with its session) written for one recurrence.
    """

    recurrence_id: str
    occurrences: List[Tuple[Appointment, TherapySession]] = field(default_factory=list)
    was_capped: bool = False

    @property
    def created_count(self) -> int:
        return len(self.occurrences)

    def appointments(self) -> List[AppointmentRead]:
        return [to_read(appointment, session.id) for appointment, session in self.occurrences]


def _prepare_dates(
    planned_dates: Iterable[date_type],
    max_occurrences: int,
) -> Tuple[List[date_type], bool]:
    """
    Sort, de-duplicate and cap planned dates. Returns (dates, was_capped).
    """
    unique = sorted(set(planned_dates))
    limit = max(0, max_occurrences)
    if len(unique) > limit:
        return unique[:limit], True
    return unique, False


async def _claim_recurrence_id(db: AsyncSession, recurrence_id: str) -> None:
    """
    Register `recurrence_id` inside the current transaction.

    Raises DuplicateRecurrence when the id is taken, including when a
    concurrent batch commits it first and our insert hits the primary key.
    """
    if await db.get(Recurrence, recurrence_id) is not None:
        raise DuplicateRecurrence(recurrence_id)
    taken = await db.execute(
        select(Appointment.id).where(Appointment.recurrence_id == recurrence_id).limit(1)
    )
    if taken.first() is not None:
        raise DuplicateRecurrence(recurrence_id)

    db.add(Recurrence(id=recurrence_id))
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateRecurrence(recurrence_id) from exc


async def materialize(
    db: AsyncSession,
    recurrence_id: str,
    template: AppointmentCreate,
    planned_dates: Iterable[date_type],
    cache: ReadModelCache | None = None,
    *,
    max_occurrences: int | None = None,
    timeout_seconds: float | None = None,
) -> MaterializeResult:
    """
    Persist one Appointment + TherapySession pair per planned date.

    - The occurrence cap is applied here again; callers' plans are not trusted.
    - Rows are inserted in ascending date order.
    - The whole batch is a single transaction: a failure on any pair (or a
      timeout) rolls back every pair, so no appointment exists without its
      session.
    - The recurrence id is claimed in the same transaction; a taken id
      raises DuplicateRecurrence and nothing is written.
    - Financial read models are invalidated only after the commit succeeds.
    """
    settings = get_settings()
    if max_occurrences is None:
        max_occurrences = settings.MAX_RECURRENCE_OCCURRENCES
    if timeout_seconds is None:
        timeout_seconds = settings.RECURRENCE_BATCH_TIMEOUT_SECONDS

    dates, was_capped = _prepare_dates(planned_dates, max_occurrences)
    if was_capped:
        logger.warning(
            "Recurrence %s: planned dates exceed the cap of %d; extra dates dropped",
            recurrence_id,
            max_occurrences,
        )

    fields = template.model_dump(exclude={"date"})

    async def _work() -> List[Tuple[Appointment, TherapySession]]:
        await ensure_references(db, template.patient_id, template.therapist_id)
        await _claim_recurrence_id(db, recurrence_id)

        created: List[Tuple[Appointment, TherapySession]] = []
        for day in dates:
            appointment = normalize_status_flags(
                Appointment(**fields, date=day, recurrence_id=recurrence_id)
            )
            db.add(appointment)
            await db.flush()

            session = build_session(appointment)
            db.add(session)
            await db.flush()

            created.append((appointment, session))
        return created

    occurrences = await run_atomic(
        db,
        _work,
        operation=f"materialize recurrence {recurrence_id}",
        timeout_seconds=timeout_seconds,
    )

    if occurrences:
        invalidate_financial_views(cache)

    logger.info(
        "Recurrence %s: created %d appointment(s) with sessions (capped=%s)",
        recurrence_id,
        len(occurrences),
        was_capped,
    )
    return MaterializeResult(
        recurrence_id=recurrence_id,
        occurrences=occurrences,
        was_capped=was_capped,
    )
