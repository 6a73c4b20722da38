# app/services/recurrence_mutator.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.appointment import Appointment
from app.models.recurrence import Recurrence
from app.models.therapy_session import TherapySession
from app.schemas.appointment import AppointmentPatch
from app.services.appointment_service import patch_changes
from app.services.errors import RecurrenceNotFound
from app.services.read_model_cache import ReadModelCache, invalidate_financial_views
from app.services.recurrence_planner import shift_to_weekday
from app.services.session_sync import build_session, mirror_session, normalize_status_flags
from app.services.transaction import run_atomic

logger = logging.getLogger(__name__)

# Fields a recurrence-wide patch may touch. Identity columns (recurrence_id,
# patient_id, therapist_id) and dates are excluded.
EDITABLE_FIELDS = frozenset(AppointmentPatch.model_fields)


def _editable_changes(patch: BaseModel | Dict[str, Any] | None) -> Dict[str, Any]:
    if patch is None:
        return {}
    changes = patch_changes(patch)
    return {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}


async def _load_occurrences(db: AsyncSession, recurrence_id: str) -> List[Appointment]:
    result = await db.execute(
        select(Appointment)
        .where(Appointment.recurrence_id == recurrence_id)
        .order_by(Appointment.date.asc(), Appointment.id.asc())
    )
    return list(result.scalars().all())


async def update_recurrence(
    db: AsyncSession,
    recurrence_id: str,
    patch: BaseModel | Dict[str, Any] | None,
    weekday_shift: int | None = None,
    cache: ReadModelCache | None = None,
    *,
    timeout_seconds: float | None = None,
) -> int:
    """
    Apply `patch` to every appointment of a recurrence and return how many
    appointments were updated.

    When `weekday_shift` is given, each occurrence moves to that weekday
    (0 = Sunday) inside its own week. Linked sessions are updated in place.

    Raises RecurrenceNotFound when no appointment carries `recurrence_id`;
    nothing is written in that case.
    """
    changes = _editable_changes(patch)
    if timeout_seconds is None:
        timeout_seconds = get_settings().RECURRENCE_BATCH_TIMEOUT_SECONDS

    async def _work() -> int:
        appointments = await _load_occurrences(db, recurrence_id)
        if not appointments:
            raise RecurrenceNotFound(recurrence_id)

        result = await db.execute(
            select(TherapySession).where(
                TherapySession.appointment_id.in_([a.id for a in appointments])
            )
        )
        sessions = {s.appointment_id: s for s in result.scalars().all()}

        for appointment in appointments:
            for field, value in changes.items():
                setattr(appointment, field, value)
            if weekday_shift is not None:
                appointment.date = shift_to_weekday(appointment.date, weekday_shift)
            normalize_status_flags(appointment)

            session = sessions.get(appointment.id)
            if session is None:
                logger.warning(
                    "Appointment %s of recurrence %s had no session; creating it",
                    appointment.id,
                    recurrence_id,
                )
                db.add(build_session(appointment))
            else:
                mirror_session(session, appointment)

        await db.flush()
        return len(appointments)

    affected = await run_atomic(
        db,
        _work,
        operation=f"update recurrence {recurrence_id}",
        timeout_seconds=timeout_seconds,
    )
    invalidate_financial_views(cache)

    logger.info(
        "Recurrence %s: updated %d appointment(s) (fields=%s, weekday_shift=%s)",
        recurrence_id,
        affected,
        sorted(changes),
        weekday_shift,
    )
    return affected


async def delete_recurrence(
    db: AsyncSession,
    recurrence_id: str,
    cache: ReadModelCache | None = None,
    *,
    timeout_seconds: float | None = None,
) -> int:
    """
    Delete every appointment of a recurrence together with its sessions and
    return how many appointments were removed.

    Raises RecurrenceNotFound when nothing matches.
    """
    if timeout_seconds is None:
        timeout_seconds = get_settings().RECURRENCE_BATCH_TIMEOUT_SECONDS

    async def _work() -> int:
        result = await db.execute(
            select(Appointment.id).where(Appointment.recurrence_id == recurrence_id)
        )
        appointment_ids = list(result.scalars().all())
        if not appointment_ids:
            raise RecurrenceNotFound(recurrence_id)

        # Sessions first: a session must never outlive its appointment.
        await db.execute(
            delete(TherapySession).where(TherapySession.appointment_id.in_(appointment_ids))
        )
        await db.execute(
            delete(Appointment).where(Appointment.id.in_(appointment_ids))
        )
        await db.execute(delete(Recurrence).where(Recurrence.id == recurrence_id))
        return len(appointment_ids)

    deleted = await run_atomic(
        db,
        _work,
        operation=f"delete recurrence {recurrence_id}",
        timeout_seconds=timeout_seconds,
    )
    invalidate_financial_views(cache)

    logger.info("Recurrence %s: deleted %d appointment(s) with sessions", recurrence_id, deleted)
    return deleted
