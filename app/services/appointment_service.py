# app/services/appointment_service.py
from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel
from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.appointment import Appointment
from app.models.patient import Patient
from app.models.therapist import Therapist
from app.models.therapy_session import TherapySession
from app.schemas.appointment import AppointmentCreate, AppointmentRead, AppointmentUpdate
from app.services.errors import AppointmentNotFound, DuplicateAppointment, ValidationFailure
from app.services.read_model_cache import ReadModelCache, invalidate_financial_views
from app.services.session_sync import build_session, mirror_session, normalize_status_flags
from app.services.transaction import run_atomic

logger = logging.getLogger(__name__)

# Columns that may legitimately be cleared with an explicit null.
_NULLABLE_FIELDS = {"notes"}


def patch_changes(
    patch: BaseModel | Dict[str, Any],
    nullable: Iterable[str] = _NULLABLE_FIELDS,
) -> Dict[str, Any]:
    """
    Reduce a partial-update payload to the fields the client actually sent.

    An explicit null only clears nullable columns; for the others it is
    treated as "not provided".
    """
    if isinstance(patch, BaseModel):
        data = patch.model_dump(exclude_unset=True)
    else:
        data = dict(patch)

    return {
        field: value
        for field, value in data.items()
        if value is not None or field in nullable
    }


def nullable_columns(model: type) -> frozenset[str]:
    return frozenset(column.name for column in model.__table__.columns if column.nullable)


async def ensure_references(db: AsyncSession, patient_id: int, therapist_id: int) -> None:
    """
    Raise ValidationFailure if the patient or therapist does not exist.
    """
    if await db.get(Patient, patient_id) is None:
        raise ValidationFailure(f"Patient with id={patient_id} not found.")
    if await db.get(Therapist, therapist_id) is None:
        raise ValidationFailure(f"Therapist with id={therapist_id} not found.")


async def session_ids_for(
    db: AsyncSession,
    appointment_ids: Iterable[int],
) -> Dict[int, int]:
    """
    Map appointment id -> linked session id for the given appointments.
    """
    ids = list(appointment_ids)
    if not ids:
        return {}

    result = await db.execute(
        select(TherapySession.appointment_id, TherapySession.id).where(
            TherapySession.appointment_id.in_(ids)
        )
    )
    return {appointment_id: session_id for appointment_id, session_id in result.all()}


def to_read(appointment: Appointment, session_id: int | None) -> AppointmentRead:
    read = AppointmentRead.model_validate(appointment)
    return read.model_copy(update={"session_id": session_id})


async def create_appointment(
    db: AsyncSession,
    payload: AppointmentCreate,
    cache: ReadModelCache | None = None,
) -> AppointmentRead:
    """
    Create a one-off appointment together with its session.

    Rejects an exact duplicate (same patient, therapist, date and time), which
    typically comes from a double-submitted form.
    """
    settings = get_settings()

    async def _work() -> tuple[Appointment, TherapySession]:
        await ensure_references(db, payload.patient_id, payload.therapist_id)

        duplicate_stmt = select(Appointment.id).where(
            Appointment.patient_id == payload.patient_id,
            Appointment.therapist_id == payload.therapist_id,
            Appointment.date == payload.date,
            Appointment.time == payload.time,
        )
        if (await db.execute(duplicate_stmt)).first() is not None:
            raise DuplicateAppointment(
                "An appointment with the same patient, therapist, date and time already exists."
            )

        appointment = normalize_status_flags(Appointment(**payload.model_dump()))
        db.add(appointment)
        await db.flush()

        session = build_session(appointment)
        db.add(session)
        await db.flush()
        return appointment, session

    appointment, session = await run_atomic(
        db,
        _work,
        operation="create appointment",
        timeout_seconds=settings.RECURRENCE_BATCH_TIMEOUT_SECONDS,
    )
    invalidate_financial_views(cache)
    logger.info("Created appointment id=%s with session id=%s", appointment.id, session.id)
    return to_read(appointment, session.id)


async def get_appointment(db: AsyncSession, appointment_id: int) -> AppointmentRead:
    appointment = await db.get(Appointment, appointment_id)
    if appointment is None:
        raise AppointmentNotFound(appointment_id)

    session_ids = await session_ids_for(db, [appointment.id])
    return to_read(appointment, session_ids.get(appointment.id))


async def list_appointments(
    db: AsyncSession,
    therapist_id: int | None = None,
    patient_id: int | None = None,
    status: str | None = None,
    from_date: date_type | None = None,
    to_date: date_type | None = None,
    recurrence_id: str | None = None,
) -> List[AppointmentRead]:
    """
    List appointments matching every provided filter, ordered by date then time.
    Date bounds are inclusive.
    """
    conditions = []
    if therapist_id is not None:
        conditions.append(Appointment.therapist_id == therapist_id)
    if patient_id is not None:
        conditions.append(Appointment.patient_id == patient_id)
    if status is not None:
        conditions.append(Appointment.status == status)
    if from_date is not None:
        conditions.append(Appointment.date >= from_date)
    if to_date is not None:
        conditions.append(Appointment.date <= to_date)
    if recurrence_id is not None:
        conditions.append(Appointment.recurrence_id == recurrence_id)

    stmt = select(Appointment)
    if conditions:
        stmt = stmt.where(and_(*conditions))
    stmt = stmt.order_by(Appointment.date.asc(), Appointment.time.asc(), Appointment.id.asc())

    result = await db.execute(stmt)
    appointments = list(result.scalars().all())

    session_ids = await session_ids_for(db, [a.id for a in appointments])
    return [to_read(a, session_ids.get(a.id)) for a in appointments]


async def update_appointment(
    db: AsyncSession,
    appointment_id: int,
    payload: AppointmentUpdate,
    cache: ReadModelCache | None = None,
) -> AppointmentRead:
    """
    Edit this occurrence only. Its session is updated in place.
    """
    changes = patch_changes(payload)

    async def _work() -> tuple[Appointment, TherapySession]:
        appointment = await db.get(Appointment, appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)

        for field, value in changes.items():
            setattr(appointment, field, value)
        normalize_status_flags(appointment)

        result = await db.execute(
            select(TherapySession).where(TherapySession.appointment_id == appointment.id)
        )
        session = result.scalar_one_or_none()
        if session is None:
            # Rows created before sessions were linked: restore the pairing.
            await db.flush()
            session = build_session(appointment)
            db.add(session)
        else:
            mirror_session(session, appointment)

        await db.flush()
        return appointment, session

    appointment, session = await run_atomic(
        db,
        _work,
        operation=f"update appointment {appointment_id}",
        timeout_seconds=get_settings().RECURRENCE_BATCH_TIMEOUT_SECONDS,
    )
    invalidate_financial_views(cache)
    return to_read(appointment, session.id)


async def delete_appointment(
    db: AsyncSession,
    appointment_id: int,
    cache: ReadModelCache | None = None,
) -> None:
    """
    Delete one occurrence and its session in the same transaction.
    """

    async def _work() -> None:
        appointment = await db.get(Appointment, appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)

        await db.execute(
            delete(TherapySession).where(TherapySession.appointment_id == appointment_id)
        )
        await db.delete(appointment)
        await db.flush()

    await run_atomic(
        db,
        _work,
        operation=f"delete appointment {appointment_id}",
        timeout_seconds=get_settings().RECURRENCE_BATCH_TIMEOUT_SECONDS,
    )
    invalidate_financial_views(cache)
    logger.info("Deleted appointment id=%s and its session", appointment_id)
