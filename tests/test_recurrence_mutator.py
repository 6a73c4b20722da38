# tests/test_recurrence_mutator.py
import asyncio
from datetime import date, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import AsyncSessionLocal
from app.models.appointment import Appointment
from app.models.patient import Patient
from app.models.therapist import Therapist
from app.models.therapy_session import TherapySession
from app.schemas.appointment import AppointmentCreate, AppointmentPatch
from app.schemas.recurrence import RecurrenceUpdate
from app.services import recurrence_mutator
from app.services.errors import PersistenceFailure, RecurrenceNotFound
from app.services.read_model_cache import FINANCIAL_SUMMARY_KEY, ReadModelCache
from app.services.recurrence_materializer import materialize
from app.services.recurrence_mutator import delete_recurrence, update_recurrence

RECURRENCE_ID = "2b9d3c1e-0a44-4c55-8f0e-7d1a2b3c4d5e"
OTHER_RECURRENCE_ID = "c3a1f0de-5b6a-4f3e-9d2c-1e0f9a8b7c6d"
MONDAYS = [date(2025, 1, 6) + timedelta(days=7 * i) for i in range(5)]


async def _seed_recurrence(recurrence_id: str = RECURRENCE_ID, dates=MONDAYS) -> None:
    async with AsyncSessionLocal() as session:
        patient = Patient(name="Ana Souza")
        therapist = Therapist(name="Dr. Paulo Lima", email=f"{recurrence_id}@clinic.example")
        session.add_all([patient, therapist])
        await session.commit()

        template = AppointmentCreate(
            patient_id=patient.id,
            therapist_id=therapist.id,
            date=dates[0],
            time="14:00",
            location="Green Room",
            modality="In Person",
            type="Session",
            value=150.0,
        )
        await materialize(session, recurrence_id, template, dates)


async def _load(recurrence_id: str = RECURRENCE_ID):
    async with AsyncSessionLocal() as session:
        appointments = (
            await session.execute(
                select(Appointment)
                .where(Appointment.recurrence_id == recurrence_id)
                .order_by(Appointment.date)
            )
        ).scalars().all()
        sessions = (
            await session.execute(
                select(TherapySession).where(
                    TherapySession.appointment_id.in_([a.id for a in appointments])
                )
            )
        ).scalars().all()
    return list(appointments), {s.appointment_id: s for s in sessions}


@pytest.mark.asyncio
async def test_update_value_and_shift_monday_series_to_wednesday():
    await _seed_recurrence()
    before, sessions_before = await _load()

    async with AsyncSessionLocal() as session:
        affected = await update_recurrence(
            session,
            RECURRENCE_ID,
            AppointmentPatch(value=200),
            weekday_shift=3,
        )

    assert affected == 5

    after, sessions_after = await _load()
    assert len(after) == 5
    assert [a.id for a in after] == [a.id for a in before]
    assert [a.date for a in after] == [d + timedelta(days=2) for d in MONDAYS]
    assert all(a.value == 200 for a in after)
    assert all(a.recurrence_id == RECURRENCE_ID for a in after)

    # Sessions updated in place, never recreated
    assert {s.id for s in sessions_after.values()} == {s.id for s in sessions_before.values()}
    assert all(s.value == 200 for s in sessions_after.values())


@pytest.mark.asyncio
async def test_update_leaves_unset_fields_untouched():
    await _seed_recurrence()

    async with AsyncSessionLocal() as session:
        await update_recurrence(session, RECURRENCE_ID, AppointmentPatch(time="09:30"))

    after, _ = await _load()
    assert all(a.time == "09:30" for a in after)
    assert all(a.value == 150.0 for a in after)
    assert all(a.location == "Green Room" for a in after)
    assert [a.date for a in after] == MONDAYS


@pytest.mark.asyncio
async def test_update_to_cancelled_normalizes_flags_and_cancels_payment():
    await _seed_recurrence()

    async with AsyncSessionLocal() as session:
        await update_recurrence(
            session,
            RECURRENCE_ID,
            {"status": "Cancelled", "session_occurred": True, "missed": True},
        )

    after, sessions = await _load()
    for appointment in after:
        assert appointment.status == "Cancelled"
        assert appointment.session_occurred is False
        assert appointment.missed is False
        assert sessions[appointment.id].payment_status == "Cancelled"


@pytest.mark.asyncio
async def test_update_type_remaps_session_type_and_keeps_paid_status():
    await _seed_recurrence()
    before, sessions = await _load()

    async with AsyncSessionLocal() as session:
        paid = await session.get(TherapySession, sessions[before[0].id].id)
        paid.payment_status = "Paid"
        await session.commit()

    async with AsyncSessionLocal() as session:
        await update_recurrence(session, RECURRENCE_ID, {"type": "Parental Guidance"})

    after, sessions_after = await _load()
    assert all(s.type == "Guidance" for s in sessions_after.values())
    assert sessions_after[after[0].id].payment_status == "Paid"
    assert sessions_after[after[1].id].payment_status == "Pending"


@pytest.mark.asyncio
async def test_update_ignores_identity_fields_and_weekday_shift_in_patch():
    await _seed_recurrence()
    before, _ = await _load()

    async with AsyncSessionLocal() as session:
        await update_recurrence(
            session,
            RECURRENCE_ID,
            {"recurrence_id": "hijacked", "patient_id": 999, "weekday_shift": 5, "notes": "x"},
        )

    after, _ = await _load()
    assert [a.patient_id for a in after] == [a.patient_id for a in before]
    assert [a.date for a in after] == MONDAYS
    assert all(a.notes == "x" for a in after)


@pytest.mark.asyncio
async def test_update_only_touches_the_requested_recurrence():
    await _seed_recurrence()
    await _seed_recurrence(OTHER_RECURRENCE_ID)

    async with AsyncSessionLocal() as session:
        await update_recurrence(session, RECURRENCE_ID, RecurrenceUpdate(value=90))

    other, _ = await _load(OTHER_RECURRENCE_ID)
    assert all(a.value == 150.0 for a in other)


@pytest.mark.asyncio
async def test_update_unknown_recurrence_is_not_found():
    cache = ReadModelCache()
    key = f"{FINANCIAL_SUMMARY_KEY}:2025-01-01:2025-01-31"
    await cache.read(key, _stub)

    async with AsyncSessionLocal() as session:
        with pytest.raises(RecurrenceNotFound):
            await update_recurrence(session, "missing", AppointmentPatch(value=1), cache=cache)

    assert key in cache


@pytest.mark.asyncio
async def test_delete_removes_appointments_and_sessions():
    await _seed_recurrence()
    await _seed_recurrence(OTHER_RECURRENCE_ID)
    cache = ReadModelCache()
    key = f"{FINANCIAL_SUMMARY_KEY}:2025-01-01:2025-01-31"
    await cache.read(key, _stub)

    async with AsyncSessionLocal() as session:
        deleted = await delete_recurrence(session, RECURRENCE_ID, cache=cache)

    assert deleted == 5
    assert key not in cache

    remaining, _ = await _load()
    assert remaining == []

    async with AsyncSessionLocal() as session:
        orphan_stmt = select(TherapySession).where(
            TherapySession.appointment_id.not_in(select(Appointment.id))
        )
        orphans = (await session.execute(orphan_stmt)).scalars().all()
        total_sessions = (await session.execute(select(TherapySession))).scalars().all()

    assert orphans == []
    assert len(total_sessions) == 5

    # The id is released with the series.
    async with AsyncSessionLocal() as session:
        patient = Patient(name="Bruno Lima")
        therapist = Therapist(name="Dra. Julia Reis", email="julia@clinic.example")
        session.add_all([patient, therapist])
        await session.commit()
        template = AppointmentCreate(
            patient_id=patient.id,
            therapist_id=therapist.id,
            date=MONDAYS[0],
            time="10:00",
            location="Blue Room",
            modality="In Person",
            type="Session",
            value=120.0,
        )
        result = await materialize(session, RECURRENCE_ID, template, MONDAYS[:2])

    assert result.created_count == 2


@pytest.mark.asyncio
async def test_delete_unknown_recurrence_is_not_found():
    async with AsyncSessionLocal() as session:
        with pytest.raises(RecurrenceNotFound) as excinfo:
            await delete_recurrence(session, "missing")

    assert excinfo.value.recurrence_id == "missing"


async def _stub():
    return {"stale": True}


def _snapshot(appointments, sessions):
    return (
        [(a.id, a.date, a.value, a.status) for a in appointments],
        sorted((s.id, s.appointment_id, s.value, s.payment_status) for s in sessions.values()),
    )


def _fail_on_call(session, n: int, *, delay: float | None = None):
    """
    Wrap `session.execute` so its n-th call fails (or stalls for `delay`).
    """
    real_execute = session.execute
    calls = {"n": 0}

    async def execute(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == n:
            if delay is None:
                raise SQLAlchemyError("statement failed")
            await asyncio.sleep(delay)
        return await real_execute(*args, **kwargs)

    return execute


@pytest.mark.asyncio
async def test_update_failure_mid_series_changes_nothing(monkeypatch):
    await _seed_recurrence()
    before = _snapshot(*await _load())

    real_mirror_session = recurrence_mutator.mirror_session
    calls = {"n": 0}

    def failing_mirror_session(session, appointment):
        calls["n"] += 1
        if calls["n"] == 3:
            raise SQLAlchemyError("session update failed")
        return real_mirror_session(session, appointment)

    monkeypatch.setattr(recurrence_mutator, "mirror_session", failing_mirror_session)
    cache = ReadModelCache()
    key = f"{FINANCIAL_SUMMARY_KEY}:2025-01-01:2025-01-31"
    await cache.read(key, _stub)

    async with AsyncSessionLocal() as session:
        with pytest.raises(PersistenceFailure):
            await update_recurrence(
                session,
                RECURRENCE_ID,
                AppointmentPatch(value=999, status="Cancelled"),
                weekday_shift=5,
                cache=cache,
            )

    assert _snapshot(*await _load()) == before
    assert key in cache


@pytest.mark.asyncio
async def test_update_timeout_changes_nothing(monkeypatch):
    await _seed_recurrence()
    before = _snapshot(*await _load())

    async with AsyncSessionLocal() as session:
        # Second statement is the session lookup, after the appointments load.
        monkeypatch.setattr(session, "execute", _fail_on_call(session, 2, delay=5))

        with pytest.raises(PersistenceFailure) as excinfo:
            await update_recurrence(
                session,
                RECURRENCE_ID,
                AppointmentPatch(value=999),
                weekday_shift=5,
                timeout_seconds=0.5,
            )

    assert "timed out" in str(excinfo.value)
    assert _snapshot(*await _load()) == before


@pytest.mark.asyncio
async def test_delete_failure_after_sessions_removed_restores_everything(monkeypatch):
    await _seed_recurrence()
    before = _snapshot(*await _load())

    async with AsyncSessionLocal() as session:
        # Calls: select ids, delete sessions, delete appointments.
        monkeypatch.setattr(session, "execute", _fail_on_call(session, 3))

        with pytest.raises(PersistenceFailure):
            await delete_recurrence(session, RECURRENCE_ID)

    appointments, sessions = await _load()
    assert len(appointments) == 5
    assert len(sessions) == 5
    assert _snapshot(appointments, sessions) == before


@pytest.mark.asyncio
async def test_delete_timeout_changes_nothing(monkeypatch):
    await _seed_recurrence()
    before = _snapshot(*await _load())

    async with AsyncSessionLocal() as session:
        monkeypatch.setattr(session, "execute", _fail_on_call(session, 3, delay=5))

        with pytest.raises(PersistenceFailure):
            await delete_recurrence(session, RECURRENCE_ID, timeout_seconds=0.5)

    assert _snapshot(*await _load()) == before

