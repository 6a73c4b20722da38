# app/api/routes/appointments.py
from http import HTTPStatus
from datetime import date as date_type

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.appointment import (
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatus,
    AppointmentUpdate,
)
from app.services import appointment_service
from app.services.errors import (
    AppointmentNotFound,
    DuplicateAppointment,
    PersistenceFailure,
    ValidationFailure,
)
from app.services.read_model_cache import ReadModelCache, get_read_model_cache

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post(
    "",
    response_model=AppointmentRead,
    status_code=HTTPStatus.CREATED,
    summary="Create a single appointment",
    description=(
        "Create a one-off appointment between a patient and a therapist.\n\n"
        "The appointment and its session (the billing record) are written in "
        "the same transaction, so an appointment never exists without its "
        "session.\n\n"
        "Cancelled appointments are stored with `session_occurred = false` and "
        "`missed = false` regardless of the submitted flags.\n\n"
        "For repeating schedules use `POST /recurrences` instead."
    ),
    responses={
        201: {
            "description": "Appointment and session successfully created.",
            "content": {
                "application/json": {
                    "example": {
                        "id": 10,
                        "recurrence_id": None,
                        "patient_id": 1,
                        "therapist_id": 1,
                        "date": "2025-01-06",
                        "time": "14:00",
                        "location": "Green Room",
                        "modality": "In Person",
                        "type": "Session",
                        "value": 150.0,
                        "status": "Confirmed",
                        "notes": None,
                        "session_occurred": False,
                        "missed": False,
                        "session_id": 10,
                    }
                }
            },
        },
        400: {
            "description": "Unknown patient or therapist.",
        },
        409: {
            "description": "An appointment with the same patient, therapist, date and time exists.",
        },
    },
)
async def create_appointment(
    payload: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> AppointmentRead:
    try:
        return await appointment_service.create_appointment(db, payload, cache)
    except DuplicateAppointment as exc:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc))
    except ValidationFailure as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get(
    "",
    response_model=list[AppointmentRead],
    summary="List appointments",
    description=(
        "Return appointments ordered by date and time.\n\n"
        "All filters are optional and combined with AND:\n"
        "- `therapist_id` / `patient_id`\n"
        "- `status`\n"
        "- `from_date` / `to_date` (inclusive window)"
    ),
)
async def list_appointments(
    therapist_id: int | None = Query(default=None, ge=1, example=1),
    patient_id: int | None = Query(default=None, ge=1, example=1),
    status: AppointmentStatus | None = Query(default=None, example="Confirmed"),
    from_date: date_type | None = Query(
        default=None,
        description="Start date (inclusive) in ISO format (YYYY-MM-DD).",
        example="2025-01-01",
    ),
    to_date: date_type | None = Query(
        default=None,
        description="End date (inclusive) in ISO format (YYYY-MM-DD).",
        example="2025-01-31",
    ),
    db: AsyncSession = Depends(get_db),
) -> list[AppointmentRead]:
    if from_date is not None and to_date is not None and to_date < from_date:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="to_date must be greater than or equal to from_date",
        )

    return await appointment_service.list_appointments(
        db,
        therapist_id=therapist_id,
        patient_id=patient_id,
        status=status.value if status is not None else None,
        from_date=from_date,
        to_date=to_date,
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentRead,
    summary="Get appointment details by ID",
    responses={
        404: {
            "description": "No appointment exists with the given ID.",
        },
    },
)
async def get_appointment(
    appointment_id: int = Path(..., ge=1, example=10),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRead:
    try:
        return await appointment_service.get_appointment(db, appointment_id)
    except AppointmentNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentRead,
    summary="Edit this occurrence only",
    description=(
        "Partially update a single appointment. Other occurrences of the same "
        "recurrence are left untouched; use `PATCH /recurrences/{recurrence_id}` "
        "to change all of them.\n\n"
        "The linked session is updated in place so its type, value and payment "
        "status follow the appointment."
    ),
    responses={
        404: {
            "description": "No appointment exists with the given ID.",
        },
    },
)
async def update_appointment(
    payload: AppointmentUpdate,
    appointment_id: int = Path(..., ge=1, example=10),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> AppointmentRead:
    try:
        return await appointment_service.update_appointment(db, appointment_id, payload, cache)
    except AppointmentNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))


@router.delete(
    "/{appointment_id}",
    status_code=HTTPStatus.NO_CONTENT,
    summary="Delete this occurrence only",
    description="Delete one appointment together with its session.",
    responses={
        404: {
            "description": "No appointment exists with the given ID.",
        },
    },
)
async def delete_appointment(
    appointment_id: int = Path(..., ge=1, example=10),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> Response:
    try:
        await appointment_service.delete_appointment(db, appointment_id, cache)
    except AppointmentNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))

    return Response(status_code=HTTPStatus.NO_CONTENT)
