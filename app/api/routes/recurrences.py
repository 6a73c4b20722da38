# app/api/routes/recurrences.py
from http import HTTPStatus
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.session import get_db
from app.schemas.appointment import AppointmentRead
from app.schemas.recurrence import (
    RecurrenceCreate,
    RecurrenceCreated,
    RecurrenceMutationResult,
    RecurrencePreview,
    RecurrencePreviewRequest,
    RecurrenceUpdate,
)
from app.services import appointment_service
from app.services.errors import (
    DuplicateRecurrence,
    PersistenceFailure,
    RecurrenceNotFound,
    ValidationFailure,
)
from app.services.read_model_cache import ReadModelCache, get_read_model_cache
from app.services.recurrence_materializer import materialize
from app.services.recurrence_mutator import delete_recurrence, update_recurrence
from app.services.recurrence_planner import plan

router = APIRouter(prefix="/recurrences", tags=["Recurrences"])


@router.post(
    "/preview",
    response_model=RecurrencePreview,
    status_code=HTTPStatus.OK,
    summary="Preview the dates a recurring request would generate",
    description=(
        "Run the recurrence planner without writing anything.\n\n"
        "The cursor walks from `start_date` to `end_date` (inclusive): on a "
        "selected weekday the date is kept and the cursor jumps 7 days "
        "(Weekly) or 14 days (Biweekly); otherwise it moves one day.\n\n"
        "At most `MAX_RECURRENCE_OCCURRENCES` dates are returned. When the "
        "range produces more, `was_capped` is true and `total_matches` tells "
        "how many would have been generated.\n\n"
        "Weekdays use 0 = Sunday ... 6 = Saturday. An empty weekday list, a "
        "reversed range or `Do not repeat` yields an empty preview."
    ),
    responses={
        200: {
            "description": "Planned dates returned.",
            "content": {
                "application/json": {
                    "example": {
                        "count": 5,
                        "total_matches": 5,
                        "was_capped": False,
                        "dates": [
                            "2025-01-06",
                            "2025-01-13",
                            "2025-01-20",
                            "2025-01-27",
                            "2025-02-03",
                        ],
                    }
                }
            },
        },
    },
)
async def preview_recurrence(payload: RecurrencePreviewRequest) -> RecurrencePreview:
    recurrence_plan = plan(
        payload.start_date,
        payload.end_date,
        payload.weekdays,
        payload.periodicity,
        max_occurrences=get_settings().MAX_RECURRENCE_OCCURRENCES,
    )
    return RecurrencePreview(
        count=recurrence_plan.count,
        total_matches=recurrence_plan.total_matches,
        was_capped=recurrence_plan.was_capped,
        dates=list(recurrence_plan.dates),
    )


@router.post(
    "",
    response_model=RecurrenceCreated,
    status_code=HTTPStatus.CREATED,
    summary="Create a recurring series of appointments",
    description=(
        "Plan the occurrences from `template.date` to `end_date` and persist "
        "one appointment plus its session per planned date, all in one "
        "transaction.\n\n"
        "- All occurrences share the same `recurrence_id` (generated when the "
        "client does not supply one).\n"
        "- At most `MAX_RECURRENCE_OCCURRENCES` appointments are created; "
        "`was_capped` reports truncation.\n"
        "- Any failure rolls back the whole series."
    ),
    responses={
        201: {
            "description": "Series created.",
        },
        400: {
            "description": (
                "Unknown patient/therapist, or the selected weekdays produce no "
                "dates in the range."
            ),
        },
        409: {
            "description": "The supplied recurrence_id is already in use.",
        },
        500: {
            "description": "Database error or timeout; nothing was written.",
        },
    },
)
async def create_recurrence(
    payload: RecurrenceCreate,
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> RecurrenceCreated:
    """
    Authoritative create path: the same planner as the preview, followed by
    the materializer, which re-applies the occurrence cap on its own.
    """
    settings = get_settings()
    recurrence_id = str(payload.recurrence_id or uuid4())

    recurrence_plan = plan(
        payload.template.date,
        payload.end_date,
        payload.weekdays,
        payload.periodicity,
        max_occurrences=settings.MAX_RECURRENCE_OCCURRENCES,
    )
    if recurrence_plan.count == 0:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="The selected weekdays produce no dates in the given range.",
        )

    try:
        result = await materialize(
            db,
            recurrence_id,
            payload.template,
            recurrence_plan.dates,
            cache,
        )
    except DuplicateRecurrence as exc:
        raise HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc))
    except ValidationFailure as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))

    return RecurrenceCreated(
        recurrence_id=result.recurrence_id,
        created_count=result.created_count,
        was_capped=recurrence_plan.was_capped or result.was_capped,
        appointments=result.appointments(),
    )


@router.get(
    "/{recurrence_id}",
    response_model=list[AppointmentRead],
    summary="List the occurrences of a recurrence",
    description="Return every appointment of the series in ascending date order.",
    responses={
        404: {
            "description": "No appointment carries the given recurrence_id.",
        },
    },
)
async def get_recurrence(
    recurrence_id: str = Path(
        ...,
        max_length=36,
        description="Identifier shared by the occurrences of the series.",
        example="5f0c9a5e-8f7e-4d8b-9a55-2b1c0c2f3e11",
    ),
    db: AsyncSession = Depends(get_db),
) -> list[AppointmentRead]:
    appointments = await appointment_service.list_appointments(db, recurrence_id=recurrence_id)
    if not appointments:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=str(RecurrenceNotFound(recurrence_id)),
        )
    return appointments


@router.patch(
    "/{recurrence_id}",
    response_model=RecurrenceMutationResult,
    summary="Edit every occurrence of a recurrence",
    description=(
        "Apply the provided fields to all appointments of the series in one "
        "transaction. Fields omitted from the body are left untouched.\n\n"
        "`weekday_shift` (0 = Sunday ... 6 = Saturday) moves each occurrence "
        "to that weekday within its own week, so a Monday series shifted to 3 "
        "lands on the Wednesday of the same weeks.\n\n"
        "Linked sessions are updated in place. A failure on any row rolls "
        "back the whole update."
    ),
    responses={
        200: {
            "description": "Series updated.",
            "content": {
                "application/json": {
                    "example": {
                        "recurrence_id": "5f0c9a5e-8f7e-4d8b-9a55-2b1c0c2f3e11",
                        "affected_count": 5,
                    }
                }
            },
        },
        404: {
            "description": "No appointment carries the given recurrence_id; nothing changed.",
        },
        500: {
            "description": "Database error or timeout; nothing was changed.",
        },
    },
)
async def patch_recurrence(
    payload: RecurrenceUpdate,
    recurrence_id: str = Path(..., max_length=36),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> RecurrenceMutationResult:
    try:
        affected = await update_recurrence(
            db,
            recurrence_id,
            payload,
            weekday_shift=payload.weekday_shift,
            cache=cache,
        )
    except RecurrenceNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))

    return RecurrenceMutationResult(recurrence_id=recurrence_id, affected_count=affected)


@router.delete(
    "/{recurrence_id}",
    response_model=RecurrenceMutationResult,
    summary="Delete every occurrence of a recurrence",
    description=(
        "Delete all appointments of the series together with their sessions, "
        "in one transaction."
    ),
    responses={
        404: {
            "description": "No appointment carries the given recurrence_id; nothing changed.",
        },
        500: {
            "description": "Database error or timeout; nothing was deleted.",
        },
    },
)
async def remove_recurrence(
    recurrence_id: str = Path(..., max_length=36),
    db: AsyncSession = Depends(get_db),
    cache: ReadModelCache = Depends(get_read_model_cache),
) -> RecurrenceMutationResult:
    try:
        deleted = await delete_recurrence(db, recurrence_id, cache=cache)
    except RecurrenceNotFound as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    except PersistenceFailure as exc:
        raise HTTPException(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, detail=str(exc))

    return RecurrenceMutationResult(recurrence_id=recurrence_id, affected_count=deleted)
