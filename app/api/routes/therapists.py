# app/api/routes/therapists.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.therapist import Therapist
from app.schemas.therapist import TherapistCreate, TherapistRead, TherapistUpdate
from app.services.appointment_service import nullable_columns, patch_changes

router = APIRouter(prefix="/therapists", tags=["Therapists"])


@router.post(
    "",
    response_model=TherapistRead,
    status_code=HTTPStatus.CREATED,
    summary="Register a new therapist",
    description=(
        "Create a therapist who can own appointments and receive per-session "
        "payouts.\n\n"
        "The `email` must be unique across therapists."
    ),
    responses={
        201: {
            "description": "Therapist successfully created.",
            "content": {
                "application/json": {
                    "example": {
                        "id": 1,
                        "name": "Dr. Paulo Lima",
                        "email": "paulo@clinic.example",
                        "phone": "+55 11 98888-0000",
                        "pix_key": "paulo@clinic.example",
                        "start_date": "2024-02-01",
                        "is_active": True,
                    }
                }
            },
        },
        400: {
            "description": "A therapist with the same email already exists.",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Therapist with email 'paulo@clinic.example' already exists.",
                    }
                }
            },
        },
    },
)
async def create_therapist(
    payload: TherapistCreate,
    db: AsyncSession = Depends(get_db),
) -> TherapistRead:
    """
    Create a therapist, enforcing email uniqueness.
    """
    existing_stmt = select(Therapist).where(Therapist.email == payload.email)
    existing_result = await db.execute(existing_stmt)
    if existing_result.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Therapist with email '{payload.email}' already exists.",
        )

    therapist = Therapist(**payload.model_dump())
    db.add(therapist)
    await db.commit()
    await db.refresh(therapist)

    return TherapistRead.model_validate(therapist)


@router.get(
    "",
    response_model=list[TherapistRead],
    summary="List therapists",
    description="Return all therapists, optionally only active or inactive ones.",
)
async def list_therapists(
    only_active: bool | None = Query(
        default=None,
        description=(
            "If true, returns only active therapists. If false, returns only "
            "inactive ones. If omitted, returns all."
        ),
        example=True,
    ),
    db: AsyncSession = Depends(get_db),
) -> list[TherapistRead]:
    stmt = select(Therapist)
    if only_active is True:
        stmt = stmt.where(Therapist.is_active.is_(True))
    elif only_active is False:
        stmt = stmt.where(Therapist.is_active.is_(False))

    result = await db.execute(stmt.order_by(Therapist.id.asc()))
    therapists = result.scalars().all()

    return [TherapistRead.model_validate(t) for t in therapists]


@router.get(
    "/{therapist_id}",
    response_model=TherapistRead,
    summary="Get therapist details by ID",
    responses={
        200: {
            "description": "Therapist found and returned.",
        },
        404: {
            "description": "No therapist exists with the given ID.",
        },
    },
)
async def get_therapist(
    therapist_id: int = Path(
        ...,
        description="Numeric ID of the therapist to retrieve.",
        ge=1,
        example=1,
    ),
    db: AsyncSession = Depends(get_db),
) -> TherapistRead:
    therapist = await db.get(Therapist, therapist_id)
    if therapist is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Therapist with id {therapist_id} not found.",
        )

    return TherapistRead.model_validate(therapist)


@router.patch(
    "/{therapist_id}",
    response_model=TherapistRead,
    summary="Partially update a therapist",
    description=(
        "Only fields provided in the request body will be modified.\n\n"
        "Changing `email` to one already used by another therapist is rejected."
    ),
    responses={
        200: {
            "description": "Therapist updated successfully.",
        },
        400: {
            "description": "Attempted to change `email` to a value that already exists.",
        },
        404: {
            "description": "No therapist exists with the given ID.",
        },
    },
)
async def update_therapist(
    therapist_id: int = Path(
        ...,
        description="Numeric ID of the therapist to update.",
        ge=1,
        example=1,
    ),
    payload: TherapistUpdate | None = None,
    db: AsyncSession = Depends(get_db),
) -> TherapistRead:
    therapist = await db.get(Therapist, therapist_id)
    if therapist is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Therapist with id {therapist_id} not found.",
        )

    if payload is None:
        return TherapistRead.model_validate(therapist)

    update_data = patch_changes(payload, nullable_columns(Therapist))

    new_email = update_data.get("email")
    if new_email and new_email != therapist.email:
        existing_stmt = select(Therapist).where(Therapist.email == new_email)
        existing_result = await db.execute(existing_stmt)
        if existing_result.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST,
                detail=f"Therapist with email '{new_email}' already exists.",
            )

    for field, value in update_data.items():
        setattr(therapist, field, value)

    await db.commit()
    await db.refresh(therapist)

    return TherapistRead.model_validate(therapist)
