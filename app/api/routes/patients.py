# app/api/routes/patients.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.models.patient import Patient
from app.schemas.patient import PatientCreate, PatientRead, PatientUpdate
from app.services.appointment_service import nullable_columns, patch_changes

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.post(
    "",
    response_model=PatientRead,
    status_code=HTTPStatus.CREATED,
    summary="Register a new patient",
    description=(
        "Create a patient record.\n\n"
        "For minors, contact details refer to the guardian responsible for the "
        "patient; they are the ones reached for confirmations and billing."
    ),
    responses={
        201: {
            "description": "Patient successfully created.",
            "content": {
                "application/json": {
                    "example": {
                        "id": 1,
                        "name": "Ana Souza",
                        "birth_date": "2016-03-21",
                        "guardian_name": "Maria Souza",
                        "guardian_phone": "+55 11 99999-0000",
                        "guardian_email": "maria@example.com",
                        "origin": "Referral",
                        "is_active": True,
                    }
                }
            },
        },
    },
)
async def create_patient(
    payload: PatientCreate,
    db: AsyncSession = Depends(get_db),
) -> PatientRead:
    patient = Patient(**payload.model_dump())
    db.add(patient)
    await db.commit()
    await db.refresh(patient)

    return PatientRead.model_validate(patient)


@router.get(
    "",
    response_model=list[PatientRead],
    summary="List patients",
    description=(
        "Return all patients ordered by name.\n\n"
        "Optional filters narrow the list to active/inactive patients or to "
        "names containing a search term."
    ),
)
async def list_patients(
    only_active: bool | None = Query(
        default=None,
        description=(
            "If true, returns only active patients. If false, returns only "
            "inactive ones. If omitted, returns all."
        ),
        example=True,
    ),
    search: str | None = Query(
        default=None,
        description="Case-insensitive substring matched against the patient name.",
        example="souza",
    ),
    db: AsyncSession = Depends(get_db),
) -> list[PatientRead]:
    stmt = select(Patient)
    if only_active is True:
        stmt = stmt.where(Patient.is_active.is_(True))
    elif only_active is False:
        stmt = stmt.where(Patient.is_active.is_(False))
    if search:
        stmt = stmt.where(Patient.name.ilike(f"%{search}%"))

    result = await db.execute(stmt.order_by(Patient.name.asc(), Patient.id.asc()))
    patients = result.scalars().all()

    return [PatientRead.model_validate(p) for p in patients]


@router.get(
    "/{patient_id}",
    response_model=PatientRead,
    summary="Get patient details by ID",
    responses={
        200: {
            "description": "Patient found and returned.",
        },
        404: {
            "description": "No patient exists with the given ID.",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Patient with id 42 not found.",
                    }
                }
            },
        },
    },
)
async def get_patient(
    patient_id: int = Path(
        ...,
        description="Numeric ID of the patient to retrieve.",
        ge=1,
        example=1,
    ),
    db: AsyncSession = Depends(get_db),
) -> PatientRead:
    patient = await db.get(Patient, patient_id)
    if patient is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Patient with id {patient_id} not found.",
        )

    return PatientRead.model_validate(patient)


@router.patch(
    "/{patient_id}",
    response_model=PatientRead,
    summary="Partially update a patient",
    description="Only fields provided in the request body will be modified.",
    responses={
        200: {
            "description": "Patient updated successfully.",
        },
        404: {
            "description": "No patient exists with the given ID.",
        },
    },
)
async def update_patient(
    patient_id: int = Path(
        ...,
        description="Numeric ID of the patient to update.",
        ge=1,
        example=1,
    ),
    payload: PatientUpdate | None = None,
    db: AsyncSession = Depends(get_db),
) -> PatientRead:
    patient = await db.get(Patient, patient_id)
    if patient is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Patient with id {patient_id} not found.",
        )

    if payload is None:
        return PatientRead.model_validate(patient)

    for field, value in patch_changes(payload, nullable_columns(Patient)).items():
        setattr(patient, field, value)

    await db.commit()
    await db.refresh(patient)

    return PatientRead.model_validate(patient)
