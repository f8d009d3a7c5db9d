"""
Patient API routes.

Endpoints:
    GET    /patients               — List patients, newest first (optional ?search=)
    POST   /patients               — Register a new patient
    GET    /patients/{id}          — Get patient by ID
    PUT    /patients/{id}          — Shallow-merge fields into a patient
    DELETE /patients/{id}          — Delete a patient (idempotent)
    POST   /patients/{id}/visits   — Record a visit for a patient
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.api.middleware.auth import SessionData, get_optional_session
from app.db.collections import CollectionsAccessor, get_collections
from app.api.errors import store_error
from app.services import patient_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class PatientCreateRequest(BaseModel):
    """Required fields only; any other field is stored as sent."""

    id: Optional[str] = None
    firstName: str = Field(..., min_length=1)
    lastName: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    @field_validator("firstName", "lastName", "phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class VisitCreateRequest(BaseModel):
    doctorName: str = Field(..., min_length=1)
    date: Optional[str] = None
    notes: Optional[str] = None
    diagnosis: Optional[str] = None
    medications: list[Any] = []
    followUpDate: Optional[str] = None


class DeleteResponse(BaseModel):
    success: bool = True


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/patients")
async def list_patients(
    search: Optional[str] = Query(None, description="Search by name, phone or age"),
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        return await patient_service.list_patients(collections, search=search)
    except Exception as exc:
        raise store_error("fetch patients", exc)


@router.post("/patients", status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreateRequest,
    collections: CollectionsAccessor = Depends(get_collections),
    session: Optional[SessionData] = Depends(get_optional_session),
):
    """Register a new patient.  ``firstName``, ``lastName`` and ``phone`` are required."""
    data = payload.model_dump(exclude_unset=True)
    try:
        return await patient_service.create_patient(
            collections,
            data,
            user_id=session.id if session else None,
        )
    except Exception as exc:
        raise store_error("create patient", exc)


@router.get("/patients/{patient_id}")
async def get_patient(
    patient_id: str,
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        patient = await patient_service.get_patient(collections, patient_id)
    except Exception as exc:
        raise store_error("fetch patient", exc)
    if patient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


@router.put("/patients/{patient_id}")
async def update_patient(
    patient_id: str,
    updates: dict[str, Any] = Body(...),
    collections: CollectionsAccessor = Depends(get_collections),
):
    """Merge the given fields into the patient; fields not sent are left untouched."""
    try:
        patient = await patient_service.update_patient(collections, patient_id, updates)
    except Exception as exc:
        raise store_error("update patient", exc)
    if patient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient


@router.delete("/patients/{patient_id}", response_model=DeleteResponse)
async def delete_patient(
    patient_id: str,
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        await patient_service.delete_patient(collections, patient_id)
    except Exception as exc:
        raise store_error("delete patient", exc)
    return DeleteResponse()


@router.post("/patients/{patient_id}/visits", status_code=status.HTTP_201_CREATED)
async def record_visit(
    patient_id: str,
    payload: VisitCreateRequest,
    collections: CollectionsAccessor = Depends(get_collections),
):
    """Append a visit record and increment the patient's visit count."""
    try:
        patient = await patient_service.record_visit(
            collections, patient_id, payload.model_dump(exclude_none=True)
        )
    except Exception as exc:
        raise store_error("record visit", exc)
    if patient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")
    return patient
