"""
Prescription API routes.

Endpoints:
    GET    /prescriptions        — List prescriptions, newest first (optional ?patient_id=)
    POST   /prescriptions        — Create a prescription
    GET    /prescriptions/{id}   — Get prescription by ID
    PUT    /prescriptions/{id}   — Shallow-merge fields into a prescription
    DELETE /prescriptions/{id}   — Delete a prescription (idempotent)
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.api.errors import store_error
from app.api.middleware.auth import SessionData, get_optional_session
from app.db.collections import CollectionsAccessor, get_collections
from app.services import prescription_service

router = APIRouter()


class DeleteResponse(BaseModel):
    success: bool = True


@router.get("/prescriptions")
async def list_prescriptions(
    patient_id: Optional[str] = Query(None, description="Only prescriptions for this patient"),
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        return await prescription_service.list_prescriptions(collections, patient_id=patient_id)
    except Exception as exc:
        raise store_error("fetch prescriptions", exc)


@router.post("/prescriptions", status_code=status.HTTP_201_CREATED)
async def create_prescription(
    payload: dict[str, Any] = Body(...),
    collections: CollectionsAccessor = Depends(get_collections),
    session: Optional[SessionData] = Depends(get_optional_session),
):
    """Create a prescription.  Missing fields get defaults; nothing is required."""
    try:
        return await prescription_service.create_prescription(
            collections,
            payload,
            user_id=session.id if session else None,
        )
    except Exception as exc:
        raise store_error("create prescription", exc)


@router.get("/prescriptions/{prescription_id}")
async def get_prescription(
    prescription_id: str,
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        prescription = await prescription_service.get_prescription(collections, prescription_id)
    except Exception as exc:
        raise store_error("fetch prescription", exc)
    if prescription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")
    return prescription


@router.put("/prescriptions/{prescription_id}")
async def update_prescription(
    prescription_id: str,
    updates: dict[str, Any] = Body(...),
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        prescription = await prescription_service.update_prescription(collections, prescription_id, updates)
    except Exception as exc:
        raise store_error("update prescription", exc)
    if prescription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prescription not found")
    return prescription


@router.delete("/prescriptions/{prescription_id}", response_model=DeleteResponse)
async def delete_prescription(
    prescription_id: str,
    collections: CollectionsAccessor = Depends(get_collections),
):
    try:
        await prescription_service.delete_prescription(collections, prescription_id)
    except Exception as exc:
        raise store_error("delete prescription", exc)
    return DeleteResponse()
