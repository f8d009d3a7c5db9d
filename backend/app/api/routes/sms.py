"""
SMS API routes.

Endpoints:
    POST /send-sms       — Send one SMS (appointment confirmations, ad-hoc notes)
    POST /send-bulk-sms  — Send templated reminders for a list of appointments
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from app.services import sms_service

router = APIRouter()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class SendSMSRequest(BaseModel):
    to: Optional[str] = None
    message: Optional[str] = None
    patientName: Optional[str] = None


class SendSMSResponse(BaseModel):
    success: bool = True
    messageId: str
    to: str
    message: str = "SMS sent successfully"
    provider: str


class BulkSMSRequest(BaseModel):
    appointments: Optional[list[dict[str, Any]]] = None
    message: Optional[str] = None


class BulkSMSResponse(BaseModel):
    success: bool
    sent: int
    failed: int
    results: list[dict[str, Any]]
    errors: list[dict[str, Any]]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/send-sms", response_model=SendSMSResponse)
async def send_sms(payload: SendSMSRequest):
    if not payload.to or not payload.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Phone number and message are required",
        )

    phone = sms_service.format_phone_number(payload.to)
    try:
        sent = await sms_service.send_sms(phone, payload.message)
    except Exception as exc:
        logger.error("Failed to send SMS to %s: %s", phone, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send SMS",
        )
    return SendSMSResponse(messageId=sent["messageId"], to=sent["to"], provider=sent["provider"])


@router.post("/send-bulk-sms", response_model=BulkSMSResponse)
async def send_bulk_sms(payload: BulkSMSRequest):
    if not payload.appointments:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Appointments array is required",
        )
    if not payload.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )

    try:
        return await sms_service.send_bulk_appointment_sms(payload.appointments, payload.message)
    except Exception as exc:
        logger.exception("Bulk SMS sending failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send bulk SMS: {exc}",
        )
