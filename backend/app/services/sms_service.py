"""
SMS service — phone normalisation, appointment message templating and
delivery.

Messages go out through the Twilio REST API when credentials are configured.
Without them delivery is simulated: the message is logged, a short pause
stands in for the provider round trip and a synthetic message id is returned.
"""

from __future__ import annotations

import asyncio
import logging
import re
import uuid
from datetime import datetime
from typing import Any

from app.config import get_settings

logger = logging.getLogger(__name__)

SIMULATED_PROVIDER = "Simulated SMS Service"
TWILIO_PROVIDER = "Twilio"

_NON_DIAL_CHARS = re.compile(r"[^\d+]")

# ---------------------------------------------------------------------------
# Twilio client (lazy initialisation)
# ---------------------------------------------------------------------------

_twilio_client = None


def _get_twilio_client():
    """Return a shared Twilio REST client, or ``None`` when not configured."""
    global _twilio_client
    if _twilio_client is None:
        settings = get_settings()
        if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            from twilio.rest import Client
            _twilio_client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    return _twilio_client


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_phone_number(raw: str, country_code: str | None = None) -> str:
    """Normalise *raw* to an international number.

    ``+<cc>...`` is kept, ``<cc>...`` gains a leading ``+``, numbers already
    carrying another ``+`` prefix are left alone and anything else is treated
    as a local number and prefixed with ``+<cc>``.
    """
    cc = (country_code or get_settings().SMS_COUNTRY_CODE).lstrip("+")
    phone = _NON_DIAL_CHARS.sub("", str(raw))
    if phone.startswith(f"+{cc}"):
        return phone
    if phone.startswith(cc):
        return f"+{phone}"
    if phone.startswith("+"):
        return phone
    return f"+{cc}{phone}"


def _format_appointment_date(value: Any) -> str:
    """Render an ISO date as ``DD/MM/YYYY``; unparseable values pass through."""
    if not value:
        return ""
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except ValueError:
        return str(value)


def render_appointment_message(template: str, appointment: dict[str, Any]) -> str:
    """Fill ``{patient}``, ``{time}``, ``{date}`` and ``{doctor}`` placeholders."""
    replacements = {
        "{patient}": str(appointment.get("patient") or ""),
        "{time}": str(appointment.get("time") or ""),
        "{date}": _format_appointment_date(appointment.get("date")),
        "{doctor}": str(appointment.get("doctor") or ""),
    }
    message = template
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------

async def send_sms(to: str, message: str) -> dict[str, Any]:
    """Send *message* to an already formatted number.

    Returns ``{"messageId", "to", "provider"}``.  Twilio errors propagate to
    the caller.
    """
    settings = get_settings()
    client = _get_twilio_client()
    if client is not None:
        tw_message = client.messages.create(
            body=message,
            from_=settings.TWILIO_PHONE_NUMBER,
            to=to,
        )
        logger.info("Sent SMS to %s (sid=%s)", to, tw_message.sid)
        return {"messageId": tw_message.sid, "to": to, "provider": TWILIO_PROVIDER}

    logger.info("SMS would be sent to %s: %s", to, message)
    if settings.SMS_SIMULATED_DELAY_SECONDS > 0:
        await asyncio.sleep(settings.SMS_SIMULATED_DELAY_SECONDS)
    return {"messageId": f"msg_{uuid.uuid4().hex[:12]}", "to": to, "provider": SIMULATED_PROVIDER}


async def send_bulk_appointment_sms(
    appointments: list[dict[str, Any]],
    template: str,
) -> dict[str, Any]:
    """Send a personalised reminder per appointment.

    A failure for one appointment is recorded under ``errors`` and the batch
    carries on.
    """
    results: list[dict[str, Any]] = []
    errors: list[dict[str, Any]] = []

    for appointment in appointments:
        try:
            phone = format_phone_number(appointment["phone"])
            sent = await send_sms(phone, render_appointment_message(template, appointment))
            results.append({
                "appointmentId": appointment.get("id"),
                "patient": appointment.get("patient"),
                "phone": phone,
                "success": True,
                "messageId": sent["messageId"],
            })
        except Exception as exc:
            logger.error("Failed to send reminder for appointment %s: %s", appointment.get("id"), exc)
            errors.append({
                "appointmentId": appointment.get("id"),
                "patient": appointment.get("patient"),
                "phone": appointment.get("phone"),
                "error": str(exc) or type(exc).__name__,
            })

    logger.info("Bulk SMS finished: %d sent, %d failed", len(results), len(errors))
    return {
        "success": True,
        "sent": len(results),
        "failed": len(errors),
        "results": results,
        "errors": errors,
    }
