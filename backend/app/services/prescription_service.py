"""
Prescription service — CRUD over the shared ``prescriptions`` collection.

Prescriptions carry a denormalised ``patientId``/``patientName`` pair; nothing
here checks that the patient still exists.
"""

from __future__ import annotations

import logging
from typing import Any

from app.db.collections import CollectionsAccessor
from app.models.document import PRESCRIPTIONS, is_record, records_in
from app.services.identifiers import new_record_id, today_iso, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "Active"

# Free-text clinical fields that default to an empty string
TEXT_FIELDS = (
    "diagnosis",
    "investigation",
    "fee",
    "notes",
    "injections",
    "additionalMedicines",
)


def build_prescription(payload: dict[str, Any], *, user_id: str | None = None) -> dict[str, Any]:
    """Shape a creation payload into a stored prescription.

    Only the known prescription fields are kept; ``userId`` comes from the
    session, never the payload.  ``prescriptionDate`` defaults to today's
    date, ``date`` to the full creation timestamp.
    """
    medications = payload.get("medications")
    prescription: dict[str, Any] = {
        "id": payload.get("id") or new_record_id("RX"),
        "patientId": payload.get("patientId"),
        "patientName": payload.get("patientName"),
        "doctorName": payload.get("doctorName"),
        "medications": medications if isinstance(medications, list) else [],
    }
    for field in TEXT_FIELDS:
        prescription[field] = payload.get(field) or ""
    prescription["prescriptionDate"] = payload.get("prescriptionDate") or today_iso()
    prescription["status"] = payload.get("status") or DEFAULT_STATUS
    prescription["date"] = payload.get("date") or utc_now_iso()

    if user_id:
        prescription["userId"] = user_id
    return prescription


async def list_prescriptions(
    collections: CollectionsAccessor,
    *,
    patient_id: str | None = None,
) -> list[dict[str, Any]]:
    prescriptions = records_in(await collections.fetch_collection(PRESCRIPTIONS))
    if patient_id:
        prescriptions = [p for p in prescriptions if p.get("patientId") == patient_id]
    return prescriptions


async def get_prescription(collections: CollectionsAccessor, prescription_id: str) -> dict[str, Any] | None:
    prescriptions = await collections.fetch_collection(PRESCRIPTIONS)
    return next((p for p in prescriptions if is_record(p, id=prescription_id)), None)


async def create_prescription(
    collections: CollectionsAccessor,
    payload: dict[str, Any],
    *,
    user_id: str | None = None,
) -> dict[str, Any]:
    prescription = build_prescription(payload, user_id=user_id)

    def _prepend(records):
        return [prescription, *records], prescription

    created = await collections.mutate_collection(PRESCRIPTIONS, _prepend)
    logger.info("Created prescription %s for patient %s", created["id"], created.get("patientId"))
    return created


async def update_prescription(
    collections: CollectionsAccessor,
    prescription_id: str,
    updates: dict[str, Any],
) -> dict[str, Any] | None:
    """Shallow-merge *updates*; ``None`` when the prescription does not exist."""
    changes = {k: v for k, v in updates.items() if k not in ("id", "userId")}

    def _merge(records):
        updated = None
        merged = []
        for record in records:
            if is_record(record, id=prescription_id):
                record = {**record, **changes}
                updated = record
            merged.append(record)
        return merged, updated

    prescription = await collections.mutate_collection(PRESCRIPTIONS, _merge)
    if prescription is not None:
        logger.info("Updated prescription %s", prescription_id)
    return prescription


async def delete_prescription(collections: CollectionsAccessor, prescription_id: str) -> None:
    def _drop(records):
        return [p for p in records if not is_record(p, id=prescription_id)], None

    await collections.mutate_collection(PRESCRIPTIONS, _drop)
    logger.info("Deleted prescription %s", prescription_id)
