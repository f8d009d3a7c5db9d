"""
Patient service — CRUD and visit recording over the shared ``patients``
collection.

All public functions accept a ``CollectionsAccessor`` so the route layer
decides which store they run against.  Records are plain dicts: fields the
caller sends are stored verbatim, this module only fills in identifiers and
defaults.  ``userId`` is owned by the service and never taken from a payload.
"""

from __future__ import annotations

import logging
from typing import Any

from app.db.collections import CollectionsAccessor
from app.models.document import PATIENTS, is_record, records_in
from app.services.identifiers import new_record_id, today_iso, utc_now_iso

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("firstName", "lastName", "phone")

# Set by the service only
PROTECTED_FIELDS = ("id", "userId")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _find(records: list[Any], patient_id: str) -> dict[str, Any] | None:
    return next((p for p in records if is_record(p, id=patient_id)), None)


def _matches_search(patient: dict[str, Any], term: str) -> bool:
    """Case-insensitive match on full name, phone or age."""
    term = term.strip().lower()
    if not term:
        return True
    full_name = f"{patient.get('firstName', '')} {patient.get('lastName', '')}".lower()
    return (
        term in full_name
        or term in str(patient.get("phone") or "").lower()
        or term in str(patient.get("age") or "").lower()
    )


def _visit_count(value: Any) -> int:
    """Stored visit count; anything that is not a whole number counts as one."""
    if isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return 1


def build_patient(payload: dict[str, Any], *, user_id: str | None = None) -> dict[str, Any]:
    """Apply identifier and defaults to a creation payload."""
    missing = [f for f in REQUIRED_FIELDS if not str(payload.get(f) or "").strip()]
    if missing:
        raise ValueError(f"Missing required patient fields: {', '.join(missing)}")
    patient = {k: v for k, v in payload.items() if k != "userId"}
    patient["id"] = payload.get("id") or new_record_id("PAT")
    patient["registrationDate"] = payload.get("registrationDate") or utc_now_iso()
    images = payload.get("images")
    patient["images"] = images if isinstance(images, list) else []
    if user_id:
        patient["userId"] = user_id
    return patient


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

async def list_patients(
    collections: CollectionsAccessor,
    *,
    search: str | None = None,
) -> list[dict[str, Any]]:
    """Return patients newest first, optionally filtered by *search*."""
    patients = records_in(await collections.fetch_collection(PATIENTS))
    if search:
        patients = [p for p in patients if _matches_search(p, search)]
    return patients


async def get_patient(collections: CollectionsAccessor, patient_id: str) -> dict[str, Any] | None:
    """Return a single patient by id, or ``None``."""
    return _find(await collections.fetch_collection(PATIENTS), patient_id)


async def create_patient(
    collections: CollectionsAccessor,
    payload: dict[str, Any],
    *,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Register a new patient and prepend it to the collection.

    Raises ``ValueError`` when a required field is blank.
    """
    patient = build_patient(payload, user_id=user_id)

    def _prepend(records):
        return [patient, *records], patient

    created = await collections.mutate_collection(PATIENTS, _prepend)
    logger.info("Created patient %s", created["id"])
    return created


async def update_patient(
    collections: CollectionsAccessor,
    patient_id: str,
    updates: dict[str, Any],
) -> dict[str, Any] | None:
    """Shallow-merge *updates* onto the patient; ``None`` when it does not exist.

    ``id`` and ``userId`` are never overwritten.
    """
    changes = {k: v for k, v in updates.items() if k not in PROTECTED_FIELDS}

    def _merge(records):
        updated = None
        merged = []
        for record in records:
            if is_record(record, id=patient_id):
                record = {**record, **changes}
                updated = record
            merged.append(record)
        return merged, updated

    patient = await collections.mutate_collection(PATIENTS, _merge)
    if patient is not None:
        logger.info("Updated patient %s (%s)", patient_id, ", ".join(sorted(changes)) or "no fields")
    return patient


async def delete_patient(collections: CollectionsAccessor, patient_id: str) -> None:
    """Remove the patient if present.  Deleting an unknown id is not an error."""

    def _drop(records):
        kept = [p for p in records if not is_record(p, id=patient_id)]
        return kept, len(records) - len(kept)

    removed = await collections.mutate_collection(PATIENTS, _drop)
    logger.info("Deleted patient %s (%d record(s) removed)", patient_id, removed)


# ---------------------------------------------------------------------------
# Visits
# ---------------------------------------------------------------------------

def build_visit(payload: dict[str, Any]) -> dict[str, Any]:
    medications = payload.get("medications")
    visit = {
        "id": payload.get("id") or new_record_id("VISIT"),
        "date": payload.get("date") or today_iso(),
        "notes": payload.get("notes") or "",
        "medications": medications if isinstance(medications, list) else [],
        "diagnosis": payload.get("diagnosis") or "",
        "doctorName": payload["doctorName"],
    }
    if payload.get("followUpDate"):
        visit["followUpDate"] = payload["followUpDate"]
    return visit


async def record_visit(
    collections: CollectionsAccessor,
    patient_id: str,
    payload: dict[str, Any],
) -> dict[str, Any] | None:
    """Append a visit record to the patient and bump the visit counter.

    A patient without a usable ``visits`` count counts as having had one visit
    (the registration visit); a ``visitRecords`` value that is not a list
    starts over as an empty history.  Returns ``None`` when the patient does
    not exist.
    """
    visit = build_visit(payload)

    def _append(records):
        updated = None
        merged = []
        for record in records:
            if is_record(record, id=patient_id):
                history = record.get("visitRecords")
                record = {
                    **record,
                    "visits": _visit_count(record.get("visits") or 1) + 1,
                    "visitRecords": [*(history if isinstance(history, list) else []), visit],
                }
                updated = record
            merged.append(record)
        return merged, updated

    patient = await collections.mutate_collection(PATIENTS, _append)
    if patient is not None:
        logger.info("Recorded visit %s for patient %s", visit["id"], patient_id)
    return patient
