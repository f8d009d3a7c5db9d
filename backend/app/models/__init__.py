from app.models.document import (
    COLLECTIONS,
    PATIENTS,
    PRESCRIPTIONS,
    SharedDocument,
    check_collection_name,
    is_record,
    records_in,
)

__all__ = [
    "COLLECTIONS",
    "PATIENTS",
    "PRESCRIPTIONS",
    "SharedDocument",
    "check_collection_name",
    "is_record",
    "records_in",
]
