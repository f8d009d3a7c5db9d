"""
Shared document model.

The whole clinic database lives in one remote JSON document.  Each top-level
list is a *collection*; the store client reads and writes the document as a
single blob, so every collection travels with every write.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

PATIENTS = "patients"
PRESCRIPTIONS = "prescriptions"
COLLECTIONS = (PATIENTS, PRESCRIPTIONS)


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, list) else []


def is_record(item: Any, **fields: Any) -> bool:
    """True for a record (JSON object) whose *fields* all equal the given values.

    Collections may hold entries that are not objects; they are skipped when
    scanning but stay in the collection.
    """
    return isinstance(item, dict) and all(item.get(k) == v for k, v in fields.items())


def records_in(items: Iterable[Any]) -> list[dict[str, Any]]:
    return [item for item in items if isinstance(item, dict)]


def check_collection_name(name: str) -> str:
    if name not in COLLECTIONS:
        raise ValueError(f"Unknown collection {name!r}; expected one of {COLLECTIONS}")
    return name


class SharedDocument(BaseModel):
    """The remote document: both collections plus the writer's timestamp.

    Top-level keys other than the collections are kept as extras, and
    collection entries are kept as read, so a rewrite never drops data another
    client stored in the document.
    """

    patients: list[Any] = Field(default_factory=list)
    prescriptions: list[Any] = Field(default_factory=list)
    updatedAt: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_record(cls, record: Any) -> "SharedDocument":
        """Interpret the ``record`` payload returned by the store.

        A bare list is the legacy layout (patients only).  Anything that is
        neither a list nor an object yields an empty document.
        """
        if isinstance(record, list):
            return cls(patients=list(record), prescriptions=[])
        if not isinstance(record, dict):
            return cls()

        data = dict(record)
        for name in COLLECTIONS:
            data[name] = _as_list(data.get(name))
        if data.get("updatedAt") is not None and not isinstance(data["updatedAt"], str):
            data["updatedAt"] = str(data["updatedAt"])
        return cls.model_validate(data)

    def collection(self, name: str) -> list[Any]:
        return list(getattr(self, check_collection_name(name)))

    def with_collection(self, name: str, records: list[Any]) -> "SharedDocument":
        """Return a copy with only *name* replaced."""
        check_collection_name(name)
        data = self.model_dump()
        data[name] = list(records)
        return SharedDocument.model_validate(data)

    @property
    def version(self) -> str:
        """Content hash used as an optimistic-concurrency token."""
        canonical = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
