"""
Per-collection access on top of the shared document.

The remote store only understands the whole document, so every save is a
read-merge-write: fetch the latest document, swap in one collection, write
everything back.  Without coordination two such cycles can interleave and the
later write silently discards the earlier one.  When ``serialize_writes`` is
on, cycles in this process run one at a time behind an ``asyncio.Lock``;
writers in other processes are only caught when the caller supplies the
``expected_version`` it read.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from functools import lru_cache
from typing import Any, AsyncIterator, Callable, Optional

from app.config import get_settings
from app.db.document_store import DocumentStore, StaleDocumentError, get_document_store
from app.models.document import SharedDocument, check_collection_name

logger = logging.getLogger(__name__)

Records = list[Any]
CollectionMutator = Callable[[Records], tuple[Records, Any]]
DocumentMutator = Callable[[SharedDocument], tuple[SharedDocument, Any]]


class CollectionsAccessor:
    def __init__(self, store: DocumentStore, *, serialize_writes: bool = True):
        self.store = store
        self.serialize_writes = serialize_writes
        self._lock = asyncio.Lock()

    @contextlib.asynccontextmanager
    async def _write_cycle(self) -> AsyncIterator[None]:
        if self.serialize_writes:
            async with self._lock:
                yield
        else:
            yield

    async def fetch_collection(self, name: str) -> Records:
        """Return the named collection from a fresh (degrading) read."""
        check_collection_name(name)
        document = await self.store.fetch_document()
        return document.collection(name)

    async def save_collection(
        self,
        name: str,
        records: Records,
        *,
        expected_version: Optional[str] = None,
    ) -> SharedDocument:
        """Replace one collection, leaving the rest of the document as it is now.

        The document is re-read here rather than reusing any earlier copy.
        """
        check_collection_name(name)
        async with self._write_cycle():
            document = await self.store.fetch_document(degrade=False)
            if expected_version is not None and document.version != expected_version:
                logger.warning("Rejected stale write to %s", name)
                raise StaleDocumentError(expected_version, document.version)
            return await self.store.write_document(document.with_collection(name, records))

    async def mutate_collection(self, name: str, mutator: CollectionMutator) -> Any:
        """Run ``mutator(records) -> (new_records, result)`` as one read-modify-write.

        The read is strict: a store failure raises instead of handing the
        mutator an empty collection that would then overwrite the real one.
        """
        check_collection_name(name)
        async with self._write_cycle():
            document = await self.store.fetch_document(degrade=False)
            records, result = mutator(document.collection(name))
            await self.store.write_document(document.with_collection(name, records))
            return result

    async def mutate_document(self, mutator: DocumentMutator) -> Any:
        """Like ``mutate_collection`` but the mutator sees every collection."""
        async with self._write_cycle():
            document = await self.store.fetch_document(degrade=False)
            updated, result = mutator(document)
            await self.store.write_document(updated)
            return result


@lru_cache()
def _default_accessor() -> CollectionsAccessor:
    settings = get_settings()
    return CollectionsAccessor(
        get_document_store(),
        serialize_writes=settings.STORE_SERIALIZE_WRITES,
    )


def get_collections() -> CollectionsAccessor:
    """FastAPI dependency returning the process-wide accessor."""
    return _default_accessor()
