"""
Collections accessor tests: per-collection reads, whole-document writes and
the read-modify-write window.
"""

import asyncio

import httpx
import pytest

from app.db.collections import CollectionsAccessor
from app.db.document_store import DocumentStoreError, StaleDocumentError

from conftest import FakeJsonBin, make_store


def _slow_store(fake_bin: FakeJsonBin):
    """Store whose every request yields to the event loop after the bin answers."""

    async def handler(request):
        response = fake_bin.handler(request)
        await asyncio.sleep(0.01)
        return response

    return make_store(fake_bin, transport=httpx.MockTransport(handler))


async def test_fetch_collection_returns_named_list(fake_bin, collections):
    fake_bin.record = {"patients": [{"id": "PAT-1"}], "prescriptions": [{"id": "RX-1"}]}

    assert await collections.fetch_collection("patients") == [{"id": "PAT-1"}]
    assert await collections.fetch_collection("prescriptions") == [{"id": "RX-1"}]


async def test_fetch_unknown_collection_rejected(collections):
    with pytest.raises(ValueError):
        await collections.fetch_collection("appointments")


async def test_save_collection_rereads_and_keeps_other_collection(fake_bin, collections):
    fake_bin.record = {"patients": [{"id": "PAT-1"}], "prescriptions": []}
    patients = await collections.fetch_collection("patients")

    # another client adds a prescription between our read and our save
    fake_bin.record = {"patients": [{"id": "PAT-1"}], "prescriptions": [{"id": "RX-9"}]}
    await collections.save_collection("patients", [{"id": "PAT-2"}, *patients])

    assert fake_bin.record["patients"] == [{"id": "PAT-2"}, {"id": "PAT-1"}]
    assert fake_bin.record["prescriptions"] == [{"id": "RX-9"}]
    assert fake_bin.count("GET") == 2
    assert fake_bin.count("PUT") == 1


async def test_save_collection_converts_legacy_document(fake_bin, collections):
    fake_bin.record = [{"id": "PAT-OLD"}]

    await collections.save_collection("prescriptions", [{"id": "RX-1"}])

    assert fake_bin.record["patients"] == [{"id": "PAT-OLD"}]
    assert fake_bin.record["prescriptions"] == [{"id": "RX-1"}]
    assert "updatedAt" in fake_bin.record


async def test_save_with_matching_version_writes(fake_bin, store, collections):
    version = (await store.fetch_document()).version

    await collections.save_collection("patients", [{"id": "PAT-1"}], expected_version=version)

    assert fake_bin.record["patients"] == [{"id": "PAT-1"}]


async def test_save_with_stale_version_is_rejected(fake_bin, store, collections):
    version = (await store.fetch_document()).version
    fake_bin.record = {"patients": [{"id": "PAT-OTHER"}], "prescriptions": []}

    with pytest.raises(StaleDocumentError):
        await collections.save_collection("patients", [{"id": "PAT-1"}], expected_version=version)

    assert fake_bin.record["patients"] == [{"id": "PAT-OTHER"}]
    assert fake_bin.count("PUT") == 0


async def test_mutation_never_writes_after_failed_read(fake_bin, collections):
    fake_bin.record = {"patients": [{"id": "PAT-1"}], "prescriptions": [{"id": "RX-1"}]}
    fake_bin.failures = [503, 503, 503]

    with pytest.raises(DocumentStoreError):
        await collections.mutate_collection("patients", lambda records: ([{"id": "PAT-2"}, *records], None))

    assert fake_bin.count("PUT") == 0
    assert fake_bin.record["prescriptions"] == [{"id": "RX-1"}]


async def test_mutate_document_sees_every_collection(fake_bin, collections):
    fake_bin.record = {"patients": [{"id": "PAT-1"}], "prescriptions": [{"id": "RX-1"}]}

    def _clear(document):
        return document.with_collection("patients", []).with_collection("prescriptions", []), "done"

    assert await collections.mutate_document(_clear) == "done"
    assert fake_bin.record["patients"] == [] and fake_bin.record["prescriptions"] == []


async def test_serialized_concurrent_creates_keep_both(fake_bin):
    collections = CollectionsAccessor(_slow_store(fake_bin), serialize_writes=True)

    await asyncio.gather(
        collections.mutate_collection("patients", lambda r: ([{"id": "PAT-A"}, *r], None)),
        collections.mutate_collection("patients", lambda r: ([{"id": "PAT-B"}, *r], None)),
    )

    ids = {p["id"] for p in fake_bin.record["patients"]}
    assert ids == {"PAT-A", "PAT-B"}


async def test_unserialized_concurrent_creates_lose_one(fake_bin):
    """Without the lock both cycles read the same snapshot; the last write wins."""
    collections = CollectionsAccessor(_slow_store(fake_bin), serialize_writes=False)

    await asyncio.gather(
        collections.mutate_collection("patients", lambda r: ([{"id": "PAT-A"}, *r], None)),
        collections.mutate_collection("patients", lambda r: ([{"id": "PAT-B"}, *r], None)),
    )

    assert len(fake_bin.record["patients"]) == 1
