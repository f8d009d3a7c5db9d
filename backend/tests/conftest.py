import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.db.collections import CollectionsAccessor, get_collections
from app.db.document_store import DocumentStore
from app.main import app
from app.services import sms_service
from app.services.auth_provider import MockAuthProvider, get_auth_provider

BASE_URL = "https://bins.test/v3/b"
BIN_ID = "test-bin"
MASTER_KEY = "test-master-key"


class FakeJsonBin:
    """In-memory stand-in for a JSONBin bin, served through httpx.MockTransport.

    ``failures`` is a queue of status codes (or exceptions) returned/raised
    before the bin answers normally again; ``fail_writes`` makes every PUT
    answer with that status.
    """

    def __init__(self, record=None):
        self.record = {"patients": [], "prescriptions": []} if record is None else record
        self.failures = []
        self.fail_writes = None
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("X-Master-Key") != MASTER_KEY:
            return httpx.Response(401, json={"message": "Invalid master key"})
        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, Exception):
                raise failure
            return httpx.Response(failure, json={"message": "failure"})
        if request.method == "PUT" and self.fail_writes:
            return httpx.Response(self.fail_writes, json={"message": "write rejected"})

        if request.method == "GET" and request.url.path == f"/v3/b/{BIN_ID}/latest":
            return httpx.Response(200, json={"record": self.record, "metadata": {"id": BIN_ID}})
        if request.method == "PUT" and request.url.path == f"/v3/b/{BIN_ID}":
            self.record = json.loads(request.content)
            return httpx.Response(200, json={"record": self.record, "metadata": {"parentId": BIN_ID}})
        return httpx.Response(404, json={"message": "Bin not found"})

    def count(self, method: str) -> int:
        return sum(1 for r in self.requests if r.method == method)


def make_store(fake_bin: FakeJsonBin, **overrides) -> DocumentStore:
    options = dict(
        base_url=BASE_URL,
        bin_id=BIN_ID,
        master_key=MASTER_KEY,
        max_attempts=3,
        retry_delay=0,
        timeout=5,
        degrade_reads=True,
        transport=httpx.MockTransport(fake_bin.handler),
    )
    options.update(overrides)
    return DocumentStore(**options)


@pytest.fixture
def fake_bin():
    return FakeJsonBin()


@pytest.fixture
def store(fake_bin):
    return make_store(fake_bin)


@pytest.fixture
def collections(store):
    return CollectionsAccessor(store)


@pytest.fixture
def auth_provider():
    return MockAuthProvider()


@pytest.fixture(autouse=True)
def fast_sms(monkeypatch):
    monkeypatch.setattr(get_settings(), "SMS_SIMULATED_DELAY_SECONDS", 0)
    monkeypatch.setattr(get_settings(), "TWILIO_ACCOUNT_SID", "")
    monkeypatch.setattr(sms_service, "_twilio_client", None)


@pytest.fixture
def client(collections, auth_provider):
    app.dependency_overrides[get_collections] = lambda: collections
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def doctor_client(client):
    """Client carrying the demo doctor's session cookie."""
    res = client.post("/api/auth/login", json={"email": "doctor@clinic.com", "password": "doctor123"})
    assert res.status_code == 200
    return client
