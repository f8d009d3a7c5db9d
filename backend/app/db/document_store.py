"""
Remote document store client.

Reads and replaces the single JSONBin document that backs every collection.
Transport calls are retried on 5xx responses and network errors with a
linearly increasing pause; 4xx responses are returned on the first attempt.

A failed read degrades to an empty document unless the caller asks for a
strict read.  A failed write always raises ``DocumentStoreError``.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Optional

import httpx

from app.config import get_settings
from app.models.document import SharedDocument
from app.services.identifiers import utc_now_iso

logger = logging.getLogger(__name__)


class DocumentStoreError(Exception):
    """The remote document could not be read or written."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StaleDocumentError(DocumentStoreError):
    """The document changed between the caller's read and its write."""

    def __init__(self, expected_version: str, actual_version: str):
        super().__init__(
            f"Document version {actual_version[:12]} does not match expected {expected_version[:12]}",
            status_code=409,
        )
        self.expected_version = expected_version
        self.actual_version = actual_version


class DocumentStore:
    """HTTP client for one JSONBin document."""

    def __init__(
        self,
        *,
        base_url: str,
        bin_id: str,
        master_key: str,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
        timeout: float = 10.0,
        degrade_reads: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bin_id = bin_id
        self.max_attempts = max(max_attempts, 1)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.degrade_reads = degrade_reads
        self._master_key = master_key
        self._transport = transport

    @property
    def read_url(self) -> str:
        return f"{self.base_url}/{self.bin_id}/latest"

    @property
    def write_url(self) -> str:
        return f"{self.base_url}/{self.bin_id}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _request_with_retry(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue *method* against *url*, retrying transient failures.

        Returns the last response received (which may still be a 5xx once the
        attempts run out).  Raises the last ``httpx.TransportError`` when no
        attempt produced a response.
        """
        headers = {"X-Master-Key": self._master_key, **kwargs.pop("headers", {})}
        last_error: Optional[httpx.TransportError] = None
        response: Optional[httpx.Response] = None

        async with self._client() as client:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = await client.request(method, url, headers=headers, **kwargs)
                    last_error = None
                except httpx.TransportError as exc:
                    response = None
                    last_error = exc
                    reason = f"{type(exc).__name__}: {exc}"
                else:
                    if response.status_code < 500:
                        return response
                    reason = f"HTTP {response.status_code}"

                if attempt < self.max_attempts:
                    delay = self.retry_delay * attempt
                    logger.warning(
                        "Document store %s attempt %d/%d failed (%s), retrying in %.2f s",
                        method, attempt, self.max_attempts, reason, delay,
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        "Document store %s failed after %d attempts (%s)",
                        method, self.max_attempts, reason,
                    )

        if last_error is not None:
            raise last_error
        return response

    async def fetch_document(self, degrade: Optional[bool] = None) -> SharedDocument:
        """Fetch the latest document.

        With *degrade* (defaulting to the store's ``degrade_reads``) any
        failure yields an empty document; otherwise it raises
        ``DocumentStoreError``.
        """
        degrade = self.degrade_reads if degrade is None else degrade
        try:
            response = await self._request_with_retry("GET", self.read_url)
        except httpx.TransportError as exc:
            if degrade:
                logger.warning("Document store unreachable, serving empty document: %s", exc)
                return SharedDocument()
            raise DocumentStoreError(f"Document store read failed: {exc}") from exc

        if not response.is_success:
            if degrade:
                logger.warning(
                    "Document store read returned %s, serving empty document", response.status_code
                )
                return SharedDocument()
            raise DocumentStoreError(
                f"Document store read failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            record = payload.get("record") if isinstance(payload, dict) else None
            return SharedDocument.from_record(record)
        except ValueError as exc:
            # json.JSONDecodeError and pydantic.ValidationError both land here
            if degrade:
                logger.warning("Document store returned an unreadable body, serving empty document: %s", exc)
                return SharedDocument()
            raise DocumentStoreError(f"Document store returned an unreadable body: {exc}") from exc

    async def write_document(self, document: SharedDocument) -> SharedDocument:
        """Replace the remote document; returns the document as written."""
        data = document.model_dump(mode="json")
        data["updatedAt"] = utc_now_iso()
        written = SharedDocument.model_validate(data)

        try:
            response = await self._request_with_retry("PUT", self.write_url, json=data)
        except httpx.TransportError as exc:
            raise DocumentStoreError(f"Document store write failed: {exc}") from exc

        if not response.is_success:
            raise DocumentStoreError(
                f"Document store write failed: {response.status_code} {response.text}",
                status_code=response.status_code,
            )

        logger.info(
            "Wrote shared document (%d patients, %d prescriptions)",
            len(written.patients), len(written.prescriptions),
        )
        return written


@lru_cache()
def get_document_store() -> DocumentStore:
    settings = get_settings()
    if not settings.JSONBIN_BIN_ID or not settings.JSONBIN_MASTER_KEY:
        logger.warning("JSONBin bin id or master key not configured; store calls will fail")
    return DocumentStore(
        base_url=settings.JSONBIN_BASE_URL,
        bin_id=settings.JSONBIN_BIN_ID,
        master_key=settings.JSONBIN_MASTER_KEY,
        max_attempts=settings.STORE_MAX_ATTEMPTS,
        retry_delay=settings.STORE_RETRY_DELAY_SECONDS,
        timeout=settings.STORE_TIMEOUT_SECONDS,
        degrade_reads=settings.STORE_DEGRADE_READS,
    )
