"""
Translation proxy — forwards text to the RapidAPI Google Translate endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from app.config import get_settings

logger = logging.getLogger(__name__)


class TranslationNotConfigured(RuntimeError):
    pass


@dataclass
class TranslationResult:
    translated_text: str
    status_code: int


def get_translate_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for upstream calls; ``None`` means httpx's default network transport."""
    return None


def _extract_translation(payload) -> str:
    try:
        return payload["data"]["translations"][0]["translatedText"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


async def translate(
    text: str,
    source: str = "en",
    target: str = "gu",
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TranslationResult:
    """Translate *text*; blank text short-circuits without an upstream call.

    The upstream status is passed back so the route can mirror it.  An
    unreadable upstream body yields an empty translation.
    """
    if not text or not str(text).strip():
        return TranslationResult(translated_text="", status_code=200)

    settings = get_settings()
    if not settings.RAPIDAPI_KEY:
        raise TranslationNotConfigured("Missing RAPIDAPI_KEY")

    async with httpx.AsyncClient(timeout=settings.TRANSLATE_TIMEOUT_SECONDS, transport=transport) as client:
        response = await client.post(
            settings.TRANSLATE_API_URL,
            headers={
                "X-RapidAPI-Key": settings.RAPIDAPI_KEY,
                "X-RapidAPI-Host": settings.TRANSLATE_API_HOST,
            },
            data={"q": str(text), "source": source, "target": target},
        )

    try:
        payload = response.json()
    except ValueError:
        payload = {}

    if not response.is_success:
        logger.warning("Translation upstream returned %s", response.status_code)
    return TranslationResult(
        translated_text=_extract_translation(payload),
        status_code=200 if response.is_success else response.status_code,
    )
