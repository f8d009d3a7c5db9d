"""
Translation proxy route.

Endpoints:
    POST /translate — Translate text via the RapidAPI Google Translate API
"""

import logging

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.services import translation_service

router = APIRouter()
logger = logging.getLogger(__name__)


class TranslateRequest(BaseModel):
    text: str = ""
    source: str = "en"
    target: str = "gu"


@router.post("/translate")
async def translate(
    payload: TranslateRequest,
    transport: httpx.AsyncBaseTransport = Depends(translation_service.get_translate_transport),
):
    try:
        result = await translation_service.translate(
            payload.text,
            payload.source,
            payload.target,
            transport=transport,
        )
    except translation_service.TranslationNotConfigured as exc:
        logger.error("Translation unavailable: %s", exc)
        return JSONResponse({"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except httpx.HTTPError as exc:
        logger.error("Translation upstream call failed: %s", exc)
        return JSONResponse({"error": "Translation failed"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return JSONResponse({"translatedText": result.translated_text}, status_code=result.status_code)
