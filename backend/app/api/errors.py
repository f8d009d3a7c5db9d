import logging

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.db.document_store import StaleDocumentError

logger = logging.getLogger(__name__)


def store_error(action: str, exc: Exception) -> HTTPException:
    """Map an exception from the store layer to the response the client sees.

    Version conflicts become 409; anything else is logged and reported as a
    generic 500 without internal detail.
    """
    if isinstance(exc, StaleDocumentError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    logger.exception("Failed to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request-body validation failures as 400 Bad Request."""
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )
