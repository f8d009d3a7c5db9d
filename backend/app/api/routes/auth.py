"""
Staff authentication routes.

Endpoints:
    POST   /auth/login        — Check staff credentials and start a session cookie
    GET    /auth/session      — Return the current session (cookie or bearer token)
    DELETE /auth/delete-user  — Delete the caller's account and every record they created
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.errors import store_error
from app.api.middleware.auth import (
    SESSION_COOKIE,
    SessionData,
    create_session_token,
    get_current_session,
    get_optional_session,
)
from app.config import get_settings
from app.db.collections import CollectionsAccessor, get_collections
from app.models.document import COLLECTIONS, SharedDocument, is_record
from app.services.auth_provider import AuthProvider, get_auth_provider

logger = logging.getLogger(__name__)
router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class DeleteAccountResponse(BaseModel):
    success: bool = True
    message: str
    patients_removed: int = 0
    prescriptions_removed: int = 0


@router.post("/auth/login", response_model=SessionData)
async def login(
    payload: LoginRequest,
    response: Response,
    provider: AuthProvider = Depends(get_auth_provider),
):
    """Authenticate a staff member and set the ``session`` cookie."""
    user = provider.authenticate(payload.email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    settings = get_settings()
    token, session = create_session_token(user)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    logger.info("Staff login %s (%s)", user.id, user.role)
    return session


@router.get("/auth/session", response_model=Optional[SessionData])
async def read_session(session: Optional[SessionData] = Depends(get_optional_session)):
    if session is None:
        return JSONResponse(content=None, status_code=status.HTTP_401_UNAUTHORIZED)
    return session


@router.delete("/auth/delete-user", response_model=DeleteAccountResponse)
async def delete_account(
    response: Response,
    session: SessionData = Depends(get_current_session),
    collections: CollectionsAccessor = Depends(get_collections),
    provider: AuthProvider = Depends(get_auth_provider),
):
    """Delete the caller's patients and prescriptions, then the account itself.

    Both collections are purged in a single document rewrite.
    """

    def _purge(document: SharedDocument):
        data = document.model_dump()
        removed = {}
        for name in COLLECTIONS:
            kept = [r for r in data[name] if not is_record(r, userId=session.id)]
            removed[name] = len(data[name]) - len(kept)
            data[name] = kept
        return SharedDocument.model_validate(data), removed

    try:
        removed = await collections.mutate_document(_purge)
    except Exception as exc:
        raise store_error("delete user records", exc)

    if not provider.delete_user(session.id):
        logger.error("Auth provider refused to delete user %s", session.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete user account",
        )

    response.delete_cookie(SESSION_COOKIE)
    return DeleteAccountResponse(
        message="User account deleted successfully",
        patients_removed=removed["patients"],
        prescriptions_removed=removed["prescriptions"],
    )
