from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel

from app.config import get_settings
from app.services.auth_provider import AuthProvider, StaffUser, get_auth_provider

SESSION_COOKIE = "session"

security = HTTPBearer(auto_error=False)


class SessionData(BaseModel):
    id: str
    email: str
    name: str
    role: str
    loginTime: str


def create_session_token(user: StaffUser, expires_delta: Optional[timedelta] = None) -> tuple[str, SessionData]:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    session = SessionData(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        loginTime=now.isoformat(),
    )
    expire = now + (expires_delta or timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS))
    to_encode = {"sub": user.id, **session.model_dump(exclude={"id"}), "exp": expire}
    token = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, session


def decode_token(token: str) -> SessionData:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return SessionData(
            id=payload["sub"],
            email=payload["email"],
            name=payload["name"],
            role=payload["role"],
            loginTime=payload["loginTime"],
        )
    except (JWTError, KeyError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")


def _session_tokens(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> list[str]:
    """Candidate tokens, session cookie first."""
    tokens = [request.cookies.get(SESSION_COOKIE), credentials.credentials if credentials else None]
    return [t for t in tokens if t]


async def get_optional_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    provider: AuthProvider = Depends(get_auth_provider),
) -> Optional[SessionData]:
    """Session of the caller, or ``None`` for anonymous / invalid sessions.

    An unusable cookie does not hide a valid bearer token.
    """
    for token in _session_tokens(request, credentials):
        try:
            session = decode_token(token)
        except HTTPException:
            continue
        if provider.get_user(session.id) is not None:
            return session
    return None


async def get_current_session(
    session: Optional[SessionData] = Depends(get_optional_session),
) -> SessionData:
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session
