"""
Staff authentication providers.

Route handlers only talk to the ``AuthProvider`` interface.  The bundled
``MockAuthProvider`` serves the demo staff accounts; a real identity backend
plugs in by implementing the same three methods and replacing
``get_auth_provider`` through FastAPI dependency overrides.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Optional

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


@dataclass(frozen=True)
class StaffUser:
    id: str
    email: str
    name: str
    role: str


class AuthProvider(abc.ABC):
    @abc.abstractmethod
    def authenticate(self, email: str, password: str) -> Optional[StaffUser]:
        """Return the user for valid credentials, ``None`` otherwise."""

    @abc.abstractmethod
    def get_user(self, user_id: str) -> Optional[StaffUser]:
        ...

    @abc.abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Remove the account; ``False`` if it could not be removed."""


DEMO_STAFF = (
    ("1", "doctor@clinic.com", "doctor123", "Dr. Sarah Wilson", "Doctor"),
    ("2", "nurse@clinic.com", "nurse123", "Nurse John", "Nurse"),
    ("3", "admin@clinic.com", "admin123", "Admin User", "Admin"),
)


class MockAuthProvider(AuthProvider):
    """In-memory staff directory.  Passwords are hashed on construction."""

    def __init__(self, accounts: Iterable[tuple[str, str, str, str, str]] = DEMO_STAFF):
        self._users: dict[str, StaffUser] = {}
        self._hashes: dict[str, str] = {}
        for user_id, email, password, name, role in accounts:
            self._users[user_id] = StaffUser(id=user_id, email=email.lower(), name=name, role=role)
            self._hashes[user_id] = hash_password(password)

    def authenticate(self, email: str, password: str) -> Optional[StaffUser]:
        email = (email or "").strip().lower()
        user = next((u for u in self._users.values() if u.email == email), None)
        if user is None or not verify_password(password or "", self._hashes[user.id]):
            return None
        return user

    def get_user(self, user_id: str) -> Optional[StaffUser]:
        return self._users.get(user_id)

    def delete_user(self, user_id: str) -> bool:
        if self._users.pop(user_id, None) is None:
            return False
        self._hashes.pop(user_id, None)
        logger.info("Deleted staff account %s", user_id)
        return True


@lru_cache()
def get_auth_provider() -> AuthProvider:
    return MockAuthProvider()
