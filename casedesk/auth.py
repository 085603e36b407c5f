"""
Identity Resolution with JWT Support
====================================

Turns a signed access token into a ``UserIdentity``.

Credential sources (checked in order):
1. ``Authorization: Bearer <token>`` header
2. httpOnly ``token`` cookie set by /api/auth/login

The role on the identity is always reloaded from the database, so a role
change or deactivation takes effect on the next request.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

import jwt
from passlib.context import CryptContext

from .config import get_settings
from .db.models import UserRole
from .errors import AuthenticationError
from .stores.base import UserStore

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORD HASHING
# =============================================================================

# bcrypt truncates passwords at 72 bytes; enforce to avoid silent truncation.
MAX_PASSWORD_BYTES = 72


def is_password_too_long(password: str) -> bool:
    """Return True if password exceeds bcrypt 72-byte limit."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


@lru_cache()
def _pwd_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    if is_password_too_long(plain_password):
        logger.warning("Auth failed: password exceeds bcrypt 72-byte limit")
        return False
    try:
        return _pwd_context(get_settings().bcrypt_rounds).verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Auth failed: invalid password format ({e})")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password"""
    if is_password_too_long(password):
        raise ValueError("Password exceeds bcrypt 72-byte limit")
    return _pwd_context(get_settings().bcrypt_rounds).hash(password)


# =============================================================================
# JWT TOKEN HANDLING
# =============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token (adds ``exp``, ``type`` and a fresh ``jti``)"""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    to_encode.update({"exp": expire, "type": "access", "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.warning(f"Invalid JWT token: {e}")
        return None


def extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    """Pick the credential from a Bearer header, falling back to the auth cookie"""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return cookie_token or None


# =============================================================================
# IDENTITY
# =============================================================================

@dataclass(frozen=True)
class UserIdentity:
    """Authenticated caller, fixed for the duration of one request"""
    id: str
    role: UserRole
    email: str = ""

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_lawyer(self) -> bool:
        return self.role == UserRole.LAWYER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Authenticator:
    """Resolves access tokens to identities"""

    def __init__(self, users: UserStore, revocations=None):
        self.users = users
        self.revocations = revocations

    def resolve(self, token: Optional[str]) -> UserIdentity:
        """
        Resolve a raw token.

        Raises:
            AuthenticationError: missing, invalid, expired or revoked token,
                or the user no longer exists / is inactive
        """
        if not token:
            raise AuthenticationError("Unauthorized")

        payload = decode_token(token)
        if not payload or payload.get("type") != "access" or not payload.get("sub"):
            raise AuthenticationError("Invalid or expired token")

        jti = payload.get("jti")
        if jti and self.revocations is not None and self.revocations.is_revoked(jti):
            logger.warning(f"Rejected revoked token for user {payload.get('sub')}")
            raise AuthenticationError("Token has been revoked")

        user = self.users.get(payload["sub"])
        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return UserIdentity(id=user.id, role=UserRole(user.role), email=user.email)
