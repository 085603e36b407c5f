"""
Account Service
===============

Registration, credential checks and lawyer directory.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from .auth import (
    UserIdentity, create_access_token, decode_token, get_password_hash, is_password_too_long, verify_password,
)
from .db.models import UserRole
from .errors import DuplicateRecordError
from .results import Failure, FailureKind, Result, Success, forbidden_role, invalid
from .serializers import user_to_dict
from .stores.base import UserStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
SELF_REGISTER_ROLES = (UserRole.CLIENT, UserRole.LAWYER)


class AccountService:
    """Account operations for one request scope"""

    def __init__(self, users: UserStore, revocations=None):
        self.users = users
        self.revocations = revocations

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole = UserRole.CLIENT,
    ) -> Result:
        if role not in SELF_REGISTER_ROLES:
            return invalid("Role must be CLIENT or LAWYER")
        if len(password) < MIN_PASSWORD_LENGTH:
            return invalid(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        if is_password_too_long(password):
            return invalid("Password is too long (max 72 bytes)")
        if not first_name.strip() or not last_name.strip():
            return invalid("First and last name are required")

        if self.users.get_by_email(email) is not None:
            return Failure(FailureKind.ALREADY_EXISTS, "User with this email already exists")

        try:
            with self.users.transaction():
                user = self.users.create(
                    email=email,
                    password_hash=get_password_hash(password),
                    first_name=first_name.strip(),
                    last_name=last_name.strip(),
                    role=role,
                )
        except DuplicateRecordError:
            return Failure(FailureKind.ALREADY_EXISTS, "User with this email already exists")

        logger.info(f"Registered {role.value} account {user.id}")
        return Success(user_to_dict(user), "User registered successfully", created=True)

    def authenticate(self, email: str, password: str) -> Optional[Tuple[str, dict]]:
        """Return (access token, user dict) on valid credentials, else None."""
        user = self.users.get_by_email(email)
        if not user or not user.is_active:
            logger.warning("Login failed: unknown or inactive account")
            return None
        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: bad password for user {user.id}")
            return None

        role = UserRole(user.role)
        token = create_access_token({"sub": user.id, "role": role.value})
        logger.info(f"User {user.id} logged in")
        return token, user_to_dict(user)

    def logout(self, token: Optional[str]) -> None:
        """Revoke a token if it is still valid"""
        if not token or self.revocations is None:
            return
        payload = decode_token(token)
        if not payload or not payload.get("jti"):
            return
        expires_at = datetime.utcfromtimestamp(payload["exp"])
        self.revocations.revoke(payload["jti"], expires_at, user_id=payload.get("sub"))
        logger.info(f"User {payload.get('sub')} logged out")

    def me(self, identity: UserIdentity) -> Result:
        user = self.users.get(identity.id)
        return Success(user_to_dict(user))

    def list_available_lawyers(self, identity: UserIdentity) -> Result:
        if identity.role == UserRole.LAWYER:
            return forbidden_role("Only clients can list available lawyers")
        lawyers = self.users.list_by_role(UserRole.LAWYER)
        return Success([
            {
                "id": l.id,
                "firstName": l.first_name,
                "lastName": l.last_name,
                "email": l.email,
            }
            for l in lawyers
        ])
