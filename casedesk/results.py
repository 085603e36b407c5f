"""
Operation Results
=================

Tagged results returned by the authorization engine, the access-request
lifecycle and the case/document facades. Route handlers turn them into
HTTP responses in ``casedesk.responses``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union


class FailureKind(str, Enum):
    """Failure taxonomy, each kind maps to exactly one HTTP status."""
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    NOT_FOUND = "NOT_FOUND"              # absent, or caller has no access at all
    OWNERSHIP = "OWNERSHIP_ERROR"
    ROLE_FORBIDDEN = "ROLE_FORBIDDEN"
    CONFLICT = "LIFECYCLE_CONFLICT"
    VALIDATION = "VALIDATION_ERROR"
    ALREADY_EXISTS = "ALREADY_EXISTS"     # account registration only


HTTP_STATUS = {
    FailureKind.AUTHENTICATION: 401,
    FailureKind.NOT_FOUND: 404,
    FailureKind.OWNERSHIP: 403,
    FailureKind.ROLE_FORBIDDEN: 403,
    FailureKind.CONFLICT: 400,
    FailureKind.VALIDATION: 400,
    FailureKind.ALREADY_EXISTS: 409,
}


@dataclass(frozen=True)
class Success:
    data: Any = None
    message: Optional[str] = None
    created: bool = False

    @property
    def ok(self) -> bool:
        return True

    @property
    def status_code(self) -> int:
        return 201 if self.created else 200


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]


Result = Union[Success, Failure]


CASE_NOT_FOUND = "Case not found"


def not_found(message: str = CASE_NOT_FOUND) -> Failure:
    return Failure(FailureKind.NOT_FOUND, message)


def forbidden_role(message: str) -> Failure:
    return Failure(FailureKind.ROLE_FORBIDDEN, message)


def not_owner(message: str) -> Failure:
    return Failure(FailureKind.OWNERSHIP, message)


def conflict(message: str) -> Failure:
    return Failure(FailureKind.CONFLICT, message)


def invalid(message: str) -> Failure:
    return Failure(FailureKind.VALIDATION, message)
