"""
Shared error types.

Expected negative outcomes (denied access, lifecycle guards) are returned as
``Failure`` values from ``casedesk.results``; the exceptions here are for
credential problems and storage faults only.
"""


class AuthenticationError(Exception):
    """Raised when a request carries no credential or an invalid one."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


class StoreError(Exception):
    """Raised when the persistence layer fails."""


class DuplicateRecordError(StoreError):
    """Raised when an insert violates a uniqueness constraint."""


class IntegrityCheckError(StoreError):
    """Raised when a stored document no longer matches its checksum."""
