"""
Store Ports
===========

Abstract persistence interfaces consumed by the authorization engine, the
access-request lifecycle and the facades. ``casedesk.stores.sql`` implements
them with SQLAlchemy; tests substitute in-memory fakes.

Records returned by the stores are plain attribute bags (ORM rows for the SQL
implementation) exposing the column names of ``casedesk.db.models``.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from ..db.models import (
    CaseCategory, CaseStatus, DocumentStatus, DocumentType, EventType, RequestStatus, UserRole,
)


@dataclass
class CaseFilters:
    """Optional filters for case listings"""
    search: Optional[str] = None
    status: Optional[CaseStatus] = None
    category: Optional[CaseCategory] = None


@dataclass(frozen=True)
class CaseScope:
    """
    Which cases a listing may draw from, expressed as a query restriction
    rather than an id set.

    ``everything`` lifts the restriction; otherwise a case is in scope when
    it is owned by ``owner_id`` or granted to ``lawyer_id``. A scope with
    none of them set matches nothing.
    """
    everything: bool = False
    owner_id: Optional[str] = None
    lawyer_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.everything or self.owner_id or self.lawyer_id)


class TransactionalStore(ABC):
    """Store whose writes become durable only inside ``transaction()``."""

    @contextmanager
    def transaction(self) -> Iterator[None]:
        yield


class UserStore(TransactionalStore):

    @abstractmethod
    def get(self, user_id: str) -> Optional[Any]:
        """User by id, or None"""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Any]:
        """User by (case-insensitive) email, or None"""

    @abstractmethod
    def create(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
    ) -> Any:
        """Insert a user. Raises DuplicateRecordError on a taken email."""

    @abstractmethod
    def list_by_role(self, role: UserRole, active_only: bool = True) -> List[Any]:
        """Users holding a role, ordered by name"""


class CaseStore(TransactionalStore):

    @abstractmethod
    def get(self, case_id: str) -> Optional[Any]:
        """Case by id, or None"""

    def exists(self, case_id: str) -> bool:
        return self.get(case_id) is not None

    @abstractmethod
    def list_ids(self) -> Set[str]:
        """Every case id in the store"""

    @abstractmethod
    def list_by_owner(self, owner_id: str) -> List[Any]:
        """Cases owned by a user, newest first"""

    @abstractmethod
    def query(
        self,
        scope: CaseScope,
        filters: CaseFilters,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[Any], int]:
        """
        Page through the cases inside ``scope``, newest first.

        The scope is part of the query itself, so filtering and pagination
        never see cases outside it. ``limit=None`` returns every match.

        Returns:
            (cases on the page, total matching cases)
        """

    @abstractmethod
    def create(
        self,
        owner_id: str,
        title: str,
        category: CaseCategory,
        description: Optional[str] = None,
        status: CaseStatus = CaseStatus.OPEN,
        priority: int = 2,
    ) -> Any:
        """Insert a case"""

    @abstractmethod
    def update(self, case_id: str, changes: Dict[str, Any]) -> Optional[Any]:
        """Apply the given column values; returns the updated case or None"""

    @abstractmethod
    def delete(self, case_id: str) -> bool:
        """Delete a case and everything attached to it"""


class AccessStore(TransactionalStore):

    # Grants

    @abstractmethod
    def grant_exists(self, case_id: str, lawyer_id: str) -> bool:
        ...

    @abstractmethod
    def get_grant(self, case_id: str, lawyer_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def create_grant(self, case_id: str, lawyer_id: str, granted_by: Optional[str]) -> Any:
        """Insert a grant. Raises DuplicateRecordError if one already exists."""

    @abstractmethod
    def delete_grant(self, case_id: str, lawyer_id: str) -> bool:
        ...

    @abstractmethod
    def list_grants_for_lawyer(self, lawyer_id: str) -> List[Any]:
        ...

    @abstractmethod
    def list_grants_for_case(self, case_id: str) -> List[Any]:
        ...

    # Requests

    @abstractmethod
    def get_request(self, request_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def find_pending_request(self, case_id: str, lawyer_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def create_request(self, case_id: str, lawyer_id: str) -> Any:
        """Insert a PENDING request. Raises DuplicateRecordError if one is already pending."""

    @abstractmethod
    def update_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        reviewed_by: str,
        reviewed_at: datetime,
    ) -> Optional[Any]:
        ...

    @abstractmethod
    def delete_request(self, request_id: str) -> bool:
        ...

    @abstractmethod
    def list_requests_for_case(self, case_id: str, status: Optional[RequestStatus] = None) -> List[Any]:
        ...

    @abstractmethod
    def list_requests_for_lawyer(self, lawyer_id: str, status: Optional[RequestStatus] = None) -> List[Any]:
        ...


class DocumentStore(TransactionalStore):

    @abstractmethod
    def get(self, document_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def create(
        self,
        case_id: str,
        original_name: str,
        stored_name: str,
        storage_key: str,
        size: int,
        mime_type: str,
        document_type: DocumentType,
        checksum: str,
        uploaded_by_id: str,
        status: DocumentStatus = DocumentStatus.PROCESSED,
    ) -> Any:
        ...

    @abstractmethod
    def list_for_case(
        self,
        case_id: str,
        status: Optional[DocumentStatus] = None,
        document_type: Optional[DocumentType] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Any], int]:
        """Documents of a case; DELETED ones only when asked for by status"""

    @abstractmethod
    def update_status(self, document_id: str, status: DocumentStatus) -> Optional[Any]:
        ...

    @abstractmethod
    def list_storage_keys(self, case_id: str) -> List[str]:
        """Blob keys of every document of a case, DELETED included"""


class MessageStore(TransactionalStore):

    @abstractmethod
    def get(self, message_id: str) -> Optional[Any]:
        ...

    @abstractmethod
    def create(self, case_id: str, sender_id: str, content: str) -> Any:
        ...

    @abstractmethod
    def list_for_case(self, case_id: str, offset: int = 0, limit: int = 50) -> Tuple[List[Any], int]:
        """Messages of a case, oldest first"""

    @abstractmethod
    def update_content(self, message_id: str, content: str) -> Optional[Any]:
        ...

    @abstractmethod
    def delete(self, message_id: str) -> bool:
        ...

    @abstractmethod
    def mark_read(self, case_id: str, reader_id: str) -> int:
        """Mark messages from other senders as read; returns how many changed"""

    @abstractmethod
    def count_unread(self, case_id: str, reader_id: str) -> int:
        ...


class EventLog(ABC):

    @abstractmethod
    def record(
        self,
        case_id: str,
        event_type: EventType,
        actor_id: Optional[str],
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append an activity event; committed with the surrounding transaction"""

    @abstractmethod
    def list_for_case(self, case_id: str, limit: int = 100) -> List[Any]:
        """Events of a case, newest first"""
