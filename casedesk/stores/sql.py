"""
SQLAlchemy Stores
=================

Store ports bound to one request-scoped SQLAlchemy session. All stores built
on the same session share its transaction, so a ``transaction()`` block on
any of them commits every write issued inside it.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import (
    Case, CaseAccessGrant, CaseAccessRequest, CaseEvent, CaseMessage, Document, User,
    CaseCategory, CaseStatus, DocumentStatus, DocumentType, EventType, RequestStatus, UserRole,
)
from ..errors import DuplicateRecordError, StoreError
from .base import (
    AccessStore, CaseFilters, CaseScope, CaseStore, DocumentStore, EventLog, MessageStore, UserStore,
)

logger = logging.getLogger(__name__)


class _SqlStore:
    """Shared session plumbing"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Transaction failed: {e}")
            raise StoreError("Database operation failed") from e
        except Exception:
            self.db.rollback()
            raise

    def _insert(self, obj: Any, what: str) -> Any:
        self.db.add(obj)
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateRecordError(f"{what} already exists") from e
        return obj


# =============================================================================
# USERS
# =============================================================================

class SqlUserStore(_SqlStore, UserStore):

    def get(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def create(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
        )
        return self._insert(user, "User")

    def list_by_role(self, role: UserRole, active_only: bool = True) -> List[User]:
        query = self.db.query(User).filter(User.role == role)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.first_name, User.last_name).all()


# =============================================================================
# CASES
# =============================================================================

class SqlCaseStore(_SqlStore, CaseStore):

    def get(self, case_id: str) -> Optional[Case]:
        return self.db.query(Case).filter(Case.id == case_id).first()

    def list_ids(self) -> Set[str]:
        return {row[0] for row in self.db.query(Case.id).all()}

    def list_by_owner(self, owner_id: str) -> List[Case]:
        return (
            self.db.query(Case)
            .filter(Case.owner_id == owner_id)
            .order_by(Case.created_at.desc())
            .all()
        )

    def _scoped(self, scope: CaseScope):
        query = self.db.query(Case)
        if scope.everything:
            return query

        conditions = []
        if scope.owner_id:
            conditions.append(Case.owner_id == scope.owner_id)
        if scope.lawyer_id:
            granted = select(CaseAccessGrant.case_id).where(CaseAccessGrant.lawyer_id == scope.lawyer_id)
            conditions.append(Case.id.in_(granted))
        return query.filter(or_(*conditions))

    def query(
        self,
        scope: CaseScope,
        filters: CaseFilters,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> Tuple[List[Case], int]:
        if scope.is_empty:
            return [], 0

        query = self._scoped(scope)
        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(or_(Case.title.ilike(pattern), Case.description.ilike(pattern)))
        if filters.status:
            query = query.filter(Case.status == filters.status)
        if filters.category:
            query = query.filter(Case.category == filters.category)

        total = query.count()
        page = query.order_by(Case.created_at.desc(), Case.id).offset(offset)
        if limit is not None:
            page = page.limit(limit)
        return page.all(), total

    def create(
        self,
        owner_id: str,
        title: str,
        category: CaseCategory,
        description: Optional[str] = None,
        status: CaseStatus = CaseStatus.OPEN,
        priority: int = 2,
    ) -> Case:
        case = Case(
            owner_id=owner_id,
            title=title,
            description=description,
            category=category,
            status=status,
            priority=priority,
        )
        return self._insert(case, "Case")

    def update(self, case_id: str, changes: Dict[str, Any]) -> Optional[Case]:
        case = self.get(case_id)
        if not case:
            return None
        for field_name, value in changes.items():
            setattr(case, field_name, value)
        case.updated_at = datetime.utcnow()
        self.db.flush()
        return case

    def delete(self, case_id: str) -> bool:
        case = self.get(case_id)
        if not case:
            return False
        self.db.delete(case)
        self.db.flush()
        return True


# =============================================================================
# ACCESS
# =============================================================================

class SqlAccessStore(_SqlStore, AccessStore):

    def _grant_query(self, case_id: str, lawyer_id: str):
        return self.db.query(CaseAccessGrant).filter(
            CaseAccessGrant.case_id == case_id,
            CaseAccessGrant.lawyer_id == lawyer_id,
        )

    def grant_exists(self, case_id: str, lawyer_id: str) -> bool:
        return self._grant_query(case_id, lawyer_id).first() is not None

    def get_grant(self, case_id: str, lawyer_id: str) -> Optional[CaseAccessGrant]:
        return self._grant_query(case_id, lawyer_id).first()

    def create_grant(self, case_id: str, lawyer_id: str, granted_by: Optional[str]) -> CaseAccessGrant:
        grant = CaseAccessGrant(
            case_id=case_id,
            lawyer_id=lawyer_id,
            granted_by=granted_by,
            granted_at=datetime.utcnow(),
        )
        return self._insert(grant, "Access grant")

    def delete_grant(self, case_id: str, lawyer_id: str) -> bool:
        deleted = self._grant_query(case_id, lawyer_id).delete(synchronize_session=False)
        return deleted > 0

    def list_grants_for_lawyer(self, lawyer_id: str) -> List[CaseAccessGrant]:
        return (
            self.db.query(CaseAccessGrant)
            .filter(CaseAccessGrant.lawyer_id == lawyer_id)
            .order_by(CaseAccessGrant.granted_at.desc())
            .all()
        )

    def list_grants_for_case(self, case_id: str) -> List[CaseAccessGrant]:
        return (
            self.db.query(CaseAccessGrant)
            .filter(CaseAccessGrant.case_id == case_id)
            .order_by(CaseAccessGrant.granted_at.desc())
            .all()
        )

    def get_request(self, request_id: str) -> Optional[CaseAccessRequest]:
        return self.db.query(CaseAccessRequest).filter(CaseAccessRequest.id == request_id).first()

    def find_pending_request(self, case_id: str, lawyer_id: str) -> Optional[CaseAccessRequest]:
        return (
            self.db.query(CaseAccessRequest)
            .filter(
                CaseAccessRequest.case_id == case_id,
                CaseAccessRequest.lawyer_id == lawyer_id,
                CaseAccessRequest.status == RequestStatus.PENDING,
            )
            .first()
        )

    def create_request(self, case_id: str, lawyer_id: str) -> CaseAccessRequest:
        request = CaseAccessRequest(
            case_id=case_id,
            lawyer_id=lawyer_id,
            status=RequestStatus.PENDING,
            requested_at=datetime.utcnow(),
        )
        return self._insert(request, "Pending access request")

    def update_request_status(
        self,
        request_id: str,
        status: RequestStatus,
        reviewed_by: str,
        reviewed_at: datetime,
    ) -> Optional[CaseAccessRequest]:
        request = self.get_request(request_id)
        if not request:
            return None
        request.status = status
        request.reviewed_by = reviewed_by
        request.reviewed_at = reviewed_at
        self.db.flush()
        return request

    def delete_request(self, request_id: str) -> bool:
        deleted = (
            self.db.query(CaseAccessRequest)
            .filter(CaseAccessRequest.id == request_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0

    def list_requests_for_case(
        self, case_id: str, status: Optional[RequestStatus] = None
    ) -> List[CaseAccessRequest]:
        query = self.db.query(CaseAccessRequest).filter(CaseAccessRequest.case_id == case_id)
        if status:
            query = query.filter(CaseAccessRequest.status == status)
        return query.order_by(CaseAccessRequest.requested_at.desc()).all()

    def list_requests_for_lawyer(
        self, lawyer_id: str, status: Optional[RequestStatus] = None
    ) -> List[CaseAccessRequest]:
        query = self.db.query(CaseAccessRequest).filter(CaseAccessRequest.lawyer_id == lawyer_id)
        if status:
            query = query.filter(CaseAccessRequest.status == status)
        return query.order_by(CaseAccessRequest.requested_at.desc()).all()


# =============================================================================
# DOCUMENTS, MESSAGES & EVENTS
# =============================================================================

class SqlDocumentStore(_SqlStore, DocumentStore):

    def get(self, document_id: str) -> Optional[Document]:
        return self.db.query(Document).filter(Document.id == document_id).first()

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
    ) -> Document:
        doc = Document(
            case_id=case_id,
            original_name=original_name,
            stored_name=stored_name,
            storage_key=storage_key,
            size=size,
            mime_type=mime_type,
            document_type=document_type,
            checksum=checksum,
            uploaded_by_id=uploaded_by_id,
            status=status,
        )
        return self._insert(doc, "Document")

    def list_for_case(
        self,
        case_id: str,
        status: Optional[DocumentStatus] = None,
        document_type: Optional[DocumentType] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Document], int]:
        query = self.db.query(Document).filter(Document.case_id == case_id)
        if status:
            query = query.filter(Document.status == status)
        else:
            query = query.filter(Document.status != DocumentStatus.DELETED)
        if document_type:
            query = query.filter(Document.document_type == document_type)

        total = query.count()
        items = query.order_by(Document.created_at.desc()).offset(offset).limit(limit).all()
        return items, total

    def update_status(self, document_id: str, status: DocumentStatus) -> Optional[Document]:
        doc = self.get(document_id)
        if not doc:
            return None
        doc.status = status
        doc.updated_at = datetime.utcnow()
        self.db.flush()
        return doc

    def list_storage_keys(self, case_id: str) -> List[str]:
        return [row[0] for row in self.db.query(Document.storage_key).filter(Document.case_id == case_id).all()]


class SqlMessageStore(_SqlStore, MessageStore):

    def get(self, message_id: str) -> Optional[CaseMessage]:
        return self.db.query(CaseMessage).filter(CaseMessage.id == message_id).first()

    def create(self, case_id: str, sender_id: str, content: str) -> CaseMessage:
        message = CaseMessage(case_id=case_id, sender_id=sender_id, content=content, is_read=False)
        return self._insert(message, "Message")

    def list_for_case(self, case_id: str, offset: int = 0, limit: int = 50) -> Tuple[List[CaseMessage], int]:
        query = self.db.query(CaseMessage).filter(CaseMessage.case_id == case_id)
        total = query.count()
        items = query.order_by(CaseMessage.created_at.asc()).offset(offset).limit(limit).all()
        return items, total

    def update_content(self, message_id: str, content: str) -> Optional[CaseMessage]:
        message = self.get(message_id)
        if not message:
            return None
        message.content = content
        message.updated_at = datetime.utcnow()
        self.db.flush()
        return message

    def delete(self, message_id: str) -> bool:
        deleted = (
            self.db.query(CaseMessage)
            .filter(CaseMessage.id == message_id)
            .delete(synchronize_session=False)
        )
        return deleted > 0

    def _unread_query(self, case_id: str, reader_id: str):
        return self.db.query(CaseMessage).filter(
            CaseMessage.case_id == case_id,
            CaseMessage.sender_id != reader_id,
            CaseMessage.is_read.is_(False),
        )

    def mark_read(self, case_id: str, reader_id: str) -> int:
        return self._unread_query(case_id, reader_id).update(
            {CaseMessage.is_read: True}, synchronize_session=False
        )

    def count_unread(self, case_id: str, reader_id: str) -> int:
        return self._unread_query(case_id, reader_id).count()


class SqlEventLog(EventLog):

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        case_id: str,
        event_type: EventType,
        actor_id: Optional[str],
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.db.add(CaseEvent(
            case_id=case_id,
            event_type=event_type,
            actor_id=actor_id,
            details=details or {},
        ))

    def list_for_case(self, case_id: str, limit: int = 100) -> List[CaseEvent]:
        return (
            self.db.query(CaseEvent)
            .filter(CaseEvent.case_id == case_id)
            .order_by(CaseEvent.created_at.desc())
            .limit(limit)
            .all()
        )
