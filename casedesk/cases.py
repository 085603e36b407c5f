"""
Case Facade
===========

Case CRUD gated by the authorization engine, plus the lawyer browse
capability. Browsing is separate from
``AuthorizationEngine.get_accessible_case_ids``: it lists case summaries
for discovery and never opens the read path of a case.
"""

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .auth import UserIdentity
from .authorization import AuthorizationEngine
from .db.models import CaseCategory, CaseStatus, EventType, RequestStatus, UserRole
from .results import Result, Success, forbidden_role, invalid
from .serializers import case_summary_to_dict, case_to_dict, event_to_dict
from .stores.base import AccessStore, CaseFilters, CaseScope, CaseStore, DocumentStore, EventLog

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 4


class _Unset:
    """Marker for fields absent from a partial update"""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class CaseChanges:
    """
    Partial case update.

    Fields left as ``UNSET`` are not touched. ``description=None`` (or an
    empty string) clears the description; the other fields cannot be cleared.
    """
    title: Any = UNSET
    description: Any = UNSET
    category: Any = UNSET
    status: Any = UNSET
    priority: Any = UNSET

    def provided(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.provided()


def _paginate(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


class CaseFacade:
    """Case operations for one request scope"""

    def __init__(
        self,
        engine: AuthorizationEngine,
        cases: CaseStore,
        access: AccessStore,
        events: Optional[EventLog] = None,
        documents: Optional[DocumentStore] = None,
        storage=None,
        browse_enabled: bool = True,
        max_page_size: int = 100,
    ):
        self.engine = engine
        self.cases = cases
        self.access = access
        self.events = events
        self.documents = documents
        self.storage = storage
        self.browse_enabled = browse_enabled
        self.max_page_size = max_page_size

    def _page_bounds(self, page: int, limit: int):
        page = max(int(page), 1)
        limit = min(max(int(limit), 1), self.max_page_size)
        return page, limit

    def _emit(self, case_id: str, event_type: EventType, actor: UserIdentity, **details) -> None:
        if self.events is not None:
            self.events.record(case_id, event_type, actor.id, details)

    # =========================================================================
    # READS
    # =========================================================================

    def list_cases(self, user: UserIdentity, filters: CaseFilters, page: int = 1, limit: int = 10) -> Result:
        """Paginated cases the user can access"""
        page, limit = self._page_bounds(page, limit)
        scope = self.engine.case_scope(user)
        items, total = self.cases.query(scope, filters, (page - 1) * limit, limit)

        pagination = _paginate(page, limit, total)
        message = None
        if pagination["totalPages"] and page > pagination["totalPages"]:
            message = f"Page {page} exceeds available pages ({pagination['totalPages']})"

        return Success({"cases": [case_to_dict(c) for c in items], "pagination": pagination}, message)

    def my_cases(self, user: UserIdentity) -> Result:
        cases, _ = self.cases.query(self.engine.case_scope(user), CaseFilters())
        return Success([case_to_dict(c) for c in cases])

    def get_case(self, user: UserIdentity, case_id: str) -> Result:
        failure = self.engine.authorize_read(user, case_id)
        if failure:
            return failure
        return Success(case_to_dict(self.cases.get(case_id)))

    def browse_cases(self, user: UserIdentity, filters: CaseFilters, page: int = 1, limit: int = 10) -> Result:
        """
        Discovery listing for lawyers: summaries of every case with the
        caller's grant / pending-request state attached.
        """
        if not self.browse_enabled:
            return forbidden_role("Case browsing is disabled")
        if user.role not in (UserRole.LAWYER, UserRole.ADMIN):
            return forbidden_role("Only lawyers can browse cases")

        page, limit = self._page_bounds(page, limit)
        items, total = self.cases.query(CaseScope(everything=True), filters, (page - 1) * limit, limit)

        granted = set()
        pending = {}
        if user.role == UserRole.LAWYER:
            granted = {g.case_id for g in self.access.list_grants_for_lawyer(user.id)}
            pending = {
                r.case_id: r
                for r in self.access.list_requests_for_lawyer(user.id, RequestStatus.PENDING)
            }

        cards = []
        for case in items:
            card = case_summary_to_dict(case)
            card["hasAccess"] = user.role == UserRole.ADMIN or case.id in granted
            req = pending.get(case.id)
            card["hasPendingRequest"] = req is not None
            card["requestedAt"] = req.requested_at.isoformat() if req is not None else None
            cards.append(card)

        return Success({"cases": cards, "pagination": _paginate(page, limit, total)})

    def case_activity(self, user: UserIdentity, case_id: str, limit: int = 100) -> Result:
        failure = self.engine.authorize_owner_or_admin_read(
            user, case_id, "Only case owners can view case activity"
        )
        if failure:
            return failure
        if self.events is None:
            return Success([])
        return Success([event_to_dict(e) for e in self.events.list_for_case(case_id, limit)])

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_case(
        self,
        user: UserIdentity,
        title: str,
        category: CaseCategory,
        description: Optional[str] = None,
        priority: int = 2,
    ) -> Result:
        if user.role != UserRole.CLIENT:
            return forbidden_role("Only clients can create cases")

        title = (title or "").strip()
        if not title:
            return invalid("Title is required")
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            return invalid(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")

        with self.cases.transaction():
            case = self.cases.create(
                owner_id=user.id,
                title=title,
                category=CaseCategory(category),
                description=description or None,
                status=CaseStatus.OPEN,
                priority=priority,
            )
            self._emit(case.id, EventType.CASE_CREATED, user)

        logger.info(f"Client {user.id} created case {case.id}")
        return Success(case_to_dict(case), "Case created successfully", created=True)

    def update_case(self, user: UserIdentity, case_id: str, changes: CaseChanges) -> Result:
        failure = self.engine.authorize_owner_action(user, case_id, "Only case owners can update cases")
        if failure:
            return failure

        values = changes.provided()
        if not values:
            return invalid("At least one field must be provided for update")

        if "title" in values:
            title = (values["title"] or "").strip()
            if not title:
                return invalid("Title cannot be empty")
            values["title"] = title

        if "description" in values:
            values["description"] = values["description"] or None

        for name, enum_cls in (("category", CaseCategory), ("status", CaseStatus)):
            if name in values:
                if values[name] is None:
                    return invalid(f"{name.capitalize()} cannot be null")
                try:
                    values[name] = enum_cls(values[name])
                except ValueError:
                    return invalid(f"Invalid {name}: {values[name]}")

        if "priority" in values:
            priority = values["priority"]
            if priority is None or not MIN_PRIORITY <= priority <= MAX_PRIORITY:
                return invalid(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")

        with self.cases.transaction():
            case = self.cases.update(case_id, values)
            self._emit(case_id, EventType.CASE_UPDATED, user, fields=sorted(values))

        logger.info(f"Owner {user.id} updated case {case_id} ({', '.join(sorted(values))})")
        return Success(case_to_dict(case), "Case updated successfully")

    def delete_case(self, user: UserIdentity, case_id: str) -> Result:
        failure = self.engine.authorize_owner_action(user, case_id, "Only case owners can delete cases")
        if failure:
            return failure

        keys = self.documents.list_storage_keys(case_id) if self.documents is not None else []
        with self.cases.transaction():
            self.cases.delete(case_id)

        if self.storage is not None:
            for key in keys:
                self.storage.delete(key)

        logger.info(f"Owner {user.id} deleted case {case_id} ({len(keys)} document blobs purged)")
        return Success({"id": case_id}, "Case deleted successfully")
