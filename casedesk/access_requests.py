"""
Access-Request Lifecycle
========================

State machine for lawyer access to client-owned cases.

    request  (LAWYER)          -> PENDING
    approve  (owning CLIENT)   PENDING -> APPROVED + CaseAccessGrant(granted_by=owner)
    reject   (owning CLIENT)   PENDING -> REJECTED
    withdraw (requesting LAWYER) PENDING -> row deleted
    grant_direct (owning CLIENT) -> CaseAccessGrant, no request needed
    revoke   (owning CLIENT)   -> CaseAccessGrant deleted

Guards are checked here first; the unique constraints on the grant and
pending-request tables are the authoritative defense against concurrent
duplicates, surfaced as ``DuplicateRecordError`` and returned as CONFLICT.
"""

import logging
from datetime import datetime
from typing import Optional

from .auth import UserIdentity
from .authorization import AuthorizationEngine
from .db.models import EventType, RequestStatus, UserRole
from .errors import DuplicateRecordError
from .results import Result, Success, conflict, forbidden_role, invalid, not_found
from .serializers import grant_to_dict, request_to_dict
from .stores.base import AccessStore, CaseStore, EventLog, UserStore

logger = logging.getLogger(__name__)

REQUEST_NOT_FOUND = "Access request not found"
ALREADY_PENDING = "Access request already pending"
ALREADY_GRANTED = "Lawyer already has access to this case"


class AccessRequestLifecycle:
    """Lawyer access requests and grants for one request scope"""

    def __init__(
        self,
        engine: AuthorizationEngine,
        cases: CaseStore,
        access: AccessStore,
        users: UserStore,
        events: Optional[EventLog] = None,
    ):
        self.engine = engine
        self.cases = cases
        self.access = access
        self.users = users
        self.events = events

    def _emit(self, case_id: str, event_type: EventType, actor: UserIdentity, **details) -> None:
        if self.events is not None:
            self.events.record(case_id, event_type, actor.id, details)

    # =========================================================================
    # LAWYER TRANSITIONS
    # =========================================================================

    def request(self, actor: UserIdentity, case_id: str) -> Result:
        """Open a PENDING request for ``actor`` on ``case_id``."""
        if actor.role != UserRole.LAWYER:
            return forbidden_role("Only lawyers can request case access")

        if not self.cases.exists(case_id):
            return not_found()

        if self.access.grant_exists(case_id, actor.id):
            return conflict(ALREADY_GRANTED)

        if self.access.find_pending_request(case_id, actor.id) is not None:
            return conflict(ALREADY_PENDING)

        try:
            with self.access.transaction():
                req = self.access.create_request(case_id, actor.id)
                self._emit(case_id, EventType.ACCESS_REQUESTED, actor, request_id=req.id)
        except DuplicateRecordError:
            logger.info(f"Concurrent access request for case {case_id} by lawyer {actor.id}")
            return conflict(ALREADY_PENDING)

        logger.info(f"Lawyer {actor.id} requested access to case {case_id}")
        return Success(request_to_dict(req), "Access request submitted successfully", created=True)

    def withdraw(self, actor: UserIdentity, case_id: str) -> Result:
        """Delete the actor's own PENDING request for ``case_id``."""
        if actor.role != UserRole.LAWYER:
            return forbidden_role("Only lawyers can withdraw case access requests")

        pending = self.access.find_pending_request(case_id, actor.id)
        if pending is None:
            return conflict("No pending access request found for this case")

        with self.access.transaction():
            self.access.delete_request(pending.id)
            self._emit(case_id, EventType.ACCESS_WITHDRAWN, actor, request_id=pending.id)

        logger.info(f"Lawyer {actor.id} withdrew access request {pending.id}")
        return Success({"requestId": pending.id, "caseId": case_id},
                       "Access request withdrawn successfully")

    # =========================================================================
    # OWNER TRANSITIONS
    # =========================================================================

    def _owned_pending_request(self, actor: UserIdentity, request_id: str, verb: str):
        """Load a request the actor may resolve; returns (request, failure)."""
        if actor.role != UserRole.CLIENT:
            return None, forbidden_role(f"Only case owners can {verb} access requests")

        req = self.access.get_request(request_id)
        if req is None or not self.engine.is_case_owner(actor, req.case_id):
            return None, not_found(REQUEST_NOT_FOUND)

        if req.status != RequestStatus.PENDING:
            return None, conflict(f"Access request has already been {RequestStatus(req.status).value.lower()}")

        return req, None

    def approve(self, actor: UserIdentity, request_id: str) -> Result:
        """PENDING -> APPROVED, creating the grant in the same transaction."""
        req, failure = self._owned_pending_request(actor, request_id, "approve")
        if failure:
            return failure

        if self.access.grant_exists(req.case_id, req.lawyer_id):
            return self._settle_granted_request(actor, req)

        try:
            with self.access.transaction():
                req = self.access.update_request_status(
                    req.id, RequestStatus.APPROVED, reviewed_by=actor.id, reviewed_at=datetime.utcnow()
                )
                grant = self.access.create_grant(req.case_id, req.lawyer_id, granted_by=actor.id)
                self._emit(req.case_id, EventType.ACCESS_APPROVED, actor,
                           request_id=req.id, lawyer_id=req.lawyer_id)
        except DuplicateRecordError:
            logger.info(f"Concurrent grant while approving access request {request_id}")
            return self._settle_granted_request(actor, self.access.get_request(request_id))

        logger.info(f"Owner {actor.id} approved access request {req.id} for lawyer {req.lawyer_id}")
        return Success(
            {"request": request_to_dict(req), "grant": grant_to_dict(grant)},
            "Access request approved successfully",
        )

    def _settle_granted_request(self, actor: UserIdentity, req) -> Result:
        """
        The lawyer already holds a grant: close the request as APPROVED so no
        PENDING row outlives the grant, and report the conflict.
        """
        if req is not None and req.status == RequestStatus.PENDING:
            with self.access.transaction():
                self.access.update_request_status(
                    req.id, RequestStatus.APPROVED, reviewed_by=actor.id, reviewed_at=datetime.utcnow()
                )
        return conflict(ALREADY_GRANTED)

    def reject(self, actor: UserIdentity, request_id: str) -> Result:
        """PENDING -> REJECTED; no grant."""
        req, failure = self._owned_pending_request(actor, request_id, "reject")
        if failure:
            return failure

        with self.access.transaction():
            req = self.access.update_request_status(
                req.id, RequestStatus.REJECTED, reviewed_by=actor.id, reviewed_at=datetime.utcnow()
            )
            self._emit(req.case_id, EventType.ACCESS_REJECTED, actor,
                       request_id=req.id, lawyer_id=req.lawyer_id)

        logger.info(f"Owner {actor.id} rejected access request {req.id}")
        return Success({"request": request_to_dict(req)}, "Access request rejected successfully")

    def handle_access_request(self, actor: UserIdentity, case_id: str, lawyer_id: str, action: str) -> Result:
        """Approve or reject the pending request of ``lawyer_id`` on ``case_id``."""
        if action not in ("approve", "reject"):
            return invalid("Action must be 'approve' or 'reject'")

        failure = self.engine.authorize_owner_action(
            actor, case_id, f"Only case owners can {action} access requests"
        )
        if failure:
            return failure

        pending = self.access.find_pending_request(case_id, lawyer_id)
        if pending is None:
            return conflict("No pending access request found for this lawyer")

        if action == "approve":
            return self.approve(actor, pending.id)
        return self.reject(actor, pending.id)

    def grant_direct(self, actor: UserIdentity, case_id: str, lawyer_id: str) -> Result:
        """Grant access without a request; resolves any pending request as APPROVED."""
        failure = self.engine.authorize_owner_action(
            actor, case_id, "Only case owners can grant lawyer access"
        )
        if failure:
            return failure

        lawyer = self.users.get(lawyer_id)
        if lawyer is None or not lawyer.is_active:
            return invalid("Lawyer not found")
        if lawyer.role != UserRole.LAWYER:
            return invalid("User is not a lawyer")

        if self.access.grant_exists(case_id, lawyer_id):
            return self._settle_granted_request(actor, self.access.find_pending_request(case_id, lawyer_id))

        try:
            with self.access.transaction():
                grant = self.access.create_grant(case_id, lawyer_id, granted_by=actor.id)
                pending = self.access.find_pending_request(case_id, lawyer_id)
                if pending is not None:
                    self.access.update_request_status(
                        pending.id, RequestStatus.APPROVED, reviewed_by=actor.id, reviewed_at=datetime.utcnow()
                    )
                self._emit(case_id, EventType.ACCESS_GRANTED, actor, lawyer_id=lawyer_id)
        except DuplicateRecordError:
            logger.info(f"Concurrent grant for lawyer {lawyer_id} on case {case_id}")
            return self._settle_granted_request(actor, self.access.find_pending_request(case_id, lawyer_id))

        logger.info(f"Owner {actor.id} granted lawyer {lawyer_id} access to case {case_id}")
        return Success(grant_to_dict(grant), "Lawyer access granted successfully", created=True)

    def revoke(self, actor: UserIdentity, case_id: str, lawyer_id: str) -> Result:
        """Delete the grant of ``lawyer_id`` on ``case_id``."""
        failure = self.engine.authorize_owner_action(
            actor, case_id, "Only case owners can revoke lawyer access"
        )
        if failure:
            return failure

        if not self.access.grant_exists(case_id, lawyer_id):
            return conflict("Lawyer does not have access to this case")

        with self.access.transaction():
            self.access.delete_grant(case_id, lawyer_id)
            self._emit(case_id, EventType.ACCESS_REVOKED, actor, lawyer_id=lawyer_id)

        logger.info(f"Owner {actor.id} revoked lawyer {lawyer_id} from case {case_id}")
        return Success({"caseId": case_id, "lawyerId": lawyer_id}, "Lawyer access revoked successfully")

    # =========================================================================
    # READ MODELS
    # =========================================================================

    def list_case_requests(self, actor: UserIdentity, case_id: str,
                           status: Optional[RequestStatus] = None) -> Result:
        failure = self.engine.authorize_owner_or_admin_read(
            actor, case_id, "Only case owners can view access requests"
        )
        if failure:
            return failure

        requests = self.access.list_requests_for_case(case_id, status)
        return Success([self._with_lawyer(request_to_dict(r), r.lawyer_id) for r in requests])

    def list_case_grants(self, actor: UserIdentity, case_id: str) -> Result:
        failure = self.engine.authorize_owner_or_admin_read(
            actor, case_id, "Only case owners can view lawyer access"
        )
        if failure:
            return failure

        grants = self.access.list_grants_for_case(case_id)
        return Success([self._with_lawyer(grant_to_dict(g), g.lawyer_id) for g in grants])

    def list_my_requests(self, actor: UserIdentity, status: Optional[RequestStatus] = None) -> Result:
        if actor.role != UserRole.LAWYER:
            return forbidden_role("Only lawyers can view their access requests")

        items = []
        for req in self.access.list_requests_for_lawyer(actor.id, status):
            item = request_to_dict(req)
            case = self.cases.get(req.case_id)
            if case is not None:
                item["case"] = {"id": case.id, "title": case.title, "category": _value(case.category)}
            items.append(item)
        return Success(items)

    def _with_lawyer(self, item: dict, lawyer_id: str) -> dict:
        lawyer = self.users.get(lawyer_id)
        if lawyer is not None:
            item["lawyer"] = {
                "id": lawyer.id,
                "firstName": lawyer.first_name,
                "lastName": lawyer.last_name,
                "email": lawyer.email,
            }
        return item


def _value(enum_or_str):
    return getattr(enum_or_str, "value", enum_or_str)
