"""
Authorization Engine
====================

Single source of truth for case access decisions.

Roles:
- CLIENT: sees and mutates the cases it owns
- LAWYER: sees cases it holds a CaseAccessGrant for; never mutates case content
- ADMIN: sees every case; never mutates case content

Read paths collapse "case does not exist" and "caller has no access" into one
NOT_FOUND verdict. Write paths check the role first, then access, then
ownership, so a caller only learns the specific reason once it already knows
the case exists.
"""

import logging
from typing import Iterable, Optional, Set

from .auth import UserIdentity
from .db.models import UserRole
from .results import Failure, forbidden_role, not_found, not_owner
from .stores.base import AccessStore, CaseScope, CaseStore

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    """Access predicates over the case and access stores"""

    def __init__(self, cases: CaseStore, access: AccessStore):
        self.cases = cases
        self.access = access

    # =========================================================================
    # PREDICATES
    # =========================================================================

    def can_access_case(self, user: UserIdentity, case_id: str) -> bool:
        """True iff the case exists and the user is ADMIN, its owner, or a granted lawyer."""
        case = self.cases.get(case_id)
        if case is None:
            return False

        if user.role == UserRole.ADMIN:
            return True
        if user.role == UserRole.CLIENT:
            return case.owner_id == user.id
        if user.role == UserRole.LAWYER:
            return self.access.grant_exists(case_id, user.id)
        return False

    def is_case_owner(self, user: UserIdentity, case_id: str) -> bool:
        """True iff the case exists and ``owner_id`` is the user."""
        case = self.cases.get(case_id)
        return case is not None and case.owner_id == user.id

    def get_accessible_case_ids(self, user: UserIdentity) -> Set[str]:
        """Every case id for which ``can_access_case`` holds."""
        if user.role == UserRole.ADMIN:
            return self.cases.list_ids()
        if user.role == UserRole.CLIENT:
            return {c.id for c in self.cases.list_by_owner(user.id)}
        if user.role == UserRole.LAWYER:
            return {g.case_id for g in self.access.list_grants_for_lawyer(user.id)}
        return set()

    def filter_accessible_case_ids(self, user: UserIdentity, case_ids: Iterable[str]) -> Set[str]:
        """Subset of ``case_ids`` the user may access"""
        return set(case_ids) & self.get_accessible_case_ids(user)

    def case_scope(self, user: UserIdentity) -> CaseScope:
        """
        Same rule as ``get_accessible_case_ids``, as a restriction the case
        store applies inside its listing query.
        """
        if user.role == UserRole.ADMIN:
            return CaseScope(everything=True)
        if user.role == UserRole.CLIENT:
            return CaseScope(owner_id=user.id)
        if user.role == UserRole.LAWYER:
            return CaseScope(lawyer_id=user.id)
        return CaseScope()

    # =========================================================================
    # VERDICTS
    # =========================================================================

    def authorize_read(self, user: UserIdentity, case_id: str) -> Optional[Failure]:
        """None when readable, otherwise the uniform NOT_FOUND failure."""
        if self.can_access_case(user, case_id):
            return None
        return not_found()

    def authorize_owner_action(
        self,
        user: UserIdentity,
        case_id: str,
        forbidden_message: str,
        allowed_role: UserRole = UserRole.CLIENT,
    ) -> Optional[Failure]:
        """
        Verdict for an owner-only operation on a case.

        Order: role (ROLE_FORBIDDEN) -> access (NOT_FOUND) -> ownership
        (OWNERSHIP). Role and ownership failures share ``forbidden_message``.
        """
        if user.role != allowed_role:
            logger.warning(f"Denied owner action on case {case_id}: role {user.role.value} not permitted")
            return forbidden_role(forbidden_message)

        if not self.can_access_case(user, case_id):
            return not_found()

        if not self.is_case_owner(user, case_id):
            logger.warning(f"Denied owner action on case {case_id}: user {user.id} is not the owner")
            return not_owner(forbidden_message)

        return None

    def authorize_owner_or_admin_read(self, user: UserIdentity, case_id: str,
                                      forbidden_message: str) -> Optional[Failure]:
        """Verdict for owner-scoped reads (access requests, grants, activity) that ADMIN may also see."""
        if user.role == UserRole.LAWYER:
            return forbidden_role(forbidden_message)
        if not self.can_access_case(user, case_id):
            return not_found()
        if user.role == UserRole.CLIENT and not self.is_case_owner(user, case_id):
            return not_owner(forbidden_message)
        return None
