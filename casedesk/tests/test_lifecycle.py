"""
Access-Request Lifecycle Tests
==============================

Request / withdraw / approve / reject / grant / revoke transitions,
their guards, and the events they leave behind.
"""

from types import SimpleNamespace

import pytest

from casedesk.db.models import CaseCategory, EventType, RequestStatus, UserRole
from casedesk.results import FailureKind

from conftest import create_user


def _request(world, lawyer=None, case=None):
    result = world.lifecycle.request(lawyer or world.lawyer_b, (case or world.case_x).id)
    assert result.ok, result
    return result.data["id"]


class TestRequest:

    def test_request_creates_pending(self, world):
        result = world.lifecycle.request(world.lawyer_b, world.case_x.id)
        assert result.ok
        assert result.status_code == 201
        assert result.data["status"] == "PENDING"
        assert result.message == "Access request submitted successfully"
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 1

    def test_second_request_conflicts_with_single_pending_row(self, world):
        _request(world)
        again = world.lifecycle.request(world.lawyer_b, world.case_x.id)
        assert again.kind == FailureKind.CONFLICT
        assert again.status_code == 400
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 1

    def test_request_when_already_granted_conflicts(self, world):
        world.access.create_grant(world.case_x.id, world.lawyer_b.id, granted_by=world.client_a.id)
        result = world.lifecycle.request(world.lawyer_b, world.case_x.id)
        assert result.kind == FailureKind.CONFLICT
        assert result.message == "Lawyer already has access to this case"

    def test_only_lawyers_can_request(self, world):
        result = world.lifecycle.request(world.client_d, world.case_x.id)
        assert result.kind == FailureKind.ROLE_FORBIDDEN
        assert result.message == "Only lawyers can request case access"

    def test_request_on_missing_case(self, world):
        result = world.lifecycle.request(world.lawyer_b, "no-such-case")
        assert result.kind == FailureKind.NOT_FOUND

    def test_request_does_not_grant_access(self, world):
        _request(world)
        assert not world.engine.can_access_case(world.lawyer_b, world.case_x.id)

    def test_request_records_event(self, world):
        _request(world)
        assert world.events.types() == [EventType.ACCESS_REQUESTED]


class TestWithdraw:

    def test_withdraw_then_rerequest(self, world):
        _request(world)
        result = world.lifecycle.withdraw(world.lawyer_b, world.case_x.id)
        assert result.ok
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 0

        again = world.lifecycle.request(world.lawyer_b, world.case_x.id)
        assert again.ok
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 1

    def test_withdraw_without_pending(self, world):
        result = world.lifecycle.withdraw(world.lawyer_b, world.case_x.id)
        assert result.kind == FailureKind.CONFLICT
        assert result.message == "No pending access request found for this case"

    def test_withdraw_only_touches_own_request(self, world):
        _request(world, lawyer=world.lawyer_b)
        result = world.lifecycle.withdraw(world.lawyer_c, world.case_x.id)
        assert result.kind == FailureKind.CONFLICT
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 1

    def test_withdraw_records_event(self, world):
        _request(world)
        world.lifecycle.withdraw(world.lawyer_b, world.case_x.id)
        assert world.events.types()[-1] == EventType.ACCESS_WITHDRAWN


class TestApproveReject:

    def test_approve_grants_access(self, world):
        request_id = _request(world)
        result = world.lifecycle.approve(world.client_a, request_id)

        assert result.ok
        assert result.message == "Access request approved successfully"
        assert result.data["request"]["status"] == "APPROVED"
        assert result.data["grant"]["grantedBy"] == world.client_a.id
        assert world.engine.can_access_case(world.lawyer_b, world.case_x.id)
        assert world.case_x.id in world.engine.get_accessible_case_ids(world.lawyer_b)

        req = world.access.get_request(request_id)
        assert req.reviewed_by == world.client_a.id
        assert req.reviewed_at is not None

    def test_approve_is_one_transaction(self, world):
        request_id = _request(world)
        before = world.access.commits
        world.lifecycle.approve(world.client_a, request_id)
        assert world.access.commits == before + 1

    def test_second_approve_conflicts(self, world):
        request_id = _request(world)
        world.lifecycle.approve(world.client_a, request_id)
        again = world.lifecycle.approve(world.client_a, request_id)
        assert again.kind == FailureKind.CONFLICT
        assert again.message == "Access request has already been approved"
        assert len(world.access.list_grants_for_case(world.case_x.id)) == 1

    def test_approve_with_existing_grant_closes_request(self, world):
        request_id = _request(world)
        world.access.create_grant(world.case_x.id, world.lawyer_b.id, granted_by=world.client_a.id)

        result = world.lifecycle.approve(world.client_a, request_id)
        assert result.kind == FailureKind.CONFLICT
        assert result.message == "Lawyer already has access to this case"
        assert world.access.get_request(request_id).status == RequestStatus.APPROVED
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 0
        assert len(world.access.list_grants_for_case(world.case_x.id)) == 1

    def test_reject_leaves_no_access(self, world):
        request_id = _request(world)
        result = world.lifecycle.reject(world.client_a, request_id)
        assert result.ok
        assert result.data["request"]["status"] == "REJECTED"
        assert not world.engine.can_access_case(world.lawyer_b, world.case_x.id)

    def test_approve_after_reject_conflicts(self, world):
        request_id = _request(world)
        world.lifecycle.reject(world.client_a, request_id)
        result = world.lifecycle.approve(world.client_a, request_id)
        assert result.kind == FailureKind.CONFLICT
        assert result.message == "Access request has already been rejected"

    def test_rerequest_after_reject(self, world):
        request_id = _request(world)
        world.lifecycle.reject(world.client_a, request_id)
        assert world.lifecycle.request(world.lawyer_b, world.case_x.id).ok

    def test_non_owner_client_sees_not_found(self, world):
        request_id = _request(world)
        result = world.lifecycle.approve(world.client_d, request_id)
        assert result.kind == FailureKind.NOT_FOUND
        assert result.message == "Access request not found"

    def test_lawyer_cannot_approve(self, world):
        request_id = _request(world)
        result = world.lifecycle.approve(world.lawyer_b, request_id)
        assert result.kind == FailureKind.ROLE_FORBIDDEN
        assert result.message == "Only case owners can approve access requests"

    def test_admin_cannot_reject(self, world):
        request_id = _request(world)
        result = world.lifecycle.reject(world.admin, request_id)
        assert result.kind == FailureKind.ROLE_FORBIDDEN

    def test_unknown_request(self, world):
        result = world.lifecycle.approve(world.client_a, "missing")
        assert result.kind == FailureKind.NOT_FOUND


class TestHandleAccessRequest:

    def test_approve_by_lawyer_id(self, world):
        _request(world)
        result = world.lifecycle.handle_access_request(
            world.client_a, world.case_x.id, world.lawyer_b.id, "approve"
        )
        assert result.ok
        assert world.engine.can_access_case(world.lawyer_b, world.case_x.id)

    def test_reject_by_lawyer_id(self, world):
        _request(world)
        result = world.lifecycle.handle_access_request(
            world.client_a, world.case_x.id, world.lawyer_b.id, "reject"
        )
        assert result.ok
        assert world.access.pending_count(world.case_x.id, world.lawyer_b.id) == 0

    def test_unknown_action(self, world):
        result = world.lifecycle.handle_access_request(
            world.client_a, world.case_x.id, world.lawyer_b.id, "maybe"
        )
        assert result.kind == FailureKind.VALIDATION

    def test_no_pending_request(self, world):
        result = world.lifecycle.handle_access_request(
            world.client_a, world.case_x.id, world.lawyer_b.id, "approve"
        )
        assert result.kind == FailureKind.CONFLICT

    def test_other_client_gets_not_found(self, world):
        _request(world)
        result = world.lifecycle.handle_access_request(
            world.client_d, world.case_x.id, world.lawyer_b.id, "approve"
        )
        assert result.kind == FailureKind.NOT_FOUND


class TestGrantRevoke:

    def test_grant_direct(self, world):
        result = world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.lawyer_c.id)
        assert result.ok
        assert result.status_code == 201
        assert result.data["grantedBy"] == world.client_a.id
        assert world.engine.can_access_case(world.lawyer_c, world.case_x.id)

    def test_grant_direct_resolves_pending_request(self, world):
        request_id = _request(world, lawyer=world.lawyer_c)
        world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.lawyer_c.id)
        assert world.access.get_request(request_id).status == RequestStatus.APPROVED

    def test_grant_twice_conflicts(self, world):
        world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.lawyer_c.id)
        again = world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.lawyer_c.id)
        assert again.kind == FailureKind.CONFLICT
        assert len(world.access.list_grants_for_case(world.case_x.id)) == 1

    def test_grant_to_non_lawyer(self, world):
        result = world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.client_d.id)
        assert result.kind == FailureKind.VALIDATION
        assert result.message == "User is not a lawyer"

    def test_grant_to_unknown_user(self, world):
        result = world.lifecycle.grant_direct(world.client_a, world.case_x.id, "ghost")
        assert result.message == "Lawyer not found"

    def test_lawyer_cannot_grant(self, world):
        world.access.create_grant(world.case_x.id, world.lawyer_b.id, granted_by=world.client_a.id)
        result = world.lifecycle.grant_direct(world.lawyer_b, world.case_x.id, world.lawyer_c.id)
        assert result.kind == FailureKind.ROLE_FORBIDDEN

    def test_revoke_removes_access(self, world):
        world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.lawyer_c.id)
        result = world.lifecycle.revoke(world.client_a, world.case_x.id, world.lawyer_c.id)
        assert result.ok
        assert not world.engine.can_access_case(world.lawyer_c, world.case_x.id)
        assert world.events.types()[-1] == EventType.ACCESS_REVOKED

    def test_revoke_without_grant(self, world):
        result = world.lifecycle.revoke(world.client_a, world.case_x.id, world.lawyer_c.id)
        assert result.kind == FailureKind.CONFLICT
        assert result.message == "Lawyer does not have access to this case"

    def test_revoke_by_other_client(self, world):
        world.lifecycle.grant_direct(world.client_a, world.case_x.id, world.lawyer_c.id)
        result = world.lifecycle.revoke(world.client_d, world.case_x.id, world.lawyer_c.id)
        assert result.kind == FailureKind.NOT_FOUND
        assert world.engine.can_access_case(world.lawyer_c, world.case_x.id)


class TestReadModels:

    def test_owner_lists_requests_with_lawyer(self, world):
        _request(world)
        result = world.lifecycle.list_case_requests(world.client_a, world.case_x.id, RequestStatus.PENDING)
        assert result.ok
        assert len(result.data) == 1
        assert result.data[0]["lawyer"]["email"] == "b@lawfirm.com"

    def test_admin_lists_requests(self, world):
        _request(world)
        assert world.lifecycle.list_case_requests(world.admin, world.case_x.id).ok

    def test_lawyer_cannot_list_case_requests(self, world):
        world.access.create_grant(world.case_x.id, world.lawyer_b.id, granted_by=world.client_a.id)
        result = world.lifecycle.list_case_requests(world.lawyer_b, world.case_x.id)
        assert result.kind == FailureKind.ROLE_FORBIDDEN

    def test_other_client_gets_not_found(self, world):
        result = world.lifecycle.list_case_grants(world.client_d, world.case_x.id)
        assert result.kind == FailureKind.NOT_FOUND

    def test_my_requests_include_case_summary(self, world):
        _request(world)
        result = world.lifecycle.list_my_requests(world.lawyer_b)
        assert result.ok
        assert result.data[0]["case"]["title"] == "Case X"

    def test_my_requests_for_client(self, world):
        result = world.lifecycle.list_my_requests(world.client_a)
        assert result.kind == FailureKind.ROLE_FORBIDDEN


# =============================================================================
# Store constraints under concurrent writers
# =============================================================================

@pytest.fixture
def sql_world(sqlalchemy_db):
    """
    Lifecycle over the SQLAlchemy stores of one session, with a case owned
    by a client and one lawyer.
    """
    from casedesk.access_requests import AccessRequestLifecycle
    from casedesk.auth import UserIdentity
    from casedesk.authorization import AuthorizationEngine
    from casedesk.db.session import get_db_session
    from casedesk.stores.sql import SqlAccessStore, SqlCaseStore, SqlEventLog, SqlUserStore

    owner = UserIdentity(id=create_user(UserRole.CLIENT), role=UserRole.CLIENT)
    lawyer = UserIdentity(id=create_user(UserRole.LAWYER), role=UserRole.LAWYER)

    with get_db_session() as db:
        cases = SqlCaseStore(db)
        access = SqlAccessStore(db)
        with cases.transaction():
            case = cases.create(owner.id, "Wrongful dismissal", CaseCategory.LABOR_LAW)

        engine = AuthorizationEngine(cases, access)
        lifecycle = AccessRequestLifecycle(engine, cases, access, SqlUserStore(db), SqlEventLog(db))
        yield SimpleNamespace(
            access=access, lifecycle=lifecycle, owner=owner, lawyer=lawyer, case_id=case.id,
        )


class TestConcurrentWriters:
    """
    The in-engine guards read a state another writer has since changed; the
    database constraints must still hold and surface as CONFLICT.
    """

    def test_duplicate_request_hits_pending_index(self, sql_world, monkeypatch):
        w = sql_world
        monkeypatch.setattr(w.access, "find_pending_request", lambda case_id, lawyer_id: None)

        first = w.lifecycle.request(w.lawyer, w.case_id)
        second = w.lifecycle.request(w.lawyer, w.case_id)

        assert first.ok
        assert second.kind == FailureKind.CONFLICT
        assert second.message == "Access request already pending"
        assert len(w.access.list_requests_for_case(w.case_id, RequestStatus.PENDING)) == 1

    def test_approve_after_concurrent_grant(self, sql_world, monkeypatch):
        w = sql_world
        request_id = w.lifecycle.request(w.lawyer, w.case_id).data["id"]
        with w.access.transaction():
            w.access.create_grant(w.case_id, w.lawyer.id, granted_by=w.owner.id)
        monkeypatch.setattr(w.access, "grant_exists", lambda case_id, lawyer_id: False)

        result = w.lifecycle.approve(w.owner, request_id)

        assert result.kind == FailureKind.CONFLICT
        assert result.message == "Lawyer already has access to this case"
        assert len(w.access.list_grants_for_case(w.case_id)) == 1
        assert w.access.get_request(request_id).status == RequestStatus.APPROVED
        assert w.access.list_requests_for_case(w.case_id, RequestStatus.PENDING) == []

    def test_grant_direct_after_concurrent_grant(self, sql_world, monkeypatch):
        w = sql_world
        request_id = w.lifecycle.request(w.lawyer, w.case_id).data["id"]
        with w.access.transaction():
            w.access.create_grant(w.case_id, w.lawyer.id, granted_by=w.owner.id)
        monkeypatch.setattr(w.access, "grant_exists", lambda case_id, lawyer_id: False)

        result = w.lifecycle.grant_direct(w.owner, w.case_id, w.lawyer.id)

        assert result.kind == FailureKind.CONFLICT
        assert len(w.access.list_grants_for_case(w.case_id)) == 1
        assert w.access.get_request(request_id).status == RequestStatus.APPROVED
