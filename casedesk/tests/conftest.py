"""
Shared fixtures: SQLite-backed app for API tests and in-memory stores for
engine / lifecycle unit tests.
"""

import uuid
from contextlib import contextmanager
from datetime import datetime
from types import SimpleNamespace

import pytest

from casedesk.db.models import CaseCategory, CaseStatus, RequestStatus, UserRole
from casedesk.errors import DuplicateRecordError
from casedesk.stores.base import AccessStore, CaseStore, EventLog, UserStore


# =============================================================================
# SQLAlchemy / API fixtures
# =============================================================================

@pytest.fixture
def sqlalchemy_db(tmp_path, monkeypatch):
    """Configure a fresh SQLAlchemy SQLite DB and storage dir for tests."""
    from casedesk.config import get_settings
    from casedesk.db.session import reset_engine, init_db

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'casedesk_test.db'}")
    monkeypatch.setenv("STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-with-enough-entropy-0123456789")
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("LAWYER_BROWSE_ENABLED", raising=False)
    get_settings.cache_clear()
    reset_engine()
    init_db()

    yield tmp_path

    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def client(sqlalchemy_db):
    from fastapi.testclient import TestClient
    from casedesk.api import app

    with TestClient(app) as test_client:
        yield test_client


def create_user(role: UserRole, email: str = None, password: str = "password123",
                active: bool = True) -> str:
    """Insert a user directly; returns its id."""
    from casedesk.auth import get_password_hash
    from casedesk.db.session import get_db_session
    from casedesk.stores.sql import SqlUserStore

    email = email or f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@lawfirm.com"
    with get_db_session() as db:
        user = SqlUserStore(db).create(
            email=email,
            password_hash=get_password_hash(password),
            first_name=role.value.title(),
            last_name="Tester",
            role=role,
        )
        user.is_active = active
        return user.id


def auth_headers(user_id: str, role: UserRole) -> dict:
    from casedesk.auth import create_access_token

    token = create_access_token({"sub": user_id, "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def actors(sqlalchemy_db):
    """Two clients, two lawyers and an admin, with Bearer headers."""
    ids = {
        "client_a": create_user(UserRole.CLIENT),
        "client_d": create_user(UserRole.CLIENT),
        "lawyer_b": create_user(UserRole.LAWYER),
        "lawyer_c": create_user(UserRole.LAWYER),
        "admin": create_user(UserRole.ADMIN),
    }
    roles = {
        "client_a": UserRole.CLIENT,
        "client_d": UserRole.CLIENT,
        "lawyer_b": UserRole.LAWYER,
        "lawyer_c": UserRole.LAWYER,
        "admin": UserRole.ADMIN,
    }
    return SimpleNamespace(
        ids=ids,
        headers={name: auth_headers(uid, roles[name]) for name, uid in ids.items()},
    )


def create_case_via_api(client, headers, title="Contract dispute", category="CIVIL_LAW", **extra) -> str:
    body = {"title": title, "category": category}
    body.update(extra)
    resp = client.post("/api/cases", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["id"]


# =============================================================================
# In-memory stores
# =============================================================================

class FakeUserStore(UserStore):

    def __init__(self):
        self.rows = {}

    def get(self, user_id):
        return self.rows.get(user_id)

    def get_by_email(self, email):
        return next((u for u in self.rows.values() if u.email == email.lower()), None)

    def create(self, email, password_hash, first_name, last_name, role):
        if self.get_by_email(email):
            raise DuplicateRecordError("User already exists")
        user = SimpleNamespace(
            id=str(uuid.uuid4()), email=email.lower(), password_hash=password_hash,
            first_name=first_name, last_name=last_name, role=role, is_active=True,
            created_at=datetime.utcnow(),
        )
        self.rows[user.id] = user
        return user

    def list_by_role(self, role, active_only=True):
        return [u for u in self.rows.values() if u.role == role and (u.is_active or not active_only)]


class FakeCaseStore(CaseStore):

    def __init__(self):
        self.rows = {}
        self.access = None

    def get(self, case_id):
        return self.rows.get(case_id)

    def list_ids(self):
        return set(self.rows)

    def list_by_owner(self, owner_id):
        return [c for c in self.rows.values() if c.owner_id == owner_id]

    def _in_scope(self, case, scope):
        if scope.everything:
            return True
        if scope.owner_id and case.owner_id == scope.owner_id:
            return True
        return bool(scope.lawyer_id) and self.access is not None and \
            self.access.grant_exists(case.id, scope.lawyer_id)

    def query(self, scope, filters, offset=0, limit=None):
        items = [c for c in self.rows.values() if self._in_scope(c, scope)]
        if filters.status:
            items = [c for c in items if c.status == filters.status]
        if filters.category:
            items = [c for c in items if c.category == filters.category]
        if filters.search:
            needle = filters.search.lower()
            items = [c for c in items if needle in c.title.lower() or needle in (c.description or "").lower()]
        items.sort(key=lambda c: c.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return items[offset:end], len(items)

    def create(self, owner_id, title, category, description=None, status=CaseStatus.OPEN, priority=2):
        now = datetime.utcnow()
        case = SimpleNamespace(
            id=str(uuid.uuid4()), owner_id=owner_id, title=title, category=category,
            description=description, status=status, priority=priority, created_at=now, updated_at=now,
        )
        self.rows[case.id] = case
        return case

    def update(self, case_id, changes):
        case = self.rows.get(case_id)
        if case is None:
            return None
        for key, value in changes.items():
            setattr(case, key, value)
        return case

    def delete(self, case_id):
        return self.rows.pop(case_id, None) is not None


class FakeAccessStore(AccessStore):
    """Enforces the same uniqueness rules as the database constraints."""

    def __init__(self):
        self.grants = {}
        self.requests = {}
        self.commits = 0

    @contextmanager
    def transaction(self):
        yield
        self.commits += 1

    def grant_exists(self, case_id, lawyer_id):
        return (case_id, lawyer_id) in self.grants

    def get_grant(self, case_id, lawyer_id):
        return self.grants.get((case_id, lawyer_id))

    def create_grant(self, case_id, lawyer_id, granted_by):
        if (case_id, lawyer_id) in self.grants:
            raise DuplicateRecordError("Access grant already exists")
        grant = SimpleNamespace(
            id=str(uuid.uuid4()), case_id=case_id, lawyer_id=lawyer_id,
            granted_by=granted_by, granted_at=datetime.utcnow(),
        )
        self.grants[(case_id, lawyer_id)] = grant
        return grant

    def delete_grant(self, case_id, lawyer_id):
        return self.grants.pop((case_id, lawyer_id), None) is not None

    def list_grants_for_lawyer(self, lawyer_id):
        return [g for g in self.grants.values() if g.lawyer_id == lawyer_id]

    def list_grants_for_case(self, case_id):
        return [g for g in self.grants.values() if g.case_id == case_id]

    def get_request(self, request_id):
        return self.requests.get(request_id)

    def find_pending_request(self, case_id, lawyer_id):
        return next(
            (r for r in self.requests.values()
             if r.case_id == case_id and r.lawyer_id == lawyer_id and r.status == RequestStatus.PENDING),
            None,
        )

    def create_request(self, case_id, lawyer_id):
        if self.find_pending_request(case_id, lawyer_id) is not None:
            raise DuplicateRecordError("Pending access request already exists")
        req = SimpleNamespace(
            id=str(uuid.uuid4()), case_id=case_id, lawyer_id=lawyer_id, status=RequestStatus.PENDING,
            requested_at=datetime.utcnow(), reviewed_at=None, reviewed_by=None,
        )
        self.requests[req.id] = req
        return req

    def update_request_status(self, request_id, status, reviewed_by, reviewed_at):
        req = self.requests.get(request_id)
        if req is None:
            return None
        req.status = status
        req.reviewed_by = reviewed_by
        req.reviewed_at = reviewed_at
        return req

    def delete_request(self, request_id):
        return self.requests.pop(request_id, None) is not None

    def list_requests_for_case(self, case_id, status=None):
        return [r for r in self.requests.values()
                if r.case_id == case_id and (status is None or r.status == status)]

    def list_requests_for_lawyer(self, lawyer_id, status=None):
        return [r for r in self.requests.values()
                if r.lawyer_id == lawyer_id and (status is None or r.status == status)]

    def pending_count(self, case_id, lawyer_id):
        return len([r for r in self.list_requests_for_case(case_id, RequestStatus.PENDING)
                    if r.lawyer_id == lawyer_id])


class FakeEventLog(EventLog):

    def __init__(self):
        self.events = []

    def record(self, case_id, event_type, actor_id, details=None):
        self.events.append(SimpleNamespace(
            id=str(uuid.uuid4()), case_id=case_id, event_type=event_type,
            actor_id=actor_id, details=details or {}, created_at=datetime.utcnow(),
        ))

    def list_for_case(self, case_id, limit=100):
        return [e for e in reversed(self.events) if e.case_id == case_id][:limit]

    def types(self):
        return [e.event_type for e in self.events]


@pytest.fixture
def world():
    """
    In-memory stores wired into an engine, a lifecycle and a case facade.

    Seeded with client A (owns case X), client D (owns case Y),
    lawyers B and C, and an admin.
    """
    from casedesk.access_requests import AccessRequestLifecycle
    from casedesk.auth import UserIdentity
    from casedesk.authorization import AuthorizationEngine
    from casedesk.cases import CaseFacade

    users = FakeUserStore()
    cases = FakeCaseStore()
    access = FakeAccessStore()
    events = FakeEventLog()

    def identity(role, email):
        user = users.create(email, "x", role.value.title(), "Tester", role)
        return UserIdentity(id=user.id, role=role, email=user.email)

    client_a = identity(UserRole.CLIENT, "a@clients.com")
    client_d = identity(UserRole.CLIENT, "d@clients.com")
    lawyer_b = identity(UserRole.LAWYER, "b@lawfirm.com")
    lawyer_c = identity(UserRole.LAWYER, "c@lawfirm.com")
    admin = identity(UserRole.ADMIN, "admin@casedesk.io")

    case_x = cases.create(client_a.id, "Case X", CaseCategory.FAMILY_LAW, "Custody")
    case_y = cases.create(client_d.id, "Case Y", CaseCategory.TAX_LAW)

    cases.access = access
    engine = AuthorizationEngine(cases, access)
    lifecycle = AccessRequestLifecycle(engine, cases, access, users, events)
    facade = CaseFacade(engine, cases, access, events=events)

    return SimpleNamespace(
        users=users, cases=cases, access=access, events=events,
        engine=engine, lifecycle=lifecycle, facade=facade,
        client_a=client_a, client_d=client_d, lawyer_b=lawyer_b, lawyer_c=lawyer_c, admin=admin,
        case_x=case_x, case_y=case_y,
    )
