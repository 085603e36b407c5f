"""
Dependency Wiring
=================

The one place where stores, the authorization engine, the access-request
lifecycle and the facades are assembled. Route modules only ask for
``get_services`` / ``get_current_user``; tests may replace either through
``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .access_requests import AccessRequestLifecycle
from .accounts import AccountService
from .auth import Authenticator, UserIdentity, extract_token
from .authorization import AuthorizationEngine
from .cases import CaseFacade
from .config import Settings, get_settings
from .db.session import get_db
from .documents import DocumentFacade
from .messages import MessageFacade
from .storage import get_storage
from .stores.sql import (
    SqlAccessStore, SqlCaseStore, SqlDocumentStore, SqlEventLog, SqlMessageStore, SqlUserStore,
)
from .token_blacklist import TokenRevocationList


class Services:
    """Request-scoped service graph bound to one database session"""

    def __init__(self, db: Session, settings: Settings):
        self.settings = settings

        self.users = SqlUserStore(db)
        self.cases = SqlCaseStore(db)
        self.access = SqlAccessStore(db)
        self.documents = SqlDocumentStore(db)
        self.messages = SqlMessageStore(db)
        self.events = SqlEventLog(db)
        self.revocations = TokenRevocationList(db)
        self.storage = get_storage(settings.storage_path)

        self.engine = AuthorizationEngine(self.cases, self.access)
        self.authenticator = Authenticator(self.users, self.revocations)
        self.accounts = AccountService(self.users, self.revocations)
        self.lifecycle = AccessRequestLifecycle(
            self.engine, self.cases, self.access, self.users, self.events
        )
        self.case_facade = CaseFacade(
            self.engine,
            self.cases,
            self.access,
            events=self.events,
            documents=self.documents,
            storage=self.storage,
            browse_enabled=settings.lawyer_browse_enabled,
            max_page_size=settings.max_page_size,
        )
        self.document_facade = DocumentFacade(
            self.engine,
            self.documents,
            self.storage,
            events=self.events,
            allowed_mime_types=settings.upload_mime_types,
            max_upload_bytes=settings.max_upload_bytes,
        )
        self.message_facade = MessageFacade(self.engine, self.messages)


def get_services(db: Session = Depends(get_db)) -> Services:
    return Services(db, get_settings())


def get_request_token(request: Request, authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Raw access token from the Bearer header or the auth cookie"""
    cookie_token = request.cookies.get(get_settings().auth_cookie_name)
    return extract_token(authorization, cookie_token)


def get_current_user(
    token: Optional[str] = Depends(get_request_token),
    services: Services = Depends(get_services),
) -> UserIdentity:
    """Resolve the caller; raises AuthenticationError (401) when that fails."""
    return services.authenticator.resolve(token)
