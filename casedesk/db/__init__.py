"""
Database Package - SQLAlchemy
=============================

Persistence layer for cases, access grants/requests and documents.
"""

from .models import (
    Base,
    User, Case, CaseAccessGrant, CaseAccessRequest, Document, CaseMessage, CaseEvent, TokenBlacklist,
    UserRole, CaseStatus, CaseCategory, RequestStatus, DocumentType, DocumentStatus, EventType,
)
from .session import get_db, get_db_session, init_db, get_engine, reset_engine

__all__ = [
    # Base
    "Base",
    # Models
    "User", "Case", "CaseAccessGrant", "CaseAccessRequest", "Document", "CaseMessage", "CaseEvent",
    "TokenBlacklist",
    # Enums
    "UserRole", "CaseStatus", "CaseCategory", "RequestStatus", "DocumentType", "DocumentStatus", "EventType",
    # Session
    "get_db", "get_db_session", "init_db", "get_engine", "reset_engine",
]
