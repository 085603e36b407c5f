"""
SQLAlchemy Models for Database
==============================

Schema for client-owned legal cases:
- Users (clients, lawyers, admins)
- Cases owned by exactly one client
- Lawyer access grants and access requests
- Case documents and messages
- Case activity events
- Revoked access tokens

Supports both PostgreSQL and SQLite via SQLAlchemy.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Text, Integer, BigInteger, Boolean, DateTime, Enum, ForeignKey,
    UniqueConstraint, Index, JSON, CheckConstraint, text
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def generate_uuid():
    return str(uuid.uuid4())


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    """Account roles"""
    CLIENT = "CLIENT"
    LAWYER = "LAWYER"
    ADMIN = "ADMIN"


class CaseStatus(str, enum.Enum):
    """Case lifecycle status"""
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    UNDER_REVIEW = "UNDER_REVIEW"
    AWAITING_CLIENT = "AWAITING_CLIENT"
    CLOSED = "CLOSED"
    ARCHIVED = "ARCHIVED"


class CaseCategory(str, enum.Enum):
    """Area of law"""
    CRIMINAL_LAW = "CRIMINAL_LAW"
    CIVIL_LAW = "CIVIL_LAW"
    CORPORATE_LAW = "CORPORATE_LAW"
    FAMILY_LAW = "FAMILY_LAW"
    IMMIGRATION_LAW = "IMMIGRATION_LAW"
    INTELLECTUAL_PROPERTY = "INTELLECTUAL_PROPERTY"
    LABOR_LAW = "LABOR_LAW"
    REAL_ESTATE = "REAL_ESTATE"
    TAX_LAW = "TAX_LAW"
    OTHER = "OTHER"


class RequestStatus(str, enum.Enum):
    """Access request status (withdrawn requests are deleted)"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentType(str, enum.Enum):
    CONTRACT = "CONTRACT"
    EVIDENCE = "EVIDENCE"
    CORRESPONDENCE = "CORRESPONDENCE"
    LEGAL_BRIEF = "LEGAL_BRIEF"
    COURT_FILING = "COURT_FILING"
    FINANCIAL = "FINANCIAL"
    IDENTIFICATION = "IDENTIFICATION"
    OTHER = "OTHER"


class DocumentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"


class EventType(str, enum.Enum):
    """Case activity event types"""
    CASE_CREATED = "CASE_CREATED"
    CASE_UPDATED = "CASE_UPDATED"
    ACCESS_REQUESTED = "ACCESS_REQUESTED"
    ACCESS_APPROVED = "ACCESS_APPROVED"
    ACCESS_REJECTED = "ACCESS_REJECTED"
    ACCESS_WITHDRAWN = "ACCESS_WITHDRAWN"
    ACCESS_GRANTED = "ACCESS_GRANTED"
    ACCESS_REVOKED = "ACCESS_REVOKED"
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Client, lawyer or administrator account"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), default=UserRole.CLIENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owned_cases = relationship("Case", back_populates="owner", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# CASES
# =============================================================================

class Case(Base):
    """Legal case owned by a single client"""
    __tablename__ = "cases"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(CaseCategory), nullable=False)
    status = Column(Enum(CaseStatus), default=CaseStatus.OPEN, nullable=False)
    priority = Column(Integer, default=2, nullable=False)
    owner_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("priority >= 1 AND priority <= 4", name="ck_case_priority"),
        Index("ix_case_owner", "owner_id"),
        Index("ix_case_status_category", "status", "category"),
    )

    # Relationships
    owner = relationship("User", back_populates="owned_cases")
    grants = relationship("CaseAccessGrant", back_populates="case", cascade="all, delete-orphan")
    access_requests = relationship("CaseAccessRequest", back_populates="case", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="case", cascade="all, delete-orphan")
    events = relationship("CaseEvent", back_populates="case", cascade="all, delete-orphan")
    messages = relationship("CaseMessage", back_populates="case", cascade="all, delete-orphan")


class CaseAccessGrant(Base):
    """Durable lawyer access to a client's case"""
    __tablename__ = "case_access"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    lawyer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    granted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    granted_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("case_id", "lawyer_id", name="uq_case_access_case_lawyer"),
        Index("ix_case_access_lawyer", "lawyer_id"),
    )

    case = relationship("Case", back_populates="grants")
    lawyer = relationship("User", foreign_keys=[lawyer_id])


class CaseAccessRequest(Base):
    """Lawyer request for access to a case"""
    __tablename__ = "case_access_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    lawyer_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(RequestStatus), default=RequestStatus.PENDING, nullable=False)
    requested_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Only one PENDING request per (case, lawyer); resolved rows may accumulate
    __table_args__ = (
        Index(
            "uq_case_access_request_pending",
            "case_id", "lawyer_id",
            unique=True,
            sqlite_where=text("status = 'PENDING'"),
            postgresql_where=text("status = 'PENDING'"),
        ),
        Index("ix_case_access_request_lawyer", "lawyer_id", "status"),
    )

    case = relationship("Case", back_populates="access_requests")
    lawyer = relationship("User", foreign_keys=[lawyer_id])


# =============================================================================
# DOCUMENTS
# =============================================================================

class Document(Base):
    """Uploaded file attached to a case"""
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    original_name = Column(String(255), nullable=False)
    stored_name = Column(String(255), nullable=False, unique=True)
    storage_key = Column(String(500), nullable=False)
    size = Column(BigInteger, nullable=False)
    mime_type = Column(String(100), nullable=False)
    document_type = Column(Enum(DocumentType), default=DocumentType.OTHER, nullable=False)
    status = Column(Enum(DocumentStatus), default=DocumentStatus.PENDING, nullable=False)
    checksum = Column(String(64), nullable=False)  # sha256 hex
    uploaded_by_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_document_case", "case_id", "status"),
    )

    case = relationship("Case", back_populates="documents")
    uploaded_by = relationship("User", foreign_keys=[uploaded_by_id])


class CaseMessage(Base):
    """Message posted on a case by anyone with access to it"""
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("ix_message_case", "case_id", "created_at"),
        Index("ix_message_sender", "sender_id"),
    )

    case = relationship("Case", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])


# =============================================================================
# EVENTS & TOKENS
# =============================================================================

class CaseEvent(Base):
    """Activity event for the case audit trail"""
    __tablename__ = "case_events"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    case_id = Column(String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    event_type = Column(Enum(EventType), nullable=False)
    actor_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_case_event_case", "case_id", "created_at"),
    )

    case = relationship("Case", back_populates="events")


class TokenBlacklist(Base):
    """Revoked access token (by JWT id)"""
    __tablename__ = "token_blacklist"

    jti = Column(String(64), primary_key=True)
    token_type = Column(String(20), default="access", nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
