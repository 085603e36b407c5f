"""
Response serializers (camelCase JSON shapes used by the web client).
"""

from datetime import datetime
from typing import Any, Dict, Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _enum(value: Any) -> Any:
    return getattr(value, "value", value)


def user_to_dict(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": _enum(user.role),
        "isActive": bool(user.is_active),
        "createdAt": _iso(getattr(user, "created_at", None)),
    }


def case_to_dict(case) -> Dict[str, Any]:
    return {
        "id": case.id,
        "title": case.title,
        "description": case.description,
        "category": _enum(case.category),
        "status": _enum(case.status),
        "priority": case.priority,
        "ownerId": case.owner_id,
        "createdAt": _iso(getattr(case, "created_at", None)),
        "updatedAt": _iso(getattr(case, "updated_at", None)),
    }


def case_summary_to_dict(case) -> Dict[str, Any]:
    """Browse card: no description"""
    return {
        "id": case.id,
        "title": case.title,
        "category": _enum(case.category),
        "status": _enum(case.status),
        "priority": case.priority,
        "createdAt": _iso(getattr(case, "created_at", None)),
    }


def grant_to_dict(grant) -> Dict[str, Any]:
    return {
        "id": grant.id,
        "caseId": grant.case_id,
        "lawyerId": grant.lawyer_id,
        "grantedAt": _iso(grant.granted_at),
        "grantedBy": grant.granted_by,
    }


def request_to_dict(req) -> Dict[str, Any]:
    return {
        "id": req.id,
        "caseId": req.case_id,
        "lawyerId": req.lawyer_id,
        "status": _enum(req.status),
        "requestedAt": _iso(req.requested_at),
        "reviewedAt": _iso(req.reviewed_at),
        "reviewedBy": req.reviewed_by,
    }


def document_to_dict(doc) -> Dict[str, Any]:
    return {
        "id": doc.id,
        "caseId": doc.case_id,
        "originalName": doc.original_name,
        "size": doc.size,
        "mimeType": doc.mime_type,
        "documentType": _enum(doc.document_type),
        "status": _enum(doc.status),
        "checksum": doc.checksum,
        "uploadedById": doc.uploaded_by_id,
        "createdAt": _iso(getattr(doc, "created_at", None)),
    }


def event_to_dict(event) -> Dict[str, Any]:
    return {
        "id": event.id,
        "caseId": event.case_id,
        "type": _enum(event.event_type),
        "actorId": event.actor_id,
        "details": event.details or {},
        "createdAt": _iso(event.created_at),
    }


def message_to_dict(message) -> Dict[str, Any]:
    return {
        "id": message.id,
        "caseId": message.case_id,
        "senderId": message.sender_id,
        "content": message.content,
        "isRead": bool(message.is_read),
        "createdAt": _iso(getattr(message, "created_at", None)),
        "updatedAt": _iso(getattr(message, "updated_at", None)),
    }
