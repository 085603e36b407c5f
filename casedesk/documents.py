"""
Document Facade
===============

Upload, listing, download and deletion of case documents. Every operation
is gated by the same access verdict as the case itself; a document the
caller cannot reach is reported exactly like a missing one.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .auth import UserIdentity
from .authorization import AuthorizationEngine
from .db.models import DocumentStatus, DocumentType, EventType, UserRole
from .errors import IntegrityCheckError
from .results import Result, Success, invalid, not_found, not_owner
from .serializers import document_to_dict
from .storage import LocalStorage, sha256_hex
from .stores.base import DocumentStore, EventLog

logger = logging.getLogger(__name__)

DOCUMENT_NOT_FOUND = "Document not found"

FORBIDDEN_EXTENSIONS = {
    ".exe", ".bat", ".cmd", ".com", ".scr", ".pif",
    ".js", ".vbs", ".vbe", ".jar", ".app", ".deb",
    ".rpm", ".dmg", ".pkg", ".msi", ".sh", ".ps1", ".dll",
}

_SUSPICIOUS_FILENAME_PATTERNS = [
    re.compile(r"\.\."),                                   # directory traversal
    re.compile(r"[<>:\"|?*/\\]"),                          # separators / invalid characters
    re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\.|$)", re.IGNORECASE),
    re.compile(r"[\x00-\x1f]"),                            # control characters
    re.compile(r"^\."),                                    # hidden files
    re.compile(r"\s{2,}"),
]


def validate_upload(
    filename: str,
    mime_type: str,
    size: int,
    allowed_mime_types: Iterable[str],
    max_bytes: int,
) -> List[str]:
    """Return a list of problems with an upload (empty when acceptable)."""
    errors = []

    if not filename or not filename.strip():
        errors.append("Filename is required")
        return errors

    extension = os.path.splitext(filename)[1].lower()
    if extension in FORBIDDEN_EXTENSIONS:
        errors.append(f"File extension {extension} is not allowed for security reasons")

    if mime_type not in set(allowed_mime_types):
        errors.append(f"File type {mime_type or 'unknown'} is not allowed")

    if size <= 0:
        errors.append("File is empty")
    elif size > max_bytes:
        errors.append(f"File size {size} bytes exceeds maximum allowed size {max_bytes} bytes")

    if any(p.search(filename) for p in _SUSPICIOUS_FILENAME_PATTERNS):
        errors.append("Filename contains suspicious patterns")

    return errors


@dataclass
class DocumentDownload:
    filename: str
    mime_type: str
    content: bytes


class DocumentFacade:
    """Document operations for one request scope"""

    def __init__(
        self,
        engine: AuthorizationEngine,
        documents: DocumentStore,
        storage: LocalStorage,
        events: Optional[EventLog] = None,
        allowed_mime_types: Iterable[str] = (),
        max_upload_bytes: int = 25 * 1024 * 1024,
    ):
        self.engine = engine
        self.documents = documents
        self.storage = storage
        self.events = events
        self.allowed_mime_types = list(allowed_mime_types)
        self.max_upload_bytes = max_upload_bytes

    def _readable_document(self, user: UserIdentity, document_id: str):
        doc = self.documents.get(document_id)
        if doc is None or doc.status == DocumentStatus.DELETED:
            return None
        if not self.engine.can_access_case(user, doc.case_id):
            return None
        return doc

    def upload(
        self,
        user: UserIdentity,
        case_id: str,
        filename: str,
        mime_type: str,
        content: bytes,
        document_type: DocumentType = DocumentType.OTHER,
    ) -> Result:
        failure = self.engine.authorize_read(user, case_id)
        if failure:
            return failure

        problems = validate_upload(
            filename, mime_type, len(content), self.allowed_mime_types, self.max_upload_bytes
        )
        if problems:
            return invalid(f"Invalid file upload: {', '.join(problems)}")

        key = self.storage.generate_key(case_id, filename)
        stored = self.storage.put(key, content)

        try:
            with self.documents.transaction():
                doc = self.documents.create(
                    case_id=case_id,
                    original_name=filename,
                    stored_name=stored.stored_name,
                    storage_key=stored.key,
                    size=stored.size_bytes,
                    mime_type=mime_type,
                    document_type=DocumentType(document_type),
                    checksum=stored.sha256,
                    uploaded_by_id=user.id,
                    status=DocumentStatus.PROCESSED,
                )
                if self.events is not None:
                    self.events.record(case_id, EventType.DOCUMENT_UPLOADED, user.id,
                                       {"document_id": doc.id, "name": filename})
        except Exception:
            self.storage.delete(key)
            raise

        logger.info(f"User {user.id} uploaded document {doc.id} to case {case_id} ({stored.size_bytes} bytes)")
        return Success(document_to_dict(doc), "Document uploaded successfully", created=True)

    def list_documents(
        self,
        user: UserIdentity,
        case_id: str,
        status: Optional[DocumentStatus] = None,
        document_type: Optional[DocumentType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result:
        failure = self.engine.authorize_read(user, case_id)
        if failure:
            return failure

        items, total = self.documents.list_for_case(case_id, status, document_type, offset, limit)
        return Success({
            "documents": [document_to_dict(d) for d in items],
            "pagination": {"limit": limit, "offset": offset, "total": total},
        })

    def get_document(self, user: UserIdentity, document_id: str) -> Result:
        doc = self._readable_document(user, document_id)
        if doc is None:
            return not_found(DOCUMENT_NOT_FOUND)
        return Success(document_to_dict(doc))

    def download(self, user: UserIdentity, document_id: str) -> Result:
        """
        Read a document's bytes after verifying its checksum.

        Raises:
            IntegrityCheckError: stored bytes no longer match the checksum
        """
        doc = self._readable_document(user, document_id)
        if doc is None:
            return not_found(DOCUMENT_NOT_FOUND)

        content = self.storage.get(doc.storage_key)
        if doc.checksum and sha256_hex(content) != doc.checksum:
            logger.error(f"Checksum mismatch for document {doc.id}")
            raise IntegrityCheckError("File integrity check failed")

        return Success(DocumentDownload(filename=doc.original_name, mime_type=doc.mime_type, content=content))

    def delete_document(self, user: UserIdentity, document_id: str) -> Result:
        """Soft delete; allowed for the case owner or the uploader."""
        doc = self._readable_document(user, document_id)
        if doc is None:
            return not_found(DOCUMENT_NOT_FOUND)

        is_owner = user.role == UserRole.CLIENT and self.engine.is_case_owner(user, doc.case_id)
        if not is_owner and doc.uploaded_by_id != user.id:
            return not_owner("Only the case owner or uploader can delete this document")

        with self.documents.transaction():
            self.documents.update_status(doc.id, DocumentStatus.DELETED)
            if self.events is not None:
                self.events.record(doc.case_id, EventType.DOCUMENT_DELETED, user.id, {"document_id": doc.id})

        logger.info(f"User {user.id} deleted document {doc.id}")
        return Success({"id": doc.id}, "Document deleted successfully")
