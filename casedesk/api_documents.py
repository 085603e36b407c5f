"""
Document API Endpoints
======================

POST   /api/cases/{case_id}/documents       - upload (multipart: file, documentType)
GET    /api/cases/{case_id}/documents       - list
GET    /api/documents/{document_id}         - metadata
GET    /api/documents/{document_id}/download
DELETE /api/documents/{document_id}         - soft delete (owner or uploader)
"""

import logging
import mimetypes
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response

from .auth import UserIdentity
from .db.models import DocumentStatus, DocumentType
from .deps import Services, get_current_user, get_services
from .responses import to_response
from .results import Failure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Documents"])


def _content_type(file: UploadFile) -> str:
    declared = (file.content_type or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(file.filename or "")
    return guessed or declared


@router.post("/cases/{case_id}/documents", status_code=201)
async def upload_document(
    case_id: str,
    file: UploadFile = File(...),
    document_type: Optional[DocumentType] = Form(None, alias="documentType"),
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    content = await file.read()
    return to_response(services.document_facade.upload(
        user,
        case_id,
        filename=file.filename or "",
        mime_type=_content_type(file),
        content=content,
        document_type=document_type or DocumentType.OTHER,
    ))


@router.get("/cases/{case_id}/documents")
async def list_documents(
    case_id: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    status: Optional[DocumentStatus] = None,
    document_type: Optional[DocumentType] = Query(None, alias="documentType"),
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.document_facade.list_documents(
        user, case_id, status=status, document_type=document_type, limit=limit, offset=offset
    ))


@router.get("/documents/{document_id}")
async def get_document(
    document_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.document_facade.get_document(user, document_id))


@router.get("/documents/{document_id}/download")
async def download_document(
    document_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    result = services.document_facade.download(user, document_id)
    if isinstance(result, Failure):
        return to_response(result)

    download = result.data
    logger.info(f"User {user.id} downloaded document {document_id}")
    return Response(
        content=download.content,
        media_type=download.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(download.filename)}",
            "Cache-Control": "private, no-store",
        },
    )


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.document_facade.delete_document(user, document_id))
