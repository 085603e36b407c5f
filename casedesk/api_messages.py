"""
Case Message API Endpoints
==========================

GET    /api/cases/{case_id}/messages   - thread (marks others' messages read)
POST   /api/cases/{case_id}/messages   - post {content}
GET    /api/messages/{message_id}
PUT    /api/messages/{message_id}      - edit own message {content}
DELETE /api/messages/{message_id}      - delete own message
"""

from fastapi import APIRouter, Depends, Query

from .auth import UserIdentity
from .deps import Services, get_current_user, get_services
from .responses import to_response
from .schemas import MessageRequest

router = APIRouter(prefix="/api", tags=["Messages"])


@router.get("/cases/{case_id}/messages")
async def list_messages(
    case_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.message_facade.list_messages(user, case_id, limit=limit, offset=offset))


@router.post("/cases/{case_id}/messages", status_code=201)
async def post_message(
    case_id: str,
    body: MessageRequest,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.message_facade.post_message(user, case_id, body.content))


@router.get("/messages/{message_id}")
async def get_message(
    message_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.message_facade.get_message(user, message_id))


@router.put("/messages/{message_id}")
async def edit_message(
    message_id: str,
    body: MessageRequest,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.message_facade.edit_message(user, message_id, body.content))


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.message_facade.delete_message(user, message_id))
