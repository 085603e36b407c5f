"""
Case Access API Endpoints
=========================

Lawyer access requests and grants.

Lawyer:
    POST   /api/cases/{case_id}/request-access     - request access
    DELETE /api/cases/{case_id}/request-access     - withdraw pending request
    GET    /api/my-access-requests

Case owner:
    GET    /api/cases/{case_id}/request-access     - requests on the case
    PUT    /api/cases/{case_id}/access-requests    - {action, lawyerId}
    POST   /api/access-requests/{request_id}/approve
    POST   /api/access-requests/{request_id}/reject
    GET    /api/cases/{case_id}/access             - current grants
    POST   /api/cases/{case_id}/access             - grant directly {lawyerId}
    DELETE /api/cases/{case_id}/access             - revoke {lawyerId}
    GET    /api/lawyers/available
"""

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import UserIdentity
from .db.models import RequestStatus
from .deps import Services, get_current_user, get_services
from .responses import to_response
from .schemas import AccessRequestDecision, LawyerRef

router = APIRouter(prefix="/api", tags=["Case Access"])


# =============================================================================
# LAWYER
# =============================================================================

@router.post("/cases/{case_id}/request-access", status_code=201)
async def request_access(
    case_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.request(user, case_id))


@router.delete("/cases/{case_id}/request-access")
async def withdraw_access_request(
    case_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.withdraw(user, case_id))


@router.get("/my-access-requests")
async def my_access_requests(
    status: Optional[RequestStatus] = RequestStatus.PENDING,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.list_my_requests(user, status))


# =============================================================================
# CASE OWNER
# =============================================================================

@router.get("/cases/{case_id}/request-access")
async def list_access_requests(
    case_id: str,
    status: Optional[RequestStatus] = RequestStatus.PENDING,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.list_case_requests(user, case_id, status))


@router.put("/cases/{case_id}/access-requests")
async def decide_access_request(
    case_id: str,
    body: AccessRequestDecision,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(
        services.lifecycle.handle_access_request(user, case_id, body.lawyer_id, body.action)
    )


@router.post("/access-requests/{request_id}/approve")
async def approve_access_request(
    request_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.approve(user, request_id))


@router.post("/access-requests/{request_id}/reject")
async def reject_access_request(
    request_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.reject(user, request_id))


@router.get("/cases/{case_id}/access")
async def list_case_access(
    case_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.list_case_grants(user, case_id))


@router.post("/cases/{case_id}/access", status_code=201)
async def grant_case_access(
    case_id: str,
    body: LawyerRef,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.grant_direct(user, case_id, body.lawyer_id))


@router.delete("/cases/{case_id}/access")
async def revoke_case_access(
    case_id: str,
    body: LawyerRef,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.lifecycle.revoke(user, case_id, body.lawyer_id))


@router.get("/lawyers/available")
async def available_lawyers(
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.accounts.list_available_lawyers(user))
