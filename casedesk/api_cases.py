"""
Case API Endpoints
==================

Case CRUD, lawyer browse and the case activity log.

GET    /api/cases                 - cases visible to the caller (paginated)
POST   /api/cases                 - create (CLIENT)
GET    /api/cases/browse          - lawyer discovery listing
GET    /api/my-cases              - all cases visible to the caller
GET    /api/cases/{case_id}
PUT    /api/cases/{case_id}       - partial update (owner)
PATCH  /api/cases/{case_id}       - partial update (owner)
DELETE /api/cases/{case_id}       - delete (owner)
GET    /api/cases/{case_id}/activity
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from .auth import UserIdentity
from .config import get_settings
from .db.models import CaseCategory, CaseStatus
from .deps import Services, get_current_user, get_services
from .responses import to_response
from .schemas import CaseCreateRequest, CaseUpdateRequest
from .stores.base import CaseFilters

router = APIRouter(prefix="/api", tags=["Cases"])


def _page_size(limit: Optional[int]) -> int:
    return limit or get_settings().default_page_size


@router.get("/cases")
async def list_cases(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[CaseStatus] = None,
    category: Optional[CaseCategory] = None,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    filters = CaseFilters(search=search, status=status, category=category)
    return to_response(services.case_facade.list_cases(user, filters, page, _page_size(limit)))


@router.post("/cases", status_code=201)
async def create_case(
    body: CaseCreateRequest,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.case_facade.create_case(
        user,
        title=body.title,
        category=body.category,
        description=body.description,
        priority=body.priority,
    ))


@router.get("/cases/browse")
async def browse_cases(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    status: Optional[CaseStatus] = None,
    category: Optional[CaseCategory] = None,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Case summaries for lawyers looking for cases to request access to"""
    filters = CaseFilters(search=search, status=status, category=category)
    return to_response(services.case_facade.browse_cases(user, filters, page, _page_size(limit)))


@router.get("/my-cases")
async def my_cases(
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.case_facade.my_cases(user))


@router.get("/cases/{case_id}")
async def get_case(
    case_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.case_facade.get_case(user, case_id))


@router.put("/cases/{case_id}")
@router.patch("/cases/{case_id}")
async def update_case(
    case_id: str,
    body: CaseUpdateRequest,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.case_facade.update_case(user, case_id, body.to_changes()))


@router.delete("/cases/{case_id}")
async def delete_case(
    case_id: str,
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.case_facade.delete_case(user, case_id))


@router.get("/cases/{case_id}/activity")
async def case_activity(
    case_id: str,
    limit: int = Query(100, ge=1, le=500),
    user: UserIdentity = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return to_response(services.case_facade.case_activity(user, case_id, limit))
