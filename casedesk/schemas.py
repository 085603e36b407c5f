"""
Pydantic Schemas for CaseDesk
=============================

Request bodies for the /api endpoints. JSON keys are camelCase; Python
attributes are snake_case.
"""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .cases import CaseChanges
from .db.models import CaseCategory, CaseStatus, UserRole


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# =============================================================================
# AUTH
# =============================================================================

class RegisterRequest(_CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8, description="At least 8 characters")
    first_name: str = Field(..., min_length=1, max_length=100, alias="firstName")
    last_name: str = Field(..., min_length=1, max_length=100, alias="lastName")
    role: UserRole = UserRole.CLIENT


class LoginRequest(_CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# =============================================================================
# CASES
# =============================================================================

class CaseCreateRequest(_CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    category: CaseCategory
    description: Optional[str] = None
    priority: int = Field(2, ge=1, le=4)


class CaseUpdateRequest(_CamelModel):
    """
    Partial update. Keys absent from the JSON body are left untouched;
    ``"description": ""`` or ``null`` clears the description.
    """
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    category: Optional[CaseCategory] = None
    status: Optional[CaseStatus] = None
    priority: Optional[int] = Field(None, ge=1, le=4)

    def to_changes(self) -> CaseChanges:
        return CaseChanges(**{name: getattr(self, name) for name in self.model_fields_set})


# =============================================================================
# ACCESS
# =============================================================================

class LawyerRef(_CamelModel):
    lawyer_id: str = Field(..., min_length=1, alias="lawyerId")


class AccessRequestDecision(_CamelModel):
    action: Literal["approve", "reject"]
    lawyer_id: str = Field(..., min_length=1, alias="lawyerId")


# =============================================================================
# MESSAGES
# =============================================================================

class MessageRequest(_CamelModel):
    content: str = Field(..., min_length=1, max_length=5000)
