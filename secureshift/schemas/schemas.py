"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import date as DateType, datetime

from secureshift.core.permissions import Permission
from secureshift.models.shift import ShiftStatus


# ---- Shift ----
class ShiftCreate(BaseModel):
    title: Optional[str] = None
    date: Optional[DateType] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    end_time: Optional[str] = Field(None, alias="endTime")
    description: Optional[str] = None
    location: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

class ApproveRequest(BaseModel):
    guard_id: Optional[int] = Field(None, alias="guardId")
    keep_others: bool = Field(False, alias="keepOthers")

    model_config = ConfigDict(populate_by_name=True)

class AssignRequest(BaseModel):
    guard_id: Optional[int] = Field(None, alias="guardId")

    model_config = ConfigDict(populate_by_name=True)

class RateRequest(BaseModel):
    rating: Any = None

class ShiftOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    date: DateType
    start_time: str
    end_time: str
    status: ShiftStatus
    applicants: List[int] = []
    assigned_guard_id: Optional[int] = None
    accepted_by: Optional[int] = None
    created_by: int
    guard_rating: Optional[int] = None
    employer_rating: Optional[int] = None
    rated_by_guard: bool = False
    rated_by_employer: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ShiftListItem(ShiftOut):
    applicant_count: Optional[int] = None
    has_applicants: Optional[bool] = None

class ShiftListResponse(BaseModel):
    items: List[ShiftListItem]
    total: int
    page: int
    limit: int

class ShiftHistoryResponse(BaseModel):
    total: int
    items: List[ShiftOut]


# ---- Role ----
class RoleUpsert(BaseModel):
    permissions: List[Permission] = []
    description: Optional[str] = None
    inherits_from: Optional[str] = Field(None, alias="inheritsFrom")

    model_config = ConfigDict(populate_by_name=True)

class RoleOut(BaseModel):
    name: str
    description: Optional[str] = None
    permissions: List[str] = []
    inherits_from: Optional[str] = None
    is_system: bool = False

    model_config = ConfigDict(from_attributes=True)

class EffectivePermissionsOut(BaseModel):
    role: str
    inheritance_chain: List[str]
    permissions: List[str]


# ---- User ----
class UserCreate(BaseModel):
    email: str = Field(..., min_length=4)
    full_name: str = Field(..., min_length=2)
    role: str
    branch_id: Optional[int] = None
    phone: Optional[str] = None

class UserUpdateRequest(BaseModel):
    full_name: Optional[str] = None
    role: Optional[str] = None
    branch_id: Optional[int] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None

class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    role: str
    branch_id: Optional[int] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class BranchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    city: Optional[str] = None
    state: Optional[str] = None

class BranchOut(BaseModel):
    id: int
    name: str
    code: str
    city: Optional[str] = None
    state: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_role: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    details_json: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None

class StatsResponse(BaseModel):
    shifts_by_status: Dict[str, int]
    users_by_role: Dict[str, int]
    total_audit_events: int
