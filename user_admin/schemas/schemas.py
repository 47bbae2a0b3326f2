"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from user_admin.models.team import TeamRequestStatus


class MessageResponse(BaseModel):
    message: str


# ---- Auth ----
class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., min_length=4, max_length=255)
    password: str = Field(..., min_length=8)


# ---- Role ----
class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None

class RoleUpdate(RoleCreate):
    pass


# ---- User ----
class UserOut(BaseModel):
    id: int
    username: str
    email: str
    is_active: bool = True
    team_id: Optional[int] = None
    role: Optional[str] = Field(None, validation_alias="role_name")
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True

class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., min_length=4, max_length=255)
    password: str = Field(..., min_length=8)
    is_active: bool = True
    role_id: Optional[int] = None

class UserUpdateRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., min_length=4, max_length=255)
    is_active: bool = True
    role_id: Optional[int] = None

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserOut


# ---- Team ----
class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""

class TeamUpdate(TeamCreate):
    pass

class TeamSummaryOut(BaseModel):
    id: int
    name: str
    description: str = ""
    manager_name: Optional[str] = None
    member_count: int = 0

class TeamMemberOut(BaseModel):
    id: int
    username: str
    email: str
    role: Optional[str] = Field(None, validation_alias="role_name")

    class Config:
        from_attributes = True
        populate_by_name = True

class TeamOut(TeamSummaryOut):
    created_at: Optional[datetime] = None
    members: List[TeamMemberOut] = []


# ---- Team Request ----
class TeamRequestCreate(BaseModel):
    team_id: int
    message: str = Field("", max_length=1000)

class TeamRequestProcess(BaseModel):
    approve: bool
    notes: Optional[str] = Field(None, max_length=1000)

class TeamRequestOut(BaseModel):
    id: int
    user_id: int
    username: str
    user_email: str
    team_id: int
    team_name: str
    message: str
    status: TeamRequestStatus
    requested_at: datetime
    processed_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    processing_notes: Optional[str] = None


# ---- Role Management ----
class PromoteToManagerRequest(BaseModel):
    user_id: int
    team_id: int

class ChangeRoleRequest(BaseModel):
    new_role_name: str = Field(..., min_length=1)

class AvailableRolesOut(BaseModel):
    user_id: int
    roles: List[str]


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    metadata: Optional[str] = Field(None, validation_alias="details")
    timestamp: datetime

    class Config:
        from_attributes = True
        populate_by_name = True

class LogActionRequest(BaseModel):
    user_id: Optional[int] = None
    action: str = Field(..., min_length=1, max_length=100)
    metadata: Optional[str] = None
