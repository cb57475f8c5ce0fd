from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

from model.usermodels import UserRole


class UserCreate(BaseModel):
    full_name: str
    email: EmailStr
    password: str
    role: UserRole = UserRole.STAFF
    profile_picture_url: Optional[str] = None
    annual_leave_entitlement: Optional[int] = Field(default=None, ge=0)

    @validator('full_name')
    def validate_full_name(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError('Full name cannot be empty')
        return v.strip()

    @validator('password')
    def validate_password(cls, v):
        if not v:
            raise ValueError('Password cannot be empty')
        # bcrypt only looks at the first 72 bytes
        if len(v.encode('utf-8')) > 72:
            raise ValueError('Password cannot exceed 72 bytes')
        return v


class UserInvite(BaseModel):
    full_name: str
    email: EmailStr
    role: UserRole = UserRole.STAFF

    @validator('full_name')
    def validate_full_name(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError('Full name cannot be empty')
        return v.strip()


class UserResponse(BaseModel):
    id: str
    full_name: str
    email: Optional[str] = None
    role: str
    profile_picture_url: Optional[str] = None
    leave_balance: int
    carry_over_balance: int
    annual_leave_entitlement: int
    leave_year: int

    @validator('id', pre=True)
    def stringify_id(cls, v):
        return str(v)

    class Config:
        from_attributes = True


class DashboardUser(UserResponse):
    created_at: datetime


class InviteResponse(BaseModel):
    message: str
    user: UserResponse


class LeaveRequestCounts(BaseModel):
    pending: int
    approved: int
    rejected: int
    total: int


class DashboardStats(BaseModel):
    total_users: int
    leave_requests: LeaveRequestCounts
