from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str
    phone: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    address: str | None = None


class UserRead(BaseModel):
    id: str
    email: str
    full_name: str | None = None
    phone: str | None = None
    role: str
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None


class RoleUpdate(BaseModel):
    role: str


class UserCreateRequest(BaseModel):
    email: EmailStr
    full_name: str
    role: str
    phone: str | None = None
    admin_level: str | None = None
    department: str | None = None
    permissions: dict[str, bool] | None = None
    employee_id: str | None = None
    hourly_rate: float | None = None


class AdminPermissionsUpdate(BaseModel):
    admin_level: str | None = None
    department: str | None = None
    permissions: dict[str, bool] | None = None
