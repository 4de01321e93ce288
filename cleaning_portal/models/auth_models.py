"""Identity models: User, UserSession, Profile, UserRole and role detail rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, Float, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cleaning_portal.models.base import Base, ULIDMixin, UpdatedAtMixin, utcnow


class User(Base, ULIDMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserSession(Base, ULIDMixin):
    __tablename__ = "user_sessions"

    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), index=True)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ip_address: Mapped[str] = mapped_column(String(45), default="")


class Profile(Base, UpdatedAtMixin):
    __tablename__ = "profiles"

    # Shares its primary key with users.id
    id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), primary_key=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class UserRole(Base, ULIDMixin):
    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), index=True)
    role: Mapped[str] = mapped_column(String(20))  # admin | staff | customer


class AdminDetails(Base, ULIDMixin, UpdatedAtMixin):
    __tablename__ = "admin_details"

    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), unique=True)
    admin_level: Mapped[str] = mapped_column(String(20), default="standard")  # super | admin | manager | supervisor | standard
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    can_manage_bookings: Mapped[bool] = mapped_column(Boolean, default=False)
    can_manage_staff: Mapped[bool] = mapped_column(Boolean, default=False)
    can_manage_customers: Mapped[bool] = mapped_column(Boolean, default=False)
    can_manage_payments: Mapped[bool] = mapped_column(Boolean, default=False)
    can_manage_admins: Mapped[bool] = mapped_column(Boolean, default=False)
    can_view_reports: Mapped[bool] = mapped_column(Boolean, default=False)
    can_edit_settings: Mapped[bool] = mapped_column(Boolean, default=False)


class StaffDetails(Base, ULIDMixin, UpdatedAtMixin):
    __tablename__ = "staff_details"

    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), unique=True)
    employee_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    hourly_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
