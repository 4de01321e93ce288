"""Admin API: bookings, users, roles, staff, logs and reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_capability, require_role
from cleaning_portal.schemas import (
    AdminPermissionsUpdate, AssignStaffRequest, BookingCostsUpdate, BookingRead,
    BookingReplyRequest, RoleUpdate, StatusUpdate, UserCreateRequest,
)
from cleaning_portal.services import booking_lifecycle, booking_views, reports, roles
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

router = APIRouter(prefix="/api/admin", tags=["admin"])

_bookings_dep = require_capability(Capability.MANAGE_BOOKINGS)
_staff_dep = require_capability(Capability.MANAGE_STAFF)
_customers_dep = require_capability(Capability.MANAGE_CUSTOMERS)
_admins_dep = require_capability(Capability.MANAGE_ADMINS)
_reports_dep = require_capability(Capability.VIEW_REPORTS)
# Role-specific capability is checked by the roles service
_admin_dep = require_role("admin")


class StaffDetailsUpdate(BaseModel):
    employee_id: str | None = None
    employment_type: str | None = None
    hourly_rate: float | None = None
    is_active: bool | None = None


# ── Bookings ──────────────────────────────────────────────

@router.get("/bookings", response_model=list[BookingRead])
async def list_bookings(
    status: str | None = None,
    staff_id: str | None = None,
    auth: AuthContext = Depends(_bookings_dep),
    db: AsyncSession = Depends(get_db),
):
    return await booking_views.admin_bookings(db, auth, status=status, staff_id=staff_id)


@router.get("/bookings/{booking_id}")
async def get_booking(
    booking_id: str,
    auth: AuthContext = Depends(_bookings_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    photos = await crud.list_task_photos(db, booking.id)
    return {
        **BookingRead.model_validate(booking).model_dump(mode="json"),
        "available_actions": booking_lifecycle.available_actions(booking, auth),
        "photos": [{"id": p.id, "photo_url": p.photo_url, "caption": p.caption} for p in photos],
    }


@router.put("/bookings/{booking_id}/assign", response_model=BookingRead)
async def assign_staff(
    booking_id: str,
    body: AssignStaffRequest,
    auth: AuthContext = Depends(_bookings_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    return await booking_views.assign_staff(db, booking, body.staff_id, auth)


@router.put("/bookings/{booking_id}/status", response_model=BookingRead)
async def update_status(
    booking_id: str,
    body: StatusUpdate,
    auth: AuthContext = Depends(_bookings_dep),
    db: AsyncSession = Depends(get_db),
):
    """Apply a status change through the same guarded transition staff use."""
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    old_status = booking.status
    await booking_lifecycle.transition_booking(db, booking, body.status, auth)
    await crud.log_admin_activity(
        db, auth.user_id, "status_change", "booking", booking.id,
        description=f"Status {old_status} -> {booking.status}",
        old_values={"status": old_status}, new_values={"status": booking.status},
    )
    return booking


@router.put("/bookings/{booking_id}/costs", response_model=BookingRead)
async def update_costs(
    booking_id: str,
    body: BookingCostsUpdate,
    auth: AuthContext = Depends(_bookings_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    return await booking_views.update_booking_costs(
        db, booking, auth, **body.model_dump(exclude_unset=True),
    )


@router.post("/bookings/{booking_id}/reply")
async def reply_to_booking(
    booking_id: str,
    body: BookingReplyRequest,
    auth: AuthContext = Depends(_bookings_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    sent = await booking_views.reply_to_booking(db, booking, auth, body.message)
    return {"ok": True, "sent": sent}


# ── Users ─────────────────────────────────────────────────

@router.get("/users")
async def list_users(
    role: str | None = None,
    auth: AuthContext = Depends(_customers_dep),
    db: AsyncSession = Depends(get_db),
):
    rows = await crud.list_users_with_roles(db, role=role)
    return [
        {
            "id": u.id,
            "email": u.email,
            "full_name": p.full_name if p else None,
            "phone": p.phone if p else None,
            "role": r,
            "is_active": u.is_active,
            "created_at": u.created_at.isoformat(),
            "last_login_at": u.last_login_at.isoformat() if u.last_login_at else None,
        }
        for u, p, r in rows
    ]


@router.post("/users", status_code=201)
async def create_user(
    body: UserCreateRequest,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    """Create an account with a temporary password and email it to the user."""
    user, _ = await roles.create_user_with_role(
        db, auth,
        email_address=body.email,
        full_name=body.full_name,
        role=body.role,
        phone=body.phone,
        admin_level=body.admin_level,
        department=body.department,
        permissions=body.permissions,
        employee_id=body.employee_id,
        hourly_rate=body.hourly_rate,
    )
    return {"ok": True, "user_id": user.id, "email": user.email, "role": body.role}


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    body: RoleUpdate,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    if user_id == auth.user_id and body.role != "admin":
        raise HTTPException(400, "Cannot remove your own admin role")
    role = await roles.replace_user_role(db, user_id, body.role, actor=auth)
    return {"ok": True, "user_id": user_id, "role": role}


@router.put("/users/{user_id}/permissions")
async def update_permissions(
    user_id: str,
    body: AdminPermissionsUpdate,
    auth: AuthContext = Depends(_admins_dep),
    db: AsyncSession = Depends(get_db),
):
    details = await roles.update_admin_permissions(
        db, auth, user_id,
        admin_level=body.admin_level, department=body.department, permissions=body.permissions,
    )
    return {
        "user_id": user_id,
        "admin_level": details.admin_level,
        "department": details.department,
        "permissions": {cap.value: getattr(details, cap.value) for cap in Capability},
    }


@router.delete("/users/{user_id}")
async def deactivate_user(
    user_id: str,
    auth: AuthContext = Depends(_admin_dep),
    db: AsyncSession = Depends(get_db),
):
    if user_id == auth.user_id:
        raise HTTPException(400, "Cannot deactivate yourself")
    await roles.deactivate_user(db, auth, user_id)
    return {"ok": True, "user_id": user_id}


# ── Staff ─────────────────────────────────────────────────

@router.get("/staff")
async def list_staff(
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    rows = await crud.list_active_staff(db)
    return [
        {
            "id": u.id,
            "email": u.email,
            "full_name": p.full_name if p else None,
            "phone": p.phone if p else None,
            "employee_id": d.employee_id if d else None,
            "hourly_rate": d.hourly_rate if d else None,
        }
        for u, p, d in rows
    ]


@router.put("/staff/{user_id}")
async def update_staff(
    user_id: str,
    body: StaffDetailsUpdate,
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    if await crud.get_user_role(db, user_id) != "staff":
        raise HTTPException(404, "Staff member not found")
    details = await crud.upsert_staff_details(db, user_id, **body.model_dump(exclude_unset=True))
    await crud.log_admin_activity(
        db, auth.user_id, "update_staff", "staff_details", user_id,
        description="Updated staff details", new_values=body.model_dump(exclude_unset=True),
    )
    return {
        "user_id": user_id,
        "employee_id": details.employee_id,
        "employment_type": details.employment_type,
        "hourly_rate": details.hourly_rate,
        "is_active": details.is_active,
    }


# ── Logs & reports ────────────────────────────────────────

@router.get("/activity")
async def list_activity(
    limit: int = 100,
    auth: AuthContext = Depends(_reports_dep),
    db: AsyncSession = Depends(get_db),
):
    entries = await crud.list_admin_activity(db, limit=limit)
    return [
        {
            "id": e.id,
            "admin_id": e.admin_id,
            "action_type": e.action_type,
            "entity_type": e.entity_type,
            "entity_id": e.entity_id,
            "description": e.description,
            "old_values": e.old_values,
            "new_values": e.new_values,
            "created_at": e.created_at.isoformat(),
        }
        for e in entries
    ]


@router.get("/email-logs")
async def list_email_logs(
    limit: int = 100,
    auth: AuthContext = Depends(_reports_dep),
    db: AsyncSession = Depends(get_db),
):
    logs = await crud.list_email_logs(db, limit=limit)
    return [
        {
            "id": log.id,
            "email_type": log.email_type,
            "recipient": log.recipient,
            "subject": log.subject,
            "status": log.status,
            "error": log.error,
            "created_at": log.created_at.isoformat(),
        }
        for log in logs
    ]


@router.get("/reports/summary")
async def report_summary(
    auth: AuthContext = Depends(_reports_dep),
    db: AsyncSession = Depends(get_db),
):
    return await reports.dashboard_summary(db)


@router.get("/reports/staff/{staff_id}/earnings")
async def report_staff_earnings(
    staff_id: str,
    auth: AuthContext = Depends(_reports_dep),
    db: AsyncSession = Depends(get_db),
):
    if await crud.get_user_role(db, staff_id) != "staff":
        raise HTTPException(404, "Staff member not found")
    return await reports.staff_earnings(db, staff_id)
