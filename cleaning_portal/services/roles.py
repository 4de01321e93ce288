"""Role changes and admin-driven account creation."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.errors import AuthorizationGap, NotFound, StoreError, ValidationError
from cleaning_portal.models.auth_models import AdminDetails, Profile, StaffDetails, User, UserRole
from cleaning_portal.services import email
from cleaning_portal.services.auth import (
    AuthContext, generate_temp_password, hash_password, remove_all_user_sessions,
)
from cleaning_portal.services.permissions import ADMIN_LEVELS, ROLES, Capability

logger = logging.getLogger(__name__)

# Capability needed to grant, remove or deactivate each role
_ROLE_CAPABILITY = {
    "admin": Capability.MANAGE_ADMINS,
    "staff": Capability.MANAGE_STAFF,
    "customer": Capability.MANAGE_CUSTOMERS,
}


def _check_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"Invalid role '{role}'", field="role")


def _require(actor: AuthContext, capability: Capability) -> None:
    if actor.role != "admin" or capability not in actor.capabilities:
        raise AuthorizationGap()


def _permission_flags(permissions: dict | None) -> dict[str, bool]:
    if not permissions:
        return {}
    valid = {cap.value for cap in Capability}
    flags = {}
    for key, value in permissions.items():
        if key not in valid:
            raise ValidationError(f"Unknown permission '{key}'", field="permissions")
        flags[key] = bool(value)
    return flags


async def _stage_details(db: AsyncSession, user_id: str, role: str, **kwargs) -> None:
    """Add the role's detail row if it is missing. Does not commit."""
    if role == "admin" and await crud.get_admin_details(db, user_id) is None:
        db.add(AdminDetails(user_id=user_id, **kwargs))
    elif role == "staff" and await crud.get_staff_details(db, user_id) is None:
        db.add(StaffDetails(user_id=user_id, **kwargs))


async def replace_user_role(
    db: AsyncSession, user_id: str, role: str, actor: AuthContext | None = None,
) -> str:
    """Swap the user's role row for ``role`` in one transaction.

    The actor needs the capability for both the current and the new role.
    On failure the transaction is rolled back and the old row stays, so the
    user always ends up with exactly one role.
    """
    _check_role(role)
    if actor is not None:
        _require(actor, _ROLE_CAPABILITY[role])
    if await crud.get_user(db, user_id) is None:
        raise NotFound("User")

    old_role = await crud.get_user_role(db, user_id) or "customer"
    if actor is not None:
        _require(actor, _ROLE_CAPABILITY[old_role])
    try:
        await crud.delete_user_roles(db, user_id)
        await crud.add_user_role(db, user_id, role)
        await _stage_details(db, user_id, role)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Role change for %s failed, kept %s", user_id, old_role)
        raise StoreError() from exc

    logger.info("User %s role %s -> %s", user_id, old_role, role)
    if actor is not None:
        await crud.log_admin_activity(
            db, actor.user_id, "role_change", "user", user_id,
            description=f"Changed role from {old_role} to {role}",
            old_values={"role": old_role}, new_values={"role": role},
        )
    return role


async def create_user_with_role(
    db: AsyncSession,
    actor: AuthContext,
    *,
    email_address: str,
    full_name: str,
    role: str,
    phone: str | None = None,
    admin_level: str | None = None,
    department: str | None = None,
    permissions: dict | None = None,
    employee_id: str | None = None,
    hourly_rate: float | None = None,
) -> tuple[User, str]:
    """Create a user with a temporary password. Returns (user, temp_password)."""
    _check_role(role)
    _require(actor, _ROLE_CAPABILITY[role])

    address = (email_address or "").strip().lower()
    if not address or "@" not in address:
        raise ValidationError("A valid email is required", field="email")
    if not full_name or not full_name.strip():
        raise ValidationError("Full name is required", field="full_name")
    if admin_level is not None and admin_level not in ADMIN_LEVELS:
        raise ValidationError(f"Invalid admin level '{admin_level}'", field="admin_level")
    if hourly_rate is not None and hourly_rate < 0:
        raise ValidationError("Hourly rate cannot be negative", field="hourly_rate")
    flags = _permission_flags(permissions)

    if await crud.get_user_by_email(db, address):
        raise ValidationError("A user with this email already exists", field="email")

    temp_password = generate_temp_password()
    try:
        user = User(email=address, password_hash=hash_password(temp_password))
        db.add(user)
        await db.flush()
        db.add(Profile(id=user.id, full_name=full_name.strip(), phone=phone))
        db.add(UserRole(user_id=user.id, role=role))
        if role == "admin":
            await _stage_details(
                db, user.id, role,
                admin_level=admin_level or "standard", department=department, **flags,
            )
        elif role == "staff":
            await _stage_details(
                db, user.id, role, employee_id=employee_id, hourly_rate=hourly_rate,
            )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create %s account for %s", role, address)
        raise StoreError() from exc

    await db.refresh(user)
    logger.info("User %s created with role %s by %s", user.id, role, actor.user_id)
    await crud.log_admin_activity(
        db, actor.user_id, "create_user", "user", user.id,
        description=f"Created {role} account for {address}",
        new_values={"email": address, "role": role},
    )
    await email.send_email(db, "account_created", address, {
        "full_name": full_name.strip(),
        "email": address,
        "role": role,
        "temp_password": temp_password,
    })
    return user, temp_password


async def update_admin_permissions(
    db: AsyncSession,
    actor: AuthContext,
    user_id: str,
    admin_level: str | None = None,
    department: str | None = None,
    permissions: dict | None = None,
) -> AdminDetails:
    _require(actor, Capability.MANAGE_ADMINS)
    if await crud.get_user_role(db, user_id) != "admin":
        raise ValidationError("User is not an admin", field="user_id")
    if admin_level is not None and admin_level not in ADMIN_LEVELS:
        raise ValidationError(f"Invalid admin level '{admin_level}'", field="admin_level")
    flags = _permission_flags(permissions)

    before = await crud.get_admin_details(db, user_id)
    old_values = (
        {"admin_level": before.admin_level, **{cap.value: getattr(before, cap.value) for cap in Capability}}
        if before else None
    )
    try:
        details = await crud.upsert_admin_details(
            db, user_id, admin_level=admin_level, department=department, **flags,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to update permissions for %s", user_id)
        raise StoreError() from exc

    await crud.log_admin_activity(
        db, actor.user_id, "update_permissions", "admin_details", user_id,
        description="Updated admin permissions",
        old_values=old_values, new_values={"admin_level": details.admin_level, **flags},
    )
    return details


async def deactivate_user(db: AsyncSession, actor: AuthContext, user_id: str) -> User:
    """Disable a login and drop its sessions. Needs the capability for the user's role."""
    if user_id == actor.user_id:
        raise ValidationError("Cannot deactivate yourself", field="user_id")
    user = await crud.get_user(db, user_id)
    if user is None:
        raise NotFound("User")
    role = await crud.get_user_role(db, user_id) or "customer"
    _require(actor, _ROLE_CAPABILITY[role])

    try:
        user.is_active = False
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to deactivate %s", user_id)
        raise StoreError() from exc

    await remove_all_user_sessions(user_id, db)
    logger.info("User %s (%s) deactivated by %s", user_id, role, actor.user_id)
    await crud.log_admin_activity(
        db, actor.user_id, "deactivate_user", "user", user_id,
        description=f"Deactivated {user.email}", old_values={"role": role, "is_active": True},
    )
    return user
