"""Admin capabilities: typed permission set resolved from role + admin_details."""

from __future__ import annotations

from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.models.auth_models import AdminDetails

ROLES = ("admin", "staff", "customer")
ADMIN_LEVELS = ("super", "admin", "manager", "supervisor", "standard")

# Levels that get every capability regardless of stored flags
_FULL_ACCESS_LEVELS = {"super", "admin"}


class Capability(str, Enum):
    MANAGE_BOOKINGS = "can_manage_bookings"
    MANAGE_STAFF = "can_manage_staff"
    MANAGE_CUSTOMERS = "can_manage_customers"
    MANAGE_PAYMENTS = "can_manage_payments"
    MANAGE_ADMINS = "can_manage_admins"
    VIEW_REPORTS = "can_view_reports"
    EDIT_SETTINGS = "can_edit_settings"


ALL_CAPABILITIES: frozenset[Capability] = frozenset(Capability)
NO_CAPABILITIES: frozenset[Capability] = frozenset()


def resolve_capabilities(role: str, details: AdminDetails | None) -> frozenset[Capability]:
    """Flatten a role and its admin_details row into a capability set."""
    if role != "admin" or details is None:
        return NO_CAPABILITIES
    if details.admin_level in _FULL_ACCESS_LEVELS:
        return ALL_CAPABILITIES
    return frozenset(cap for cap in Capability if getattr(details, cap.value, False))


async def load_capabilities(db: AsyncSession, user_id: str, role: str) -> frozenset[Capability]:
    if role != "admin":
        return NO_CAPABILITIES
    details = await crud.get_admin_details(db, user_id)
    return resolve_capabilities(role, details)


def has_capability(capabilities: frozenset[Capability], capability: Capability) -> bool:
    return capability in capabilities
