"""Per-actor booking views and the admin edits that don't touch status.

Every read is filtered server-side by the acting user's id and role. A single
booking outside the actor's view is reported as not found.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.errors import AuthorizationGap, InvalidTransition, NotFound, StoreError, ValidationError
from cleaning_portal.models.booking import Booking, BOOKING_STATUSES, PROPERTY_TYPES, SERVICE_TYPES
from cleaning_portal.services import email
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.booking_lifecycle import ACTIVE_STATUSES, TERMINAL_STATUSES, write_booking
from cleaning_portal.services.permissions import Capability

logger = logging.getLogger(__name__)

STAFF_SCOPES = {
    "active": ACTIVE_STATUSES,
    "completed": ("completed",),
}

COST_FIELDS = ("estimated_cost", "estimated_hours", "actual_cost", "actual_hours")


def _require_admin(actor: AuthContext, capability: Capability = Capability.MANAGE_BOOKINGS) -> None:
    if actor.role != "admin" or capability not in actor.capabilities:
        raise AuthorizationGap()


def is_visible(booking: Booking, actor: AuthContext) -> bool:
    if actor.role == "admin":
        return True
    if actor.role == "staff":
        return booking.staff_id == actor.user_id
    return booking.customer_id == actor.user_id


async def customer_bookings(db: AsyncSession, actor: AuthContext) -> list[Booking]:
    return await crud.list_bookings(db, customer_id=actor.user_id)


async def staff_bookings(db: AsyncSession, actor: AuthContext, scope: str = "active") -> list[Booking]:
    """Bookings assigned to the acting staff member, split by scope."""
    if actor.role != "staff":
        raise AuthorizationGap("Only staff members have assigned jobs")
    if scope not in STAFF_SCOPES:
        raise ValidationError(f"Unknown scope '{scope}'", field="scope")
    return await crud.list_bookings(db, staff_id=actor.user_id, statuses=STAFF_SCOPES[scope])


async def admin_bookings(
    db: AsyncSession, actor: AuthContext,
    status: str | None = None, staff_id: str | None = None,
) -> list[Booking]:
    _require_admin(actor)
    if status is not None and status not in BOOKING_STATUSES:
        raise ValidationError(f"Unknown status '{status}'", field="status")
    return await crud.list_bookings(
        db, staff_id=staff_id, statuses=(status,) if status else None,
    )


async def get_booking_for_actor(db: AsyncSession, booking_id: str, actor: AuthContext) -> Booking:
    booking = await crud.get_booking(db, booking_id)
    if booking is None or not is_visible(booking, actor):
        raise NotFound("Booking")
    return booking


def _booking_email_data(booking: Booking) -> dict:
    return {
        "first_name": booking.first_name,
        "last_name": booking.last_name,
        "email": booking.email,
        "phone": booking.phone,
        "service_type": booking.service_type,
        "property_type": booking.property_type,
        "service_address": booking.service_address,
        "preferred_date": booking.preferred_date.isoformat(),
        "notes": booking.notes,
    }


async def create_booking(
    db: AsyncSession,
    actor: AuthContext,
    *,
    first_name: str,
    last_name: str,
    email_address: str,
    phone: str,
    service_type: str,
    property_type: str,
    service_address: str,
    preferred_date: date,
    notes: str | None = None,
    service_location_lat: float | None = None,
    service_location_lng: float | None = None,
) -> Booking:
    """Create a pending, unassigned booking owned by the acting user."""
    if service_type not in SERVICE_TYPES:
        raise ValidationError(f"Unknown service type '{service_type}'", field="service_type")
    if property_type not in PROPERTY_TYPES:
        raise ValidationError(f"Unknown property type '{property_type}'", field="property_type")
    if not service_address.strip():
        raise ValidationError("Service address is required", field="service_address")

    try:
        booking = await crud.create_booking(
            db,
            customer_id=actor.user_id,
            staff_id=None,
            status="pending",
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email_address.strip().lower(),
            phone=phone.strip(),
            service_type=service_type,
            property_type=property_type,
            service_address=service_address.strip(),
            preferred_date=preferred_date,
            notes=notes,
            service_location_lat=service_location_lat,
            service_location_lng=service_location_lng,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create booking for %s", actor.user_id)
        raise StoreError() from exc

    logger.info("Booking %s created by %s", booking.id, actor.user_id)
    await email.send_email(db, "booking", booking.email, _booking_email_data(booking))
    return booking


async def assign_staff(
    db: AsyncSession, booking: Booking, staff_id: str | None, actor: AuthContext,
) -> Booking:
    """Set or clear the assigned staff member. Status is left untouched."""
    _require_admin(actor)
    if booking.status in TERMINAL_STATUSES:
        raise InvalidTransition(
            booking.status, booking.status,
            f"Cannot reassign a {booking.status} booking",
        )

    staff_user = None
    if staff_id is not None:
        staff_user = await crud.get_user(db, staff_id)
        if staff_user is None or await crud.get_user_role(db, staff_id) != "staff":
            raise ValidationError("Selected user is not a staff member", field="staff_id")

    old_staff = booking.staff_id
    current = booking.status
    if not await write_booking(db, booking, {"staff_id": staff_id}, expected_status=current):
        await db.refresh(booking)
        raise InvalidTransition(booking.status, current, "Booking was changed by someone else. Reload and try again.")

    await crud.log_admin_activity(
        db, actor.user_id, "assign_staff", "booking", booking.id,
        description=f"Assigned booking to {staff_user.email if staff_user else 'nobody'}",
        old_values={"staff_id": old_staff}, new_values={"staff_id": staff_id},
    )
    logger.info("Booking %s assigned to %s by %s", booking.id, staff_id, actor.user_id)

    if staff_user is not None:
        data = _booking_email_data(booking)
        data.update(
            customer_name=f"{booking.first_name} {booking.last_name}",
            customer_phone=booking.phone,
            estimated_hours=booking.estimated_hours,
        )
        await email.send_email(db, "work_assigned", staff_user.email, data)
    return booking


def _parse_amount(name: str, raw) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name.replace('_', ' ').capitalize()} must be a number", field=name)
    if value < 0:
        raise ValidationError(f"{name.replace('_', ' ').capitalize()} cannot be negative", field=name)
    return value


async def update_booking_costs(
    db: AsyncSession, booking: Booking, actor: AuthContext, **fields,
) -> Booking:
    """Admin edit of cost and hour estimates. Only keys present are written."""
    _require_admin(actor)
    unknown = set(fields) - set(COST_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field '{sorted(unknown)[0]}'", field=sorted(unknown)[0])

    values = {name: _parse_amount(name, raw) for name, raw in fields.items()}
    if not values:
        return booking

    old_values = {name: getattr(booking, name) for name in values}
    current = booking.status
    if not await write_booking(db, booking, values, expected_status=current):
        await db.refresh(booking)
        raise InvalidTransition(booking.status, current, "Booking was changed by someone else. Reload and try again.")

    await crud.log_admin_activity(
        db, actor.user_id, "update_costs", "booking", booking.id,
        description="Updated booking costs", old_values=old_values, new_values=values,
    )
    return booking


async def reply_to_booking(db: AsyncSession, booking: Booking, actor: AuthContext, message: str) -> bool:
    """Send a ``booking_reply`` email to the booking's contact address."""
    _require_admin(actor)
    if not message or not message.strip():
        raise ValidationError("Message is required", field="message")
    data = _booking_email_data(booking)
    data["reply_message"] = message.strip()
    sent = await email.send_email(db, "booking_reply", booking.email, data)
    await crud.log_admin_activity(
        db, actor.user_id, "booking_reply", "booking", booking.id,
        description=f"Emailed {booking.email}",
    )
    return sent
