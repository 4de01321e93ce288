"""Booking status state machine.

``transition_booking`` is the only code path that changes a booking's status.
It checks that the actor may touch the booking, that the move is legal from
the current state, and writes status + lifecycle timestamp in one
conditional UPDATE (``WHERE status = <current>``) so a concurrent change
makes the write a no-op instead of a lost update.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.errors import AuthorizationGap, InvalidTransition, StoreError, ValidationError
from cleaning_portal.models.booking import Booking, BOOKING_STATUSES
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

logger = logging.getLogger(__name__)

# (from, to) -> timestamp column set by the move
TRANSITIONS: dict[tuple[str, str], str | None] = {
    ("pending", "confirmed"): "task_accepted_at",
    ("confirmed", "in_progress"): "task_started_at",
    ("in_progress", "completed"): "completed_at",
    ("pending", "cancelled"): None,
    ("confirmed", "cancelled"): None,
}

TERMINAL_STATUSES = frozenset({"completed", "cancelled"})
ACTIVE_STATUSES = ("pending", "confirmed", "in_progress")

# Named actions exposed to staff and admin views
ACTIONS: dict[str, str] = {
    "accept": "confirmed",
    "start": "in_progress",
    "complete": "completed",
    "cancel": "cancelled",
}


def allowed_targets(current: str) -> set[str]:
    return {dst for (src, dst) in TRANSITIONS if src == current}


def can_act_on(booking: Booking, actor: AuthContext) -> bool:
    if actor.role == "admin":
        return Capability.MANAGE_BOOKINGS in actor.capabilities
    if actor.role == "staff":
        return booking.staff_id is not None and booking.staff_id == actor.user_id
    return False


def available_actions(booking: Booking, actor: AuthContext) -> list[str]:
    """Action names the actor may invoke on this booking right now."""
    if not can_act_on(booking, actor):
        return []
    targets = allowed_targets(booking.status)
    return [name for name, target in ACTIONS.items() if target in targets]


def check_transition(current: str, target: str) -> None:
    if target not in BOOKING_STATUSES:
        raise ValidationError(f"Unknown status '{target}'", field="status")
    if (current, target) not in TRANSITIONS:
        raise InvalidTransition(current, target)


async def write_booking(
    db: AsyncSession, booking: Booking, values: dict, expected_status: str,
) -> bool:
    """Conditionally UPDATE one booking and commit.

    Returns False if the row was no longer in ``expected_status``. Store
    failures roll back and raise ``StoreError``; nothing is partially applied.
    """
    booking_id = booking.id
    stmt = (
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == expected_status)
        .values(**values, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    try:
        result = await db.execute(stmt)
        if result.rowcount == 0:
            await db.rollback()
            return False
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to write booking %s", booking_id)
        raise StoreError() from exc
    await db.refresh(booking)
    return True


async def transition_booking(
    db: AsyncSession,
    booking: Booking,
    target: str,
    actor: AuthContext,
    now: datetime | None = None,
) -> Booking:
    """Move ``booking`` to ``target`` on behalf of ``actor``."""
    if not can_act_on(booking, actor):
        raise AuthorizationGap("You are not allowed to change this booking")

    current = booking.status
    check_transition(current, target)

    if target == "completed" and not (booking.staff_hours_worked and booking.staff_hours_worked > 0):
        raise ValidationError("Hours worked must be recorded before completing a job", field="hours_worked")

    values: dict = {"status": target}
    ts_field = TRANSITIONS[(current, target)]
    if ts_field and getattr(booking, ts_field) is None:
        values[ts_field] = now or datetime.now(timezone.utc)

    if not await write_booking(db, booking, values, expected_status=current):
        await db.refresh(booking)
        raise InvalidTransition(booking.status, target, "Booking was changed by someone else. Reload and try again.")

    logger.info("Booking %s: %s -> %s by %s (%s)", booking.id, current, target, actor.user_id, actor.role)
    return booking


async def apply_action(db: AsyncSession, booking: Booking, action: str, actor: AuthContext) -> Booking:
    """Resolve a named action (accept/start/cancel) to its transition.

    ``complete`` is not accepted here; completion goes through completion capture.
    """
    if action not in ACTIONS or action == "complete":
        raise ValidationError(f"Unknown action '{action}'", field="action")
    return await transition_booking(db, booking, ACTIONS[action], actor)
