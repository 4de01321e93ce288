"""Staff payroll records and their payment status.

Pay is ``hours * rate + bonus - deductions`` gross, with tax withheld and
superannuation computed from the configured rates. Records are created
either for a pay period or for one completed booking.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.config import get_settings
from cleaning_portal.db import crud
from cleaning_portal.errors import AuthorizationGap, NotFound, StoreError, ValidationError
from cleaning_portal.models.payroll import PAYMENT_STATUSES, StaffPayroll
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

logger = logging.getLogger(__name__)

_settings = get_settings()


@dataclass(frozen=True)
class PayBreakdown:
    gross: float
    tax: float
    superannuation: float
    net: float


def _require(actor: AuthContext) -> None:
    if actor.role != "admin" or Capability.MANAGE_PAYMENTS not in actor.capabilities:
        raise AuthorizationGap()


def _amount(value, field: str) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be a number", field=field)
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} cannot be negative", field=field)
    return amount


def calculate_pay(
    hours: float, hourly_rate: float, bonus: float = 0.0, deductions: float = 0.0,
    tax_rate: float | None = None,
) -> PayBreakdown:
    tax_rate = _settings.payroll.tax_rate if tax_rate is None else tax_rate
    gross = hours * hourly_rate + bonus - deductions
    if gross < 0:
        raise ValidationError("Deductions exceed earnings", field="deductions")
    tax = gross * tax_rate
    return PayBreakdown(
        gross=round(gross, 2),
        tax=round(tax, 2),
        superannuation=round(gross * _settings.payroll.super_rate, 2),
        net=round(gross - tax, 2),
    )


async def _staff_rate(db: AsyncSession, staff_id: str, override=None) -> float:
    if await crud.get_user_role(db, staff_id) != "staff":
        raise ValidationError("User is not a staff member", field="staff_id")
    if override is not None:
        return _amount(override, "hourly_rate")
    details = await crud.get_staff_details(db, staff_id)
    if details is None or details.hourly_rate is None:
        raise ValidationError("Staff member has no hourly rate", field="hourly_rate")
    return details.hourly_rate


def _record_values(pay: PayBreakdown) -> dict:
    return {
        "gross_pay": pay.gross,
        "tax_withheld": pay.tax,
        "superannuation": pay.superannuation,
        "net_pay": pay.net,
    }


async def list_payroll(
    db: AsyncSession, actor: AuthContext,
    staff_id: str | None = None, payment_status: str | None = None,
) -> list[StaffPayroll]:
    _require(actor)
    if payment_status is not None and payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f"Unknown payment status '{payment_status}'", field="payment_status")
    return await crud.list_payroll(db, staff_id=staff_id, payment_status=payment_status)


async def create_payroll(
    db: AsyncSession,
    actor: AuthContext,
    *,
    staff_id: str,
    pay_period_start: date,
    pay_period_end: date,
    hours_worked,
    bonus=0.0,
    bonus_reason: str | None = None,
    deductions=0.0,
    notes: str | None = None,
) -> StaffPayroll:
    """Create a pending pay record for one staff member and pay period."""
    _require(actor)
    if pay_period_end < pay_period_start:
        raise ValidationError("Pay period ends before it starts", field="pay_period_end")
    hours = _amount(hours_worked, "hours_worked")
    bonus = _amount(bonus or 0, "bonus")
    deductions = _amount(deductions or 0, "deductions")
    rate = await _staff_rate(db, staff_id)
    pay = calculate_pay(hours, rate, bonus, deductions)

    try:
        record = await crud.create_payroll(
            db,
            staff_id=staff_id,
            pay_period_start=pay_period_start,
            pay_period_end=pay_period_end,
            hours_worked=hours,
            hourly_rate=rate,
            bonus=bonus,
            bonus_reason=bonus_reason,
            deductions=deductions,
            notes=notes,
            payment_status="pending",
            created_by=actor.user_id,
            **_record_values(pay),
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create payroll for %s", staff_id)
        raise StoreError() from exc

    await crud.log_admin_activity(
        db, actor.user_id, "create_payroll", "staff_payroll", record.id,
        description=f"Payroll {pay_period_start} to {pay_period_end} for {staff_id}",
        new_values={"hours_worked": hours, "gross_pay": pay.gross, "net_pay": pay.net},
    )
    return record


async def create_booking_payroll(
    db: AsyncSession,
    actor: AuthContext,
    booking_id: str,
    *,
    hourly_rate=None,
    bonus=0.0,
    deductions=0.0,
    tax_percent=None,
) -> StaffPayroll:
    """Pay the assigned staff member for one completed booking.

    Uses the staff member's recorded hours. The booking's ``actual_cost`` is
    set to the gross pay in the same commit. A booking is paid at most once.
    """
    _require(actor)
    booking = await crud.get_booking(db, booking_id)
    if booking is None:
        raise NotFound("Booking")
    if booking.status != "completed" or not booking.staff_id:
        raise ValidationError("Only completed, assigned bookings can be paid", field="booking_id")
    if not booking.staff_hours_worked:
        raise ValidationError("Booking has no recorded hours", field="hours_worked")
    if await crud.get_payroll_for_booking(db, booking_id) is not None:
        raise ValidationError("Payroll already created for this booking", field="booking_id")

    tax_rate = None
    if tax_percent is not None:
        tax_rate = _amount(tax_percent, "tax_percent") / 100
        if tax_rate > 1:
            raise ValidationError("Tax cannot exceed 100%", field="tax_percent")

    bonus = _amount(bonus or 0, "bonus")
    deductions = _amount(deductions or 0, "deductions")
    staff_id = booking.staff_id
    hours = booking.staff_hours_worked
    rate = await _staff_rate(db, staff_id, hourly_rate)
    pay = calculate_pay(hours, rate, bonus, deductions, tax_rate)
    worked_on = booking.completed_at.date() if booking.completed_at else booking.preferred_date

    record = StaffPayroll(
        staff_id=staff_id,
        booking_id=booking_id,
        pay_period_start=worked_on,
        pay_period_end=worked_on,
        hours_worked=hours,
        hourly_rate=rate,
        bonus=bonus,
        deductions=deductions,
        payment_status="pending",
        created_by=actor.user_id,
        **_record_values(pay),
    )
    try:
        db.add(record)
        booking.actual_cost = pay.gross
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ValidationError("Payroll already created for this booking", field="booking_id") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create payroll for booking %s", booking_id)
        raise StoreError() from exc

    await db.refresh(record)
    logger.info("Booking %s paid to %s: gross %.2f", booking_id, staff_id, pay.gross)
    await crud.log_admin_activity(
        db, actor.user_id, "create_payroll", "booking", booking_id,
        description=f"Payroll for booking {booking_id}",
        new_values={"hours_worked": hours, "gross_pay": pay.gross, "net_pay": pay.net},
    )
    return record


async def update_payment_status(
    db: AsyncSession, actor: AuthContext, payroll_id: str, status: str,
    payment_reference: str | None = None,
) -> StaffPayroll:
    """Move a record between pending, processing and paid. Paid stamps today's date."""
    _require(actor)
    if status not in PAYMENT_STATUSES:
        raise ValidationError(f"Unknown payment status '{status}'", field="payment_status")
    record = await crud.get_payroll(db, payroll_id)
    if record is None:
        raise NotFound("Payroll record")

    old_status = record.payment_status
    try:
        record.payment_status = status
        record.payment_date = date.today() if status == "paid" else None
        if payment_reference is not None:
            record.payment_reference = payment_reference
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to update payroll %s", payroll_id)
        raise StoreError() from exc

    await db.refresh(record)
    await crud.log_admin_activity(
        db, actor.user_id, "payment_status", "staff_payroll", payroll_id,
        description=f"Payment {old_status} -> {status}",
        old_values={"payment_status": old_status}, new_values={"payment_status": status},
    )
    return record


async def payroll_summary(db: AsyncSession, actor: AuthContext) -> dict:
    _require(actor)
    totals = await crud.payroll_totals(db)
    return {
        "pending_count": totals.get("pending", {}).get("count", 0),
        "processing_count": totals.get("processing", {}).get("count", 0),
        "paid_count": totals.get("paid", {}).get("count", 0),
        "paid_total": round(totals.get("paid", {}).get("net_pay", 0.0), 2),
        "outstanding_total": round(
            totals.get("pending", {}).get("net_pay", 0.0) + totals.get("processing", {}).get("net_pay", 0.0), 2,
        ),
    }
