"""Admin staff payroll."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_capability
from cleaning_portal.schemas import BookingPayrollCreate, PaymentStatusUpdate, PayrollCreate, PayrollRead
from cleaning_portal.services import payroll
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

router = APIRouter(prefix="/api/admin/payroll", tags=["payroll"])

_payments_dep = require_capability(Capability.MANAGE_PAYMENTS)


@router.get("", response_model=list[PayrollRead])
async def list_payroll(
    staff_id: str | None = None,
    payment_status: str | None = None,
    auth: AuthContext = Depends(_payments_dep),
    db: AsyncSession = Depends(get_db),
):
    return await payroll.list_payroll(db, auth, staff_id=staff_id, payment_status=payment_status)


@router.get("/summary")
async def payroll_summary(
    auth: AuthContext = Depends(_payments_dep),
    db: AsyncSession = Depends(get_db),
):
    return await payroll.payroll_summary(db, auth)


@router.post("", response_model=PayrollRead, status_code=201)
async def create_payroll(
    body: PayrollCreate,
    auth: AuthContext = Depends(_payments_dep),
    db: AsyncSession = Depends(get_db),
):
    return await payroll.create_payroll(db, auth, **body.model_dump())


@router.post("/bookings/{booking_id}", response_model=PayrollRead, status_code=201)
async def create_booking_payroll(
    booking_id: str,
    body: BookingPayrollCreate,
    auth: AuthContext = Depends(_payments_dep),
    db: AsyncSession = Depends(get_db),
):
    """Pay the assigned staff member for a completed booking."""
    return await payroll.create_booking_payroll(db, auth, booking_id, **body.model_dump())


@router.put("/{payroll_id}/status", response_model=PayrollRead)
async def update_payment_status(
    payroll_id: str,
    body: PaymentStatusUpdate,
    auth: AuthContext = Depends(_payments_dep),
    db: AsyncSession = Depends(get_db),
):
    return await payroll.update_payment_status(
        db, auth, payroll_id, body.payment_status, payment_reference=body.payment_reference,
    )
