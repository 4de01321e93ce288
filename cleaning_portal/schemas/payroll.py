from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


class PayrollCreate(BaseModel):
    staff_id: str
    pay_period_start: date
    pay_period_end: date
    hours_worked: float
    bonus: float = 0.0
    bonus_reason: str | None = None
    deductions: float = 0.0
    notes: str | None = None


class BookingPayrollCreate(BaseModel):
    hourly_rate: float | None = None
    bonus: float = 0.0
    deductions: float = 0.0
    tax_percent: float | None = None


class PaymentStatusUpdate(BaseModel):
    payment_status: str
    payment_reference: str | None = None


class PayrollRead(BaseModel):
    id: str
    staff_id: str
    booking_id: str | None = None
    pay_period_start: date
    pay_period_end: date
    hours_worked: float
    hourly_rate: float
    bonus: float
    bonus_reason: str | None = None
    deductions: float
    gross_pay: float
    tax_withheld: float
    superannuation: float
    net_pay: float
    payment_status: str
    payment_date: date | None = None
    payment_reference: str | None = None
    notes: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
