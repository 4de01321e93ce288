"""Staff pay records, per pay period or per completed booking."""

from __future__ import annotations

from datetime import date

from sqlalchemy import String, Float, Date, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cleaning_portal.models.base import Base, ULIDMixin, UpdatedAtMixin

PAYMENT_STATUSES = ("pending", "processing", "paid")


class StaffPayroll(Base, ULIDMixin, UpdatedAtMixin):
    __tablename__ = "staff_payroll"

    staff_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), index=True)
    # Set when the record pays out one completed booking
    booking_id: Mapped[str | None] = mapped_column(
        String(26), ForeignKey("bookings.id"), nullable=True, unique=True,
    )

    pay_period_start: Mapped[date] = mapped_column(Date)
    pay_period_end: Mapped[date] = mapped_column(Date)
    hours_worked: Mapped[float] = mapped_column(Float)
    hourly_rate: Mapped[float] = mapped_column(Float)
    bonus: Mapped[float] = mapped_column(Float, default=0.0)
    bonus_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    deductions: Mapped[float] = mapped_column(Float, default=0.0)

    gross_pay: Mapped[float] = mapped_column(Float)
    tax_withheld: Mapped[float] = mapped_column(Float, default=0.0)
    superannuation: Mapped[float] = mapped_column(Float, default=0.0)
    net_pay: Mapped[float] = mapped_column(Float)

    payment_status: Mapped[str] = mapped_column(String(20), default="pending")
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))
