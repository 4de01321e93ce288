"""Booking model: a customer's request for a cleaning service."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import String, Float, Date, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cleaning_portal.models.base import Base, ULIDMixin, UpdatedAtMixin, utcnow

BOOKING_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled")
SERVICE_TYPES = (
    "residential", "commercial", "deep_clean",
    "carpet_clean", "window_clean", "end_of_lease",
)
PROPERTY_TYPES = ("apartment", "house", "office", "retail", "industrial")


class Booking(Base, ULIDMixin, UpdatedAtMixin):
    __tablename__ = "bookings"

    customer_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"), index=True)
    staff_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True, index=True)

    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(50))

    service_type: Mapped[str] = mapped_column(String(30))
    property_type: Mapped[str] = mapped_column(String(30))
    service_address: Mapped[str] = mapped_column(String(500))
    service_location_lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    service_location_lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    preferred_date: Mapped[date] = mapped_column(Date)

    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    task_accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    task_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    estimated_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    staff_hours_worked: Mapped[float | None] = mapped_column(Float, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    staff_notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class TaskPhoto(Base, ULIDMixin):
    __tablename__ = "task_photos"

    booking_id: Mapped[str] = mapped_column(String(26), ForeignKey("bookings.id"), index=True)
    staff_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))
    photo_url: Mapped[str] = mapped_column(String(500))
    storage_path: Mapped[str] = mapped_column(String(500), default="")
    caption: Mapped[str | None] = mapped_column(String(500), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
