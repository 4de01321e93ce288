"""Audit trail tables: outbound email attempts and admin actions."""

from __future__ import annotations

from sqlalchemy import String, Text, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cleaning_portal.models.base import Base, ULIDMixin


class EmailLog(Base, ULIDMixin):
    __tablename__ = "email_logs"

    email_type: Mapped[str] = mapped_column(String(30))
    recipient: Mapped[str] = mapped_column(String(255))
    subject: Mapped[str] = mapped_column(String(500), default="")
    status: Mapped[str] = mapped_column(String(20))  # sent | failed | skipped
    error: Mapped[str | None] = mapped_column(Text, nullable=True)


class AdminActivityLog(Base, ULIDMixin):
    __tablename__ = "admin_activity_logs"

    admin_id: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))
    action_type: Mapped[str] = mapped_column(String(50))
    entity_type: Mapped[str] = mapped_column(String(50))
    entity_id: Mapped[str | None] = mapped_column(String(26), nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
