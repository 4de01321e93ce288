"""Bulk email campaigns and their per-recipient delivery rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from cleaning_portal.models.base import Base, ULIDMixin, UpdatedAtMixin

CAMPAIGN_AUDIENCES = ("all_customers", "all_staff", "all_users")
CAMPAIGN_STATUSES = ("draft", "sending", "completed", "failed")
RECIPIENT_STATUSES = ("pending", "sent", "failed")


class EmailCampaign(Base, ULIDMixin, UpdatedAtMixin):
    __tablename__ = "bulk_email_campaigns"

    name: Mapped[str] = mapped_column(String(200))
    subject: Mapped[str] = mapped_column(String(500))
    html_content: Mapped[str] = mapped_column(Text)
    target_audience: Mapped[str] = mapped_column(String(30))
    status: Mapped[str] = mapped_column(String(20), default="draft")
    total_recipients: Mapped[int] = mapped_column(Integer, default=0)
    sent_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_count: Mapped[int] = mapped_column(Integer, default=0)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(26), ForeignKey("users.id"))


class CampaignRecipient(Base, ULIDMixin):
    __tablename__ = "bulk_email_recipients"

    campaign_id: Mapped[str] = mapped_column(
        String(26), ForeignKey("bulk_email_campaigns.id", ondelete="CASCADE"), index=True,
    )
    user_id: Mapped[str | None] = mapped_column(String(26), ForeignKey("users.id"), nullable=True)
    email: Mapped[str] = mapped_column(String(255), default="")
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
