"""Bulk email campaigns to customers, staff or every active user.

A campaign is created as a draft with one pending recipient row per user in
the audience. Sending walks the pending rows and marks each one sent or
failed; a failed recipient never stops the rest.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.errors import (
    AuthorizationGap, EmailNotConfigured, InvalidTransition, NotFound, StoreError, ValidationError,
)
from cleaning_portal.models.campaign import CAMPAIGN_AUDIENCES, EmailCampaign
from cleaning_portal.services import email
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

logger = logging.getLogger(__name__)

CAMPAIGN_EMAIL_TYPE = "bulk_campaign"

# audience -> role filter (None: everyone)
_AUDIENCE_ROLES = {
    "all_customers": "customer",
    "all_staff": "staff",
    "all_users": None,
}


def _require(actor: AuthContext) -> None:
    if actor.role != "admin" or Capability.EDIT_SETTINGS not in actor.capabilities:
        raise AuthorizationGap()


async def resolve_audience(db: AsyncSession, audience: str) -> list[dict]:
    """Recipient rows (user_id, email, name) for every active user in the audience."""
    if audience not in CAMPAIGN_AUDIENCES:
        raise ValidationError(f"Unknown audience '{audience}'", field="target_audience")
    rows = await crud.list_users_with_roles(db, role=_AUDIENCE_ROLES[audience])
    return [
        {"user_id": user.id, "email": user.email, "name": profile.full_name if profile else None}
        for user, profile, _ in rows
        if user.is_active
    ]


async def create_campaign(
    db: AsyncSession,
    actor: AuthContext,
    *,
    name: str,
    subject: str,
    html_content: str,
    target_audience: str,
) -> EmailCampaign:
    _require(actor)
    for field, value in (("name", name), ("subject", subject), ("html_content", html_content)):
        if not value or not value.strip():
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required", field=field)

    recipients = await resolve_audience(db, target_audience)
    if not recipients:
        raise ValidationError("No recipients found for this audience", field="target_audience")

    try:
        campaign = await crud.create_campaign(
            db, recipients,
            name=name.strip(), subject=subject.strip(), html_content=html_content,
            target_audience=target_audience, status="draft", created_by=actor.user_id,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create campaign %r", name)
        raise StoreError() from exc

    await crud.log_admin_activity(
        db, actor.user_id, "create_campaign", "email_campaign", campaign.id,
        description=f"Created campaign '{campaign.name}' for {target_audience}",
        new_values={"recipients": campaign.total_recipients},
    )
    return campaign


async def send_campaign(db: AsyncSession, actor: AuthContext, campaign_id: str) -> EmailCampaign:
    """Deliver to every pending recipient and record the outcome per row."""
    _require(actor)
    campaign = await crud.get_campaign(db, campaign_id)
    if campaign is None:
        raise NotFound("Campaign")
    if campaign.status != "draft":
        raise InvalidTransition(campaign.status, "sending")
    if not email.is_configured():
        raise EmailNotConfigured()

    campaign.status = "sending"
    await db.commit()

    # Plain values: a rollback below expires every loaded instance
    subject, html_content = campaign.subject, campaign.html_content
    pending = [
        (r.id, r.email, r.name)
        for r in await crud.list_campaign_recipients(db, campaign_id, status="pending")
    ]

    sent = failed = 0
    for recipient_id, address, name in pending:
        if not address:
            error = "No email found"
        else:
            html = email.render_campaign(html_content, name)
            error = await email.deliver(db, CAMPAIGN_EMAIL_TYPE, address, subject, html)

        if error is None:
            sent += 1
            values = {"status": "sent", "sent_at": datetime.now(timezone.utc)}
        else:
            failed += 1
            values = {"status": "failed", "error_message": error}
        try:
            await crud.update_campaign_recipient(db, recipient_id, **values)
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to record campaign %s delivery to %s", campaign_id, address)

    await db.refresh(campaign)
    campaign.status = "failed" if failed and not sent else "completed"
    campaign.sent_at = datetime.now(timezone.utc)
    campaign.sent_count += sent
    campaign.failed_count += failed
    await db.commit()

    logger.info("Campaign %s sent: %d delivered, %d failed", campaign_id, sent, failed)
    await crud.log_admin_activity(
        db, actor.user_id, "send_campaign", "email_campaign", campaign.id,
        description=f"Sent campaign '{campaign.name}'",
        new_values={"sent": sent, "failed": failed},
    )
    return campaign
