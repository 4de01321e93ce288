"""CMS content and website enquiries."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.errors import ValidationError
from cleaning_portal.models.cms import (
    BlogPost, Enquiry, GalleryItem, ServiceLocation, ServiceOffering, SiteSetting, TeamMember,
)
from cleaning_portal.services import email
from cleaning_portal.services.auth import AuthContext

logger = logging.getLogger(__name__)

# URL segment -> model
CMS_RESOURCES = {
    "blog": BlogPost,
    "services": ServiceOffering,
    "gallery": GalleryItem,
    "locations": ServiceLocation,
    "team": TeamMember,
}

# Columns that must be present when creating each resource
REQUIRED_FIELDS = {
    "blog": ("title", "category"),
    "services": ("title", "description"),
    "gallery": ("title", "category", "image_url"),
    "locations": ("area_name",),
    "team": ("name", "role"),
}

ENQUIRY_STATUSES = ("new", "in_progress", "responded", "closed")


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug or "post"


def _prepare(resource: str, values: dict, existing=None) -> dict:
    if resource in ("blog", "services") and not values.get("slug") and existing is None:
        values["slug"] = slugify(values.get("title") or "")
    if resource == "blog" and values.get("is_published"):
        if existing is None or existing.published_at is None:
            values["published_at"] = datetime.now(timezone.utc)
    return values


async def create_item(db: AsyncSession, resource: str, values: dict, actor: AuthContext):
    model = CMS_RESOURCES[resource]
    missing = [f for f in REQUIRED_FIELDS[resource] if not values.get(f)]
    if missing:
        raise ValidationError(f"{missing[0].replace('_', ' ').capitalize()} is required", field=missing[0])

    values = _prepare(resource, {k: v for k, v in values.items() if v is not None})
    if resource == "blog":
        values["author_id"] = actor.user_id
    try:
        item = await crud.create_cms(db, model, **values)
    except IntegrityError:
        await db.rollback()
        raise ValidationError("Slug is already in use", field="slug")
    await crud.log_admin_activity(
        db, actor.user_id, "create", resource, item.id, description=f"Created {resource} item",
    )
    return item


async def update_item(db: AsyncSession, resource: str, item, values: dict, actor: AuthContext):
    values = _prepare(resource, values, existing=item)
    try:
        item = await crud.update_cms(db, item, **values)
    except IntegrityError:
        await db.rollback()
        raise ValidationError("Slug is already in use", field="slug")
    await crud.log_admin_activity(
        db, actor.user_id, "update", resource, item.id, description=f"Updated {resource} item",
    )
    return item


async def upsert_setting(
    db: AsyncSession, key: str, value, category: str | None, actor: AuthContext,
) -> SiteSetting:
    setting = await crud.get_site_setting(db, key)
    if setting is None:
        setting = await crud.create_cms(
            db, SiteSetting, setting_key=key, setting_value=value, category=category,
        )
    else:
        setting.setting_value = value
        if category is not None:
            setting.category = category
        await db.commit()
        await db.refresh(setting)
    await crud.log_admin_activity(
        db, actor.user_id, "update", "site_setting", setting.id, description=f"Set {key}",
    )
    return setting


# ── Enquiries ────────────────────────────────────────────

async def submit_enquiry(db: AsyncSession, **fields) -> Enquiry:
    if not (fields.get("message") or "").strip():
        raise ValidationError("Message is required", field="message")
    enquiry = await crud.create_enquiry(db, status="new", **fields)
    await email.send_email(db, "enquiry", enquiry.email, {
        "name": enquiry.name,
        "email": enquiry.email,
        "phone": enquiry.phone,
        "service_interest": enquiry.service_interest,
        "message": enquiry.message,
    })
    return enquiry


async def update_enquiry(
    db: AsyncSession, enquiry: Enquiry, actor: AuthContext,
    status: str | None = None, notes: str | None = None,
) -> Enquiry:
    if status is not None and status not in ENQUIRY_STATUSES:
        raise ValidationError(f"Unknown status '{status}'", field="status")
    return await crud.update_cms(db, enquiry, status=status, notes=notes)


async def reply_to_enquiry(db: AsyncSession, enquiry: Enquiry, actor: AuthContext, message: str) -> bool:
    """Email a reply and mark the enquiry responded."""
    if not message or not message.strip():
        raise ValidationError("Reply message is required", field="message")
    sent = await email.send_email(db, "enquiry_reply", enquiry.email, {
        "name": enquiry.name,
        "reply_message": message.strip(),
    })
    await crud.update_cms(
        db, enquiry,
        status="responded",
        responded_at=datetime.now(timezone.utc),
        responded_by=actor.user_id,
    )
    logger.info("Enquiry %s replied by %s (sent=%s)", enquiry.id, actor.user_id, sent)
    return sent


async def subscribe_newsletter(db: AsyncSession, address: str) -> bool:
    return await email.send_email(db, "newsletter", address.strip().lower(), {"email": address})
