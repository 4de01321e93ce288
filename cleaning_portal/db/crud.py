"""CRUD operations for all portal tables."""

from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import select, delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.models import (
    User, Profile, UserRole, AdminDetails, StaffDetails,
    Booking, TaskPhoto,
    BlogPost, SiteSetting, Enquiry,
    EmailLog, AdminActivityLog,
    EmailCampaign, CampaignRecipient,
    StaffPayroll,
)

ModelT = TypeVar("ModelT")


# ── Users / Profiles ─────────────────────────────────────

async def get_user(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalars().first()


async def create_user(
    db: AsyncSession, email: str, password_hash: str, role: str = "customer",
    full_name: str | None = None, phone: str | None = None,
) -> User:
    """Create user + profile + role row in a single commit."""
    user = User(email=email.strip().lower(), password_hash=password_hash)
    db.add(user)
    await db.flush()
    db.add(Profile(id=user.id, full_name=full_name, phone=phone))
    db.add(UserRole(user_id=user.id, role=role))
    await db.commit()
    await db.refresh(user)
    return user


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    return await db.get(Profile, user_id)


async def update_profile(db: AsyncSession, profile: Profile, **kwargs) -> Profile:
    for k, v in kwargs.items():
        if v is not None:
            setattr(profile, k, v)
    await db.commit()
    await db.refresh(profile)
    return profile


async def list_users_with_roles(db: AsyncSession, role: str | None = None) -> list[tuple[User, Profile | None, str]]:
    """Return (user, profile, role) rows; users without a role row count as customers."""
    result = await db.execute(
        select(User, Profile)
        .outerjoin(Profile, Profile.id == User.id)
        .order_by(User.created_at.desc())
    )
    rows = result.all()
    roles = await get_roles_for_users(db, [u.id for u, _ in rows])
    out = []
    for user, profile in rows:
        user_role = roles.get(user.id, "customer")
        if role is None or user_role == role:
            out.append((user, profile, user_role))
    return out


# ── Roles ────────────────────────────────────────────────

async def get_user_role(db: AsyncSession, user_id: str) -> str | None:
    result = await db.execute(
        select(UserRole)
        .where(UserRole.user_id == user_id)
        .order_by(UserRole.created_at.desc())
        .limit(1)
    )
    row = result.scalars().first()
    return row.role if row else None


async def get_roles_for_users(db: AsyncSession, user_ids: list[str]) -> dict[str, str]:
    if not user_ids:
        return {}
    result = await db.execute(
        select(UserRole)
        .where(UserRole.user_id.in_(user_ids))
        .order_by(UserRole.created_at)
    )
    # Later rows win
    return {r.user_id: r.role for r in result.scalars().all()}


async def list_role_rows(db: AsyncSession, user_id: str) -> list[UserRole]:
    result = await db.execute(select(UserRole).where(UserRole.user_id == user_id))
    return list(result.scalars().all())


async def delete_user_roles(db: AsyncSession, user_id: str) -> None:
    """Delete role rows. Does not commit."""
    await db.execute(delete(UserRole).where(UserRole.user_id == user_id))


async def add_user_role(db: AsyncSession, user_id: str, role: str) -> UserRole:
    """Stage a role row. Does not commit."""
    row = UserRole(user_id=user_id, role=role)
    db.add(row)
    await db.flush()
    return row


async def list_user_ids_with_role(db: AsyncSession, role: str) -> list[str]:
    result = await db.execute(select(UserRole.user_id).where(UserRole.role == role))
    return list(result.scalars().all())


# ── Admin / Staff details ────────────────────────────────

async def get_admin_details(db: AsyncSession, user_id: str) -> AdminDetails | None:
    result = await db.execute(select(AdminDetails).where(AdminDetails.user_id == user_id))
    return result.scalars().first()


async def upsert_admin_details(db: AsyncSession, user_id: str, **kwargs) -> AdminDetails:
    details = await get_admin_details(db, user_id)
    if details is None:
        details = AdminDetails(user_id=user_id)
        db.add(details)
    for k, v in kwargs.items():
        if v is not None:
            setattr(details, k, v)
    await db.commit()
    await db.refresh(details)
    return details


async def get_staff_details(db: AsyncSession, user_id: str) -> StaffDetails | None:
    result = await db.execute(select(StaffDetails).where(StaffDetails.user_id == user_id))
    return result.scalars().first()


async def upsert_staff_details(db: AsyncSession, user_id: str, **kwargs) -> StaffDetails:
    details = await get_staff_details(db, user_id)
    if details is None:
        details = StaffDetails(user_id=user_id)
        db.add(details)
    for k, v in kwargs.items():
        if v is not None:
            setattr(details, k, v)
    await db.commit()
    await db.refresh(details)
    return details


async def list_active_staff(db: AsyncSession) -> list[tuple[User, Profile | None, StaffDetails | None]]:
    staff_ids = await list_user_ids_with_role(db, "staff")
    if not staff_ids:
        return []
    result = await db.execute(
        select(User, Profile, StaffDetails)
        .outerjoin(Profile, Profile.id == User.id)
        .outerjoin(StaffDetails, StaffDetails.user_id == User.id)
        .where(User.id.in_(staff_ids), User.is_active == True)
        .order_by(Profile.full_name)
    )
    return [
        (user, profile, details)
        for user, profile, details in result.all()
        if details is None or details.is_active
    ]


# ── Bookings ─────────────────────────────────────────────

async def create_booking(db: AsyncSession, **kwargs) -> Booking:
    booking = Booking(**kwargs)
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


async def get_booking(db: AsyncSession, booking_id: str) -> Booking | None:
    return await db.get(Booking, booking_id)


async def list_bookings(
    db: AsyncSession,
    customer_id: str | None = None,
    staff_id: str | None = None,
    statuses: tuple[str, ...] | list[str] | None = None,
    limit: int | None = None,
) -> list[Booking]:
    query = select(Booking)
    if customer_id is not None:
        query = query.where(Booking.customer_id == customer_id)
    if staff_id is not None:
        query = query.where(Booking.staff_id == staff_id)
    if statuses:
        query = query.where(Booking.status.in_(list(statuses)))
    query = query.order_by(Booking.preferred_date.desc(), Booking.created_at.desc())
    if limit:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_booking(db: AsyncSession, booking: Booking, **kwargs) -> Booking:
    """Apply field updates and commit. ``None`` values are written as-is."""
    for k, v in kwargs.items():
        setattr(booking, k, v)
    await db.commit()
    await db.refresh(booking)
    return booking


async def count_bookings_by_status(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(
        select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
    )
    return {status: count for status, count in result.all()}


async def sum_booking_costs(db: AsyncSession) -> tuple[float, float]:
    """Return (estimated total, actual total over completed bookings)."""
    result = await db.execute(select(func.coalesce(func.sum(Booking.estimated_cost), 0.0)))
    estimated = float(result.scalar_one())
    result = await db.execute(
        select(func.coalesce(func.sum(Booking.actual_cost), 0.0))
        .where(Booking.status == "completed")
    )
    actual = float(result.scalar_one())
    return estimated, actual


async def count_unassigned_pending(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Booking.id))
        .where(Booking.status == "pending", Booking.staff_id.is_(None))
    )
    return int(result.scalar_one())


# ── Task photos ──────────────────────────────────────────

async def create_task_photo(
    db: AsyncSession, booking_id: str, staff_id: str, photo_url: str,
    storage_path: str = "", caption: str | None = None,
) -> TaskPhoto:
    photo = TaskPhoto(
        booking_id=booking_id, staff_id=staff_id, photo_url=photo_url,
        storage_path=storage_path, caption=caption,
    )
    db.add(photo)
    await db.commit()
    await db.refresh(photo)
    return photo


async def get_task_photo(db: AsyncSession, photo_id: str) -> TaskPhoto | None:
    return await db.get(TaskPhoto, photo_id)


async def list_task_photos(db: AsyncSession, booking_id: str) -> list[TaskPhoto]:
    result = await db.execute(
        select(TaskPhoto)
        .where(TaskPhoto.booking_id == booking_id)
        .order_by(TaskPhoto.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def delete_task_photo(db: AsyncSession, photo: TaskPhoto) -> None:
    await db.delete(photo)
    await db.commit()


# ── CMS (generic) ────────────────────────────────────────

async def list_cms(db: AsyncSession, model: type[ModelT], active_only: bool = False) -> list[ModelT]:
    query = select(model)
    if active_only and hasattr(model, "is_active"):
        query = query.where(model.is_active == True)
    if hasattr(model, "display_order"):
        query = query.order_by(model.display_order, model.created_at)
    else:
        query = query.order_by(model.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_cms(db: AsyncSession, model: type[ModelT], item_id: str) -> ModelT | None:
    return await db.get(model, item_id)


async def create_cms(db: AsyncSession, model: type[ModelT], **kwargs) -> ModelT:
    item = model(**kwargs)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def update_cms(db: AsyncSession, item: ModelT, **kwargs) -> ModelT:
    for k, v in kwargs.items():
        if v is not None:
            setattr(item, k, v)
    await db.commit()
    await db.refresh(item)
    return item


async def delete_cms(db: AsyncSession, item: Any) -> None:
    await db.delete(item)
    await db.commit()


async def list_published_posts(db: AsyncSession) -> list[BlogPost]:
    result = await db.execute(
        select(BlogPost)
        .where(BlogPost.is_published == True)
        .order_by(BlogPost.published_at.desc())
    )
    return list(result.scalars().all())


async def get_blog_post_by_slug(db: AsyncSession, slug: str) -> BlogPost | None:
    result = await db.execute(select(BlogPost).where(BlogPost.slug == slug))
    return result.scalars().first()


async def get_site_setting(db: AsyncSession, key: str) -> SiteSetting | None:
    result = await db.execute(select(SiteSetting).where(SiteSetting.setting_key == key))
    return result.scalars().first()


# ── Enquiries ────────────────────────────────────────────

async def create_enquiry(db: AsyncSession, **kwargs) -> Enquiry:
    return await create_cms(db, Enquiry, **kwargs)


async def list_enquiries(db: AsyncSession, status: str | None = None) -> list[Enquiry]:
    query = select(Enquiry).order_by(Enquiry.created_at.desc())
    if status:
        query = query.where(Enquiry.status == status)
    result = await db.execute(query)
    return list(result.scalars().all())


# ── Audit ────────────────────────────────────────────────

async def create_email_log(
    db: AsyncSession, email_type: str, recipient: str, subject: str,
    status: str, error: str | None = None,
) -> EmailLog:
    log = EmailLog(
        email_type=email_type, recipient=recipient, subject=subject,
        status=status, error=error,
    )
    db.add(log)
    await db.commit()
    return log


async def list_email_logs(db: AsyncSession, limit: int = 100) -> list[EmailLog]:
    result = await db.execute(
        select(EmailLog).order_by(EmailLog.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def log_admin_activity(
    db: AsyncSession, admin_id: str, action_type: str, entity_type: str,
    entity_id: str | None = None, description: str = "",
    old_values: dict | None = None, new_values: dict | None = None,
) -> AdminActivityLog:
    entry = AdminActivityLog(
        admin_id=admin_id, action_type=action_type, entity_type=entity_type,
        entity_id=entity_id, description=description,
        old_values=old_values, new_values=new_values,
    )
    db.add(entry)
    await db.commit()
    return entry


async def list_admin_activity(db: AsyncSession, limit: int = 100) -> list[AdminActivityLog]:
    result = await db.execute(
        select(AdminActivityLog).order_by(AdminActivityLog.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())


# ── Campaigns ────────────────────────────────────────────

async def create_campaign(
    db: AsyncSession, recipients: list[dict], **kwargs,
) -> EmailCampaign:
    """Insert a campaign and its pending recipient rows in one commit."""
    campaign = EmailCampaign(total_recipients=len(recipients), **kwargs)
    db.add(campaign)
    await db.flush()
    for r in recipients:
        db.add(CampaignRecipient(campaign_id=campaign.id, status="pending", **r))
    await db.commit()
    await db.refresh(campaign)
    return campaign


async def get_campaign(db: AsyncSession, campaign_id: str) -> EmailCampaign | None:
    return await db.get(EmailCampaign, campaign_id)


async def list_campaigns(db: AsyncSession) -> list[EmailCampaign]:
    result = await db.execute(select(EmailCampaign).order_by(EmailCampaign.created_at.desc()))
    return list(result.scalars().all())


async def list_campaign_recipients(
    db: AsyncSession, campaign_id: str, status: str | None = None,
) -> list[CampaignRecipient]:
    query = select(CampaignRecipient).where(CampaignRecipient.campaign_id == campaign_id)
    if status:
        query = query.where(CampaignRecipient.status == status)
    result = await db.execute(query.order_by(CampaignRecipient.created_at, CampaignRecipient.id))
    return list(result.scalars().all())


# ── Payroll ──────────────────────────────────────────────

async def create_payroll(db: AsyncSession, **kwargs) -> StaffPayroll:
    record = StaffPayroll(**kwargs)
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def get_payroll(db: AsyncSession, payroll_id: str) -> StaffPayroll | None:
    return await db.get(StaffPayroll, payroll_id)


async def get_payroll_for_booking(db: AsyncSession, booking_id: str) -> StaffPayroll | None:
    result = await db.execute(select(StaffPayroll).where(StaffPayroll.booking_id == booking_id))
    return result.scalars().first()


async def list_payroll(
    db: AsyncSession, staff_id: str | None = None, payment_status: str | None = None,
) -> list[StaffPayroll]:
    query = select(StaffPayroll)
    if staff_id:
        query = query.where(StaffPayroll.staff_id == staff_id)
    if payment_status:
        query = query.where(StaffPayroll.payment_status == payment_status)
    query = query.order_by(StaffPayroll.pay_period_end.desc(), StaffPayroll.created_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def payroll_totals(db: AsyncSession) -> dict[str, dict]:
    """Record counts and net pay summed per payment status."""
    result = await db.execute(
        select(StaffPayroll.payment_status, func.count(), func.coalesce(func.sum(StaffPayroll.net_pay), 0.0))
        .group_by(StaffPayroll.payment_status)
    )
    return {status: {"count": count, "net_pay": float(total)} for status, count, total in result.all()}


async def update_campaign_recipient(db: AsyncSession, recipient_id: str, **values) -> None:
    await db.execute(
        update(CampaignRecipient).where(CampaignRecipient.id == recipient_id).values(**values)
    )
    await db.commit()
