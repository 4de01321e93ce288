"""Completion capture: hours worked, remarks and job photos.

Ordering for ``capture_completion``:

1. validate hours (nothing written on failure)
2. persist hours + remarks
3. guarded transition ``in_progress -> completed``
4. optional photo batch; its outcome is reported but never undoes step 3
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.config import get_settings
from cleaning_portal.db import crud
from cleaning_portal.errors import (
    AuthorizationGap, InvalidTransition, TooManyFiles, UploadError, ValidationError,
)
from cleaning_portal.models.booking import Booking, TaskPhoto
from cleaning_portal.services import photo_store
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.booking_lifecycle import can_act_on, transition_booking, write_booking

logger = logging.getLogger(__name__)

_settings = get_settings()

# Hours and photos are only captured once work is underway
_WORK_STATUSES = ("in_progress", "completed")


@dataclass
class PhotoUpload:
    filename: str
    data: bytes


@dataclass
class PhotoBatchResult:
    uploaded: list[TaskPhoto] = field(default_factory=list)
    failed: list[UploadError] = field(default_factory=list)


@dataclass
class CompletionResult:
    booking: Booking
    photos: PhotoBatchResult | None = None
    photo_error: str | None = None


def parse_hours(raw) -> float:
    """Parse a hours-worked form value. Must be a finite number > 0."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError("Hours worked is required", field="hours_worked")
    if isinstance(raw, bool):
        raise ValidationError("Please enter valid hours", field="hours_worked")
    try:
        hours = float(raw)
    except (TypeError, ValueError):
        raise ValidationError("Please enter valid hours", field="hours_worked")
    if not math.isfinite(hours) or hours <= 0:
        raise ValidationError("Hours worked must be greater than zero", field="hours_worked")
    return hours


def _require_actor(booking: Booking, actor: AuthContext) -> None:
    if not can_act_on(booking, actor):
        raise AuthorizationGap("You are not assigned to this job")


async def record_hours(
    db: AsyncSession, booking: Booking, actor: AuthContext,
    hours_raw, remarks: str | None = None,
) -> Booking:
    """Save hours (and remarks) without changing status."""
    _require_actor(booking, actor)
    hours = parse_hours(hours_raw)
    if booking.status not in _WORK_STATUSES:
        raise ValidationError("Hours can only be recorded once the job has started", field="hours_worked")

    values: dict = {"staff_hours_worked": hours}
    if remarks is not None and remarks.strip():
        values["staff_notes"] = remarks.strip()
    if not await write_booking(db, booking, values, expected_status=booking.status):
        await db.refresh(booking)
        raise InvalidTransition(booking.status, booking.status, "Booking was changed by someone else. Reload and try again.")
    return booking


async def upload_task_photos(
    db: AsyncSession, booking: Booking, actor: AuthContext,
    files: list[PhotoUpload], caption: str | None = None,
) -> PhotoBatchResult:
    """Store one batch of job photos.

    The whole batch is refused with ``TooManyFiles`` if it is over the limit.
    Otherwise every file is attempted; failures are collected, not raised.
    """
    _require_actor(booking, actor)
    if booking.status not in _WORK_STATUSES:
        raise ValidationError("Photos can only be added once the job has started", field="photos")

    limit = _settings.completion.max_photos_per_batch
    if len(files) > limit:
        raise TooManyFiles(len(files), limit)

    bucket = _settings.storage.task_photo_bucket
    booking_id = booking.id
    batch = PhotoBatchResult()
    rolled_back = False
    for f in files:
        try:
            path = await photo_store.save_object(bucket, actor.user_id, booking_id, f.data, f.filename)
        except UploadError as exc:
            logger.warning("Photo upload failed for booking %s: %s", booking_id, exc.detail)
            batch.failed.append(exc)
            continue

        try:
            photo = await crud.create_task_photo(
                db, booking_id, actor.user_id, photo_store.public_url(bucket, path),
                storage_path=path, caption=caption,
            )
        except SQLAlchemyError:
            await db.rollback()
            rolled_back = True
            logger.exception("Failed to record photo %s for booking %s", path, booking_id)
            await photo_store.delete_object(bucket, path)
            batch.failed.append(UploadError(f.filename))
            continue
        batch.uploaded.append(photo)

    if rolled_back:
        await db.refresh(booking)
    return batch


async def delete_task_photo(db: AsyncSession, photo: TaskPhoto, booking: Booking, actor: AuthContext) -> None:
    _require_actor(booking, actor)
    if actor.role == "staff" and photo.staff_id != actor.user_id:
        raise AuthorizationGap("You can only delete your own photos")
    if photo.storage_path:
        await photo_store.delete_object(_settings.storage.task_photo_bucket, photo.storage_path)
    await crud.delete_task_photo(db, photo)


async def capture_completion(
    db: AsyncSession,
    booking: Booking,
    actor: AuthContext,
    hours_raw,
    remarks: str | None = None,
    photos: list[PhotoUpload] | None = None,
) -> CompletionResult:
    """Record hours worked, then complete the booking, then store photos."""
    _require_actor(booking, actor)
    hours = parse_hours(hours_raw)
    if booking.status != "in_progress":
        raise InvalidTransition(booking.status, "completed")

    values: dict = {"staff_hours_worked": hours}
    if remarks is not None and remarks.strip():
        values["staff_notes"] = remarks.strip()
    if not await write_booking(db, booking, values, expected_status="in_progress"):
        await db.refresh(booking)
        raise InvalidTransition(booking.status, "completed")

    await transition_booking(db, booking, "completed", actor)
    result = CompletionResult(booking=booking)

    if photos:
        try:
            result.photos = await upload_task_photos(db, booking, actor, photos)
        except TooManyFiles as exc:
            result.photo_error = exc.detail
    return result
