"""Staff jobs: assigned bookings, lifecycle actions, completion capture."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_role
from cleaning_portal.models.booking import Booking
from cleaning_portal.schemas import (
    ActionRequest, BookingRead, CompletionRead, HoursRequest, PhotoBatchRead,
    PhotoFailure, StaffJobRead, TaskPhotoRead,
)
from cleaning_portal.services import booking_lifecycle, booking_views, completion, reports
from cleaning_portal.services.auth import AuthContext

router = APIRouter(prefix="/api/staff", tags=["staff"])

_staff_dep = require_role("staff")


async def _job_read(db: AsyncSession, booking: Booking, auth: AuthContext) -> StaffJobRead:
    job = StaffJobRead.model_validate(booking)
    job.available_actions = booking_lifecycle.available_actions(booking, auth)
    job.photos = [TaskPhotoRead.model_validate(p) for p in await crud.list_task_photos(db, booking.id)]
    return job


def _batch_read(batch: completion.PhotoBatchResult) -> PhotoBatchRead:
    return PhotoBatchRead(
        uploaded=[TaskPhotoRead.model_validate(p) for p in batch.uploaded],
        failed=[PhotoFailure(filename=e.filename, detail=e.detail) for e in batch.failed],
    )


async def _read_uploads(files: list[UploadFile]) -> list[completion.PhotoUpload]:
    return [
        completion.PhotoUpload(filename=f.filename or "photo.jpg", data=await f.read())
        for f in files
    ]


@router.get("/jobs", response_model=list[BookingRead])
async def list_jobs(
    scope: str = "active",
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    return await booking_views.staff_bookings(db, auth, scope)


@router.get("/jobs/{booking_id}", response_model=StaffJobRead)
async def get_job(
    booking_id: str,
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    return await _job_read(db, booking, auth)


@router.post("/jobs/{booking_id}/action", response_model=StaffJobRead)
async def job_action(
    booking_id: str,
    body: ActionRequest,
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    """Accept, start or cancel an assigned job."""
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    await booking_lifecycle.apply_action(db, booking, body.action, auth)
    return await _job_read(db, booking, auth)


@router.post("/jobs/{booking_id}/hours", response_model=BookingRead)
async def save_hours(
    booking_id: str,
    body: HoursRequest,
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    return await completion.record_hours(db, booking, auth, body.hours_worked, body.remarks)


@router.post("/jobs/{booking_id}/complete", response_model=CompletionRead)
async def complete_job(
    booking_id: str,
    hours_worked: str = Form(""),
    remarks: str = Form(""),
    files: list[UploadFile] = File(default=[]),
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    """Record hours, mark the job completed, then store any photos."""
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    result = await completion.capture_completion(
        db, booking, auth, hours_worked, remarks or None,
        photos=await _read_uploads(files),
    )
    return CompletionRead(
        booking=BookingRead.model_validate(result.booking),
        photos=_batch_read(result.photos) if result.photos else None,
        photo_error=result.photo_error,
    )


@router.post("/jobs/{booking_id}/photos", response_model=PhotoBatchRead, status_code=201)
async def upload_photos(
    booking_id: str,
    files: list[UploadFile] = File(...),
    caption: str = Form(""),
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    batch = await completion.upload_task_photos(
        db, booking, auth, await _read_uploads(files), caption=caption or None,
    )
    return _batch_read(batch)


@router.delete("/jobs/{booking_id}/photos/{photo_id}")
async def delete_photo(
    booking_id: str,
    photo_id: str,
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    photo = await crud.get_task_photo(db, photo_id)
    if not photo or photo.booking_id != booking.id:
        raise HTTPException(404, "Photo not found")
    await completion.delete_task_photo(db, photo, booking, auth)
    return {"ok": True}


@router.get("/earnings")
async def earnings(
    auth: AuthContext = Depends(_staff_dep),
    db: AsyncSession = Depends(get_db),
):
    return await reports.staff_earnings(db, auth.user_id)
