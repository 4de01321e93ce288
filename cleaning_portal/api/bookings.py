"""Customer bookings: create and read your own."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_auth
from cleaning_portal.schemas import BookingCreate, BookingRead, TaskPhotoRead
from cleaning_portal.services import booking_views
from cleaning_portal.services.auth import AuthContext

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


@router.post("", response_model=BookingRead, status_code=201)
async def create_booking(
    body: BookingCreate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    data = body.model_dump()
    return await booking_views.create_booking(
        db, auth, email_address=data.pop("email"), **data,
    )


@router.get("", response_model=list[BookingRead])
async def list_my_bookings(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await booking_views.customer_bookings(db, auth)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: str,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    return await booking_views.get_booking_for_actor(db, booking_id, auth)


@router.get("/{booking_id}/photos", response_model=list[TaskPhotoRead])
async def list_booking_photos(
    booking_id: str,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_views.get_booking_for_actor(db, booking_id, auth)
    return await crud.list_task_photos(db, booking.id)
