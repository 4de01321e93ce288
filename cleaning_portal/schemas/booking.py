from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, EmailStr


class BookingCreate(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    service_type: str
    property_type: str
    service_address: str
    preferred_date: date
    notes: str | None = None
    service_location_lat: float | None = None
    service_location_lng: float | None = None


class BookingRead(BaseModel):
    id: str
    customer_id: str
    staff_id: str | None = None
    first_name: str
    last_name: str
    email: str
    phone: str
    service_type: str
    property_type: str
    service_address: str
    service_location_lat: float | None = None
    service_location_lng: float | None = None
    preferred_date: date
    status: str
    task_accepted_at: datetime | None = None
    task_started_at: datetime | None = None
    completed_at: datetime | None = None
    estimated_cost: float | None = None
    actual_cost: float | None = None
    estimated_hours: float | None = None
    actual_hours: float | None = None
    staff_hours_worked: float | None = None
    notes: str | None = None
    staff_notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TaskPhotoRead(BaseModel):
    id: str
    booking_id: str
    staff_id: str
    photo_url: str
    caption: str | None = None
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class StaffJobRead(BookingRead):
    available_actions: list[str] = []
    photos: list[TaskPhotoRead] = []


class ActionRequest(BaseModel):
    action: str


class StatusUpdate(BaseModel):
    status: str


class AssignStaffRequest(BaseModel):
    staff_id: str | None = None


class BookingCostsUpdate(BaseModel):
    estimated_cost: float | None = None
    estimated_hours: float | None = None
    actual_cost: float | None = None
    actual_hours: float | None = None


class HoursRequest(BaseModel):
    # Raw form value; parsed and validated by the completion service
    hours_worked: float | str | None = None
    remarks: str | None = None


class BookingReplyRequest(BaseModel):
    message: str


class PhotoFailure(BaseModel):
    filename: str
    detail: str


class PhotoBatchRead(BaseModel):
    uploaded: list[TaskPhotoRead] = []
    failed: list[PhotoFailure] = []


class CompletionRead(BaseModel):
    booking: BookingRead
    photos: PhotoBatchRead | None = None
    photo_error: str | None = None
