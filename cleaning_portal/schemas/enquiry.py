from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr


class EnquiryCreate(BaseModel):
    name: str
    email: EmailStr
    phone: str | None = None
    service_interest: str | None = None
    message: str


class EnquiryRead(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    service_interest: str | None = None
    message: str
    status: str
    notes: str | None = None
    responded_at: datetime | None = None
    responded_by: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class EnquiryUpdate(BaseModel):
    status: str | None = None
    notes: str | None = None


class EnquiryReply(BaseModel):
    message: str


class NewsletterSignup(BaseModel):
    email: EmailStr
