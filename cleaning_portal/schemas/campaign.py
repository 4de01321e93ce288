from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CampaignCreate(BaseModel):
    name: str
    subject: str
    html_content: str
    target_audience: str = "all_customers"


class CampaignRead(BaseModel):
    id: str
    name: str
    subject: str
    target_audience: str
    status: str
    total_recipients: int
    sent_count: int
    failed_count: int
    sent_at: datetime | None = None
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CampaignRecipientRead(BaseModel):
    id: str
    user_id: str | None = None
    email: str
    name: str | None = None
    status: str
    error_message: str | None = None
    sent_at: datetime | None = None

    model_config = {"from_attributes": True}


class CampaignDetail(CampaignRead):
    html_content: str
    recipients: list[CampaignRecipientRead] = []
