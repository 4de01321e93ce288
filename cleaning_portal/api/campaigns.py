"""Admin bulk email campaigns."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_capability
from cleaning_portal.errors import NotFound
from cleaning_portal.schemas import CampaignCreate, CampaignDetail, CampaignRead, CampaignRecipientRead
from cleaning_portal.services import campaigns
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

router = APIRouter(prefix="/api/admin/campaigns", tags=["campaigns"])

_edit_dep = require_capability(Capability.EDIT_SETTINGS)


@router.get("", response_model=list[CampaignRead])
async def list_campaigns(
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_campaigns(db)


@router.get("/audience/{audience}")
async def preview_audience(
    audience: str,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    recipients = await campaigns.resolve_audience(db, audience)
    return {"audience": audience, "count": len(recipients)}


@router.post("", response_model=CampaignRead, status_code=201)
async def create_campaign(
    body: CampaignCreate,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    """Save a draft campaign with one pending recipient per user in the audience."""
    return await campaigns.create_campaign(db, auth, **body.model_dump())


@router.get("/{campaign_id}", response_model=CampaignDetail)
async def get_campaign(
    campaign_id: str,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    campaign = await crud.get_campaign(db, campaign_id)
    if campaign is None:
        raise NotFound("Campaign")
    detail = CampaignDetail.model_validate(campaign)
    detail.recipients = [
        CampaignRecipientRead.model_validate(r)
        for r in await crud.list_campaign_recipients(db, campaign_id)
    ]
    return detail


@router.post("/{campaign_id}/send", response_model=CampaignRead)
async def send_campaign(
    campaign_id: str,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    return await campaigns.send_campaign(db, auth, campaign_id)
