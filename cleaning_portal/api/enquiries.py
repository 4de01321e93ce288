"""Enquiries API: public contact form, newsletter signup, admin inbox."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_capability
from cleaning_portal.models.cms import Enquiry
from cleaning_portal.schemas import (
    EnquiryCreate, EnquiryRead, EnquiryReply, EnquiryUpdate, NewsletterSignup,
)
from cleaning_portal.services import cms
from cleaning_portal.services.auth import AuthContext
from cleaning_portal.services.permissions import Capability

router = APIRouter(tags=["enquiries"])

_edit_dep = require_capability(Capability.EDIT_SETTINGS)


@router.post("/api/enquiries", response_model=EnquiryRead, status_code=201)
async def submit_enquiry(body: EnquiryCreate, db: AsyncSession = Depends(get_db)):
    return await cms.submit_enquiry(db, **body.model_dump())


@router.post("/api/newsletter")
async def newsletter_signup(body: NewsletterSignup, db: AsyncSession = Depends(get_db)):
    sent = await cms.subscribe_newsletter(db, body.email)
    return {"ok": True, "sent": sent}


@router.get("/api/admin/enquiries", response_model=list[EnquiryRead])
async def list_enquiries(
    status: str | None = None,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    return await crud.list_enquiries(db, status=status)


async def _get_enquiry(db: AsyncSession, enquiry_id: str) -> Enquiry:
    enquiry = await crud.get_cms(db, Enquiry, enquiry_id)
    if not enquiry:
        raise HTTPException(404, "Enquiry not found")
    return enquiry


@router.put("/api/admin/enquiries/{enquiry_id}", response_model=EnquiryRead)
async def update_enquiry(
    enquiry_id: str,
    body: EnquiryUpdate,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await _get_enquiry(db, enquiry_id)
    return await cms.update_enquiry(db, enquiry, auth, status=body.status, notes=body.notes)


@router.post("/api/admin/enquiries/{enquiry_id}/reply", response_model=EnquiryRead)
async def reply_to_enquiry(
    enquiry_id: str,
    body: EnquiryReply,
    auth: AuthContext = Depends(_edit_dep),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await _get_enquiry(db, enquiry_id)
    await cms.reply_to_enquiry(db, enquiry, auth, body.message)
    return enquiry
