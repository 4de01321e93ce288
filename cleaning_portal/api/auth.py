"""Auth API: signup, login, logout, profile."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.dependencies import require_auth
from cleaning_portal.schemas import LoginRequest, ProfileUpdate, SignupRequest
from cleaning_portal.services.auth import (
    AuthContext, verify_password, hash_password, SESSION_COOKIE_NAME,
    SESSION_MAX_AGE_DAYS, create_session, remove_session,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_response(token: str, content: dict) -> JSONResponse:
    response = JSONResponse(content=content)
    response.set_cookie(
        SESSION_COOKIE_NAME, token,
        httponly=True, samesite="lax",
        max_age=86400 * SESSION_MAX_AGE_DAYS,
    )
    return response


@router.post("/signup", status_code=201)
async def signup(
    body: SignupRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Self-service signup. New accounts are always customers."""
    if await crud.get_user_by_email(db, body.email):
        raise HTTPException(409, "An account with this email already exists")

    user = await crud.create_user(
        db, body.email, hash_password(body.password), role="customer",
        full_name=body.full_name, phone=body.phone,
    )
    ip = request.client.host if request.client else ""
    token = await create_session(user, db, ip_address=ip)
    response = _session_response(token, {"ok": True, "user_id": user.id, "role": "customer"})
    response.status_code = 201
    return response


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    user = await crud.get_user_by_email(db, body.email)
    if not user or not user.is_active or not verify_password(body.password, user.password_hash):
        raise HTTPException(401, "Invalid credentials")

    ip = request.client.host if request.client else ""
    token = await create_session(user, db, ip_address=ip)

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    role = await crud.get_user_role(db, user.id) or "customer"
    return _session_response(token, {"ok": True, "user_id": user.id, "role": role})


@router.post("/logout")
async def logout(
    request: Request,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if token:
        await remove_session(token, db)
    response = JSONResponse(content={"ok": True})
    response.delete_cookie(SESSION_COOKIE_NAME)
    return response


@router.get("/me")
async def get_me(auth: AuthContext = Depends(require_auth)):
    return {
        "user_id": auth.user_id,
        "email": auth.email,
        "display_name": auth.display_name,
        "role": auth.role,
        "capabilities": sorted(cap.value for cap in auth.capabilities),
    }


@router.put("/profile")
async def update_profile(
    body: ProfileUpdate,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    profile = await crud.get_profile(db, auth.user_id)
    if profile is None:
        raise HTTPException(404, "Profile not found")
    profile = await crud.update_profile(db, profile, **body.model_dump(exclude_unset=True))
    return {
        "id": profile.id,
        "full_name": profile.full_name,
        "phone": profile.phone,
        "address": profile.address,
    }
