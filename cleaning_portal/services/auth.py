"""Authentication service: DB-backed sessions, bcrypt passwords, idle expiry."""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta

import bcrypt
from fastapi import Request, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.config import get_settings
from cleaning_portal.db import crud
from cleaning_portal.models.auth_models import User, UserSession
from cleaning_portal.services.permissions import load_capabilities

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session_token"

_settings = get_settings()
SESSION_MAX_AGE_DAYS = _settings.session_max_age_days
SESSION_IDLE_TIMEOUT = timedelta(minutes=_settings.session_idle_timeout_minutes)


@dataclass
class AuthContext:
    user_id: str
    role: str  # 'admin' | 'staff' | 'customer'
    email: str
    display_name: str
    capabilities: frozenset = field(default_factory=frozenset)


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def generate_temp_password() -> str:
    return secrets.token_urlsafe(12)


def _hash_token(token: str) -> str:
    """SHA-256 hash of a session token for DB storage."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _aware(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


async def create_session(user: User, db: AsyncSession, ip_address: str = "") -> str:
    """Create a DB-backed session. Returns the raw token (not the hash)."""
    token = secrets.token_urlsafe(48)
    now = datetime.now(timezone.utc)

    session = UserSession(
        user_id=user.id,
        token_hash=_hash_token(token),
        expires_at=now + timedelta(days=SESSION_MAX_AGE_DAYS),
        last_seen_at=now,
        ip_address=ip_address,
    )
    db.add(session)
    await db.commit()
    return token


async def validate_session(token: str, db: AsyncSession, now: datetime | None = None) -> User | None:
    """Look up session by token hash, return User if valid.

    A session past its absolute lifetime or idle for longer than the
    inactivity timeout is deleted. A valid session has ``last_seen_at``
    refreshed.
    """
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == _hash_token(token))
    )
    session = result.scalars().first()
    if not session:
        return None

    if _aware(session.expires_at) <= now or now - _aware(session.last_seen_at) > SESSION_IDLE_TIMEOUT:
        logger.info("Session for user %s expired", session.user_id)
        await db.delete(session)
        await db.commit()
        return None

    user = await db.get(User, session.user_id)
    if not user or not user.is_active:
        return None

    session.last_seen_at = now
    await db.commit()
    return user


async def remove_session(token: str, db: AsyncSession) -> None:
    """Delete a session by token."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == _hash_token(token))
    )
    session = result.scalars().first()
    if session:
        await db.delete(session)
        await db.commit()


async def remove_all_user_sessions(user_id: str, db: AsyncSession) -> None:
    """Invalidate all sessions for a user (e.g. after password change or role change)."""
    result = await db.execute(
        select(UserSession).where(UserSession.user_id == user_id)
    )
    for s in result.scalars().all():
        await db.delete(s)
    await db.commit()


async def build_auth_context(user: User, db: AsyncSession) -> AuthContext:
    role = await crud.get_user_role(db, user.id) or "customer"
    profile = await crud.get_profile(db, user.id)
    return AuthContext(
        user_id=user.id,
        role=role,
        email=user.email,
        display_name=(profile.full_name if profile and profile.full_name else user.email),
        capabilities=await load_capabilities(db, user.id, role),
    )


async def get_current_user(request: Request, db: AsyncSession) -> AuthContext:
    """Read session cookie, validate, return AuthContext or raise 401."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = await validate_session(token, db)
    if not user:
        raise HTTPException(status_code=401, detail="Session expired")

    return await build_auth_context(user, db)
