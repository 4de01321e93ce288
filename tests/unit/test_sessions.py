from datetime import datetime, timedelta, timezone

import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleaning_portal.db import crud
from cleaning_portal.models import Base, User, UserSession
from cleaning_portal.services import auth
from cleaning_portal.services.permissions import ALL_CAPABILITIES


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def user(db):
    return await crud.create_user(db, "u@test.com", auth.hash_password("secret-pass"), full_name="Uma")


async def _session_count(db):
    return len((await db.execute(select(UserSession))).scalars().all())


def test_password_hashing():
    hashed = auth.hash_password("correct horse")
    assert auth.verify_password("correct horse", hashed)
    assert not auth.verify_password("wrong", hashed)


async def test_only_token_hash_is_stored(db, user):
    token = await auth.create_session(user, db)
    row = (await db.execute(select(UserSession))).scalars().one()
    assert row.token_hash != token
    assert row.token_hash == auth._hash_token(token)


async def test_activity_keeps_session_alive(db, user):
    token = await auth.create_session(user, db)
    start = datetime.now(timezone.utc)

    assert (await auth.validate_session(token, db, now=start + timedelta(minutes=10))).id == user.id
    # Ten more minutes: 20 since login but only 10 since last activity
    assert (await auth.validate_session(token, db, now=start + timedelta(minutes=20))).id == user.id


async def test_idle_session_is_deleted(db, user):
    token = await auth.create_session(user, db)
    later = datetime.now(timezone.utc) + auth.SESSION_IDLE_TIMEOUT + timedelta(minutes=1)

    assert await auth.validate_session(token, db, now=later) is None
    assert await _session_count(db) == 0


async def test_absolute_lifetime_is_enforced(db, user):
    token = await auth.create_session(user, db)
    row = (await db.execute(select(UserSession))).scalars().one()
    row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    await db.commit()

    assert await auth.validate_session(token, db) is None
    assert await _session_count(db) == 0


async def test_inactive_user_is_rejected(db, user):
    token = await auth.create_session(user, db)
    user.is_active = False
    await db.commit()
    assert await auth.validate_session(token, db) is None


async def test_logout_removes_session(db, user):
    token = await auth.create_session(user, db)
    await auth.remove_session(token, db)
    assert await auth.validate_session(token, db) is None


async def test_user_without_role_row_is_a_customer(db):
    bare = User(email="bare@test.com", password_hash="x")
    db.add(bare)
    await db.commit()

    ctx = await auth.build_auth_context(bare, db)
    assert ctx.role == "customer"
    assert ctx.capabilities == frozenset()
    assert ctx.display_name == "bare@test.com"


async def test_admin_context_carries_capabilities(db):
    admin = await crud.create_user(db, "a@test.com", "x", role="admin", full_name="Ada")
    await crud.upsert_admin_details(db, admin.id, admin_level="super")

    ctx = await auth.build_auth_context(admin, db)
    assert ctx.role == "admin"
    assert ctx.display_name == "Ada"
    assert ctx.capabilities == ALL_CAPABILITIES
