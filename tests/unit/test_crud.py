from datetime import date

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleaning_portal.db import crud
from cleaning_portal.models import Base, BlogPost, ServiceLocation
from cleaning_portal.services import reports


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


async def _booking(db, customer_id, **kwargs):
    fields = dict(
        customer_id=customer_id, first_name="A", last_name="B", email="a@test.com",
        phone="1", service_type="residential", property_type="house",
        service_address="1 St", preferred_date=date(2026, 11, 2),
    )
    fields.update(kwargs)
    return await crud.create_booking(db, **fields)


async def test_create_user_creates_profile_and_role(db):
    user = await crud.create_user(db, " Mixed@Case.com ", "x", role="staff", full_name="Mo")
    assert user.email == "mixed@case.com"
    assert (await crud.get_profile(db, user.id)).full_name == "Mo"
    assert await crud.get_user_role(db, user.id) == "staff"
    assert (await crud.get_user_by_email(db, "MIXED@case.com")).id == user.id


async def test_list_users_with_roles_filters(db):
    await crud.create_user(db, "c@test.com", "x", role="customer")
    staff = await crud.create_user(db, "s@test.com", "x", role="staff")
    rows = await crud.list_users_with_roles(db, role="staff")
    assert [u.id for u, _, _ in rows] == [staff.id]


async def test_list_active_staff_skips_inactive_details(db):
    s1 = await crud.create_user(db, "s1@test.com", "x", role="staff", full_name="A")
    s2 = await crud.create_user(db, "s2@test.com", "x", role="staff", full_name="B")
    await crud.upsert_staff_details(db, s2.id, is_active=False)
    rows = await crud.list_active_staff(db)
    assert [u.id for u, _, _ in rows] == [s1.id]


async def test_cms_active_only_and_ordering(db):
    await crud.create_cms(db, ServiceLocation, area_name="North", display_order=2)
    await crud.create_cms(db, ServiceLocation, area_name="City", display_order=1)
    await crud.create_cms(db, ServiceLocation, area_name="Hidden", display_order=0, is_active=False)
    items = await crud.list_cms(db, ServiceLocation, active_only=True)
    assert [i.area_name for i in items] == ["City", "North"]


async def test_published_posts_only(db):
    await crud.create_cms(db, BlogPost, title="Draft", slug="draft", category="tips")
    await crud.create_cms(db, BlogPost, title="Live", slug="live", category="tips", is_published=True)
    assert [p.slug for p in await crud.list_published_posts(db)] == ["live"]


async def test_dashboard_summary(db):
    cust = await crud.create_user(db, "c@test.com", "x")
    staff = await crud.create_user(db, "s@test.com", "x", role="staff")
    await _booking(db, cust.id, estimated_cost=100.0)
    await _booking(db, cust.id, staff_id=staff.id, status="completed", estimated_cost=200.0, actual_cost=180.0)
    await _booking(db, cust.id, status="cancelled", actual_cost=50.0)

    summary = await reports.dashboard_summary(db)
    assert summary["bookings_by_status"]["pending"] == 1
    assert summary["bookings_by_status"]["in_progress"] == 0
    assert summary["total_bookings"] == 3
    assert summary["estimated_revenue"] == 300.0
    assert summary["actual_revenue"] == 180.0
    assert summary["unassigned_pending"] == 1


async def test_staff_earnings(db):
    cust = await crud.create_user(db, "c@test.com", "x")
    staff = await crud.create_user(db, "s@test.com", "x", role="staff")
    await crud.upsert_staff_details(db, staff.id, hourly_rate=30.0)
    await _booking(db, cust.id, staff_id=staff.id, status="completed", staff_hours_worked=2.5)
    await _booking(db, cust.id, staff_id=staff.id, status="in_progress", staff_hours_worked=1.0)

    earnings = await reports.staff_earnings(db, staff.id)
    assert earnings["total_hours"] == 2.5
    assert earnings["total_earnings"] == 75.0
    assert len(earnings["jobs"]) == 1
