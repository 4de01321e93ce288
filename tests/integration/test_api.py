"""Integration tests for API endpoints."""

from __future__ import annotations

import io

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleaning_portal.db import crud
from cleaning_portal.db.engine import get_db
from cleaning_portal.main import app
from cleaning_portal.models import Base
from cleaning_portal.services import photo_store
from cleaning_portal.services.auth import SESSION_COOKIE_NAME, create_session, hash_password


BOOKING_BODY = {
    "first_name": "Cara",
    "last_name": "Jones",
    "email": "cara@test.com",
    "phone": "0400 111 222",
    "service_type": "deep_clean",
    "property_type": "house",
    "service_address": "12 Harbour St",
    "preferred_date": "2026-11-14",
    "notes": "Side gate code 1234",
}


def _jpeg() -> bytes:
    img = Image.new("RGB", (40, 30), color=(10, 120, 90))
    buf = io.BytesIO()
    img.save(buf, format="JPEG")
    return buf.getvalue()


@pytest_asyncio.fixture
async def portal(tmp_path, monkeypatch):
    """In-memory database seeded with one user per role; yields a client per user."""
    test_engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    tokens = {}
    ids = {}
    async with factory() as db:
        for key, role in [
            ("admin", "admin"), ("manager", "admin"),
            ("staff", "staff"), ("cara", "customer"), ("dan", "customer"),
        ]:
            user = await crud.create_user(
                db, f"{key}@test.com", hash_password("testpass123"), role=role, full_name=key.title(),
            )
            ids[key] = user.id
            tokens[key] = await create_session(user, db, ip_address="127.0.0.1")
        await crud.upsert_admin_details(db, ids["admin"], admin_level="super")
        await crud.upsert_admin_details(db, ids["manager"], admin_level="manager")
        await crud.upsert_staff_details(db, ids["staff"], hourly_rate=30.0)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    store = tmp_path / "storage"
    store.mkdir()
    monkeypatch.setattr(photo_store, "_get_base", lambda: store)

    transport = ASGITransport(app=app)
    clients = {}
    for key, token in tokens.items():
        clients[key] = AsyncClient(
            transport=transport, base_url="http://test", cookies={SESSION_COOKIE_NAME: token},
        )
    clients["anon"] = AsyncClient(transport=transport, base_url="http://test")

    yield {"clients": clients, "ids": ids}

    for c in clients.values():
        await c.aclose()
    app.dependency_overrides.clear()
    await test_engine.dispose()


async def _new_assigned_booking(portal) -> str:
    c = portal["clients"]
    r = await c["cara"].post("/api/bookings", json=BOOKING_BODY)
    assert r.status_code == 201
    booking_id = r.json()["id"]
    r = await c["admin"].put(f"/api/admin/bookings/{booking_id}/assign", json={"staff_id": portal["ids"]["staff"]})
    assert r.status_code == 200
    return booking_id


@pytest.mark.asyncio
async def test_requires_session(portal):
    r = await portal["clients"]["anon"].get("/api/bookings")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_login_and_me(portal):
    anon = portal["clients"]["anon"]
    r = await anon.post("/api/auth/login", json={"email": "staff@test.com", "password": "wrong"})
    assert r.status_code == 401

    r = await anon.post("/api/auth/login", json={"email": "STAFF@test.com", "password": "testpass123"})
    assert r.status_code == 200
    assert r.json()["role"] == "staff"
    assert SESSION_COOKIE_NAME in r.cookies

    r = await portal["clients"]["admin"].get("/api/auth/me")
    assert r.json()["role"] == "admin"
    assert "can_manage_bookings" in r.json()["capabilities"]


@pytest.mark.asyncio
async def test_signup_creates_customer(portal):
    anon = portal["clients"]["anon"]
    r = await anon.post("/api/auth/signup", json={
        "email": "new@test.com", "password": "longenough", "full_name": "New Person",
    })
    assert r.status_code == 201
    assert r.json()["role"] == "customer"

    r = await anon.post("/api/auth/signup", json={
        "email": "new@test.com", "password": "longenough", "full_name": "Again",
    })
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_customer_booking_isolation(portal):
    c = portal["clients"]
    r = await c["cara"].post("/api/bookings", json=BOOKING_BODY)
    assert r.status_code == 201
    data = r.json()
    assert data["status"] == "pending"
    assert data["staff_id"] is None

    r = await c["cara"].get("/api/bookings")
    assert [b["id"] for b in r.json()] == [data["id"]]

    r = await c["dan"].get("/api/bookings")
    assert r.json() == []
    r = await c["dan"].get(f"/api/bookings/{data['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_invalid_service_type_reports_field(portal):
    r = await portal["clients"]["cara"].post("/api/bookings", json={**BOOKING_BODY, "service_type": "gardening"})
    assert r.status_code == 422
    assert r.json()["field"] == "service_type"


@pytest.mark.asyncio
async def test_staff_job_walkthrough(portal):
    c = portal["clients"]
    booking_id = await _new_assigned_booking(portal)

    r = await c["staff"].get("/api/staff/jobs")
    assert [j["id"] for j in r.json()] == [booking_id]
    assert r.json()[0]["status"] == "pending"

    r = await c["staff"].post(f"/api/staff/jobs/{booking_id}/action", json={"action": "start"})
    assert r.status_code == 409
    assert r.json()["current"] == "pending"

    r = await c["staff"].post(f"/api/staff/jobs/{booking_id}/action", json={"action": "accept"})
    assert r.status_code == 200
    assert r.json()["status"] == "confirmed"
    assert r.json()["task_accepted_at"] is not None
    assert r.json()["available_actions"] == ["start", "cancel"]

    r = await c["staff"].post(f"/api/staff/jobs/{booking_id}/action", json={"action": "start"})
    assert r.json()["status"] == "in_progress"

    r = await c["staff"].post(f"/api/staff/jobs/{booking_id}/complete", data={"hours_worked": "abc"})
    assert r.status_code == 422
    assert r.json()["field"] == "hours_worked"

    r = await c["staff"].post(
        f"/api/staff/jobs/{booking_id}/complete",
        data={"hours_worked": "2.5", "remarks": "Oven needed extra time"},
        files=[("files", ("after.jpg", _jpeg(), "image/jpeg"))],
    )
    assert r.status_code == 200
    body = r.json()
    assert body["booking"]["status"] == "completed"
    assert body["booking"]["staff_hours_worked"] == 2.5
    assert body["booking"]["completed_at"] is not None
    assert len(body["photos"]["uploaded"]) == 1

    r = await c["staff"].get("/api/staff/jobs", params={"scope": "completed"})
    assert [j["id"] for j in r.json()] == [booking_id]

    r = await c["staff"].get("/api/staff/earnings")
    assert r.json()["total_earnings"] == 75.0

    r = await c["cara"].get(f"/api/bookings/{booking_id}/photos")
    assert len(r.json()) == 1


@pytest.mark.asyncio
async def test_photo_batch_limit(portal):
    c = portal["clients"]
    booking_id = await _new_assigned_booking(portal)
    for action in ("accept", "start"):
        await c["staff"].post(f"/api/staff/jobs/{booking_id}/action", json={"action": action})

    files = [("files", (f"p{i}.jpg", _jpeg(), "image/jpeg")) for i in range(6)]
    r = await c["staff"].post(f"/api/staff/jobs/{booking_id}/photos", files=files)
    assert r.status_code == 413
    assert r.json()["limit"] == 5

    r = await c["staff"].get(f"/api/staff/jobs/{booking_id}")
    assert r.json()["photos"] == []


@pytest.mark.asyncio
async def test_other_staff_cannot_see_job(portal):
    c = portal["clients"]
    r = await c["cara"].post("/api/bookings", json=BOOKING_BODY)
    booking_id = r.json()["id"]

    r = await c["staff"].get(f"/api/staff/jobs/{booking_id}")
    assert r.status_code == 404
    r = await c["cara"].get("/api/staff/jobs")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_status_change_is_guarded(portal):
    c = portal["clients"]
    booking_id = await _new_assigned_booking(portal)

    r = await c["admin"].put(f"/api/admin/bookings/{booking_id}/status", json={"status": "completed"})
    assert r.status_code == 409

    r = await c["admin"].put(f"/api/admin/bookings/{booking_id}/status", json={"status": "cancelled"})
    assert r.status_code == 200
    assert r.json()["status"] == "cancelled"

    r = await c["admin"].put(f"/api/admin/bookings/{booking_id}/status", json={"status": "pending"})
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_admin_without_capability_is_refused(portal):
    c = portal["clients"]
    r = await c["manager"].get("/api/admin/bookings")
    assert r.status_code == 403
    r = await c["staff"].get("/api/admin/bookings")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_costs_and_summary(portal):
    c = portal["clients"]
    booking_id = await _new_assigned_booking(portal)

    r = await c["admin"].put(f"/api/admin/bookings/{booking_id}/costs", json={"estimated_cost": 240})
    assert r.status_code == 200
    assert r.json()["estimated_cost"] == 240.0
    assert r.json()["status"] == "pending"

    r = await c["admin"].get("/api/admin/reports/summary")
    assert r.json()["estimated_revenue"] == 240.0
    assert r.json()["bookings_by_status"]["pending"] == 1


@pytest.mark.asyncio
async def test_admin_creates_user_and_changes_role(portal):
    c = portal["clients"]
    r = await c["admin"].post("/api/admin/users", json={
        "email": "helper@test.com", "full_name": "Helper", "role": "staff", "hourly_rate": 28,
    })
    assert r.status_code == 201
    user_id = r.json()["user_id"]

    r = await c["admin"].put(f"/api/admin/users/{user_id}/role", json={"role": "customer"})
    assert r.status_code == 200

    r = await c["admin"].get("/api/admin/users", params={"role": "customer"})
    assert user_id in [u["id"] for u in r.json()]

    r = await c["admin"].put(f"/api/admin/users/{user_id}/role", json={"role": "owner"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_enquiry_reply_flow(portal):
    c = portal["clients"]
    r = await c["anon"].post("/api/enquiries", json={
        "name": "Lee", "email": "lee@test.com", "message": "Do you clean carpets?",
    })
    assert r.status_code == 201
    enquiry_id = r.json()["id"]
    assert r.json()["status"] == "new"

    r = await c["admin"].post(f"/api/admin/enquiries/{enquiry_id}/reply", json={"message": "Yes we do."})
    assert r.status_code == 200
    assert r.json()["status"] == "responded"
    assert r.json()["responded_by"] == portal["ids"]["admin"]

    r = await c["admin"].get("/api/admin/email-logs")
    types = {log["email_type"] for log in r.json()}
    assert {"enquiry", "enquiry_admin", "enquiry_reply"} <= types


@pytest.mark.asyncio
async def test_cms_publish_and_public_read(portal):
    c = portal["clients"]
    r = await c["admin"].post("/api/admin/cms/blog", json={
        "title": "Spring Cleaning Tips", "category": "tips", "content": "<p>Start high.</p>",
    })
    assert r.status_code == 201
    post_id = r.json()["id"]
    assert r.json()["slug"] == "spring-cleaning-tips"

    r = await c["anon"].get("/api/cms/blog/spring-cleaning-tips")
    assert r.status_code == 404

    r = await c["admin"].put(f"/api/admin/cms/blog/{post_id}", json={"is_published": True})
    assert r.status_code == 200

    r = await c["anon"].get("/api/cms/blog/spring-cleaning-tips")
    assert r.status_code == 200
    assert r.json()["published_at"] is not None

    r = await c["manager"].post("/api/admin/cms/blog", json={"title": "Nope", "category": "x"})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_admin_cannot_demote_or_deactivate_self(portal):
    c = portal["clients"]
    admin_id = portal["ids"]["admin"]

    r = await c["admin"].put(f"/api/admin/users/{admin_id}/role", json={"role": "customer"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot remove your own admin role"

    r = await c["admin"].delete(f"/api/admin/users/{admin_id}")
    assert r.status_code == 400
    assert r.json()["detail"] == "Cannot deactivate yourself"

    r = await c["admin"].delete(f"/api/admin/users/{portal['ids']['dan']}")
    assert r.status_code == 200
    r = await c["dan"].get("/api/bookings")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_cms_image_folder_must_be_one_segment(portal, tmp_path):
    c = portal["clients"]
    files = {"file": ("logo.jpg", _jpeg(), "image/jpeg")}

    r = await c["admin"].post("/api/admin/cms/images", data={"folder": "../../outside"}, files=files)
    assert r.status_code == 422
    assert r.json()["field"] == "folder"
    assert not (tmp_path / "outside").exists()

    r = await c["admin"].post("/api/admin/cms/images", data={"folder": "banners"}, files=files)
    assert r.status_code == 201
    assert r.json()["path"].startswith("cms/banners/")


@pytest.mark.asyncio
async def test_campaign_send_without_email_keeps_draft(portal):
    c = portal["clients"]
    r = await c["admin"].get("/api/admin/campaigns/audience/all_customers")
    assert r.json()["count"] == 2

    r = await c["admin"].post("/api/admin/campaigns", json={
        "name": "Spring", "subject": "Spring specials", "html_content": "<p>10% off</p>",
    })
    assert r.status_code == 201
    campaign_id = r.json()["id"]
    assert r.json()["total_recipients"] == 2

    r = await c["admin"].post(f"/api/admin/campaigns/{campaign_id}/send")
    assert r.status_code == 503

    r = await c["admin"].get(f"/api/admin/campaigns/{campaign_id}")
    assert r.json()["status"] == "draft"
    assert {rec["status"] for rec in r.json()["recipients"]} == {"pending"}

    r = await c["manager"].get("/api/admin/campaigns")
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_booking_payroll_flow(portal):
    c = portal["clients"]
    booking_id = await _new_assigned_booking(portal)
    for action in ("accept", "start"):
        await c["staff"].post(f"/api/staff/jobs/{booking_id}/action", json={"action": action})
    r = await c["staff"].post(f"/api/staff/jobs/{booking_id}/complete", data={"hours_worked": "3"})
    assert r.status_code == 200

    r = await c["admin"].post(f"/api/admin/payroll/bookings/{booking_id}", json={"bonus": 10})
    assert r.status_code == 201
    payroll_id = r.json()["id"]
    assert r.json()["gross_pay"] == 100.0
    assert r.json()["net_pay"] == 80.0

    r = await c["admin"].post(f"/api/admin/payroll/bookings/{booking_id}", json={})
    assert r.status_code == 422

    r = await c["admin"].put(f"/api/admin/payroll/{payroll_id}/status", json={"payment_status": "paid"})
    assert r.status_code == 200
    assert r.json()["payment_date"] is not None

    r = await c["admin"].get("/api/admin/payroll/summary")
    assert r.json()["paid_total"] == 80.0

    r = await c["manager"].put(f"/api/admin/payroll/{payroll_id}/status", json={"payment_status": "pending"})
    assert r.status_code == 403
