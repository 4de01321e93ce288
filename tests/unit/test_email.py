import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cleaning_portal.db import crud
from cleaning_portal.errors import ValidationError
from cleaning_portal.models import Base
from cleaning_portal.services import email


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(email._settings, "resend_api_key", "re_test_key")
    monkeypatch.setattr(email._settings, "company_email", "office@test.com")


@pytest.fixture
def sent(monkeypatch):
    """Capture outgoing mail instead of calling Resend."""
    outbox = []

    def fake_send(to, subject, html, cc=None):
        outbox.append({"to": to, "subject": subject, "html": html, "cc": cc})
        return None

    monkeypatch.setattr(email, "_send", fake_send)
    return outbox


BOOKING_DATA = {
    "first_name": "Ann", "last_name": "Lee", "email": "ann@test.com", "phone": "0400",
    "service_type": "end_of_lease", "property_type": "apartment",
    "service_address": "1 Main St", "preferred_date": "2026-11-02",
}


@pytest.mark.parametrize("email_type", sorted(email.EMAIL_TYPES))
def test_every_type_renders(email_type):
    subject, html = email.render_email(email_type, {"name": "Kim", "full_name": "Kim", "role": "staff"})
    assert subject
    assert "Touch Cleaning" in html


def test_booking_subject_and_body():
    subject, html = email.render_email("booking", BOOKING_DATA)
    assert subject == "Booking Confirmed - End Of Lease on 2026-11-02"
    assert "1 Main St" in html


def test_user_data_is_escaped():
    _, html = email.render_email("enquiry", {"name": "<script>alert(1)</script>", "message": "hi"})
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_account_created_shows_role_and_temp_password():
    subject, html = email.render_email("account_created", {
        "full_name": "Sam", "email": "sam@test.com", "role": "staff", "temp_password": "Tmp-123",
    })
    assert subject == "Welcome to Touch Cleaning - Your Staff Account"
    assert "Tmp-123" in html


def test_unknown_type_is_rejected():
    with pytest.raises(ValidationError):
        email.render_email("invoice", {})


async def test_missing_api_key_is_logged_as_skipped(db, monkeypatch):
    monkeypatch.setattr(email._settings, "resend_api_key", "")
    ok = await email.send_email(db, "newsletter", "fan@test.com", {})

    assert ok is False
    logs = await crud.list_email_logs(db)
    assert [(log.email_type, log.status) for log in logs] == [("newsletter", "skipped")]


async def test_booking_sends_customer_mail_and_admin_copy(db, api_key, sent):
    ok = await email.send_email(db, "booking", "ann@test.com", BOOKING_DATA, cc=["partner@test.com"])

    assert ok is True
    assert [m["to"] for m in sent] == ["ann@test.com", "office@test.com"]
    assert sent[0]["cc"] == ["partner@test.com"]
    assert sent[1]["subject"] == "New Booking: End Of Lease - Ann Lee"
    logs = await crud.list_email_logs(db)
    assert sorted((log.email_type, log.status) for log in logs) == [
        ("booking", "sent"), ("booking_admin", "sent"),
    ]


async def test_work_assigned_has_no_admin_copy(db, api_key, sent):
    await email.send_email(db, "work_assigned", "sam@test.com", BOOKING_DATA)
    assert [m["to"] for m in sent] == ["sam@test.com"]


async def test_delivery_failure_is_logged_not_raised(db, api_key, monkeypatch):
    monkeypatch.setattr(email, "_send", lambda to, subject, html, cc=None: "503 Service Unavailable")

    ok = await email.send_email(db, "enquiry_reply", "kim@test.com", {"name": "Kim", "reply_message": "Sure"})

    assert ok is False
    log = (await crud.list_email_logs(db))[0]
    assert log.status == "failed"
    assert log.error == "503 Service Unavailable"


async def test_deliver_returns_the_failure_reason(db, api_key, monkeypatch):
    monkeypatch.setattr(email, "_send", lambda to, subject, html, cc=None: "550 mailbox unavailable")

    assert await email.deliver(db, "bulk_campaign", "x@test.com", "Hi", "<p>Hi</p>") == "550 mailbox unavailable"


async def test_deliver_without_key_is_skipped(db, monkeypatch):
    monkeypatch.setattr(email._settings, "resend_api_key", "")

    assert await email.deliver(db, "bulk_campaign", "x@test.com", "Hi", "<p>Hi</p>") == email.NOT_CONFIGURED
    assert (await crud.list_email_logs(db))[0].status == "skipped"
