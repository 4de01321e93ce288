"""Email service using Resend API.

Every send attempt is written to ``email_logs``; delivery failures are
logged and reported as ``False``, never raised into the caller.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.config import get_settings
from cleaning_portal.db import crud
from cleaning_portal.errors import ValidationError

logger = logging.getLogger(__name__)

_settings = get_settings()

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
_env = Environment(loader=FileSystemLoader(str(_TEMPLATE_DIR)), autoescape=True)

# type -> (template, subject)
EMAIL_TYPES: dict[str, tuple[str, str]] = {
    "booking": ("booking.html.j2", "Booking Confirmed - {service_type} on {preferred_date}"),
    "enquiry": ("enquiry.html.j2", "We've Received Your Enquiry - Touch Cleaning"),
    "newsletter": ("newsletter.html.j2", "Welcome to the Touch Cleaning Newsletter!"),
    "enquiry_reply": ("enquiry_reply.html.j2", "Re: Your Enquiry - Touch Cleaning"),
    "booking_reply": ("booking_reply.html.j2", "Booking Update - Touch Cleaning"),
    "account_created": ("account_created.html.j2", "Welcome to Touch Cleaning - Your {role_label} Account"),
    "work_assigned": ("work_assigned.html.j2", "New Job: {service_type} on {preferred_date}"),
}

# Types that also notify the company inbox
ADMIN_COPIES: dict[str, tuple[str, str]] = {
    "booking": ("booking_admin.html.j2", "New Booking: {service_type} - {first_name} {last_name}"),
    "enquiry": ("enquiry_admin.html.j2", "New Enquiry from {name}"),
}


NOT_CONFIGURED = "Email is not configured"


class _SubjectData(dict):
    def __missing__(self, key):
        return ""


def _label(value) -> str:
    return str(value).replace("_", " ").title() if value else ""


def _context(email_type: str, data: dict) -> dict:
    ctx = dict(data)
    ctx.setdefault("year", datetime.now(timezone.utc).year)
    ctx.setdefault("app_url", _settings.app_url)
    if email_type == "account_created":
        ctx["role_label"] = _label(data.get("role", "customer"))
    return ctx


def render_email(email_type: str, data: dict, admin_copy: bool = False) -> tuple[str, str]:
    """Render (subject, html) for one email type."""
    table = ADMIN_COPIES if admin_copy else EMAIL_TYPES
    if email_type not in table:
        raise ValidationError(f"Unknown email type '{email_type}'", field="type")
    template_name, subject_fmt = table[email_type]
    ctx = _context(email_type, data)
    subject_ctx = _SubjectData({k: _label(v) if k == "service_type" else v for k, v in ctx.items()})
    subject = subject_fmt.format_map(subject_ctx)
    html = _env.get_template(template_name).render(**ctx)
    return subject, html


def render_campaign(html_content: str, name: str | None = None) -> str:
    """Wrap admin-authored campaign HTML in the branded layout."""
    return _env.get_template("campaign.html.j2").render(
        html_content=html_content,
        name=name,
        year=datetime.now(timezone.utc).year,
        app_url=_settings.app_url,
    )


def _send(to: str, subject: str, html: str, cc: list[str] | None = None) -> str | None:
    """Send an email via Resend. Returns None on success, else the error text."""
    import resend
    resend.api_key = _settings.resend_api_key

    params = {
        "from": _settings.email_from,
        "to": [to],
        "subject": subject,
        "html": html,
    }
    if cc:
        params["cc"] = cc
    try:
        resend.Emails.send(params)
        return None
    except Exception as exc:
        logger.exception("Failed to send email to %s", to)
        return str(exc) or exc.__class__.__name__


async def _record(
    db: AsyncSession, email_type: str, to: str, subject: str,
    status: str, error: str | None = None,
) -> None:
    try:
        await crud.create_email_log(db, email_type, to, subject, status, error)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to write email log for %s to %s", email_type, to)


def is_configured() -> bool:
    return bool(_settings.resend_api_key)


async def deliver(
    db: AsyncSession, email_type: str, to: str, subject: str, html: str,
    cc: list[str] | None = None,
) -> str | None:
    """Send one message and log the attempt. Returns None if delivered, else the reason."""
    if not is_configured():
        logger.warning("RESEND_API_KEY not set, email to %s not sent: %s", to, subject)
        await _record(db, email_type, to, subject, "skipped")
        return NOT_CONFIGURED

    error = await asyncio.to_thread(_send, to, subject, html, cc)
    if error:
        await _record(db, email_type, to, subject, "failed", error)
        return error
    await _record(db, email_type, to, subject, "sent")
    return None


async def send_email(
    db: AsyncSession, email_type: str, to: str, data: dict,
    cc: list[str] | None = None,
) -> bool:
    """Render and send one transactional email. Returns True if delivered."""
    subject, html = render_email(email_type, data)
    ok = await deliver(db, email_type, to, subject, html, cc) is None

    if email_type in ADMIN_COPIES and _settings.company_email:
        admin_subject, admin_html = render_email(email_type, data, admin_copy=True)
        await deliver(db, f"{email_type}_admin", _settings.company_email, admin_subject, admin_html)
    return ok
