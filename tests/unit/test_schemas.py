from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from cleaning_portal.models import Booking
from cleaning_portal.schemas import BookingCreate, BookingRead, HoursRequest, SignupRequest


def test_booking_create_requires_valid_email():
    with pytest.raises(ValidationError):
        BookingCreate(
            first_name="A", last_name="B", email="not-an-email", phone="1",
            service_type="residential", property_type="house",
            service_address="1 St", preferred_date="2026-11-02",
        )


def test_booking_create_parses_date():
    body = BookingCreate(
        first_name="A", last_name="B", email="a@test.com", phone="1",
        service_type="residential", property_type="house",
        service_address="1 St", preferred_date="2026-11-02",
    )
    assert body.preferred_date == date(2026, 11, 2)


def test_hours_request_keeps_raw_text_for_service_validation():
    assert HoursRequest(hours_worked="abc").hours_worked == "abc"
    assert HoursRequest().hours_worked is None


def test_signup_password_min_length():
    with pytest.raises(ValidationError):
        SignupRequest(email="a@test.com", password="short", full_name="A")


def test_booking_read_from_orm():
    booking = Booking(
        id="01BOOKING", customer_id="01CUST", staff_id=None,
        first_name="A", last_name="B", email="a@test.com", phone="1",
        service_type="residential", property_type="house",
        service_address="1 St", preferred_date=date(2026, 11, 2),
        status="pending", created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )
    read = BookingRead.model_validate(booking)
    assert read.status == "pending"
    assert read.completed_at is None
