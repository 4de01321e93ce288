"""Admin dashboard figures and staff earnings."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from cleaning_portal.db import crud
from cleaning_portal.models.booking import BOOKING_STATUSES


async def dashboard_summary(db: AsyncSession) -> dict:
    counts = await crud.count_bookings_by_status(db)
    by_status = {status: counts.get(status, 0) for status in BOOKING_STATUSES}
    estimated, actual = await crud.sum_booking_costs(db)
    return {
        "bookings_by_status": by_status,
        "total_bookings": sum(by_status.values()),
        "estimated_revenue": round(estimated, 2),
        "actual_revenue": round(actual, 2),
        "unassigned_pending": await crud.count_unassigned_pending(db),
    }


async def staff_earnings(db: AsyncSession, staff_id: str) -> dict:
    """Completed jobs for one staff member with hours and pay at their hourly rate."""
    details = await crud.get_staff_details(db, staff_id)
    rate = details.hourly_rate if details and details.hourly_rate else 0.0
    jobs = await crud.list_bookings(db, staff_id=staff_id, statuses=("completed",))

    rows = []
    total_hours = 0.0
    for b in jobs:
        hours = b.staff_hours_worked or 0.0
        total_hours += hours
        rows.append({
            "booking_id": b.id,
            "service_type": b.service_type,
            "preferred_date": b.preferred_date.isoformat(),
            "completed_at": b.completed_at.isoformat() if b.completed_at else None,
            "hours_worked": hours,
            "earnings": round(hours * rate, 2),
        })
    return {
        "hourly_rate": rate,
        "jobs": rows,
        "total_hours": round(total_hours, 2),
        "total_earnings": round(total_hours * rate, 2),
    }
