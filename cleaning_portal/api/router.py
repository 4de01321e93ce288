"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from cleaning_portal.api.auth import router as auth_router
from cleaning_portal.api.bookings import router as bookings_router
from cleaning_portal.api.staff import router as staff_router
from cleaning_portal.api.admin import router as admin_router
from cleaning_portal.api.cms import router as cms_router, admin_router as cms_admin_router
from cleaning_portal.api.enquiries import router as enquiries_router
from cleaning_portal.api.campaigns import router as campaigns_router
from cleaning_portal.api.payroll import router as payroll_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(bookings_router)
api_router.include_router(staff_router)
api_router.include_router(admin_router)
api_router.include_router(cms_router)
api_router.include_router(cms_admin_router)
api_router.include_router(enquiries_router)
api_router.include_router(campaigns_router)
api_router.include_router(payroll_router)
