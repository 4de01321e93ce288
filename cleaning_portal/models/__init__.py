"""SQLAlchemy ORM models."""

from cleaning_portal.models.base import Base
from cleaning_portal.models.auth_models import (
    User, UserSession, Profile, UserRole, AdminDetails, StaffDetails,
)
from cleaning_portal.models.booking import Booking, TaskPhoto
from cleaning_portal.models.cms import (
    BlogPost, ServiceOffering, GalleryItem, ServiceLocation,
    TeamMember, SiteSetting, Enquiry,
)
from cleaning_portal.models.audit import EmailLog, AdminActivityLog
from cleaning_portal.models.campaign import EmailCampaign, CampaignRecipient
from cleaning_portal.models.payroll import StaffPayroll

__all__ = [
    "Base",
    # Identity
    "User", "UserSession", "Profile", "UserRole", "AdminDetails", "StaffDetails",
    # Bookings
    "Booking", "TaskPhoto",
    # CMS
    "BlogPost", "ServiceOffering", "GalleryItem", "ServiceLocation",
    "TeamMember", "SiteSetting", "Enquiry",
    # Audit
    "EmailLog", "AdminActivityLog",
    # Campaigns
    "EmailCampaign", "CampaignRecipient",
    # Payroll
    "StaffPayroll",
]
