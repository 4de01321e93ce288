"""Pydantic request/response schemas."""

from cleaning_portal.schemas.booking import (
    BookingCreate, BookingRead, TaskPhotoRead, StaffJobRead,
    ActionRequest, StatusUpdate, AssignStaffRequest, BookingCostsUpdate,
    HoursRequest, BookingReplyRequest, PhotoFailure, PhotoBatchRead, CompletionRead,
)
from cleaning_portal.schemas.user import (
    SignupRequest, LoginRequest, ProfileUpdate, UserRead, RoleUpdate,
    UserCreateRequest, AdminPermissionsUpdate,
)
from cleaning_portal.schemas.cms import (
    BlogPostWrite, BlogPostRead, ServiceWrite, GalleryWrite,
    LocationWrite, TeamMemberWrite, SiteSettingWrite,
)
from cleaning_portal.schemas.enquiry import (
    EnquiryCreate, EnquiryRead, EnquiryUpdate, EnquiryReply, NewsletterSignup,
)
from cleaning_portal.schemas.campaign import (
    CampaignCreate, CampaignRead, CampaignRecipientRead, CampaignDetail,
)
from cleaning_portal.schemas.payroll import (
    PayrollCreate, BookingPayrollCreate, PaymentStatusUpdate, PayrollRead,
)

__all__ = [
    "BookingCreate", "BookingRead", "TaskPhotoRead", "StaffJobRead",
    "ActionRequest", "StatusUpdate", "AssignStaffRequest", "BookingCostsUpdate",
    "HoursRequest", "BookingReplyRequest", "PhotoFailure", "PhotoBatchRead", "CompletionRead",
    "SignupRequest", "LoginRequest", "ProfileUpdate", "UserRead", "RoleUpdate",
    "UserCreateRequest", "AdminPermissionsUpdate",
    "BlogPostWrite", "BlogPostRead", "ServiceWrite", "GalleryWrite",
    "LocationWrite", "TeamMemberWrite", "SiteSettingWrite",
    "EnquiryCreate", "EnquiryRead", "EnquiryUpdate", "EnquiryReply", "NewsletterSignup",
    "CampaignCreate", "CampaignRead", "CampaignRecipientRead", "CampaignDetail",
    "PayrollCreate", "BookingPayrollCreate", "PaymentStatusUpdate", "PayrollRead",
]
