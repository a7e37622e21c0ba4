"""Marketplace data models: drafts, plans, receipts, profiles and accounts."""

from .plan import PlanKey, BillingType, PaymentPlan, SDP_PLANS, SME_PLANS, get_plan, plans_for, format_amount
from .payment import PaymentReceipt, CheckoutRequest, CheckoutResponse, CheckoutStatus
from .registration import Attachment, DocumentSlots, RegistrationDraft, OTHER
from .sme_registration import CurriculumVitae, SMEDocuments, SMERegistrationDraft
from .expert_profile import SMEProfile, Availability
from .user import Role, UserRecord

__all__ = [
    # Plans & Payments
    "PlanKey",
    "BillingType",
    "PaymentPlan",
    "SDP_PLANS",
    "SME_PLANS",
    "get_plan",
    "plans_for",
    "format_amount",
    "PaymentReceipt",
    "CheckoutRequest",
    "CheckoutResponse",
    "CheckoutStatus",
    # Registration
    "Attachment",
    "DocumentSlots",
    "RegistrationDraft",
    "CurriculumVitae",
    "SMEDocuments",
    "SMERegistrationDraft",
    "OTHER",
    # Profiles & Accounts
    "SMEProfile",
    "Availability",
    "Role",
    "UserRecord",
]
