"""Membership plans offered to skills development providers and SMEs."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .user import Role


class PlanKey(Enum):
    """Plan selected in the registration draft."""

    NONE = ""
    FREE = "free"
    MONTHLY = "monthly"
    ANNUAL = "annual"

    @classmethod
    def from_pricing_id(cls, pricing_id: Optional[str], role=None) -> "PlanKey":
        """
        Map a pricing-page plan identifier (e.g. ``sdp-annual``) to a key.

        With ``role`` only that role's plans match.
        """
        tables = [plans_for(role)] if role is not None else PLAN_TABLES.values()
        for plans in tables:
            for key, plan in plans.items():
                if plan.plan_id == pricing_id:
                    return key
        return cls.NONE

    @classmethod
    def parse(cls, value) -> "PlanKey":
        """Accept a key, its value, or None/"" for no selection."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.NONE
        return cls(str(value).strip().lower())


class BillingType(Enum):
    """How a plan is billed."""

    TRIAL = "trial"
    SUBSCRIPTION = "subscription"
    ONCE_OFF = "once_off"


@dataclass(frozen=True)
class PaymentPlan:
    """Static definition of a billing tier."""
    key: PlanKey
    label: str
    amount: int  # Whole rand
    billing_type: BillingType
    plan_id: str
    description: str = ""
    duration_days: Optional[int] = None

    @property
    def is_free(self) -> bool:
        return self.amount == 0

    @property
    def display_amount(self) -> str:
        return format_amount(self.amount)

    def to_dict(self) -> dict:
        return {
            "key": self.key.value,
            "label": self.label,
            "amount": self.amount,
            "display_amount": self.display_amount,
            "billing_type": self.billing_type.value,
            "duration_days": self.duration_days,
            "plan_id": self.plan_id,
            "description": self.description,
        }


SDP_PLANS: dict[PlanKey, PaymentPlan] = {
    PlanKey.FREE: PaymentPlan(
        key=PlanKey.FREE,
        label="Free Trial",
        amount=0,
        billing_type=BillingType.TRIAL,
        duration_days=30,
        plan_id="sdp-free",
        description="30-day trial to explore the marketplace",
    ),
    PlanKey.MONTHLY: PaymentPlan(
        key=PlanKey.MONTHLY,
        label="SDP Monthly",
        amount=149,
        billing_type=BillingType.SUBSCRIPTION,
        duration_days=30,
        plan_id="sdp-monthly",
        description="Introductory offer for the first 3 months",
    ),
    PlanKey.ANNUAL: PaymentPlan(
        key=PlanKey.ANNUAL,
        label="SDP Annual",
        amount=2499,
        billing_type=BillingType.SUBSCRIPTION,
        duration_days=365,
        plan_id="sdp-annual",
        description="Annual membership with savings",
    ),
}


SME_PLANS: dict[PlanKey, PaymentPlan] = {
    PlanKey.FREE: PaymentPlan(
        key=PlanKey.FREE,
        label="Free Trial",
        amount=0,
        billing_type=BillingType.TRIAL,
        duration_days=30,
        plan_id="sme-free",
        description="30-day access to get started",
    ),
    PlanKey.MONTHLY: PaymentPlan(
        key=PlanKey.MONTHLY,
        label="SME Monthly",
        amount=99,
        billing_type=BillingType.SUBSCRIPTION,
        duration_days=30,
        plan_id="sme-monthly",
        description="Flexible month-to-month access",
    ),
    PlanKey.ANNUAL: PaymentPlan(
        key=PlanKey.ANNUAL,
        label="SME Annual",
        amount=999,
        billing_type=BillingType.SUBSCRIPTION,
        duration_days=365,
        plan_id="sme-annual",
        description="Best value annual plan",
    ),
}

PLAN_TABLES: dict[Role, dict[PlanKey, PaymentPlan]] = {
    Role.SDP: SDP_PLANS,
    Role.SME: SME_PLANS,
}


def plans_for(role) -> dict[PlanKey, PaymentPlan]:
    """Plan table for a registering role; accepts a ``Role`` or its value."""
    return PLAN_TABLES[Role.parse(role)]


def get_plan(key, role=Role.SDP) -> Optional[PaymentPlan]:
    """Look up a plan in the role's table; unknown or empty keys return None."""
    try:
        return plans_for(role).get(PlanKey.parse(key))
    except ValueError:
        return None


def format_amount(amount: int) -> str:
    """Format whole rand for display: 0 -> R0, 2499 -> R2,499."""
    return f"R{amount:,}"


def compute_expiry(duration_days: Optional[int], start: datetime) -> Optional[datetime]:
    """Expiry ``duration_days`` after ``start``; None when the plan has no duration."""
    if not duration_days:
        return None
    return start + timedelta(days=duration_days)


def plan_expiry(key: PlanKey, activated_at: datetime) -> Optional[datetime]:
    """
    Expiry recorded on the profile when a plan is activated.

    Free and monthly plans run 30 days; annual plans run one calendar year.
    """
    if key in (PlanKey.FREE, PlanKey.MONTHLY):
        return activated_at + timedelta(days=30)
    if key == PlanKey.ANNUAL:
        try:
            return activated_at.replace(year=activated_at.year + 1)
        except ValueError:
            # 29 February
            return activated_at.replace(year=activated_at.year + 1, day=28)
    return None
