"""Tests for the membership plan table and expiry rules."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from skills_marketplace.models.plan import (
    SDP_PLANS,
    SME_PLANS,
    BillingType,
    PlanKey,
    compute_expiry,
    format_amount,
    get_plan,
    plan_expiry,
    plans_for,
)
from skills_marketplace.models.user import Role


class TestPlanTable:
    def test_free(self):
        plan = SDP_PLANS[PlanKey.FREE]
        assert plan.amount == 0
        assert plan.billing_type == BillingType.TRIAL
        assert plan.duration_days == 30
        assert plan.is_free

    def test_monthly(self):
        plan = SDP_PLANS[PlanKey.MONTHLY]
        assert plan.display_amount == "R149"
        assert plan.plan_id == "sdp-monthly"

    def test_annual(self):
        plan = SDP_PLANS[PlanKey.ANNUAL]
        assert plan.display_amount == "R2,499"
        assert plan.duration_days == 365

    @pytest.mark.parametrize("key", ["", None, "platinum"])
    def test_unknown_plan_is_none(self, key):
        assert get_plan(key) is None

    def test_pricing_ids(self):
        assert PlanKey.from_pricing_id("sdp-annual") == PlanKey.ANNUAL
        assert PlanKey.from_pricing_id("sme-basic") == PlanKey.NONE
        assert PlanKey.from_pricing_id(None) == PlanKey.NONE

    def test_format_amount(self):
        assert format_amount(0) == "R0"
        assert format_amount(12500) == "R12,500"

    def test_sme_table(self):
        assert [p.display_amount for p in SME_PLANS.values()] == ["R0", "R99", "R999"]
        assert get_plan("annual", "SME").plan_id == "sme-annual"
        assert plans_for(Role.SME) is SME_PLANS

    def test_unknown_role(self):
        with pytest.raises(ValueError):
            plans_for("guest")
        assert get_plan("monthly", "guest") is None

    def test_pricing_ids_per_role(self):
        assert PlanKey.from_pricing_id("sme-monthly") == PlanKey.MONTHLY
        assert PlanKey.from_pricing_id("sme-monthly", Role.SME) == PlanKey.MONTHLY
        assert PlanKey.from_pricing_id("sme-monthly", Role.SDP) == PlanKey.NONE


class TestExpiry:
    start = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_compute_expiry(self):
        assert compute_expiry(30, self.start) == self.start + timedelta(days=30)
        assert compute_expiry(None, self.start) is None

    @pytest.mark.parametrize("key", [PlanKey.FREE, PlanKey.MONTHLY])
    def test_thirty_day_plans(self, key):
        assert plan_expiry(key, self.start) == self.start + timedelta(days=30)

    def test_annual_is_one_calendar_year(self):
        assert plan_expiry(PlanKey.ANNUAL, self.start) == datetime(2027, 1, 15, 12, 0, tzinfo=timezone.utc)

    def test_annual_from_leap_day(self):
        leap = datetime(2028, 2, 29, tzinfo=timezone.utc)
        assert plan_expiry(PlanKey.ANNUAL, leap) == datetime(2029, 2, 28, tzinfo=timezone.utc)

    def test_no_plan(self):
        assert plan_expiry(PlanKey.NONE, self.start) is None
