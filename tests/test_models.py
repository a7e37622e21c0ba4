"""Tests for the draft, profile and account models."""
from __future__ import annotations

import pytest

from conftest import CETA, MICT, make_draft
from skills_marketplace.models.expert_profile import Availability, SMEProfile
from skills_marketplace.models.payment import CheckoutResponse, CheckoutStatus, PaymentReceipt
from skills_marketplace.models.plan import PlanKey
from skills_marketplace.models.registration import Attachment, RegistrationDraft
from skills_marketplace.models.user import Role, UserRecord


class TestRegistrationDraft:
    def test_edits_return_new_draft(self):
        draft = RegistrationDraft()
        edited = draft.update(company_name="Acme")
        assert draft.company_name == ""
        assert edited.company_name == "Acme"

    def test_frozen(self):
        with pytest.raises(AttributeError):
            RegistrationDraft().company_name = "Acme"

    def test_toggle_sector_tracks_accreditations(self):
        draft = RegistrationDraft().toggle_sector(CETA).toggle_sector(MICT)
        assert draft.sectors == (CETA, MICT)
        assert draft.sector_accreditations == {CETA: "", MICT: ""}

        draft = draft.toggle_sector(CETA)
        assert draft.sectors == (MICT,)
        assert draft.sector_accreditations == {MICT: ""}

    def test_toggle_goal(self):
        draft = RegistrationDraft().toggle_goal("Assessors")
        assert draft.goals == ("Assessors",)
        assert draft.toggle_goal("Assessors").goals == ()

    def test_attachments(self):
        draft = RegistrationDraft().attach("reference_letters", "a.pdf").attach("reference_letters", "b.pdf")
        assert [a.name for a in draft.documents.reference_letters] == ["a.pdf", "b.pdf"]
        assert draft.detach("reference_letters", 0).documents.reference_letters == (Attachment("b.pdf"),)

    def test_unknown_slot(self):
        with pytest.raises(KeyError):
            RegistrationDraft().attach("photo", "me.jpg")

    def test_plan_parsed(self):
        assert RegistrationDraft(payment_plan="annual").payment_plan == PlanKey.ANNUAL
        with pytest.raises(ValueError):
            RegistrationDraft(payment_plan="gold")

    def test_accreditation_flag_values(self):
        with pytest.raises(ValueError):
            RegistrationDraft(is_accredited="maybe")

    def test_numbers_read_as_text(self):
        draft = RegistrationDraft(
            established_year=2019,
            learner_capacity=120,
            sectors=(CETA,),
            sector_accreditations={CETA: 42},
        )
        assert draft.established_year == "2019"
        assert draft.learner_capacity == "120"
        assert draft.sector_accreditations == {CETA: "42"}

    @pytest.mark.parametrize("value,expected", [(True, "yes"), (False, "no")])
    def test_boolean_accreditation_flag(self, value, expected):
        assert RegistrationDraft(is_accredited=value).is_accredited == expected

    def test_accreditations_are_read_only(self):
        numbers = {CETA: "CETA-0042"}
        draft = RegistrationDraft(sectors=(CETA,), sector_accreditations=numbers)
        with pytest.raises(TypeError):
            draft.sector_accreditations[CETA] = "changed"

        numbers[CETA] = "changed"
        assert draft.sector_accreditations[CETA] == "CETA-0042"

    def test_from_dict_rejects_unknown_fields(self):
        with pytest.raises(TypeError):
            RegistrationDraft.from_dict({"favourite_colour": "blue"})

    def test_dict_round_trip(self):
        draft = make_draft()
        assert RegistrationDraft.from_dict(draft.to_dict()) == draft

    def test_redacted_dict(self):
        data = make_draft().to_dict(redact=True)
        assert "password" not in data
        assert "confirm_password" not in data

    def test_customer_name_falls_back_to_contact(self):
        assert make_draft(company_name="").customer_name == "Thandi Mokoena"


class TestSMEProfile:
    def test_rating_hidden_without_reviews(self):
        assert SMEProfile(id="1", name="x", rating=4.8, reviews=0).rating_display == "0.0"
        assert SMEProfile(id="1", name="x", rating=4.84, reviews=5).rating_display == "4.8"

    def test_unknown_availability(self):
        assert SMEProfile.from_dict({"name": "x", "availability": "On leave"}).availability == Availability.OFFLINE

    def test_roles_preferred_over_legacy_role(self):
        profile = SMEProfile.from_dict({"name": "x", "roles": ["Assessor"], "role": "Mentor"})
        assert profile.roles == ("Assessor",)


class TestUserRecord:
    def test_claims_win(self):
        document = {"email": "a@example.com", "role": "SDP", "verified": False, "profile": {"name": "A"}}
        user = UserRecord.from_document("1", document, {"role": "Admin", "verified": True})
        assert user.role == Role.ADMIN
        assert user.verified is True
        assert user.display_name == "A"

    def test_dashboards(self):
        assert Role.SME.dashboard_path == "/sme-dashboard"
        assert Role.SDP.dashboard_path == "/sdp-dashboard"
        assert Role.ADMIN.dashboard_path == "/admin-dashboard"


class TestCheckoutResponse:
    def test_timestamp_object(self):
        response = CheckoutResponse.from_dict({
            "paymentId": "p1",
            "checkoutUrl": "https://checkout.example/p1",
            "status": "paid",
            "expiresAt": {"seconds": 0},
        })
        assert response.status == CheckoutStatus.PAID
        assert response.checkout_url == "https://checkout.example/p1"
        assert response.expires_at.year == 1970

    @pytest.mark.parametrize("data", [None, ["p1"], "p1"])
    def test_rejects_non_object(self, data):
        with pytest.raises(ValueError):
            CheckoutResponse.from_dict(data)


class TestPaymentReceipt:
    def test_from_dict(self):
        receipt = PaymentReceipt.from_dict({
            "reference": "MOCK-1",
            "amount": "R149",
            "expires_at": "2026-03-31T09:30:00+00:00",
        })
        assert receipt.expires_at.day == 31
        assert receipt.to_dict()["expires_at"] == "2026-03-31T09:30:00+00:00"
