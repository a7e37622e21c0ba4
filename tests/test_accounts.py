"""Tests for account creation, sign-in and admin registration."""
from __future__ import annotations

import pytest

from conftest import CETA, MICT, NOW, make_draft
from skills_marketplace.api.identity import LocalClaimSetter
from skills_marketplace.errors import RemoteRejectedError
from skills_marketplace.models.payment import PaymentReceipt
from skills_marketplace.models.user import Role
from skills_marketplace.workflows.accounts import AccountService, AdminRegistration, build_sdp_document


def admin_form(**overrides) -> AdminRegistration:
    values = dict(
        first_name="Nomsa",
        last_name="Khumalo",
        email="nomsa@skills.example",
        password="admin-pass",
        confirm_password="admin-pass",
        admin_key="ADMIN2024",
        phone="010 555 0000",
    )
    values.update(overrides)
    return AdminRegistration(**values)


class TestSdpDocument:
    def test_profile_projection(self):
        draft = make_draft(sectors=(CETA, MICT), sector_accreditations={CETA: "CETA-0042", MICT: "MICT-7"})
        receipt = PaymentReceipt(reference="MOCK-1", amount="R149")
        document = build_sdp_document(draft, receipt, NOW)
        profile = document["profile"]

        assert document["role"] == "SDP"
        assert document["verified"] is False
        assert profile["setaAccreditation"] == CETA
        assert profile["accreditationNumber"] == "CETA-0042"
        assert profile["accreditation"] == CETA
        assert profile["planType"] == "monthly"
        assert profile["planStatus"] == "active"
        assert profile["planReference"] == "MOCK-1"
        assert profile["experience"] == "Established 2019"

    def test_not_accredited(self):
        document = build_sdp_document(make_draft(is_accredited="no"), None, NOW)
        assert document["profile"]["accreditation"] == "Not Accredited"
        assert document["profile"]["planReference"] is None

    def test_free_plan_is_trial(self):
        document = build_sdp_document(make_draft(payment_plan="free"), None, NOW)
        assert document["profile"]["planStatus"] == "trial_active"
        assert document["profile"]["planExpiresAt"] == "2026-03-31T09:30:00+00:00"

    def test_annual_expiry(self):
        document = build_sdp_document(make_draft(payment_plan="annual"), None, NOW)
        assert document["profile"]["planExpiresAt"] == "2027-03-01T09:30:00+00:00"

    def test_other_sector_kept(self):
        document = build_sdp_document(make_draft(other_sector="Renewables"), None, NOW)
        assert document["profile"]["otherSector"] == "Renewables"


class TestSignIn:
    def test_sdp_sign_in(self, accounts):
        account_id, error = accounts.register_sdp(make_draft(), now=NOW)
        assert error is None

        user, destination = accounts.sign_in("thandi@brightfutures.co.za", "secret123")
        assert user.id == account_id
        assert user.role == Role.SDP
        assert destination == "/sdp-dashboard"

    def test_wrong_password(self, accounts):
        accounts.register_sdp(make_draft(), now=NOW)
        user, error = accounts.sign_in("thandi@brightfutures.co.za", "wrong-pass")
        assert user is None
        assert error == "Invalid email or password."

    def test_session_recorded(self, accounts, identity):
        accounts.register_sdp(make_draft(), now=NOW)
        accounts.sign_in("thandi@brightfutures.co.za", "secret123")
        assert identity.get_current_session().email == "thandi@brightfutures.co.za"

        identity.sign_out()
        assert identity.get_current_session() is None

    def test_claims_override_document(self, accounts, identity):
        account_id, _ = accounts.register_sdp(make_draft(), now=NOW)
        identity.set_custom_claims(account_id, {"verified": True})
        user, _ = accounts.sign_in("thandi@brightfutures.co.za", "secret123")
        assert user.verified is True


class TestRegisterSdp:
    def test_duplicate_email(self, accounts):
        accounts.register_sdp(make_draft(), now=NOW)
        account_id, error = accounts.register_sdp(make_draft(), now=NOW)
        assert account_id is None
        assert "already in use" in error


class TestAdminRegistration:
    @pytest.mark.parametrize("overrides,message", [
        ({"first_name": ""}, "Please fill in all required fields"),
        ({"password": "abc", "confirm_password": "abc"}, "Password must be at least 6 characters"),
        ({"confirm_password": "other-pass"}, "Passwords do not match"),
        ({"admin_key": "guess"}, "Invalid admin registration key"),
    ])
    def test_form_problems(self, accounts, overrides, message):
        user, error = accounts.register_admin(admin_form(**overrides))
        assert user is None
        assert error.startswith(message)

    def test_creates_admin_with_claims(self, accounts, identity):
        user, destination = accounts.register_admin(admin_form())
        assert destination == "/admin-dashboard"
        assert user.role == Role.ADMIN
        assert user.profile["id"] == user.id
        assert identity.get_claims(user.id) == {"role": "Admin", "verified": True, "admin": True}

    def test_claim_failure_is_not_fatal(self, identity, settings, caplog):
        claim_setter = LocalClaimSetter(identity, "a-different-key")
        accounts = AccountService(identity, claim_setter, settings)

        user, destination = accounts.register_admin(admin_form())
        assert user is not None
        assert destination == "/admin-dashboard"
        assert identity.get_claims(user.id) == {}
        assert "Could not set admin claims" in caplog.text

    def test_without_claim_setter(self, identity, settings):
        user, _ = AccountService(identity, None, settings).register_admin(admin_form())
        assert user.role == Role.ADMIN


class TestClaimSetter:
    def test_rejects_non_admin_document(self, accounts, identity):
        account_id, _ = accounts.register_sdp(make_draft(), now=NOW)
        with pytest.raises(RemoteRejectedError):
            LocalClaimSetter(identity, "ADMIN2024").set_admin_claims(account_id, "ADMIN2024")
