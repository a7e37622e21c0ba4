"""Tests for the SDP registration wizard state machine."""
from __future__ import annotations

from datetime import timedelta

import httpx
import pytest

from conftest import CETA, NOW, StubGateway, make_draft
from skills_marketplace.api.payments import PaymentGatewayClient
from skills_marketplace.errors import ErrorKind, PaymentError, RemoteUnavailableError
from skills_marketplace.models.plan import PlanKey
from skills_marketplace.models.registration import OTHER, RegistrationDraft
from skills_marketplace.workflows.payment_confirmation import PaymentConfirmation
from skills_marketplace.workflows.registration_wizard import (
    CHECKOUT_FAILED_MESSAGE,
    RegistrationWizard,
)


@pytest.fixture
def wizard(accounts):
    return RegistrationWizard(accounts, PaymentConfirmation(), draft=make_draft())


def at_step(wizard: RegistrationWizard, step: int) -> RegistrationWizard:
    while wizard.step < step:
        assert wizard.advance(), wizard.error
    return wizard


# (step, draft attribute, field id) for every required scalar field of steps 1-5
REQUIRED_FIELDS = [
    (1, "company_name", "companyName"),
    (1, "registration_number", "registrationNumber"),
    (1, "organization_type", "organizationType"),
    (1, "email", "email"),
    (1, "phone", "phone"),
    (2, "contact_first_name", "contactFirstName"),
    (2, "contact_last_name", "contactLastName"),
    (2, "contact_email", "contactEmail"),
    (2, "contact_phone", "contactPhone"),
    (2, "contact_position", "contactPosition"),
    (2, "password", "password"),
    (2, "confirm_password", "confirmPassword"),
    (3, "established_year", "establishedYear"),
    (3, "location", "location"),
    (3, "sectors", "sectors"),
    (4, "goals", "goals"),
    (5, "services", "services"),
    (5, "learner_capacity", "learnerCapacity"),
]


class TestSteps:
    def test_starts_at_step_one(self, wizard):
        assert wizard.step == 1
        assert wizard.title == "Company Information"

    def test_titles(self, wizard):
        assert [s.title for s in wizard.steps] == [
            "Company Information",
            "Contact Details",
            "Organization Profile",
            "Accreditation & Needs",
            "Services Offered",
            "Document Upload",
            "Review & Pay",
        ]

    def test_completed_steps(self, wizard):
        at_step(wizard, 3)
        assert [s.completed for s in wizard.steps] == [True, True, False, False, False, False, False]

    def test_pricing_page_plan_preselected(self, accounts):
        wizard = RegistrationWizard(accounts, draft=make_draft(payment_plan=""), pricing_plan_id="sdp-annual")
        assert wizard.draft.payment_plan == PlanKey.ANNUAL


class TestAdvance:
    @pytest.mark.parametrize("step,attribute,fid", REQUIRED_FIELDS)
    def test_empty_required_field_blocks_step(self, wizard, step, attribute, fid):
        at_step(wizard, step)
        empty = () if attribute in ("sectors", "goals", "services") else ""
        wizard.update(**{attribute: empty})

        assert wizard.advance() is False
        assert wizard.step == step
        assert fid in wizard.error.fields
        assert fid in wizard.field_errors

    @pytest.mark.parametrize("slot,fid", [
        ("company_registration", "companyRegistration"),
        ("id_for_verification", "idForVerification"),
    ])
    def test_missing_document_blocks_step_six(self, wizard, slot, fid):
        at_step(wizard, 6)
        wizard.edit(lambda d: d.detach(slot), fid)

        assert wizard.advance() is False
        assert wizard.step == 6
        assert wizard.error.section == "documents"
        assert wizard.field_errors.fields() == [fid]

    @pytest.mark.parametrize("password,confirm", [
        ("abc", "abc"),
        ("abc12", "abc12"),
        ("secret123", "secret321"),
    ])
    def test_bad_password_blocks_step_two(self, wizard, password, confirm):
        at_step(wizard, 2)
        wizard.update(password=password, confirm_password=confirm)
        assert wizard.advance() is False
        assert wizard.step == 2
        assert "password" in wizard.field_errors

    def test_accreditation_numbers_block_step_four(self, wizard):
        at_step(wizard, 4)
        wizard.edit(lambda d: d.set_sector_accreditation(CETA, ""))
        assert wizard.advance() is False
        assert wizard.field_errors.fields() == ["sectorAccreditations"]

    def test_other_sector_scenario(self, accounts):
        draft = make_draft(sectors=("CETA", OTHER), other_sector="")
        wizard = at_step(RegistrationWizard(accounts, draft=draft), 3)

        assert wizard.advance() is False
        assert wizard.step == 3
        assert "otherSector" in wizard.field_errors

    def test_success_clears_errors(self, wizard):
        wizard.update(company_name="")
        wizard.advance()
        wizard.update(company_name="Bright Futures Training")
        assert wizard.advance() is True
        assert wizard.error is None
        assert not wizard.field_errors
        assert wizard.step == 2


class TestFieldErrors:
    def test_editing_a_field_clears_only_its_error(self, wizard):
        wizard.update(company_name="", phone="")
        wizard.advance()
        assert wizard.field_errors.fields() == ["companyName", "phone"]

        wizard.update(company_name="Bright Futures Training")
        assert wizard.field_errors.fields() == ["phone"]

    def test_clear_field_error(self, accounts):
        wizard = at_step(RegistrationWizard(accounts, draft=make_draft(
            sectors=(OTHER,), other_sector="", location="")), 3)
        wizard.advance()
        wizard.clear_field_error("otherSector")
        assert wizard.field_errors.fields() == ["location"]


class TestRetreat:
    def test_retreat_skips_validation(self, wizard):
        at_step(wizard, 3)
        wizard.update(location="")
        wizard.advance()
        assert wizard.retreat() is True
        assert wizard.step == 2
        assert wizard.error is None
        assert not wizard.field_errors

    def test_retreat_at_first_step(self, wizard):
        assert wizard.retreat() is False
        assert wizard.step == 1


class TestPlanSelection:
    def test_changing_plan_invalidates_payment(self, wizard):
        receipt = wizard.confirm_payment(now=NOW)
        assert receipt is not None
        assert wizard.payment.confirmed

        wizard.select_plan("annual")
        assert wizard.payment.confirmed is False
        assert wizard.payment.receipt is None
        assert wizard.payment.processing is False
        assert wizard.draft.payment_plan == PlanKey.ANNUAL

    def test_plan_change_through_update(self, wizard):
        wizard.confirm_payment(now=NOW)
        wizard.update(payment_plan="free")
        assert wizard.payment.confirmed is False

    def test_reselecting_same_plan_keeps_payment(self, wizard):
        wizard.confirm_payment(now=NOW)
        wizard.select_plan("monthly")
        assert wizard.payment.confirmed is True


class TestConfirmPayment:
    def test_mock_confirmation(self, wizard):
        receipt = wizard.confirm_payment(now=NOW)
        assert receipt.reference.startswith("MOCK-")
        assert receipt.amount == "R149"
        assert receipt.expires_at == NOW + timedelta(days=30)
        assert wizard.payment.processing is False

    def test_no_plan(self, accounts):
        wizard = RegistrationWizard(accounts, draft=make_draft(payment_plan=""))
        assert wizard.confirm_payment() is None
        assert wizard.payment.confirmed is False
        assert "payment" in wizard.field_errors

    def test_confirmation_clears_payment_error(self, wizard):
        at_step(wizard, 7)
        wizard.advance()
        assert "payment" in wizard.field_errors
        wizard.confirm_payment(now=NOW)
        assert "payment" not in wizard.field_errors

    def test_confirmed_payment_not_repeated(self, accounts):
        gateway = StubGateway()
        payments = PaymentConfirmation(gateway, open_url=lambda url: None)
        wizard = RegistrationWizard(accounts, payments, draft=make_draft())

        first = wizard.confirm_payment(now=NOW)
        second = wizard.confirm_payment(now=NOW)
        assert first is second
        assert len(gateway.requests) == 1

    def test_gateway_failure_is_retryable(self, accounts):
        gateway = StubGateway(error=PaymentError("down", ErrorKind.REMOTE_UNAVAILABLE))
        payments = PaymentConfirmation(gateway, open_url=lambda url: None)
        wizard = RegistrationWizard(accounts, payments, draft=make_draft())

        assert wizard.confirm_payment(now=NOW) is None
        assert wizard.error.message == CHECKOUT_FAILED_MESSAGE
        assert wizard.error.kind == ErrorKind.REMOTE_UNAVAILABLE
        assert wizard.payment.confirmed is False
        assert wizard.payment.processing is False

        gateway.error = None
        assert wizard.confirm_payment(now=NOW) is not None
        assert len(gateway.requests) == 2

    def test_non_object_gateway_reply(self, accounts):
        def handler(request):
            return httpx.Response(200, json=["unexpected"])

        gateway = PaymentGatewayClient("https://gateway.example", transport=httpx.MockTransport(handler))
        payments = PaymentConfirmation(gateway, open_url=lambda url: None)
        wizard = RegistrationWizard(accounts, payments, draft=make_draft())

        assert wizard.confirm_payment(now=NOW) is None
        assert wizard.error.message == CHECKOUT_FAILED_MESSAGE
        assert wizard.error.kind == ErrorKind.REMOTE_REJECTED
        assert wizard.payment.confirmed is False


class TestSubmission:
    def test_full_registration(self, wizard, identity):
        at_step(wizard, 7)
        wizard.confirm_payment(now=NOW)
        assert wizard.advance(now=NOW) is True

        assert wizard.completed
        assert wizard.submission.destination == "/sdp-dashboard"
        assert wizard.draft == RegistrationDraft()

        document = identity.documents.get_document(wizard.submission.account_id)
        assert document["role"] == "SDP"
        assert document["profile"]["planType"] == "monthly"
        assert document["profile"]["planReference"].startswith("MOCK-")

    def test_numeric_values_from_a_loaded_file(self, wizard, identity):
        wizard.update(established_year=2019, learner_capacity=120, is_accredited=True)
        at_step(wizard, 7)
        wizard.confirm_payment(now=NOW)
        assert wizard.advance(now=NOW) is True

        profile = identity.documents.get_document(wizard.submission.account_id)["profile"]
        assert profile["establishedYear"] == "2019"
        assert profile["learners"] == "120"
        assert profile["isAccredited"] == "yes"

    def test_unconfirmed_payment_stays_on_review(self, wizard):
        at_step(wizard, 7)
        assert wizard.advance() is False
        assert wizard.step == 7
        assert wizard.error.section == "step7"
        assert wizard.submission is None

    def test_remote_failure_keeps_draft(self, wizard, identity):
        identity.create_account("thandi@brightfutures.co.za", "other-pass", {
            "email": "thandi@brightfutures.co.za", "role": "SME", "profile": {"name": "Thandi"},
        })
        at_step(wizard, 7)
        wizard.confirm_payment(now=NOW)
        draft = wizard.draft

        assert wizard.advance(now=NOW) is False
        assert wizard.step == 7
        assert "already in use" in wizard.error.message
        assert wizard.draft == draft
        assert wizard.payment.confirmed is True

    def test_unavailable_provider_surfaces_message(self, wizard, identity, monkeypatch):
        def unavailable(*args, **kwargs):
            raise RemoteUnavailableError("Network error")

        monkeypatch.setattr(identity, "create_account", unavailable)
        at_step(wizard, 7)
        wizard.confirm_payment(now=NOW)
        assert wizard.advance(now=NOW) is False
        assert wizard.error.message == "Network error"

    def test_snapshot_redacts_passwords(self, wizard):
        snapshot = wizard.to_dict()
        assert "password" not in snapshot["draft"]
        assert snapshot["step"] == 1
        assert snapshot["payment"]["confirmed"] is False
