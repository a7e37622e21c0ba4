"""Shared fixtures for the skills marketplace tests."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from skills_marketplace.api.documents import LocalDocumentStore
from skills_marketplace.api.identity import LocalClaimSetter, LocalIdentityProvider
from skills_marketplace.config import Settings
from skills_marketplace.models.payment import CheckoutResponse, CheckoutStatus
from skills_marketplace.models.registration import RegistrationDraft
from skills_marketplace.models.sme_registration import SMERegistrationDraft
from skills_marketplace.workflows.accounts import AccountService

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)

CETA = "Construction Education and Training Authority (CETA)"
MICT = "Media, Information and Communication Technologies Sector Education and Training Authority (MICT SETA)"


def make_draft(**overrides) -> RegistrationDraft:
    """A draft that passes every step except payment confirmation."""
    values = dict(
        company_name="Bright Futures Training",
        registration_number="2019/123456/07",
        email="info@brightfutures.co.za",
        phone="011 555 0101",
        website="https://brightfutures.co.za",
        contact_first_name="Thandi",
        contact_last_name="Mokoena",
        contact_email="thandi@brightfutures.co.za",
        contact_phone="082 555 0199",
        contact_position="Director",
        password="secret123",
        confirm_password="secret123",
        organization_type="Private Training Provider",
        established_year="2019",
        sectors=(CETA,),
        location="Johannesburg",
        sector_accreditations={CETA: "CETA-0042"},
        qualifications=("Construction Supervisor NQF 5",),
        is_accredited="yes",
        goals=("Facilitators",),
        services=("Learnerships", "Short Courses"),
        learner_capacity="120",
        assessment_centre=True,
        documents={
            "company_registration": "cipc.pdf",
            "id_for_verification": "id.pdf",
            "reference_letters": ["ref1.pdf", "ref2.pdf", "ref3.pdf"],
        },
        payment_plan="monthly",
        terms_accepted=True,
    )
    values.update(overrides)
    return RegistrationDraft(**values)


def make_sme_draft(**overrides) -> SMERegistrationDraft:
    """An SME draft that passes every step (certified three days before ``NOW``) except payment."""
    values = dict(
        first_name="Sipho",
        last_name="Dlamini",
        email="sipho@example.com",
        phone="083 555 0123",
        id_number="8501015800088",
        password="secret123",
        confirm_password="secret123",
        roles=("Facilitator", "Assessor"),
        experience="6-10 years",
        specializations=("Project Management",),
        sectors=(CETA,),
        locations=("Johannesburg, Gauteng",),
        qualifications=("Diploma",),
        qualification_specs={"Diploma": "Project Management"},
        seta_registrations={CETA: "CETA-ASR-001"},
        facilitation_rate="R450/hour",
        assessment_rate="R500/hour",
        cv={
            "professional_summary": "Facilitator and assessor in construction skills.",
            "work_experience": [
                {"company": "BuildRight", "position": "Site Trainer", "start_date": "2016-01", "current": True},
            ],
            "languages": [{"language": "isiZulu", "proficiency": "Native"}],
            "references": [{"name": "Lerato Khumalo", "email": "lerato@example.com", "phone": "082 555 0100"}],
        },
        documents={
            "id_documents": ["id-certified.pdf"],
            "certified_on": {"id_documents": "2026-02-26"},
        },
        documents_certification_confirmed=True,
        payment_plan="monthly",
        terms_accepted=True,
    )
    values.update(overrides)
    return SMERegistrationDraft(**values)


class StubGateway:
    """Records checkout requests and answers with a canned response."""

    def __init__(self, response: CheckoutResponse | None = None, error: Exception | None = None):
        self.response = response or CheckoutResponse(
            payment_id="pay_123",
            checkout_url="https://checkout.example/pay_123",
            status=CheckoutStatus.PENDING,
        )
        self.error = error
        self.requests = []

    def initiate_checkout(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def complete_draft():
    return make_draft


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def settings(data_dir):
    return Settings(data_dir=data_dir, app_base_url="https://skills.example")


@pytest.fixture
def documents(data_dir):
    return LocalDocumentStore(data_dir)


@pytest.fixture
def identity(data_dir, documents):
    return LocalIdentityProvider(data_dir, documents)


@pytest.fixture
def accounts(identity, settings):
    claim_setter = LocalClaimSetter(identity, settings.admin_registration_key)
    return AccountService(identity, claim_setter, settings)


def sme_document(name, roles=("Facilitator",), availability="Available", **profile) -> dict:
    """A stored SME user document."""
    return {
        "email": f"{name.split()[0].lower()}@example.com",
        "role": "SME",
        "verified": True,
        "profile": {
            "name": name,
            "roles": list(roles),
            "specializations": profile.pop("specializations", ["Project Management"]),
            "sectors": profile.pop("sectors", [CETA]),
            "location": profile.pop("location", "Johannesburg"),
            "availability": availability,
            "rating": profile.pop("rating", 4.5),
            "reviews": profile.pop("reviews", 3),
            **profile,
        },
    }
