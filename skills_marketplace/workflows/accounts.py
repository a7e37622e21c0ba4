"""Account creation and sign-in on top of the identity provider."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..config import Settings
from ..errors import MarketplaceError
from ..models.plan import PlanKey, compute_expiry, get_plan, plan_expiry
from ..models.payment import PaymentReceipt
from ..models.registration import OTHER, RegistrationDraft
from ..models.sme_registration import NATIONAL_LOCATION, CurriculumVitae, SMERegistrationDraft
from ..models.user import Role, UserRecord
from .sme_validation import SME_DOCUMENT_FIELD_IDS
from .validation import MIN_PASSWORD_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_SDP_IMAGE = "/images/profile-3.jpg"


def build_sdp_document(
    draft: RegistrationDraft,
    receipt: Optional[PaymentReceipt],
    activated_at: datetime,
) -> dict:
    """Project a completed draft onto the stored SDP user document."""
    primary_sector = draft.primary_sector
    accredited = draft.is_accredited == "yes"
    expires_at = plan_expiry(draft.payment_plan, activated_at)

    profile = {
        "id": "",
        "name": draft.company_name,
        "email": draft.contact_email,
        "type": draft.organization_type,
        "specializations": list(draft.services),
        "services": list(draft.services),
        "sectors": list(draft.sectors),
        "location": draft.location,
        "experience": f"Established {draft.established_year}",
        "establishedYear": draft.established_year,
        "learners": draft.learner_capacity or "N/A",
        "qualifications": list(draft.qualifications),
        "rates": {},
        "availability": "Available",
        "rating": 0.0,
        "reviews": 0,
        "verified": False,
        "profileImage": DEFAULT_SDP_IMAGE,
        "aboutMe": f"{draft.company_name} - {draft.organization_type}",
        "assessmentCentre": draft.assessment_centre,
        "aboutUs": ", ".join(draft.goals),
        "setaAccreditation": primary_sector,
        "accreditationNumber": draft.sector_accreditations.get(primary_sector, "") if primary_sector else "",
        "sectorAccreditations": dict(draft.sector_accreditations),
        "isAccredited": draft.is_accredited,
        "accreditation": primary_sector if accredited else "Not Accredited",
        "planType": draft.payment_plan.value,
        "planStatus": "trial_active" if draft.payment_plan == PlanKey.FREE else "active",
        "planActivatedAt": activated_at.isoformat(),
        "planExpiresAt": expires_at.isoformat() if expires_at else None,
        "planReference": receipt.reference if receipt else None,
    }
    if draft.other_sector:
        profile["otherSector"] = draft.other_sector
    if draft.website:
        profile["website"] = draft.website

    return {
        "email": draft.contact_email,
        "role": Role.SDP.value,
        "verified": False,
        "phone": draft.contact_phone,
        "profile": profile,
    }


NATIONAL_PROFILE_LOCATION = "National (Willing to travel anywhere)"


def _cv_document(cv: CurriculumVitae) -> dict:
    return {
        "professionalSummary": cv.professional_summary,
        "workExperience": [
            {
                "company": e.company,
                "position": e.position,
                "startDate": e.start_date,
                "endDate": e.end_date,
                "current": e.current,
                "description": e.description,
            }
            for e in cv.work_experience
        ],
        "languages": [{"language": lang.language, "proficiency": lang.proficiency} for lang in cv.languages],
        "references": [
            {"name": r.name, "position": r.position, "company": r.company, "email": r.email, "phone": r.phone}
            for r in cv.references
        ],
    }


def _profile_roles(draft: SMERegistrationDraft) -> list[str]:
    roles = [r for r in draft.roles if r != OTHER]
    if OTHER in draft.roles and draft.other_role.strip():
        roles.append(draft.other_role.strip())
    return roles


def _profile_qualifications(draft: SMERegistrationDraft) -> list[str]:
    named = []
    for qualification in draft.qualifications:
        if qualification == OTHER:
            named.append(draft.other_qualification.strip())
            continue
        spec = draft.qualification_specs.get(qualification, "").strip()
        named.append(f"{qualification} - {spec}" if spec else qualification)
    return named


def seta_registration_summary(draft: SMERegistrationDraft) -> str:
    """One-line "sector: number" list, e.g. for profile cards."""
    entries = []
    for sector in draft.sectors:
        label = (draft.other_sector.strip() or "Other Sector") if sector == OTHER else sector
        number = draft.seta_registrations.get(sector, "").strip()
        if number:
            entries.append(f"{label}: {number}")
    return " | ".join(entries)


def build_sme_document(
    draft: SMERegistrationDraft,
    receipt: Optional[PaymentReceipt],
    activated_at: datetime,
) -> dict:
    """Project a completed SME draft onto the stored user document."""
    plan = get_plan(draft.payment_plan, Role.SME)
    expires_at = compute_expiry(plan.duration_days, activated_at) if plan else None
    certification_dates = {
        SME_DOCUMENT_FIELD_IDS[slot]: value
        for slot, value in draft.documents.certified_on.items()
        if value
    }
    if NATIONAL_LOCATION in draft.locations:
        location = NATIONAL_PROFILE_LOCATION
    else:
        location = draft.locations[0] if draft.locations else ""

    profile = {
        "id": "",
        "name": draft.full_name,
        "email": draft.email,
        "roles": _profile_roles(draft),
        "specializations": list(draft.specializations),
        "sectors": list(draft.sectors),
        "location": location,
        "locations": list(draft.locations),
        "experience": draft.experience,
        "qualifications": _profile_qualifications(draft),
        "rates": {
            "facilitation": draft.facilitation_rate,
            "assessment": draft.assessment_rate,
            "consultation": draft.consultation_rate,
            "moderation": draft.moderation_rate,
        },
        "availability": "Available",
        "rating": 0.0,
        "reviews": 0,
        "verified": False,
        "profileImage": "",
        "aboutMe": draft.cv.professional_summary,
        "cv": _cv_document(draft.cv),
        "phone": draft.phone,
        "setaRegistration": seta_registration_summary(draft),
        "setaRegistrations": dict(draft.seta_registrations),
        "documentCertificationDate": certification_dates.get("idDocuments", ""),
        "documentCertificationDates": certification_dates,
        "documentsCertificationConfirmed": draft.documents_certification_confirmed,
        "planType": draft.payment_plan.value,
        "planStatus": "trial_active" if draft.payment_plan == PlanKey.FREE else "active",
        "planActivatedAt": activated_at.isoformat(),
        "planExpiresAt": expires_at.isoformat() if expires_at else None,
        "planReference": receipt.reference if receipt else None,
    }
    return {
        "email": draft.email,
        "role": Role.SME.value,
        "verified": False,
        "profile": profile,
    }


@dataclass
class AdminRegistration:
    """Form data for creating a platform administrator."""
    first_name: str
    last_name: str
    email: str
    password: str
    confirm_password: str
    admin_key: str
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def validate(self, expected_key: str) -> Optional[str]:
        """Return the first problem with the form, or None."""
        if not all([self.first_name, self.last_name, self.email, self.password]):
            return "Please fill in all required fields"
        if len(self.password) < MIN_PASSWORD_LENGTH:
            return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        if self.password != self.confirm_password:
            return "Passwords do not match"
        if self.admin_key != expected_key:
            return "Invalid admin registration key. Please contact system administrator."
        return None


class AccountService:
    """Creates accounts and signs users in."""

    def __init__(self, identity, claim_setter=None, settings: Optional[Settings] = None):
        """
        Args:
            identity: Identity provider (``LocalIdentityProvider`` or compatible)
            claim_setter: Privileged claim setter; None skips admin claims
            settings: Deployment settings (admin registration key)
        """
        self.identity = identity
        self.claim_setter = claim_setter
        self.settings = settings or Settings()

    def register_sdp(
        self,
        draft: RegistrationDraft,
        receipt: Optional[PaymentReceipt] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Optional[str], Optional[str]]:
        """
        Create the SDP account for a completed draft.

        Returns ``(account_id, None)`` on success, ``(None, error)`` otherwise.
        """
        activated_at = now or datetime.now(timezone.utc)
        document = build_sdp_document(draft, receipt, activated_at)
        return self._create(Role.SDP, draft.contact_email, draft.password, document)

    def register_sme(
        self,
        draft: SMERegistrationDraft,
        receipt: Optional[PaymentReceipt] = None,
        now: Optional[datetime] = None,
    ) -> tuple[Optional[str], Optional[str]]:
        """Create the SME account for a completed draft; same return shape as ``register_sdp``."""
        activated_at = now or datetime.now(timezone.utc)
        document = build_sme_document(draft, receipt, activated_at)
        return self._create(Role.SME, draft.email, draft.password, document)

    def _create(self, role: Role, email: str, password: str, document: dict) -> tuple[Optional[str], Optional[str]]:
        try:
            result = self.identity.create_account(email, password, document)
        except MarketplaceError as exc:
            logger.error("%s registration failed: %s", role.value, exc.message)
            return None, exc.message

        if result.error:
            logger.warning("%s registration rejected for %s: %s", role.value, email, result.error)
            return None, result.error or "Registration failed. Please try again."

        logger.info("Registered %s %s (%s plan)", role.value, result.account_id, document["profile"]["planType"])
        return result.account_id, None

    def sign_in(self, email: str, password: str) -> tuple[Optional[UserRecord], str]:
        """
        Authenticate a user.

        Returns ``(user, dashboard_path)`` on success, ``(None, error)`` otherwise.
        """
        try:
            result = self.identity.authenticate(email, password)
        except MarketplaceError as exc:
            return None, exc.message

        if result.user is None:
            return None, result.error or "Invalid email or password. Please check your credentials and try again."

        logger.info("Signed in %s as %s", result.user.id, result.user.role.value)
        return result.user, result.user.role.dashboard_path

    def register_admin(self, form: AdminRegistration) -> tuple[Optional[UserRecord], str]:
        """
        Create an administrator account.

        Privileged claims are set best-effort: if the claim setter fails the
        account is still created and usable, and the failure is only logged.
        """
        problem = form.validate(self.settings.admin_registration_key)
        if problem:
            return None, problem

        profile = {
            "name": form.full_name,
            "email": form.email,
            "roles": ["Platform Administrator"],
            "role": "Platform Administrator",
            "specializations": ["Platform Management", "User Support", "System Administration"],
            "sectors": ["Administration", "Technology"],
            "location": "Head Office",
            "experience": "Admin",
            "qualifications": ["Platform Administrator"],
            "rates": {},
            "availability": "Available",
            "rating": 0.0,
            "reviews": 0,
            "verified": True,
            "profileImage": "",
            "aboutMe": "Platform administrator with full system access",
        }
        document = {"email": form.email, "role": Role.ADMIN.value, "verified": True, "profile": profile}

        try:
            result = self.identity.create_account(form.email, form.password, document)
            if result.error:
                return None, result.error
            self.identity.documents.write_profile_document(
                result.account_id,
                {"phone": form.phone, "profile": {"id": result.account_id}},
                merge=True,
            )
        except MarketplaceError as exc:
            logger.error("Admin registration failed: %s", exc.message)
            return None, exc.message

        if self.claim_setter is None:
            logger.warning("Claim setter not available. Admin claims must be set manually.")
        else:
            try:
                self.claim_setter.set_admin_claims(result.account_id, form.admin_key)
            except MarketplaceError as exc:
                logger.warning("Could not set admin claims for %s: %s", result.account_id, exc.message)

        document = self.identity.documents.get_document(result.account_id)
        claims = self.identity.get_claims(result.account_id)
        return UserRecord.from_document(result.account_id, document, claims), Role.ADMIN.dashboard_path
