"""
Step validators for the SME registration wizard.

Steps 2, 3 and 5 report every problem they find; the step's message is
the first problem's message. Certification dates are checked against
``today``, which callers pass in so validation stays a pure function.
"""

from datetime import date
from typing import Callable, Optional

from ..models.plan import PlanKey
from ..models.sme_registration import CERTIFIED_SLOTS, OTHER, SMERegistrationDraft
from .validation import FINAL_STEP, MIN_PASSWORD_LENGTH, REQUIRED, ValidationResult, is_blank

# Certified copies older than this are rejected
MAX_CERTIFICATION_AGE_DAYS = 10
MAX_CERTIFICATION_WINDOW_DAYS = 90

SME_FIELD_IDS = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "phone": "phone",
    "id_number": "idNumber",
    "password": "password",
    "confirm_password": "confirmPassword",
    "roles": "roles",
    "other_role": "otherRole",
    "experience": "experience",
    "specializations": "specializations",
    "other_specialization": "otherSpecialization",
    "sectors": "sectors",
    "other_sector": "otherSector",
    "locations": "locations",
    "qualifications": "qualifications",
    "qualification_specs": "qualificationSpecs",
    "other_qualification": "otherQualification",
    "seta_registrations": "setaRegistrations",
    "facilitation_rate": "facilitationRate",
    "assessment_rate": "assessmentRate",
    "consultation_rate": "consultationRate",
    "moderation_rate": "moderationRate",
    "cv": "professionalSummary",
    "documents_certification_confirmed": "documentsCertificationConfirmed",
    "payment_plan": "payment",
    "terms_accepted": "termsAccepted",
}

SME_DOCUMENT_FIELD_IDS = {
    "id_documents": "idDocuments",
    "qualification_certs": "qualificationCerts",
    "seta_certificates": "setaCertificates",
}

CV_FIELD_IDS = ("professionalSummary", "workExperience", "references")


def sme_field_id(attribute: str) -> str:
    return SME_FIELD_IDS.get(attribute) or SME_DOCUMENT_FIELD_IDS.get(attribute, attribute)


def _first_failure(section: str, problems: list[tuple[str, str]]) -> ValidationResult:
    if problems:
        return ValidationResult.failure(problems[0][1], section, problems)
    return ValidationResult.success()


def validate_personal_info(draft: SMERegistrationDraft) -> ValidationResult:
    """Step 1: identity and credentials, checked in stages."""
    problems = [
        (SME_FIELD_IDS[a], REQUIRED)
        for a in ("first_name", "last_name", "email", "phone", "id_number")
        if is_blank(getattr(draft, a))
    ]
    if problems:
        return ValidationResult.failure("Please fill in all personal information fields", "step1", problems)

    if not draft.password or not draft.confirm_password:
        message = "Please enter a password"
        return ValidationResult.failure(
            message, "step1", [("password", message), ("confirmPassword", message)])

    if len(draft.password) < MIN_PASSWORD_LENGTH:
        message = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        return ValidationResult.failure(message, "step1", [("password", message)])

    if draft.password != draft.confirm_password:
        message = "Passwords do not match"
        return ValidationResult.failure(
            message, "step1", [("password", message), ("confirmPassword", message)])

    return ValidationResult.success()


def validate_professional_details(draft: SMERegistrationDraft) -> ValidationResult:
    """Step 2: roles, experience and where the expert works."""
    problems = []
    if not draft.roles:
        problems.append(("roles", "Please select at least one role"))
    elif OTHER in draft.roles and is_blank(draft.other_role):
        problems.append(("otherRole", "Please specify your other role"))
    if is_blank(draft.experience):
        problems.append(("experience", "Please select your years of experience"))
    if not draft.locations:
        problems.append(("locations", "Please select at least one location"))
    return _first_failure("step2", problems)


def validate_qualifications(draft: SMERegistrationDraft) -> ValidationResult:
    """Step 3: every qualification is named and every sector has a registration number."""
    problems = []
    if not draft.qualifications:
        problems.append(("qualifications", "Please select at least one qualification"))

    for qualification in draft.qualifications:
        if qualification == OTHER:
            if is_blank(draft.other_qualification):
                problems.append(("otherQualification", "Please specify your other qualification"))
        elif is_blank(draft.qualification_specs.get(qualification, "")):
            problems.append(("qualificationSpecs", f"Please name your {qualification.lower()}"))

    for sector in draft.sectors:
        if sector == OTHER:
            # An unnamed other sector needs no registration number
            if is_blank(draft.other_sector):
                continue
            label = draft.other_sector.strip()
        else:
            label = sector
        if is_blank(draft.seta_registrations.get(sector, "")):
            problems.append(("setaRegistrations", f"Please enter your {label} registration number"))

    return _first_failure("step3", problems)


def certification_problem(value: str, label: str, today: date) -> Optional[str]:
    """Why a certification date is unacceptable, or None when it is fine."""
    heading = label[0].upper() + label[1:]
    if is_blank(value):
        return f"Please provide the {label} certification date"
    try:
        certified = date.fromisoformat(value.strip()[:10])
    except ValueError:
        return f"Please provide a valid {label} certification date"

    age = (today - certified).days
    if age < 0:
        return f"{heading} certification date cannot be in the future."
    if age > MAX_CERTIFICATION_WINDOW_DAYS:
        return f"{heading} certification date must be within the last 3 months."
    if age > MAX_CERTIFICATION_AGE_DAYS:
        return f"{heading} certification date must not be older than {MAX_CERTIFICATION_AGE_DAYS} days."
    return None


def validate_cv_and_documents(draft: SMERegistrationDraft, today: date) -> ValidationResult:
    """Step 5: CV, references, and certified copies no older than ten days."""
    cv = draft.cv
    documents = draft.documents
    problems = []

    if is_blank(cv.professional_summary):
        problems.append(("professionalSummary", "Please provide a professional summary"))

    if not cv.work_experience:
        problems.append(("workExperience", "Please add at least one work experience entry"))
    for entry in cv.work_experience:
        if is_blank(entry.company) or is_blank(entry.position) or is_blank(entry.start_date):
            problems.append(("workExperience", "Please complete all required fields for work experience"))
        elif not entry.current and is_blank(entry.end_date):
            problems.append(("workExperience", "Please provide an end date or mark as current position"))

    if not cv.references:
        problems.append(("references", "Please add at least one reference"))
    for reference in cv.references:
        if is_blank(reference.name) or is_blank(reference.email) or is_blank(reference.phone):
            problems.append(("references", "Please complete all required fields for references"))

    if not documents.id_documents:
        problems.append(("idDocuments", "Please upload at least one certified ID document"))

    for slot, label in CERTIFIED_SLOTS.items():
        # ID documents always need a date; the other slots only once something is uploaded
        if slot != "id_documents" and not getattr(documents, slot):
            continue
        problem = certification_problem(documents.certification_date(slot), label, today)
        if problem:
            problems.append((SME_DOCUMENT_FIELD_IDS[slot], problem))

    if not draft.documents_certification_confirmed:
        problems.append((
            "documentsCertificationConfirmed",
            "Please confirm your documents are certified and belong to you",
        ))

    return _first_failure("documents", problems)


def validate_subscription(draft: SMERegistrationDraft, payment_confirmed: bool = False) -> ValidationResult:
    """Step 7: terms, plan selection and payment confirmation, all reported together."""
    problems = []
    if not draft.terms_accepted:
        problems.append(("termsAccepted", "Please agree to the Terms of Service to continue"))
    if draft.payment_plan == PlanKey.NONE:
        problems.append(("payment", "Please select a payment plan to continue"))
    elif not payment_confirmed:
        problems.append(("payment", "Please complete the payment step before finishing your registration."))

    if problems:
        message = ". ".join(m.rstrip(".") for _, m in problems) + "."
        return ValidationResult.failure(message, "step7", problems)
    return ValidationResult.success()


def _no_checks(draft: SMERegistrationDraft) -> ValidationResult:
    return ValidationResult.success()


SME_STEP_VALIDATORS: dict[int, Callable[[SMERegistrationDraft], ValidationResult]] = {
    1: validate_personal_info,
    2: validate_professional_details,
    3: validate_qualifications,
    4: _no_checks,  # rates are optional
    6: _no_checks,  # review only
}


def validate_sme_step(
    step: int,
    draft: SMERegistrationDraft,
    payment_confirmed: bool = False,
    today: Optional[date] = None,
) -> ValidationResult:
    """Validate ``draft`` for SME wizard step ``step`` (1..7)."""
    if step == FINAL_STEP:
        return validate_subscription(draft, payment_confirmed)
    if step == 5:
        return validate_cv_and_documents(draft, today or date.today())
    try:
        validator = SME_STEP_VALIDATORS[step]
    except KeyError:
        raise ValueError(f"No such wizard step: {step}") from None
    return validator(draft)
