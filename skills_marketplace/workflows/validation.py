"""
Step validators for the SDP registration wizard.

Each validator is a pure function of the draft. A failed result names the
section to highlight and the ordered field identifiers that failed; field
identifiers are the form's camelCase names (``otherSector``), not the
draft's attribute names.
"""

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from ..models.registration import OTHER, RegistrationDraft
from ..models.plan import PlanKey

MIN_PASSWORD_LENGTH = 6
REQUIRED = "This field is required."

# Draft attribute -> form field identifier
FIELD_IDS = {
    "company_name": "companyName",
    "registration_number": "registrationNumber",
    "email": "email",
    "phone": "phone",
    "website": "website",
    "contact_first_name": "contactFirstName",
    "contact_last_name": "contactLastName",
    "contact_email": "contactEmail",
    "contact_phone": "contactPhone",
    "contact_position": "contactPosition",
    "password": "password",
    "confirm_password": "confirmPassword",
    "organization_type": "organizationType",
    "established_year": "establishedYear",
    "sectors": "sectors",
    "other_sector": "otherSector",
    "location": "location",
    "sector_accreditations": "sectorAccreditations",
    "qualifications": "qualifications",
    "is_accredited": "isAccredited",
    "goals": "goals",
    "other_goal": "otherGoal",
    "services": "services",
    "other_service": "otherService",
    "learner_capacity": "learnerCapacity",
    "assessment_centre": "assessmentCentre",
    "is_new_provider": "isNewSDP",
    "payment_plan": "payment",
    "terms_accepted": "termsAccepted",
}

# Document slot -> form field identifier
DOCUMENT_FIELD_IDS = {
    "company_registration": "companyRegistration",
    "accreditations": "accreditations",
    "reference_letters": "referenceLetters",
    "appointment_for_verification": "appointmentForVerification",
    "id_for_verification": "idForVerification",
    "additional_documents": "additionalDocuments",
}


def field_id(attribute: str) -> str:
    """Form field identifier for a draft attribute or document slot."""
    return FIELD_IDS.get(attribute) or DOCUMENT_FIELD_IDS.get(attribute, attribute)


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one wizard step."""
    ok: bool
    message: str = ""
    section: str = ""
    fields: tuple = ()
    # Per-field messages, in the same order as ``fields``
    field_messages: tuple = ()

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str, section: str, problems: list[tuple[str, str]]) -> "ValidationResult":
        """Build a failure from ``(field_id, message)`` pairs, de-duplicating fields."""
        seen = {}
        for fid, msg in problems:
            seen.setdefault(fid, msg)
        return cls(
            ok=False,
            message=message,
            section=section,
            fields=tuple(seen),
            field_messages=tuple(seen.values()),
        )

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "message": self.message,
            "section": self.section,
            "fields": list(self.fields),
        }


class FieldErrors:
    """
    Field identifier -> error message, in the order the errors were raised.

    Clearing one field leaves every other field's error in place.
    """

    def __init__(self, errors: Optional[dict] = None):
        self._errors: dict[str, str] = dict(errors or {})

    @classmethod
    def from_result(cls, result: ValidationResult) -> "FieldErrors":
        return cls(dict(zip(result.fields, result.field_messages)))

    def clear(self, field_id: Optional[str] = None) -> None:
        """Clear one field's error, or all errors when no field is given."""
        if field_id is None:
            self._errors.clear()
        else:
            self._errors.pop(field_id, None)

    def set(self, field_id: str, message: str) -> None:
        self._errors[field_id] = message

    def get(self, field_id: str) -> Optional[str]:
        return self._errors.get(field_id)

    def fields(self) -> list[str]:
        return list(self._errors)

    def to_dict(self) -> dict:
        return dict(self._errors)

    def __contains__(self, field_id: str) -> bool:
        return field_id in self._errors

    def __iter__(self) -> Iterator[str]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __repr__(self) -> str:
        return f"FieldErrors({self._errors!r})"


def is_blank(value: str) -> bool:
    return not (value or "").strip()


def _missing(draft: RegistrationDraft, attributes: list[str]) -> list[tuple[str, str]]:
    return [(FIELD_IDS[a], REQUIRED) for a in attributes if is_blank(getattr(draft, a))]


def validate_company_info(draft: RegistrationDraft) -> ValidationResult:
    """Step 1: company identity."""
    problems = _missing(draft, [
        "company_name", "registration_number", "organization_type", "email", "phone",
    ])
    if problems:
        return ValidationResult.failure(
            "Please complete all company information fields.", "step1", problems)
    return ValidationResult.success()


def validate_contact_details(draft: RegistrationDraft) -> ValidationResult:
    """Step 2: contact person and credentials, checked in stages."""
    problems = _missing(draft, [
        "contact_first_name", "contact_last_name", "contact_email", "contact_phone",
        "contact_position", "password", "confirm_password",
    ])
    if problems:
        return ValidationResult.failure("Please complete all contact details.", "step2", problems)

    if len(draft.password) < MIN_PASSWORD_LENGTH:
        message = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        return ValidationResult.failure(message, "step2", [("password", message)])

    if draft.password != draft.confirm_password:
        message = "Passwords do not match"
        return ValidationResult.failure(
            message, "step2", [("password", message), ("confirmPassword", message)])

    return ValidationResult.success()


def validate_organization_profile(draft: RegistrationDraft) -> ValidationResult:
    """Step 3: organization profile and sectors."""
    problems = _missing(draft, ["organization_type", "established_year", "location"])
    if not draft.sectors:
        problems.append(("sectors", "Select at least one sector."))
    if OTHER in draft.sectors and is_blank(draft.other_sector):
        problems.append(("otherSector", "Describe the other sector."))

    if problems:
        return ValidationResult.failure("Please complete your organization profile.", "step3", problems)
    return ValidationResult.success()


def validate_accreditation(draft: RegistrationDraft) -> ValidationResult:
    """Step 4: goals, and accreditation numbers for accredited providers."""
    problems = []
    if not draft.goals:
        problems.append(("goals", "Select at least one goal."))
    if OTHER in draft.goals and is_blank(draft.other_goal):
        problems.append(("otherGoal", "Describe the other goal."))

    if draft.is_accredited == "yes":
        missing = [s for s in draft.sectors if is_blank(draft.sector_accreditations.get(s, ""))]
        if missing:
            problems.append((
                "sectorAccreditations",
                f"Enter an accreditation number for: {', '.join(missing)}",
            ))

    if problems:
        return ValidationResult.failure("Please provide your accreditation details.", "step4", problems)
    return ValidationResult.success()


def validate_services(draft: RegistrationDraft) -> ValidationResult:
    """Step 5: services offered; goals are checked again here."""
    problems = []
    if not draft.services:
        problems.append(("services", "Select at least one service."))
    if is_blank(draft.learner_capacity):
        problems.append(("learnerCapacity", REQUIRED))
    if OTHER in draft.services and is_blank(draft.other_service):
        problems.append(("otherService", "Describe the other service."))
    if not draft.goals:
        problems.append(("goals", "Select at least one goal."))

    if problems:
        return ValidationResult.failure("Please specify the services you offer.", "step5", problems)
    return ValidationResult.success()


def validate_documents(draft: RegistrationDraft) -> ValidationResult:
    """Step 6: required documents; new providers swap references for an appointment letter."""
    documents = draft.documents
    problems = []
    if documents.company_registration is None:
        problems.append(("companyRegistration", "Upload the company registration document."))
    if documents.id_for_verification is None:
        problems.append(("idForVerification", "Upload an ID document for verification."))

    if draft.is_new_provider:
        if documents.appointment_for_verification is None:
            problems.append(("appointmentForVerification", "Upload the appointment letter."))
    elif len(documents.reference_letters) < 3:
        problems.append(("referenceLetters", "Upload at least 3 reference letters."))

    if problems:
        return ValidationResult.failure("Please upload all required documents.", "documents", problems)
    return ValidationResult.success()


def validate_review_and_payment(draft: RegistrationDraft, payment_confirmed: bool = False) -> ValidationResult:
    """
    Step 7: terms, plan selection and payment confirmation.

    The three checks are independent; every failing check is reported.
    """
    problems = []
    messages = []
    if not draft.terms_accepted:
        messages.append("You must accept the Terms of Service to continue")
        problems.append(("termsAccepted", messages[-1]))
    if draft.payment_plan == PlanKey.NONE:
        messages.append("Please select a payment plan to continue")
        problems.append(("payment", messages[-1]))
    elif not payment_confirmed:
        messages.append("Please complete payment to activate your plan before logging in.")
        problems.append(("payment", messages[-1]))

    if problems:
        return ValidationResult.failure(". ".join(m.rstrip(".") for m in messages) + ".", "step7", problems)
    return ValidationResult.success()


STEP_VALIDATORS: dict[int, Callable[[RegistrationDraft], ValidationResult]] = {
    1: validate_company_info,
    2: validate_contact_details,
    3: validate_organization_profile,
    4: validate_accreditation,
    5: validate_services,
    6: validate_documents,
}

FINAL_STEP = 7


def validate_step(step: int, draft: RegistrationDraft, payment_confirmed: bool = False) -> ValidationResult:
    """Validate ``draft`` for wizard step ``step`` (1..7)."""
    if step == FINAL_STEP:
        return validate_review_and_payment(draft, payment_confirmed)
    try:
        validator = STEP_VALIDATORS[step]
    except KeyError:
        raise ValueError(f"No such wizard step: {step}") from None
    return validator(draft)
