"""Registration, payment, account and search workflows."""

from .validation import ValidationResult, FieldErrors, validate_step
from .sme_validation import validate_sme_step
from .payment_confirmation import PaymentConfirmation
from .accounts import AccountService, AdminRegistration, build_sdp_document, build_sme_document
from .registration_wizard import RegistrationWizard, SMERegistrationWizard, WizardStep, WizardError
from .expert_search import ExpertSearch, SearchFilters, matches

__all__ = [
    "ValidationResult",
    "FieldErrors",
    "validate_step",
    "validate_sme_step",
    "PaymentConfirmation",
    "AccountService",
    "AdminRegistration",
    "build_sdp_document",
    "build_sme_document",
    "RegistrationWizard",
    "SMERegistrationWizard",
    "WizardStep",
    "WizardError",
    "ExpertSearch",
    "SearchFilters",
    "matches",
]
