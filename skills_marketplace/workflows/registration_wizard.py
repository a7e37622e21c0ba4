"""
Seven-step registration wizards for skills development providers and SMEs.

The wizard owns one immutable draft for the lifetime of a registration
session and replaces it wholesale on each edit. Advancing validates the
current step; the final step confirms payment state and creates the
account.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ..errors import ErrorKind, PaymentError
from ..models.plan import PlanKey
from ..models.payment import PaymentReceipt
from ..models.registration import RegistrationDraft
from ..models.sme_registration import SMERegistrationDraft
from ..models.user import Role
from .accounts import AccountService
from .payment_confirmation import NO_PLAN_MESSAGE, PaymentConfirmation
from .sme_validation import CV_FIELD_IDS, SME_DOCUMENT_FIELD_IDS, sme_field_id, validate_sme_step
from .validation import (
    DOCUMENT_FIELD_IDS,
    FINAL_STEP,
    FieldErrors,
    ValidationResult,
    field_id,
    validate_step,
)

logger = logging.getLogger(__name__)

STEP_TITLES = {
    1: "Company Information",
    2: "Contact Details",
    3: "Organization Profile",
    4: "Accreditation & Needs",
    5: "Services Offered",
    6: "Document Upload",
    7: "Review & Pay",
}

SME_STEP_TITLES = {
    1: "Personal Information",
    2: "Professional Details",
    3: "Qualifications",
    4: "Rates & Availability",
    5: "Document Upload",
    6: "Review & Subscribe",
    7: "Payment",
}

CHECKOUT_FAILED_MESSAGE = "Unable to start checkout. Please try again."


@dataclass(frozen=True)
class WizardStep:
    """A step as shown in the progress indicator."""
    number: int
    title: str
    completed: bool


@dataclass
class WizardError:
    """The wizard's current user-visible error."""
    message: str
    section: str = ""
    fields: tuple = ()
    kind: ErrorKind = ErrorKind.LOCAL_VALIDATION

    @classmethod
    def from_result(cls, result: ValidationResult) -> "WizardError":
        return cls(message=result.message, section=result.section, fields=result.fields)

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "section": self.section,
            "fields": list(self.fields),
            "kind": self.kind.value,
        }


@dataclass
class Submission:
    """A successfully created account."""
    account_id: str
    destination: str = Role.SDP.dashboard_path
    submitted_at: Optional[datetime] = None


@dataclass
class PaymentState:
    confirmed: bool = False
    processing: bool = False
    receipt: Optional[PaymentReceipt] = None

    def reset(self) -> None:
        self.confirmed = False
        self.processing = False
        self.receipt = None


class RegistrationWizard:
    """State machine driving SDP registration through steps 1..7."""

    role = Role.SDP
    step_titles = STEP_TITLES
    draft_type = RegistrationDraft
    # Where the registrant lands once the account exists
    destination = Role.SDP.dashboard_path

    def __init__(
        self,
        accounts: AccountService,
        payments: Optional[PaymentConfirmation] = None,
        draft=None,
        pricing_plan_id: Optional[str] = None,
    ):
        """
        Args:
            accounts: Service used to create the account on the final step
            payments: Plan payment confirmation (mock confirmation by default)
            draft: Starting draft, e.g. restored from a file
            pricing_plan_id: Plan chosen on the pricing page (``sdp-monthly``)
        """
        self.accounts = accounts
        self.payments = payments or PaymentConfirmation()
        self.draft = draft or self.draft_type()
        self.step = 1
        self.error: Optional[WizardError] = None
        self.field_errors = FieldErrors()
        self.payment = PaymentState()
        self.submission: Optional[Submission] = None

        preselected = PlanKey.from_pricing_id(pricing_plan_id, self.role)
        if preselected != PlanKey.NONE:
            self.draft = self.draft.update(payment_plan=preselected)

    # --- Derived display state ---

    @property
    def steps(self) -> list[WizardStep]:
        return [
            WizardStep(number, title, completed=number < FINAL_STEP and self.step > number)
            for number, title in self.step_titles.items()
        ]

    @property
    def title(self) -> str:
        return self.step_titles[self.step]

    @property
    def is_final_step(self) -> bool:
        return self.step == FINAL_STEP

    @property
    def completed(self) -> bool:
        return self.submission is not None

    # --- Editing ---

    def update(self, **changes):
        """
        Replace the draft with one that has ``changes`` applied.

        Errors for the edited fields are cleared; other field errors stay.
        A change of plan goes through ``select_plan``.
        """
        plan = changes.pop("payment_plan", None)
        if changes:
            self.draft = self.draft.update(**changes)
            for name in changes:
                for fid in self._field_ids(name):
                    self.clear_field_error(fid)
        if plan is not None:
            self.select_plan(plan)
        return self.draft

    def edit(self, edit_fn, *field_ids: str):
        """
        Apply a draft helper, e.g. ``wizard.edit(lambda d: d.toggle_sector(s), "sectors")``.

        ``field_ids`` are the errors the edit resolves.
        """
        self.draft = edit_fn(self.draft)
        for fid in field_ids:
            self.clear_field_error(fid)
        return self.draft

    def clear_field_error(self, field_id: str) -> None:
        self.field_errors.clear(field_id)

    def select_plan(self, plan) -> None:
        """Change the selected plan; any confirmed payment is invalidated."""
        key = PlanKey.parse(plan)
        if key == self.draft.payment_plan:
            return
        self.draft = self.draft.update(payment_plan=key)
        self.payment.reset()
        self.clear_field_error("payment")
        logger.debug("Plan changed to %r; payment must be confirmed again", key.value)

    # --- Payment ---

    def confirm_payment(self, now: Optional[datetime] = None) -> Optional[PaymentReceipt]:
        """
        Confirm payment for the selected plan.

        Returns the receipt, or None with ``error`` set. Once confirmed the
        existing receipt is returned without contacting the gateway again.
        """
        if self.payment.confirmed:
            return self.payment.receipt

        self.error = None
        if self.draft.payment_plan == PlanKey.NONE:
            self._fail(WizardError(NO_PLAN_MESSAGE, section="step7", fields=("payment",)))
            return None

        self.payment.processing = True
        try:
            receipt, message = self.payments.confirm(
                self.draft.payment_plan,
                customer_name=self.draft.customer_name,
                customer_email=self.draft.customer_email,
                organization=self._organization(),
                now=now,
                role=self.role,
            )
        except PaymentError as exc:
            logger.error("Checkout initiation failed: %s", exc.message)
            self._fail(WizardError(CHECKOUT_FAILED_MESSAGE, section="step7", kind=exc.kind))
            return None
        finally:
            self.payment.processing = False

        if receipt is None:
            self._fail(WizardError(message, section="step7", fields=("payment",)))
            return None

        self.payment.receipt = receipt
        self.payment.confirmed = True
        self.clear_field_error("payment")
        return receipt

    # --- Transitions ---

    def advance(self, now: Optional[datetime] = None) -> bool:
        """
        Validate the current step and move forward.

        On the final step a successful validation submits the registration.
        Returns True when the step moved or the account was created.
        """
        self.error = None
        self.field_errors.clear()

        result = self._validate(now)
        if not result.ok:
            self.error = WizardError.from_result(result)
            self.field_errors = FieldErrors.from_result(result)
            logger.debug("Step %d rejected: %s", self.step, ", ".join(result.fields))
            return False

        if self.is_final_step:
            return self._submit(now)

        self.step += 1
        logger.info("Advanced to step %d (%s)", self.step, self.title)
        return True

    def retreat(self) -> bool:
        """Go back one step without validation; clears error state."""
        if self.step <= 1:
            return False
        self.error = None
        self.field_errors.clear()
        self.step -= 1
        return True

    def _submit(self, now: Optional[datetime]) -> bool:
        account_id, error = self._register(now)
        if account_id is None:
            self.error = WizardError(
                error or "Registration failed. Please try again.",
                section="step7",
                kind=ErrorKind.REMOTE_REJECTED,
            )
            return False

        self.submission = Submission(account_id=account_id, destination=self.destination, submitted_at=now)
        # The draft holds credentials; it is not kept once the account exists.
        self.draft = self.draft_type()
        self.payment.reset()
        return True

    def _fail(self, error: WizardError) -> None:
        self.error = error
        for fid in error.fields:
            self.field_errors.set(fid, error.message)

    # --- Registrant-specific hooks ---

    def _validate(self, now: Optional[datetime]) -> ValidationResult:
        return validate_step(self.step, self.draft, self.payment.confirmed)

    def _register(self, now: Optional[datetime]) -> tuple[Optional[str], Optional[str]]:
        return self.accounts.register_sdp(self.draft, self.payment.receipt, now)

    def _organization(self) -> str:
        return self.draft.company_name

    def _field_ids(self, attribute: str) -> list[str]:
        """Field errors resolved by editing a draft attribute."""
        if attribute == "documents":
            return list(DOCUMENT_FIELD_IDS.values())
        return [field_id(attribute)]

    def to_dict(self) -> dict:
        """Snapshot of the wizard for display (passwords redacted)."""
        return {
            "role": self.role.value,
            "step": self.step,
            "title": self.title,
            "steps": [{"number": s.number, "title": s.title, "completed": s.completed} for s in self.steps],
            "draft": self.draft.to_dict(redact=True),
            "error": self.error.to_dict() if self.error else None,
            "field_errors": self.field_errors.to_dict(),
            "payment": {
                "confirmed": self.payment.confirmed,
                "processing": self.payment.processing,
                "receipt": self.payment.receipt.to_dict() if self.payment.receipt else None,
            },
            "submission": {
                "account_id": self.submission.account_id,
                "destination": self.submission.destination,
            } if self.submission else None,
        }


class SMERegistrationWizard(RegistrationWizard):
    """
    SME registration: personal details, professional profile, qualifications,
    rates, CV with certified documents, review, then payment.

    New SMEs sign in after registering, so the submission points at the
    login page rather than a dashboard.
    """

    role = Role.SME
    step_titles = SME_STEP_TITLES
    draft_type = SMERegistrationDraft
    destination = "/login"

    def _validate(self, now: Optional[datetime]) -> ValidationResult:
        today = (now or datetime.now(timezone.utc)).date()
        return validate_sme_step(self.step, self.draft, self.payment.confirmed, today)

    def _register(self, now: Optional[datetime]) -> tuple[Optional[str], Optional[str]]:
        return self.accounts.register_sme(self.draft, self.payment.receipt, now)

    def _organization(self) -> str:
        return ""

    def _field_ids(self, attribute: str) -> list[str]:
        if attribute == "documents":
            return list(SME_DOCUMENT_FIELD_IDS.values())
        if attribute == "cv":
            return list(CV_FIELD_IDS)
        return [sme_field_id(attribute)]
