"""Plan payment confirmation for SDP and SME registration."""

import logging
import webbrowser
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import Settings
from ..models.plan import PlanKey, get_plan, compute_expiry, plans_for
from ..models.user import Role
from ..models.payment import CheckoutRequest, PaymentReceipt

logger = logging.getLogger(__name__)

NO_PLAN_MESSAGE = "Please select a membership plan before completing payment."
PLAN_NOT_FOUND_MESSAGE = "Unable to locate the selected plan. Please choose again."


def _open_in_browser(url: str) -> None:
    webbrowser.open(url, new=2)


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _checkout_metadata(plan, role: Role, organization: str, customer_email: str) -> dict:
    if role == Role.SME:
        metadata = {
            "selectedPlan": plan.label,
            "userEmail": customer_email,
            "planDurationDays": plan.duration_days,
        }
        if plan.is_free:
            # Amount billed once the trial ends
            metadata["postTrialAmount"] = plans_for(role)[PlanKey.MONTHLY].amount
        return metadata
    return {"organization": organization, "selectedPlan": plan.label}


class PaymentConfirmation:
    """
    Confirms a membership plan, either through the checkout gateway or, when
    no gateway is configured, with a mock confirmation.

    Nothing is memoised: every call to ``confirm`` re-invokes the gateway.
    Callers gate repeat calls behind their own confirmed flag.
    """

    def __init__(
        self,
        gateway=None,
        settings: Optional[Settings] = None,
        open_url: Callable[[str], None] = _open_in_browser,
    ):
        """
        Args:
            gateway: Object with ``initiate_checkout(CheckoutRequest)``; None
                selects the mock confirmation
            settings: Currency and callback URL configuration
            open_url: Called with the checkout URL for paid plans
        """
        self.gateway = gateway
        self.settings = settings or Settings()
        self.open_url = open_url

    @property
    def gateway_available(self) -> bool:
        return self.gateway is not None

    def confirm(
        self,
        plan_key,
        customer_name: str = "",
        customer_email: str = "",
        organization: str = "",
        now: Optional[datetime] = None,
        role: Role = Role.SDP,
    ) -> tuple[Optional[PaymentReceipt], str]:
        """
        Confirm payment for a plan from the registering role's plan table.

        Returns ``(receipt, message)``; the receipt is None when the plan is
        missing or unknown. Gateway failures raise ``PaymentError``.
        """
        now = now or datetime.now(timezone.utc)
        role = Role.parse(role)

        try:
            key = PlanKey.parse(plan_key)
        except ValueError:
            return None, PLAN_NOT_FOUND_MESSAGE
        if key == PlanKey.NONE:
            return None, NO_PLAN_MESSAGE

        plan = get_plan(key, role)
        if plan is None:
            return None, PLAN_NOT_FOUND_MESSAGE

        if not self.gateway_available:
            logger.warning("Payment gateway not configured. Using mock payment confirmation.")
            receipt = PaymentReceipt(
                reference=f"MOCK-{_epoch_ms(now)}",
                amount=plan.display_amount,
                expires_at=compute_expiry(plan.duration_days, now),
            )
            return receipt, "Mock payment confirmed"

        request = CheckoutRequest(
            amount=plan.amount,
            currency=self.settings.currency,
            plan_id=plan.plan_id,
            billing_type=plan.billing_type.value,
            role=role.value.lower(),
            customer_name=customer_name,
            customer_email=customer_email,
            return_url=self.settings.return_url,
            cancel_url=self.settings.cancel_url,
            metadata=_checkout_metadata(plan, role, organization, customer_email),
        )
        response = self.gateway.initiate_checkout(request)

        # SME trials still visit checkout to register a payment method
        if response.checkout_url and (role == Role.SME or not plan.is_free):
            self.open_url(response.checkout_url)

        if plan.duration_days:
            expires_at = compute_expiry(plan.duration_days, now)
        else:
            expires_at = response.expires_at

        receipt = PaymentReceipt(
            reference=response.payment_id or f"PAY-{_epoch_ms(now)}",
            amount=plan.display_amount,
            expires_at=expires_at,
        )
        logger.info("Payment %s confirmed for plan %s", receipt.reference, plan.plan_id)
        return receipt, response.message or "Payment confirmed"
