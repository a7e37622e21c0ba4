"""Payment records exchanged with the checkout gateway."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class CheckoutStatus(Enum):
    """Status reported by the gateway for a checkout."""

    PENDING = "PENDING"   # Customer must complete payment at the checkout URL
    PAID = "PAID"         # Nothing to pay (trial) or already settled
    FAILED = "FAILED"


def _parse_timestamp(value) -> Optional[datetime]:
    """Accept ISO strings or ``{"seconds": ...}`` timestamp objects."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, dict) and isinstance(value.get("seconds"), (int, float)):
        return datetime.fromtimestamp(value["seconds"], tz=timezone.utc)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None


@dataclass
class PaymentReceipt:
    """Confirmation of a plan payment (real or mocked)."""
    reference: str
    amount: str  # Display amount, e.g. "R149"
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "reference": self.reference,
            "amount": self.amount,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentReceipt":
        return cls(
            reference=data.get("reference", ""),
            amount=data.get("amount", ""),
            expires_at=_parse_timestamp(data.get("expires_at")),
        )


@dataclass
class CheckoutRequest:
    """Payload sent to the gateway to start a checkout."""
    amount: int
    plan_id: str
    billing_type: str
    currency: str = "ZAR"
    role: str = "sdp"
    customer_name: str = ""
    customer_email: str = ""
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "amount": self.amount,
            "currency": self.currency,
            "planId": self.plan_id,
            "billingType": self.billing_type,
            "role": self.role,
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
            },
            "returnUrl": self.return_url,
            "cancelUrl": self.cancel_url,
            "metadata": self.metadata,
        }


@dataclass
class CheckoutResponse:
    """Gateway answer to a checkout request."""
    payment_id: str = ""
    checkout_url: Optional[str] = None
    status: CheckoutStatus = CheckoutStatus.PENDING
    amount: Optional[int] = None
    currency: str = "ZAR"
    expires_at: Optional[datetime] = None
    message: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "CheckoutResponse":
        """Deserialize the gateway's JSON body; a non-object body raises ``ValueError``."""
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        status = data.get("paymentStatus") or data.get("status") or "PENDING"
        try:
            parsed_status = CheckoutStatus(str(status).upper())
        except ValueError:
            parsed_status = CheckoutStatus.PENDING

        return cls(
            payment_id=data.get("paymentId", ""),
            checkout_url=data.get("paymentUrl") or data.get("checkoutUrl"),
            status=parsed_status,
            amount=data.get("amount"),
            currency=data.get("currency", "ZAR"),
            expires_at=_parse_timestamp(data.get("expiresAt")),
            message=data.get("message", ""),
        )
