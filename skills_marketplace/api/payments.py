"""HTTP client for the checkout gateway."""

import logging
from typing import Optional

import httpx

from ..errors import PaymentError, ErrorKind
from ..models.payment import CheckoutRequest, CheckoutResponse

logger = logging.getLogger(__name__)


def _json_object(response: httpx.Response) -> Optional[dict]:
    """The response body when it is a JSON object, else None."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


class PaymentGatewayClient:
    """
    Starts hosted checkouts for plan payments.

    No request timeout is configured: a hung gateway call blocks the
    caller until the gateway answers or the connection drops.
    """

    CHECKOUT_PATH = "/payments/checkout"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Gateway base URL
            api_key: Bearer token sent with every request
            transport: Custom httpx transport (tests use ``httpx.MockTransport``)
        """
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=None,
            transport=transport,
        )

    def initiate_checkout(self, request: CheckoutRequest) -> CheckoutResponse:
        """Start a checkout; raises ``PaymentError`` on any failure."""
        try:
            response = self._client.post(self.CHECKOUT_PATH, json=request.to_dict())
        except httpx.TransportError as exc:
            logger.error("Checkout gateway unreachable: %s", exc)
            raise PaymentError(f"Payment gateway unavailable: {exc}", ErrorKind.REMOTE_UNAVAILABLE) from exc

        if response.is_error:
            body = _json_object(response)
            message = (body or {}).get("message") or response.text
            logger.error("Checkout rejected (%s): %s", response.status_code, message)
            raise PaymentError(message or f"HTTP {response.status_code}", ErrorKind.REMOTE_REJECTED)

        body = _json_object(response)
        if body is None:
            logger.error("Checkout gateway returned a non-object body: %.200s", response.text)
            raise PaymentError("Malformed gateway response", ErrorKind.REMOTE_REJECTED)
        try:
            return CheckoutResponse.from_dict(body)
        except ValueError as exc:
            raise PaymentError("Malformed gateway response", ErrorKind.REMOTE_REJECTED) from exc

    def close(self) -> None:
        self._client.close()
