"""Provider seams and the REST API for the skills marketplace."""

from .documents import LocalDocumentStore, Subscription
from .identity import LocalIdentityProvider, LocalClaimSetter
from .payments import PaymentGatewayClient
from .routes import create_app

__all__ = [
    "LocalDocumentStore",
    "Subscription",
    "LocalIdentityProvider",
    "LocalClaimSetter",
    "PaymentGatewayClient",
    "create_app",
]
