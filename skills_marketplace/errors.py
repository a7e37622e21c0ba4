"""Error taxonomy shared by the wizard, account service and providers."""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Category of a failure surfaced to the user."""

    LOCAL_VALIDATION = "local_validation"      # Never reaches a provider
    CREDENTIAL_MISMATCH = "credential_mismatch"
    REMOTE_UNAVAILABLE = "remote_unavailable"  # Provider unreachable
    REMOTE_REJECTED = "remote_rejected"        # Provider answered with an error
    UNKNOWN = "unknown"

    @property
    def http_status(self) -> int:
        """HTTP status used by the REST API for this kind."""
        statuses = {
            ErrorKind.LOCAL_VALIDATION: 400,
            ErrorKind.CREDENTIAL_MISMATCH: 401,
            ErrorKind.REMOTE_UNAVAILABLE: 503,
            ErrorKind.REMOTE_REJECTED: 502,
            ErrorKind.UNKNOWN: 500,
        }
        return statuses[self]


class MarketplaceError(Exception):
    """Base class for errors raised by provider calls."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class CredentialMismatchError(MarketplaceError):
    kind = ErrorKind.CREDENTIAL_MISMATCH


class RemoteUnavailableError(MarketplaceError):
    kind = ErrorKind.REMOTE_UNAVAILABLE


class RemoteRejectedError(MarketplaceError):
    kind = ErrorKind.REMOTE_REJECTED


class PaymentError(MarketplaceError):
    """Checkout initiation failed; the user may retry."""

    kind = ErrorKind.REMOTE_REJECTED
    retryable = True


def classify(exc: BaseException) -> ErrorKind:
    """Map any exception onto the error taxonomy."""
    if isinstance(exc, MarketplaceError):
        return exc.kind
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ErrorKind.REMOTE_UNAVAILABLE
    return ErrorKind.UNKNOWN
