"""
Transfer error taxonomy.

Every error carries a machine-readable ``code``, the HTTP status the API
layer maps it to, and a ``context`` dict that is echoed to the caller.
Pre-submission errors (400) never have a network side effect.
"""

from decimal import Decimal

from fastapi import status


class TransferError(Exception):
    """Base class for every error the transfer pipeline surfaces."""

    code = "TRANSFER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str | None = None, **context):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context
        self.record_id: int | None = None

    def to_dict(self) -> dict:
        """JSON-safe representation used as the HTTP error detail."""
        detail = {"error": self.message, "code": self.code}
        for key, value in self.context.items():
            detail[key] = str(value) if isinstance(value, Decimal) else value
        if self.record_id is not None:
            detail["record_id"] = self.record_id
        return detail


# ---------------------------------------------------------------------------
# Pre-submission rejections
# ---------------------------------------------------------------------------


class InvalidDestinationError(TransferError):
    code = "INVALID_DESTINATION"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidAmountError(TransferError):
    code = "INVALID_AMOUNT"
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientFundsError(TransferError):
    """Amount plus estimated fee exceeds the live balance."""

    code = "INSUFFICIENT_FUNDS"
    status_code = status.HTTP_400_BAD_REQUEST


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class AllEndpointsUnavailableError(TransferError):
    code = "ALL_ENDPOINTS_UNAVAILABLE"


class NetworkRequestError(TransferError):
    code = "NETWORK_ERROR"


class SigningUnavailableError(TransferError):
    code = "SIGNER_NOT_CONFIGURED"


# ---------------------------------------------------------------------------
# Post-submission
# ---------------------------------------------------------------------------


class SubmissionFailedError(TransferError):
    code = "SUBMISSION_FAILED"


class ConfirmationFailedError(TransferError):
    """Raised after a transaction hash exists; the outcome may be ambiguous."""

    code = "CONFIRMATION_FAILED"


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class TransferNotFoundError(TransferError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
