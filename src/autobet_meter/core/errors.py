"""Error taxonomy for metered requests.

Every failure a caller can observe is one of the classes below. Each class
carries the HTTP status it maps to and a default user-facing message, so the
API layer can render any of them as ``{"error": message}`` without knowing
where the failure came from.
"""

from __future__ import annotations

from fastapi import status


class MeteringError(Exception):
    """Base class for failures surfaced to callers of metered endpoints."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(MeteringError):
    """Required input (image or user id) is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AccountNotFoundError(MeteringError):
    """The user id has no ledger record."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class InsufficientBalanceError(MeteringError):
    """The account balance is not positive; terminal until topped up."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Insufficient balance"


class LedgerUnavailableError(MeteringError):
    """The balance store could not be reached. Nothing was charged."""

    default_message = "Balance ledger unavailable"


class InferenceFailureError(MeteringError):
    """The external classifier failed or timed out after the debit."""

    default_message = "Failed to classify image"


class MalformedClassifierOutputError(InferenceFailureError):
    """The classifier answered, but not in the expected shape."""

    default_message = "Classifier returned malformed output"
