"""
Error taxonomy. Every error a client can see is a WalletAIError.

Each class carries the HTTP status it maps to and a public message.
The app factory turns them into the {success: false, error} envelope.
"""

from typing import Optional

from .flags import get_flags


class WalletAIError(Exception):
    """Base class. `public_message` is what untrusted clients get to read."""

    status_code: int = 500
    default_message: str = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message


class AuthRequired(WalletAIError):
    """No identity on the session."""
    status_code = 401
    default_message = "Authentication required. Please sign in with Google."


class CredentialRequired(WalletAIError):
    """Identity present, wallet credential missing. Clients route this to onboarding."""
    status_code = 403
    default_message = (
        "Wallet not set up. Complete wallet setup (initialize user and create wallet) first."
    )


class OwnershipViolation(WalletAIError):
    """Wallet id not in the caller's live wallet list. Same text whether it exists or not."""
    status_code = 403
    default_message = "Wallet does not belong to the current user."


class ValidationError(WalletAIError):
    """Malformed amount, unknown item, unresolved price, bad tool arguments."""
    status_code = 400
    default_message = "Invalid request."


class ItemNotFound(ValidationError):
    status_code = 404
    default_message = "Item not found."


class InsufficientBalance(WalletAIError):
    status_code = 400

    def __init__(self, available: str, requested: str, symbol: str = ""):
        self.available = available
        self.requested = requested
        self.symbol = symbol
        unit = f" {symbol}" if symbol else ""
        super().__init__(
            f"Insufficient balance. Available: {available}{unit}. Requested: {requested}{unit}."
        )


class SettlementPending(WalletAIError):
    """Hardened confirmation only: no settled transfer matches the purchase yet."""
    status_code = 409
    default_message = (
        "Payment has not settled yet. Wait a moment and confirm again."
    )


class UpstreamFailure(WalletAIError):
    """Custody provider or LLM transport failure, or a non-2xx answer."""
    status_code = 502
    default_message = "The wallet service is temporarily unavailable. Please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        status: Optional[int] = None,
        code: Optional[int] = None,
    ):
        self.status = status
        self.code = code
        super().__init__(message)

    @property
    def public_message(self) -> str:
        if get_flags().redact_upstream_errors:
            return self.default_message
        return self.message


class AlreadyInitialized(UpstreamFailure):
    """Custody user was initialized before. Onboarding treats this as success."""
    status_code = 409
    default_message = "Wallet user is already initialized."
