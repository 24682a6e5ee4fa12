"""Error taxonomy of the settlement engine."""

from __future__ import annotations

from typing import Any


class SettlementError(Exception):
    """Base class for every failure the engine reports to its callers."""

    error_code = "settlement_error"
    http_status = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"detail": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(SettlementError):
    error_code = "not_found"
    http_status = 404


class ForbiddenError(SettlementError):
    error_code = "forbidden"
    http_status = 403


class ValidationError(SettlementError):
    """Malformed amount, date, address or enum value."""

    error_code = "validation_error"


class InvalidTransitionError(SettlementError):
    """The current status does not allow the requested operation."""

    error_code = "invalid_transition"
    http_status = 409


class ApprovalRequiredError(InvalidTransitionError):
    error_code = "approval_required"


class PolicyViolationError(SettlementError):
    error_code = "policy_violation"
    http_status = 403


class WalletNotVerifiedError(SettlementError):
    error_code = "wallet_not_verified"
    http_status = 403


class WalletMismatchError(SettlementError):
    error_code = "wallet_mismatch"


class NoWalletConfiguredError(SettlementError):
    error_code = "no_wallet_configured"


class InvalidSignatureError(SettlementError):
    error_code = "invalid_signature"


class ChallengeExpiredError(SettlementError):
    error_code = "challenge_expired"
    http_status = 410


class SourceUnavailableError(SettlementError):
    """Booking or bounty is missing, cancelled, or has no accepted application."""

    error_code = "source_unavailable"


__all__ = [
    "SettlementError",
    "NotFoundError",
    "ForbiddenError",
    "ValidationError",
    "InvalidTransitionError",
    "ApprovalRequiredError",
    "PolicyViolationError",
    "WalletNotVerifiedError",
    "WalletMismatchError",
    "NoWalletConfiguredError",
    "InvalidSignatureError",
    "ChallengeExpiredError",
    "SourceUnavailableError",
]
