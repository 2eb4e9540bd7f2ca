"""
Vesting vault exception hierarchy.

Provides typed exceptions for vault, schedule and claim operations so callers
can handle each failure kind precisely. Every exception carries a ``code``
naming its error kind, which is what the CLI and structured logs report.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class VaultError(Exception):
    """Base exception for all vesting vault errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether the operation can be retried
    """

    code = "VaultError"
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable


# ==================== Vault State Errors ====================


class AlreadyInitializedError(VaultError):
    """Raised when the vault singleton has already been created."""
    code = "AlreadyInitialized"


class VaultNotInitializedError(VaultError):
    """Raised when an operation needs the vault before it was initialized."""
    code = "VaultNotInitialized"


# ==================== Validation Errors ====================


class ValidationError(VaultError):
    """Raised when request data fails a precondition check.

    Validation errors are always raised before any state is mutated.
    """
    code = "ValidationError"


class InvalidScheduleError(ValidationError):
    """Raised for a non-positive allocation or a bad time ordering."""
    code = "InvalidSchedule"


class DuplicateBeneficiaryError(ValidationError):
    """Raised when a beneficiary already has a vesting account."""
    code = "DuplicateBeneficiary"


class TokenMismatchError(ValidationError):
    """Raised when a deposit names a token type the vault does not accept."""
    code = "TokenMismatch"


class NotFoundError(ValidationError):
    """Raised when no vesting account exists for a beneficiary."""
    code = "NotFound"


class InvalidTimestampError(ValidationError):
    """Raised when a supplied time is not an integer timestamp."""
    code = "InvalidTimestamp"


# ==================== Authorization Errors ====================


class AuthorizationError(VaultError):
    """Raised when the caller identity may not perform an operation."""
    code = "AuthorizationError"


class InvalidAdminError(AuthorizationError):
    """Raised when the caller is not the vault administrator or authority."""
    code = "InvalidAdmin"


class UnauthorizedError(AuthorizationError):
    """Raised when someone other than the beneficiary submits a claim."""
    code = "Unauthorized"


# ==================== Settlement Errors ====================


class SettlementError(VaultError):
    """Raised when a claim cannot be settled."""
    code = "SettlementError"


class ClaimOverflowError(SettlementError):
    """Raised when a claim would push claimed tokens past the allocation."""
    code = "Overflow"


class TransferFailedError(SettlementError):
    """Raised when the custody transfer did not move the tokens."""
    code = "TransferFailed"
    recoverable = True  # Can retry once custody is funded


# ==================== Storage & Configuration Errors ====================


class StorageError(VaultError):
    """Raised when vault snapshots cannot be read or written."""
    code = "StorageError"
    recoverable = True


class CorruptedStateError(StorageError):
    """Raised when a stored snapshot fails its integrity check."""
    code = "CorruptedState"
    recoverable = False  # Needs manual intervention


class ConfigurationError(VaultError):
    """Raised when vault configuration is missing or invalid."""
    code = "ConfigurationError"


# ==================== Utility Functions ====================


def is_recoverable_error(exc: Exception) -> bool:
    """Check if an exception represents a recoverable error.

    Args:
        exc: The exception to check

    Returns:
        True if the error is recoverable and the operation can be retried
    """
    if isinstance(exc, VaultError):
        return exc.recoverable

    recoverable_types = (
        ConnectionError,
        TimeoutError,
        OSError,
    )
    return isinstance(exc, recoverable_types)


def get_error_context(exc: Exception) -> Dict[str, Any]:
    """Extract error context from an exception for logging.

    Args:
        exc: The exception to extract context from

    Returns:
        Dictionary containing error type, message, and any additional details
    """
    context: Dict[str, Any] = {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    if isinstance(exc, VaultError):
        context["error_code"] = exc.code
        context["recoverable"] = exc.recoverable
        if exc.details:
            context["details"] = exc.details

    return context
