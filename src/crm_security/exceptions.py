"""Account-security exceptions.

Expected failures (wrong code, weak password) are reported through typed
results. The exceptions below cover conditions a caller cannot simply retry
with different input: missing accounts, provisioning faults, storage
conflicts and invalid sessions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .ports import ResourceIdentifier


class SecurityError(Exception):
    """Root exception for the crm-security package."""


# ═══════════════════════════════════════════════════════════════
# DOMAIN ERRORS
# ═══════════════════════════════════════════════════════════════


class DomainError(SecurityError):
    """Base class for domain-level errors."""


class NotFoundError(DomainError):
    """Raised when a resource is not found."""


class AccountNotFoundError(NotFoundError):
    """Raised when an account id does not resolve to a record."""

    def __init__(self, account_id: str) -> None:
        self.account_id = account_id
        super().__init__(f"Account with id={account_id!r} not found")


class PasswordPolicyError(DomainError):
    """Raised when a candidate password violates the password policy.

    Attributes:
        violations: Every violated rule, in evaluation order.
        score: Strength score of the rejected password.
    """

    def __init__(self, violations: Sequence[str], score: float = 0.0) -> None:
        self.violations: tuple[str, ...] = tuple(violations)
        self.score = score
        super().__init__(
            "Password does not meet security requirements: "
            + "; ".join(self.violations)
        )


# ═══════════════════════════════════════════════════════════════
# MFA ERRORS
# ═══════════════════════════════════════════════════════════════


class MfaError(DomainError):
    """Base class for MFA-related errors."""


class ProvisioningError(MfaError):
    """Raised when a TOTP secret or its enrollment payload cannot be produced.

    Fatal to the current setup attempt; safe to retry.
    """


# ═══════════════════════════════════════════════════════════════
# CONCURRENCY ERRORS
# ═══════════════════════════════════════════════════════════════


class ConcurrencyError(SecurityError):
    """Base class for concurrent-modification conflicts."""


class OptimisticLockingError(ConcurrencyError):
    """Raised by an account store when the stored version moved on.

    Callers reload the record and repeat the whole read-modify-write.
    """

    def __init__(self, account_id: str, expected: int, actual: int) -> None:
        self.account_id = account_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Account {account_id!r} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )


class LockAcquisitionError(ConcurrencyError):
    """Failed to acquire a per-account lock in time."""

    def __init__(
        self,
        resource: ResourceIdentifier,
        timeout: float,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.timeout = timeout
        self.reason = reason

        msg = f"Failed to acquire lock on {resource} within {timeout}s"
        if reason:
            msg += f" - {reason}"

        super().__init__(msg)


# ═══════════════════════════════════════════════════════════════
# SESSION / LOGIN ERRORS
# ═══════════════════════════════════════════════════════════════


class SessionError(SecurityError):
    """Base class for session-related errors."""


class InvalidSessionError(SessionError):
    """Raised when a session token is unknown or malformed."""


class ExpiredSessionError(SessionError):
    """Raised when a session token has expired."""


class LoginStateError(SecurityError):
    """Raised when a third-party login state nonce is invalid.

    This indicates a forged callback, a replay, or an expired attempt.
    """


__all__: list[str] = [
    "SecurityError",
    "DomainError",
    "NotFoundError",
    "AccountNotFoundError",
    "PasswordPolicyError",
    "MfaError",
    "ProvisioningError",
    "ConcurrencyError",
    "OptimisticLockingError",
    "LockAcquisitionError",
    "SessionError",
    "InvalidSessionError",
    "ExpiredSessionError",
    "LoginStateError",
]
