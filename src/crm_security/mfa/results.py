"""Typed results for MFA lifecycle operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .totp import TotpFailure

if TYPE_CHECKING:
    from .enrollment import MfaState
    from .provisioning import TotpProvisioning


class MfaErrorKind(str, Enum):
    """Why an MFA operation was refused.

    The HTTP layer maps these to responses; INVALID_CODE never says whether
    the code was wrong or merely expired.
    """

    NOT_AUTHORIZED = "not_authorized"
    NOT_ENROLLED = "not_enrolled"
    ALREADY_ENABLED = "already_enabled"
    INVALID_FORMAT = "invalid_format"
    INVALID_CODE = "invalid_code"
    INVALID_BACKUP_CODE = "invalid_backup_code"

    @property
    def message(self) -> str:
        return _MESSAGES[self]

    @classmethod
    def from_totp(cls, failure: TotpFailure | None) -> MfaErrorKind:
        if failure is TotpFailure.INVALID_FORMAT:
            return cls.INVALID_FORMAT
        return cls.INVALID_CODE


_MESSAGES: dict[MfaErrorKind, str] = {
    MfaErrorKind.NOT_AUTHORIZED: "Invalid password",
    MfaErrorKind.NOT_ENROLLED: "MFA is not in a state that allows this operation",
    MfaErrorKind.ALREADY_ENABLED: "MFA is already enabled for this account",
    MfaErrorKind.INVALID_FORMAT: "Invalid token format. Must be 6 digits.",
    MfaErrorKind.INVALID_CODE: "Invalid or expired token",
    MfaErrorKind.INVALID_BACKUP_CODE: "Invalid backup code",
}


@dataclass(frozen=True)
class MfaResult:
    """Outcome of an MFA lifecycle operation.

    Attributes:
        error: Failure kind, or None on success.
        state: Enrollment state after the operation.
        provisioning: New secret payload (``begin_setup`` only).
        qr_code: Rendered QR data URI when a renderer is configured.
        backup_codes: Plaintext codes to show once (setup / regeneration).
        backup_codes_remaining: Unused backup codes after the operation.
        backup_codes_low: True when the remaining count is below threshold.
    """

    error: MfaErrorKind | None = None
    state: MfaState | None = None
    provisioning: TotpProvisioning | None = None
    qr_code: str | None = None
    backup_codes: tuple[str, ...] = ()
    backup_codes_remaining: int | None = None
    backup_codes_low: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return "OK" if self.error is None else self.error.message

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def failure(
        cls, error: MfaErrorKind, state: MfaState | None = None
    ) -> MfaResult:
        return cls(error=error, state=state)


@dataclass(frozen=True)
class MfaStatusReport:
    """MFA status of an account as shown on a settings page."""

    state: MfaState
    enabled: bool
    verified: bool
    backup_codes_remaining: int
    backup_codes_low: bool


__all__: list[str] = ["MfaErrorKind", "MfaResult", "MfaStatusReport"]
