"""TOTP (Time-based One-Time Password) verification.

Validates 6-digit codes from authenticator apps against a shared secret
within a bounded window of time steps (RFC 6238 on top of RFC 4226
HMAC-based OTP). Uses pyotp internally.

The verifier is stateless and does not prevent replay of a code inside
its window; replay protection for login belongs to the session layer.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..config import TotpConfig
from .enrollment import encode_secret

if TYPE_CHECKING:
    from collections.abc import Callable

_WHITESPACE = re.compile(r"\s+")


class TotpFailure(str, Enum):
    """Why a TOTP code was rejected."""

    INVALID_FORMAT = "invalid_format"
    INVALID_CODE = "invalid_code"


@dataclass(frozen=True)
class TotpVerification:
    """Outcome of a TOTP check.

    ``failure`` is None on success. A wrong code and an expired code both
    report ``INVALID_CODE``.
    """

    is_valid: bool
    failure: TotpFailure | None = None

    @property
    def reason(self) -> str:
        if self.failure is TotpFailure.INVALID_FORMAT:
            return "Invalid token format. Must be 6 digits."
        if self.failure is TotpFailure.INVALID_CODE:
            return "Invalid or expired token"
        return "Token verified successfully"

    def __bool__(self) -> bool:
        return self.is_valid


def normalize_code(code: str, digits: int = 6) -> str | None:
    """Strip whitespace and check the code is exactly ``digits`` ASCII digits.

    Returns:
        The normalized code, or None when the shape is wrong.
    """
    cleaned = _WHITESPACE.sub("", code or "")
    if len(cleaned) != digits or not all("0" <= c <= "9" for c in cleaned):
        return None
    return cleaned


class TotpVerifier:
    """Verifies TOTP codes against a secret.

    Example:
        ```python
        verifier = TotpVerifier()
        result = verifier.verify("123 456", secret)
        if not result:
            print(result.reason)

        # Narrow window while confirming a new secret
        verifier.verify(code, secret, window_steps=1)
        ```
    """

    def __init__(
        self,
        config: TotpConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the verifier.

        Args:
            config: TOTP configuration (digits, step length, windows).
            clock: Source of the current unix time.
        """
        self.config = config or TotpConfig()
        self.clock = clock

    def _get_pyotp(self) -> Any:
        """Lazy import pyotp."""
        try:
            import pyotp

            return pyotp
        except ImportError as e:
            raise ImportError(
                "pyotp is required for TOTP support. "
                "Install with: pip install pyotp"
            ) from e

    def verify(
        self,
        code: str,
        secret: bytes,
        window_steps: int | None = None,
        step_seconds: int | None = None,
        *,
        for_time: float | None = None,
    ) -> TotpVerification:
        """Verify a TOTP code.

        Malformed input fails fast without any HMAC computation. Otherwise
        the steps ``[current - window_steps, current + window_steps]`` are
        checked with constant-time comparison; the matching offset is not
        reported.

        Args:
            code: Code as typed by the user; whitespace is ignored.
            secret: Shared-secret bytes.
            window_steps: Steps tolerated either side (default: login window).
            step_seconds: Step length (default: configured step).
            for_time: Unix time to verify at (default: the clock).

        Returns:
            TotpVerification.
        """
        normalized = normalize_code(code, self.config.digits)
        if normalized is None:
            return TotpVerification(False, TotpFailure.INVALID_FORMAT)
        if not secret:
            return TotpVerification(False, TotpFailure.INVALID_CODE)

        window = self.config.login_window if window_steps is None else window_steps
        if window < 0:
            raise ValueError("window_steps cannot be negative")
        now = self.clock() if for_time is None else for_time

        pyotp = self._get_pyotp()
        totp = pyotp.TOTP(
            encode_secret(secret),
            digits=self.config.digits,
            interval=step_seconds or self.config.step_seconds,
        )
        if totp.verify(normalized, for_time=int(now), valid_window=window):
            return TotpVerification(True)
        return TotpVerification(False, TotpFailure.INVALID_CODE)


__all__: list[str] = [
    "TotpFailure",
    "TotpVerification",
    "TotpVerifier",
    "normalize_code",
]
