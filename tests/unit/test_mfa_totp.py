"""Tests for TOTP verification."""

from __future__ import annotations

import sys

import pytest

from crm_security.config import TotpConfig
from crm_security.mfa.totp import (
    TotpFailure,
    TotpVerification,
    TotpVerifier,
    normalize_code,
)

pyotp = pytest.importorskip("pyotp", reason="pyotp required for TOTP")

from crm_security.mfa.diagnostics import current_code  # noqa: E402

SECRET = b"12345678901234567890"
# On a 30-second step boundary.
T = 1_700_000_010


@pytest.fixture
def verifier() -> TotpVerifier:
    return TotpVerifier(clock=lambda: T)


class TestNormalizeCode:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("123456", "123456"),
            (" 123 456 ", "123456"),
            ("123\t456\n", "123456"),
        ],
    )
    def test_whitespace_removed(self, raw: str, expected: str) -> None:
        assert normalize_code(raw) == expected

    @pytest.mark.parametrize(
        "raw", ["", "12345", "1234567", "12345a", "12-456", "١٢٣٤٥٦", "+12345"]
    )
    def test_malformed_rejected(self, raw: str) -> None:
        assert normalize_code(raw) is None

    def test_digit_count_configurable(self) -> None:
        assert normalize_code("12345678", digits=8) == "12345678"


class TestTotpVerifier:
    def test_round_trip_with_zero_window(self, verifier: TotpVerifier) -> None:
        """A freshly generated code verifies with no drift allowance."""
        code = current_code(SECRET, for_time=T)

        result = verifier.verify(code, SECRET, window_steps=0)

        assert result.is_valid
        assert result.failure is None

    def test_round_trip_against_real_clock(self) -> None:
        secret = b"a-much-longer-shared-secret-value"

        assert TotpVerifier().verify(current_code(secret), secret, window_steps=1)

    def test_matches_rfc6238_reference(self) -> None:
        """RFC 6238 SHA-1 vector at T=59, truncated to six digits."""
        result = TotpVerifier(TotpConfig()).verify(
            "287082", SECRET, window_steps=0, for_time=59
        )

        assert result.is_valid

    @pytest.mark.parametrize("offset", [-60, -31, 0, 31, 60, 89])
    def test_drift_within_window_accepted(
        self, verifier: TotpVerifier, offset: int
    ) -> None:
        code = current_code(SECRET, for_time=T)

        assert verifier.verify(code, SECRET, window_steps=2, for_time=T + offset)

    @pytest.mark.parametrize("offset", [-61, -90, 90, 120])
    def test_drift_beyond_window_rejected(
        self, verifier: TotpVerifier, offset: int
    ) -> None:
        """One step past the window on either side fails."""
        code = current_code(SECRET, for_time=T)

        result = verifier.verify(code, SECRET, window_steps=2, for_time=T + offset)

        assert not result.is_valid
        assert result.failure is TotpFailure.INVALID_CODE

    def test_default_window_is_login_window(self) -> None:
        code = current_code(SECRET, for_time=T)
        verifier = TotpVerifier(clock=lambda: T + 60)

        assert verifier.verify(code, SECRET)

    def test_setup_window_is_narrower(self) -> None:
        code = current_code(SECRET, for_time=T)
        verifier = TotpVerifier(clock=lambda: T + 60)

        assert not verifier.verify(code, SECRET, window_steps=1)

    def test_code_with_spaces_accepted(self, verifier: TotpVerifier) -> None:
        code = current_code(SECRET, for_time=T)

        assert verifier.verify(f"{code[:3]} {code[3:]}", SECRET, window_steps=0)

    def test_malformed_code_is_format_failure(self, verifier: TotpVerifier) -> None:
        result = verifier.verify("12ab56", SECRET)

        assert result.failure is TotpFailure.INVALID_FORMAT
        assert result.reason == "Invalid token format. Must be 6 digits."

    def test_wrong_code_reason_does_not_say_expired_or_wrong(
        self, verifier: TotpVerifier
    ) -> None:
        code = current_code(SECRET, for_time=T - 3600)

        result = verifier.verify(code, SECRET, window_steps=2)

        assert result.reason == "Invalid or expired token"

    def test_empty_secret_fails(self, verifier: TotpVerifier) -> None:
        result = verifier.verify("123456", b"")

        assert result.failure is TotpFailure.INVALID_CODE

    def test_negative_window_rejected(self, verifier: TotpVerifier) -> None:
        with pytest.raises(ValueError):
            verifier.verify("123456", SECRET, window_steps=-1)

    def test_custom_step_length(self, verifier: TotpVerifier) -> None:
        code = current_code(SECRET, step_seconds=60, for_time=T)

        assert verifier.verify(code, SECRET, window_steps=0, step_seconds=60)


class TestTotpVerification:
    def test_truthiness(self) -> None:
        assert TotpVerification(True)
        assert not TotpVerification(False, TotpFailure.INVALID_CODE)

    def test_success_reason(self) -> None:
        assert TotpVerification(True).reason == "Token verified successfully"


class TestCurrentCode:
    def test_rfc6238_vector(self) -> None:
        assert current_code(SECRET, digits=8, for_time=59) == "94287082"

    def test_missing_pyotp_explains_install(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setitem(sys.modules, "pyotp", None)

        with pytest.raises(ImportError, match="pip install pyotp"):
            current_code(SECRET, for_time=T)
