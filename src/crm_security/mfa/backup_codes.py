"""Backup codes for MFA recovery.

Generates and checks single-use recovery codes that substitute for a TOTP
code when the authenticator device is unavailable. The manager is pure:
it returns new code lists and never stores anything. The lifecycle
persists the remaining set under a per-account lock.
"""

from __future__ import annotations

import re
import secrets
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..config import BackupCodeConfig

if TYPE_CHECKING:
    from collections.abc import Sequence

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class BackupCodeVerification:
    """Outcome of a backup code check.

    Attributes:
        is_valid: True if the candidate matched a code.
        remaining_codes: Codes still usable afterwards. Unchanged on a miss;
            one occurrence removed on a hit.
    """

    is_valid: bool
    remaining_codes: tuple[str, ...]

    def __bool__(self) -> bool:
        return self.is_valid


class BackupCodeManager:
    """Generates and verifies single-use backup codes.

    Example:
        ```python
        manager = BackupCodeManager()
        codes = manager.generate()          # show to the user once

        result = manager.verify(" ab12cd34 ", codes)
        if result:
            codes = list(result.remaining_codes)  # persist atomically
        ```
    """

    # Characters used in backup codes (exclude ambiguous: 0, O, 1, I)
    ALPHABET = string.ascii_uppercase.replace("O", "").replace(
        "I", ""
    ) + string.digits.replace("0", "").replace("1", "")

    def __init__(self, config: BackupCodeConfig | None = None) -> None:
        self.config = config or BackupCodeConfig()

    def _generate_code(self, code_length: int) -> str:
        return "".join(secrets.choice(self.ALPHABET) for _ in range(code_length))

    def generate(
        self, count: int | None = None, code_length: int | None = None
    ) -> list[str]:
        """Generate a fresh set of backup codes.

        Codes are drawn independently; duplicates are not filtered out but
        are vanishingly unlikely at the default length.

        Args:
            count: Number of codes (default from config, 10).
            code_length: Characters per code (default from config, 8).

        Returns:
            Plaintext codes, shown to the user once.
        """
        count = self.config.count if count is None else count
        code_length = self.config.code_length if code_length is None else code_length
        if count < 0 or code_length < 1:
            raise ValueError("count must be >= 0 and code_length >= 1")
        return [self._generate_code(code_length) for _ in range(count)]

    @staticmethod
    def normalize(candidate: str) -> str:
        """Strip whitespace and uppercase a user-typed code."""
        return _WHITESPACE.sub("", candidate or "").upper()

    def verify(self, candidate: str, codes: Sequence[str]) -> BackupCodeVerification:
        """Check a candidate against a code set.

        Every stored code is compared in constant time; on a hit only the
        first occurrence is removed.

        Args:
            candidate: Code as typed by the user.
            codes: Current unused codes.

        Returns:
            BackupCodeVerification with the remaining codes.
        """
        stored = tuple(codes)
        normalized = self.normalize(candidate)
        if not normalized:
            return BackupCodeVerification(False, stored)

        match_index = -1
        for index, code in enumerate(stored):
            if secrets.compare_digest(code.encode(), normalized.encode()) and (
                match_index == -1
            ):
                match_index = index

        if match_index == -1:
            return BackupCodeVerification(False, stored)
        remaining = stored[:match_index] + stored[match_index + 1 :]
        return BackupCodeVerification(True, remaining)

    def has_sufficient_remaining(
        self, codes: Sequence[str], threshold: int | None = None
    ) -> bool:
        """True when at least ``threshold`` codes remain (default 3)."""
        threshold = self.config.low_threshold if threshold is None else threshold
        return len(codes) >= threshold


__all__: list[str] = ["BackupCodeManager", "BackupCodeVerification"]
