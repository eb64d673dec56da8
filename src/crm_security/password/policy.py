"""Password policy evaluation.

Scores and validates a candidate password against a configurable policy.
Evaluation is pure and deterministic, so clients may call it on every
keystroke for live strength feedback.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import PasswordPolicyError
from .common import is_common_password

if TYPE_CHECKING:
    from collections.abc import Iterable

# Explicit character sets; no locale-aware classification.
UPPERCASE = frozenset(string.ascii_uppercase)
LOWERCASE = frozenset(string.ascii_lowercase)
DIGITS = frozenset(string.digits)
SYMBOLS = frozenset("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?~`")

MAX_SCORE = 10.0
MIN_PERSONAL_INFO_LENGTH = 3


@dataclass(frozen=True)
class PasswordPolicy:
    """Password policy thresholds.

    Attributes:
        min_length: Minimum number of characters.
        max_length: Maximum number of characters.
        require_uppercase: Require at least one of ``A-Z``.
        require_lowercase: Require at least one of ``a-z``.
        require_digit: Require at least one of ``0-9``.
        require_symbol: Require at least one symbol from :data:`SYMBOLS`.
        min_unique_chars: Minimum distinct characters (case-insensitive).
        prohibit_common_passwords: Reject passwords on the static denylist.
    """

    min_length: int = 12
    max_length: int = 128
    require_uppercase: bool = True
    require_lowercase: bool = True
    require_digit: bool = True
    require_symbol: bool = True
    min_unique_chars: int = 8
    prohibit_common_passwords: bool = True

    def __post_init__(self) -> None:
        if self.min_length < 1:
            raise ValueError("min_length must be at least 1")
        if self.max_length < self.min_length:
            raise ValueError("max_length must be >= min_length")
        if self.min_unique_chars < 1:
            raise ValueError("min_unique_chars must be at least 1")

    def describe(self) -> dict[str, Any]:
        """Requirement summary suitable for a client-side checklist."""
        return {
            "min_length": self.min_length,
            "max_length": self.max_length,
            "require_uppercase": self.require_uppercase,
            "require_lowercase": self.require_lowercase,
            "require_digit": self.require_digit,
            "require_symbol": self.require_symbol,
            "min_unique_chars": self.min_unique_chars,
            "prohibit_common_passwords": self.prohibit_common_passwords,
            "symbols": "".join(sorted(SYMBOLS)),
        }


DEFAULT_POLICY = PasswordPolicy()


@dataclass(frozen=True)
class PasswordEvaluation:
    """Result of evaluating one candidate password.

    Attributes:
        is_valid: True iff no rule was violated.
        violations: Violated-rule messages in evaluation order.
        score: Strength score in [0, 10], rounded to 2 decimal places.
        label: Human-readable strength label derived from ``score``.
    """

    is_valid: bool
    violations: tuple[str, ...]
    score: float
    label: str

    def raise_for_violations(self) -> None:
        """Raise :class:`PasswordPolicyError` with every violation, if any."""
        if not self.is_valid:
            raise PasswordPolicyError(self.violations, score=self.score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "violations": list(self.violations),
            "score": self.score,
            "label": self.label,
        }


def strength_label(score: float) -> str:
    """Map a strength score to its label."""
    if score < 3:
        return "Very Weak"
    if score < 5:
        return "Weak"
    if score < 7:
        return "Fair"
    if score < 8.5:
        return "Strong"
    return "Very Strong"


def _count_in(password: str, charset: frozenset[str]) -> int:
    return sum(1 for char in password if char in charset)


class PasswordPolicyEvaluator:
    """Evaluates candidate passwords against a :class:`PasswordPolicy`.

    Example:
        ```python
        evaluator = PasswordPolicyEvaluator()
        result = evaluator.evaluate(
            "Tr0ub4dor&3-horse!",
            personal_info=["jdoe", "jdoe@example.com"],
        )
        if not result.is_valid:
            print(result.violations)
        print(result.score, result.label)
        ```
    """

    def __init__(self, policy: PasswordPolicy | None = None) -> None:
        self.policy = policy or DEFAULT_POLICY

    def evaluate(
        self,
        candidate: str,
        personal_info: Iterable[str | None] = (),
        policy: PasswordPolicy | None = None,
    ) -> PasswordEvaluation:
        """Evaluate a candidate password.

        Violations accumulate independently of the score: a long, high
        scoring password is still invalid if it embeds personal information.

        Args:
            candidate: Password to evaluate.
            personal_info: Username, email and name fragments to reject.
            policy: Per-call override of the evaluator's policy.

        Returns:
            PasswordEvaluation with validity, violations, score and label.
        """
        policy = policy or self.policy
        violations: list[str] = []
        score = 0.0
        length = len(candidate)

        if length < policy.min_length:
            violations.append(
                f"Password must be at least {policy.min_length} characters long"
            )
        else:
            score += min(length / policy.min_length, 2)

        if length > policy.max_length:
            violations.append(
                f"Password cannot exceed {policy.max_length} characters"
            )

        counts = {
            "uppercase": _count_in(candidate, UPPERCASE),
            "lowercase": _count_in(candidate, LOWERCASE),
            "digit": _count_in(candidate, DIGITS),
            "symbol": _count_in(candidate, SYMBOLS),
        }
        class_rules = (
            (
                "uppercase",
                policy.require_uppercase,
                "Password must contain at least one uppercase letter",
            ),
            (
                "lowercase",
                policy.require_lowercase,
                "Password must contain at least one lowercase letter",
            ),
            (
                "digit",
                policy.require_digit,
                "Password must contain at least one number",
            ),
            (
                "symbol",
                policy.require_symbol,
                "Password must contain at least one special character "
                "(!@#$%^&*()_+-=[]{}|;:,.<>?)",
            ),
        )
        for name, required, message in class_rules:
            if counts[name]:
                score += 1
            elif required:
                violations.append(message)

        unique_chars = len(set(candidate.lower()))
        if unique_chars < policy.min_unique_chars:
            violations.append(
                "Password must contain at least "
                f"{policy.min_unique_chars} unique characters"
            )
        else:
            score += min(unique_chars / policy.min_unique_chars, 2)

        if policy.prohibit_common_passwords and is_common_password(candidate):
            violations.append(
                "Password is too common. Please choose a more unique password"
            )

        if self._contains_personal_info(candidate, personal_info):
            violations.append(
                "Password cannot contain personal information "
                "(name, email, username)"
            )

        # Depth bonuses
        if length >= 16:
            score += 1
        if length >= 20:
            score += 1
        score += 0.5 * sum(1 for count in counts.values() if count >= 2)

        score = round(max(0.0, min(score, MAX_SCORE)), 2)

        return PasswordEvaluation(
            is_valid=not violations,
            violations=tuple(violations),
            score=score,
            label=strength_label(score),
        )

    @staticmethod
    def _contains_personal_info(
        candidate: str, personal_info: Iterable[str | None]
    ) -> bool:
        lowered = candidate.lower()
        for token in personal_info:
            if (
                token
                and len(token) >= MIN_PERSONAL_INFO_LENGTH
                and token.lower() in lowered
            ):
                return True
        return False


def evaluate_password(
    candidate: str,
    personal_info: Iterable[str | None] = (),
    policy: PasswordPolicy | None = None,
) -> PasswordEvaluation:
    """Evaluate ``candidate`` with a one-off evaluator."""
    return PasswordPolicyEvaluator(policy).evaluate(candidate, personal_info)


__all__: list[str] = [
    "PasswordPolicy",
    "DEFAULT_POLICY",
    "PasswordEvaluation",
    "PasswordPolicyEvaluator",
    "evaluate_password",
    "strength_label",
    "UPPERCASE",
    "LOWERCASE",
    "DIGITS",
    "SYMBOLS",
]
