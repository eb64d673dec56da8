"""Password policy, hashing and credential-change checks."""

from .hasher import HashAlgorithm, PasswordHasher, PasswordHashingConfig
from .policy import (
    DEFAULT_POLICY,
    PasswordEvaluation,
    PasswordPolicy,
    PasswordPolicyEvaluator,
    evaluate_password,
    strength_label,
)
from .service import PasswordChangeResult, PasswordChangeStatus, PasswordService

__all__: list[str] = [
    "HashAlgorithm",
    "PasswordHasher",
    "PasswordHashingConfig",
    "DEFAULT_POLICY",
    "PasswordEvaluation",
    "PasswordPolicy",
    "PasswordPolicyEvaluator",
    "evaluate_password",
    "strength_label",
    "PasswordChangeResult",
    "PasswordChangeStatus",
    "PasswordService",
]
