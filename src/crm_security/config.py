"""Configuration for the account-security components.

Every component receives its configuration explicitly; nothing here is read
from process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from .password.hasher import PasswordHashingConfig
from .password.policy import PasswordPolicy


@dataclass(frozen=True)
class TotpConfig:
    """TOTP configuration.

    Attributes:
        issuer: Issuer name shown in authenticator apps.
        digits: Number of digits per code.
        step_seconds: Length of one time step.
        login_window: Steps tolerated either side of "now" at login.
        setup_window: Steps tolerated while confirming a new secret.
        secret_bytes: Size of a freshly provisioned secret.
    """

    issuer: str = "Bright Sales CRM"
    digits: int = 6
    step_seconds: int = 30
    login_window: int = 2  # ±60s
    setup_window: int = 1  # ±30s
    secret_bytes: int = 32

    def __post_init__(self) -> None:
        if self.step_seconds < 1:
            raise ValueError("step_seconds must be positive")
        if self.login_window < 0 or self.setup_window < 0:
            raise ValueError("TOTP windows cannot be negative")
        if self.secret_bytes < 20:
            raise ValueError("secret_bytes must be at least 20 (160 bits)")


@dataclass(frozen=True)
class BackupCodeConfig:
    """Backup code configuration.

    Attributes:
        count: Codes generated per set.
        code_length: Characters per code.
        low_threshold: Remaining-code count below which users are warned.
    """

    count: int = 10
    code_length: int = 8
    low_threshold: int = 3

    def __post_init__(self) -> None:
        if self.count < 1 or self.code_length < 1:
            raise ValueError("count and code_length must be positive")


@dataclass(frozen=True)
class SessionConfig:
    """Session, login-challenge and login-state lifetimes (seconds)."""

    session_ttl_seconds: int = 2_592_000  # 30 days
    challenge_ttl_seconds: int = 300  # 5 minutes
    login_state_ttl_seconds: int = 600  # 10 minutes


@dataclass(frozen=True)
class SecurityConfig:
    """Aggregate configuration for the account-security subsystem."""

    password_policy: PasswordPolicy = field(default_factory=PasswordPolicy)
    password_hashing: PasswordHashingConfig = field(
        default_factory=PasswordHashingConfig
    )
    totp: TotpConfig = field(default_factory=TotpConfig)
    backup_codes: BackupCodeConfig = field(default_factory=BackupCodeConfig)
    session: SessionConfig = field(default_factory=SessionConfig)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> SecurityConfig:
        """Build configuration from nested sections.

        Example:
            ```python
            config = SecurityConfig.from_mapping({
                "password_policy": {"min_length": 14},
                "password_hashing": {"algorithm": "argon2id"},
                "totp": {"issuer": "Acme CRM"},
            })
            ```

        Raises:
            ValueError: On unknown sections or keys.
        """
        sections: dict[str, type[Any]] = {
            "password_policy": PasswordPolicy,
            "password_hashing": PasswordHashingConfig,
            "totp": TotpConfig,
            "backup_codes": BackupCodeConfig,
            "session": SessionConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        for name, section_cls in sections.items():
            values = data.get(name)
            if values is None:
                continue
            allowed = {f.name for f in fields(section_cls)}
            bad_keys = set(values) - allowed
            if bad_keys:
                raise ValueError(f"Unknown keys in {name!r}: {sorted(bad_keys)}")
            kwargs[name] = section_cls(**values)
        return cls(**kwargs)


__all__: list[str] = [
    "TotpConfig",
    "BackupCodeConfig",
    "SessionConfig",
    "SecurityConfig",
]
