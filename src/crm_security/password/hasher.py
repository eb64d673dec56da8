"""Password hashing for account credentials.

Stored hashes are self-describing: the scheme is read from the hash
prefix, so accounts keep logging in after the configured algorithm
changes and are moved to the new scheme on their next successful login
(see :meth:`PasswordHasher.needs_rehash`).
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from ..ports import IPasswordVerifier

if TYPE_CHECKING:
    from ..config import SecurityConfig

logger = logging.getLogger(__name__)

HashAlgorithm = Literal["bcrypt", "argon2id"]


@dataclass(frozen=True)
class PasswordHashingConfig:
    """How new password hashes are produced.

    Attributes:
        algorithm: Scheme for new hashes; existing hashes of the other
            scheme still verify.
        bcrypt_rounds: bcrypt cost factor (log2 of the iteration count).
    """

    algorithm: HashAlgorithm = "bcrypt"
    bcrypt_rounds: int = 12

    def __post_init__(self) -> None:
        if self.algorithm not in ("bcrypt", "argon2id"):
            raise ValueError(f"Unsupported hash algorithm: {self.algorithm!r}")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("bcrypt_rounds must be between 4 and 31")


def _import_backend(module: str, install: str) -> Any:
    try:
        return importlib.import_module(module)
    except ImportError as e:
        raise ImportError(
            f"{module} is required for this password hash scheme. "
            f"Install with: pip install {install}"
        ) from e


class _HashScheme:
    prefixes: tuple[str, ...] = ()

    def owns(self, hashed_password: str) -> bool:
        return hashed_password.startswith(self.prefixes)

    def hash(self, password: str) -> str:
        raise NotImplementedError

    def verify(self, hashed_password: str, password: str) -> bool:
        raise NotImplementedError

    def is_outdated(self, hashed_password: str) -> bool:
        raise NotImplementedError


class _BcryptScheme(_HashScheme):
    prefixes = ("$2a$", "$2b$", "$2y$")

    def __init__(self, rounds: int) -> None:
        self.rounds = rounds

    def hash(self, password: str) -> str:
        bcrypt = _import_backend("bcrypt", "bcrypt")
        hashed: bytes = bcrypt.hashpw(password.encode(), bcrypt.gensalt(self.rounds))
        return hashed.decode()

    def verify(self, hashed_password: str, password: str) -> bool:
        bcrypt = _import_backend("bcrypt", "bcrypt")
        try:
            matched: bool = bcrypt.checkpw(password.encode(), hashed_password.encode())
        except ValueError:
            logger.warning("Corrupt bcrypt hash rejected")
            return False
        return matched

    def is_outdated(self, hashed_password: str) -> bool:
        # $2b$12$<salt><digest>
        cost = hashed_password[4:6]
        return not cost.isdigit() or int(cost) < self.rounds


class _Argon2idScheme(_HashScheme):
    prefixes = ("$argon2",)

    def __init__(self) -> None:
        self._argon2: Any = None
        self._hasher: Any = None

    def _backend(self) -> Any:
        if self._hasher is None:
            self._argon2 = _import_backend("argon2", "crm-security[argon2]")
            self._hasher = self._argon2.PasswordHasher()
        return self._hasher

    def hash(self, password: str) -> str:
        hashed: str = self._backend().hash(password)
        return hashed

    def verify(self, hashed_password: str, password: str) -> bool:
        hasher = self._backend()
        errors = self._argon2.exceptions
        try:
            hasher.verify(hashed_password, password)
        except (errors.VerificationError, errors.InvalidHashError):
            return False
        return True

    def is_outdated(self, hashed_password: str) -> bool:
        outdated: bool = self._backend().check_needs_rehash(hashed_password)
        return outdated


class PasswordHasher(IPasswordVerifier):
    """Account password comparator and hasher.

    Used for the password re-check before sensitive MFA changes, for login
    and for password changes.

    Example:
        ```python
        hasher = PasswordHasher.from_config(config)
        hashed = hasher.hash("correct horse battery staple")

        if hasher.verify(record.password_hash, candidate):
            if hasher.needs_rehash(record.password_hash):
                await store.update_password_hash(account_id, hasher.hash(candidate))
        ```
    """

    def __init__(self, config: PasswordHashingConfig | None = None) -> None:
        self.config = config or PasswordHashingConfig()
        self._schemes: dict[HashAlgorithm, _HashScheme] = {
            "bcrypt": _BcryptScheme(self.config.bcrypt_rounds),
            "argon2id": _Argon2idScheme(),
        }
        self._preferred = self._schemes[self.config.algorithm]

    @classmethod
    def from_config(cls, config: SecurityConfig) -> PasswordHasher:
        return cls(config.password_hashing)

    def _scheme_of(self, hashed_password: str) -> _HashScheme | None:
        for scheme in self._schemes.values():
            if scheme.owns(hashed_password):
                return scheme
        return None

    def hash(self, password: str) -> str:
        return self._preferred.hash(password)

    def verify(self, hashed_password: str, password: str) -> bool:
        """Check ``password`` against a stored hash of either scheme.

        An empty or unrecognised hash never matches.
        """
        scheme = self._scheme_of(hashed_password)
        if scheme is None:
            return False
        return scheme.verify(hashed_password, password)

    def needs_rehash(self, hashed_password: str) -> bool:
        """True when the hash was made by another scheme or weaker settings."""
        scheme = self._scheme_of(hashed_password)
        if scheme is None:
            return False
        if scheme is not self._preferred:
            return True
        return scheme.is_outdated(hashed_password)


__all__: list[str] = ["HashAlgorithm", "PasswordHashingConfig", "PasswordHasher"]
