"""Account-security ports (protocols).

The subsystem is consumed as a library: persistence, locking, session
issuance and QR rendering are provided by the application through these
interfaces. All ports use @runtime_checkable for isinstance checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .account import AccountRecord
    from .audit.events import AuditEvent, AuditEventType
    from .mfa.enrollment import MfaEnrollment


# ═══════════════════════════════════════════════════════════════
# ACCOUNT STORE
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IAccountStore(Protocol):
    """Protocol for account persistence.

    Implementations must reject a save whose ``expected_version`` does not
    match the stored version (compare-and-swap). Together with the
    per-account lock this keeps backup codes single-use under concurrency.
    """

    async def load_account(self, account_id: str) -> AccountRecord | None:
        """Load an account by id, or None if it does not exist."""
        ...

    async def find_account(self, identifier: str) -> AccountRecord | None:
        """Find an account by username or email."""
        ...

    async def save_enrollment(
        self,
        account_id: str,
        enrollment: MfaEnrollment,
        *,
        expected_version: int,
    ) -> AccountRecord:
        """Replace the MFA enrollment of an account atomically.

        Args:
            account_id: Account identifier.
            enrollment: The complete new enrollment.
            expected_version: Version the caller read.

        Returns:
            The updated record (with the new version).

        Raises:
            AccountNotFoundError: Account does not exist.
            OptimisticLockingError: The stored version moved on.
        """
        ...

    async def update_password_hash(
        self, account_id: str, password_hash: str
    ) -> AccountRecord:
        """Replace the password hash of an account."""
        ...


# ═══════════════════════════════════════════════════════════════
# PASSWORD VERIFIER
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IPasswordVerifier(Protocol):
    """Adaptive, salted password hash comparison."""

    def verify(self, hashed_password: str, password: str) -> bool: ...

    def hash(self, password: str) -> str: ...

    def needs_rehash(self, hashed_password: str) -> bool: ...


# ═══════════════════════════════════════════════════════════════
# LOCKING
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ResourceIdentifier:
    """Identifies a single lockable resource.

    Examples:
        >>> ResourceIdentifier("Account", "123")
    """

    resource_type: str
    resource_id: str
    lock_mode: Literal["read", "write"] = "write"

    def __str__(self) -> str:
        mode = f":{self.lock_mode}" if self.lock_mode != "write" else ""
        return f"{self.resource_type}:{self.resource_id}{mode}"


@runtime_checkable
class ILockStrategy(Protocol):
    """Per-resource mutual exclusion.

    Implementations can use Redis (Redlock), database row locks
    (SELECT ... FOR UPDATE) or in-process asyncio locks for tests.
    """

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,
    ) -> str:
        """Acquire a lock and return the token needed to release it.

        Raises:
            LockAcquisitionError: If the lock cannot be acquired in time.
        """
        ...

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        """Release a previously acquired lock."""
        ...


# ═══════════════════════════════════════════════════════════════
# SESSIONS
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class ISessionStore(Protocol):
    """Short-lived key/value storage with expiry.

    Holds session records, pending MFA login challenges and third-party
    login state nonces. Use Redis or a database table in production.
    """

    async def store(
        self, key: str, data: dict[str, Any], ttl: int | None = None
    ) -> None: ...

    async def get(self, key: str) -> dict[str, Any] | None: ...

    async def delete(self, key: str) -> None: ...

    async def pop(self, key: str) -> dict[str, Any] | None:
        """Atomically read and delete ``key``.

        Single-use records (MFA challenges, login states) are consumed
        through this call; of two concurrent callers at most one receives
        the data. Redis adapters use ``GETDEL``, SQL adapters
        ``DELETE ... RETURNING``.
        """
        ...


@dataclass(frozen=True)
class SessionCredential:
    """Opaque session credential issued after authentication.

    Attributes:
        token: Opaque bearer token.
        account_id: Authenticated account.
        expires_at: Expiry (UTC).
        mfa_verified: Whether a second factor was checked.
        auth_method: How the first factor was established.
    """

    token: str
    account_id: str
    expires_at: datetime
    mfa_verified: bool = False
    auth_method: str = "password"


@runtime_checkable
class ISessionIssuer(Protocol):
    """Mints session credentials once authentication has succeeded."""

    async def issue(
        self,
        account_id: str,
        *,
        mfa_verified: bool,
        auth_method: str = "password",
    ) -> SessionCredential: ...


# ═══════════════════════════════════════════════════════════════
# QR RENDERING
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IQrRenderer(Protocol):
    """Renders an otpauth:// enrollment URI as a displayable image."""

    def render(self, uri: str) -> str:
        """Return the image as a ``data:`` URI."""
        ...


# ═══════════════════════════════════════════════════════════════
# AUDIT
# ═══════════════════════════════════════════════════════════════


@runtime_checkable
class IAuditStore(Protocol):
    """Protocol for security audit event storage."""

    async def record(self, event: AuditEvent) -> None: ...

    async def get_events(
        self,
        account_id: str,
        *,
        event_types: list[AuditEventType] | None = None,
        limit: int = 100,
    ) -> list[AuditEvent]: ...


__all__: list[str] = [
    "IAccountStore",
    "IPasswordVerifier",
    "ResourceIdentifier",
    "ILockStrategy",
    "ISessionStore",
    "SessionCredential",
    "ISessionIssuer",
    "IQrRenderer",
    "IAuditStore",
]
