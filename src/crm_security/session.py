"""Session storage and the default session issuer.

WARNING: :class:`InMemorySessionStore` is NOT suitable for production use.
It stores data in memory and will NOT work with multiple workers.

Use a Redis-backed session store in production.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from .config import SessionConfig
from .exceptions import ExpiredSessionError, InvalidSessionError
from .ports import ISessionIssuer, ISessionStore, SessionCredential

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"


class InMemorySessionStore(ISessionStore):
    """In-memory session store for development and testing only.

    ⚠️ WARNING: This implementation stores data in a local dictionary.
    It will NOT work in multi-worker environments (Gunicorn/Uvicorn with workers>1).

    Example:
        ```python
        session_store = InMemorySessionStore()

        await session_store.store("mfa_challenge:xyz", {
            "account_id": "user-123",
        }, ttl=300)

        data = await session_store.get("mfa_challenge:xyz")
        ```
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the in-memory session store.

        Args:
            clock: Time source in epoch seconds (injectable for tests).
        """
        self._clock = clock
        self._store: dict[str, tuple[dict[str, Any], float | None]] = {}

    async def store(
        self, key: str, data: dict[str, Any], ttl: int | None = None
    ) -> None:
        """Store session data.

        Args:
            key: Session key.
            data: Session data dictionary.
            ttl: Time-to-live in seconds (optional).
        """
        expires_at: float | None = None
        if ttl is not None and ttl > 0:
            expires_at = self._clock() + ttl
        self._store[key] = (dict(data), expires_at)

    async def get(self, key: str) -> dict[str, Any] | None:
        """Retrieve session data, or None if not found/expired."""
        entry = self._store.get(key)
        if entry is None:
            return None

        data, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._store[key]
            return None

        return dict(data)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def pop(self, key: str) -> dict[str, Any] | None:
        """Remove and return session data, or None if not found/expired."""
        entry = self._store.pop(key, None)
        if entry is None:
            return None

        data, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            return None
        return data

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None

    def clear_all(self) -> None:
        """Clear all session data.

        Useful for testing cleanup.
        """
        self._store.clear()


class SessionIssuer(ISessionIssuer):
    """Issues opaque bearer tokens backed by an :class:`ISessionStore`.

    Tokens carry no claims; everything lives in the store under
    ``session:<token>`` and expires with the store's TTL.

    Example:
        ```python
        issuer = SessionIssuer(InMemorySessionStore())
        credential = await issuer.issue("user-123", mfa_verified=True)

        session = await issuer.resolve(credential.token)
        await issuer.revoke(credential.token)
        ```
    """

    def __init__(
        self,
        session_store: ISessionStore,
        config: SessionConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.session_store = session_store
        self.config = config or SessionConfig()
        self._clock = clock

    async def issue(
        self,
        account_id: str,
        *,
        mfa_verified: bool,
        auth_method: str = "password",
    ) -> SessionCredential:
        """Mint and store a new session.

        Args:
            account_id: Authenticated account.
            mfa_verified: Whether a second factor was checked.
            auth_method: How the first factor was established.

        Returns:
            The new credential.
        """
        token = secrets.token_urlsafe(32)
        ttl = self.config.session_ttl_seconds
        expires_at = datetime.fromtimestamp(self._clock(), tz=timezone.utc) + timedelta(
            seconds=ttl
        )
        credential = SessionCredential(
            token=token,
            account_id=account_id,
            expires_at=expires_at,
            mfa_verified=mfa_verified,
            auth_method=auth_method,
        )
        await self.session_store.store(
            key=f"{SESSION_KEY_PREFIX}{token}",
            data={
                "account_id": account_id,
                "expires_at": expires_at.isoformat(),
                "mfa_verified": mfa_verified,
                "auth_method": auth_method,
            },
            ttl=ttl,
        )
        logger.info(
            "Session issued for account %s (mfa_verified=%s)", account_id, mfa_verified
        )
        return credential

    async def resolve(self, token: str) -> SessionCredential:
        """Look up a session by token.

        Raises:
            InvalidSessionError: Token is empty or unknown.
            ExpiredSessionError: The stored session has passed its expiry.
        """
        if not token:
            raise InvalidSessionError("Session token is empty")

        data = await self.session_store.get(f"{SESSION_KEY_PREFIX}{token}")
        if data is None:
            raise InvalidSessionError("Unknown or expired session token")

        expires_at = datetime.fromisoformat(data["expires_at"])
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if datetime.fromtimestamp(self._clock(), tz=timezone.utc) >= expires_at:
            await self.revoke(token)
            raise ExpiredSessionError("Session has expired")

        return SessionCredential(
            token=token,
            account_id=data["account_id"],
            expires_at=expires_at,
            mfa_verified=bool(data.get("mfa_verified", False)),
            auth_method=data.get("auth_method", "password"),
        )

    async def revoke(self, token: str) -> None:
        """Delete a session; unknown tokens are ignored."""
        await self.session_store.delete(f"{SESSION_KEY_PREFIX}{token}")


__all__: list[str] = ["InMemorySessionStore", "SessionIssuer", "SESSION_KEY_PREFIX"]
