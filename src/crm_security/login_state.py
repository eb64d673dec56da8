"""Third-party login state management.

A random nonce is stored before redirecting to an external identity
provider and consumed exactly once on callback. Each attempt owns its own
record, so concurrent logins never overwrite each other's state.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .config import SessionConfig
from .exceptions import LoginStateError

if TYPE_CHECKING:
    from .ports import ISessionStore

logger = logging.getLogger(__name__)

STATE_KEY_PREFIX = "login_state:"


@dataclass(frozen=True)
class LoginStateData:
    """Login state stored between redirect and callback.

    Attributes:
        state: Random nonce (anti-CSRF token).
        provider: External provider name (e.g. "line").
        redirect_uri: Where to send the user after login.
        created_at: When the state was created.
        extra: Additional caller data.
    """

    state: str
    provider: str | None = None
    redirect_uri: str | None = None
    created_at: datetime | None = None
    extra: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.created_at is None:
            object.__setattr__(self, "created_at", datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "state": self.state,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.provider:
            result["provider"] = self.provider
        if self.redirect_uri:
            result["redirect_uri"] = self.redirect_uri
        if self.extra:
            result["extra"] = self.extra
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LoginStateData:
        """Create from a stored dictionary.

        Raises:
            ValueError: If 'state' is missing.
        """
        state = data.get("state")
        if state is None:
            raise ValueError("Missing required 'state' in login state data")

        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
            if created_at.tzinfo is None:
                created_at = created_at.replace(tzinfo=timezone.utc)

        return cls(
            state=state,
            provider=data.get("provider"),
            redirect_uri=data.get("redirect_uri"),
            created_at=created_at,
            extra=data.get("extra"),
        )


def generate_login_state(length: int = 32) -> str:
    """Generate a URL-safe random nonce of ``length`` bytes of entropy."""
    return secrets.token_urlsafe(length)


class LoginStateManager:
    """Creates, stores and consumes third-party login state.

    Example:
        ```python
        manager = LoginStateManager(session_store)

        # Before redirect
        state_data = await manager.create_state(provider="line",
                                                redirect_uri="/dashboard")
        auth_url = f"{authorize_endpoint}?state={state_data.state}&..."

        # On callback
        stored = await manager.validate_state(callback_state)
        ```
    """

    def __init__(
        self,
        session_store: ISessionStore,
        config: SessionConfig | None = None,
    ) -> None:
        self.session_store = session_store
        self.state_ttl = (config or SessionConfig()).login_state_ttl_seconds

    async def create_state(
        self,
        *,
        provider: str | None = None,
        redirect_uri: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> LoginStateData:
        """Create and store a new login state.

        Returns:
            The stored state; send ``state`` to the provider.
        """
        state_data = LoginStateData(
            state=generate_login_state(),
            provider=provider,
            redirect_uri=redirect_uri,
            extra=extra,
        )
        await self.session_store.store(
            key=f"{STATE_KEY_PREFIX}{state_data.state}",
            data=state_data.to_dict(),
            ttl=self.state_ttl,
        )
        return state_data

    async def validate_state(self, state: str) -> LoginStateData:
        """Validate and consume a state returned by the provider.

        The record is deleted before returning, so a replayed callback fails.

        Raises:
            LoginStateError: Missing, unknown, expired or already used.
        """
        if not state:
            raise LoginStateError("Missing login state")

        data = await self.session_store.pop(f"{STATE_KEY_PREFIX}{state}")
        if data is None:
            logger.warning("Rejected unknown or expired login state")
            raise LoginStateError("Invalid or expired login state")

        return LoginStateData.from_dict(data)


__all__: list[str] = [
    "LoginStateData",
    "generate_login_state",
    "LoginStateManager",
    "STATE_KEY_PREFIX",
]
