"""MFA enrollment state.

The enrollment of an account is one of three states, each carrying only the
data that is meaningful in it::

    MfaDisabled
    MfaSetupPending(secret, pending_codes)
    MfaEnabled(secret, backup_codes)

"Enabled implies a secret" therefore holds by construction. Only
:class:`~crm_security.mfa.lifecycle.MfaLifecycle` builds new states.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class MfaState(str, Enum):
    """Coarse MFA state of an account."""

    DISABLED = "disabled"
    SETUP_PENDING = "setup_pending"
    ENABLED = "enabled"


def encode_secret(secret: bytes) -> str:
    """Encode secret bytes as unpadded RFC 4648 base32."""
    return base64.b32encode(secret).decode("ascii").rstrip("=")


def decode_secret(encoded: str) -> bytes:
    """Decode an (optionally unpadded) base32 secret.

    Raises:
        ValueError: If ``encoded`` is not valid base32.
    """
    cleaned = encoded.replace(" ", "").upper()
    padding = "=" * (-len(cleaned) % 8)
    try:
        return base64.b32decode(cleaned + padding)
    except binascii.Error as e:
        raise ValueError("Invalid base32 secret") from e


@dataclass(frozen=True)
class MfaDisabled:
    """No MFA configured. Holds neither secret nor codes."""

    state = MfaState.DISABLED


@dataclass(frozen=True)
class MfaSetupPending:
    """A secret was provisioned but possession has not been confirmed.

    Attributes:
        secret: Shared secret bytes awaiting confirmation.
        pending_codes: Backup codes that become active on confirmation.
    """

    secret: bytes
    pending_codes: tuple[str, ...] = ()
    state = MfaState.SETUP_PENDING

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("A pending setup requires a secret")


@dataclass(frozen=True)
class MfaEnabled:
    """MFA is active.

    Attributes:
        secret: Confirmed shared secret bytes.
        backup_codes: Unused single-use recovery codes.
    """

    secret: bytes
    backup_codes: tuple[str, ...] = ()
    state = MfaState.ENABLED

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("Enabled MFA requires a secret")


MfaStatus = Union[MfaDisabled, MfaSetupPending, MfaEnabled]


@dataclass(frozen=True)
class MfaEnrollment:
    """Enrollment owned by an account record.

    Exposes the flat view (``secret``, ``backup_codes``, ``enabled``,
    ``verified``) that storage adapters and HTTP handlers expect, derived
    from :attr:`status`.
    """

    status: MfaStatus = field(default_factory=MfaDisabled)

    @property
    def state(self) -> MfaState:
        return self.status.state

    @property
    def secret(self) -> bytes | None:
        if isinstance(self.status, (MfaSetupPending, MfaEnabled)):
            return self.status.secret
        return None

    @property
    def backup_codes(self) -> tuple[str, ...]:
        if isinstance(self.status, MfaEnabled):
            return self.status.backup_codes
        if isinstance(self.status, MfaSetupPending):
            return self.status.pending_codes
        return ()

    @property
    def enabled(self) -> bool:
        return isinstance(self.status, MfaEnabled)

    @property
    def verified(self) -> bool:
        # Mirrors ``enabled``; kept apart for future partial-trust states.
        return self.enabled

    def to_dict(self) -> dict[str, Any]:
        """Convert to a storage-friendly dictionary.

        The secret is base32-encoded. Storage adapters should encrypt the
        dictionary (or at least the secret) at rest.
        """
        secret = self.secret
        return {
            "state": self.state.value,
            "secret": encode_secret(secret) if secret else None,
            "backup_codes": list(self.backup_codes),
            "enabled": self.enabled,
            "verified": self.verified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MfaEnrollment:
        """Rebuild an enrollment from :meth:`to_dict` output.

        Raises:
            ValueError: If the state is unknown or the secret is missing or
                malformed for a state that requires one.
        """
        state = MfaState(data.get("state", MfaState.DISABLED.value))
        if state is MfaState.DISABLED:
            return cls()

        encoded = data.get("secret")
        if not encoded:
            raise ValueError(f"MFA state {state.value!r} requires a secret")
        secret = decode_secret(encoded)
        codes = tuple(data.get("backup_codes") or ())

        if state is MfaState.SETUP_PENDING:
            return cls(MfaSetupPending(secret=secret, pending_codes=codes))
        return cls(MfaEnabled(secret=secret, backup_codes=codes))


__all__: list[str] = [
    "MfaState",
    "MfaDisabled",
    "MfaSetupPending",
    "MfaEnabled",
    "MfaStatus",
    "MfaEnrollment",
    "encode_secret",
    "decode_secret",
]
