"""Audit events for account-security operations.

Every MFA transition, second-factor check, login outcome and password
change produces one event. Events never carry secrets, codes or passwords.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class AuditEventType(Enum):
    """Types of security audit events.

    Event naming follows the pattern: `security.<resource>.<action>`
    """

    # MFA events
    MFA_SETUP_STARTED = "security.mfa.setup_started"
    MFA_ENABLED = "security.mfa.enabled"
    MFA_DISABLED = "security.mfa.disabled"
    MFA_VERIFIED = "security.mfa.verified"
    MFA_FAILED = "security.mfa.failed"
    BACKUP_CODE_USED = "security.mfa.backup_code_used"
    BACKUP_CODES_REGENERATED = "security.mfa.backup_codes_regenerated"

    # Login events
    LOGIN_SUCCESS = "security.login.success"
    LOGIN_FAILED = "security.login.failed"
    LOGIN_MFA_REQUIRED = "security.login.mfa_required"

    # Password events
    PASSWORD_CHANGED = "security.password.changed"  # noqa: S105
    PASSWORD_REJECTED = "security.password.rejected"  # noqa: S105


@dataclass(frozen=True)
class AuditEvent:
    """Security audit event.

    Attributes:
        event_type: The type of event.
        account_id: Account the event concerns (if known).
        timestamp: When the event occurred (UTC).
        success: Whether the operation succeeded.
        error_code: Failure kind when ``success`` is False.
        metadata: Additional event-specific data.
    """

    event_type: AuditEventType
    account_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error_code: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error_code:
            object.__setattr__(self, "error_code", "UNKNOWN_ERROR")

    def to_dict(self) -> dict[str, Any]:
        """Convert event to a JSON-serialisable dictionary."""
        return {
            "event_type": self.event_type.value,
            "account_id": self.account_id,
            "timestamp": self.timestamp.isoformat(),
            "success": self.success,
            "error_code": self.error_code,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEvent:
        """Create event from dictionary.

        Raises:
            ValueError: If ``event_type`` is missing or unknown.
        """
        event_type_str = data.get("event_type")
        if event_type_str is None:
            raise ValueError("Missing required 'event_type'")

        try:
            event_type = AuditEventType(event_type_str)
        except ValueError as e:
            raise ValueError(f"Invalid event_type: {event_type_str}") from e

        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
        elif timestamp is None:
            timestamp = datetime.now(timezone.utc)

        return cls(
            event_type=event_type,
            account_id=data.get("account_id"),
            timestamp=timestamp,
            success=data.get("success", True),
            error_code=data.get("error_code"),
            metadata=data.get("metadata", {}),
        )


def success_event(
    event_type: AuditEventType,
    account_id: str | None,
    **metadata: Any,
) -> AuditEvent:
    """Create a successful event."""
    return AuditEvent(
        event_type=event_type,
        account_id=account_id,
        success=True,
        metadata=metadata,
    )


def failure_event(
    event_type: AuditEventType,
    account_id: str | None,
    error_code: str,
    **metadata: Any,
) -> AuditEvent:
    """Create a failed event."""
    return AuditEvent(
        event_type=event_type,
        account_id=account_id,
        success=False,
        error_code=error_code,
        metadata=metadata,
    )


__all__: list[str] = [
    "AuditEventType",
    "AuditEvent",
    "success_event",
    "failure_event",
]
