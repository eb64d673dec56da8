"""Security audit events and stores."""

from .events import AuditEvent, AuditEventType, failure_event, success_event
from .memory import InMemoryAuditStore

__all__: list[str] = [
    "AuditEvent",
    "AuditEventType",
    "success_event",
    "failure_event",
    "InMemoryAuditStore",
]
