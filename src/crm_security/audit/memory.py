"""In-memory audit store for testing and development."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from ..ports import IAuditStore

if TYPE_CHECKING:
    from .events import AuditEvent, AuditEventType


class InMemoryAuditStore(IAuditStore):
    """In-memory implementation of IAuditStore.

    Note:
        Events are lost on restart. Not suitable for production use.
    """

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []
        self._by_account: dict[str, list[int]] = defaultdict(list)

    async def record(self, event: AuditEvent) -> None:
        index = len(self._events)
        self._events.append(event)
        if event.account_id:
            self._by_account[event.account_id].append(index)

    async def get_events(
        self,
        account_id: str,
        *,
        event_types: list[AuditEventType] | None = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent events for an account, newest first."""
        events = [self._events[i] for i in self._by_account.get(account_id, [])]
        if event_types is not None:
            wanted = set(event_types)
            events = [e for e in events if e.event_type in wanted]
        return list(reversed(events))[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        """All recorded events in insertion order."""
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()
        self._by_account.clear()


__all__: list[str] = ["InMemoryAuditStore"]
