"""Tests for audit events and the in-memory audit store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from crm_security.audit.events import (
    AuditEvent,
    AuditEventType,
    failure_event,
    success_event,
)
from crm_security.audit.memory import InMemoryAuditStore


class TestAuditEvent:
    def test_event_names_follow_pattern(self) -> None:
        for event_type in AuditEventType:
            assert event_type.value.startswith("security.")
            assert event_type.value.count(".") == 2

    def test_failure_without_code_gets_default(self) -> None:
        event = AuditEvent(AuditEventType.MFA_FAILED, "u1", success=False)

        assert event.error_code == "UNKNOWN_ERROR"

    def test_dict_round_trip(self) -> None:
        event = failure_event(
            AuditEventType.LOGIN_FAILED, "u1", "not_authorized", ip="10.0.0.1"
        )

        restored = AuditEvent.from_dict(event.to_dict())

        assert restored == event

    def test_from_dict_naive_timestamp(self) -> None:
        event = AuditEvent.from_dict(
            {
                "event_type": "security.mfa.enabled",
                "timestamp": "2024-01-01T00:00:00",
            }
        )

        assert event.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("data", [{}, {"event_type": "security.unknown.thing"}])
    def test_from_dict_rejects_bad_type(self, data: dict[str, str]) -> None:
        with pytest.raises(ValueError):
            AuditEvent.from_dict(data)

    def test_success_event_metadata(self) -> None:
        event = success_event(AuditEventType.MFA_VERIFIED, "u1", method="totp")

        assert event.success
        assert event.error_code is None
        assert event.metadata == {"method": "totp"}


class TestInMemoryAuditStore:
    @pytest.fixture
    def store(self) -> InMemoryAuditStore:
        return InMemoryAuditStore()

    @pytest.mark.asyncio
    async def test_get_events_newest_first(self, store: InMemoryAuditStore) -> None:
        await store.record(success_event(AuditEventType.MFA_SETUP_STARTED, "u1"))
        await store.record(success_event(AuditEventType.MFA_ENABLED, "u1"))
        await store.record(success_event(AuditEventType.MFA_ENABLED, "u2"))

        events = await store.get_events("u1")

        assert [e.event_type for e in events] == [
            AuditEventType.MFA_ENABLED,
            AuditEventType.MFA_SETUP_STARTED,
        ]

    @pytest.mark.asyncio
    async def test_filter_by_type(self, store: InMemoryAuditStore) -> None:
        await store.record(success_event(AuditEventType.LOGIN_SUCCESS, "u1"))
        await store.record(failure_event(AuditEventType.LOGIN_FAILED, "u1", "x"))

        events = await store.get_events(
            "u1", event_types=[AuditEventType.LOGIN_FAILED]
        )

        assert len(events) == 1
        assert not events[0].success

    @pytest.mark.asyncio
    async def test_limit(self, store: InMemoryAuditStore) -> None:
        for _ in range(5):
            await store.record(success_event(AuditEventType.LOGIN_SUCCESS, "u1"))

        assert len(await store.get_events("u1", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_events_without_account(self, store: InMemoryAuditStore) -> None:
        await store.record(failure_event(AuditEventType.LOGIN_FAILED, None, "x"))

        assert len(store.events) == 1
        assert await store.get_events("u1") == []

    @pytest.mark.asyncio
    async def test_clear(self, store: InMemoryAuditStore) -> None:
        await store.record(success_event(AuditEventType.LOGIN_SUCCESS, "u1"))

        store.clear()

        assert store.events == []
        assert await store.get_events("u1") == []
