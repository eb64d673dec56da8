"""Tests for registration checks and password changes."""

from __future__ import annotations

import pytest

from crm_security.audit.events import AuditEventType
from crm_security.audit.memory import InMemoryAuditStore
from crm_security.config import SecurityConfig
from crm_security.exceptions import AccountNotFoundError, PasswordPolicyError
from crm_security.memory import InMemoryAccountStore
from crm_security.password.hasher import PasswordHasher
from crm_security.password.policy import PasswordPolicyEvaluator
from crm_security.password.service import PasswordChangeStatus, PasswordService

NEW_PASSWORD = "Xk7#Qm2$Vp9!Rt4&"


@pytest.fixture
def service(
    account_store: InMemoryAccountStore,
    hasher: PasswordHasher,
    audit_store: InMemoryAuditStore,
) -> PasswordService:
    return PasswordService(
        account_store=account_store, hasher=hasher, audit_store=audit_store
    )


class TestCheckNewPassword:
    def test_valid_password(self, service: PasswordService) -> None:
        evaluation = service.check_new_password(
            NEW_PASSWORD, personal_info=["jdoe", "jane@example.com", "Jane", "Doe"]
        )

        assert evaluation.is_valid

    def test_invalid_password_raises_with_all_violations(
        self, service: PasswordService
    ) -> None:
        with pytest.raises(PasswordPolicyError) as exc_info:
            service.check_new_password("Jane2024", personal_info=["Jane"])

        violations = exc_info.value.violations
        assert "Password must be at least 12 characters long" in violations
        assert (
            "Password cannot contain personal information (name, email, username)"
            in violations
        )


class TestConfiguredPolicy:
    @pytest.fixture
    def strict_service(
        self, account_store: InMemoryAccountStore, hasher: PasswordHasher
    ) -> PasswordService:
        config = SecurityConfig.from_mapping({"password_policy": {"min_length": 20}})
        return PasswordService(
            account_store=account_store, hasher=hasher, config=config
        )

    def test_configured_min_length_enforced(
        self, strict_service: PasswordService
    ) -> None:
        with pytest.raises(PasswordPolicyError) as exc_info:
            strict_service.check_new_password(NEW_PASSWORD)

        assert exc_info.value.violations == (
            "Password must be at least 20 characters long",
        )

    @pytest.mark.asyncio
    async def test_change_uses_configured_policy(
        self, strict_service: PasswordService, password: str
    ) -> None:
        result = await strict_service.change_password("user-1", password, NEW_PASSWORD)

        assert result.status is PasswordChangeStatus.INVALID_PASSWORD

    def test_explicit_evaluator_wins(
        self, account_store: InMemoryAccountStore, hasher: PasswordHasher
    ) -> None:
        service = PasswordService(
            account_store=account_store,
            hasher=hasher,
            config=SecurityConfig.from_mapping({"password_policy": {"min_length": 20}}),
            evaluator=PasswordPolicyEvaluator(),
        )

        assert service.check_new_password(NEW_PASSWORD).is_valid


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_success(
        self,
        service: PasswordService,
        account_store: InMemoryAccountStore,
        hasher: PasswordHasher,
        password: str,
    ) -> None:
        result = await service.change_password("user-1", password, NEW_PASSWORD)

        assert result.ok
        assert result.status is PasswordChangeStatus.CHANGED
        record = await account_store.load_account("user-1")
        assert record is not None
        assert hasher.verify(record.password_hash, NEW_PASSWORD)
        assert not hasher.verify(record.password_hash, password)

    @pytest.mark.asyncio
    async def test_wrong_current_password(
        self,
        service: PasswordService,
        account_store: InMemoryAccountStore,
        hasher: PasswordHasher,
        password: str,
    ) -> None:
        result = await service.change_password("user-1", "wrong", NEW_PASSWORD)

        assert result.status is PasswordChangeStatus.NOT_AUTHORIZED
        assert result.evaluation is None
        record = await account_store.load_account("user-1")
        assert record is not None
        assert hasher.verify(record.password_hash, password)

    @pytest.mark.asyncio
    async def test_policy_violation(
        self, service: PasswordService, password: str
    ) -> None:
        result = await service.change_password("user-1", password, "short")

        assert not result
        assert result.status is PasswordChangeStatus.INVALID_PASSWORD
        assert result.evaluation is not None
        assert result.evaluation.violations

    @pytest.mark.asyncio
    async def test_personal_info_from_account(
        self, service: PasswordService, password: str
    ) -> None:
        """Username, email and name parts of the account are rejected."""
        result = await service.change_password(
            "user-1", password, "Jane" + NEW_PASSWORD
        )

        assert result.status is PasswordChangeStatus.INVALID_PASSWORD

    @pytest.mark.asyncio
    async def test_unknown_account(self, service: PasswordService) -> None:
        with pytest.raises(AccountNotFoundError):
            await service.change_password("nobody", "x", NEW_PASSWORD)

    @pytest.mark.asyncio
    async def test_audit_events(
        self,
        service: PasswordService,
        audit_store: InMemoryAuditStore,
        password: str,
    ) -> None:
        await service.change_password("user-1", password, "short")
        await service.change_password("user-1", password, NEW_PASSWORD)

        events = await audit_store.get_events("user-1")
        assert [event.event_type for event in events] == [
            AuditEventType.PASSWORD_CHANGED,
            AuditEventType.PASSWORD_REJECTED,
        ]
        assert events[1].metadata == {"violations": 5}
