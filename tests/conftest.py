"""Test configuration and fixtures."""

from __future__ import annotations

import pytest

from crm_security.account import AccountRecord
from crm_security.audit.memory import InMemoryAuditStore
from crm_security.config import SecurityConfig
from crm_security.memory import InMemoryAccountStore, InMemoryLockStrategy
from crm_security.mfa.enrollment import MfaEnabled, MfaEnrollment
from crm_security.mfa.lifecycle import MfaLifecycle
from crm_security.mfa.totp import TotpVerifier
from crm_security.password.hasher import PasswordHasher, PasswordHashingConfig
from crm_security.session import InMemorySessionStore

# On a 30-second step boundary.
FIXED_NOW = 1_700_000_010
PASSWORD = "Correct-Horse-42!"
SECRET = b"12345678901234567890"


@pytest.fixture
def hasher() -> PasswordHasher:
    """bcrypt hasher with the minimum cost factor to keep tests fast."""
    pytest.importorskip("bcrypt")
    return PasswordHasher(PasswordHashingConfig(bcrypt_rounds=4))


@pytest.fixture
def password() -> str:
    return PASSWORD


@pytest.fixture
def password_hash(hasher: PasswordHasher, password: str) -> str:
    return hasher.hash(password)


@pytest.fixture
def account_store(password_hash: str) -> InMemoryAccountStore:
    """Store seeded with one account without MFA."""
    store = InMemoryAccountStore()
    store.add(
        AccountRecord(
            account_id="user-1",
            username="jdoe",
            password_hash=password_hash,
            email="jane.doe@example.com",
            display_name="Jane Doe",
        )
    )
    return store


@pytest.fixture
def enabled_account(
    account_store: InMemoryAccountStore, password_hash: str
) -> AccountRecord:
    """Account with MFA enabled and two known backup codes."""
    record = AccountRecord(
        account_id="user-2",
        username="msmith",
        password_hash=password_hash,
        email="m.smith@example.com",
        display_name="Mark Smith",
        mfa=MfaEnrollment(
            MfaEnabled(secret=SECRET, backup_codes=("AB12CD34", "EF56GH78"))
        ),
    )
    account_store.add(record)
    return record


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    """Create an in-memory session store for testing."""
    return InMemorySessionStore()


@pytest.fixture
def lifecycle(
    account_store: InMemoryAccountStore,
    hasher: PasswordHasher,
    audit_store: InMemoryAuditStore,
) -> MfaLifecycle:
    """Lifecycle whose TOTP clock is pinned to FIXED_NOW."""
    config = SecurityConfig()
    return MfaLifecycle(
        account_store=account_store,
        password_verifier=hasher,
        lock_strategy=InMemoryLockStrategy(),
        config=config,
        totp_verifier=TotpVerifier(config.totp, clock=lambda: FIXED_NOW),
        audit_store=audit_store,
    )
