"""In-memory adapters for tests and single-process deployments.

⚠️ WARNING: State lives in the process. These adapters do NOT coordinate
between workers. Use a database-backed account store (row locks or a
version column) and a distributed lock in production.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING
from uuid import uuid4

from .exceptions import (
    AccountNotFoundError,
    LockAcquisitionError,
    OptimisticLockingError,
)
from .ports import IAccountStore, ILockStrategy

if TYPE_CHECKING:
    from .account import AccountRecord
    from .mfa.enrollment import MfaEnrollment
    from .ports import ResourceIdentifier

logger = logging.getLogger("crm_security.locking")


@dataclass
class _LockEntry:
    """Lock for one resource plus everyone holding or waiting on it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    token: str | None = None
    users: int = 0


class InMemoryLockStrategy(ILockStrategy):
    """asyncio-based per-resource locks.

    Waiters on one resource are served by :class:`asyncio.Lock`, which is
    FIFO-fair. Locks are not reentrant. An entry is dropped once nobody
    holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], _LockEntry] = {}

    async def acquire(
        self,
        resource: ResourceIdentifier,
        *,
        timeout: float = 10.0,
        ttl: float = 30.0,  # noqa: ARG002
    ) -> str:
        key = (resource.resource_type, resource.resource_id)
        entry = self._locks.setdefault(key, _LockEntry())
        entry.users += 1
        try:
            await asyncio.wait_for(entry.lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError as err:
            self._forget(key, entry)
            logger.warning(
                "Lock acquisition on %s timed out after %.1fs", resource, timeout
            )
            raise LockAcquisitionError(resource, timeout) from err
        except BaseException:
            self._forget(key, entry)
            raise

        entry.token = str(uuid4())
        logger.debug("Lock acquired: %s", resource)
        return entry.token

    async def release(self, resource: ResourceIdentifier, token: str) -> None:
        key = (resource.resource_type, resource.resource_id)
        entry = self._locks.get(key)
        if entry is None or entry.token != token:
            logger.warning("Ignoring release of %s with a stale token", resource)
            return
        entry.token = None
        entry.lock.release()
        self._forget(key, entry)
        logger.debug("Lock released: %s", resource)

    def _forget(self, key: tuple[str, str], entry: _LockEntry) -> None:
        entry.users -= 1
        if entry.users <= 0:
            self._locks.pop(key, None)

    def is_locked(self, resource: ResourceIdentifier) -> bool:
        entry = self._locks.get((resource.resource_type, resource.resource_id))
        return entry is not None and entry.lock.locked()


class InMemoryAccountStore(IAccountStore):
    """Version-checked in-memory account store.

    Example:
        ```python
        store = InMemoryAccountStore()
        store.add(AccountRecord(account_id="u1", username="jane",
                                password_hash=hasher.hash("...")))
        record = await store.load_account("u1")
        ```
    """

    def __init__(self) -> None:
        self._accounts: dict[str, AccountRecord] = {}

    def add(self, record: AccountRecord) -> None:
        """Seed an account (tests and fixtures)."""
        self._accounts[record.account_id] = record

    async def load_account(self, account_id: str) -> AccountRecord | None:
        return self._accounts.get(account_id)

    async def find_account(self, identifier: str) -> AccountRecord | None:
        lowered = identifier.lower()
        for record in self._accounts.values():
            if record.username.lower() == lowered or (
                record.email and record.email.lower() == lowered
            ):
                return record
        return None

    async def save_enrollment(
        self,
        account_id: str,
        enrollment: MfaEnrollment,
        *,
        expected_version: int,
    ) -> AccountRecord:
        current = self._accounts.get(account_id)
        if current is None:
            raise AccountNotFoundError(account_id)
        if current.version != expected_version:
            raise OptimisticLockingError(account_id, expected_version, current.version)
        updated = replace(current, mfa=enrollment, version=current.version + 1)
        self._accounts[account_id] = updated
        return updated

    async def update_password_hash(
        self, account_id: str, password_hash: str
    ) -> AccountRecord:
        current = self._accounts.get(account_id)
        if current is None:
            raise AccountNotFoundError(account_id)
        updated = replace(
            current, password_hash=password_hash, version=current.version + 1
        )
        self._accounts[account_id] = updated
        return updated


__all__: list[str] = ["InMemoryLockStrategy", "InMemoryAccountStore"]
