"""MFA enrollment lifecycle.

State machine over an account's enrollment::

    Disabled ──begin_setup──▶ SetupPending ──confirm_setup──▶ Enabled
                  ▲   │ begin_setup (new secret)                │
                  │   └──────────────┘                          │
                  └───────────────────────── disable ───────────┘

Every transition replaces the whole enrollment in a single store write,
so secret, backup codes and the enabled flag never diverge. Writes run
under a per-account lock and a version check; a write that loses a race
is re-read and re-decided, which keeps each backup code single-use.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from ..audit.events import AuditEventType, failure_event, success_event
from ..config import SecurityConfig
from ..exceptions import AccountNotFoundError, OptimisticLockingError
from ..memory import InMemoryLockStrategy
from ..observability import SecurityMetrics
from ..ports import ResourceIdentifier
from .backup_codes import BackupCodeManager
from .enrollment import (
    MfaEnabled,
    MfaEnrollment,
    MfaSetupPending,
    MfaState,
)
from .provisioning import SecretProvisioner
from .results import MfaErrorKind, MfaResult, MfaStatusReport
from .totp import TotpVerifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from ..account import AccountRecord
    from ..audit.events import AuditEvent
    from ..ports import (
        IAccountStore,
        IAuditStore,
        ILockStrategy,
        IPasswordVerifier,
        IQrRenderer,
    )

    Decision = tuple[MfaEnrollment | None, MfaResult]

logger = logging.getLogger(__name__)


class MfaLifecycle:
    """Orchestrates MFA setup, confirmation, login checks and disabling.

    Guard failures come back as :class:`MfaResult` values carrying an
    :class:`MfaErrorKind`; only a missing account, a provisioning fault or a
    persistence fault raise.

    Example:
        ```python
        lifecycle = MfaLifecycle(
            account_store=store,
            password_verifier=PasswordHasher(),
            lock_strategy=RedisLockStrategy(redis),
        )

        setup = await lifecycle.begin_setup("user-123")
        show_qr(setup.provisioning.enrollment_uri)
        show_codes(setup.backup_codes)

        confirmed = await lifecycle.confirm_setup("user-123", "492039")
        if confirmed.error is MfaErrorKind.INVALID_CODE:
            ...
        ```
    """

    def __init__(
        self,
        *,
        account_store: IAccountStore,
        password_verifier: IPasswordVerifier,
        lock_strategy: ILockStrategy | None = None,
        config: SecurityConfig | None = None,
        provisioner: SecretProvisioner | None = None,
        totp_verifier: TotpVerifier | None = None,
        backup_codes: BackupCodeManager | None = None,
        audit_store: IAuditStore | None = None,
        qr_renderer: IQrRenderer | None = None,
        lock_timeout: float = 10.0,
        max_conflict_retries: int = 3,
    ) -> None:
        """Initialize the lifecycle.

        Args:
            account_store: Persistence for account records.
            password_verifier: Password comparator for re-checks.
            lock_strategy: Per-account lock (in-process by default).
            config: Security configuration.
            provisioner: Secret provisioner (built from config if omitted).
            totp_verifier: TOTP verifier (built from config if omitted).
            backup_codes: Backup code manager (built from config if omitted).
            audit_store: Optional audit sink.
            qr_renderer: Optional QR renderer for setup payloads.
            lock_timeout: Seconds to wait for the per-account lock.
            max_conflict_retries: Re-reads after an optimistic-lock conflict.
        """
        self.config = config or SecurityConfig()
        self.account_store = account_store
        self.password_verifier = password_verifier
        self.lock_strategy = lock_strategy or InMemoryLockStrategy()
        self.provisioner = provisioner or SecretProvisioner(self.config.totp)
        self.totp_verifier = totp_verifier or TotpVerifier(self.config.totp)
        self.backup_codes = backup_codes or BackupCodeManager(self.config.backup_codes)
        self.audit_store = audit_store
        self.qr_renderer = qr_renderer
        self.lock_timeout = lock_timeout
        self.max_conflict_retries = max_conflict_retries

    # ── Infrastructure helpers ───────────────────────────────────

    async def _load(self, account_id: str) -> AccountRecord:
        record = await self.account_store.load_account(account_id)
        if record is None:
            raise AccountNotFoundError(account_id)
        return record

    @asynccontextmanager
    async def _account_lock(self, account_id: str) -> AsyncIterator[None]:
        resource = ResourceIdentifier("Account", account_id)
        token = await self.lock_strategy.acquire(resource, timeout=self.lock_timeout)
        try:
            yield
        finally:
            await self.lock_strategy.release(resource, token)

    async def _transition(
        self,
        account_id: str,
        decide: Callable[[AccountRecord], Decision],
    ) -> MfaResult:
        """Read, decide and write under the account lock.

        ``decide`` returns the new enrollment (or None to write nothing) and
        the result to report. On a version conflict the record is re-read
        and ``decide`` runs again against fresh state.
        """
        attempt = 0
        while True:
            async with self._account_lock(account_id):
                record = await self._load(account_id)
                enrollment, result = decide(record)
                if enrollment is None:
                    return result
                try:
                    await self.account_store.save_enrollment(
                        account_id, enrollment, expected_version=record.version
                    )
                except OptimisticLockingError:
                    if attempt >= self.max_conflict_retries:
                        raise
                    attempt += 1
                    logger.info(
                        "Concurrent update on account %s, retrying (%d/%d)",
                        account_id,
                        attempt,
                        self.max_conflict_retries,
                    )
                    continue
                return result

    async def _emit(self, event: AuditEvent) -> None:
        SecurityMetrics.record_event(event)
        if self.audit_store is not None:
            await self.audit_store.record(event)

    async def _emit_failure(
        self, event_type: AuditEventType, account_id: str, result: MfaResult
    ) -> MfaResult:
        if result.error is not None:
            await self._emit(failure_event(event_type, account_id, result.error.value))
        return result

    # ── Transitions ──────────────────────────────────────────────

    async def begin_setup(self, account_id: str) -> MfaResult:
        """Provision a new secret and backup codes; move to SetupPending.

        Restarting while SetupPending discards the unconfirmed secret, so a
        stale or intercepted QR payload can never be confirmed later.

        Returns:
            Result with ``provisioning`` and ``backup_codes`` on success;
            ``ALREADY_ENABLED`` if MFA is active.

        Raises:
            AccountNotFoundError: Unknown account.
            ProvisioningError: Secret generation failed (safe to retry).
        """
        record = await self._load(account_id)
        if record.mfa.enabled:
            return await self._emit_failure(
                AuditEventType.MFA_SETUP_STARTED,
                account_id,
                MfaResult.failure(MfaErrorKind.ALREADY_ENABLED, MfaState.ENABLED),
            )

        # Random draws happen before the lock is taken.
        provisioning = self.provisioner.provision(
            record.account_label(), self.config.totp.issuer
        )
        codes = tuple(self.backup_codes.generate())

        def decide(current: AccountRecord) -> Decision:
            if current.mfa.enabled:
                return None, MfaResult.failure(
                    MfaErrorKind.ALREADY_ENABLED, MfaState.ENABLED
                )
            pending = MfaSetupPending(secret=provisioning.secret, pending_codes=codes)
            return MfaEnrollment(pending), MfaResult(
                state=MfaState.SETUP_PENDING,
                provisioning=provisioning,
                backup_codes=codes,
                backup_codes_remaining=len(codes),
            )

        result = await self._transition(account_id, decide)
        if not result:
            return await self._emit_failure(
                AuditEventType.MFA_SETUP_STARTED, account_id, result
            )

        logger.info("MFA setup started for account %s", account_id)
        await self._emit(success_event(AuditEventType.MFA_SETUP_STARTED, account_id))

        qr_code = self.render_enrollment_qr(provisioning.enrollment_uri)
        if qr_code is None:
            return result
        return MfaResult(
            state=result.state,
            provisioning=result.provisioning,
            qr_code=qr_code,
            backup_codes=result.backup_codes,
            backup_codes_remaining=result.backup_codes_remaining,
        )

    def render_enrollment_qr(self, uri: str) -> str | None:
        """Render the enrollment URI, or None if unavailable.

        A rendering failure never rolls back SetupPending: the manual entry
        key still works.
        """
        if self.qr_renderer is None:
            return None
        try:
            return self.qr_renderer.render(uri)
        except Exception:  # noqa: BLE001
            logger.warning("QR rendering failed; manual entry key still usable")
            return None

    async def confirm_setup(self, account_id: str, code: str) -> MfaResult:
        """Confirm possession of the pending secret and enable MFA.

        Uses the narrow setup window. On failure the account stays
        SetupPending.

        Returns:
            Result in state ENABLED, or ``NOT_ENROLLED`` / ``INVALID_FORMAT``
            / ``INVALID_CODE``.
        """

        def decide(current: AccountRecord) -> Decision:
            status = current.mfa.status
            if not isinstance(status, MfaSetupPending):
                return None, MfaResult.failure(
                    MfaErrorKind.NOT_ENROLLED, current.mfa.state
                )
            check = self.totp_verifier.verify(
                code, status.secret, window_steps=self.config.totp.setup_window
            )
            if not check:
                return None, MfaResult.failure(
                    MfaErrorKind.from_totp(check.failure), MfaState.SETUP_PENDING
                )
            enabled = MfaEnabled(
                secret=status.secret, backup_codes=status.pending_codes
            )
            return MfaEnrollment(enabled), MfaResult(
                state=MfaState.ENABLED,
                backup_codes_remaining=len(enabled.backup_codes),
            )

        result = await self._transition(account_id, decide)
        if not result:
            return await self._emit_failure(
                AuditEventType.MFA_FAILED, account_id, result
            )

        logger.info("MFA enabled for account %s", account_id)
        await self._emit(success_event(AuditEventType.MFA_ENABLED, account_id))
        return result

    async def verify_login(
        self,
        account_id: str,
        code: str,
        *,
        is_backup_code: bool = False,
    ) -> MfaResult:
        """Check the second factor during login.

        TOTP codes are checked with the wide login window and change
        nothing. A backup code is consumed: the remaining set is written
        back under the account lock, so the same code cannot succeed twice.

        Returns:
            Success, or ``NOT_ENROLLED`` / ``INVALID_FORMAT`` /
            ``INVALID_CODE`` / ``INVALID_BACKUP_CODE``.
        """
        if is_backup_code:
            result = await self._transition(
                account_id, lambda current: self._consume_backup_code(current, code)
            )
        else:
            record = await self._load(account_id)
            result = self._check_totp(record, code)

        if not result:
            return await self._emit_failure(
                AuditEventType.MFA_FAILED, account_id, result
            )

        method = "backup_code" if is_backup_code else "totp"
        await self._emit(
            success_event(AuditEventType.MFA_VERIFIED, account_id, method=method)
        )
        if is_backup_code:
            await self._emit(
                success_event(
                    AuditEventType.BACKUP_CODE_USED,
                    account_id,
                    remaining=result.backup_codes_remaining,
                )
            )
            if result.backup_codes_low:
                logger.warning(
                    "Account %s has few backup codes remaining: %s",
                    account_id,
                    result.backup_codes_remaining,
                )
        return result

    def _check_totp(self, record: AccountRecord, code: str) -> MfaResult:
        status = record.mfa.status
        if not isinstance(status, MfaEnabled):
            return MfaResult.failure(MfaErrorKind.NOT_ENROLLED, record.mfa.state)
        check = self.totp_verifier.verify(
            code, status.secret, window_steps=self.config.totp.login_window
        )
        if not check:
            return MfaResult.failure(
                MfaErrorKind.from_totp(check.failure), MfaState.ENABLED
            )
        return MfaResult(
            state=MfaState.ENABLED,
            backup_codes_remaining=len(status.backup_codes),
            backup_codes_low=not self.backup_codes.has_sufficient_remaining(
                status.backup_codes
            ),
        )

    def _consume_backup_code(self, current: AccountRecord, code: str) -> Decision:
        status = current.mfa.status
        if not isinstance(status, MfaEnabled):
            return None, MfaResult.failure(MfaErrorKind.NOT_ENROLLED, current.mfa.state)
        check = self.backup_codes.verify(code, status.backup_codes)
        if not check:
            return None, MfaResult(
                error=MfaErrorKind.INVALID_BACKUP_CODE,
                state=MfaState.ENABLED,
                backup_codes_remaining=len(status.backup_codes),
            )
        remaining = check.remaining_codes
        return MfaEnrollment(
            MfaEnabled(secret=status.secret, backup_codes=remaining)
        ), MfaResult(
            state=MfaState.ENABLED,
            backup_codes_remaining=len(remaining),
            backup_codes_low=not self.backup_codes.has_sufficient_remaining(remaining),
        )

    async def disable(
        self,
        account_id: str,
        password: str,
        code: str | None = None,
    ) -> MfaResult:
        """Disable MFA after a password re-check.

        If ``code`` is given it must be a valid TOTP code for the current
        secret. Disabling clears the secret and every backup code.

        Returns:
            Result in state DISABLED, or ``NOT_ENROLLED`` /
            ``NOT_AUTHORIZED`` / ``INVALID_FORMAT`` / ``INVALID_CODE``.
        """
        record = await self._load(account_id)
        guard = self._require_enabled_and_password(record, password)
        if guard is not None:
            return await self._emit_failure(
                AuditEventType.MFA_DISABLED, account_id, guard
            )
        if code is not None:
            check = self._check_totp(record, code)
            if not check:
                return await self._emit_failure(
                    AuditEventType.MFA_DISABLED, account_id, check
                )
        checked_secret = record.mfa.secret

        def decide(current: AccountRecord) -> Decision:
            if not current.mfa.enabled:
                return None, MfaResult.failure(
                    MfaErrorKind.NOT_ENROLLED, current.mfa.state
                )
            if code is not None and current.mfa.secret != checked_secret:
                return None, MfaResult.failure(
                    MfaErrorKind.INVALID_CODE, current.mfa.state
                )
            return MfaEnrollment(), MfaResult(
                state=MfaState.DISABLED, backup_codes_remaining=0
            )

        result = await self._transition(account_id, decide)
        if not result:
            return await self._emit_failure(
                AuditEventType.MFA_DISABLED, account_id, result
            )

        logger.info("MFA disabled for account %s", account_id)
        await self._emit(success_event(AuditEventType.MFA_DISABLED, account_id))
        return result

    async def regenerate_backup_codes(
        self, account_id: str, password: str
    ) -> MfaResult:
        """Replace every backup code after a password re-check.

        All previously issued codes stop working as soon as the new set is
        stored. Concurrent regenerations resolve last-write-wins.

        Returns:
            Result with the new ``backup_codes``, or ``NOT_ENROLLED`` /
            ``NOT_AUTHORIZED``.
        """
        record = await self._load(account_id)
        guard = self._require_enabled_and_password(record, password)
        if guard is not None:
            return await self._emit_failure(
                AuditEventType.BACKUP_CODES_REGENERATED, account_id, guard
            )

        codes = tuple(self.backup_codes.generate())

        def decide(current: AccountRecord) -> Decision:
            status = current.mfa.status
            if not isinstance(status, MfaEnabled):
                return None, MfaResult.failure(
                    MfaErrorKind.NOT_ENROLLED, current.mfa.state
                )
            return MfaEnrollment(
                MfaEnabled(secret=status.secret, backup_codes=codes)
            ), MfaResult(
                state=MfaState.ENABLED,
                backup_codes=codes,
                backup_codes_remaining=len(codes),
            )

        result = await self._transition(account_id, decide)
        if not result:
            return await self._emit_failure(
                AuditEventType.BACKUP_CODES_REGENERATED, account_id, result
            )

        logger.info("Backup codes regenerated for account %s", account_id)
        await self._emit(
            success_event(AuditEventType.BACKUP_CODES_REGENERATED, account_id)
        )
        return result

    def _require_enabled_and_password(
        self, record: AccountRecord, password: str
    ) -> MfaResult | None:
        if not record.mfa.enabled:
            return MfaResult.failure(MfaErrorKind.NOT_ENROLLED, record.mfa.state)
        if not self.password_verifier.verify(record.password_hash, password):
            return MfaResult.failure(MfaErrorKind.NOT_AUTHORIZED, record.mfa.state)
        return None

    async def get_status(self, account_id: str) -> MfaStatusReport:
        """Summarise the MFA state of an account."""
        record = await self._load(account_id)
        enrollment = record.mfa
        remaining = len(enrollment.backup_codes) if enrollment.enabled else 0
        return MfaStatusReport(
            state=enrollment.state,
            enabled=enrollment.enabled,
            verified=enrollment.verified,
            backup_codes_remaining=remaining,
            backup_codes_low=enrollment.enabled
            and not self.backup_codes.has_sufficient_remaining(enrollment.backup_codes),
        )


__all__: list[str] = ["MfaLifecycle"]
