"""Login orchestration: password, optional second factor, session.

A password-verified login against an MFA-enabled account does not get a
session. It gets a short-lived challenge token, stored under
``mfa_challenge:<nonce>``, which :meth:`LoginService.complete_mfa` exchanges
for an MFA-verified session.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

from .audit.events import AuditEventType, failure_event, success_event
from .config import SessionConfig
from .observability import SecurityMetrics

if TYPE_CHECKING:
    from .account import AccountRecord
    from .audit.events import AuditEvent
    from .mfa.lifecycle import MfaLifecycle
    from .mfa.results import MfaErrorKind
    from .ports import (
        IAccountStore,
        IAuditStore,
        IPasswordVerifier,
        ISessionIssuer,
        ISessionStore,
        SessionCredential,
    )

logger = logging.getLogger(__name__)

CHALLENGE_KEY_PREFIX = "mfa_challenge:"


class LoginStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    MFA_REQUIRED = "mfa_required"
    MFA_FAILED = "mfa_failed"
    NOT_AUTHORIZED = "not_authorized"


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a login step.

    Attributes:
        status: Where the login stands.
        account_id: Account the step resolved to (None when unauthorized).
        session: Issued credential when ``AUTHENTICATED``.
        challenge_token: Token for :meth:`LoginService.complete_mfa` when
            ``MFA_REQUIRED`` or ``MFA_FAILED``.
        mfa_error: Why the second factor was refused.
        backup_codes_low: True when a backup-code login left few codes.
    """

    status: LoginStatus
    account_id: str | None = None
    session: SessionCredential | None = None
    challenge_token: str | None = None
    mfa_error: MfaErrorKind | None = None
    backup_codes_low: bool = False

    @property
    def authenticated(self) -> bool:
        return self.status is LoginStatus.AUTHENTICATED


_NOT_AUTHORIZED = LoginResult(LoginStatus.NOT_AUTHORIZED)


class LoginService:
    """Drives a login from credentials to a session.

    Example:
        ```python
        service = LoginService(
            account_store=store,
            password_verifier=hasher,
            lifecycle=lifecycle,
            session_issuer=SessionIssuer(session_store),
            session_store=session_store,
        )

        result = await service.login("jane@example.com", password)
        if result.status is LoginStatus.MFA_REQUIRED:
            result = await service.complete_mfa(result.challenge_token, code)
        ```
    """

    def __init__(
        self,
        *,
        account_store: IAccountStore,
        password_verifier: IPasswordVerifier,
        lifecycle: MfaLifecycle,
        session_issuer: ISessionIssuer,
        session_store: ISessionStore,
        config: SessionConfig | None = None,
        audit_store: IAuditStore | None = None,
    ) -> None:
        self.account_store = account_store
        self.password_verifier = password_verifier
        self.lifecycle = lifecycle
        self.session_issuer = session_issuer
        self.session_store = session_store
        self.config = config or SessionConfig()
        self.audit_store = audit_store

    async def login(self, identifier: str, password: str) -> LoginResult:
        """Check the first factor.

        Unknown accounts and wrong passwords produce the same result.
        """
        with SecurityMetrics.operation("login.password"):
            record = await self.account_store.find_account(identifier)
            if record is None or not self.password_verifier.verify(
                record.password_hash, password
            ):
                account_id = record.account_id if record is not None else None
                await self._emit(
                    failure_event(
                        AuditEventType.LOGIN_FAILED,
                        account_id,
                        LoginStatus.NOT_AUTHORIZED.value,
                    )
                )
                return _NOT_AUTHORIZED

            await self._rehash_if_needed(record, password)

            if record.mfa.enabled:
                token = await self._create_challenge(record.account_id)
                logger.info("MFA required for account %s", record.account_id)
                await self._emit(
                    success_event(AuditEventType.LOGIN_MFA_REQUIRED, record.account_id)
                )
                return LoginResult(
                    LoginStatus.MFA_REQUIRED,
                    account_id=record.account_id,
                    challenge_token=token,
                )

            session = await self.session_issuer.issue(
                record.account_id, mfa_verified=False
            )
            await self._emit(
                success_event(
                    AuditEventType.LOGIN_SUCCESS, record.account_id, mfa=False
                )
            )
            return LoginResult(
                LoginStatus.AUTHENTICATED, account_id=record.account_id, session=session
            )

    async def complete_mfa(
        self,
        challenge_token: str,
        code: str,
        *,
        is_backup_code: bool = False,
    ) -> LoginResult:
        """Exchange a challenge token and second factor for a session.

        A failed code leaves the challenge usable until it expires.
        """
        with SecurityMetrics.operation("login.mfa"):
            key = f"{CHALLENGE_KEY_PREFIX}{challenge_token}"
            challenge = await self.session_store.get(key) if challenge_token else None
            if challenge is None:
                logger.info("Rejected unknown or expired MFA challenge")
                return _NOT_AUTHORIZED

            account_id = challenge["account_id"]
            check = await self.lifecycle.verify_login(
                account_id, code, is_backup_code=is_backup_code
            )
            if not check:
                await self._emit(
                    failure_event(
                        AuditEventType.LOGIN_FAILED,
                        account_id,
                        check.error.value if check.error else "mfa_failed",
                    )
                )
                return LoginResult(
                    LoginStatus.MFA_FAILED,
                    account_id=account_id,
                    challenge_token=challenge_token,
                    mfa_error=check.error,
                )

            # Only the caller that consumes the challenge gets a session.
            if await self.session_store.pop(key) is None:
                logger.info("MFA challenge for account %s already consumed", account_id)
                return _NOT_AUTHORIZED

            session = await self.session_issuer.issue(account_id, mfa_verified=True)
            await self._emit(
                success_event(AuditEventType.LOGIN_SUCCESS, account_id, mfa=True)
            )
            return LoginResult(
                LoginStatus.AUTHENTICATED,
                account_id=account_id,
                session=session,
                backup_codes_low=check.backup_codes_low,
            )

    async def _create_challenge(self, account_id: str) -> str:
        token = secrets.token_urlsafe(32)
        await self.session_store.store(
            key=f"{CHALLENGE_KEY_PREFIX}{token}",
            data={
                "account_id": account_id,
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
            ttl=self.config.challenge_ttl_seconds,
        )
        return token

    async def _rehash_if_needed(self, record: AccountRecord, password: str) -> None:
        if not self.password_verifier.needs_rehash(record.password_hash):
            return
        await self.account_store.update_password_hash(
            record.account_id, self.password_verifier.hash(password)
        )
        logger.info("Rehashed password for account %s", record.account_id)

    async def _emit(self, event: AuditEvent) -> None:
        SecurityMetrics.record_event(event)
        if self.audit_store is not None:
            await self.audit_store.record(event)


__all__: list[str] = [
    "LoginStatus",
    "LoginResult",
    "LoginService",
    "CHALLENGE_KEY_PREFIX",
]
