"""Password checks on registration and credential change."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from ..audit.events import AuditEventType, failure_event, success_event
from ..exceptions import AccountNotFoundError
from ..observability import SecurityMetrics
from .policy import PasswordPolicyEvaluator

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..audit.events import AuditEvent
    from ..config import SecurityConfig
    from ..ports import IAccountStore, IAuditStore, IPasswordVerifier
    from .policy import PasswordEvaluation

logger = logging.getLogger(__name__)


class PasswordChangeStatus(str, Enum):
    CHANGED = "changed"
    NOT_AUTHORIZED = "not_authorized"
    INVALID_PASSWORD = "invalid_password"  # noqa: S105


@dataclass(frozen=True)
class PasswordChangeResult:
    """Outcome of :meth:`PasswordService.change_password`.

    Attributes:
        status: What happened.
        evaluation: Policy evaluation of the new password, when one ran.
    """

    status: PasswordChangeStatus
    evaluation: PasswordEvaluation | None = None

    @property
    def ok(self) -> bool:
        return self.status is PasswordChangeStatus.CHANGED

    def __bool__(self) -> bool:
        return self.ok


class PasswordService:
    """Applies the password policy before any credential is persisted.

    Example:
        ```python
        service = PasswordService(
            account_store=store,
            hasher=PasswordHasher.from_config(config),
            config=config,
        )

        # Registration
        evaluation = service.check_new_password(
            password, personal_info=[username, email, first_name, last_name]
        )

        # Settings page
        result = await service.change_password("user-123", current, new)
        if not result:
            return result.evaluation.violations if result.evaluation else []
        ```
    """

    def __init__(
        self,
        *,
        account_store: IAccountStore,
        hasher: IPasswordVerifier,
        config: SecurityConfig | None = None,
        evaluator: PasswordPolicyEvaluator | None = None,
        audit_store: IAuditStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            account_store: Persistence for account records.
            hasher: Password comparator and hasher.
            config: Security configuration; its ``password_policy`` drives
                the evaluator.
            evaluator: Explicit evaluator, overriding ``config``.
            audit_store: Optional audit sink.
        """
        self.account_store = account_store
        self.hasher = hasher
        policy = config.password_policy if config is not None else None
        self.evaluator = evaluator or PasswordPolicyEvaluator(policy)
        self.audit_store = audit_store

    def check_new_password(
        self,
        candidate: str,
        personal_info: Iterable[str | None] = (),
    ) -> PasswordEvaluation:
        """Evaluate a password for a new account.

        Returns:
            The evaluation (always valid when returned).

        Raises:
            PasswordPolicyError: With every violation, if the password fails.
        """
        evaluation = self.evaluator.evaluate(candidate, personal_info)
        evaluation.raise_for_violations()
        return evaluation

    async def change_password(
        self,
        account_id: str,
        current_password: str,
        new_password: str,
    ) -> PasswordChangeResult:
        """Change a password after re-checking the current one.

        Raises:
            AccountNotFoundError: Unknown account.
        """
        with SecurityMetrics.operation("password.change"):
            record = await self.account_store.load_account(account_id)
            if record is None:
                raise AccountNotFoundError(account_id)

            if not self.hasher.verify(record.password_hash, current_password):
                await self._emit(
                    failure_event(
                        AuditEventType.PASSWORD_CHANGED,
                        account_id,
                        PasswordChangeStatus.NOT_AUTHORIZED.value,
                    )
                )
                return PasswordChangeResult(PasswordChangeStatus.NOT_AUTHORIZED)

            evaluation = self.evaluator.evaluate(new_password, record.personal_info())
            if not evaluation.is_valid:
                logger.info(
                    "Password change rejected for account %s (%d violations)",
                    account_id,
                    len(evaluation.violations),
                )
                await self._emit(
                    failure_event(
                        AuditEventType.PASSWORD_REJECTED,
                        account_id,
                        PasswordChangeStatus.INVALID_PASSWORD.value,
                        violations=len(evaluation.violations),
                    )
                )
                return PasswordChangeResult(
                    PasswordChangeStatus.INVALID_PASSWORD, evaluation
                )

            await self.account_store.update_password_hash(
                account_id, self.hasher.hash(new_password)
            )
            logger.info("Password changed for account %s", account_id)
            await self._emit(success_event(AuditEventType.PASSWORD_CHANGED, account_id))
            return PasswordChangeResult(PasswordChangeStatus.CHANGED, evaluation)

    async def _emit(self, event: AuditEvent) -> None:
        SecurityMetrics.record_event(event)
        if self.audit_store is not None:
            await self.audit_store.record(event)


__all__: list[str] = ["PasswordChangeStatus", "PasswordChangeResult", "PasswordService"]
