"""crm-security: account security for the sales CRM.

Password policy, TOTP multi-factor authentication with backup codes, and
the login flow that ties them to session issuance.

Example:
    ```python
    from crm_security import (
        InMemoryAccountStore,
        MfaLifecycle,
        PasswordHasher,
    )

    lifecycle = MfaLifecycle(
        account_store=InMemoryAccountStore(),
        password_verifier=PasswordHasher(),
    )
    setup = await lifecycle.begin_setup("user-123")
    ```
"""

from .account import AccountRecord
from .audit import (
    AuditEvent,
    AuditEventType,
    InMemoryAuditStore,
    failure_event,
    success_event,
)
from .config import BackupCodeConfig, SecurityConfig, SessionConfig, TotpConfig
from .exceptions import (
    AccountNotFoundError,
    ConcurrencyError,
    DomainError,
    ExpiredSessionError,
    InvalidSessionError,
    LockAcquisitionError,
    LoginStateError,
    MfaError,
    NotFoundError,
    OptimisticLockingError,
    PasswordPolicyError,
    ProvisioningError,
    SecurityError,
    SessionError,
)
from .login import LoginResult, LoginService, LoginStatus
from .login_state import LoginStateData, LoginStateManager
from .memory import InMemoryAccountStore, InMemoryLockStrategy
from .mfa import (
    BackupCodeManager,
    MfaEnrollment,
    MfaErrorKind,
    MfaLifecycle,
    MfaResult,
    MfaState,
    MfaStatusReport,
    QrCodeRenderer,
    SecretProvisioner,
    TotpProvisioning,
    TotpVerifier,
)
from .password import (
    PasswordChangeResult,
    PasswordChangeStatus,
    PasswordEvaluation,
    PasswordHasher,
    PasswordHashingConfig,
    PasswordPolicy,
    PasswordPolicyEvaluator,
    PasswordService,
)
from .ports import (
    IAccountStore,
    IAuditStore,
    ILockStrategy,
    IPasswordVerifier,
    IQrRenderer,
    ISessionIssuer,
    ISessionStore,
    ResourceIdentifier,
    SessionCredential,
)
from .session import InMemorySessionStore, SessionIssuer

__version__ = "0.1.0"

__all__: list[str] = [
    # Account
    "AccountRecord",
    # Audit
    "AuditEvent",
    "AuditEventType",
    "InMemoryAuditStore",
    "failure_event",
    "success_event",
    # Config
    "BackupCodeConfig",
    "SecurityConfig",
    "SessionConfig",
    "TotpConfig",
    # Exceptions
    "AccountNotFoundError",
    "ConcurrencyError",
    "DomainError",
    "ExpiredSessionError",
    "InvalidSessionError",
    "LockAcquisitionError",
    "LoginStateError",
    "MfaError",
    "NotFoundError",
    "OptimisticLockingError",
    "PasswordPolicyError",
    "ProvisioningError",
    "SecurityError",
    "SessionError",
    # Login
    "LoginResult",
    "LoginService",
    "LoginStatus",
    "LoginStateData",
    "LoginStateManager",
    # Adapters
    "InMemoryAccountStore",
    "InMemoryLockStrategy",
    "InMemorySessionStore",
    "SessionIssuer",
    # MFA
    "BackupCodeManager",
    "MfaEnrollment",
    "MfaErrorKind",
    "MfaLifecycle",
    "MfaResult",
    "MfaState",
    "MfaStatusReport",
    "QrCodeRenderer",
    "SecretProvisioner",
    "TotpProvisioning",
    "TotpVerifier",
    # Password
    "PasswordChangeResult",
    "PasswordChangeStatus",
    "PasswordEvaluation",
    "PasswordHasher",
    "PasswordHashingConfig",
    "PasswordPolicy",
    "PasswordPolicyEvaluator",
    "PasswordService",
    # Ports
    "IAccountStore",
    "IAuditStore",
    "ILockStrategy",
    "IPasswordVerifier",
    "IQrRenderer",
    "ISessionIssuer",
    "ISessionStore",
    "ResourceIdentifier",
    "SessionCredential",
]
