"""Multi-factor authentication: TOTP secrets, verification, backup codes.

``current_code`` lives in :mod:`crm_security.mfa.diagnostics` and is not
exported here; production paths never generate codes.
"""

from .backup_codes import BackupCodeManager, BackupCodeVerification
from .enrollment import (
    MfaDisabled,
    MfaEnabled,
    MfaEnrollment,
    MfaSetupPending,
    MfaState,
    MfaStatus,
    decode_secret,
    encode_secret,
)
from .lifecycle import MfaLifecycle
from .provisioning import SecretProvisioner, TotpProvisioning
from .qr import QrCodeRenderer
from .results import MfaErrorKind, MfaResult, MfaStatusReport
from .totp import TotpFailure, TotpVerification, TotpVerifier, normalize_code

__all__: list[str] = [
    "BackupCodeManager",
    "BackupCodeVerification",
    "MfaDisabled",
    "MfaEnabled",
    "MfaEnrollment",
    "MfaSetupPending",
    "MfaState",
    "MfaStatus",
    "decode_secret",
    "encode_secret",
    "MfaLifecycle",
    "SecretProvisioner",
    "TotpProvisioning",
    "QrCodeRenderer",
    "MfaErrorKind",
    "MfaResult",
    "MfaStatusReport",
    "TotpFailure",
    "TotpVerification",
    "TotpVerifier",
    "normalize_code",
]
