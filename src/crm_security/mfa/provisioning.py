"""TOTP secret provisioning.

Generates a fresh shared secret and the enrollment payload an authenticator
app needs: a base32 key for manual entry and an ``otpauth://`` URI for a QR
code. Works with any RFC 6238 app (Google Authenticator, Microsoft
Authenticator, Authy, 1Password, FreeOTP).

Provisioning has no side effects. The caller decides when to persist the
secret, and it is not active until the lifecycle confirms it.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any

from ..config import TotpConfig
from ..exceptions import ProvisioningError
from .enrollment import encode_secret

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TotpProvisioning:
    """Enrollment payload for a new TOTP secret.

    Attributes:
        secret: Raw shared-secret bytes (store encrypted).
        manual_entry_key: Unpadded base32 encoding of ``secret``.
        enrollment_uri: otpauth:// URI for QR code generation.
    """

    secret: bytes
    manual_entry_key: str
    enrollment_uri: str

    @property
    def formatted_key(self) -> str:
        """Manual entry key in groups of 4 characters for readability."""
        key = self.manual_entry_key
        return " ".join(key[i : i + 4] for i in range(0, len(key), 4))

    def __repr__(self) -> str:
        return "TotpProvisioning(secret=<redacted>, manual_entry_key=<redacted>)"


class SecretProvisioner:
    """Creates TOTP secrets and their enrollment payloads.

    Example:
        ```python
        provisioner = SecretProvisioner(TotpConfig(issuer="Bright Sales CRM"))
        setup = provisioner.provision("Jane Doe (jane@example.com)")
        print(setup.enrollment_uri)   # render as QR
        print(setup.formatted_key)    # or type it in
        ```
    """

    def __init__(self, config: TotpConfig | None = None) -> None:
        self.config = config or TotpConfig()

    def _get_pyotp(self) -> Any:
        """Lazy import pyotp."""
        try:
            import pyotp

            return pyotp
        except ImportError as e:
            raise ImportError(
                "pyotp is required for TOTP support. "
                "Install with: pip install pyotp"
            ) from e

    def provision(
        self, account_label: str, issuer_name: str | None = None
    ) -> TotpProvisioning:
        """Generate a new secret for an account.

        Args:
            account_label: Account name shown in the authenticator app.
            issuer_name: Issuer shown in the app (defaults to config issuer).

        Returns:
            TotpProvisioning with secret, manual entry key and URI.

        Raises:
            ProvisioningError: If the random source is unavailable or the
                label/issuer cannot be encoded into a URI.
        """
        issuer = issuer_name if issuer_name is not None else self.config.issuer
        if not account_label or not account_label.strip():
            raise ProvisioningError("Account label is required for TOTP setup")
        if not issuer or not issuer.strip():
            raise ProvisioningError("Issuer name is required for TOTP setup")

        try:
            secret = secrets.token_bytes(self.config.secret_bytes)
        except (OSError, NotImplementedError) as e:
            logger.error("Secure random source unavailable for TOTP secret")
            raise ProvisioningError("Secure random source unavailable") from e

        manual_entry_key = encode_secret(secret)
        pyotp = self._get_pyotp()
        totp = pyotp.TOTP(
            manual_entry_key,
            digits=self.config.digits,
            interval=self.config.step_seconds,
            issuer=issuer,
        )
        try:
            enrollment_uri = totp.provisioning_uri(
                name=account_label,
                issuer_name=issuer,
            )
        except (UnicodeError, ValueError) as e:
            raise ProvisioningError(
                "Account label or issuer cannot be encoded in an otpauth URI"
            ) from e

        return TotpProvisioning(
            secret=secret,
            manual_entry_key=manual_entry_key,
            enrollment_uri=enrollment_uri,
        )


__all__: list[str] = ["TotpProvisioning", "SecretProvisioner"]
