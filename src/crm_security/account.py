"""Account record as seen by the security subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field

from .mfa.enrollment import MfaEnrollment


@dataclass(frozen=True)
class AccountRecord:
    """Security-relevant slice of a CRM user account.

    Attributes:
        account_id: Stable account identifier.
        username: Login name.
        password_hash: bcrypt or argon2id hash.
        email: Email address (also accepted as login identifier).
        display_name: Full name shown in the UI and authenticator apps.
        mfa: Current MFA enrollment.
        version: Optimistic-concurrency token; bumped on every save.
    """

    account_id: str
    username: str
    password_hash: str
    email: str | None = None
    display_name: str | None = None
    mfa: MfaEnrollment = field(default_factory=MfaEnrollment)
    version: int = 0

    def personal_info(self) -> list[str]:
        """Tokens a password must not contain."""
        tokens = [self.username]
        if self.email:
            tokens.append(self.email)
            tokens.append(self.email.split("@", 1)[0])
        if self.display_name:
            tokens.extend(self.display_name.split())
        return tokens

    def account_label(self) -> str:
        """Label shown next to the issuer in authenticator apps."""
        if self.display_name and self.email:
            return f"{self.display_name} ({self.email})"
        return self.email or self.username


__all__: list[str] = ["AccountRecord"]
