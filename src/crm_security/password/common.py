"""Static denylist of common passwords.

Entries are lowercase; lookups lowercase the candidate first.
"""

from __future__ import annotations

COMMON_PASSWORDS: frozenset[str] = frozenset(
    {
        "password",
        "password1",
        "password123",
        "123456",
        "123456789",
        "1234567890",
        "qwerty",
        "abc123",
        "admin",
        "admin123",
        "administrator",
        "letmein",
        "welcome",
        "monkey",
        "root",
        "toor",
        "pass",
        "test",
        "guest",
        "info",
        "adm",
        "mysql",
        "user",
        "oracle",
        "ftp",
        "pi",
        "puppet",
        "ansible",
        "ec2-user",
        "vagrant",
        "azureuser",
    }
)


def is_common_password(candidate: str) -> bool:
    """Case-insensitive exact match against the denylist."""
    return candidate.lower() in COMMON_PASSWORDS


__all__: list[str] = ["COMMON_PASSWORDS", "is_common_password"]
