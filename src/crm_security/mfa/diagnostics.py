"""TOTP code generation for tests and diagnostics.

NEVER import this from an authentication code path. The architecture
tests enforce that the lifecycle, login and session modules do not.
"""

from __future__ import annotations

import time
from typing import Any

from .enrollment import encode_secret


def _get_pyotp() -> Any:
    """Lazy import pyotp."""
    try:
        import pyotp

        return pyotp
    except ImportError as e:
        raise ImportError(
            "pyotp is required for TOTP support. Install with: pip install pyotp"
        ) from e


def current_code(
    secret: bytes,
    *,
    step_seconds: int = 30,
    digits: int = 6,
    for_time: float | None = None,
) -> str:
    """Return the TOTP code for ``secret`` at ``for_time`` (default: now)."""
    pyotp = _get_pyotp()
    totp = pyotp.TOTP(encode_secret(secret), digits=digits, interval=step_seconds)
    return str(totp.at(int(time.time() if for_time is None else for_time)))


__all__: list[str] = ["current_code"]
