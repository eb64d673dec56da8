"""QR rendering for TOTP enrollment URIs.

Requires: ``pip install qrcode[pil]``
"""

from __future__ import annotations

import base64
import io
from typing import Any

from ..ports import IQrRenderer


def _get_qrcode() -> Any:
    """Lazy import qrcode."""
    try:
        import qrcode

        return qrcode
    except ImportError as e:
        raise ImportError(
            "qrcode is required for QR rendering. "
            "Install it with: pip install qrcode[pil]"
        ) from e


class QrCodeRenderer(IQrRenderer):
    """Renders an ``otpauth://`` URI as a base64 PNG data URI.

    Example:
        ```python
        renderer = QrCodeRenderer()
        data_uri = renderer.render(provisioning.enrollment_uri)
        # "data:image/png;base64,iVBORw0KGgo..."
        ```
    """

    def __init__(self, *, box_size: int = 8, border: int = 1) -> None:
        self.box_size = box_size
        self.border = border

    def render(self, uri: str) -> str:
        qrcode = _get_qrcode()
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        img.save(buffer, "PNG")
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


__all__: list[str] = ["QrCodeRenderer"]
