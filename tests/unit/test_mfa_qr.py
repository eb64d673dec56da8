"""Tests for QR rendering."""

from __future__ import annotations

import base64

import pytest

from crm_security.mfa.qr import QrCodeRenderer
from crm_security.ports import IQrRenderer

pytest.importorskip("qrcode", reason="qrcode required for QR rendering")
pytest.importorskip("PIL", reason="Pillow required for PNG output")

URI = (
    "otpauth://totp/Bright%20Sales%20CRM:jdoe"
    "?secret=GEZDGNBVGY3TQOJQ&issuer=Bright%20Sales%20CRM"
)


class TestQrCodeRenderer:
    def test_renders_png_data_uri(self) -> None:
        data_uri = QrCodeRenderer().render(URI)

        prefix = "data:image/png;base64,"
        assert data_uri.startswith(prefix)
        png = base64.b64decode(data_uri[len(prefix) :])
        assert png.startswith(b"\x89PNG\r\n\x1a\n")

    def test_implements_port(self) -> None:
        assert isinstance(QrCodeRenderer(), IQrRenderer)
