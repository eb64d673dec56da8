"""Tests for TOTP secret provisioning."""

from __future__ import annotations

from unittest.mock import patch
from urllib.parse import parse_qs, unquote, urlparse

import pytest

from crm_security.config import TotpConfig
from crm_security.exceptions import ProvisioningError
from crm_security.mfa.enrollment import decode_secret
from crm_security.mfa.provisioning import SecretProvisioner

pytest.importorskip("pyotp", reason="pyotp required for TOTP")


@pytest.fixture
def provisioner() -> SecretProvisioner:
    return SecretProvisioner()


class TestSecretProvisioner:
    def test_secret_length_and_key(self, provisioner: SecretProvisioner) -> None:
        setup = provisioner.provision("Jane Doe (jane@example.com)")

        assert len(setup.secret) == 32
        assert "=" not in setup.manual_entry_key
        assert decode_secret(setup.manual_entry_key) == setup.secret

    def test_enrollment_uri(self, provisioner: SecretProvisioner) -> None:
        setup = provisioner.provision("Jane Doe (jane@example.com)")
        uri = urlparse(setup.enrollment_uri)
        query = parse_qs(uri.query)

        assert uri.scheme == "otpauth"
        assert uri.netloc == "totp"
        assert unquote(uri.path) == "/Bright Sales CRM:Jane Doe (jane@example.com)"
        assert query["secret"] == [setup.manual_entry_key]
        assert query["issuer"] == ["Bright Sales CRM"]

    def test_issuer_override(self, provisioner: SecretProvisioner) -> None:
        setup = provisioner.provision("jdoe", issuer_name="Acme CRM")

        assert "issuer=Acme%20CRM" in setup.enrollment_uri

    def test_secrets_are_unique(self, provisioner: SecretProvisioner) -> None:
        secrets_seen = {provisioner.provision("jdoe").secret for _ in range(20)}

        assert len(secrets_seen) == 20

    def test_configured_secret_size(self) -> None:
        setup = SecretProvisioner(TotpConfig(secret_bytes=20)).provision("jdoe")

        assert len(setup.secret) == 20
        assert len(setup.manual_entry_key) == 32

    @pytest.mark.parametrize("label", ["", "   "])
    def test_empty_label_rejected(
        self, provisioner: SecretProvisioner, label: str
    ) -> None:
        with pytest.raises(ProvisioningError, match="Account label"):
            provisioner.provision(label)

    def test_empty_issuer_rejected(self, provisioner: SecretProvisioner) -> None:
        with pytest.raises(ProvisioningError, match="Issuer"):
            provisioner.provision("jdoe", issuer_name="")

    def test_random_source_failure(self, provisioner: SecretProvisioner) -> None:
        """An unavailable random source surfaces as a retryable error."""
        with (
            patch(
                "crm_security.mfa.provisioning.secrets.token_bytes",
                side_effect=OSError("no entropy"),
            ),
            pytest.raises(ProvisioningError, match="random source"),
        ):
            provisioner.provision("jdoe")

    def test_formatted_key_groups(self, provisioner: SecretProvisioner) -> None:
        setup = provisioner.provision("jdoe")
        groups = setup.formatted_key.split(" ")

        assert "".join(groups) == setup.manual_entry_key
        assert all(len(group) == 4 for group in groups[:-1])

    def test_repr_hides_secret(self, provisioner: SecretProvisioner) -> None:
        setup = provisioner.provision("jdoe")

        assert setup.manual_entry_key not in repr(setup)
