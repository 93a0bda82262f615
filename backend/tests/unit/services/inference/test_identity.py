"""
Tests for deriving the signing identity.
"""
import pytest

from og_gateway.services.inference.exceptions import SetupFailure
from og_gateway.services.inference.identity import ProviderIdentity, create_identity


def test_address_is_checksummed(identity):
    assert identity.address.startswith("0x")
    assert len(identity.address) == 42
    assert identity.address != identity.address.lower()


def test_signature_recovers_to_address(identity):
    signature = identity.sign_text("hello marketplace")

    assert signature.startswith("0x")
    assert ProviderIdentity.recover_signer("hello marketplace", signature) == identity.address


def test_signature_bound_to_text(identity):
    signature = identity.sign_text("prompt A")
    assert ProviderIdentity.recover_signer("prompt B", signature) != identity.address


@pytest.mark.parametrize("private_key", [None, ""])
def test_missing_key(private_key):
    with pytest.raises(SetupFailure) as exc_info:
        create_identity(private_key, "http://127.0.0.1:8545")
    assert exc_info.value.error_code == "SETUP_FAILURE"


@pytest.mark.parametrize("private_key", ["0x1234", "not-a-key"])
def test_invalid_key(private_key):
    with pytest.raises(SetupFailure) as exc_info:
        create_identity(private_key, "http://127.0.0.1:8545")
    assert private_key not in str(exc_info.value)


def test_repr_hides_key(identity):
    assert "4c0883a6" not in repr(identity)
