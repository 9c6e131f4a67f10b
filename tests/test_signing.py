"""Tests for artifact authenticity recovery."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from plugin_server import wrap_with_private_key
from pluginkeeper import ArtifactVerifier, IntegrityError


def _pem(private_key, fmt=serialization.PublicFormat.SubjectPublicKeyInfo) -> str:  # type: ignore[no-untyped-def]
    return private_key.public_key().public_bytes(serialization.Encoding.PEM, fmt).decode()


@pytest.fixture()
def verifier(rsa_private_key) -> ArtifactVerifier:
    return ArtifactVerifier.from_pem(_pem(rsa_private_key))


class TestLoadKey:
    """Loading the server's public key."""

    def test_spki_pem(self, rsa_private_key):
        assert ArtifactVerifier.from_pem(_pem(rsa_private_key)).block_size == 256

    def test_pkcs1_pem(self, rsa_private_key):
        pem = _pem(rsa_private_key, serialization.PublicFormat.PKCS1)
        assert ArtifactVerifier.from_pem(pem).block_size == 256

    def test_garbage_key_rejected(self):
        with pytest.raises(IntegrityError, match="Invalid server public key"):
            ArtifactVerifier.from_pem("-----BEGIN PUBLIC KEY-----\nnope\n-----END PUBLIC KEY-----")

    def test_non_rsa_key_rejected(self):
        pem = _pem(ed25519.Ed25519PrivateKey.generate())
        with pytest.raises(IntegrityError, match="not RSA"):
            ArtifactVerifier.from_pem(pem)


class TestRecover:
    """Recovering payloads wrapped with the private key."""

    def test_small_payload(self, rsa_private_key, verifier):
        assert verifier.recover(wrap_with_private_key(rsa_private_key, b"file_content")) == b"file_content"

    def test_multi_block_payload(self, rsa_private_key, verifier):
        payload = bytes(range(256)) * 4
        wrapped = wrap_with_private_key(rsa_private_key, payload)
        assert len(wrapped) == 5 * verifier.block_size
        assert verifier.recover(wrapped) == payload

    def test_wrong_key_rejected(self, verifier):
        other = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        with pytest.raises(IntegrityError, match="authenticity"):
            verifier.recover(wrap_with_private_key(other, b"file_content"))

    def test_tampered_block_rejected(self, rsa_private_key, verifier):
        wrapped = bytearray(wrap_with_private_key(rsa_private_key, b"file_content"))
        wrapped[10] ^= 0xFF
        with pytest.raises(IntegrityError):
            verifier.recover(bytes(wrapped))

    def test_unwrapped_payload_rejected(self, verifier):
        with pytest.raises(IntegrityError):
            verifier.recover(b"plain text that was never wrapped")

    def test_empty_payload_rejected(self, verifier):
        with pytest.raises(IntegrityError, match="empty"):
            verifier.recover(b"")
