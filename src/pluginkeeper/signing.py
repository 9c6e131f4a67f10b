"""
Artifact Authenticity Recovery

Plugin artifacts are transformed by the server with its RSA private key
(PKCS#1 v1.5 type 1 blocks, one per ``key_size - 11`` bytes of payload).
Only content recoverable with the matching public key is accepted.
"""

from __future__ import annotations

import logging
from typing import Callable

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pluginkeeper.exceptions import IntegrityError

logger = logging.getLogger(__name__)

ArtifactDecoder = Callable[[bytes], bytes]


def passthrough_decoder(data: bytes) -> bytes:
    """Default artifact decoder: the download body is the wrapped payload."""
    return data


class ArtifactVerifier:
    """Recover artifact payloads with the plugin server's RSA public key.

    Args:
        public_key: The server's RSA public key.

    Example:
        >>> verifier = ArtifactVerifier.from_pem(pem_text)
        >>> payload = verifier.recover(downloaded_bytes)
    """

    def __init__(self, public_key: rsa.RSAPublicKey) -> None:
        self._public_key = public_key
        self._block_size = (public_key.key_size + 7) // 8

    @classmethod
    def from_pem(cls, pem: str) -> "ArtifactVerifier":
        """Load a PEM-encoded RSA public key (SPKI or PKCS#1).

        Raises:
            IntegrityError: If the key cannot be parsed or is not RSA.
        """
        try:
            key = serialization.load_pem_public_key(pem.encode())
        except (ValueError, TypeError) as exc:
            raise IntegrityError(f"Invalid server public key: {exc}") from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise IntegrityError(f"Server public key is not RSA: {type(key).__name__}")
        return cls(key)

    @property
    def block_size(self) -> int:
        return self._block_size

    def recover(self, data: bytes) -> bytes:
        """Recover the authentic payload from *data*.

        Raises:
            IntegrityError: If *data* is empty, not a whole number of key-sized
                blocks, or any block does not unwrap with the public key.
        """
        if not data:
            raise IntegrityError("Artifact is empty")
        if len(data) % self._block_size:
            raise IntegrityError(
                f"Artifact length {len(data)} is not a multiple of the "
                f"{self._block_size}-byte key size"
            )
        chunks: list[bytes] = []
        for offset in range(0, len(data), self._block_size):
            block = data[offset : offset + self._block_size]
            try:
                chunks.append(
                    self._public_key.recover_data_from_signature(block, padding.PKCS1v15(), None)
                )
            except (InvalidSignature, ValueError) as exc:
                raise IntegrityError(
                    f"Artifact block at offset {offset} failed authenticity check"
                ) from exc
        payload = b"".join(chunks)
        logger.debug("Recovered %d-byte payload from %d blocks", len(payload), len(chunks))
        return payload
