"""
Signer and Verifier capability contracts.

Any signing backend (local key, remote KMS, hardware token) plugs into the
proof manager by satisfying these protocols.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Union

from vc_proofs.jwk import JWK

JSON_WEB_KEY_2020 = "JsonWebKey2020"


@dataclass
class JWKPublicKey:
    """Public key carried as a JWK."""

    jwk: JWK
    type: str = JSON_WEB_KEY_2020


@dataclass
class RawPublicKey:
    """Public key carried as uncompressed point bytes on a named curve."""

    value: bytes
    curve: str
    type: str = JSON_WEB_KEY_2020


PublicKey = Union[JWKPublicKey, RawPublicKey]


class Signer(Protocol):
    """Produces signatures with a private key it never exposes."""

    @property
    def algorithm(self) -> str:
        """JOSE algorithm identifier, e.g. "ES256"."""
        ...

    def sign(self, message: bytes) -> bytes:
        """Sign a message.

        Raises:
            SigningError: If no signature could be produced.
        """
        ...

    def public_key(self) -> PublicKey:
        ...

    def public_key_bytes(self) -> bytes:
        ...


class Verifier(Protocol):
    """Checks signatures; holds no per-key state."""

    def verify(self, public_key: PublicKey, message: bytes, signature: bytes) -> None:
        """Verify a signature.

        Returns normally when the signature is valid.

        Raises:
            VerificationError: If the signature is invalid or could not be checked.
        """
        ...
