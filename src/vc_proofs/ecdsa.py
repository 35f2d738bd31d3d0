"""
Multi-curve ECDSA signer and verifier.

Signatures use the fixed-width JOSE encoding (RFC 7518 section 3.4):
r and s as big-endian integers, each left-padded with zeros to the
curve's coordinate size, concatenated. DER is never emitted.
"""

from __future__ import annotations

import logging

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

from vc_proofs.curves import CurveSpec, get_curve
from vc_proofs.errors import (
    KeyGenerationError,
    SigningError,
    UnsupportedCurveError,
    VerificationError,
)
from vc_proofs.jwk import JWK, encode_point
from vc_proofs.signer import JWKPublicKey, PublicKey, RawPublicKey

logger = logging.getLogger(__name__)


def encode_signature(r: int, s: int, size: int) -> bytes:
    """Encode (r, s) as r||s, each half zero-padded to size bytes."""
    return r.to_bytes(size, byteorder="big") + s.to_bytes(size, byteorder="big")


def decode_signature(signature: bytes, size: int) -> tuple[int, int]:
    """Split a fixed-width r||s signature back into (r, s)."""
    if len(signature) != 2 * size:
        raise VerificationError(
            f"Invalid signature length: expected {2 * size} bytes, got {len(signature)}"
        )
    r = int.from_bytes(signature[:size], byteorder="big")
    s = int.from_bytes(signature[size:], byteorder="big")
    return r, s


def to_ec_public_key(public_key: PublicKey) -> ec.EllipticCurvePublicKey:
    """Materialize a PublicKey variant as a cryptography EC public key.

    Raises:
        VerificationError: If the key is malformed or on an unsupported curve.
    """
    try:
        if isinstance(public_key, JWKPublicKey):
            return public_key.jwk.to_public_key()
        if isinstance(public_key, RawPublicKey):
            spec = get_curve(public_key.curve)
            return ec.EllipticCurvePublicKey.from_encoded_point(spec.curve, public_key.value)
    except (ValueError, UnsupportedCurveError) as e:
        raise VerificationError(f"Unusable public key: {e}") from e

    raise VerificationError(f"Unsupported public key type: {type(public_key).__name__}")


class ECDSASigner:
    """ECDSA signer over one of the registered curves.

    The private key is fixed at construction. Public key material (JWK and
    point bytes) is derived once and cached.
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey, kid: str | None = None) -> None:
        """Wrap an existing private key.

        Args:
            private_key: EC private key on a supported curve.
            kid: Optional key id to embed in the exported JWK.

        Raises:
            UnsupportedCurveError: If the key's curve is not supported.
        """
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise UnsupportedCurveError(
                f"Not an elliptic curve private key: {type(private_key).__name__}"
            )

        self._spec: CurveSpec = get_curve(private_key.curve)
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._jwk = JWK.from_public_key(self._public_key, kid=kid)
        self._public_key_bytes = encode_point(self._public_key)

    @classmethod
    def generate(cls, curve: str | ec.EllipticCurve = "P-256", kid: str | None = None) -> ECDSASigner:
        """Create a signer with a freshly generated key.

        Raises:
            UnsupportedCurveError: If the curve is not supported.
            KeyGenerationError: If key generation fails.
        """
        spec = get_curve(curve)
        try:
            private_key = ec.generate_private_key(spec.curve)
        except (ValueError, UnsupportedAlgorithm, OSError) as e:
            raise KeyGenerationError(f"Failed to generate {spec.name} key: {e}") from e

        logger.debug("Generated %s key", spec.name)
        return cls(private_key, kid=kid)

    @classmethod
    def from_pem(cls, data: bytes, password: bytes | None = None, kid: str | None = None) -> ECDSASigner:
        """Load a signer from a PEM encoded private key."""
        private_key = serialization.load_pem_private_key(data, password=password)
        return cls(private_key, kid=kid)  # type: ignore[arg-type]

    @property
    def algorithm(self) -> str:
        return self._spec.algorithm

    @property
    def curve(self) -> str:
        return self._spec.name

    @property
    def public_jwk(self) -> JWK:
        return self._jwk

    def public_key(self) -> JWKPublicKey:
        return JWKPublicKey(jwk=self._jwk)

    def public_key_bytes(self) -> bytes:
        return self._public_key_bytes

    def private_key_pem(self) -> bytes:
        """Export the private key as unencrypted PKCS#8 PEM."""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def sign(self, message: bytes) -> bytes:
        """Sign a message with the curve's hash.

        Returns:
            Fixed-width r||s signature.

        Raises:
            SigningError: If the underlying primitive fails.
        """
        try:
            der_signature = self._private_key.sign(message, ec.ECDSA(self._spec.new_hash()))
        except (ValueError, UnsupportedAlgorithm) as e:
            raise SigningError(f"{self._spec.algorithm} signing failed: {e}") from e

        r, s = decode_dss_signature(der_signature)
        return encode_signature(r, s, self._spec.coordinate_size)


class ECDSAVerifier:
    """Verifies fixed-width r||s ECDSA signatures on any registered curve."""

    def verify(self, public_key: PublicKey, message: bytes, signature: bytes) -> None:
        ec_public_key = to_ec_public_key(public_key)
        try:
            spec = get_curve(ec_public_key.curve)
        except UnsupportedCurveError as e:
            raise VerificationError(str(e)) from e

        r, s = decode_signature(signature, spec.coordinate_size)

        try:
            ec_public_key.verify(
                encode_dss_signature(r, s),
                message,
                ec.ECDSA(spec.new_hash()),
            )
        except InvalidSignature as e:
            raise VerificationError("Invalid signature") from e
