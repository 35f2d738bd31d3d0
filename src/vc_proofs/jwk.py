"""
JSON Web Key (RFC 7517) model for EC public keys.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from vc_proofs.curves import get_curve
from vc_proofs.errors import UnsupportedCurveError


def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(data: str) -> bytes:
    """Decode base64url without padding.

    Args:
        data: Base64url encoded string.

    Returns:
        Decoded bytes.
    """
    # Add padding if needed
    padding = 4 - (len(data) % 4)
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)


def encode_point(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed point encoding: 0x04 || X || Y, coordinates zero-padded."""
    return public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


@dataclass
class JWK:
    """EC public key in JWK format."""

    kty: str
    crv: str
    x: str
    y: str
    alg: str | None = None
    kid: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JWK:
        """Create a JWK from a JWK dictionary."""
        return cls(
            kty=data.get("kty", ""),
            crv=data.get("crv", ""),
            x=data.get("x", ""),
            y=data.get("y", ""),
            alg=data.get("alg"),
            kid=data.get("kid"),
        )

    @classmethod
    def from_public_key(
        cls,
        public_key: ec.EllipticCurvePublicKey,
        kid: str | None = None,
    ) -> JWK:
        """Export an EC public key.

        Coordinates are zero-padded to the curve's coordinate size.

        Raises:
            UnsupportedCurveError: If the key's curve is not supported.
        """
        spec = get_curve(public_key.curve)
        numbers = public_key.public_numbers()
        size = spec.coordinate_size
        return cls(
            kty="EC",
            crv=spec.name,
            x=b64url_encode(numbers.x.to_bytes(size, byteorder="big")),
            y=b64url_encode(numbers.y.to_bytes(size, byteorder="big")),
            alg=spec.algorithm,
            kid=kid,
        )

    def to_dict(self) -> dict[str, str]:
        data = {"kty": self.kty, "crv": self.crv, "x": self.x, "y": self.y}
        if self.alg:
            data["alg"] = self.alg
        if self.kid:
            data["kid"] = self.kid
        return data

    def is_valid(self) -> bool:
        """Check that this is an EC key on a supported curve."""
        fields = (self.crv, self.x, self.y)
        if self.kty != "EC" or not all(isinstance(f, str) and f for f in fields):
            return False
        try:
            get_curve(self.crv)
        except UnsupportedCurveError:
            return False
        return True

    def to_public_key(self) -> ec.EllipticCurvePublicKey:
        """Convert to a cryptography EC public key.

        Raises:
            UnsupportedCurveError: If the curve is not supported.
            ValueError: If the coordinates do not form a point on the curve.
        """
        if self.kty != "EC":
            raise ValueError(f"Unsupported key type: {self.kty}")
        spec = get_curve(self.crv)

        x = int.from_bytes(b64url_decode(self.x), byteorder="big")
        y = int.from_bytes(b64url_decode(self.y), byteorder="big")

        public_numbers = ec.EllipticCurvePublicNumbers(x, y, spec.curve)
        return public_numbers.public_key()

    def public_key_bytes(self) -> bytes:
        """Uncompressed point encoding of this key."""
        return encode_point(self.to_public_key())
