"""
Curve table for the ECDSA signer and verifier.

Each supported curve is bound to a fixed JOSE algorithm identifier and
hash. New curves are added with register_curve().
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from vc_proofs.errors import UnsupportedCurveError


@dataclass(frozen=True)
class CurveSpec:
    """Static bindings for one elliptic curve."""

    name: str
    curve: ec.EllipticCurve
    algorithm: str
    hash_algorithm: type[hashes.HashAlgorithm]

    @property
    def coordinate_size(self) -> int:
        """Byte length of one coordinate or signature half."""
        return (self.curve.key_size + 7) // 8

    @property
    def signature_size(self) -> int:
        """Byte length of a fixed-width r||s signature."""
        return 2 * self.coordinate_size

    def new_hash(self) -> hashes.HashAlgorithm:
        return self.hash_algorithm()


CURVES: dict[str, CurveSpec] = {}

# Algorithm identifiers accepted on input in addition to the registered ones.
ALGORITHM_ALIASES: dict[str, str] = {"ES521": "ES512"}


def register_curve(spec: CurveSpec) -> None:
    """Add a curve to the table, keyed by its JWK name."""
    CURVES[spec.name] = spec


register_curve(CurveSpec("P-256", ec.SECP256R1(), "ES256", hashes.SHA256))
register_curve(CurveSpec("P-384", ec.SECP384R1(), "ES384", hashes.SHA384))
register_curve(CurveSpec("P-521", ec.SECP521R1(), "ES512", hashes.SHA512))
register_curve(CurveSpec("secp256k1", ec.SECP256K1(), "ES256K", hashes.SHA256))


def get_curve(curve: str | ec.EllipticCurve) -> CurveSpec:
    """Look up a curve by JWK name or cryptography curve object.

    Args:
        curve: JWK curve name (e.g. "P-256") or an EllipticCurve instance.

    Returns:
        The matching CurveSpec.

    Raises:
        UnsupportedCurveError: If the curve is not in the table.
    """
    if isinstance(curve, str):
        spec = CURVES.get(curve)
        if spec is not None:
            return spec
        name = curve
    else:
        name = curve.name

    for spec in CURVES.values():
        if spec.curve.name == name:
            return spec

    raise UnsupportedCurveError(f"Unsupported curve: {name}")


def get_curve_for_algorithm(algorithm: str) -> CurveSpec:
    """Look up a curve by its JOSE algorithm identifier."""
    algorithm = ALGORITHM_ALIASES.get(algorithm, algorithm)
    for spec in CURVES.values():
        if spec.algorithm == algorithm:
            return spec
    raise UnsupportedCurveError(f"No curve registered for algorithm {algorithm}")
