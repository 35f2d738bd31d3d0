"""
Signature suites.

A suite ties a proof type to a digest function, a canonicalizer, and the
signer/verifier that produce and check its signatures. It also owns the
two signature encodings a proof can carry: a raw base64url "proofValue"
or a detached compact JWS (RFC 7515 with the RFC 7797 unencoded payload).
"""

from __future__ import annotations

import binascii
import json
from enum import Enum
from typing import Any

from cryptography.hazmat.primitives import hashes

from vc_proofs.canonical import Canonicalizer, JCSCanonicalizer
from vc_proofs.curves import get_curve, get_curve_for_algorithm
from vc_proofs.ecdsa import ECDSAVerifier
from vc_proofs.errors import SigningError, UnsupportedCurveError, VerificationError
from vc_proofs.jwk import b64url_decode, b64url_encode
from vc_proofs.signer import JWKPublicKey, PublicKey, RawPublicKey, Signer, Verifier


JSON_WEB_SIGNATURE_2020 = "JsonWebSignature2020"
ECDSA_SECP256K1_SIGNATURE_2019 = "EcdsaSecp256k1Signature2019"


class SignatureRepresentation(Enum):
    """How the signature is stored in the proof (value is the proof key)."""

    PROOF_VALUE = "proofValue"
    JWS = "jws"


def jws_signing_input(header_b64: str, payload: bytes) -> bytes:
    """Signing input for an unencoded (b64=false) payload."""
    return header_b64.encode("ascii") + b"." + payload


class SignatureSuite:
    """One proof type: digest, canonicalization, signer and verifier."""

    def __init__(
        self,
        signature_type: str = JSON_WEB_SIGNATURE_2020,
        signer: Signer | None = None,
        verifier: Verifier | None = None,
        canonicalizer: Canonicalizer | None = None,
        digest: type[hashes.HashAlgorithm] = hashes.SHA256,
    ) -> None:
        """Initialize the suite.

        Args:
            signature_type: Proof "type" this suite produces and checks.
            signer: Signer used when attaching proofs.
            verifier: Verifier used when checking proofs. Defaults to ECDSAVerifier.
            canonicalizer: Canonicalizer for documents and proof options.
            digest: Hash applied to each canonical form.
        """
        self.signature_type = signature_type
        self.signer = signer
        self.verifier = verifier or ECDSAVerifier()
        self.canonicalizer = canonicalizer or JCSCanonicalizer()
        self.digest = digest

    def get_digest(self, data: bytes) -> bytes:
        hasher = hashes.Hash(self.digest())
        hasher.update(data)
        return hasher.finalize()

    def create_verify_data(
        self,
        document: dict[str, Any],
        proof_options: dict[str, Any],
        exclude: int | None = None,
    ) -> bytes:
        """Build the bytes a proof signs.

        digest(canonical proof options) || digest(canonical document), where
        the proof options are the proof's fields without its signature value.
        """
        options_bytes = self.canonicalizer.canonicalize(proof_options)
        document_bytes = self.canonicalizer.canonicalize(document, exclude)
        return self.get_digest(options_bytes) + self.get_digest(document_bytes)

    def sign(self, verify_data: bytes, representation: SignatureRepresentation) -> str:
        """Sign verify data and encode the signature.

        Raises:
            SigningError: If the suite has no signer or signing fails.
        """
        if self.signer is None:
            raise SigningError(f"{self.signature_type} suite has no signer")

        if representation is SignatureRepresentation.JWS:
            header = {"alg": self.signer.algorithm, "b64": False, "crit": ["b64"]}
            header_b64 = b64url_encode(
                json.dumps(header, separators=(",", ":")).encode("utf-8")
            )
            signature = self.signer.sign(jws_signing_input(header_b64, verify_data))
            return f"{header_b64}..{b64url_encode(signature)}"

        return b64url_encode(self.signer.sign(verify_data))

    def verify(
        self,
        public_key: PublicKey,
        verify_data: bytes,
        representation: SignatureRepresentation,
        value: str,
    ) -> None:
        """Decode an encoded signature and check it.

        Raises:
            VerificationError: If the encoding is malformed or the signature invalid.
        """
        if representation is SignatureRepresentation.JWS:
            header_b64, signature = self._parse_detached_jws(value)
            header = self._decode_header(header_b64)
            self._check_algorithm(header.get("alg", ""), public_key)
            message = jws_signing_input(header_b64, verify_data)
        else:
            message = verify_data
            signature = self._decode(value)

        self.verifier.verify(public_key, message, signature)

    def _decode(self, value: str) -> bytes:
        try:
            return b64url_decode(value)
        except (binascii.Error, ValueError) as e:
            raise VerificationError(f"Malformed signature encoding: {e}") from e

    def _parse_detached_jws(self, token: str) -> tuple[str, bytes]:
        parts = token.split(".")
        if len(parts) != 3 or parts[1] != "":
            raise VerificationError("Malformed detached JWS")
        return parts[0], self._decode(parts[2])

    def _decode_header(self, header_b64: str) -> dict[str, Any]:
        try:
            header = json.loads(self._decode(header_b64))
        except ValueError as e:
            raise VerificationError(f"Malformed JWS header: {e}") from e
        if not isinstance(header, dict):
            raise VerificationError("Malformed JWS header")
        if header.get("b64") is not False or "b64" not in header.get("crit", []):
            raise VerificationError("JWS header must declare an unencoded payload")
        return header

    def _check_algorithm(self, algorithm: str, public_key: PublicKey) -> None:
        if isinstance(public_key, JWKPublicKey):
            if public_key.jwk.kty != "EC":
                return
            curve = public_key.jwk.crv
        elif isinstance(public_key, RawPublicKey):
            curve = public_key.curve
        else:
            return

        try:
            expected = get_curve(curve)
            declared = get_curve_for_algorithm(algorithm)
        except UnsupportedCurveError as e:
            raise VerificationError(str(e)) from e

        if declared.name != expected.name:
            raise VerificationError(
                f"JWS algorithm {algorithm} does not match {expected.name} key"
            )
