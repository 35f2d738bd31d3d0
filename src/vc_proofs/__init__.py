"""
vc-proofs - Linked Data Proofs for Verifiable Credentials.

Supports:
- ECDSA signing on P-256, P-384, P-521 and secp256k1 (fixed-width r||s)
- Pluggable signers and verifiers, including opaque remote backends
- Multiple proofs per document, each verified on its own
- Detached JWS and raw proofValue signature encodings
- did:web public key resolution
"""

from vc_proofs.backend import BackendSigner, BackendVerifier, RemoteSigningBackend
from vc_proofs.canonical import JCSCanonicalizer
from vc_proofs.curves import CURVES, CurveSpec, register_curve
from vc_proofs.did_resolver import DIDResolutionError, DIDWebKeyResolver
from vc_proofs.ecdsa import ECDSASigner, ECDSAVerifier
from vc_proofs.errors import (
    BackendUnavailableError,
    KeyGenerationError,
    KeyResolutionError,
    ProofError,
    SigningError,
    UnsupportedCurveError,
    VerificationError,
)
from vc_proofs.jwk import JWK
from vc_proofs.ldproof import (
    AcceptancePolicy,
    DocumentVerificationResult,
    LinkedDataProofContext,
    ProofResult,
    add_linked_data_proof,
    remove_proof,
    verify_proofs,
)
from vc_proofs.resolver import SingleKeyFetcher, StaticKeyResolver
from vc_proofs.signer import JWKPublicKey, PublicKey, RawPublicKey, Signer, Verifier
from vc_proofs.suite import SignatureRepresentation, SignatureSuite

__version__ = "0.1.0"

__all__ = [
    "AcceptancePolicy",
    "BackendSigner",
    "BackendUnavailableError",
    "BackendVerifier",
    "CURVES",
    "CurveSpec",
    "DIDResolutionError",
    "DIDWebKeyResolver",
    "DocumentVerificationResult",
    "ECDSASigner",
    "ECDSAVerifier",
    "JCSCanonicalizer",
    "JWK",
    "JWKPublicKey",
    "KeyGenerationError",
    "KeyResolutionError",
    "LinkedDataProofContext",
    "ProofError",
    "ProofResult",
    "PublicKey",
    "RawPublicKey",
    "RemoteSigningBackend",
    "SignatureRepresentation",
    "SignatureSuite",
    "Signer",
    "SigningError",
    "SingleKeyFetcher",
    "StaticKeyResolver",
    "UnsupportedCurveError",
    "VerificationError",
    "Verifier",
    "add_linked_data_proof",
    "register_curve",
    "remove_proof",
    "verify_proofs",
]
