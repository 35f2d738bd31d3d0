"""
Error types raised by the proof layer.

Every failure surfaced by a signer, verifier, resolver or the proof
manager derives from ProofError so callers can catch the whole family.
"""

from __future__ import annotations


class ProofError(Exception):
    """Base class for proof layer errors."""


class UnsupportedCurveError(ProofError):
    """Raised when a signer is requested for a curve outside the curve table."""


class KeyGenerationError(ProofError):
    """Raised when a private key cannot be generated."""


class SigningError(ProofError):
    """Raised when a signature cannot be produced."""


class VerificationError(ProofError):
    """Raised when a signature does not verify."""


class BackendUnavailableError(VerificationError):
    """Raised when a remote signing backend cannot be reached.

    Subclasses VerificationError: at the Verifier boundary an unreachable
    backend is a failed verification.
    """


class KeyResolutionError(ProofError):
    """Raised when a verification method cannot be mapped to a public key."""
