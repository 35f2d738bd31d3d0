"""
Linked Data Proof manager.

Attaches proofs to credentials and presentations and verifies every
embedded proof on its own. The manager keeps no state between calls:
the document carries its proofs, the caller supplies suites and keys.

Signing:
    document + context -> canonical bytes (new proof excluded)
    -> suite signer -> proof appended to document["proof"]

Verification, per proof:
    verificationMethod -> (issuer, "#fragment") -> public key fetcher
    -> canonical bytes (that proof excluded) -> suite verifier
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from vc_proofs.canonical import count_proof_entries, get_proofs, with_proofs
from vc_proofs.errors import KeyResolutionError, ProofError, VerificationError
from vc_proofs.resolver import PublicKeyFetcher, split_verification_method
from vc_proofs.signer import PublicKey
from vc_proofs.suite import SignatureRepresentation, SignatureSuite
from vc_proofs.timefmt import RFC3339Format, TimeFormat

logger = logging.getLogger(__name__)

DEFAULT_PROOF_PURPOSE = "assertionMethod"

SIGNATURE_KEYS = tuple(r.value for r in SignatureRepresentation)


class AcceptancePolicy(Enum):
    """How per-proof results combine into a document decision."""

    ALL = "all"
    ANY = "any"


@dataclass
class LinkedDataProofContext:
    """Everything needed to attach one proof."""

    signature_type: str
    suite: SignatureSuite
    verification_method: str
    signature_representation: SignatureRepresentation = SignatureRepresentation.JWS
    created: datetime | None = None
    proof_purpose: str = DEFAULT_PROOF_PURPOSE
    time_format: TimeFormat = field(default_factory=RFC3339Format)


@dataclass
class ProofResult:
    """Outcome of verifying one embedded proof."""

    index: int
    proof_type: str
    verification_method: str
    valid: bool
    error: ProofError | None = None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None


@dataclass
class DocumentVerificationResult:
    """Per-proof results in document order."""

    proofs: list[ProofResult] = field(default_factory=list)

    def accepted(self, policy: AcceptancePolicy) -> bool:
        """Apply an acceptance policy. A document with no proofs is never accepted."""
        if not self.proofs:
            return False
        if policy is AcceptancePolicy.ANY:
            return any(p.valid for p in self.proofs)
        return all(p.valid for p in self.proofs)

    @property
    def errors(self) -> list[str]:
        return [f"proof {p.index}: {p.message}" for p in self.proofs if not p.valid]


def add_linked_data_proof(
    document: dict[str, Any],
    context: LinkedDataProofContext,
) -> dict[str, Any]:
    """Sign document and append the new proof to it.

    Proofs already on the document are left as they are.

    Args:
        document: The credential or presentation; updated in place.
        context: Signature type, suite, key reference and options.

    Returns:
        The same document, now carrying the new proof last.

    Raises:
        ProofError: If the context is incomplete or an existing proof entry
            is not a JSON object.
        SigningError: If the suite's signer fails.
    """
    if context.suite.signer is None:
        raise ProofError(f"No signer configured for {context.signature_type}")
    if not context.verification_method:
        raise ProofError("verificationMethod is required")
    split_verification_method(context.verification_method)

    proofs = get_proofs(document)
    if len(proofs) != count_proof_entries(document):
        raise ProofError("Existing proof entries must be JSON objects")
    created = context.created or datetime.now(timezone.utc)

    proof: dict[str, Any] = {
        "type": context.signature_type,
        "created": context.time_format.format(created),
        "verificationMethod": context.verification_method,
        "proofPurpose": context.proof_purpose,
    }

    verify_data = context.suite.create_verify_data(document, proof, exclude=len(proofs))
    representation = context.signature_representation
    proof[representation.value] = context.suite.sign(verify_data, representation)

    updated = with_proofs(document, proofs + [proof])
    document["proof"] = updated["proof"]

    logger.debug(
        "Attached %s proof %d for %s",
        context.signature_type,
        len(proofs),
        context.verification_method,
    )
    return document


def remove_proof(document: dict[str, Any], index: int) -> dict[str, Any]:
    """Return a copy of document without the proof at index."""
    proofs = get_proofs(document)
    if not 0 <= index < len(proofs):
        raise IndexError(f"Proof index {index} out of range [0, {len(proofs)})")
    return with_proofs(document, proofs[:index] + proofs[index + 1:])


def verify_proofs(
    document: dict[str, Any],
    fetcher: PublicKeyFetcher,
    suites: Iterable[SignatureSuite] | Mapping[str, SignatureSuite],
    max_workers: int | None = None,
) -> DocumentVerificationResult:
    """Verify every proof embedded in document.

    A failure on one proof (unknown key, bad signature, unsupported type)
    is recorded for that proof only; the others are still checked. The
    caller decides acceptance with DocumentVerificationResult.accepted().

    Args:
        document: The signed credential or presentation.
        fetcher: Maps (issuer, "#fragment") to a public key.
        suites: Suites to verify with, matched on the proof "type".
        max_workers: Verify proofs concurrently on this many threads.

    Returns:
        DocumentVerificationResult with one entry per proof.
    """
    if isinstance(suites, Mapping):
        registry = dict(suites)
    else:
        registry = {suite.signature_type: suite for suite in suites}

    proofs = get_proofs(document)

    def check(index: int) -> ProofResult:
        return _verify_proof(document, index, proofs[index], fetcher, registry)

    if max_workers and max_workers > 1 and len(proofs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(check, range(len(proofs))))
    else:
        results = [check(i) for i in range(len(proofs))]

    return DocumentVerificationResult(proofs=results)


def _verify_proof(
    document: dict[str, Any],
    index: int,
    proof: dict[str, Any],
    fetcher: PublicKeyFetcher,
    suites: Mapping[str, SignatureSuite],
) -> ProofResult:
    raw_type = proof.get("type", "")
    raw_method = proof.get("verificationMethod", "")
    proof_type = raw_type if isinstance(raw_type, str) else ""
    verification_method = raw_method if isinstance(raw_method, str) else ""

    try:
        if not isinstance(raw_type, str):
            raise VerificationError(f"Proof type must be a string, got {raw_type!r}")
        suite = suites.get(proof_type)
        if suite is None:
            raise VerificationError(f"Unsupported proof type: {proof_type}")

        representation, value = _signature_value(proof)
        issuer, key_id = split_verification_method(raw_method)
        public_key = _fetch_key(fetcher, issuer, key_id)

        options = {k: v for k, v in proof.items() if k not in SIGNATURE_KEYS}
        verify_data = suite.create_verify_data(document, options, exclude=index)
        _check_signature(suite, public_key, verify_data, representation, value)

    except ProofError as e:
        logger.warning("Proof %d (%s) failed verification: %s", index, verification_method, e)
        return ProofResult(
            index=index,
            proof_type=proof_type,
            verification_method=verification_method,
            valid=False,
            error=e,
        )

    return ProofResult(
        index=index,
        proof_type=proof_type,
        verification_method=verification_method,
        valid=True,
    )


def _signature_value(proof: dict[str, Any]) -> tuple[SignatureRepresentation, str]:
    for representation in SignatureRepresentation:
        value = proof.get(representation.value)
        if isinstance(value, str) and value:
            return representation, value
    raise VerificationError(f"Proof carries none of {', '.join(SIGNATURE_KEYS)}")


def _fetch_key(fetcher: PublicKeyFetcher, issuer: str, key_id: str) -> PublicKey:
    try:
        return fetcher(issuer, key_id)
    except ProofError:
        raise
    except Exception as e:  # caller-supplied fetchers may raise anything
        raise KeyResolutionError(f"Cannot resolve {issuer}{key_id}: {e}") from e


def _check_signature(
    suite: SignatureSuite,
    public_key: PublicKey,
    verify_data: bytes,
    representation: SignatureRepresentation,
    value: str,
) -> None:
    # Opaque backends may raise anything; any failure rejects the proof.
    try:
        suite.verify(public_key, verify_data, representation, value)
    except ProofError:
        raise
    except Exception as e:
        raise VerificationError(str(e)) from e
