"""
Canonicalization contract and the default JSON canonicalizer.

A canonicalizer turns a document into the exact bytes that are signed.
The proof being created or checked is never part of those bytes.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

PROOF_KEY = "proof"


def get_proofs(document: dict[str, Any]) -> list[dict[str, Any]]:
    """Return the document's proofs in attachment order.

    "proof" may hold a single object or a list of objects.
    """
    raw = document.get(PROOF_KEY)
    if raw is None:
        return []
    if isinstance(raw, list):
        return [p for p in raw if isinstance(p, dict)]
    if isinstance(raw, dict):
        return [raw]
    return []


def count_proof_entries(document: dict[str, Any]) -> int:
    """Number of entries under "proof", well-formed or not."""
    raw = document.get(PROOF_KEY)
    if raw is None:
        return 0
    if isinstance(raw, list):
        return len(raw)
    return 1


def with_proofs(document: dict[str, Any], proofs: list[dict[str, Any]]) -> dict[str, Any]:
    """Return a shallow copy of document carrying exactly the given proofs."""
    result = {k: v for k, v in document.items() if k != PROOF_KEY}
    if len(proofs) == 1:
        result[PROOF_KEY] = proofs[0]
    elif proofs:
        result[PROOF_KEY] = list(proofs)
    return result


class Canonicalizer(Protocol):
    """Produces the signing bytes for a document."""

    def canonicalize(self, document: dict[str, Any], exclude: int | None = None) -> bytes:
        """Serialize document deterministically.

        Args:
            document: The document to serialize.
            exclude: Index of the proof being created or verified. When
                creating a proof this is the index it will occupy.

        Raises:
            TypeError: If the document holds values JSON cannot represent.
        """
        ...


class JCSCanonicalizer:
    """JSON canonicalization: sorted keys, no whitespace, UTF-8.

    By default every proof is stripped before serialization, so proofs
    attached side by side (a proof set) do not sign each other. With
    chain=True the proofs preceding the excluded one stay in the signed
    bytes (a proof chain).
    """

    def __init__(self, chain: bool = False) -> None:
        self.chain = chain

    def canonicalize(self, document: dict[str, Any], exclude: int | None = None) -> bytes:
        kept: list[dict[str, Any]] = []
        if self.chain and exclude is not None:
            kept = get_proofs(document)[:exclude]
        return self.serialize(with_proofs(document, kept))

    def serialize(self, data: dict[str, Any]) -> bytes:
        """Canonicalize a JSON object.

        Args:
            data: Dictionary to canonicalize.

        Returns:
            Canonical JSON as UTF-8 bytes.
        """
        return json.dumps(
            data, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
