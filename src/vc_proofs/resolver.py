"""
Public-key resolvers.

A resolver maps (issuer, "#fragment") to the public key that should
verify a proof. Every resolver raises KeyResolutionError for a key it
does not know.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Callable

from vc_proofs.errors import KeyResolutionError
from vc_proofs.signer import PublicKey

PublicKeyFetcher = Callable[[str, str], PublicKey]


def split_verification_method(verification_method: str) -> tuple[str, str]:
    """Split "issuer#fragment" into (issuer, "#fragment").

    Raises:
        KeyResolutionError: If there is no fragment.
    """
    if not isinstance(verification_method, str):
        raise KeyResolutionError(
            f"Invalid verification method {verification_method!r}: expected a string"
        )
    issuer, sep, fragment = verification_method.partition("#")
    if not sep or not issuer or not fragment:
        raise KeyResolutionError(
            f"Invalid verification method {verification_method!r}: expected issuer#fragment"
        )
    return issuer, "#" + fragment


class SingleKeyFetcher:
    """Returns the same key for every verification method."""

    def __init__(self, public_key: PublicKey) -> None:
        self.public_key = public_key

    def __call__(self, issuer: str, key_id: str) -> PublicKey:
        return self.public_key


class StaticKeyResolver:
    """Looks keys up in a fixed table.

    Keys are registered either by full verification method
    ("did:example:123#key-1") or by fragment alone ("#key-1"); the full
    form wins when both are present.
    """

    def __init__(self, keys: Mapping[str, PublicKey] | None = None) -> None:
        self._keys: dict[str, PublicKey] = dict(keys or {})

    def add(self, key_id: str, public_key: PublicKey) -> None:
        self._keys[key_id] = public_key

    def __call__(self, issuer: str, key_id: str) -> PublicKey:
        public_key = self._keys.get(issuer + key_id) or self._keys.get(key_id)
        if public_key is None:
            raise KeyResolutionError(f"Unknown verification method {issuer}{key_id}")
        return public_key
