"""
Public key resolution for did:web issuers.

Fetches DID Documents over HTTPS per the did:web method
(https://w3c-ccg.github.io/did-method-web/) and maps a verification
method id to its publicKeyJwk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from vc_proofs.errors import KeyResolutionError
from vc_proofs.jwk import JWK
from vc_proofs.signer import JSON_WEB_KEY_2020, JWKPublicKey

logger = logging.getLogger(__name__)

DID_WEB_PREFIX = "did:web:"


class DIDResolutionError(KeyResolutionError):
    """Raised when DID resolution fails."""


@dataclass
class VerificationMethod:
    """DID Document verification method."""

    id: str
    type: str
    controller: str
    public_key_jwk: JWK | None = None


@dataclass
class DIDDocument:
    """The parts of a DID Document the proof layer uses."""

    id: str
    verification_methods: dict[str, VerificationMethod] = field(default_factory=dict)
    relationships: dict[str, list[str]] = field(default_factory=dict)

    def get_verification_method(self, method_id: str) -> VerificationMethod | None:
        """Get a verification method by absolute or "#fragment" id."""
        if method_id.startswith("#"):
            method_id = self.id + method_id
        return self.verification_methods.get(method_id)

    def authorizes(self, method_id: str, purpose: str) -> bool:
        """Check that method_id is listed under the given relationship."""
        if method_id.startswith("#"):
            method_id = self.id + method_id
        return method_id in self.relationships.get(purpose, [])


def did_web_url(did: str) -> str:
    """Map a did:web identifier to the URL of its DID Document.

    did:web:example.com -> https://example.com/.well-known/did.json
    did:web:example.com:users:alice -> https://example.com/users/alice/did.json
    did:web:example.com%3A8080 -> https://example.com:8080/.well-known/did.json

    Raises:
        DIDResolutionError: If did is not a did:web identifier.
    """
    if not did.startswith(DID_WEB_PREFIX):
        raise DIDResolutionError(f"Invalid did:web identifier: {did}")

    host, *segments = did[len(DID_WEB_PREFIX):].split("#", 1)[0].split(":")
    host = host.replace("%3A", ":")
    if not host:
        raise DIDResolutionError(f"Invalid did:web identifier: {did}")

    if segments:
        return f"https://{host}/" + "/".join(quote(s, safe="") for s in segments) + "/did.json"
    return f"https://{host}/.well-known/did.json"


class DIDWebKeyResolver:
    """Public-key resolver backed by did:web.

    Instances are callable with (issuer, "#fragment") and can be passed
    anywhere a PublicKeyFetcher is expected. Resolved documents are cached
    per DID; once cache_size DIDs are held the oldest entry is evicted.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        required_relationship: str | None = None,
        cache_size: int = 256,
    ) -> None:
        """Initialize the resolver.

        Args:
            timeout: HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
            required_relationship: If set (e.g. "assertionMethod"), only keys
                listed under that relationship are returned.
            cache_size: Maximum number of DID Documents kept in the cache.
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.required_relationship = required_relationship
        self.cache_size = cache_size
        self._cache: dict[str, DIDDocument] = {}

    def __call__(self, issuer: str, key_id: str) -> JWKPublicKey:
        return self.resolve_key(issuer, key_id)

    def resolve_key(self, issuer: str, key_id: str) -> JWKPublicKey:
        """Resolve a verification method to its public key.

        Args:
            issuer: The issuer DID.
            key_id: The key fragment, with its leading "#".

        Raises:
            DIDResolutionError: If the DID or the key cannot be resolved.
        """
        document = self.resolve(issuer)
        method_id = issuer + key_id

        vm = document.get_verification_method(key_id)
        if vm is None:
            raise DIDResolutionError(
                f"Verification method {method_id} not found in DID Document"
            )
        if self.required_relationship and not document.authorizes(
            key_id, self.required_relationship
        ):
            raise DIDResolutionError(
                f"Verification method {method_id} is not listed under "
                f"{self.required_relationship}"
            )
        if vm.public_key_jwk is None or not vm.public_key_jwk.is_valid():
            raise DIDResolutionError(f"No usable publicKeyJwk in {method_id}")

        return JWKPublicKey(jwk=vm.public_key_jwk, type=vm.type or JSON_WEB_KEY_2020)

    def resolve(self, did: str, use_cache: bool = True) -> DIDDocument:
        """Fetch and parse the DID Document for did.

        Raises:
            DIDResolutionError: If resolution fails.
        """
        did = did.split("#", 1)[0]
        if use_cache and did in self._cache:
            return self._cache[did]

        url = did_web_url(did)
        logger.debug("Resolving %s via %s", did, url)

        try:
            with httpx.Client(timeout=self.timeout, verify=self.verify_ssl) as client:
                response = client.get(
                    url,
                    headers={"Accept": "application/did+ld+json, application/json"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise DIDResolutionError(
                f"HTTP error resolving {did}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise DIDResolutionError(f"Network error resolving {did}: {e}") from e
        except ValueError as e:
            raise DIDResolutionError(f"Invalid JSON in DID Document for {did}") from e

        document = parse_did_document(data, did)
        if use_cache and self.cache_size > 0:
            while len(self._cache) >= self.cache_size:
                del self._cache[next(iter(self._cache))]
            self._cache[did] = document
        return document

    def clear_cache(self) -> None:
        self._cache.clear()


def parse_did_document(data: dict[str, Any], did: str) -> DIDDocument:
    """Build a DIDDocument from JSON, checking that its id is did.

    Relative ids ("#key-1") are made absolute. Relationship entries may be
    references or embedded methods; embedded methods are registered too.

    Raises:
        DIDResolutionError: If the document is not for did or is malformed.
    """
    if not isinstance(data, dict):
        raise DIDResolutionError(f"DID Document for {did} is not a JSON object")

    doc_id = data.get("id", "")
    if doc_id != did:
        raise DIDResolutionError(f"DID Document id mismatch: expected {did}, got {doc_id}")

    document = DIDDocument(id=doc_id)

    def absolute(method_id: Any) -> str:
        if not isinstance(method_id, str) or not method_id:
            raise DIDResolutionError(
                f"Invalid verification method id in DID Document for {did}: {method_id!r}"
            )
        return doc_id + method_id if method_id.startswith("#") else method_id

    def text(value: Any, default: str) -> str:
        return value if isinstance(value, str) else default

    def register(vm_data: dict[str, Any]) -> str:
        jwk_data = vm_data.get("publicKeyJwk")
        vm = VerificationMethod(
            id=absolute(vm_data.get("id")),
            type=text(vm_data.get("type"), ""),
            controller=text(vm_data.get("controller"), doc_id),
            public_key_jwk=JWK.from_dict(jwk_data) if isinstance(jwk_data, dict) else None,
        )
        document.verification_methods[vm.id] = vm
        return vm.id

    def entries(key: str) -> list[Any]:
        value = data.get(key, [])
        if not isinstance(value, list):
            raise DIDResolutionError(f"{key} in DID Document for {did} must be a list")
        return value

    for vm_data in entries("verificationMethod"):
        if not isinstance(vm_data, dict):
            raise DIDResolutionError(
                f"Verification method in DID Document for {did} is not an object"
            )
        register(vm_data)

    for relationship in ("authentication", "assertionMethod", "capabilityInvocation"):
        refs: list[str] = []
        for item in entries(relationship):
            if isinstance(item, str):
                refs.append(absolute(item))
            elif isinstance(item, dict):
                refs.append(register(item))
            else:
                raise DIDResolutionError(
                    f"Invalid {relationship} entry in DID Document for {did}: {item!r}"
                )
        document.relationships[relationship] = refs

    return document
