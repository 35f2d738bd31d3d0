"""Shared fixtures for vc-proofs tests."""

import copy

import pytest

from vc_proofs import ECDSASigner

ISSUER = "did:web:example.com"

CREDENTIAL = {
    "@context": ["https://www.w3.org/ns/credentials/v2"],
    "id": "urn:uuid:test-123",
    "type": ["VerifiableCredential"],
    "issuer": ISSUER,
    "validFrom": "2025-01-01T00:00:00Z",
    "credentialSubject": {
        "id": "did:example:holder",
        "name": "Test User",
    },
}


@pytest.fixture
def credential() -> dict:
    """A fresh unsigned credential."""
    return copy.deepcopy(CREDENTIAL)


@pytest.fixture
def p256_signer() -> ECDSASigner:
    return ECDSASigner.generate("P-256")


@pytest.fixture
def other_signer() -> ECDSASigner:
    return ECDSASigner.generate("P-256")


def make_did_document(did: str, keys: dict[str, ECDSASigner]) -> dict:
    """Build a did:web DID Document listing each signer under assertionMethod."""
    methods = [
        {
            "id": f"{did}#{fragment}",
            "type": "JsonWebKey2020",
            "controller": did,
            "publicKeyJwk": signer.public_jwk.to_dict(),
        }
        for fragment, signer in keys.items()
    ]
    return {
        "@context": [
            "https://www.w3.org/ns/did/v1",
            "https://w3id.org/security/suites/jws-2020/v1",
        ],
        "id": did,
        "verificationMethod": methods,
        "authentication": [m["id"] for m in methods],
        "assertionMethod": [m["id"] for m in methods],
    }


@pytest.fixture
def did_document_factory():
    return make_did_document
