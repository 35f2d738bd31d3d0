"""Tests for attaching and verifying Linked Data Proofs."""

import copy
from datetime import datetime, timezone

import pytest

from vc_proofs import (
    AcceptancePolicy,
    BackendVerifier,
    ECDSASigner,
    JCSCanonicalizer,
    KeyResolutionError,
    LinkedDataProofContext,
    ProofError,
    SignatureRepresentation,
    SignatureSuite,
    SingleKeyFetcher,
    StaticKeyResolver,
    VerificationError,
    add_linked_data_proof,
    remove_proof,
    verify_proofs,
)
from vc_proofs.ldproof import DocumentVerificationResult, ProofResult
from vc_proofs.suite import ECDSA_SECP256K1_SIGNATURE_2019, JSON_WEB_SIGNATURE_2020
from vc_proofs.timefmt import RFC3339SecondsFormat

CREATED = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def sign(document, signer, verification_method, **kwargs):
    suite = SignatureSuite(
        kwargs.pop("signature_type", JSON_WEB_SIGNATURE_2020),
        signer=signer,
        canonicalizer=kwargs.pop("canonicalizer", None),
    )
    context = LinkedDataProofContext(
        signature_type=suite.signature_type,
        suite=suite,
        verification_method=verification_method,
        **kwargs,
    )
    return add_linked_data_proof(document, context)


class PanicKeyFetcher:
    """Fetcher for did:123 that fails loudly on any key it was not given."""

    def __init__(self, keys):
        self.keys = keys
        self.calls = []

    def __call__(self, issuer, key_id):
        self.calls.append((issuer, key_id))
        if key_id not in self.keys:
            raise KeyError(key_id)
        return self.keys[key_id]


class TestAddProof:
    """Tests for proof creation."""

    def test_jws_proof_fields(self, credential, p256_signer):
        sign(credential, p256_signer, "did:web:example.com#key-1", created=CREATED)
        proof = credential["proof"]

        assert proof["type"] == "JsonWebSignature2020"
        assert proof["verificationMethod"] == "did:web:example.com#key-1"
        assert proof["proofPurpose"] == "assertionMethod"
        assert proof["created"] == "2024-01-02T03:04:05.678000Z"
        assert "proofValue" not in proof

        header_b64, payload, signature = proof["jws"].split(".")
        assert header_b64 and signature
        assert payload == ""

    def test_proof_value_representation(self, credential, p256_signer):
        sign(
            credential,
            p256_signer,
            "did:web:example.com#key-1",
            signature_representation=SignatureRepresentation.PROOF_VALUE,
        )
        proof = credential["proof"]

        assert "jws" not in proof
        assert "=" not in proof["proofValue"]

    def test_created_seconds_format(self, credential, p256_signer):
        sign(
            credential,
            p256_signer,
            "did:web:example.com#key-1",
            created=CREATED,
            time_format=RFC3339SecondsFormat(),
        )
        assert credential["proof"]["created"] == "2024-01-02T03:04:05Z"

    def test_created_defaults_to_now(self, credential, p256_signer):
        before = datetime.now(timezone.utc).replace(microsecond=0)
        sign(credential, p256_signer, "did:web:example.com#key-1")
        created = datetime.fromisoformat(credential["proof"]["created"].replace("Z", "+00:00"))
        assert created >= before

    def test_custom_purpose(self, credential, p256_signer):
        sign(credential, p256_signer, "did:web:example.com#key-1", proof_purpose="authentication")
        assert credential["proof"]["proofPurpose"] == "authentication"

    def test_existing_proofs_untouched(self, credential, p256_signer, other_signer):
        sign(credential, p256_signer, "did:123#key1")
        first = copy.deepcopy(credential["proof"])

        sign(credential, other_signer, "did:123#key2")

        assert isinstance(credential["proof"], list)
        assert credential["proof"][0] == first
        assert credential["proof"][1]["verificationMethod"] == "did:123#key2"

    def test_missing_signer(self, credential):
        context = LinkedDataProofContext(
            signature_type=JSON_WEB_SIGNATURE_2020,
            suite=SignatureSuite(),
            verification_method="did:123#key1",
        )
        with pytest.raises(ProofError, match="No signer"):
            add_linked_data_proof(credential, context)
        assert "proof" not in credential

    def test_malformed_existing_proof_refused(self, credential, p256_signer):
        """Proof entries that are not objects are never silently dropped."""
        sign(credential, p256_signer, "did:123#key1")
        credential["proof"] = [credential["proof"], "legacy-proof"]

        with pytest.raises(ProofError, match="JSON objects"):
            sign(credential, p256_signer, "did:123#key2")
        assert credential["proof"][1] == "legacy-proof"
        assert len(credential["proof"]) == 2

    def test_verification_method_needs_fragment(self, credential, p256_signer):
        with pytest.raises(KeyResolutionError):
            sign(credential, p256_signer, "did:123")

    def test_remove_proof(self, credential, p256_signer, other_signer):
        sign(credential, p256_signer, "did:123#key1")
        sign(credential, other_signer, "did:123#key2")

        remaining = remove_proof(credential, 0)

        assert remaining["proof"]["verificationMethod"] == "did:123#key2"
        assert len(credential["proof"]) == 2
        with pytest.raises(IndexError):
            remove_proof(credential, 2)


class TestVerifyProofs:
    """Tests for proof verification."""

    @pytest.mark.parametrize("representation", list(SignatureRepresentation))
    def test_single_proof(self, credential, p256_signer, representation):
        sign(
            credential,
            p256_signer,
            "did:web:example.com#key-1",
            signature_representation=representation,
        )
        result = verify_proofs(
            credential, SingleKeyFetcher(p256_signer.public_key()), [SignatureSuite()]
        )

        assert result.accepted(AcceptancePolicy.ALL)
        assert result.proofs[0].error is None
        assert result.errors == []

    def test_tampered_document(self, credential, p256_signer):
        sign(credential, p256_signer, "did:web:example.com#key-1")
        credential["credentialSubject"]["name"] = "Mallory"

        result = verify_proofs(
            credential, SingleKeyFetcher(p256_signer.public_key()), [SignatureSuite()]
        )

        assert not result.accepted(AcceptancePolicy.ALL)
        assert isinstance(result.proofs[0].error, VerificationError)

    def test_tampered_proof_options(self, credential, p256_signer):
        """Proof options are covered by the signature."""
        sign(credential, p256_signer, "did:web:example.com#key-1")
        credential["proof"]["proofPurpose"] = "authentication"

        result = verify_proofs(
            credential, SingleKeyFetcher(p256_signer.public_key()), [SignatureSuite()]
        )
        assert not result.proofs[0].valid

    def test_two_proofs_resolved_by_fragment(self, credential, p256_signer, other_signer):
        """Each proof is checked against the key its fragment names."""
        sign(credential, p256_signer, "did:123#key1")
        sign(credential, other_signer, "did:123#key2")
        fetcher = PanicKeyFetcher(
            {"#key1": p256_signer.public_key(), "#key2": other_signer.public_key()}
        )

        result = verify_proofs(credential, fetcher, [SignatureSuite()])

        assert [p.valid for p in result.proofs] == [True, True]
        assert fetcher.calls == [("did:123", "#key1"), ("did:123", "#key2")]

    def test_wrong_key_for_fragment(self, credential, p256_signer, other_signer):
        sign(credential, p256_signer, "did:123#key1")
        fetcher = PanicKeyFetcher({"#key1": other_signer.public_key()})

        result = verify_proofs(credential, fetcher, [SignatureSuite()])

        assert isinstance(result.proofs[0].error, VerificationError)

    def test_unknown_key_rejects_without_raising(self, credential, p256_signer):
        sign(credential, p256_signer, "did:123#key3")

        result = verify_proofs(credential, PanicKeyFetcher({}), [SignatureSuite()])

        assert not result.proofs[0].valid
        assert isinstance(result.proofs[0].error, KeyResolutionError)

    def test_corrupted_proof_does_not_affect_other(self, credential, p256_signer, other_signer):
        """Proofs are independent: breaking one leaves the other valid."""
        sign(credential, p256_signer, "did:123#key1")
        sign(credential, other_signer, "did:123#key2")
        header, _, signature = credential["proof"][0]["jws"].split(".")
        credential["proof"][0]["jws"] = f"{header}..{signature[::-1]}"
        fetcher = StaticKeyResolver(
            {"#key1": p256_signer.public_key(), "#key2": other_signer.public_key()}
        )

        result = verify_proofs(credential, fetcher, [SignatureSuite()])

        assert [p.valid for p in result.proofs] == [False, True]
        assert not result.accepted(AcceptancePolicy.ALL)
        assert result.accepted(AcceptancePolicy.ANY)
        assert result.errors[0].startswith("proof 0:")

    def _two_proofs(self, credential, p256_signer, other_signer):
        sign(credential, p256_signer, "did:123#key1")
        sign(credential, other_signer, "did:123#key2")
        return StaticKeyResolver(
            {"#key1": p256_signer.public_key(), "#key2": other_signer.public_key()}
        )

    def test_embedded_verification_method_rejected_alone(
        self, credential, p256_signer, other_signer
    ):
        """A non-string verificationMethod fails that proof only."""
        fetcher = self._two_proofs(credential, p256_signer, other_signer)
        credential["proof"][0]["verificationMethod"] = {"id": "did:123#key1"}

        result = verify_proofs(credential, fetcher, [SignatureSuite()])

        assert [p.valid for p in result.proofs] == [False, True]
        assert isinstance(result.proofs[0].error, KeyResolutionError)
        assert result.proofs[0].verification_method == ""

    def test_list_type_rejected_alone(self, credential, p256_signer, other_signer):
        """A non-string proof type fails that proof only."""
        fetcher = self._two_proofs(credential, p256_signer, other_signer)
        credential["proof"][0]["type"] = ["JsonWebSignature2020"]

        result = verify_proofs(credential, fetcher, [SignatureSuite()])

        assert [p.valid for p in result.proofs] == [False, True]
        assert isinstance(result.proofs[0].error, VerificationError)
        assert result.proofs[0].proof_type == ""

    def test_fetcher_crash_rejected_alone(self, credential, p256_signer, other_signer):
        """Any exception from a fetcher becomes a key resolution failure."""
        self._two_proofs(credential, p256_signer, other_signer)

        def fetcher(issuer, key_id):
            if key_id == "#key1":
                raise RuntimeError("resolver exploded")
            return other_signer.public_key()

        result = verify_proofs(credential, fetcher, [SignatureSuite()])

        assert [p.valid for p in result.proofs] == [False, True]
        assert isinstance(result.proofs[0].error, KeyResolutionError)
        assert "resolver exploded" in result.proofs[0].message

    def test_removing_a_proof_keeps_others_valid(self, credential, p256_signer, other_signer):
        sign(credential, p256_signer, "did:123#key1")
        sign(credential, other_signer, "did:123#key2")
        fetcher = StaticKeyResolver({"#key2": other_signer.public_key()})

        result = verify_proofs(remove_proof(credential, 0), fetcher, [SignatureSuite()])

        assert result.accepted(AcceptancePolicy.ALL)

    def test_unsupported_type(self, credential, p256_signer):
        sign(credential, p256_signer, "did:123#key1", signature_type="UnknownSignature2099")

        result = verify_proofs(
            credential, SingleKeyFetcher(p256_signer.public_key()), [SignatureSuite()]
        )

        assert "Unsupported proof type" in result.proofs[0].message

    def test_missing_signature_value(self, credential, p256_signer):
        sign(credential, p256_signer, "did:123#key1")
        del credential["proof"]["jws"]

        result = verify_proofs(
            credential, SingleKeyFetcher(p256_signer.public_key()), [SignatureSuite()]
        )
        assert isinstance(result.proofs[0].error, VerificationError)

    def test_malformed_jws(self, credential, p256_signer):
        sign(credential, p256_signer, "did:123#key1")
        credential["proof"]["jws"] = "not-a-jws"

        result = verify_proofs(
            credential, SingleKeyFetcher(p256_signer.public_key()), [SignatureSuite()]
        )
        assert "Malformed" in result.proofs[0].message

    def test_jws_algorithm_must_match_key(self, credential):
        """A P-256 signature labelled for a P-384 key is rejected."""
        p384 = ECDSASigner.generate("P-384")
        sign(credential, ECDSASigner.generate("P-256"), "did:123#key1")

        result = verify_proofs(credential, SingleKeyFetcher(p384.public_key()), [SignatureSuite()])
        assert "does not match" in result.proofs[0].message

    def test_mixed_curves_and_suites(self, credential):
        """Proofs of different types and curves verify side by side."""
        p521 = ECDSASigner.generate("P-521")
        k1 = ECDSASigner.generate("secp256k1")
        sign(credential, p521, "did:123#p521")
        sign(credential, k1, "did:123#k1", signature_type=ECDSA_SECP256K1_SIGNATURE_2019)
        fetcher = StaticKeyResolver({"#p521": p521.public_key(), "#k1": k1.public_key()})
        suites = {
            JSON_WEB_SIGNATURE_2020: SignatureSuite(),
            ECDSA_SECP256K1_SIGNATURE_2019: SignatureSuite(ECDSA_SECP256K1_SIGNATURE_2019),
        }

        result = verify_proofs(credential, fetcher, suites)

        assert result.accepted(AcceptancePolicy.ALL)

    def test_concurrent_results_in_document_order(self, credential):
        signers = [ECDSASigner.generate("P-256") for _ in range(4)]
        for i, signer in enumerate(signers):
            sign(credential, signer, f"did:123#key{i}")
        fetcher = StaticKeyResolver({f"#key{i}": s.public_key() for i, s in enumerate(signers)})
        credential["proof"][2]["jws"] = credential["proof"][1]["jws"]

        result = verify_proofs(credential, fetcher, [SignatureSuite()], max_workers=4)

        assert [p.index for p in result.proofs] == [0, 1, 2, 3]
        assert [p.valid for p in result.proofs] == [True, True, False, True]

    def test_backend_error_becomes_rejection(self, credential, p256_signer):
        """Whatever a verifying backend raises rejects the proof, message intact."""

        class BrokenBackend:
            def verify(self, public_key, message, signature, *, timeout=None):
                raise RuntimeError("verify error")

        sign(credential, p256_signer, "did:123#key1")
        suite = SignatureSuite(verifier=BackendVerifier(BrokenBackend()))

        result = verify_proofs(credential, SingleKeyFetcher(p256_signer.public_key()), [suite])

        assert isinstance(result.proofs[0].error, VerificationError)
        assert result.proofs[0].message == "verify error"


class TestProofChain:
    """Tests for chained proofs, where each proof covers the earlier ones."""

    def test_chain_round_trip(self, credential, p256_signer, other_signer):
        chain = JCSCanonicalizer(chain=True)
        sign(credential, p256_signer, "did:123#key1", canonicalizer=chain)
        sign(credential, other_signer, "did:123#key2", canonicalizer=chain)
        fetcher = StaticKeyResolver(
            {"#key1": p256_signer.public_key(), "#key2": other_signer.public_key()}
        )

        result = verify_proofs(credential, fetcher, [SignatureSuite(canonicalizer=chain)])

        assert result.accepted(AcceptancePolicy.ALL)

    def test_altering_earlier_proof_breaks_later(self, credential, p256_signer, other_signer):
        chain = JCSCanonicalizer(chain=True)
        sign(credential, p256_signer, "did:123#key1", canonicalizer=chain)
        sign(credential, other_signer, "did:123#key2", canonicalizer=chain)
        credential["proof"][0]["created"] = "2000-01-01T00:00:00Z"
        fetcher = StaticKeyResolver(
            {"#key1": p256_signer.public_key(), "#key2": other_signer.public_key()}
        )

        result = verify_proofs(credential, fetcher, [SignatureSuite(canonicalizer=chain)])

        assert [p.valid for p in result.proofs] == [False, False]


class TestAcceptancePolicy:
    """Tests for combining per-proof results."""

    def results(self, *valid):
        return DocumentVerificationResult(
            proofs=[
                ProofResult(index=i, proof_type="t", verification_method="vm", valid=v)
                for i, v in enumerate(valid)
            ]
        )

    def test_all(self):
        assert self.results(True, True).accepted(AcceptancePolicy.ALL)
        assert not self.results(True, False).accepted(AcceptancePolicy.ALL)

    def test_any(self):
        assert self.results(False, True).accepted(AcceptancePolicy.ANY)
        assert not self.results(False, False).accepted(AcceptancePolicy.ANY)

    def test_no_proofs_never_accepted(self, credential):
        result = verify_proofs(credential, StaticKeyResolver(), [SignatureSuite()])

        assert result.proofs == []
        assert not result.accepted(AcceptancePolicy.ALL)
        assert not result.accepted(AcceptancePolicy.ANY)
