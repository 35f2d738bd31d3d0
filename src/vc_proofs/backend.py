"""
Adapters that put an opaque signing backend behind the Signer and
Verifier contracts.

The adapters forward calls verbatim. Signatures and errors coming back
from the backend are returned or re-raised unchanged; retries, if any,
are the backend's business.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from vc_proofs.ecdsa import to_ec_public_key
from vc_proofs.errors import (
    BackendUnavailableError,
    KeyResolutionError,
    ProofError,
    SigningError,
    VerificationError,
)
from vc_proofs.jwk import JWK, b64url_decode, b64url_encode
from vc_proofs.signer import JWKPublicKey, PublicKey, RawPublicKey

logger = logging.getLogger(__name__)


class SigningBackend(Protocol):
    """Anything that can sign bytes, optionally within a deadline."""

    def sign(self, message: bytes, *, timeout: float | None = None) -> bytes:
        ...


class VerifyingBackend(Protocol):
    """Anything that can check a signature, optionally within a deadline."""

    def verify(
        self,
        public_key: PublicKey,
        message: bytes,
        signature: bytes,
        *,
        timeout: float | None = None,
    ) -> None:
        ...


class BackendSigner:
    """Signer backed by an opaque SigningBackend."""

    def __init__(
        self,
        backend: SigningBackend,
        public_key: PublicKey | None = None,
        algorithm: str = "",
        timeout: float | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            backend: The signing backend to forward to.
            public_key: Public key matching the backend's private key, if known.
            algorithm: JOSE algorithm the backend signs with.
            timeout: Deadline in seconds passed to every backend call.
        """
        self.backend = backend
        self._public_key = public_key
        self._algorithm = algorithm
        self.timeout = timeout

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def sign(self, message: bytes) -> bytes:
        return self.backend.sign(message, timeout=self.timeout)

    def public_key(self) -> PublicKey:
        if self._public_key is None:
            raise ProofError("Backend signer was created without a public key")
        return self._public_key

    def public_key_bytes(self) -> bytes:
        public_key = self.public_key()
        if isinstance(public_key, RawPublicKey):
            return public_key.value
        return public_key.jwk.public_key_bytes()


class BackendVerifier:
    """Verifier backed by an opaque VerifyingBackend.

    Any exception from the backend means the signature is not accepted;
    an invalid signature and an unreachable backend look the same here.
    """

    def __init__(self, backend: VerifyingBackend, timeout: float | None = None) -> None:
        self.backend = backend
        self.timeout = timeout

    def verify(self, public_key: PublicKey, message: bytes, signature: bytes) -> None:
        self.backend.verify(public_key, message, signature, timeout=self.timeout)


class RemoteSigningBackend:
    """HTTP client for a KMS-style signing service.

    Endpoints (relative to base_url):
        GET  /keys/{key_id}         -> {"publicKeyJwk": {...}}
        POST /keys/{key_id}/sign    {"message"} -> {"signature"}
        POST /keys/{key_id}/verify  {"message", "signature", "publicKeyJwk"} -> {"valid"}

    Binary values travel as base64url without padding.
    """

    def __init__(
        self,
        base_url: str,
        key_id: str,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: Service root URL.
            key_id: Identifier of the key held by the service.
            timeout: Default HTTP request timeout in seconds.
            verify_ssl: Whether to verify SSL certificates.
        """
        self.base_url = base_url.rstrip("/")
        self.key_id = key_id
        self.timeout = timeout
        self.verify_ssl = verify_ssl

    def _key_url(self, suffix: str = "") -> str:
        return f"{self.base_url}/keys/{self.key_id}{suffix}"

    def _request(
        self,
        method: str,
        url: str,
        timeout: float | None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        with httpx.Client(
            timeout=timeout if timeout is not None else self.timeout,
            verify=self.verify_ssl,
        ) as client:
            response = client.request(
                method,
                url,
                json=payload,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object from {url}")
        return data

    def public_key(self, *, timeout: float | None = None) -> JWKPublicKey:
        """Fetch the public half of the remote key.

        Raises:
            KeyResolutionError: If the key cannot be fetched.
        """
        url = self._key_url()
        try:
            data = self._request("GET", url, timeout)
        except httpx.HTTPStatusError as e:
            raise KeyResolutionError(
                f"HTTP error fetching key {self.key_id}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise KeyResolutionError(f"Network error fetching key {self.key_id}: {e}") from e
        except ValueError as e:
            raise KeyResolutionError(f"Invalid JSON object describing key {self.key_id}") from e

        jwk_data = data.get("publicKeyJwk")
        if not isinstance(jwk_data, dict):
            raise KeyResolutionError(f"No publicKeyJwk for key {self.key_id}")
        return JWKPublicKey(jwk=JWK.from_dict(jwk_data))

    def sign(self, message: bytes, *, timeout: float | None = None) -> bytes:
        """Ask the service to sign a message.

        Raises:
            SigningError: If the service fails or cannot be reached.
        """
        url = self._key_url("/sign")
        logger.debug("Remote sign request for key %s", self.key_id)
        try:
            data = self._request("POST", url, timeout, {"message": b64url_encode(message)})
        except httpx.HTTPStatusError as e:
            raise SigningError(
                f"HTTP error signing with {self.key_id}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise SigningError(f"Network error signing with {self.key_id}: {e}") from e
        except ValueError as e:
            raise SigningError(f"Invalid JSON object in sign response for {self.key_id}") from e

        signature = data.get("signature")
        if not isinstance(signature, str) or not signature:
            raise SigningError(f"Missing signature in sign response for {self.key_id}")
        try:
            return b64url_decode(signature)
        except ValueError as e:
            raise SigningError(f"Malformed signature in sign response for {self.key_id}") from e

    def verify(
        self,
        public_key: PublicKey,
        message: bytes,
        signature: bytes,
        *,
        timeout: float | None = None,
    ) -> None:
        """Ask the service to check a signature.

        Raises:
            VerificationError: If the service reports the signature invalid.
            BackendUnavailableError: If the service fails or cannot be reached.
        """
        if isinstance(public_key, JWKPublicKey):
            jwk_data = public_key.jwk.to_dict()
        else:
            jwk_data = JWK.from_public_key(to_ec_public_key(public_key)).to_dict()

        url = self._key_url("/verify")
        payload = {
            "message": b64url_encode(message),
            "signature": b64url_encode(signature),
            "publicKeyJwk": jwk_data,
        }
        try:
            data = self._request("POST", url, timeout, payload)
        except httpx.HTTPStatusError as e:
            raise BackendUnavailableError(
                f"HTTP error verifying with {self.key_id}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise BackendUnavailableError(f"Network error verifying with {self.key_id}: {e}") from e
        except ValueError as e:
            raise BackendUnavailableError(
                f"Invalid JSON in verify response for {self.key_id}"
            ) from e

        if data.get("valid") is not True:
            raise VerificationError("Invalid signature")

