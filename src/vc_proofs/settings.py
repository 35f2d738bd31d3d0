"""Runtime configuration with Pydantic settings.

Precedence: CLI flag > environment variable (VC_PROOFS_*) > .env file > defaults.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """vc-proofs configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="VC_PROOFS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    http_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for DID resolution and remote backends",
    )

    verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates on outbound requests",
    )

    time_format: Literal["rfc3339", "rfc3339-seconds"] = Field(
        default="rfc3339",
        description="Formatting strategy for the proof 'created' timestamp",
    )

    acceptance_policy: Literal["all", "any"] = Field(
        default="all",
        description="Whether every proof or at least one proof must verify",
    )

    proof_purpose: str = Field(
        default="assertionMethod",
        description="Default proofPurpose for new proofs",
    )

    signature_representation: Literal["jws", "proofValue"] = Field(
        default="jws",
        description="Default signature encoding for new proofs",
    )

    verify_workers: int = Field(
        default=1,
        ge=1,
        description="Threads used to verify the proofs of one document",
    )
