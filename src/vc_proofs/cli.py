"""
Command-line interface for vc-proofs.

Usage:
    vc-proofs keygen --curve P-256 --out issuer.pem
    vc-proofs sign credential.json --key issuer.pem --verification-method did:web:example.com#key-1
    vc-proofs verify signed.json
    cat signed.json | vc-proofs verify - --key "#key-1=issuer.jwk.json"
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import httpx
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vc_proofs.curves import CURVES
from vc_proofs.did_resolver import DIDWebKeyResolver
from vc_proofs.ecdsa import ECDSASigner
from vc_proofs.errors import ProofError
from vc_proofs.jwk import JWK
from vc_proofs.ldproof import (
    AcceptancePolicy,
    DocumentVerificationResult,
    LinkedDataProofContext,
    add_linked_data_proof,
    verify_proofs,
)
from vc_proofs.resolver import PublicKeyFetcher, StaticKeyResolver
from vc_proofs.settings import Settings
from vc_proofs.signer import JWKPublicKey
from vc_proofs.suite import (
    ECDSA_SECP256K1_SIGNATURE_2019,
    JSON_WEB_SIGNATURE_2020,
    SignatureRepresentation,
    SignatureSuite,
)
from vc_proofs.timefmt import get_time_format

console = Console()
err_console = Console(stderr=True)

EXIT_ACCEPTED = 0
EXIT_REJECTED = 1
EXIT_ERROR = 2


def setup_logging(level: str) -> None:
    """Configure logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def load_document(source: str, timeout: float = 30.0) -> dict[str, Any]:
    """Load a JSON document from file, URL, or stdin.

    Args:
        source: File path, URL, or "-" for stdin.
        timeout: HTTP timeout when source is a URL.

    Returns:
        Parsed JSON object.
    """
    if source == "-":
        return json.loads(sys.stdin.read())

    if source.startswith("http://") or source.startswith("https://"):
        with httpx.Client(timeout=timeout) as client:
            response = client.get(
                source,
                headers={"Accept": "application/vc+ld+json, application/json"},
            )
            response.raise_for_status()
            return response.json()

    path = Path(source)
    if not path.exists():
        raise click.ClickException(f"File not found: {source}")

    with path.open(encoding="utf-8") as f:
        return json.load(f)


def parse_key_option(value: str) -> tuple[str, JWKPublicKey]:
    """Parse "KEY_ID=JWK_FILE" into a resolver entry."""
    key_id, sep, path = value.partition("=")
    if not sep or not key_id or not path:
        raise click.BadParameter(f"Expected KEY_ID=JWK_FILE, got {value!r}", param_hint="--key")
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise click.BadParameter(f"Cannot read JWK from {path}: {e}", param_hint="--key") from e
    return key_id, JWKPublicKey(jwk=JWK.from_dict(data))


def default_suites(extra_types: tuple[str, ...] = ()) -> list[SignatureSuite]:
    """Verification suites for the ECDSA proof types."""
    types = {JSON_WEB_SIGNATURE_2020, ECDSA_SECP256K1_SIGNATURE_2019, *extra_types}
    return [SignatureSuite(signature_type=t) for t in sorted(types)]


def format_result(result: DocumentVerificationResult, policy: AcceptancePolicy) -> None:
    """Format and print verification result."""
    accepted = result.accepted(policy)
    if accepted:
        status = "[bold green]ACCEPTED[/]"
        panel_style = "green"
    else:
        status = "[bold red]REJECTED[/]"
        panel_style = "red"

    table = Table(box=None, padding=(0, 2))
    table.add_column("#", style="dim")
    table.add_column("Type")
    table.add_column("Verification Method")
    table.add_column("Result")

    for proof in result.proofs:
        outcome = "[green]Valid[/]" if proof.valid else f"[red]{escape(proof.message or '')}[/]"
        table.add_row(str(proof.index), proof.proof_type, proof.verification_method, outcome)

    title = f"{status} (policy: {policy.value}, {len(result.proofs)} proof(s))"
    console.print(Panel(table, title=title, border_style=panel_style))

    if not result.proofs:
        console.print("[yellow]![/] Document carries no proofs")


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.version_option(package_name="vc-proofs")
@click.pass_context
def main(ctx: click.Context, log_level: str) -> None:
    """Sign and verify Linked Data Proofs on Verifiable Credentials."""
    setup_logging(log_level)
    ctx.obj = Settings()


@main.command()
@click.option(
    "--curve",
    type=click.Choice(sorted(CURVES)),
    default="P-256",
    show_default=True,
    help="Elliptic curve for the new key",
)
@click.option(
    "--out",
    "out_path",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Where to write the PEM private key",
)
@click.option("--kid", default=None, help="Key id to embed in the exported JWK")
def keygen(curve: str, out_path: Path, kid: str | None) -> None:
    """Generate an ECDSA key and print its public JWK."""
    try:
        signer = ECDSASigner.generate(curve, kid=kid)
    except ProofError as e:
        raise click.ClickException(str(e)) from e

    out_path.write_bytes(signer.private_key_pem())
    out_path.chmod(0o600)
    err_console.print(f"Wrote {signer.curve} private key to {out_path}")
    click.echo(json.dumps(signer.public_jwk.to_dict(), indent=2))


@main.command()
@click.argument("source", required=True)
@click.option(
    "--key",
    "key_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="PEM private key to sign with",
)
@click.option(
    "--verification-method",
    required=True,
    help="Key reference written into the proof (issuer#fragment)",
)
@click.option(
    "--type",
    "signature_type",
    default=JSON_WEB_SIGNATURE_2020,
    show_default=True,
    help="Proof type",
)
@click.option("--purpose", default=None, help="proofPurpose (default from settings)")
@click.option(
    "--representation",
    type=click.Choice([r.value for r in SignatureRepresentation]),
    default=None,
    help="Signature encoding (default from settings)",
)
@click.option(
    "--time-format",
    type=click.Choice(["rfc3339", "rfc3339-seconds"]),
    default=None,
    help="Format of the 'created' timestamp (default from settings)",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the signed document here instead of stdout",
)
@click.pass_obj
def sign(
    settings: Settings,
    source: str,
    key_path: Path,
    verification_method: str,
    signature_type: str,
    purpose: str | None,
    representation: str | None,
    time_format: str | None,
    output_path: Path | None,
) -> None:
    """Attach a proof to the JSON document at SOURCE.

    SOURCE is a file path, a URL, or "-" for stdin. Existing proofs are kept.
    """
    try:
        document = load_document(source, timeout=settings.http_timeout)
        signer = ECDSASigner.from_pem(key_path.read_bytes())
        context = LinkedDataProofContext(
            signature_type=signature_type,
            suite=SignatureSuite(signature_type=signature_type, signer=signer),
            verification_method=verification_method,
            signature_representation=SignatureRepresentation(
                representation or settings.signature_representation
            ),
            proof_purpose=purpose or settings.proof_purpose,
            time_format=get_time_format(time_format or settings.time_format),
        )
        add_linked_data_proof(document, context)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON: {e}") from e
    except httpx.HTTPError as e:
        raise click.ClickException(f"HTTP error: {e}") from e
    except (ProofError, ValueError, TypeError) as e:
        raise click.ClickException(str(e)) from e

    output = json.dumps(document, indent=2, ensure_ascii=False)
    if output_path:
        output_path.write_text(output + "\n", encoding="utf-8")
        err_console.print(f"Wrote signed document to {output_path}")
    else:
        click.echo(output)


@main.command()
@click.argument("source", required=True)
@click.option(
    "--key",
    "keys",
    multiple=True,
    help="KEY_ID=JWK_FILE; KEY_ID is '#fragment' or issuer#fragment. "
    "Without --key, did:web issuers are resolved over HTTPS.",
)
@click.option(
    "--type",
    "extra_types",
    multiple=True,
    help="Additional proof types to verify with the ECDSA suite",
)
@click.option(
    "--policy",
    type=click.Choice([p.value for p in AcceptancePolicy]),
    default=None,
    help="Require all proofs or any proof to verify (default from settings)",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    help="Disable SSL certificate verification",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="HTTP request timeout in seconds (default from settings)",
)
@click.option(
    "--json-output",
    is_flag=True,
    help="Output result as JSON",
)
@click.pass_obj
def verify(
    settings: Settings,
    source: str,
    keys: tuple[str, ...],
    extra_types: tuple[str, ...],
    policy: str | None,
    no_ssl_verify: bool,
    timeout: float | None,
    json_output: bool,
) -> None:
    """Verify every proof on the JSON document at SOURCE.

    Exit status is 0 when the document is accepted under the policy,
    1 when it is rejected and 2 on errors.
    """
    acceptance = AcceptancePolicy(policy or settings.acceptance_policy)
    timeout = timeout if timeout is not None else settings.http_timeout

    try:
        document = load_document(source, timeout=timeout)

        fetcher: PublicKeyFetcher
        if keys:
            fetcher = StaticKeyResolver(dict(parse_key_option(k) for k in keys))
        else:
            fetcher = DIDWebKeyResolver(
                timeout=timeout,
                verify_ssl=settings.verify_ssl and not no_ssl_verify,
            )

        result = verify_proofs(
            document,
            fetcher,
            default_suites(extra_types),
            max_workers=settings.verify_workers,
        )

    except click.ClickException as e:
        _report_error(e.format_message(), json_output)
        sys.exit(EXIT_ERROR)
    except json.JSONDecodeError as e:
        _report_error(f"Invalid JSON: {e}", json_output)
        sys.exit(EXIT_ERROR)
    except httpx.HTTPError as e:
        _report_error(f"HTTP error: {e}", json_output)
        sys.exit(EXIT_ERROR)
    except (ProofError, OSError, ValueError) as e:
        _report_error(str(e), json_output)
        sys.exit(EXIT_ERROR)

    accepted = result.accepted(acceptance)
    if json_output:
        console.print_json(
            data={
                "accepted": accepted,
                "policy": acceptance.value,
                "proofs": [
                    {
                        "index": p.index,
                        "type": p.proof_type,
                        "verification_method": p.verification_method,
                        "valid": p.valid,
                        "error": p.message,
                    }
                    for p in result.proofs
                ],
            }
        )
    else:
        format_result(result, acceptance)

    sys.exit(EXIT_ACCEPTED if accepted else EXIT_REJECTED)


def _report_error(message: str, json_output: bool) -> None:
    if json_output:
        console.print_json(data={"error": message})
    else:
        err_console.print(f"[red]Error:[/] {escape(message)}")


if __name__ == "__main__":
    main()
