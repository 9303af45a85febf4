"""
rollsettle/cli/prover.py

Off-ledger prover and claimant tooling.

Usage:
    rollsettle keygen <out.pem>
    rollsettle hash-assignment <file> --verifier <addr> --blob-hash <hash>
    rollsettle sign-assignment <file> --key <pem> --verifier <addr> --blob-hash <hash>
    rollsettle claim-hash <payload-hex>

Assignment files are YAML or JSON with the fields of Assignment.to_dict().
A --config YAML file overrides the domain tags.

Exit codes:
    0  Success
    2  Error  (file missing, malformed input, bad key)
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from rollsettle.assignment.signature import compute_commitment_hash
from rollsettle.claim.claimable import claim_hash
from rollsettle.core.config import HookConfig
from rollsettle.core.crypto import Ed25519KeyManager
from rollsettle.core.exceptions import RollSettleError
from rollsettle.core.models import Assignment, parse_hex32


def _emit_error(msg: str) -> None:
    """Emit error to stderr. Never raises."""
    click.echo(f"ERROR: {msg}", err=True)


def _load_config(config_path: Optional[str]) -> HookConfig:
    if config_path is None:
        return HookConfig()
    return HookConfig.from_yaml(Path(config_path))


def _load_assignment(path: str) -> Assignment:
    # BaseLoader keeps every scalar a string, so all-digit hex stays hex.
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.load(f, Loader=yaml.BaseLoader)
    return Assignment.from_dict(data)


def _commitment(
    assignment_file: str,
    verifier:        str,
    blob_hash:       str,
    config_path:     Optional[str],
):
    config     = _load_config(config_path)
    assignment = _load_assignment(assignment_file)
    commitment = compute_commitment_hash(
        assignment,
        parse_hex32(verifier, "verifier"),
        parse_hex32(blob_hash, "blob_hash"),
        config.assignment_domain,
    )
    return assignment, commitment


_verifier_option = click.option(
    "--verifier", required=True, metavar="ADDR",
    help="Address of the contract that will verify the assignment.",
)
_blob_hash_option = click.option(
    "--blob-hash", "blob_hash", required=True, metavar="HASH",
    help="Blob hash of the block being proposed.",
)
_config_option = click.option(
    "--config", "config_path", type=click.Path(exists=True), default=None,
    help="YAML deployment config (domain tags, gas ceiling).",
)


@click.command(name="keygen")
@click.argument("out", type=click.Path())
def keygen_command(out: str) -> None:
    """Write a new Ed25519 private key to OUT and print its address."""
    key = Ed25519KeyManager.generate()
    key.save(Path(out))
    click.echo(key.address)


@click.command(name="hash-assignment")
@click.argument("assignment_file", type=click.Path(exists=True))
@_verifier_option
@_blob_hash_option
@_config_option
def hash_assignment_command(
    assignment_file: str,
    verifier:        str,
    blob_hash:       str,
    config_path:     Optional[str],
) -> None:
    """Print the commitment hash a prover signs for ASSIGNMENT_FILE."""
    try:
        _, commitment = _commitment(assignment_file, verifier, blob_hash, config_path)
    except (RollSettleError, yaml.YAMLError) as e:
        _emit_error(str(e))
        sys.exit(2)
    click.echo(commitment)


@click.command(name="sign-assignment")
@click.argument("assignment_file", type=click.Path(exists=True))
@click.option(
    "--key", "key_path", required=True, type=click.Path(),
    help="PEM Ed25519 private key of the prover.",
)
@_verifier_option
@_blob_hash_option
@_config_option
def sign_assignment_command(
    assignment_file: str,
    key_path:        str,
    verifier:        str,
    blob_hash:       str,
    config_path:     Optional[str],
) -> None:
    """Sign ASSIGNMENT_FILE and print the signed assignment as JSON."""
    try:
        key = Ed25519KeyManager.from_file(Path(key_path))
    except (FileNotFoundError, ValueError) as e:
        _emit_error(str(e))
        sys.exit(2)

    try:
        assignment, commitment = _commitment(assignment_file, verifier, blob_hash, config_path)
    except (RollSettleError, yaml.YAMLError) as e:
        _emit_error(str(e))
        sys.exit(2)

    signed = assignment.to_dict()
    signed["signature"] = key.sign_hash(commitment)
    click.echo(json.dumps(signed, indent=2, sort_keys=True))


@click.command(name="claim-hash")
@click.argument("payload_hex")
@_config_option
def claim_hash_command(payload_hex: str, config_path: Optional[str]) -> None:
    """Print the claim hash of a hex-encoded payload."""
    try:
        payload = bytes.fromhex(payload_hex)
    except ValueError as e:
        _emit_error(f"Payload is not valid hex: {e}")
        sys.exit(2)
    try:
        config = _load_config(config_path)
    except (RollSettleError, yaml.YAMLError) as e:
        _emit_error(str(e))
        sys.exit(2)
    click.echo(claim_hash(payload, config.claim_domain))
