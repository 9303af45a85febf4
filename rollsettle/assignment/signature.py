"""
Commitment hashing and signer verification for prover assignments.

CRYPTO INVARIANT: the prover signs the raw 32 commitment bytes.
A signer is either an Ed25519 account (address == public key hex) or a
contract account that decides validity itself.
"""

from abc import ABC, abstractmethod
from typing import Optional

from rollsettle.core.canonical import canonical_hash
from rollsettle.core.config import DEFAULT_ASSIGNMENT_DOMAIN
from rollsettle.core.crypto import Ed25519KeyManager
from rollsettle.core.exceptions import InvalidSignature
from rollsettle.core.models import Assignment
from rollsettle.ledger.ledger import Ledger


class SignatureValidator(ABC):
    """Contract account that defines its own signature validity predicate."""

    @abstractmethod
    def is_valid_signature(self, hash_hex: str, signature: str) -> bool:
        ...


class DelegatedSigner(SignatureValidator):
    """
    Contract signer that accepts signatures from any of its operator keys.

    Models a prover pool: the pool address is assigned, operators sign.
    """

    def __init__(self, operators):
        self.operators = set(operators)

    def is_valid_signature(self, hash_hex: str, signature: str) -> bool:
        data = bytes.fromhex(hash_hex)
        return any(
            Ed25519KeyManager.verify_detached(data, signature, op)
            for op in self.operators
        )


def compute_commitment_hash(
    assignment:        Assignment,
    verifying_address: str,
    blob_hash:         str,
    domain:            str = DEFAULT_ASSIGNMENT_DOMAIN,
) -> str:
    """
    Domain-separated hash a prover signs off-ledger.

    Pure and deterministic. Any change to an assignment field other than
    the signature, or to the verifier or blob hash, changes the result.
    """
    return canonical_hash(
        assignment.to_commitment_dict(verifying_address, blob_hash, domain)
    )


def is_valid_signature_now(
    signer:    str,
    hash_hex:  str,
    signature: str,
    ledger:    Optional[Ledger] = None,
) -> bool:
    """
    Dispatch on the kind of signer.

    Contract accounts implementing is_valid_signature are asked directly.
    Everything else is treated as an Ed25519 public key.
    """
    contract = ledger.contract_at(signer) if ledger is not None else None
    if contract is not None and hasattr(contract, "is_valid_signature"):
        try:
            return bool(contract.is_valid_signature(hash_hex, signature))
        except Exception:
            return False
    return Ed25519KeyManager.verify_detached(bytes.fromhex(hash_hex), signature, signer)


def verify_assignment_signature(
    assignment:        Assignment,
    verifying_address: str,
    blob_hash:         str,
    signer:            str,
    ledger:            Optional[Ledger] = None,
    domain:            str = DEFAULT_ASSIGNMENT_DOMAIN,
) -> str:
    """
    Raise InvalidSignature unless signer authorized this assignment.

    Returns the commitment hash on success.
    """
    commitment = compute_commitment_hash(assignment, verifying_address, blob_hash, domain)
    if not is_valid_signature_now(signer, commitment, assignment.signature, ledger):
        raise InvalidSignature(
            "Assignment signature not valid for assigned prover",
            {"prover": signer[:16], "commitment": commitment[:16]},
        )
    return commitment
