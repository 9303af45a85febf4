"""
rollsettle Assignment Settlement

Verifies a prover's signed assignment for a proposed block and settles
the fee payment atomically:

- AssignmentValidator: expiry and block binding
- SignatureVerifier: domain-separated commitment, polymorphic signer
- FeeSettlement: bond, tiered fee, tip, refund
"""

from rollsettle.assignment.fees import FeeSettlement, get_prover_fee
from rollsettle.assignment.hook import AssignmentHook
from rollsettle.assignment.signature import (
    DelegatedSigner,
    SignatureValidator,
    compute_commitment_hash,
    is_valid_signature_now,
    verify_assignment_signature,
)
from rollsettle.assignment.validator import is_valid_assignment, validate_assignment

__all__ = [
    "AssignmentHook",
    "DelegatedSigner",
    "FeeSettlement",
    "SignatureValidator",
    "compute_commitment_hash",
    "get_prover_fee",
    "is_valid_assignment",
    "is_valid_signature_now",
    "validate_assignment",
    "verify_assignment_signature",
]
