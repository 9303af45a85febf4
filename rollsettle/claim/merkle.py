"""
Sorted-pair merkle proof verification.

Parent rule: parent = SHA-256(min(a, b) || max(a, b)) over raw 32-byte
digests, so a proof is just the sibling list with no position bits.
"""

from typing import Sequence

from rollsettle.core.canonical import hash_pair, is_hex32


def process_proof(proof: Sequence[str], leaf: str) -> str:
    """Fold the sibling list over the leaf and return the implied root."""
    computed = leaf
    for sibling in proof:
        computed = hash_pair(computed, sibling)
    return computed


def verify_proof(proof: Sequence[str], root: str, leaf: str) -> bool:
    """
    True iff proof reconstructs root from leaf.

    Malformed input (non-list proof, non-hex elements) is a failed proof,
    never an exception.
    """
    if not isinstance(proof, (list, tuple)):
        return False
    if not is_hex32(root) or not is_hex32(leaf):
        return False
    if not all(is_hex32(p) for p in proof):
        return False
    return process_proof(proof, leaf) == root
