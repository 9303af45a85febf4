"""
rollsettle Claims

Merkle-gated one-time entitlements:
- Single-use per payload hash (Unclaimed → Claimed, never back)
- Sorted-pair merkle proofs against an owner-published root
- Pluggable claim executors
"""

from rollsettle.claim.claimable import (
    STATE_VERSION,
    ClaimState,
    MerkleClaimable,
    claim_hash,
    claim_once,
)
from rollsettle.claim.executors import (
    CallableExecutor,
    ClaimExecutor,
    TokenAirdrop,
    decode_airdrop_payload,
    encode_airdrop_payload,
)
from rollsettle.claim.merkle import process_proof, verify_proof

__all__ = [
    "STATE_VERSION",
    "CallableExecutor",
    "ClaimExecutor",
    "ClaimState",
    "MerkleClaimable",
    "TokenAirdrop",
    "claim_hash",
    "claim_once",
    "decode_airdrop_payload",
    "encode_airdrop_payload",
    "process_proof",
    "verify_proof",
]
