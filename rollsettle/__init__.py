"""
rollsettle/__init__.py

rollsettle: Authorization verification and atomic settlement for rollup
prover assignments and merkle-gated one-time claims.
"""

__version__ = "0.1.0"

from rollsettle.assignment import AssignmentHook, compute_commitment_hash
from rollsettle.claim import ClaimState, MerkleClaimable, TokenAirdrop, claim_hash
from rollsettle.core.canonical import ZERO_HASH, canonicalize
from rollsettle.core.config import HookConfig
from rollsettle.core.crypto import Ed25519KeyManager
from rollsettle.core.exceptions import (
    AlreadyClaimed,
    AssignmentExpiredOrInvalid,
    InsufficientFee,
    InvalidProof,
    InvalidSignature,
    RollSettleError,
    TierNotFound,
)
from rollsettle.core.models import (
    NATIVE_TOKEN,
    Assignment,
    Block,
    BlockContext,
    BlockMetadata,
    SettlementRequest,
    TierFee,
    decode_settlement_request,
    encode_settlement_request,
)
from rollsettle.ledger import FungibleToken, Ledger

__all__ = [
    # Engines
    "AssignmentHook",
    "MerkleClaimable",
    "TokenAirdrop",
    "ClaimState",
    # Ledger
    "Ledger",
    "FungibleToken",
    # Types
    "Assignment",
    "Block",
    "BlockContext",
    "BlockMetadata",
    "SettlementRequest",
    "TierFee",
    "HookConfig",
    "Ed25519KeyManager",
    # Errors
    "RollSettleError",
    "AssignmentExpiredOrInvalid",
    "InvalidSignature",
    "InsufficientFee",
    "TierNotFound",
    "AlreadyClaimed",
    "InvalidProof",
    # Helpers
    "compute_commitment_hash",
    "claim_hash",
    "canonicalize",
    "encode_settlement_request",
    "decode_settlement_request",
    # Constants
    "NATIVE_TOKEN",
    "ZERO_HASH",
]
