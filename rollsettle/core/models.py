"""
rollsettle/core/models.py

Data model for prover assignments and block context.

═══════════════════════════════════════════════════════════════════
PROTOCOL CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Commitment
    commitment = SHA-256(JCS(assignment.to_commitment_dict(verifier, blob_hash, domain)))
    binds      : domain tag, verifying address, blob hash, every assignment
                 field EXCEPT signature
    signature  : Ed25519 over the 32 raw commitment bytes, base64url, no padding

CONTRACT 2 — Wire format
    encoded_input = JCS({"assignment": assignment.to_dict(), "tip": "<uint>"})
    uint fields travel as decimal strings; decoders also accept JSON ints.

CONTRACT 3 — Sentinels
    NATIVE_TOKEN = ZERO_HASH → fee paid in native currency
    meta_hash    = ZERO_HASH → metadata hash unchecked
    max_block_id = 0, max_proposed_in = 0 → unbounded
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from rollsettle.core.canonical import ZERO_HASH, canonicalize, is_hex32
from rollsettle.core.exceptions import MalformedInput


NATIVE_TOKEN = ZERO_HASH


# ─────────────────────────────────────────────────────────────
# Field parsing: untrusted input
# ─────────────────────────────────────────────────────────────

MAX_UINT = 2 ** 256 - 1
_MAX_UINT_DIGITS = len(str(MAX_UINT))


def parse_uint(value: Any, name: str) -> int:
    """Accept an int or a decimal string in [0, MAX_UINT]. bool is rejected."""
    if isinstance(value, bool):
        raise MalformedInput(f"{name} must be an unsigned integer", {"value": repr(value)})
    if isinstance(value, str) and value.isdigit() and value.isascii():
        if len(value.lstrip("0")) > _MAX_UINT_DIGITS:
            raise MalformedInput(f"{name} exceeds 256 bits", {"digits": len(value)})
        value = int(value)
    if not isinstance(value, int):
        raise MalformedInput(f"{name} must be an unsigned integer", {"value": repr(value)[:80]})
    if value < 0:
        raise MalformedInput(f"{name} must be non-negative", {"value": value})
    if value > MAX_UINT:
        raise MalformedInput(f"{name} exceeds 256 bits", {"bits": value.bit_length()})
    return value


def parse_hex32(value: Any, name: str) -> str:
    if not is_hex32(value):
        raise MalformedInput(f"{name} must be 64 lowercase hex chars", {"value": repr(value)[:80]})
    return value


def _require(data: Dict[str, Any], key: str, context: str) -> Any:
    if key not in data:
        raise MalformedInput(f"{context} missing field '{key}'")
    return data[key]


# ─────────────────────────────────────────────────────────────
# Assignment
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TierFee:
    """Fee a prover charges for one service tier."""
    tier: int
    fee:  int

    def to_dict(self) -> Dict[str, str]:
        return {"tier": str(self.tier), "fee": str(self.fee)}

    @classmethod
    def from_dict(cls, data: Any) -> "TierFee":
        if not isinstance(data, dict):
            raise MalformedInput("tier fee entry must be an object")
        return cls(
            tier=parse_uint(_require(data, "tier", "tier fee"), "tier"),
            fee= parse_uint(_require(data, "fee", "tier fee"), "fee"),
        )


@dataclass(frozen=True)
class Assignment:
    """
    A prover's signed offer to prove a block for a fee.

    tier_fees is ordered; duplicate tiers are allowed and the first one wins.
    """
    fee_token:       str
    expiry:          int
    max_block_id:    int = 0
    max_proposed_in: int = 0
    meta_hash:       str = ZERO_HASH
    tier_fees:       List[TierFee] = field(default_factory=list)
    signature:       str = ""

    @property
    def pays_native(self) -> bool:
        return self.fee_token == NATIVE_TOKEN

    def to_commitment_dict(
        self,
        verifying_address: str,
        blob_hash:         str,
        domain:            str,
    ) -> Dict[str, Any]:
        """
        CONTRACT 1 — the EXACT dict hashed into the commitment.

        Includes every field except signature. Order of tier_fees is kept.
        """
        return {
            "domain":          domain,
            "verifier":        verifying_address,
            "blob_hash":       blob_hash,
            "fee_token":       self.fee_token,
            "expiry":          str(self.expiry),
            "max_block_id":    str(self.max_block_id),
            "max_proposed_in": str(self.max_proposed_in),
            "meta_hash":       self.meta_hash,
            "tier_fees":       [tf.to_dict() for tf in self.tier_fees],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fee_token":       self.fee_token,
            "expiry":          str(self.expiry),
            "max_block_id":    str(self.max_block_id),
            "max_proposed_in": str(self.max_proposed_in),
            "meta_hash":       self.meta_hash,
            "tier_fees":       [tf.to_dict() for tf in self.tier_fees],
            "signature":       self.signature,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Assignment":
        """
        Build an Assignment from untrusted data.
        Raises MalformedInput on any missing or ill-typed field.
        """
        if not isinstance(data, dict):
            raise MalformedInput("assignment must be an object")
        tier_fees = data.get("tier_fees", [])
        if not isinstance(tier_fees, list):
            raise MalformedInput("tier_fees must be a list")
        signature = data.get("signature", "")
        if not isinstance(signature, str):
            raise MalformedInput("signature must be a string")
        return cls(
            fee_token=       parse_hex32(_require(data, "fee_token", "assignment"), "fee_token"),
            expiry=          parse_uint(_require(data, "expiry", "assignment"), "expiry"),
            max_block_id=    parse_uint(data.get("max_block_id", 0), "max_block_id"),
            max_proposed_in= parse_uint(data.get("max_proposed_in", 0), "max_proposed_in"),
            meta_hash=       parse_hex32(data.get("meta_hash", ZERO_HASH), "meta_hash"),
            tier_fees=       [TierFee.from_dict(tf) for tf in tier_fees],
            signature=       signature,
        )


@dataclass(frozen=True)
class SettlementRequest:
    """What the block proposer attaches to a proposal: assignment plus tip."""
    assignment: Assignment
    tip:        int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"assignment": self.assignment.to_dict(), "tip": str(self.tip)}


def encode_settlement_request(request: SettlementRequest) -> bytes:
    """CONTRACT 2 — canonical wire bytes for a SettlementRequest."""
    return canonicalize(request.to_dict())


def decode_settlement_request(data: bytes) -> SettlementRequest:
    """
    Decode caller-supplied bytes into a SettlementRequest.

    Raises MalformedInput for anything that is not a well-formed request.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise MalformedInput("encoded input must be bytes")
    try:
        obj = json.loads(bytes(data).decode("utf-8"))
    except ValueError as exc:
        raise MalformedInput(f"encoded input is not valid JSON: {exc}") from exc
    if not isinstance(obj, dict):
        raise MalformedInput("encoded input must be an object")
    return SettlementRequest(
        assignment=Assignment.from_dict(_require(obj, "assignment", "request")),
        tip=parse_uint(obj.get("tip", 0), "tip"),
    )


# ─────────────────────────────────────────────────────────────
# Block inputs supplied by the proposal pipeline
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Block:
    """Block record as stored by the proposal pipeline."""
    meta_hash:       str
    block_id:        int
    assigned_prover: str
    liveness_bond:   int


@dataclass(frozen=True)
class BlockMetadata:
    """Metadata of a proposed block."""
    block_id:  int
    blob_hash: str
    min_tier:  int
    coinbase:  str
    sender:    str = ZERO_HASH

    def to_dict(self) -> Dict[str, Any]:
        return {
            "block_id":  str(self.block_id),
            "blob_hash": self.blob_hash,
            "min_tier":  str(self.min_tier),
            "coinbase":  self.coinbase,
            "sender":    self.sender,
        }


@dataclass(frozen=True)
class BlockContext:
    """The read-only block values an assignment is checked against."""
    meta_hash:     str
    block_id:      int
    min_tier:      int
    blob_hash:     str
    prover:        str
    liveness_bond: int

    @classmethod
    def from_block(cls, block: Block, meta: BlockMetadata) -> "BlockContext":
        return cls(
            meta_hash=     block.meta_hash,
            block_id=      meta.block_id,
            min_tier=      meta.min_tier,
            blob_hash=     meta.blob_hash,
            prover=        block.assigned_prover,
            liveness_bond= block.liveness_bond,
        )


@dataclass(frozen=True)
class SettlementReceipt:
    """Amounts moved by one successful fee settlement."""
    prover:    str
    fee_token: str
    fee:       int
    tip:       int
    refund:    int
    tip_paid:  bool
    bond:      int = 0
    fee_payer: Optional[str] = None
