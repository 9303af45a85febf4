"""
rollsettle/claim/claimable.py

One-time merkle-gated claims.

claim() contract, in this exact order:
  1. Acquire execution lock                         → ReentrantCall
  2. Claim window open and root published           → ClaimNotOngoing
  3. h = claim_hash(payload)
  4. h already consumed                             → AlreadyClaimed
  5. proof reconstructs merkle_root from h          → InvalidProof
  6. mark h consumed                                (irreversible)
  7. executor.execute(payload)                      (rolled back with 6 on failure)
  8. emit Claimed(h)

STATE LAYOUT — version 1:
    {"version": 1, "merkle_root", "claim_start", "claim_end", "claimed": [sorted hashes]}
Loading any other version raises StateVersionError.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Set

from rollsettle.claim.executors import ClaimExecutor
from rollsettle.claim.merkle import verify_proof
from rollsettle.core.canonical import ZERO_HASH, canonical_hash, canonicalize
from rollsettle.core.config import DEFAULT_CLAIM_DOMAIN, HookConfig
from rollsettle.core.exceptions import (
    AlreadyClaimed,
    ClaimNotOngoing,
    InvalidProof,
    MalformedInput,
    StateVersionError,
    Unauthorized,
    ValidationError,
)
from rollsettle.core.models import parse_hex32, parse_uint
from rollsettle.ledger.guard import NonReentrant
from rollsettle.ledger.ledger import Ledger

logger = logging.getLogger(__name__)


STATE_VERSION = 1


def claim_hash(payload: bytes, domain: str = DEFAULT_CLAIM_DOMAIN) -> str:
    """Domain-separated key a payload is consumed under."""
    if not isinstance(payload, (bytes, bytearray)):
        raise MalformedInput("claim payload must be bytes")
    return canonical_hash({"domain": domain, "data": bytes(payload).hex()})


def claim_once(
    payload:         bytes,
    proof:           Sequence[str],
    published_root:  str,
    already_claimed: Set[str],
    execute_claim,
    domain:          str = DEFAULT_CLAIM_DOMAIN,
) -> str:
    """
    Verify and consume one claim against a claimed-set.

    execute_claim(payload) runs after the hash is added; if it raises,
    the hash is removed again before the error propagates.

    Returns:
        The consumed claim hash.
    """
    h = claim_hash(payload, domain)
    if h in already_claimed:
        raise AlreadyClaimed("Claim already consumed", {"hash": h[:16]})
    if not verify_proof(proof, published_root, h):
        raise InvalidProof("Merkle proof does not match published root", {"hash": h[:16]})

    already_claimed.add(h)
    try:
        execute_claim(payload)
    except BaseException:
        already_claimed.discard(h)
        raise
    return h


@dataclass
class ClaimState:
    """Explicitly versioned persistent state of a claim engine."""
    merkle_root: str = ZERO_HASH
    claim_start: int = 0
    claim_end:   int = 0
    claimed:     Set[str] = field(default_factory=set)
    version:     int = STATE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version":     self.version,
            "merkle_root": self.merkle_root,
            "claim_start": str(self.claim_start),
            "claim_end":   str(self.claim_end),
            "claimed":     sorted(self.claimed),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimState":
        if not isinstance(data, dict):
            raise ValidationError("claim state must be an object")
        version = data.get("version")
        if version != STATE_VERSION:
            raise StateVersionError(
                "Unsupported claim state version",
                {"expected": STATE_VERSION, "got": version},
            )
        claimed = data.get("claimed", [])
        if not isinstance(claimed, list):
            raise ValidationError("claimed must be a list")
        return cls(
            merkle_root= parse_hex32(data.get("merkle_root", ZERO_HASH), "merkle_root"),
            claim_start= parse_uint(data.get("claim_start", 0), "claim_start"),
            claim_end=   parse_uint(data.get("claim_end", 0), "claim_end"),
            claimed=     {parse_hex32(h, "claimed") for h in claimed},
            version=     version,
        )

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(canonicalize(self.to_dict()))

    @classmethod
    def load(cls, path: Path) -> "ClaimState":
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValidationError(f"Invalid claim state JSON in {path}: {exc}") from exc
        return cls.from_dict(data)


class MerkleClaimable:
    """
    Merkle-gated, one-time claim engine.

    The owner publishes a root and a claim window with set_config();
    anyone may then claim with a payload and its proof.
    """

    EVENT_CLAIMED = "Claimed"
    EVENT_CONFIG  = "ConfigUpdated"

    def __init__(
        self,
        ledger:   Ledger,
        owner:    str,
        executor: ClaimExecutor,
        config:   Optional[HookConfig] = None,
        state:    Optional[ClaimState] = None,
        address:  Optional[str] = None,
    ):
        self.ledger   = ledger
        self.owner    = owner
        self.executor = executor
        self.config   = config or HookConfig()
        self.state    = state or ClaimState()
        self.address  = address or ledger.new_address("merkle-claimable")

        self._lock = NonReentrant("MerkleClaimable")
        ledger.register_contract(self.address, self)

    # ── Views ─────────────────────────────────────────────────

    def claim_hash(self, payload: bytes) -> str:
        return claim_hash(payload, self.config.claim_domain)

    def is_claimed(self, hash_hex: str) -> bool:
        return hash_hex in self.state.claimed

    def is_ongoing(self) -> bool:
        s   = self.state
        now = self.ledger.timestamp
        return not (
            s.merkle_root == ZERO_HASH
            or s.claim_start == 0
            or s.claim_end == 0
            or s.claim_start > now
            or s.claim_end < now
        )

    # ── Owner ─────────────────────────────────────────────────

    def set_config(self, caller: str, claim_start: int, claim_end: int, merkle_root: str) -> None:
        """Publish a merkle root and claim window. Owner only."""
        if caller != self.owner:
            raise Unauthorized("Only the owner may configure claims", {"caller": caller[:16]})
        claim_start = parse_uint(claim_start, "claim_start")
        claim_end   = parse_uint(claim_end, "claim_end")
        merkle_root = parse_hex32(merkle_root, "merkle_root")

        self.state.claim_start = claim_start
        self.state.claim_end   = claim_end
        self.state.merkle_root = merkle_root
        self.ledger.emit(
            self.address, self.EVENT_CONFIG,
            claim_start=claim_start, claim_end=claim_end, merkle_root=merkle_root,
        )

    # ── Claim ─────────────────────────────────────────────────

    def claim(self, caller: str, payload: bytes, proof: Sequence[str]) -> str:
        """
        Consume one entitlement. Anyone may call; no value is taken.

        Returns:
            The consumed claim hash.
        """
        with self._lock.hold(), self.ledger.transaction():
            if not self.is_ongoing():
                raise ClaimNotOngoing(
                    "Claim window is not open",
                    {"now": self.ledger.timestamp},
                )

            h = claim_once(
                payload,
                proof,
                self.state.merkle_root,
                self.state.claimed,
                lambda p: self.executor.execute(p, self.address),
                self.config.claim_domain,
            )
            self.ledger.emit(self.address, self.EVENT_CLAIMED, hash=h)

        logger.info("Claim %s consumed by %s", h[:16], caller[:16])
        return h

    # ── Rollback ──────────────────────────────────────────────

    def snapshot_state(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def restore_state(self, state: Dict[str, Any]) -> None:
        self.state = ClaimState.from_dict(state)
