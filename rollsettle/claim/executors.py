"""
Claim execution strategies.

A deployment picks one executor; the claim engine calls it after the
claim hash has been marked consumed. Executors must raise on failure so
the enclosing transaction rolls the mark back.
"""

import json
from abc import ABC, abstractmethod
from typing import Callable, Tuple

from rollsettle.core.canonical import canonicalize
from rollsettle.core.exceptions import MalformedInput
from rollsettle.core.models import parse_hex32, parse_uint
from rollsettle.ledger.token import FungibleToken


class ClaimExecutor(ABC):
    """Performs the entitlement transfer behind a verified claim."""

    @abstractmethod
    def execute(self, payload: bytes, spender: str) -> None:
        """
        Args:
            payload: The claimed payload, exactly as proven.
            spender: Address of the claim engine (the approved spender).
        """
        ...


def encode_airdrop_payload(user: str, amount: int) -> bytes:
    """Canonical payload bytes for one fungible airdrop entitlement."""
    return canonicalize({"user": user, "amount": str(amount)})


def decode_airdrop_payload(payload: bytes) -> Tuple[str, int]:
    try:
        obj = json.loads(bytes(payload).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
        raise MalformedInput(f"airdrop payload is not valid JSON: {exc}") from exc
    if not isinstance(obj, dict) or "user" not in obj or "amount" not in obj:
        raise MalformedInput("airdrop payload must carry user and amount")
    return parse_hex32(obj["user"], "user"), parse_uint(obj["amount"], "amount")


class TokenAirdrop(ClaimExecutor):
    """Pays `amount` of `token` from `vault` to the payload's user."""

    def __init__(self, token: FungibleToken, vault: str):
        self.token = token
        self.vault = vault

    def execute(self, payload: bytes, spender: str) -> None:
        user, amount = decode_airdrop_payload(payload)
        self.token.transfer_from(spender, self.vault, user, amount)


class CallableExecutor(ClaimExecutor):
    """Adapts a plain callable(payload, spender) into an executor."""

    def __init__(self, fn: Callable[[bytes, str], None]):
        self.fn = fn

    def execute(self, payload: bytes, spender: str) -> None:
        self.fn(payload, spender)
