"""
In-process ledger for rollsettle.

Supplies what the settlement engines assume of the underlying chain:
    - atomic, all-or-nothing transactions (transaction())
    - native balances and value transfers to contract accounts
    - gas-bounded recipient callbacks
    - block environment (timestamp, number, coinbase)
    - an append-only event log

ATOMICITY INVARIANT:
    Every registered contract exposing snapshot_state()/restore_state()
    is captured when a transaction opens and restored if it raises.
    Balances and events are captured the same way.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from rollsettle.core.canonical import ZERO_HASH, canonical_hash
from rollsettle.core.exceptions import (
    InsufficientBalance,
    LedgerError,
    OutOfGas,
    TransferFailed,
)

logger = logging.getLogger(__name__)


DEFAULT_CALL_GAS = 30_000_000


@dataclass(frozen=True)
class Event:
    """One entry of the ledger event log."""
    index:   int
    emitter: str
    name:    str
    args:    Dict[str, Any] = field(default_factory=dict)


class GasMeter:
    """
    Gas budget handed to a recipient callback.

    Callbacks call consume() for the work they do; crossing the limit
    raises OutOfGas and the surrounding transfer fails.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self.used  = 0

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    def consume(self, amount: int) -> None:
        if amount < 0:
            raise ValueError("gas amount must be non-negative")
        if self.used + amount > self.limit:
            self.used = self.limit
            raise OutOfGas(
                "Recipient exceeded gas budget",
                {"limit": self.limit, "requested": amount},
            )
        self.used += amount


class Ledger:
    """
    Account-based ledger with native balances and contract accounts.

    Contract accounts are plain Python objects registered under an
    address. A contract may define:
        receive(ledger, sender, amount, gas)       — native value callback
        is_valid_signature(hash_hex, signature)    — programmable signer
        snapshot_state() / restore_state(state)    — rollback participation
    """

    def __init__(
        self,
        timestamp:        int = 0,
        number:           int = 0,
        coinbase:         str = ZERO_HASH,
        default_call_gas: int = DEFAULT_CALL_GAS,
    ) -> None:
        self.timestamp        = timestamp
        self.number           = number
        self.coinbase         = coinbase
        self.default_call_gas = default_call_gas

        self._balances:  Dict[str, int] = {}
        self._contracts: Dict[str, Any] = {}
        self._events:    List[Event]    = []
        self._address_nonce = 0

    # ── Block environment ─────────────────────────────────────

    def advance(self, seconds: int = 0, blocks: int = 0) -> None:
        """Move the block environment forward."""
        if seconds < 0 or blocks < 0:
            raise ValueError("cannot move the ledger backwards")
        self.timestamp += seconds
        self.number    += blocks

    # ── Accounts ──────────────────────────────────────────────

    def new_address(self, label: str) -> str:
        """Derive a fresh deterministic contract address."""
        self._address_nonce += 1
        return canonical_hash({"label": label, "nonce": self._address_nonce})

    def register_contract(self, address: str, contract: Any) -> None:
        if address in self._contracts:
            raise LedgerError("Address already holds a contract", {"address": address})
        self._contracts[address] = contract

    def contract_at(self, address: str) -> Optional[Any]:
        return self._contracts.get(address)

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def credit(self, address: str, amount: int) -> None:
        """Create native value out of thin air. Genesis funding and tests only."""
        if amount < 0:
            raise ValueError("credit amount must be non-negative")
        self._balances[address] = self.balance_of(address) + amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise LedgerError("Transfer amount must be non-negative", {"amount": amount})
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalance(
                "Native balance too low",
                {"account": sender[:16], "balance": available, "amount": amount},
            )
        self._balances[sender] = available - amount
        self._balances[to]     = self.balance_of(to) + amount

    def send_native(
        self,
        sender:    str,
        to:        str,
        amount:    int,
        gas_limit: Optional[int] = None,
    ) -> None:
        """
        Send native value and run the recipient's receive callback.

        gas_limit bounds the callback; None forwards the default call gas.
        Any failure inside the callback surfaces as TransferFailed.
        """
        if to == ZERO_HASH:
            raise TransferFailed("Cannot send native value to the zero address")
        self._move(sender, to, amount)

        contract = self._contracts.get(to)
        receive  = getattr(contract, "receive", None)
        if receive is None:
            return

        gas = GasMeter(gas_limit if gas_limit is not None else self.default_call_gas)
        try:
            receive(self, sender, amount, gas)
        except Exception as exc:
            logger.debug("Receive callback of %s failed: %s", to[:16], exc)
            raise TransferFailed(
                "Native transfer rejected by recipient",
                {"to": to[:16], "amount": amount, "gas_used": gas.used},
            ) from exc

    # ── Events ────────────────────────────────────────────────

    def emit(self, emitter: str, name: str, **args: Any) -> Event:
        event = Event(index=len(self._events), emitter=emitter, name=name, args=args)
        self._events.append(event)
        return event

    @property
    def events(self) -> List[Event]:
        return list(self._events)

    def events_named(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    # ── Atomicity ─────────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator["Ledger"]:
        """
        Run a block of ledger operations all-or-nothing.

        On any exception every balance, contract state and event recorded
        since entry is restored, then the exception propagates unchanged.
        Nesting is allowed; each level restores only its own changes.
        """
        balances = dict(self._balances)
        n_events = len(self._events)
        states = {
            address: contract.snapshot_state()
            for address, contract in self._contracts.items()
            if hasattr(contract, "snapshot_state")
        }
        try:
            yield self
        except BaseException:
            self._balances = balances
            del self._events[n_events:]
            for address, state in states.items():
                self._contracts[address].restore_state(state)
            raise

