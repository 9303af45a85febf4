"""
Fungible token contract with pull-transfer support.

Used for liveness bonds, token-denominated prover fees and airdrops.
"""

import logging
from typing import Dict, Tuple

from rollsettle.core.canonical import ZERO_HASH
from rollsettle.core.exceptions import InsufficientBalance, LedgerError
from rollsettle.ledger.ledger import Ledger

logger = logging.getLogger(__name__)


class FungibleToken:
    """
    Balance and allowance bookkeeping for one token.

    Registers itself on the ledger so its state takes part in rollback.
    """

    def __init__(self, ledger: Ledger, symbol: str, address: str = None):
        self.ledger  = ledger
        self.symbol  = symbol
        self.address = address or ledger.new_address(f"token:{symbol}")

        self._balances:   Dict[str, int]             = {}
        self._allowances: Dict[Tuple[str, str], int] = {}

        ledger.register_contract(self.address, self)

    # ── Views ─────────────────────────────────────────────────

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    @property
    def total_supply(self) -> int:
        return sum(self._balances.values())

    # ── Mutations ─────────────────────────────────────────────

    def mint(self, to: str, amount: int) -> None:
        self._check_amount(amount)
        self._balances[to] = self.balance_of(to) + amount
        self.ledger.emit(self.address, "Transfer", sender=ZERO_HASH, to=to, amount=amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._check_amount(amount)
        self._allowances[(owner, spender)] = amount
        self.ledger.emit(self.address, "Approval", owner=owner, spender=spender, amount=amount)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._move(sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        """Pull amount from owner to to, spending spender's allowance."""
        self._check_amount(amount)
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientBalance(
                f"{self.symbol} allowance too low",
                {"owner": owner[:16], "allowance": allowed, "amount": amount},
            )
        self._move(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def _move(self, sender: str, to: str, amount: int) -> None:
        self._check_amount(amount)
        if to == ZERO_HASH:
            raise LedgerError(f"{self.symbol} transfer to the zero address")
        available = self.balance_of(sender)
        if available < amount:
            raise InsufficientBalance(
                f"{self.symbol} balance too low",
                {"owner": sender[:16], "balance": available, "amount": amount},
            )
        self._balances[sender] = available - amount
        self._balances[to]     = self.balance_of(to) + amount
        self.ledger.emit(self.address, "Transfer", sender=sender, to=to, amount=amount)

    @staticmethod
    def _check_amount(amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise LedgerError("Token amount must be a non-negative int", {"amount": amount})

    # ── Rollback ──────────────────────────────────────────────

    def snapshot_state(self):
        return dict(self._balances), dict(self._allowances)

    def restore_state(self, state) -> None:
        balances, allowances = state
        self._balances   = dict(balances)
        self._allowances = dict(allowances)

    def __repr__(self) -> str:
        return f"FungibleToken(symbol={self.symbol!r}, address={self.address[:16]}...)"
