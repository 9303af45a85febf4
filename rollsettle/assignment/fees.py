"""
Tiered prover fee computation and dual-currency payment settlement.

VALUE INVARIANT (native fee):
    native_value == fee + tip + refund
VALUE INVARIANT (token fee):
    native_value == tip + refund, fee moves in the fee token

Every check runs before the first transfer. Transfers run inside one
ledger transaction, so a failing recipient undoes the whole settlement.
"""

import logging
from typing import List, Optional

from rollsettle.core.canonical import ZERO_HASH
from rollsettle.core.config import DEFAULT_MAX_GAS_PAYING_PROVER
from rollsettle.core.exceptions import InsufficientFee, LedgerError, TierNotFound
from rollsettle.core.models import Assignment, SettlementReceipt, TierFee
from rollsettle.ledger.ledger import Ledger
from rollsettle.ledger.token import FungibleToken

logger = logging.getLogger(__name__)


def get_prover_fee(tier_fees: List[TierFee], min_tier: int) -> int:
    """First-match fee for min_tier. Later duplicates are ignored."""
    for tier_fee in tier_fees:
        if tier_fee.tier == min_tier:
            return tier_fee.fee
    raise TierNotFound("No fee offered for required tier", {"min_tier": min_tier})


def _check_uint(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise LedgerError(f"{name} must be a non-negative int", {name: value})
    return value


class FeeSettlement:
    """
    Moves the liveness bond, prover fee, tip and refund for one assignment.

    The engine account at `address` must already hold native_value
    when settle() is called; it ends the call holding none of it.
    """

    def __init__(
        self,
        ledger:                Ledger,
        address:               str,
        bond_token:            FungibleToken,
        max_gas_paying_prover: int = DEFAULT_MAX_GAS_PAYING_PROVER,
    ):
        self.ledger                = ledger
        self.address               = address
        self.bond_token            = bond_token
        self.max_gas_paying_prover = max_gas_paying_prover

    def settle(
        self,
        assignment:    Assignment,
        tip:           int,
        native_value:  int,
        prover:        str,
        bond:          int,
        min_tier:      int,
        payer:         str,
        fee_recipient: Optional[str],
        token_payer:   Optional[str] = None,
    ) -> SettlementReceipt:
        """
        Settle one assignment.

        Args:
            assignment:    Verified assignment.
            tip:           Native tip for the fee recipient.
            native_value:  Native value attached by the payer.
            prover:        Assigned prover; posts the bond, receives the fee.
            bond:          Liveness bond amount in the bond token.
            min_tier:      Tier whose fee is charged.
            payer:         Party that advanced the block. Receives the bond
                           and any refund.
            fee_recipient: Tip destination. None or ZERO_HASH returns the tip to payer.
            token_payer:   Source of a token-denominated fee. Defaults to payer.

        Raises:
            TierNotFound, InsufficientFee, or any ledger error from a transfer.
        """
        _check_uint(tip, "tip")
        _check_uint(native_value, "native_value")
        _check_uint(bond, "bond")

        fee = get_prover_fee(assignment.tier_fees, min_tier)

        required = fee + tip if assignment.pays_native else tip
        if native_value < required:
            raise InsufficientFee(
                "Attached value does not cover fee and tip",
                {"provided": native_value, "required": required},
            )
        refund = native_value - required

        pay_tip = tip != 0 and fee_recipient not in (None, ZERO_HASH)
        fee_payer = token_payer or payer

        fee_token = None
        if not assignment.pays_native:
            fee_token = self.ledger.contract_at(assignment.fee_token)
            if not isinstance(fee_token, FungibleToken):
                raise LedgerError(
                    "Fee token is not a token contract",
                    {"fee_token": assignment.fee_token[:16]},
                )

        with self.ledger.transaction():
            self.bond_token.transfer_from(self.address, prover, payer, bond)

            if assignment.pays_native:
                self.ledger.send_native(
                    self.address, prover, fee, gas_limit=self.max_gas_paying_prover,
                )
            else:
                fee_token.transfer_from(self.address, fee_payer, prover, fee)

            if pay_tip:
                self.ledger.send_native(self.address, fee_recipient, tip)
            elif tip != 0:
                logger.warning("No fee recipient configured; tip of %d returned to payer", tip)

            returned = refund if pay_tip else refund + tip
            if returned != 0:
                self.ledger.send_native(self.address, payer, returned)

        logger.info(
            "Settled prover %s: fee=%d tip=%d refund=%d native=%s",
            prover[:16], fee, tip, refund, assignment.pays_native,
        )
        return SettlementReceipt(
            prover=    prover,
            fee_token= assignment.fee_token,
            fee=       fee,
            tip=       tip,
            refund=    refund,
            tip_paid=  pay_tip,
            bond=      bond,
            fee_payer= None if assignment.pays_native else fee_payer,
        )
