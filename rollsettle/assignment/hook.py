"""
Assignment hook — entry point the block-proposal pipeline calls.

onAssignmentSettlement contract, in this exact order:
  1. Caller must be the configured proposer      → Unauthorized
  2. Acquire execution lock                      → ReentrantCall
  3. Open ledger transaction, take attached value
  4. Decode encoded input                        → MalformedInput
  5. Validate assignment against block context   → AssignmentExpiredOrInvalid
  6. Verify prover signature over commitment     → InvalidSignature
  7. Settle bond, fee, tip, refund               → TierNotFound / InsufficientFee
  8. Emit AssignmentSettled
Any raise in 3–8 restores every balance, token and event.
"""

import logging
from typing import Optional

from rollsettle.assignment.fees import FeeSettlement
from rollsettle.assignment.signature import (
    compute_commitment_hash,
    verify_assignment_signature,
)
from rollsettle.assignment.validator import validate_assignment
from rollsettle.core.config import HookConfig
from rollsettle.core.exceptions import Unauthorized
from rollsettle.core.models import (
    Assignment,
    Block,
    BlockContext,
    BlockMetadata,
    SettlementReceipt,
    decode_settlement_request,
)
from rollsettle.ledger.guard import NonReentrant
from rollsettle.ledger.ledger import Ledger
from rollsettle.ledger.token import FungibleToken

logger = logging.getLogger(__name__)


class AssignmentHook:
    """
    Verifies prover assignments and settles their fees.

    Dependencies are injected: the trusted proposer address, the bond
    token and the configuration. The hook registers itself as a
    contract account on the ledger.
    """

    EVENT_SETTLED = "AssignmentSettled"

    def __init__(
        self,
        ledger:     Ledger,
        proposer:   str,
        bond_token: FungibleToken,
        config:     Optional[HookConfig] = None,
        address:    Optional[str] = None,
    ):
        self.ledger     = ledger
        self.proposer   = proposer
        self.bond_token = bond_token
        self.config     = config or HookConfig()
        self.address    = address or ledger.new_address("assignment-hook")

        self._lock = NonReentrant("AssignmentHook")
        self._fees = FeeSettlement(
            ledger=                ledger,
            address=               self.address,
            bond_token=            bond_token,
            max_gas_paying_prover= self.config.max_gas_paying_prover,
        )
        ledger.register_contract(self.address, self)

    # ── Pure ──────────────────────────────────────────────────

    def compute_commitment_hash(
        self,
        assignment:        Assignment,
        verifying_address: str,
        blob_hash:         str,
    ) -> str:
        """Hash a prover signs off-ledger for this deployment's domain."""
        return compute_commitment_hash(
            assignment, verifying_address, blob_hash, self.config.assignment_domain,
        )

    # ── Entry point ───────────────────────────────────────────

    def on_assignment_settlement(
        self,
        caller:        str,
        block:         Block,
        meta:          BlockMetadata,
        encoded_input: bytes,
        value:         int = 0,
    ) -> SettlementReceipt:
        """
        Settle the prover assignment attached to a proposed block.

        Args:
            caller:        Must be the configured proposer. Pays value,
                           receives the liveness bond and any refund.
            block:         Stored block record (meta hash, prover, bond).
            meta:          Block metadata (blob hash, min tier, coinbase).
            encoded_input: encode_settlement_request() bytes.
            value:         Native value attached to the call.

        Returns:
            SettlementReceipt with the amounts moved.
        """
        if caller != self.proposer:
            raise Unauthorized(
                "Only the block proposer may settle assignments",
                {"caller": caller[:16]},
            )

        with self._lock.hold(), self.ledger.transaction():
            self.ledger.send_native(caller, self.address, value)

            request    = decode_settlement_request(encoded_input)
            assignment = request.assignment
            ctx        = BlockContext.from_block(block, meta)

            validate_assignment(assignment, ctx, self.ledger.timestamp, self.ledger.number)

            verify_assignment_signature(
                assignment,
                verifying_address= caller,
                blob_hash=         ctx.blob_hash,
                signer=            ctx.prover,
                ledger=            self.ledger,
                domain=            self.config.assignment_domain,
            )

            receipt = self._fees.settle(
                assignment=    assignment,
                tip=           request.tip,
                native_value=  value,
                prover=        ctx.prover,
                bond=          ctx.liveness_bond,
                min_tier=      ctx.min_tier,
                payer=         caller,
                fee_recipient= self.ledger.coinbase,
                token_payer=   meta.coinbase,
            )

            self.ledger.emit(
                self.address,
                self.EVENT_SETTLED,
                prover=     ctx.prover,
                meta=       meta.to_dict(),
                assignment= assignment.to_dict(),
            )

        logger.info("Assignment settled for block %d", ctx.block_id)
        return receipt
