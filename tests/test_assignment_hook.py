"""
tests/test_assignment_hook.py

End-to-end assignment settlement through AssignmentHook.

  HOOK-01  Scenario: native fee 100, tip 10, value 150 → 100 / 10 / 40 + event
  HOOK-02  Scenario: value 90 → InsufficientFee, nothing moves, no event
  HOOK-03  Token-denominated fee pulled from the L2 block proposer
  HOOK-04  Only the configured proposer may call
  HOOK-05  Expired or mis-bound assignment rejected before any transfer
  HOOK-06  Signature from a non-assigned key rejected
  HOOK-07  Signature replay onto another blob rejected
  HOOK-08  Malformed encoded input rejected, attached value restored
  HOOK-09  Re-entry from the prover callback aborts the whole call
  HOOK-10  Gas ceiling comes from configuration
  HOOK-11  Contract prover (delegated signer) settles
  HOOK-12  Codec preserves the request and bounds unsigned fields
"""

import dataclasses

import pytest

from rollsettle.assignment.hook import AssignmentHook
from rollsettle.assignment.signature import DelegatedSigner
from rollsettle.core.canonical import canonicalize
from rollsettle.core.config import HookConfig
from rollsettle.core.crypto import Ed25519KeyManager
from rollsettle.core.exceptions import (
    AssignmentExpiredOrInvalid,
    InsufficientFee,
    InvalidSignature,
    MalformedInput,
    OutOfGas,
    ReentrantCall,
    TransferFailed,
    Unauthorized,
)
from rollsettle.core.models import (
    MAX_UINT,
    NATIVE_TOKEN,
    Assignment,
    Block,
    BlockMetadata,
    SettlementRequest,
    TierFee,
    decode_settlement_request,
    encode_settlement_request,
    parse_uint,
)
from rollsettle.ledger.ledger import Ledger
from rollsettle.ledger.token import FungibleToken

from helpers.builders import account, sign_assignment


PROPOSER    = account("rollup")
BUILDER     = account("builder")
L2_PROPOSER = account("l2-proposer")
META_HASH   = "4d" * 32
BLOB_HASH   = "b1" * 32

NOW    = 1_000
HEIGHT = 50
BOND   = 250


class Deployment:
    """A ledger with a deployed hook, a bonded prover and a funded proposer."""

    def __init__(self, config=None, prover_address=None):
        self.ledger = Ledger(timestamp=NOW, number=HEIGHT, coinbase=BUILDER)
        self.bond   = FungibleToken(self.ledger, "BOND")
        self.hook   = AssignmentHook(self.ledger, PROPOSER, self.bond, config=config)
        self.key    = Ed25519KeyManager.generate()
        self.prover = prover_address or self.key.address

        self.ledger.credit(PROPOSER, 1_000)
        self.bond.mint(self.prover, 1_000)
        self.bond.approve(self.prover, self.hook.address, 1_000)

    def block(self, **changes):
        block = Block(
            meta_hash=       META_HASH,
            block_id=        7,
            assigned_prover= self.prover,
            liveness_bond=   BOND,
        )
        return dataclasses.replace(block, **changes)

    def meta(self, **changes):
        meta = BlockMetadata(
            block_id=  7,
            blob_hash= BLOB_HASH,
            min_tier=  1,
            coinbase=  L2_PROPOSER,
            sender=    PROPOSER,
        )
        return dataclasses.replace(meta, **changes)

    def signed(self, assignment, blob_hash=BLOB_HASH):
        return sign_assignment(self.key, assignment, PROPOSER, blob_hash)

    def settle(self, assignment, tip=10, value=150, caller=PROPOSER, meta=None, block=None):
        data = encode_settlement_request(SettlementRequest(assignment, tip))
        return self.hook.on_assignment_settlement(
            caller, block or self.block(), meta or self.meta(), data, value=value,
        )

    def balances(self):
        return {
            "proposer": self.ledger.balance_of(PROPOSER),
            "prover":   self.ledger.balance_of(self.prover),
            "builder":  self.ledger.balance_of(BUILDER),
            "hook":     self.ledger.balance_of(self.hook.address),
            "bond":     self.bond.balance_of(self.prover),
            "events":   len(self.ledger.events),
        }


@pytest.fixture
def dep():
    return Deployment()


def native_assignment(**changes):
    a = Assignment(fee_token=NATIVE_TOKEN, expiry=2_000, tier_fees=[TierFee(1, 100)])
    return dataclasses.replace(a, **changes)


# ─────────────────────────────────────────────────────────────
# Scenarios
# ─────────────────────────────────────────────────────────────

class TestScenarios:

    def test_HOOK01_native_fee_settles(self, dep):
        assignment = dep.signed(native_assignment())
        receipt = dep.settle(assignment, tip=10, value=150)

        assert dep.ledger.balance_of(dep.prover) == 100
        assert dep.ledger.balance_of(BUILDER) == 10
        assert dep.ledger.balance_of(PROPOSER) == 1_000 - 150 + 40
        assert dep.ledger.balance_of(dep.hook.address) == 0
        assert dep.bond.balance_of(PROPOSER) == BOND
        assert receipt.refund == 40

        events = dep.ledger.events_named(AssignmentHook.EVENT_SETTLED)
        assert len(events) == 1
        assert events[0].emitter == dep.hook.address
        assert events[0].args["prover"] == dep.prover
        assert events[0].args["meta"] == dep.meta().to_dict()
        assert events[0].args["assignment"] == assignment.to_dict()

    def test_HOOK02_insufficient_value_moves_nothing(self, dep):
        assignment = dep.signed(native_assignment())
        before = dep.balances()

        with pytest.raises(InsufficientFee):
            dep.settle(assignment, tip=10, value=90)

        assert dep.balances() == before
        assert dep.ledger.events_named(AssignmentHook.EVENT_SETTLED) == []

    def test_HOOK03_token_fee(self, dep):
        fee_tok = FungibleToken(dep.ledger, "USD")
        fee_tok.mint(L2_PROPOSER, 500)
        fee_tok.approve(L2_PROPOSER, dep.hook.address, 500)

        assignment = dep.signed(native_assignment(fee_token=fee_tok.address))
        receipt = dep.settle(assignment, tip=10, value=30)

        assert fee_tok.balance_of(dep.prover) == 100
        assert fee_tok.balance_of(L2_PROPOSER) == 400
        assert dep.ledger.balance_of(BUILDER) == 10
        assert dep.ledger.balance_of(PROPOSER) == 1_000 - 30 + 20
        assert receipt.fee_payer == L2_PROPOSER


# ─────────────────────────────────────────────────────────────
# Authorization
# ─────────────────────────────────────────────────────────────

class TestAuthorization:

    def test_HOOK04_only_proposer(self, dep):
        intruder = account("intruder")
        dep.ledger.credit(intruder, 1_000)
        with pytest.raises(Unauthorized):
            dep.settle(dep.signed(native_assignment()), caller=intruder)
        assert dep.ledger.balance_of(intruder) == 1_000

    @pytest.mark.parametrize(
        "changes",
        [
            {"expiry": NOW - 1},
            {"meta_hash": "99" * 32},
            {"max_block_id": 6},
            {"max_proposed_in": HEIGHT - 1},
        ],
        ids=["expired", "meta_hash", "max_block_id", "max_proposed_in"],
    )
    def test_HOOK05_invalid_assignment(self, dep, changes):
        before = dep.balances()
        with pytest.raises(AssignmentExpiredOrInvalid):
            dep.settle(dep.signed(native_assignment(**changes)))
        assert dep.balances() == before

    def test_HOOK05_bound_meta_hash_accepted(self, dep):
        dep.settle(dep.signed(native_assignment(meta_hash=META_HASH, max_block_id=7)))
        assert dep.ledger.balance_of(dep.prover) == 100

    def test_HOOK06_wrong_key(self, dep):
        stranger = Ed25519KeyManager.generate()
        forged = sign_assignment(stranger, native_assignment(), PROPOSER, BLOB_HASH)
        before = dep.balances()
        with pytest.raises(InvalidSignature):
            dep.settle(forged)
        assert dep.balances() == before

    def test_HOOK07_replay_onto_other_blob(self, dep):
        assignment = dep.signed(native_assignment())
        dep.settle(assignment)
        with pytest.raises(InvalidSignature):
            dep.settle(assignment, meta=dep.meta(blob_hash="b2" * 32))

    def test_HOOK07_fee_tampering_detected(self, dep):
        assignment = dep.signed(native_assignment())
        cheaper = dataclasses.replace(assignment, tier_fees=[TierFee(1, 1)])
        with pytest.raises(InvalidSignature):
            dep.settle(cheaper)

    @pytest.mark.parametrize(
        "data",
        [
            b"",
            b"not json",
            b"[]",
            canonicalize({"tip": "1"}),
            canonicalize({"assignment": {"fee_token": "xyz", "expiry": "1"}, "tip": "0"}),
            canonicalize({"assignment": {"fee_token": "0" * 64, "expiry": "-1"}, "tip": "0"}),
            canonicalize({"assignment": {"fee_token": "0" * 64, "expiry": "1"}, "tip": True}),
        ],
    )
    def test_HOOK08_malformed_input(self, dep, data):
        before = dep.balances()
        with pytest.raises(MalformedInput):
            dep.hook.on_assignment_settlement(PROPOSER, dep.block(), dep.meta(), data, value=150)
        assert dep.balances() == before


# ─────────────────────────────────────────────────────────────
# Malicious recipients
# ─────────────────────────────────────────────────────────────

class ReenteringProver(DelegatedSigner):
    """Contract prover that tries to settle again when paid."""

    def __init__(self, operators, hook, payload):
        super().__init__(operators)
        self.hook    = hook
        self.payload = payload

    def receive(self, ledger, sender, amount, gas):
        block, meta, data = self.payload
        self.hook.on_assignment_settlement(PROPOSER, block, meta, data, value=0)


class BurningProver(DelegatedSigner):

    def __init__(self, operators, burn):
        super().__init__(operators)
        self.burn = burn

    def receive(self, ledger, sender, amount, gas):
        gas.consume(self.burn)


class TestMaliciousRecipients:

    def _contract_deployment(self, make_contract, config=None):
        prover = account("contract-prover")
        dep = Deployment(config=config, prover_address=prover)
        dep.ledger.register_contract(prover, make_contract(dep))
        return dep

    def test_HOOK09_reentry_aborts(self):
        holder = {}

        def make(dep):
            contract = ReenteringProver([dep.key.address], dep.hook, None)
            holder["contract"] = contract
            return contract

        dep = self._contract_deployment(make)
        assignment = dep.signed(native_assignment())
        data = encode_settlement_request(SettlementRequest(assignment, 10))
        holder["contract"].payload = (dep.block(), dep.meta(), data)

        before = dep.balances()
        with pytest.raises(TransferFailed) as exc:
            dep.settle(assignment)
        assert isinstance(exc.value.__cause__, ReentrantCall)
        assert dep.balances() == before
        assert not dep.hook._lock.entered

    def test_HOOK10_gas_ceiling_from_config(self):
        make = lambda dep: BurningProver([dep.key.address], 250_000)

        strict = self._contract_deployment(make)
        with pytest.raises(TransferFailed) as exc:
            strict.settle(strict.signed(native_assignment()))
        assert isinstance(exc.value.__cause__, OutOfGas)

        relaxed = self._contract_deployment(make, HookConfig(max_gas_paying_prover=300_000))
        relaxed.settle(relaxed.signed(native_assignment()))
        assert relaxed.ledger.balance_of(relaxed.prover) == 100

    def test_HOOK11_contract_prover_settles(self):
        dep = self._contract_deployment(lambda d: DelegatedSigner([d.key.address]))
        dep.settle(dep.signed(native_assignment()))
        assert dep.ledger.balance_of(dep.prover) == 100
        assert dep.bond.balance_of(PROPOSER) == BOND


class TestCodec:

    def test_HOOK12_codec_preserves_request(self, dep):
        request = SettlementRequest(dep.signed(native_assignment(max_block_id=3)), tip=7)
        assert decode_settlement_request(encode_settlement_request(request)) == request

    def test_HOOK12_decoder_accepts_json_ints(self):
        data = b'{"assignment": {"fee_token": "' + b"0" * 64 + b'", "expiry": 5}, "tip": 2}'
        request = decode_settlement_request(data)
        assert request.tip == 2
        assert request.assignment.expiry == 5
        assert request.assignment.tier_fees == []

    @pytest.mark.parametrize(
        "expiry",
        [
            b"9" * 5_000,
            b'"' + b"9" * 5_000 + b'"',
            str(MAX_UINT + 1).encode(),
            b'"' + str(MAX_UINT + 1).encode() + b'"',
        ],
        ids=["huge-number", "huge-string", "uint256-overflow", "uint256-overflow-string"],
    )
    def test_HOOK12_oversized_integers_are_malformed(self, expiry):
        data = b'{"assignment": {"fee_token": "' + b"0" * 64 + b'", "expiry": ' + expiry + b'}, "tip": 0}'
        with pytest.raises(MalformedInput):
            decode_settlement_request(data)

    def test_HOOK12_uint_bounds(self):
        assert parse_uint(str(MAX_UINT), "expiry") == MAX_UINT
        assert parse_uint("0" * 100 + "5", "expiry") == 5
        with pytest.raises(MalformedInput) as exc:
            parse_uint("12a", "expiry")
        assert exc.value.details["value"] == "'12a'"
