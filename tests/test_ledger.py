"""
tests/test_ledger.py

Ledger atomicity, value transfers and the execution lock.

  LED-01  Failed transaction restores balances, token state and events
  LED-02  Nested transaction failure restores only the inner changes
  LED-03  send_native runs the receive callback with a gas budget
  LED-04  Callback failure surfaces as TransferFailed
  LED-05  Zero address and overdraft are rejected
  LED-06  Token allowances are spent by transfer_from
  LED-07  NonReentrant rejects nested entry and always releases
"""

import pytest

from rollsettle.core.canonical import ZERO_HASH
from rollsettle.core.exceptions import (
    InsufficientBalance,
    LedgerError,
    OutOfGas,
    ReentrantCall,
    TransferFailed,
)
from rollsettle.ledger.guard import NonReentrant
from rollsettle.ledger.ledger import GasMeter, Ledger
from rollsettle.ledger.token import FungibleToken

from helpers.builders import account


A = account("a")
B = account("b")


@pytest.fixture
def ledger():
    lg = Ledger(timestamp=10, number=1)
    lg.credit(A, 100)
    return lg


class TestAtomicity:

    def test_LED01_rollback_restores_everything(self, ledger):
        token = FungibleToken(ledger, "TKN")
        token.mint(A, 50)
        n_events = len(ledger.events)

        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.send_native(A, B, 30)
                token.transfer(A, B, 20)
                ledger.emit(A, "Something")
                raise RuntimeError("abort")

        assert ledger.balance_of(A) == 100
        assert ledger.balance_of(B) == 0
        assert token.balance_of(A) == 50
        assert token.balance_of(B) == 0
        assert len(ledger.events) == n_events

    def test_LED01_commit_keeps_changes(self, ledger):
        with ledger.transaction():
            ledger.send_native(A, B, 30)
        assert ledger.balance_of(B) == 30

    def test_LED02_nested_rollback(self, ledger):
        with ledger.transaction():
            ledger.send_native(A, B, 10)
            with pytest.raises(InsufficientBalance):
                with ledger.transaction():
                    ledger.send_native(A, B, 20)
                    ledger.send_native(A, B, 1_000)
        assert ledger.balance_of(B) == 10
        assert ledger.balance_of(A) == 90


class TestNativeTransfers:

    def test_LED03_callback_receives_gas_budget(self, ledger):
        seen = {}

        class Sink:
            def receive(self, lg, sender, amount, gas):
                seen.update(sender=sender, amount=amount, limit=gas.limit)
                gas.consume(1_000)

        sink = ledger.new_address("sink")
        ledger.register_contract(sink, Sink())
        ledger.send_native(A, sink, 5, gas_limit=2_000)

        assert seen == {"sender": A, "amount": 5, "limit": 2_000}
        assert ledger.balance_of(sink) == 5

    def test_LED03_default_gas(self, ledger):
        meters = []

        class Sink:
            def receive(self, lg, sender, amount, gas):
                meters.append(gas)

        sink = ledger.new_address("sink")
        ledger.register_contract(sink, Sink())
        ledger.send_native(A, sink, 1)
        assert meters[0].limit == ledger.default_call_gas

    def test_LED04_callback_failure(self, ledger):

        class Rejecting:
            def receive(self, lg, sender, amount, gas):
                raise ValueError("no thanks")

        sink = ledger.new_address("sink")
        ledger.register_contract(sink, Rejecting())
        with pytest.raises(TransferFailed) as exc:
            ledger.send_native(A, sink, 1)
        assert isinstance(exc.value.__cause__, ValueError)

    def test_LED04_gas_meter_overrun(self):
        gas = GasMeter(10)
        gas.consume(6)
        assert gas.remaining == 4
        with pytest.raises(OutOfGas):
            gas.consume(5)
        assert gas.remaining == 0

    def test_LED05_zero_address_and_overdraft(self, ledger):
        with pytest.raises(TransferFailed):
            ledger.send_native(A, ZERO_HASH, 1)
        with pytest.raises(InsufficientBalance):
            ledger.send_native(A, B, 101)
        with pytest.raises(LedgerError):
            ledger.send_native(A, B, -1)

    def test_LED05_duplicate_contract_address(self, ledger):
        addr = ledger.new_address("x")
        ledger.register_contract(addr, object())
        with pytest.raises(LedgerError):
            ledger.register_contract(addr, object())


class TestToken:

    def test_LED06_transfer_from_spends_allowance(self, ledger):
        token = FungibleToken(ledger, "TKN")
        token.mint(A, 100)
        token.approve(A, B, 60)

        token.transfer_from(B, A, B, 40)
        assert token.balance_of(B) == 40
        assert token.allowance(A, B) == 20

        with pytest.raises(InsufficientBalance):
            token.transfer_from(B, A, B, 21)
        assert token.total_supply == 100

    def test_LED06_bad_amounts(self, ledger):
        token = FungibleToken(ledger, "TKN")
        with pytest.raises(LedgerError):
            token.mint(A, -5)
        with pytest.raises(LedgerError):
            token.transfer(A, B, True)


class TestNonReentrant:

    def test_LED07_nested_entry(self):
        lock = NonReentrant("engine")
        with lock.hold():
            assert lock.entered
            with pytest.raises(ReentrantCall):
                with lock.hold():
                    pass
        assert not lock.entered

    def test_LED07_released_after_error(self):
        lock = NonReentrant("engine")
        with pytest.raises(KeyError):
            with lock.hold():
                raise KeyError("x")
        with lock.hold():
            pass
