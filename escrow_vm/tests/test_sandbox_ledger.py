from __future__ import annotations

import pytest

from escrow_vm.sandbox.ledger import EXIT_ACTION_NOT_ENOUGH_BALANCE, Ledger, LedgerError
from escrow_vm.types.address import Address
from escrow_vm.types.message import MessageContext, OutboundMessage, SendMode
from escrow_vm.types.result import HandleResult
from escrow_vm.types.status import TxStatus
from escrow_vm.utils.units import to_nano


class Forwarder:
    """Counts messages and forwards a fixed amount to `target`."""

    def __init__(self, address: Address, target: Address, amount: int, mode: SendMode = SendMode.ORDINARY):
        self.address = address
        self.target = target
        self.amount = amount
        self.mode = mode
        self.seen = 0

    def receive(self, ctx: MessageContext) -> HandleResult:
        if ctx.bounced:
            return HandleResult.ok()
        self.seen += 1
        return HandleResult.ok([OutboundMessage(self.target, self.amount, mode=self.mode)])


def test_unaffordable_send_aborts_and_rolls_back(ledger: Ledger, parties):
    fwd = Forwarder(Address(0, b"\x01" * 32), parties["seller"], to_nano(8))
    ledger.deploy(fwd, sender=parties["deployer"], value=to_nano(10))
    assert fwd.seen == 1

    res = ledger.send(parties["buyer"], fwd.address, to_nano(1))
    tx = res.find(to=fwd.address)[0]
    assert tx.status is TxStatus.ABORTED
    assert tx.exit_code == EXIT_ACTION_NOT_ENOUGH_BALANCE
    assert fwd.seen == 1  # state restored in place
    assert ledger.balance(fwd.address) == to_nano(2)
    assert res.has(to=parties["buyer"], bounced=True, value=to_nano(1))


def test_ignore_errors_skips_unaffordable_send(ledger: Ledger, parties):
    fwd = Forwarder(Address(0, b"\x02" * 32), parties["seller"], to_nano(50), SendMode.IGNORE_ERRORS)
    res = ledger.deploy(fwd, sender=parties["deployer"], value=to_nano(1))
    tx = res.transactions[0]
    assert tx.success and tx.out_messages == 0
    assert ledger.balance(fwd.address) == to_nano(1)


def test_carry_all_balance_with_destroy_deletes_account(ledger: Ledger, parties):
    fwd = Forwarder(
        Address(0, b"\x03" * 32), parties["seller"], 0, SendMode.CARRY_ALL_BALANCE | SendMode.DESTROY_IF_ZERO
    )
    before = ledger.balance(parties["seller"])
    res = ledger.deploy(fwd, sender=parties["deployer"], value=to_nano(2))
    assert res.has(to=fwd.address, deployed=True, destroyed=True)
    assert not ledger.exists(fwd.address)
    assert ledger.balance(parties["seller"]) - before == to_nano(2)


def test_message_to_missing_account_bounces(ledger: Ledger, parties):
    nowhere = Address(0, b"\x09" * 32)
    before = ledger.balance(parties["buyer"])
    res = ledger.send(parties["buyer"], nowhere, to_nano(1))
    assert res.has(to=nowhere, status=TxStatus.ABORTED)
    assert ledger.balance(parties["buyer"]) == before


def test_non_bounceable_value_is_kept(ledger: Ledger, parties):
    nowhere = Address(0, b"\x0a" * 32)
    before = ledger.balance(parties["buyer"])
    res = ledger.send(parties["buyer"], nowhere, to_nano(1), bounce=False)
    assert len(res.transactions) == 1
    assert ledger.balance(parties["buyer"]) == before - to_nano(1)


def test_send_misuse(ledger: Ledger, parties):
    with pytest.raises(LedgerError):
        ledger.send(Address(0, b"\x0b" * 32), parties["seller"], 1)
    with pytest.raises(LedgerError):
        ledger.send(parties["buyer"], parties["seller"], -1)
    poor = ledger.treasury("poor", balance=5)
    with pytest.raises(LedgerError):
        ledger.send(poor, parties["seller"], 6)
    with pytest.raises(LedgerError):
        ledger.contract(Address(0, b"\x0c" * 32))


def test_treasury_records_received_messages(ledger: Ledger, parties):
    ledger.send(parties["buyer"], parties["seller"], 7, b"")
    received = ledger.contract(parties["seller"]).received
    assert received[-1].sender == parties["buyer"] and received[-1].value == 7


def test_treasury_is_created_once(ledger: Ledger, parties):
    ledger.send(parties["buyer"], parties["seller"], 100)
    before = ledger.balance(parties["buyer"])
    assert ledger.treasury("buyer", balance=1) == parties["buyer"]
    assert ledger.balance(parties["buyer"]) == before
