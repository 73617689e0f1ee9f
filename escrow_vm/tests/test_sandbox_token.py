from __future__ import annotations

from escrow_vm.errors import (
    EXIT_ALREADY_FUNDED,
    EXIT_LOW_MESSAGE_VALUE,
    EXIT_NOT_SELLER,
    EXIT_NOTIFICATION_SENDER_MISMATCH,
    EXIT_WRONG_ASSET_TYPE,
    EXIT_WRONG_FUND_AMOUNT,
)
from escrow_vm.runtime.assets import derive_wallet_address
from escrow_vm.sandbox.token import token_balance
from escrow_vm.types.deal import DealState
from escrow_vm.types.message import (
    COMMENT_APPROVE,
    COMMENT_CANCEL,
    OP_TOKEN_TRANSFER,
    OP_TRANSFER_NOTIFICATION,
    TransferNotification,
    UpdateWalletCode,
    comment,
)
from escrow_vm.utils.units import to_nano

DEAL_AMOUNT = to_nano(10)
ROYALTY = to_nano("0.5")
TOKEN_APPROVE_VALUE = to_nano("0.11")


# ------------------------------------------------------------------- funding


def test_wallet_address_getter_matches_minter_derivation(token_deal, minter):
    assert token_deal.contract.get_wallet_address() == minter.wallet_address(token_deal.address)


def test_token_funding_through_own_wallet(ledger, parties, token_deal, minter, fund_with_tokens):
    res = fund_with_tokens(token_deal.address, minter)

    own_wallet = minter.wallet_address(token_deal.address)
    assert res.has(from_=own_wallet, to=token_deal.address, op=OP_TRANSFER_NOTIFICATION, success=True)
    info = token_deal.contract.get_escrow_info()
    assert info.is_funded is True
    assert info.buyer == parties["buyer"]
    assert token_balance(ledger, minter, token_deal.address) == DEAL_AMOUNT


def test_forged_notification_is_rejected(ledger, parties, token_deal):
    # direct sender is not the deal's wallet; the embedded `from` is a lie
    forged = TransferNotification(amount=DEAL_AMOUNT, from_=parties["buyer"]).encode()
    res = ledger.send(parties["stranger"], token_deal.address, to_nano("0.05"), forged)

    assert res.has(to=token_deal.address, success=False, exit_code=EXIT_NOTIFICATION_SENDER_MISMATCH)
    assert token_deal.contract.get_escrow_info().is_funded is False


def test_notification_from_other_tokens_wallet_is_rejected(ledger, parties, token_deal, other_minter, fund_with_tokens):
    res = fund_with_tokens(token_deal.address, other_minter)

    wrong_wallet = other_minter.wallet_address(token_deal.address)
    assert res.has(from_=wrong_wallet, to=token_deal.address, success=False, exit_code=EXIT_NOTIFICATION_SENDER_MISMATCH)
    assert token_deal.contract.get_escrow_info().is_funded is False


def test_token_notification_on_native_deal_fails_wrong_asset(ledger, parties, native_deal, minter, fund_with_tokens):
    res = fund_with_tokens(native_deal.address, minter)
    assert res.has(to=native_deal.address, success=False, exit_code=EXIT_WRONG_ASSET_TYPE)
    assert native_deal.contract.get_escrow_info().is_funded is False


def test_wrong_token_amount_is_rejected(ledger, parties, token_deal, minter, fund_with_tokens):
    res = fund_with_tokens(token_deal.address, minter, amount=to_nano(3))
    assert res.has(to=token_deal.address, success=False, exit_code=EXIT_WRONG_FUND_AMOUNT)
    assert token_deal.contract.get_escrow_info().is_funded is False


def test_second_token_funding_fails_already_funded(ledger, parties, funded_token_deal, minter, fund_with_tokens):
    res = fund_with_tokens(funded_token_deal.address, minter)
    assert res.has(to=funded_token_deal.address, success=False, exit_code=EXIT_ALREADY_FUNDED)
    assert funded_token_deal.contract.get_escrow_info().buyer == parties["buyer"]


# ------------------------------------------------------- wallet template update


def test_update_wallet_code_before_funding_by_seller(ledger, parties, deploy_deal, minter, fund_with_tokens):
    deal = deploy_deal(deal_id=5, asset=minter.address, template=b"stale-template")
    # funding is refused while the template points at the wrong wallet
    res = fund_with_tokens(deal.address, minter)
    assert res.has(to=deal.address, exit_code=EXIT_NOTIFICATION_SENDER_MISMATCH)

    res = ledger.send(parties["seller"], deal.address, to_nano("0.05"), UpdateWalletCode(minter.template).encode())
    assert res.has(to=deal.address, success=True)
    assert deal.contract.get_wallet_address() == minter.wallet_address(deal.address)

    res = fund_with_tokens(deal.address, minter)
    assert res.has(to=deal.address, op=OP_TRANSFER_NOTIFICATION, success=True)
    assert deal.contract.state is DealState.FUNDED


def test_update_wallet_code_from_non_seller_before_funding(ledger, parties, token_deal, minter):
    res = ledger.send(parties["stranger"], token_deal.address, to_nano("0.05"), UpdateWalletCode(b"evil").encode())

    assert res.has(to=token_deal.address, success=False, exit_code=EXIT_NOT_SELLER)
    assert token_deal.contract.get_escrow_info().wallet_template == minter.template
    assert token_deal.contract.get_wallet_address() == minter.wallet_address(token_deal.address)


def test_update_wallet_code_rules(ledger, parties, native_deal, funded_token_deal):
    body = UpdateWalletCode(b"new-template").encode()

    res = ledger.send(parties["seller"], native_deal.address, to_nano("0.05"), body)
    assert res.has(to=native_deal.address, exit_code=EXIT_WRONG_ASSET_TYPE)

    res = ledger.send(parties["stranger"], funded_token_deal.address, to_nano("0.05"), body)
    assert res.has(to=funded_token_deal.address, exit_code=EXIT_NOT_SELLER)

    res = ledger.send(parties["seller"], funded_token_deal.address, to_nano("0.05"), body)
    assert res.has(to=funded_token_deal.address, exit_code=EXIT_ALREADY_FUNDED)
    assert funded_token_deal.contract.get_escrow_info().wallet_template != b"new-template"


# ------------------------------------------------------------------ settlement


def test_token_approve_splits_tokens_and_destroys(ledger, parties, funded_token_deal, minter):
    res = ledger.send(parties["guarantor"], funded_token_deal.address, TOKEN_APPROVE_VALUE, comment(COMMENT_APPROVE))

    approve_tx = res.find(to=funded_token_deal.address)[0]
    assert approve_tx.success and approve_tx.destroyed and approve_tx.out_messages == 2
    own_wallet = minter.wallet_address(funded_token_deal.address)
    assert len(res.find(from_=funded_token_deal.address, to=own_wallet, op=OP_TOKEN_TRANSFER, success=True)) == 2

    assert token_balance(ledger, minter, parties["seller"]) == DEAL_AMOUNT - ROYALTY
    assert token_balance(ledger, minter, parties["guarantor"]) == ROYALTY
    assert token_balance(ledger, minter, funded_token_deal.address) == 0
    assert not ledger.exists(funded_token_deal.address)


def test_token_approve_with_low_value_keeps_deal_funded(ledger, parties, funded_token_deal, minter):
    res = ledger.send(parties["guarantor"], funded_token_deal.address, to_nano("0.05"), comment(COMMENT_APPROVE))
    assert res.has(to=funded_token_deal.address, success=False, exit_code=EXIT_LOW_MESSAGE_VALUE)
    assert funded_token_deal.contract.state is DealState.FUNDED
    assert token_balance(ledger, minter, funded_token_deal.address) == DEAL_AMOUNT

    res = ledger.send(parties["guarantor"], funded_token_deal.address, TOKEN_APPROVE_VALUE, comment(COMMENT_APPROVE))
    assert res.has(to=funded_token_deal.address, success=True, destroyed=True)
    assert token_balance(ledger, minter, parties["seller"]) == DEAL_AMOUNT - ROYALTY


def test_token_cancel_refunds_buyer(ledger, parties, funded_token_deal, minter):
    buyer_tokens = token_balance(ledger, minter, parties["buyer"])
    res = ledger.send(parties["guarantor"], funded_token_deal.address, to_nano("0.06"), comment(COMMENT_CANCEL))

    cancel_tx = res.find(to=funded_token_deal.address)[0]
    assert cancel_tx.success and cancel_tx.destroyed and cancel_tx.out_messages == 1
    assert token_balance(ledger, minter, parties["buyer"]) == buyer_tokens + DEAL_AMOUNT
    assert token_balance(ledger, minter, parties["seller"]) == 0
    assert not ledger.exists(funded_token_deal.address)


def test_wallet_derivation_depends_on_template(minter, token_deal):
    a = derive_wallet_address(minter.address, token_deal.address, b"t1")
    b = derive_wallet_address(minter.address, token_deal.address, b"t2")
    assert a != b
