"""
escrow_vm.tests.conftest
========================

Fixtures for driving deals through the sandbox ledger.

- `ledger`            fresh in-memory ledger per test
- `parties`           funded treasuries: deployer, seller, guarantor, buyer, stranger
- `deploy_deal`       factory: deploy a deal with overridable parameters
- `native_deal`       deployed, unfunded native deal (10 coins, 5% royalty)
- `funded_native_deal`
- `minter` / `other_minter`   sandbox tokens with 100 tokens minted to the buyer
- `token_deal`, `funded_token_deal`
- `fund_with_tokens`  helper: buyer sends tokens to a deal through its wallet

Every test starts from the default value-sizing config (env cleared).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import pytest

from escrow_vm.config import load_config
from escrow_vm.runtime.contract import EscrowContract
from escrow_vm.sandbox.ledger import Ledger, SendResult
from escrow_vm.sandbox.token import Mint, TokenMinter, transfer_body
from escrow_vm.types.address import Address
from escrow_vm.types.deal import DealInit
from escrow_vm.types.message import COMMENT_FUNDING, Initialize, comment
from escrow_vm.utils.units import to_nano

DEAL_AMOUNT = to_nano(10)
ROYALTY_PPM = 5_000
DEPLOY_VALUE = to_nano("0.05")


@pytest.fixture(autouse=True)
def _default_config(monkeypatch):
    for key in list(os.environ):
        if key.startswith("ESCROW_VM_"):
            monkeypatch.delenv(key, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def ledger() -> Ledger:
    return Ledger()


@pytest.fixture
def parties(ledger) -> Dict[str, Address]:
    return {name: ledger.treasury(name) for name in ("deployer", "seller", "guarantor", "buyer", "stranger")}


@dataclass
class DeployedDeal:
    contract: EscrowContract
    init: DealInit
    deploy: SendResult

    @property
    def address(self) -> Address:
        return self.contract.address


@pytest.fixture
def deploy_deal(ledger, parties) -> Callable[..., DeployedDeal]:
    def _deploy(
        *,
        deal_id: int = 1,
        deal_amount: int = DEAL_AMOUNT,
        royalty_ppm: int = ROYALTY_PPM,
        asset: Optional[Address] = None,
        template: Optional[bytes] = None,
    ) -> DeployedDeal:
        init = DealInit(
            id=deal_id,
            seller=parties["seller"],
            guarantor=parties["guarantor"],
            deal_amount=deal_amount,
            royalty_ppm=royalty_ppm,
            asset_address=asset,
            wallet_template=template,
        )
        contract = EscrowContract.from_init(init)
        res = ledger.deploy(contract, sender=parties["deployer"], value=DEPLOY_VALUE, body=Initialize(init).encode())
        return DeployedDeal(contract=contract, init=init, deploy=res)

    return _deploy


@pytest.fixture
def native_deal(deploy_deal) -> DeployedDeal:
    return deploy_deal()


@pytest.fixture
def funded_native_deal(ledger, parties, native_deal) -> DeployedDeal:
    res = ledger.send(parties["buyer"], native_deal.address, DEAL_AMOUNT, comment(COMMENT_FUNDING))
    assert res.transactions[0].success
    return native_deal


def _make_minter(ledger, parties, name: str) -> TokenMinter:
    minter = TokenMinter(name, parties["deployer"])
    res = ledger.deploy(
        minter,
        sender=parties["deployer"],
        value=to_nano("0.1"),
        body=Mint(parties["buyer"], to_nano(100)).encode(),
    )
    assert all(t.success for t in res.transactions)
    return minter


@pytest.fixture
def minter(ledger, parties) -> TokenMinter:
    return _make_minter(ledger, parties, "usd-token")


@pytest.fixture
def other_minter(ledger, parties) -> TokenMinter:
    return _make_minter(ledger, parties, "other-token")


@pytest.fixture
def token_deal(deploy_deal, minter) -> DeployedDeal:
    return deploy_deal(asset=minter.address, template=minter.template)


@pytest.fixture
def fund_with_tokens(ledger, parties) -> Callable[..., SendResult]:
    def _fund(
        deal: Address,
        token: TokenMinter,
        amount: int = DEAL_AMOUNT,
        *,
        forward_amount: int = to_nano("0.05"),
    ) -> SendResult:
        buyer = parties["buyer"]
        return ledger.send(
            buyer,
            token.wallet_address(buyer),
            to_nano("0.1"),
            transfer_body(amount, deal, response_destination=buyer, forward_amount=forward_amount),
        )

    return _fund


@pytest.fixture
def funded_token_deal(token_deal, minter, fund_with_tokens) -> DeployedDeal:
    res = fund_with_tokens(token_deal.address, minter)
    assert all(t.success for t in res.transactions)
    return token_deal
