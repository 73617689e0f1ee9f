"""
escrow_vm.runtime.machine — the escrow state machine.

    CREATED ──fund──▶ FUNDED ──approve / cancel──▶ SETTLED (account deleted)

Every handler validates first and mutates last: a raised EscrowError always
leaves the deal exactly as it was, so the surrounding ledger only has to bounce
the attached value. Guard order per operation (first failure wins):

    fund (native)   AlreadyFunded, WrongAssetType, WrongFundAmount
    fund (token)    AlreadyFunded, WrongAssetType, NotificationSenderMismatch,
                    WrongFundAmount
    updateWallet    WrongAssetType, NotSeller, AlreadyFunded
    approve         NotGuarantor, NotFunded, LowMessageValue
    cancel          NotGuarantor, NotFunded

Approve and cancel emit their settlement messages and ask for deletion in the
same step. Downstream failures after that are not observed here; the
LowMessageValue pre-flight is the only protection.
"""

from __future__ import annotations

from typing import Optional

from ..config import EscrowConfig, load_config
from ..errors import InvalidMessage, WrongAssetType
from ..logging import get_logger, with_fields
from ..types.address import Address
from ..types.deal import Deal, DealState, EscrowInfo
from ..types.message import (
    DeployOk,
    Initialize,
    OutboundMessage,
    SendMode,
    TakeEscrowData,
    TransferNotification,
)
from ..types.result import HandleResult
from . import guard
from .assets import adapter_for, deal_address, derive_wallet_address
from .royalty import calculate_royalty, seller_share

log = get_logger(__name__)


class EscrowStateMachine:
    """
    Owns one deal. `deal` stays None until the Initialize message arrives;
    `address` is the deal's own (content-derived) address.
    """

    def __init__(self, address: Address, deal: Optional[Deal] = None, config: Optional[EscrowConfig] = None):
        self.address = address
        self.deal = deal
        self.config = config or load_config()

    # ------------------------------------------------------------------ helpers

    def _log(self, op: str):
        return with_fields(log, deal=self.address.short(), op=op)

    def _require_deal(self) -> Deal:
        if self.deal is None:
            raise InvalidMessage("deal is not initialized")
        if self.deal.settled:
            raise InvalidMessage("deal is already settled")
        return self.deal

    @property
    def state(self) -> Optional[DealState]:
        return self.deal.state if self.deal is not None else None

    def own_wallet_address(self) -> Address:
        deal = self._require_deal()
        guard.require_token(deal)
        if deal.wallet_template is None:
            raise WrongAssetType("token deal has no wallet template")
        return derive_wallet_address(deal.asset_address, self.address, deal.wallet_template)

    def royalty(self) -> int:
        deal = self._require_deal()
        return calculate_royalty(deal.deal_amount, deal.royalty_ppm)

    def info(self) -> EscrowInfo:
        return self._require_deal().snapshot()

    # -------------------------------------------------------------- transitions

    def initialize(self, sender: Address, msg: Initialize) -> HandleResult:
        ack = OutboundMessage(
            to=sender,
            value=0,
            body=DeployOk(msg.query_id).encode(),
            mode=SendMode.CARRY_REMAINING_VALUE,
            bounce=False,
        )
        if self.deal is not None:
            # already deployed; acknowledge without touching state
            return HandleResult.ok([ack])

        init = msg.init
        if deal_address(init) != self.address:
            raise InvalidMessage("initialize parameters do not match this deal's address")
        if init.asset_address is not None and init.wallet_template is None:
            raise WrongAssetType("token deal requires a wallet template")

        self.deal = Deal.from_init(init)
        self._log("initialize").info(
            "deal created",
            extra={"amount": init.deal_amount, "ppm": init.royalty_ppm, "token": init.is_token},
        )
        return HandleResult.ok([ack])

    def fund_native(self, sender: Address, value: int) -> HandleResult:
        deal = self._require_deal()
        guard.require_not_funded(deal)
        guard.require_native(deal)
        guard.require_exact_amount(deal, value)

        deal.buyer = sender
        self._log("funding").info("deal funded", extra={"buyer": str(sender), "amount": value})
        return HandleResult.ok()

    def fund_token(self, sender: Address, note: TransferNotification) -> HandleResult:
        deal = self._require_deal()
        guard.require_not_funded(deal)
        guard.require_token(deal)
        guard.require_wallet_sender(sender, self.own_wallet_address())
        guard.require_exact_amount(deal, note.amount)

        deal.buyer = note.from_
        self._log("transfer_notification").info(
            "deal funded", extra={"buyer": str(note.from_), "amount": note.amount}
        )
        return HandleResult.ok()

    def update_wallet_code(self, sender: Address, new_template: bytes) -> HandleResult:
        deal = self._require_deal()
        guard.require_token(deal)
        guard.require_seller(deal, sender)
        guard.require_not_funded(deal)

        deal.wallet_template = bytes(new_template)
        self._log("update_wallet_code").info("wallet template updated", extra={"template": deal.wallet_template})
        return HandleResult.ok()

    def approve(self, sender: Address, value: int) -> HandleResult:
        deal = self._require_deal()
        guard.require_guarantor(deal, sender)
        guard.require_funded(deal)
        guard.require_min_value(value, self.config.min_approve_value(is_token=deal.is_token))

        royalty = calculate_royalty(deal.deal_amount, deal.royalty_ppm)
        to_seller = seller_share(deal.deal_amount, deal.royalty_ppm)
        asset = adapter_for(deal, self.address, self.config)
        out = [
            asset.transfer(
                deal.seller,
                to_seller,
                mode=SendMode.PAY_GAS_SEPARATELY,
                excess_to=deal.guarantor,
            ),
            asset.transfer(deal.guarantor, royalty, final=True, excess_to=deal.guarantor),
        ]

        deal.settled = True
        self._log("approve").info(
            "deal approved", extra={"seller_share": to_seller, "royalty": royalty}
        )
        return HandleResult.ok(out, destroyed=True)

    def cancel(self, sender: Address, value: int) -> HandleResult:
        deal = self._require_deal()
        guard.require_guarantor(deal, sender)
        guard.require_funded(deal)

        asset = adapter_for(deal, self.address, self.config)
        out = [asset.transfer(deal.buyer, deal.deal_amount, final=True, excess_to=deal.buyer)]

        deal.settled = True
        self._log("cancel").info("deal cancelled", extra={"refund": deal.deal_amount, "buyer": str(deal.buyer)})
        return HandleResult.ok(out, destroyed=True)

    def provide_escrow_data(self, sender: Address) -> HandleResult:
        deal = self._require_deal()
        reply = OutboundMessage(
            to=sender,
            value=0,
            body=TakeEscrowData(deal.snapshot()).encode(),
            mode=SendMode.CARRY_REMAINING_VALUE,
        )
        return HandleResult.ok([reply])


__all__ = ["EscrowStateMachine"]
