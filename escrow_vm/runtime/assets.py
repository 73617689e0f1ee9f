"""
escrow_vm.runtime.assets — how a deal pays out in its configured asset.

Two adapters share one interface, `transfer(to, amount, ...) -> OutboundMessage`:

  NativeAsset  pays the ledger's coin directly to `to`.
  TokenAsset   instructs the deal's *own* token wallet to move `amount` tokens
               to `to`'s wallet; the message value only pays for the wallet
               hop (plus the optional forward amount).

Both support `final=True`, used on the last settlement message of approve and
cancel: the message carries the whole remaining balance and the deal account
is deleted once it is empty.

Derived addresses
-----------------
Deal and wallet addresses are content addressed on workchain 0:

    deal_address(init)              = H(0x01 || cbor([ESCROW_CODE_HASH, *init fields]))
    wallet_address(asset, owner, T) = H(0x02 || cbor([T, asset, owner]))

The wallet derivation is the one token wallets use for each other, so the
deal can recognise its own wallet by address alone.
"""

from __future__ import annotations

from typing import Optional

from ..config import EscrowConfig
from ..encoding import dumps
from ..errors import WrongAssetType
from ..types.address import Address
from ..types.deal import Deal, DealInit
from ..types.message import FINAL_SEND_MODE, OutboundMessage, SendMode, TokenTransfer
from ..utils.hash import TAG_CODE, TAG_DEAL, TAG_WALLET, domain_hash

DERIVED_WORKCHAIN = 0

# Identity of the escrow contract code; part of every deal address preimage.
ESCROW_CODE_HASH = domain_hash(TAG_CODE, b"escrow-vm/deal/v1")


def deal_address(init: DealInit) -> Address:
    preimage = dumps([ESCROW_CODE_HASH, *init.to_fields()])
    return Address(DERIVED_WORKCHAIN, domain_hash(TAG_DEAL, preimage))


def derive_wallet_address(asset: Address, owner: Address, template: bytes) -> Address:
    """Address of `owner`'s wallet for the token minted by `asset`."""
    if template is None:
        raise ValueError("a wallet template is required to derive a wallet address")
    preimage = dumps([bytes(template), asset, owner])
    return Address(DERIVED_WORKCHAIN, domain_hash(TAG_WALLET, preimage))


# ----------------------------------------------------------------------------
# Adapters
# ----------------------------------------------------------------------------


class AssetAdapter:
    is_token = False

    def transfer(
        self,
        to: Address,
        amount: int,
        *,
        mode: SendMode = SendMode.ORDINARY,
        final: bool = False,
        excess_to: Optional[Address] = None,
    ) -> OutboundMessage:
        raise NotImplementedError


class NativeAsset(AssetAdapter):
    def transfer(
        self,
        to: Address,
        amount: int,
        *,
        mode: SendMode = SendMode.ORDINARY,
        final: bool = False,
        excess_to: Optional[Address] = None,
    ) -> OutboundMessage:
        # carry-all sends ignore `value`; it still records the intended amount
        return OutboundMessage(
            to=to,
            value=amount,
            mode=FINAL_SEND_MODE if final else mode,
            bounce=True,
        )


class TokenAsset(AssetAdapter):
    is_token = True

    def __init__(self, asset: Address, template: bytes, owner: Address, config: EscrowConfig):
        self.asset = asset
        self.template = template
        self.owner = owner
        self.config = config

    @property
    def wallet_address(self) -> Address:
        return derive_wallet_address(self.asset, self.owner, self.template)

    def transfer(
        self,
        to: Address,
        amount: int,
        *,
        mode: SendMode = SendMode.ORDINARY,
        final: bool = False,
        excess_to: Optional[Address] = None,
    ) -> OutboundMessage:
        body = TokenTransfer(
            amount=amount,
            destination=to,
            response_destination=excess_to or to,
            forward_amount=self.config.token_forward_amount,
        ).encode()
        if final:
            return OutboundMessage(to=self.wallet_address, value=0, body=body, mode=FINAL_SEND_MODE)
        return OutboundMessage(
            to=self.wallet_address,
            value=self.config.transfer_value(is_token=True),
            body=body,
            mode=mode,
        )


def adapter_for(deal: Deal, owner: Address, config: EscrowConfig) -> AssetAdapter:
    """Pick the adapter for `deal`; `owner` is the deal's own address."""
    if deal.asset_address is None:
        return NativeAsset()
    if deal.wallet_template is None:
        raise WrongAssetType("token deal has no wallet template")
    return TokenAsset(deal.asset_address, deal.wallet_template, owner, config)


__all__ = [
    "DERIVED_WORKCHAIN",
    "ESCROW_CODE_HASH",
    "deal_address",
    "derive_wallet_address",
    "AssetAdapter",
    "NativeAsset",
    "TokenAsset",
    "adapter_for",
]
