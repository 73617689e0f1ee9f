"""
escrow_vm.sandbox.token — local stand-in for a fungible token (minter + wallets).

Follows the common minter/wallet protocol a deal talks to:

  owner ──transfer──▶ own wallet ──internal_transfer──▶ destination wallet
                                                          │
                        destination owner ◀─transfer_notification (forward_amount > 0)
                        response address  ◀─excesses (leftover value)

Wallet addresses come from `derive_wallet_address(minter, owner, template)`,
the same function the deal uses to recognise its own wallet. Wallets are
created lazily by the first `internal_transfer` that reaches them.

Exit codes (as used by deployed token wallets):
    705 transfer not from the wallet owner
    706 not enough tokens
    707 internal transfer from an unknown sender
    709 not enough value to carry the transfer
     73 mint not from the minter admin
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from ..encoding import dumps
from ..runtime.assets import derive_wallet_address
from ..types.address import Address
from ..types.message import (
    Excesses,
    InternalTransfer,
    MessageContext,
    MessageDecodeError,
    OutboundMessage,
    SendMode,
    TokenTransfer,
    TransferNotification,
    decode_body,
    split_body,
)
from ..types.result import HandleResult
from ..utils.hash import TAG_MINTER, domain_hash
from ..utils.units import to_nano

OP_MINT = 21

EXIT_NOT_OWNER = 705
EXIT_NOT_ENOUGH_TOKENS = 706
EXIT_UNKNOWN_SENDER = 707
EXIT_NOT_ENOUGH_VALUE = 709
EXIT_NOT_ADMIN = 73
EXIT_UNKNOWN_OP = 0xFFFF

DEFAULT_WALLET_TEMPLATE = b"escrow-vm/sandbox-token-wallet/v1"

# Value a wallet keeps back for forwarding one internal transfer.
WALLET_FORWARD_FEE = to_nano("0.01")


@dataclass(frozen=True)
class Mint:
    to_owner: Address
    amount: int
    forward_amount: int = 0
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps([OP_MINT, self.query_id, self.to_owner, self.amount, self.forward_amount])

    @classmethod
    def decode(cls, raw: bytes) -> "Mint":
        op, fields = split_body(raw)
        if op != OP_MINT or len(fields) != 4:
            raise MessageDecodeError("not a mint message")
        query_id, to_owner, amount, forward_amount = fields
        return cls(Address.from_bytes(to_owner), int(amount), int(forward_amount), int(query_id))


def _reject(code: int, reason: str) -> HandleResult:
    return HandleResult.rejected(code, {"code": "TOKEN_ERROR", "exitCode": code, "message": reason})


# ----------------------------------------------------------------------------
# Wallet
# ----------------------------------------------------------------------------


class TokenWallet:
    def __init__(self, minter: Address, owner: Address, template: bytes = DEFAULT_WALLET_TEMPLATE):
        self.minter = minter
        self.owner = owner
        self.template = template
        self.address = derive_wallet_address(minter, owner, template)
        self.balance = 0

    def _sibling(self, owner: Address) -> Address:
        return derive_wallet_address(self.minter, owner, self.template)

    def receive(self, ctx: MessageContext) -> HandleResult:
        if ctx.bounced:
            return self._on_bounce(ctx)
        try:
            body = decode_body(ctx.body)
        except MessageDecodeError:
            return _reject(EXIT_UNKNOWN_OP, "unknown message")

        if isinstance(body, TokenTransfer):
            return self._transfer(ctx, body)
        if isinstance(body, InternalTransfer):
            return self._internal_transfer(ctx, body)
        return _reject(EXIT_UNKNOWN_OP, "unknown message")

    def _on_bounce(self, ctx: MessageContext) -> HandleResult:
        # a returned internal transfer means the tokens never left
        try:
            body = decode_body(ctx.body)
        except MessageDecodeError:
            return HandleResult.ok()
        if isinstance(body, InternalTransfer):
            self.balance += body.amount
        return HandleResult.ok()

    def _transfer(self, ctx: MessageContext, msg: TokenTransfer) -> HandleResult:
        if ctx.sender != self.owner:
            return _reject(EXIT_NOT_OWNER, "not the wallet owner")
        if msg.amount > self.balance:
            return _reject(EXIT_NOT_ENOUGH_TOKENS, "not enough tokens")
        if ctx.value < msg.forward_amount + WALLET_FORWARD_FEE:
            return _reject(EXIT_NOT_ENOUGH_VALUE, "not enough value for the transfer")

        self.balance -= msg.amount
        dest = self._sibling(msg.destination)
        out = OutboundMessage(
            to=dest,
            value=0,
            body=InternalTransfer(
                amount=msg.amount,
                from_=self.owner,
                response_destination=msg.response_destination,
                forward_amount=msg.forward_amount,
                forward_payload=msg.forward_payload,
                query_id=msg.query_id,
            ).encode(),
            mode=SendMode.CARRY_REMAINING_VALUE,
            init=TokenWallet(self.minter, msg.destination, self.template),
        )
        return HandleResult.ok([out])

    def _internal_transfer(self, ctx: MessageContext, msg: InternalTransfer) -> HandleResult:
        if ctx.sender != self.minter and ctx.sender != self._sibling(msg.from_):
            return _reject(EXIT_UNKNOWN_SENDER, "internal transfer from unknown sender")

        self.balance += msg.amount
        out: List[OutboundMessage] = []
        remaining = ctx.value
        if msg.forward_amount > 0:
            forward = min(msg.forward_amount, remaining)
            remaining -= forward
            out.append(
                OutboundMessage(
                    to=self.owner,
                    value=forward,
                    body=TransferNotification(
                        amount=msg.amount,
                        from_=msg.from_,
                        forward_payload=msg.forward_payload,
                        query_id=msg.query_id,
                    ).encode(),
                )
            )
        if msg.response_destination is not None and remaining > 0:
            out.append(
                OutboundMessage(
                    to=msg.response_destination,
                    value=remaining,
                    body=Excesses(msg.query_id).encode(),
                    mode=SendMode.IGNORE_ERRORS,
                    bounce=False,
                )
            )
        return HandleResult.ok(out)

    def run_get_method(self, name: str) -> Any:
        if name == "get_wallet_data":
            return (self.balance, self.owner, self.minter, self.template)
        raise KeyError(name)


# ----------------------------------------------------------------------------
# Minter
# ----------------------------------------------------------------------------


class TokenMinter:
    def __init__(self, name: str, admin: Address, template: bytes = DEFAULT_WALLET_TEMPLATE):
        self.name = name
        self.admin = admin
        self.template = template
        self.address = Address(0, domain_hash(TAG_MINTER, dumps([name, admin])))
        self.total_supply = 0

    def wallet_address(self, owner: Address) -> Address:
        return derive_wallet_address(self.address, owner, self.template)

    def receive(self, ctx: MessageContext) -> HandleResult:
        if ctx.bounced:
            return HandleResult.ok()
        try:
            mint = Mint.decode(ctx.body)
        except (MessageDecodeError, ValueError, TypeError):
            return _reject(EXIT_UNKNOWN_OP, "unknown message")
        if ctx.sender != self.admin:
            return _reject(EXIT_NOT_ADMIN, "mint not from admin")

        self.total_supply += mint.amount
        out = OutboundMessage(
            to=self.wallet_address(mint.to_owner),
            value=0,
            body=InternalTransfer(
                amount=mint.amount,
                from_=self.address,
                response_destination=self.admin,
                forward_amount=mint.forward_amount,
                query_id=mint.query_id,
            ).encode(),
            mode=SendMode.CARRY_REMAINING_VALUE,
            init=TokenWallet(self.address, mint.to_owner, self.template),
        )
        return HandleResult.ok([out])

    def run_get_method(self, name: str) -> Any:
        if name == "get_jetton_data":
            return (self.total_supply, self.admin, self.template)
        raise KeyError(name)


def token_balance(ledger: Any, minter: TokenMinter, owner: Address) -> int:
    """Token balance of `owner` (0 when the wallet was never created)."""
    addr = minter.wallet_address(owner)
    if not ledger.exists(addr):
        return 0
    return ledger.contract(addr).balance


def transfer_body(
    amount: int,
    destination: Address,
    *,
    response_destination: Optional[Address] = None,
    forward_amount: int = 0,
    forward_payload: Optional[bytes] = None,
) -> bytes:
    return TokenTransfer(
        amount=amount,
        destination=destination,
        response_destination=response_destination,
        forward_amount=forward_amount,
        forward_payload=forward_payload,
    ).encode()


__all__ = [
    "OP_MINT",
    "EXIT_NOT_OWNER",
    "EXIT_NOT_ENOUGH_TOKENS",
    "EXIT_UNKNOWN_SENDER",
    "EXIT_NOT_ENOUGH_VALUE",
    "EXIT_NOT_ADMIN",
    "DEFAULT_WALLET_TEMPLATE",
    "WALLET_FORWARD_FEE",
    "Mint",
    "TokenWallet",
    "TokenMinter",
    "token_balance",
    "transfer_body",
]
