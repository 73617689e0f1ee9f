"""
escrow_vm.runtime.dispatcher — classify an inbound message and route it.

Decoding is the only job done here:

  [INITIALIZE, ...]                   → Initialize
  [0, "funding"]                      → Fund (native)
  [TRANSFER_NOTIFICATION, ...]        → TokenTransferNotification
  [UPDATE_WALLET_CODE, template]      → UpdateWalletCode
  [0, "approve"] / [0, "cancel"]      → Approve / Cancel
  [0, "provideEscrowData"]            → ProvideEscrowData
  bounced message                     → Bounced (accepted, ignored)
  anything else (incl. empty body)    → Unrecognized → InvalidMessage (130)

All authorization and state checks live in the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..errors import InvalidMessage
from ..types.message import (
    COMMENT_APPROVE,
    COMMENT_CANCEL,
    COMMENT_FUNDING,
    COMMENT_PROVIDE_ESCROW_DATA,
    Comment,
    Initialize,
    MessageContext,
    MessageDecodeError,
    TransferNotification,
    UpdateWalletCode,
    decode_body,
)
from ..types.result import HandleResult
from .machine import EscrowStateMachine


class MessageKind(str, Enum):
    INITIALIZE = "initialize"
    FUND = "fund"
    TOKEN_NOTIFICATION = "token_notification"
    UPDATE_WALLET_CODE = "update_wallet_code"
    APPROVE = "approve"
    CANCEL = "cancel"
    PROVIDE_ESCROW_DATA = "provide_escrow_data"
    BOUNCED = "bounced"
    UNRECOGNIZED = "unrecognized"


_COMMENT_KIND = {
    COMMENT_FUNDING: MessageKind.FUND,
    COMMENT_APPROVE: MessageKind.APPROVE,
    COMMENT_CANCEL: MessageKind.CANCEL,
    COMMENT_PROVIDE_ESCROW_DATA: MessageKind.PROVIDE_ESCROW_DATA,
}


@dataclass(frozen=True)
class Decoded:
    kind: MessageKind
    payload: Optional[Any] = None
    reason: Optional[str] = None


def decode_inbound(ctx: MessageContext) -> Decoded:
    """Map an inbound message to its kind. Never raises."""
    if ctx.bounced:
        return Decoded(MessageKind.BOUNCED)
    if not ctx.body:
        return Decoded(MessageKind.UNRECOGNIZED, reason="empty body")
    try:
        body = decode_body(ctx.body)
    except MessageDecodeError as e:
        return Decoded(MessageKind.UNRECOGNIZED, reason=str(e))

    if isinstance(body, Comment):
        kind = _COMMENT_KIND.get(body.text)
        if kind is None:
            return Decoded(MessageKind.UNRECOGNIZED, reason=f"unknown comment {body.text!r}")
        return Decoded(kind)
    if isinstance(body, Initialize):
        return Decoded(MessageKind.INITIALIZE, body)
    if isinstance(body, TransferNotification):
        return Decoded(MessageKind.TOKEN_NOTIFICATION, body)
    if isinstance(body, UpdateWalletCode):
        return Decoded(MessageKind.UPDATE_WALLET_CODE, body)
    return Decoded(MessageKind.UNRECOGNIZED, reason=f"unexpected message {type(body).__name__}")


def dispatch(machine: EscrowStateMachine, ctx: MessageContext) -> HandleResult:
    """
    Decode `ctx` and apply it to `machine`.

    Raises the state machine's EscrowError on rejection; unrecognized input
    raises InvalidMessage.
    """
    decoded = decode_inbound(ctx)
    kind = decoded.kind

    if kind is MessageKind.INITIALIZE:
        return machine.initialize(ctx.sender, decoded.payload)
    if kind is MessageKind.FUND:
        return machine.fund_native(ctx.sender, ctx.value)
    if kind is MessageKind.TOKEN_NOTIFICATION:
        return machine.fund_token(ctx.sender, decoded.payload)
    if kind is MessageKind.UPDATE_WALLET_CODE:
        return machine.update_wallet_code(ctx.sender, decoded.payload.new_template)
    if kind is MessageKind.APPROVE:
        return machine.approve(ctx.sender, ctx.value)
    if kind is MessageKind.CANCEL:
        return machine.cancel(ctx.sender, ctx.value)
    if kind is MessageKind.PROVIDE_ESCROW_DATA:
        return machine.provide_escrow_data(ctx.sender)
    if kind is MessageKind.BOUNCED:
        return HandleResult.ok()
    raise InvalidMessage(data={"reason": decoded.reason} if decoded.reason else None)


__all__ = ["MessageKind", "Decoded", "decode_inbound", "dispatch"]
