"""
escrow_vm.types.message — inbound/outbound messages and their bodies.

Every body is a canonical CBOR array headed by a 32-bit opcode:

    [op, *fields]

Op 0 is a text comment (`[0, "approve"]`). The body classes below know how to
encode themselves and `decode_body()` maps raw bytes back to one of them.

Opcodes
-------
    0x946a98b6  Initialize            deploy + creation parameters
    0xaff90f57  DeployOk              deploy acknowledgement
    0x5dd66579  UpdateWalletCode      seller swaps the token wallet template
    0x2c394a7e  TakeEscrowData        reply to "provideEscrowData"
    0x0f8a7ea5  TokenTransfer         owner → own token wallet
    0x178d4519  InternalTransfer      wallet → wallet
    0x7362d09c  TransferNotification  wallet → its owner, on receipt
    0xd53276db  Excesses              leftover value back to the response address
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Dict, List, Optional, Type

from ..encoding import DecodeError, dumps, loads
from .address import Address, AddressError, optional_address
from .deal import DealInit, EscrowInfo

OP_COMMENT = 0
OP_INITIALIZE = 0x946A98B6
OP_DEPLOY_OK = 0xAFF90F57
OP_UPDATE_WALLET_CODE = 0x5DD66579
OP_TAKE_ESCROW_DATA = 0x2C394A7E
OP_TOKEN_TRANSFER = 0x0F8A7EA5
OP_INTERNAL_TRANSFER = 0x178D4519
OP_TRANSFER_NOTIFICATION = 0x7362D09C
OP_EXCESSES = 0xD53276DB

COMMENT_FUNDING = "funding"
COMMENT_APPROVE = "approve"
COMMENT_CANCEL = "cancel"
COMMENT_PROVIDE_ESCROW_DATA = "provideEscrowData"


class MessageDecodeError(ValueError):
    """Body bytes do not form a known message."""


class SendMode(IntFlag):
    ORDINARY = 0
    PAY_GAS_SEPARATELY = 1
    IGNORE_ERRORS = 2
    DESTROY_IF_ZERO = 32
    CARRY_REMAINING_VALUE = 64
    CARRY_ALL_BALANCE = 128


# Final settlement transfer: flush everything and delete the sender.
FINAL_SEND_MODE = SendMode.CARRY_ALL_BALANCE | SendMode.DESTROY_IF_ZERO


# ----------------------------------------------------------------------------
# Envelopes
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class MessageContext:
    """One inbound internal message as seen by the receiving contract."""

    sender: Address
    value: int
    body: bytes = b""
    bounced: bool = False
    bounce: bool = True


@dataclass(frozen=True)
class OutboundMessage:
    to: Address
    value: int
    body: bytes = b""
    mode: SendMode = SendMode.ORDINARY
    bounce: bool = True
    # Contract to instantiate at `to` if no account exists there yet.
    init: Optional[Any] = field(default=None, compare=False, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": str(self.to),
            "value": self.value,
            "mode": int(self.mode),
            "bounce": self.bounce,
            "op": body_op(self.body),
        }


# ----------------------------------------------------------------------------
# Field helpers
# ----------------------------------------------------------------------------


def _uint(v: Any, name: str, bits: Optional[int] = None) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise MessageDecodeError(f"{name}: expected unsigned int")
    if bits is not None and v >> bits:
        raise MessageDecodeError(f"{name}: exceeds {bits} bits")
    return v


def _addr(v: Any, name: str) -> Address:
    try:
        return Address.from_bytes(v)
    except AddressError as e:
        raise MessageDecodeError(f"{name}: {e}") from e


def _opt_addr(v: Any, name: str) -> Optional[Address]:
    try:
        return optional_address(v)
    except AddressError as e:
        raise MessageDecodeError(f"{name}: {e}") from e


def _opt_bytes(v: Any, name: str) -> Optional[bytes]:
    if v is not None and not isinstance(v, bytes):
        raise MessageDecodeError(f"{name}: expected bytes or null")
    return v


def _arity(fields: List[Any], n: int, what: str) -> None:
    if len(fields) != n:
        raise MessageDecodeError(f"{what}: expected {n} fields, got {len(fields)}")


# ----------------------------------------------------------------------------
# Bodies
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class Comment:
    OP = OP_COMMENT
    text: str

    def encode(self) -> bytes:
        return dumps([self.OP, self.text])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "Comment":
        _arity(fields, 1, "comment")
        if not isinstance(fields[0], str):
            raise MessageDecodeError("comment: expected text")
        return cls(fields[0])


@dataclass(frozen=True)
class Initialize:
    OP = OP_INITIALIZE
    init: DealInit
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps([self.OP, self.query_id, *self.init.to_fields()])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "Initialize":
        _arity(fields, 8, "initialize")
        query_id = _uint(fields[0], "query_id", 64)
        try:
            init = DealInit.from_fields(list(fields[1:]))
        except ValueError as e:
            raise MessageDecodeError(f"initialize: {e}") from e
        return cls(init=init, query_id=query_id)


@dataclass(frozen=True)
class DeployOk:
    OP = OP_DEPLOY_OK
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps([self.OP, self.query_id])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "DeployOk":
        _arity(fields, 1, "deploy_ok")
        return cls(_uint(fields[0], "query_id", 64))


@dataclass(frozen=True)
class UpdateWalletCode:
    OP = OP_UPDATE_WALLET_CODE
    new_template: bytes

    def encode(self) -> bytes:
        return dumps([self.OP, self.new_template])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "UpdateWalletCode":
        _arity(fields, 1, "update_wallet_code")
        template = _opt_bytes(fields[0], "new_template")
        if template is None:
            raise MessageDecodeError("update_wallet_code: template is required")
        return cls(template)


@dataclass(frozen=True)
class TakeEscrowData:
    OP = OP_TAKE_ESCROW_DATA
    info: EscrowInfo

    def encode(self) -> bytes:
        return dumps([self.OP, self.info.to_wire()])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "TakeEscrowData":
        _arity(fields, 1, "take_escrow_data")
        try:
            return cls(EscrowInfo.from_wire(fields[0]))
        except ValueError as e:
            raise MessageDecodeError(f"take_escrow_data: {e}") from e


@dataclass(frozen=True)
class TokenTransfer:
    """Instruction to a token wallet from its owner: move `amount` to `destination`."""

    OP = OP_TOKEN_TRANSFER
    amount: int
    destination: Address
    response_destination: Optional[Address] = None
    forward_amount: int = 0
    forward_payload: Optional[bytes] = None
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps(
            [
                self.OP,
                self.query_id,
                self.amount,
                self.destination,
                self.response_destination,
                self.forward_amount,
                self.forward_payload,
            ]
        )

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "TokenTransfer":
        _arity(fields, 6, "transfer")
        return cls(
            query_id=_uint(fields[0], "query_id", 64),
            amount=_uint(fields[1], "amount"),
            destination=_addr(fields[2], "destination"),
            response_destination=_opt_addr(fields[3], "response_destination"),
            forward_amount=_uint(fields[4], "forward_amount"),
            forward_payload=_opt_bytes(fields[5], "forward_payload"),
        )


@dataclass(frozen=True)
class InternalTransfer:
    OP = OP_INTERNAL_TRANSFER
    amount: int
    from_: Address
    response_destination: Optional[Address] = None
    forward_amount: int = 0
    forward_payload: Optional[bytes] = None
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps(
            [
                self.OP,
                self.query_id,
                self.amount,
                self.from_,
                self.response_destination,
                self.forward_amount,
                self.forward_payload,
            ]
        )

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "InternalTransfer":
        _arity(fields, 6, "internal_transfer")
        return cls(
            query_id=_uint(fields[0], "query_id", 64),
            amount=_uint(fields[1], "amount"),
            from_=_addr(fields[2], "from"),
            response_destination=_opt_addr(fields[3], "response_destination"),
            forward_amount=_uint(fields[4], "forward_amount"),
            forward_payload=_opt_bytes(fields[5], "forward_payload"),
        )


@dataclass(frozen=True)
class TransferNotification:
    """
    Sent by a token wallet to its owner after tokens arrived. `from_` is the
    previous holder as *claimed by the payload*; only the direct sender of the
    message identifies the wallet.
    """

    OP = OP_TRANSFER_NOTIFICATION
    amount: int
    from_: Address
    forward_payload: Optional[bytes] = None
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps([self.OP, self.query_id, self.amount, self.from_, self.forward_payload])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "TransferNotification":
        _arity(fields, 4, "transfer_notification")
        return cls(
            query_id=_uint(fields[0], "query_id", 64),
            amount=_uint(fields[1], "amount"),
            from_=_addr(fields[2], "from"),
            forward_payload=_opt_bytes(fields[3], "forward_payload"),
        )


@dataclass(frozen=True)
class Excesses:
    OP = OP_EXCESSES
    query_id: int = 0

    def encode(self) -> bytes:
        return dumps([self.OP, self.query_id])

    @classmethod
    def decode_fields(cls, fields: List[Any]) -> "Excesses":
        _arity(fields, 1, "excesses")
        return cls(_uint(fields[0], "query_id", 64))


_BODY_TYPES: Dict[int, Type[Any]] = {
    cls.OP: cls
    for cls in (
        Comment,
        Initialize,
        DeployOk,
        UpdateWalletCode,
        TakeEscrowData,
        TokenTransfer,
        InternalTransfer,
        TransferNotification,
        Excesses,
    )
}


# ----------------------------------------------------------------------------
# Codec entry points
# ----------------------------------------------------------------------------


def comment(text: str) -> bytes:
    return Comment(text).encode()


def split_body(raw: bytes) -> "tuple[int, List[Any]]":
    """Return (op, fields) of a body; MessageDecodeError if it is not `[int, ...]`."""
    try:
        obj = loads(raw)
    except DecodeError as e:
        raise MessageDecodeError(str(e)) from e
    if not isinstance(obj, list) or not obj:
        raise MessageDecodeError("body must be a non-empty array")
    op = obj[0]
    if isinstance(op, bool) or not isinstance(op, int) or not 0 <= op <= 0xFFFF_FFFF:
        raise MessageDecodeError("body must start with a 32-bit opcode")
    return op, obj[1:]


def body_op(raw: bytes) -> Optional[int]:
    """Opcode of `raw`, or None when the body is empty or malformed."""
    if not raw:
        return None
    try:
        return split_body(raw)[0]
    except MessageDecodeError:
        return None


def decode_body(raw: bytes) -> Any:
    """Decode `raw` into one of the body classes above."""
    op, fields = split_body(raw)
    cls = _BODY_TYPES.get(op)
    if cls is None:
        raise MessageDecodeError(f"unknown opcode 0x{op:08x}")
    return cls.decode_fields(fields)


__all__ = [
    "OP_COMMENT",
    "OP_INITIALIZE",
    "OP_DEPLOY_OK",
    "OP_UPDATE_WALLET_CODE",
    "OP_TAKE_ESCROW_DATA",
    "OP_TOKEN_TRANSFER",
    "OP_INTERNAL_TRANSFER",
    "OP_TRANSFER_NOTIFICATION",
    "OP_EXCESSES",
    "COMMENT_FUNDING",
    "COMMENT_APPROVE",
    "COMMENT_CANCEL",
    "COMMENT_PROVIDE_ESCROW_DATA",
    "MessageDecodeError",
    "SendMode",
    "FINAL_SEND_MODE",
    "MessageContext",
    "OutboundMessage",
    "Comment",
    "Initialize",
    "DeployOk",
    "UpdateWalletCode",
    "TakeEscrowData",
    "TokenTransfer",
    "InternalTransfer",
    "TransferNotification",
    "Excesses",
    "comment",
    "split_body",
    "body_op",
    "decode_body",
]
