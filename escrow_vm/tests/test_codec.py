from __future__ import annotations

import cbor2
import pytest

from escrow_vm.encoding import DecodeError, EncodeError, dumps, loads
from escrow_vm.types.address import Address, AddressError
from escrow_vm.types.deal import DealInit, EscrowInfo
from escrow_vm.types.message import (
    OP_INITIALIZE,
    Comment,
    Initialize,
    MessageDecodeError,
    TakeEscrowData,
    TokenTransfer,
    TransferNotification,
    UpdateWalletCode,
    body_op,
    decode_body,
)
from escrow_vm.utils.units import from_nano, to_nano

SELLER = Address(0, b"\x11" * 32)
GUARANTOR = Address(-1, b"\x22" * 32)
MINTER = Address(0, b"\x33" * 32)


# ---------------------------------------------------------------- addresses


def test_address_text_and_wire_forms():
    raw = GUARANTOR.to_raw()
    assert raw == "-1:" + "22" * 32
    assert Address.parse(raw) == GUARANTOR
    assert len(GUARANTOR.to_bytes()) == 33
    assert Address.from_bytes(GUARANTOR.to_bytes()) == GUARANTOR
    assert str(SELLER) == SELLER.to_raw()


@pytest.mark.parametrize("bad", ["", "0", "0:zz", "0:" + "00" * 31, "300:" + "00" * 32])
def test_address_parse_rejects_malformed(bad):
    with pytest.raises(AddressError):
        Address.parse(bad)


# --------------------------------------------------------------------- cbor


def test_cbor_is_canonical():
    assert dumps({"b": 1, "a": 2}) == cbor2.dumps({"a": 2, "b": 1}, canonical=True)
    assert dumps([SELLER]) == cbor2.dumps([SELLER.to_bytes()], canonical=True)


def test_cbor_rejects_floats_and_trailing_bytes():
    with pytest.raises(EncodeError):
        dumps([1.5])
    with pytest.raises(DecodeError):
        loads(cbor2.dumps(1.5))
    with pytest.raises(DecodeError):
        loads(dumps([1]) + b"\x00")
    with pytest.raises(DecodeError):
        loads(b"")


# ------------------------------------------------------------------- bodies


def _init(**kw) -> DealInit:
    base = dict(id=7, seller=SELLER, guarantor=GUARANTOR, deal_amount=to_nano(10), royalty_ppm=5_000)
    base.update(kw)
    return DealInit(**base)


def test_initialize_body_layout():
    init = _init(asset_address=MINTER, wallet_template=b"code")
    raw = Initialize(init, query_id=3).encode()
    assert loads(raw) == [OP_INITIALIZE, 3, 7, SELLER.to_bytes(), GUARANTOR.to_bytes(), to_nano(10), 5_000, MINTER.to_bytes(), b"code"]
    assert decode_body(raw) == Initialize(init, query_id=3)


def test_native_initialize_carries_nulls():
    raw = Initialize(_init()).encode()
    fields = loads(raw)
    assert fields[-2:] == [None, None]


def test_comment_and_opcode_helpers():
    assert decode_body(Comment("approve").encode()) == Comment("approve")
    assert body_op(Comment("cancel").encode()) == 0
    assert body_op(b"") is None
    assert body_op(b"\xff") is None


def test_token_bodies_decode():
    t = TokenTransfer(amount=5, destination=SELLER, response_destination=GUARANTOR, forward_amount=1)
    assert decode_body(t.encode()) == t
    n = TransferNotification(amount=5, from_=SELLER, forward_payload=b"x")
    assert decode_body(n.encode()) == n
    u = UpdateWalletCode(b"tmpl")
    assert decode_body(u.encode()) == u


def test_take_escrow_data_omits_buyer():
    info = EscrowInfo(
        id=1, seller=SELLER, guarantor=GUARANTOR, deal_amount=10, royalty_ppm=0,
        is_funded=True, buyer=MINTER,
    )
    decoded = decode_body(TakeEscrowData(info).encode())
    assert decoded.info.is_funded is True
    assert decoded.info.buyer is None
    assert len(loads(TakeEscrowData(info).encode())[1]) == 8


@pytest.mark.parametrize(
    "raw",
    [
        dumps([]),
        dumps({"op": 1}),
        dumps(["approve"]),
        dumps([0xDEADBEEF]),
        dumps([OP_INITIALIZE, 0, 1]),
        dumps([0, 5]),
        dumps([True, "approve"]),
    ],
)
def test_malformed_bodies_raise(raw):
    with pytest.raises(MessageDecodeError):
        decode_body(raw)


def test_deal_init_validates_ranges():
    with pytest.raises(ValueError):
        _init(id=2**32)
    with pytest.raises(ValueError):
        _init(deal_amount=-1)
    with pytest.raises(ValueError):
        _init(royalty_ppm=True)


def test_nano_units():
    assert to_nano("0.05") == 50_000_000
    assert to_nano(10) == 10 * 10**9
    assert from_nano(to_nano("4.5")) == "4.5"
    with pytest.raises(ValueError):
        to_nano("0.0000000001")
    with pytest.raises(TypeError):
        to_nano(0.5)
