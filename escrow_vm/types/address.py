"""
escrow_vm.types.address — ledger account address.

An address is a (workchain, 32-byte hash) pair:

  * text form (raw):  "0:9f86d0...0a08"  (workchain as signed decimal, hash hex)
  * wire form:        33 bytes = workchain as 1 signed byte || hash

Derived addresses (deals, token wallets) always live on workchain 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

ADDRESS_HASH_LEN = 32
ADDRESS_WIRE_LEN = 1 + ADDRESS_HASH_LEN


class AddressError(ValueError):
    """Malformed address text or bytes."""


@dataclass(frozen=True, order=True)
class Address:
    workchain: int
    hash_part: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.workchain, int) or not -128 <= self.workchain <= 127:
            raise AddressError(f"workchain must fit in a signed byte, got {self.workchain!r}")
        if not isinstance(self.hash_part, (bytes, bytearray)):
            raise AddressError("hash_part must be bytes")
        if len(self.hash_part) != ADDRESS_HASH_LEN:
            raise AddressError(f"hash_part must be {ADDRESS_HASH_LEN} bytes, got {len(self.hash_part)}")
        object.__setattr__(self, "hash_part", bytes(self.hash_part))

    # ---- constructors ---- #

    @classmethod
    def parse(cls, value: Union[str, bytes, "Address"]) -> "Address":
        """Accept an Address, its raw text form or its 33-byte wire form."""
        if isinstance(value, Address):
            return value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls.from_bytes(bytes(value))
        if isinstance(value, str):
            return cls.from_raw(value)
        raise AddressError(f"cannot parse address from {type(value).__name__}")

    @classmethod
    def from_raw(cls, text: str) -> "Address":
        wc, sep, h = text.strip().partition(":")
        if not sep:
            raise AddressError(f"raw address must look like 'wc:hex', got {text!r}")
        try:
            return cls(int(wc, 10), bytes.fromhex(h))
        except ValueError as e:
            raise AddressError(f"invalid raw address: {text!r}") from e

    @classmethod
    def from_bytes(cls, data: bytes) -> "Address":
        if not isinstance(data, (bytes, bytearray)):
            raise AddressError(f"expected address bytes, got {type(data).__name__}")
        if len(data) != ADDRESS_WIRE_LEN:
            raise AddressError(f"address must be {ADDRESS_WIRE_LEN} bytes, got {len(data)}")
        return cls(int.from_bytes(data[:1], "big", signed=True), data[1:])

    # ---- views ---- #

    def to_bytes(self) -> bytes:
        return self.workchain.to_bytes(1, "big", signed=True) + self.hash_part

    def to_raw(self) -> str:
        return f"{self.workchain}:{self.hash_part.hex()}"

    def short(self) -> str:
        return f"{self.workchain}:{self.hash_part.hex()[:8]}…"

    def __str__(self) -> str:
        return self.to_raw()


def optional_address(value: object) -> "Address | None":
    """Decode an optional wire address (None stays None)."""
    if value is None:
        return None
    if not isinstance(value, (bytes, bytearray)):
        raise AddressError(f"expected address bytes or null, got {type(value).__name__}")
    return Address.from_bytes(bytes(value))


__all__ = ["Address", "AddressError", "ADDRESS_HASH_LEN", "ADDRESS_WIRE_LEN", "optional_address"]
