"""
escrow_vm.utils.hash
====================

SHA3-256 wrappers used for content addressing.

Derived addresses are `sha3_256(tag || canonical_cbor(fields))`; the 1-byte
domain tag keeps deal addresses and wallet addresses from ever colliding even
if their field tuples happened to encode identically.
"""

from __future__ import annotations

import hashlib
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


# Domain tags
TAG_DEAL = 0x01
TAG_WALLET = 0x02
TAG_MINTER = 0x03
TAG_CODE = 0x04
TAG_TREASURY = 0x05


def sha3_256(data: BytesLike) -> bytes:
    """SHA3-256 digest."""
    return hashlib.sha3_256(bytes(data)).digest()


def domain_hash(tag: int, data: BytesLike) -> bytes:
    """SHA3-256 over a 1-byte domain tag followed by `data`."""
    if not 0 <= tag <= 0xFF:
        raise ValueError("domain tag must fit in one byte")
    return sha3_256(bytes([tag]) + bytes(data))


__all__ = [
    "BytesLike",
    "TAG_DEAL",
    "TAG_WALLET",
    "TAG_MINTER",
    "TAG_CODE",
    "TAG_TREASURY",
    "sha3_256",
    "domain_hash",
]
