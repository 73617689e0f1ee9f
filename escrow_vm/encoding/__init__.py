"""
escrow_vm.encoding — canonical CBOR used for message bodies and content
addressing.

Re-exports:
- dumps(obj) -> bytes
- loads(data: bytes) -> object
"""

from .cbor import DecodeError, EncodeError, dumps, loads

__all__ = ["dumps", "loads", "EncodeError", "DecodeError"]
