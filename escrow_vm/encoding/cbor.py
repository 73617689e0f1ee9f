"""
escrow_vm.encoding.cbor — deterministic CBOR for message bodies.

Message bodies and the preimages of derived addresses are encoded as CBOR
arrays. Hashing them must be stable across hosts, so every encode goes through
`cbor2` in canonical mode (RFC 8949 §4.2: shortest ints, sorted map keys).

Supported Python types mirror what the wire needs:
- None, bool, int (bignums via tags 2/3)
- bytes, str
- list/tuple, dict with int/bytes/str keys
- objects exposing `to_bytes()` (addresses) are encoded as their byte form

Floats are rejected; amounts are always integer nano units.

Public API
----------
- dumps(obj) -> bytes
- loads(data: bytes) -> object
"""

from __future__ import annotations

from typing import Any

import cbor2


class EncodeError(TypeError):
    pass


class DecodeError(ValueError):
    pass


def _prepare(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, bytes, str)):
        return obj
    if isinstance(obj, (bytearray, memoryview)):
        return bytes(obj)
    if isinstance(obj, (list, tuple)):
        return [_prepare(x) for x in obj]
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if not isinstance(k, (int, bytes, str)):
                raise EncodeError(f"unsupported map key type: {type(k).__name__}")
            out[k] = _prepare(v)
        return out
    to_bytes = getattr(obj, "to_bytes", None)
    if callable(to_bytes) and not isinstance(obj, int):
        return bytes(to_bytes())
    raise EncodeError(f"unsupported type for canonical CBOR: {type(obj).__name__}")


def dumps(obj: Any) -> bytes:
    """Encode `obj` to canonical CBOR bytes."""
    try:
        return cbor2.dumps(_prepare(obj), canonical=True)
    except cbor2.CBOREncodeError as e:
        raise EncodeError(str(e)) from e


def loads(data: bytes) -> Any:
    """
    Decode CBOR bytes. Raises DecodeError on malformed input or trailing
    bytes; floats are refused.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise DecodeError(f"expected bytes, got {type(data).__name__}")
    raw = bytes(data)
    if not raw:
        raise DecodeError("empty input")
    try:
        obj = cbor2.loads(raw)
    except (cbor2.CBORDecodeError, ValueError, EOFError) as e:
        raise DecodeError(f"malformed CBOR: {e}") from e
    if _encoded_len(obj) != len(raw):
        raise DecodeError("trailing bytes or non-canonical encoding")
    _reject_floats(obj)
    return obj


def _encoded_len(obj: Any) -> int:
    try:
        return len(cbor2.dumps(obj, canonical=True))
    except (cbor2.CBOREncodeError, TypeError, ValueError):
        return -1


def _reject_floats(obj: Any) -> None:
    if isinstance(obj, float):
        raise DecodeError("floating point values are not allowed")
    if isinstance(obj, list):
        for x in obj:
            _reject_floats(x)
    elif isinstance(obj, dict):
        for k, v in obj.items():
            _reject_floats(k)
            _reject_floats(v)


__all__ = ["dumps", "loads", "EncodeError", "DecodeError"]
