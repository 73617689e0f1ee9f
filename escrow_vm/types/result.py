"""
escrow_vm.types.result — HandleResult, the outcome of one inbound message.

Fields
------
* status        : TxStatus
* exit_code     : 0 on success, the stable error code otherwise
* out_messages  : outbound messages to be sent, in order (empty on failure)
* destroyed     : True when the deal asked to be deleted after its sends
* error         : the EscrowError's `to_dict()` form on rejection
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from .message import OutboundMessage
from .status import TxStatus


@dataclass(frozen=True)
class HandleResult:
    status: TxStatus
    exit_code: int = 0
    out_messages: Tuple[OutboundMessage, ...] = ()
    destroyed: bool = False
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def ok(cls, out_messages: Iterable[OutboundMessage] = (), *, destroyed: bool = False) -> "HandleResult":
        return cls(status=TxStatus.SUCCESS, out_messages=tuple(out_messages), destroyed=destroyed)

    @classmethod
    def rejected(cls, exit_code: int, error: Optional[Dict[str, Any]] = None) -> "HandleResult":
        if exit_code == 0:
            raise ValueError("a rejection needs a non-zero exit code")
        return cls(status=TxStatus.REJECTED, exit_code=exit_code, error=error)

    @property
    def is_success(self) -> bool:
        return self.status.is_success

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": str(self.status),
            "exitCode": self.exit_code,
            "outMessages": [m.to_dict() for m in self.out_messages],
            "destroyed": self.destroyed,
            "error": self.error,
        }

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return (
            f"HandleResult(status={self.status.code}, exit_code={self.exit_code}, "
            f"out={len(self.out_messages)}, destroyed={self.destroyed})"
        )


__all__ = ["HandleResult"]
