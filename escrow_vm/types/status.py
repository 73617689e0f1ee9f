"""
escrow_vm.types.status — outcome of handling one inbound message.

  - SUCCESS  : the message was applied (state and outbound messages committed)
  - REJECTED : the deal refused it with an exit code; state unchanged
  - ABORTED  : the ledger could not carry out the requested sends (action
               phase); state rolled back as for a rejection

String forms:
  - str(TxStatus.SUCCESS) -> "success"
  - TxStatus.SUCCESS.code -> "SUCCESS"
"""

from __future__ import annotations

from enum import Enum


class TxStatus(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"
    ABORTED = "aborted"

    @property
    def code(self) -> str:
        return self.value.upper()

    @property
    def is_success(self) -> bool:
        return self is TxStatus.SUCCESS

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


__all__ = ["TxStatus"]
