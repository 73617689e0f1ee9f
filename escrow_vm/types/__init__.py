"""
escrow_vm.types — plain data carried between the dispatcher, the state machine
and the ledger: addresses, deal state, messages and results.
"""

from .address import Address
from .deal import Deal, DealInit, DealState, EscrowInfo
from .message import MessageContext, OutboundMessage, SendMode
from .result import HandleResult
from .status import TxStatus

__all__ = [
    "Address",
    "Deal",
    "DealInit",
    "DealState",
    "EscrowInfo",
    "MessageContext",
    "OutboundMessage",
    "SendMode",
    "HandleResult",
    "TxStatus",
]
