"""
escrow_vm.runtime — the deal itself.

Layers (leaves first): royalty → assets → guard → machine → dispatcher →
contract. Only `contract` is needed by hosts; the rest is importable for tests
and tooling.
"""

from .assets import ESCROW_CODE_HASH, deal_address, derive_wallet_address
from .contract import EscrowContract
from .dispatcher import MessageKind, decode_inbound, dispatch
from .machine import EscrowStateMachine
from .royalty import MAX_ROYALTY_PPM, PPM_DENOMINATOR, calculate_royalty

__all__ = [
    "ESCROW_CODE_HASH",
    "deal_address",
    "derive_wallet_address",
    "EscrowContract",
    "EscrowStateMachine",
    "MessageKind",
    "decode_inbound",
    "dispatch",
    "MAX_ROYALTY_PPM",
    "PPM_DENOMINATOR",
    "calculate_royalty",
]
