"""
escrow_vm — three-party escrow deal (buyer, seller, guarantor) as a
message-driven contract, with a local sandbox ledger to run it.

    from escrow_vm import DealInit, EscrowContract
    from escrow_vm.sandbox import Ledger
"""

from .errors import EscrowError, error_from_exit_code
from .runtime.contract import EscrowContract
from .runtime.royalty import calculate_royalty
from .types.address import Address
from .types.deal import Deal, DealInit, DealState, EscrowInfo
from .version import __version__

__all__ = [
    "__version__",
    "Address",
    "Deal",
    "DealInit",
    "DealState",
    "EscrowInfo",
    "EscrowContract",
    "EscrowError",
    "calculate_royalty",
    "error_from_exit_code",
]
