"""
escrow_vm.sandbox — local ledger and token simulation for running deals
end-to-end without a node.
"""

from .ledger import EXIT_ACTION_NOT_ENOUGH_BALANCE, Ledger, LedgerError, SendResult, Transaction
from .token import Mint, TokenMinter, TokenWallet, token_balance, transfer_body

__all__ = [
    "EXIT_ACTION_NOT_ENOUGH_BALANCE",
    "Ledger",
    "LedgerError",
    "SendResult",
    "Transaction",
    "Mint",
    "TokenMinter",
    "TokenWallet",
    "token_balance",
    "transfer_body",
]
