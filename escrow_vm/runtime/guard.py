"""
escrow_vm.runtime.guard — precondition checks for deal transitions.

Each check raises the matching EscrowError and returns None otherwise. The
state machine calls them in a fixed order before touching any state, which is
what makes the first failing condition decide the reported exit code.
"""

from __future__ import annotations

from ..errors import (
    AlreadyFunded,
    LowMessageValue,
    NotFunded,
    NotGuarantor,
    NotificationSenderMismatch,
    NotSeller,
    WrongAssetType,
    WrongFundAmount,
)
from ..types.address import Address
from ..types.deal import Deal


def require_guarantor(deal: Deal, sender: Address) -> None:
    if sender != deal.guarantor:
        raise NotGuarantor(data={"sender": str(sender)})


def require_seller(deal: Deal, sender: Address) -> None:
    if sender != deal.seller:
        raise NotSeller(data={"sender": str(sender)})


def require_funded(deal: Deal) -> None:
    if not deal.is_funded:
        raise NotFunded()


def require_not_funded(deal: Deal) -> None:
    if deal.is_funded:
        raise AlreadyFunded()


def require_native(deal: Deal) -> None:
    if deal.is_token:
        raise WrongAssetType("deal is settled in a token, not the native coin")


def require_token(deal: Deal) -> None:
    if not deal.is_token:
        raise WrongAssetType("deal is settled in the native coin")


def require_exact_amount(deal: Deal, amount: int) -> None:
    if amount != deal.deal_amount:
        raise WrongFundAmount(data={"expected": deal.deal_amount, "got": amount})


def require_min_value(attached: int, required: int) -> None:
    if attached < required:
        raise LowMessageValue(required=required, attached=attached)


def require_wallet_sender(sender: Address, expected: Address) -> None:
    """Only the direct sender counts; payload fields are never consulted."""
    if sender != expected:
        raise NotificationSenderMismatch(expected=str(expected), actual=str(sender))


__all__ = [
    "require_guarantor",
    "require_seller",
    "require_funded",
    "require_not_funded",
    "require_native",
    "require_token",
    "require_exact_amount",
    "require_min_value",
    "require_wallet_sender",
]
