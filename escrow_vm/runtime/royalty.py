"""
escrow_vm.runtime.royalty — guarantor share of a deal.

    royalty = deal_amount * min(royalty_ppm, 90_000) // 100_000

Rates are parts per 100_000 (1_000 == 1%). The 90% ceiling applies whatever
rate the deal was created with; 0 is a valid rate.
"""

from __future__ import annotations

MAX_ROYALTY_PPM = 90_000
PPM_DENOMINATOR = 100_000


def effective_ppm(royalty_ppm: int) -> int:
    if royalty_ppm < 0:
        raise ValueError("royalty_ppm must be >= 0")
    return min(royalty_ppm, MAX_ROYALTY_PPM)


def calculate_royalty(deal_amount: int, royalty_ppm: int) -> int:
    """Guarantor royalty in the asset's smallest unit (truncating)."""
    if deal_amount < 0:
        raise ValueError("deal_amount must be >= 0")
    return deal_amount * effective_ppm(royalty_ppm) // PPM_DENOMINATOR


def seller_share(deal_amount: int, royalty_ppm: int) -> int:
    return deal_amount - calculate_royalty(deal_amount, royalty_ppm)


__all__ = ["MAX_ROYALTY_PPM", "PPM_DENOMINATOR", "effective_ppm", "calculate_royalty", "seller_share"]
