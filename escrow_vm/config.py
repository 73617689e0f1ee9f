"""
escrow_vm.config — value sizing for settlement transfers.

This module centralizes the numbers the deal uses to decide whether an inbound
`approve` carries enough value to pay for both downstream transfers. It has NO
third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (ESCROW_VM_*)
  2) Hardcoded defaults below (nano units, 1 coin = 10**9)

Key env vars:
  - ESCROW_VM_NATIVE_TRANSFER_FEE    (int)  default: 10_000_000   (0.01)
  - ESCROW_VM_TOKEN_TRANSFER_FEE     (int)  default: 50_000_000   (0.05)
  - ESCROW_VM_COMPUTE_RESERVE        (int)  default: 5_000_000    (0.005)
  - ESCROW_VM_TOKEN_FORWARD_AMOUNT   (int)  default: 0

With the defaults an approve needs 0.025 on a native deal and 0.105 on a
token deal.

Usage:
    from escrow_vm.config import load_config
    CFG = load_config()
    CFG.min_approve_value(is_token=True)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

from .utils.units import NANO

# Upper clamp for any single fee knob (1000 coins).
_MAX_FEE = 1_000 * NANO


# ----------------------------- helpers ---------------------------------------


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw.strip().replace("_", ""), 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class EscrowConfig:
    native_transfer_fee: int
    token_transfer_fee: int
    compute_reserve: int
    token_forward_amount: int

    def transfer_fee(self, *, is_token: bool) -> int:
        """Value one settlement transfer needs to complete downstream."""
        return self.token_transfer_fee if is_token else self.native_transfer_fee

    def transfer_value(self, *, is_token: bool) -> int:
        """Value attached to one settlement transfer (token transfers also fund the forward)."""
        fee = self.transfer_fee(is_token=is_token)
        return fee + self.token_forward_amount if is_token else fee

    def min_approve_value(self, *, is_token: bool) -> int:
        """Smallest approve value that carries both settlement transfers."""
        return self.compute_reserve + 2 * self.transfer_value(is_token=is_token)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "native_transfer_fee": self.native_transfer_fee,
            "token_transfer_fee": self.token_transfer_fee,
            "compute_reserve": self.compute_reserve,
            "token_forward_amount": self.token_forward_amount,
        }


@lru_cache(maxsize=1)
def load_config() -> EscrowConfig:
    """
    Build and cache an EscrowConfig from environment + defaults.

    Tests that tweak the environment must call `load_config.cache_clear()`.
    """
    return EscrowConfig(
        native_transfer_fee=_env_int("ESCROW_VM_NATIVE_TRANSFER_FEE", 10_000_000, min_v=0, max_v=_MAX_FEE),
        token_transfer_fee=_env_int("ESCROW_VM_TOKEN_TRANSFER_FEE", 50_000_000, min_v=0, max_v=_MAX_FEE),
        compute_reserve=_env_int("ESCROW_VM_COMPUTE_RESERVE", 5_000_000, min_v=0, max_v=_MAX_FEE),
        token_forward_amount=_env_int("ESCROW_VM_TOKEN_FORWARD_AMOUNT", 0, min_v=0, max_v=_MAX_FEE),
    )


__all__ = ["NANO", "EscrowConfig", "load_config"]
