"""
escrow_vm.types.deal — persistent deal state and its snapshots.

  DealInit   immutable creation parameters (the content that is hashed into
             the deal's address)
  Deal       mutable persistent state owned by one contract instance
  DealState  CREATED → FUNDED → SETTLED
  EscrowInfo read-only snapshot returned by getters and `ProvideEscrowData`

Amounts are integers in the asset's smallest unit. `royalty_ppm` is stored as
given (parts per 100_000); clamping happens when the royalty is computed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .address import Address, optional_address

U32_MAX = 0xFFFF_FFFF


class DealState(str, Enum):
    CREATED = "created"
    FUNDED = "funded"
    SETTLED = "settled"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.value


def _check_u32(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= U32_MAX:
        raise ValueError(f"{name} must be a u32, got {v!r}")
    return v


def _check_uint(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise ValueError(f"{name} must be a non-negative int, got {v!r}")
    return v


def _check_template(v: Any) -> Optional[bytes]:
    if v is None:
        return None
    if not isinstance(v, (bytes, bytearray)):
        raise ValueError("wallet_template must be bytes or None")
    return bytes(v)


@dataclass(frozen=True)
class DealInit:
    id: int
    seller: Address
    guarantor: Address
    deal_amount: int
    royalty_ppm: int
    asset_address: Optional[Address] = None
    wallet_template: Optional[bytes] = None

    def __post_init__(self) -> None:
        _check_u32("id", self.id)
        _check_uint("deal_amount", self.deal_amount)
        _check_u32("royalty_ppm", self.royalty_ppm)
        object.__setattr__(self, "wallet_template", _check_template(self.wallet_template))

    @property
    def is_token(self) -> bool:
        return self.asset_address is not None

    def to_fields(self) -> List[Any]:
        return [
            self.id,
            self.seller,
            self.guarantor,
            self.deal_amount,
            self.royalty_ppm,
            self.asset_address,
            self.wallet_template,
        ]

    @classmethod
    def from_fields(cls, fields: List[Any]) -> "DealInit":
        if len(fields) != 7:
            raise ValueError(f"deal init expects 7 fields, got {len(fields)}")
        id_, seller, guarantor, amount, ppm, asset, template = fields
        return cls(
            id=id_,
            seller=Address.from_bytes(seller),
            guarantor=Address.from_bytes(guarantor),
            deal_amount=amount,
            royalty_ppm=ppm,
            asset_address=optional_address(asset),
            wallet_template=template,
        )


@dataclass
class Deal:
    """Persistent state of one escrow. Only the state machine mutates it."""

    id: int
    seller: Address
    guarantor: Address
    deal_amount: int
    royalty_ppm: int
    asset_address: Optional[Address] = None
    wallet_template: Optional[bytes] = None
    buyer: Optional[Address] = None
    settled: bool = field(default=False)

    @classmethod
    def from_init(cls, init: DealInit) -> "Deal":
        return cls(
            id=init.id,
            seller=init.seller,
            guarantor=init.guarantor,
            deal_amount=init.deal_amount,
            royalty_ppm=init.royalty_ppm,
            asset_address=init.asset_address,
            wallet_template=init.wallet_template,
        )

    @property
    def is_funded(self) -> bool:
        return self.buyer is not None

    @property
    def is_token(self) -> bool:
        return self.asset_address is not None

    @property
    def state(self) -> DealState:
        if self.settled:
            return DealState.SETTLED
        return DealState.FUNDED if self.is_funded else DealState.CREATED

    def snapshot(self) -> "EscrowInfo":
        return EscrowInfo(
            id=self.id,
            seller=self.seller,
            guarantor=self.guarantor,
            deal_amount=self.deal_amount,
            royalty_ppm=self.royalty_ppm,
            is_funded=self.is_funded,
            asset_address=self.asset_address,
            wallet_template=self.wallet_template,
            buyer=self.buyer,
        )


@dataclass(frozen=True)
class EscrowInfo:
    id: int
    seller: Address
    guarantor: Address
    deal_amount: int
    royalty_ppm: int
    is_funded: bool
    asset_address: Optional[Address] = None
    wallet_template: Optional[bytes] = None
    buyer: Optional[Address] = None

    def to_wire(self) -> List[Any]:
        """Snapshot as carried by `TakeEscrowData` (buyer is not on the wire)."""
        return [
            self.id,
            self.seller,
            self.guarantor,
            self.deal_amount,
            self.royalty_ppm,
            self.is_funded,
            self.asset_address,
            self.wallet_template,
        ]

    @classmethod
    def from_wire(cls, fields: List[Any]) -> "EscrowInfo":
        if not isinstance(fields, list) or len(fields) != 8:
            raise ValueError("escrow data expects an 8-field array")
        id_, seller, guarantor, amount, ppm, funded, asset, template = fields
        if not isinstance(funded, bool):
            raise ValueError("is_funded must be a bool")
        return cls(
            id=_check_u32("id", id_),
            seller=Address.from_bytes(seller),
            guarantor=Address.from_bytes(guarantor),
            deal_amount=_check_uint("deal_amount", amount),
            royalty_ppm=_check_u32("royalty_ppm", ppm),
            is_funded=funded,
            asset_address=optional_address(asset),
            wallet_template=_check_template(template),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sellerAddress": str(self.seller),
            "guarantorAddress": str(self.guarantor),
            "buyerAddress": str(self.buyer) if self.buyer else None,
            "dealAmount": self.deal_amount,
            "guarantorRoyaltyPercent": self.royalty_ppm,
            "isFunded": self.is_funded,
            "assetAddress": str(self.asset_address) if self.asset_address else None,
            "tokenWalletCode": self.wallet_template.hex() if self.wallet_template is not None else None,
        }


__all__ = ["U32_MAX", "DealState", "DealInit", "Deal", "EscrowInfo"]
