"""
escrow_vm.runtime.contract — the deal as a message-driven actor.

`EscrowContract` is what a ledger hosts at the deal's address. It processes
one inbound message at a time through `receive()`, which never raises for a
rejected message: EscrowErrors become a failed HandleResult carrying the exit
code, so the host can roll back and bounce. Anything else is a bug and
propagates.

Read-only queries are exposed both as methods and through `run_get_method()`
under their ledger names:

    getEscrowInfo               → EscrowInfo
    getCalculateRoyaltyAmount   → int
    getWalletAddress            → Address (token deals only)

Usage:
    init = DealInit(id=1, seller=s, guarantor=g, deal_amount=to_nano(10), royalty_ppm=5_000)
    contract = EscrowContract.from_init(init)
    contract.receive(MessageContext(sender=deployer, value=to_nano("0.05"), body=Initialize(init).encode()))
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from ..config import EscrowConfig
from ..errors import EscrowError, InvalidMessage
from ..logging import get_logger, with_fields
from ..types.address import Address
from ..types.deal import DealInit, DealState, EscrowInfo
from ..types.message import MessageContext, body_op
from ..types.result import HandleResult
from .assets import deal_address
from .dispatcher import dispatch
from .machine import EscrowStateMachine

log = get_logger(__name__)


class EscrowContract:
    def __init__(self, address: Address, *, config: Optional[EscrowConfig] = None):
        self.address = address
        self.machine = EscrowStateMachine(address, config=config)

    @classmethod
    def from_init(cls, init: DealInit, *, config: Optional[EscrowConfig] = None) -> "EscrowContract":
        """Contract instance living at the address derived from `init`."""
        return cls(deal_address(init), config=config)

    # ------------------------------------------------------------------ inbound

    def receive(self, ctx: MessageContext) -> HandleResult:
        try:
            return dispatch(self.machine, ctx)
        except EscrowError as e:
            with_fields(log, deal=self.address.short(), sender=str(ctx.sender)).info(
                "message rejected",
                extra={"exit_code": e.exit_code, "reason": e.code, "msg_op": body_op(ctx.body)},
            )
            return HandleResult.rejected(e.exit_code, e.to_dict())

    # ------------------------------------------------------------------ getters

    @property
    def state(self) -> Optional[DealState]:
        return self.machine.state

    def get_escrow_info(self) -> EscrowInfo:
        return self.machine.info()

    def get_calculate_royalty_amount(self) -> int:
        return self.machine.royalty()

    def get_wallet_address(self) -> Address:
        return self.machine.own_wallet_address()

    def run_get_method(self, name: str) -> Any:
        methods: Dict[str, Callable[[], Any]] = {
            "getEscrowInfo": self.get_escrow_info,
            "getCalculateRoyaltyAmount": self.get_calculate_royalty_amount,
            "getWalletAddress": self.get_wallet_address,
        }
        fn = methods.get(name)
        if fn is None:
            raise InvalidMessage(f"unknown get method {name!r}")
        return fn()

    def __repr__(self) -> str:  # pragma: no cover - cosmetic
        return f"EscrowContract(address={self.address}, state={self.state})"


__all__ = ["EscrowContract"]
