"""
escrow_vm.sandbox.ledger — deterministic in-memory ledger for local runs.

Hosts contract objects at addresses and delivers internal messages to them in
FIFO order, one at a time, until the queue drains. Each delivery is one
transaction:

  1. credit the inbound value to the receiver
  2. compute: `contract.receive(ctx)` → HandleResult
  3. action phase: apply send modes to the outbound messages in order
  4. on failure (rejection or an unaffordable send, exit 37) restore the
     contract's pre-message state, take back the credited value and, when the
     message was bounceable, bounce it to the sender
  5. delete the account when it asked to be destroyed and its balance is 0

There are no gas fees: `PAY_GAS_SEPARATELY` is recorded but costs nothing.
A message to an address with no account either deploys the contract carried
in `OutboundMessage.init` or bounces.

A ledger is not thread-safe; use one per test or run.

Usage:
    ledger = Ledger()
    buyer = ledger.treasury("buyer")
    res = ledger.deploy(EscrowContract.from_init(init), sender=deployer,
                        value=to_nano("0.05"), body=Initialize(init).encode())
    assert res.find(to=res.deployed[0], success=True)
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

from ..logging import get_logger, with_fields
from ..types.address import Address
from ..types.message import MessageContext, OutboundMessage, SendMode, body_op
from ..types.result import HandleResult
from ..types.status import TxStatus
from ..utils.hash import TAG_TREASURY, domain_hash
from ..utils.units import to_nano

log = get_logger(__name__)

EXIT_ACTION_NOT_ENOUGH_BALANCE = 37
MAX_MESSAGES_PER_RUN = 10_000
DEFAULT_TREASURY_BALANCE = to_nano(1_000_000)


class LedgerError(Exception):
    """Misuse of the sandbox (unknown account, unfunded treasury, runaway loop)."""


# ----------------------------------------------------------------------------
# Accounts & records
# ----------------------------------------------------------------------------


class Treasury:
    """Wallet-like account controlled by the test: accepts every message."""

    def __init__(self, name: str, address: Address):
        self.name = name
        self.address = address
        self.received: List[MessageContext] = []

    def receive(self, ctx: MessageContext) -> HandleResult:
        self.received.append(ctx)
        return HandleResult.ok()


@dataclass
class Account:
    address: Address
    contract: Any
    balance: int = 0


@dataclass(frozen=True)
class Transaction:
    from_: Address
    to: Address
    value: int
    op: Optional[int]
    status: TxStatus
    exit_code: int = 0
    out_messages: int = 0
    bounced: bool = False
    deployed: bool = False
    destroyed: bool = False
    error: Optional[Dict[str, Any]] = None

    @property
    def success(self) -> bool:
        return self.status.is_success

    def matches(self, **criteria: Any) -> bool:
        for k, v in criteria.items():
            if k == "from_" or k == "sender":
                if self.from_ != v:
                    return False
            elif getattr(self, k) != v:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": str(self.from_),
            "to": str(self.to),
            "value": self.value,
            "op": self.op,
            "status": str(self.status),
            "exitCode": self.exit_code,
            "outMessages": self.out_messages,
            "bounced": self.bounced,
            "deployed": self.deployed,
            "destroyed": self.destroyed,
        }


@dataclass
class SendResult:
    transactions: List[Transaction] = field(default_factory=list)

    @property
    def deployed(self) -> List[Address]:
        return [t.to for t in self.transactions if t.deployed]

    def find(self, **criteria: Any) -> List[Transaction]:
        """Transactions matching every given attribute (`from_`, `to`, `success`, `exit_code`, ...)."""
        return [t for t in self.transactions if t.matches(**criteria)]

    def has(self, **criteria: Any) -> bool:
        return bool(self.find(**criteria))

    def to_list(self) -> List[Dict[str, Any]]:
        return [t.to_dict() for t in self.transactions]


@dataclass(frozen=True)
class _Envelope:
    from_: Address
    to: Address
    value: int
    body: bytes
    bounce: bool
    bounced: bool = False
    init: Any = None


# ----------------------------------------------------------------------------
# Ledger
# ----------------------------------------------------------------------------


class Ledger:
    def __init__(self) -> None:
        self._accounts: Dict[Address, Account] = {}

    # ---------------------------------------------------------------- accounts

    def treasury(self, name: str, balance: int = DEFAULT_TREASURY_BALANCE) -> Address:
        """Create (or return) a named, funded test wallet."""
        addr = Address(0, domain_hash(TAG_TREASURY, name.encode("utf-8")))
        if addr not in self._accounts:
            self._accounts[addr] = Account(addr, Treasury(name, addr), balance)
        return addr

    def exists(self, address: Address) -> bool:
        return address in self._accounts

    def balance(self, address: Address) -> int:
        acct = self._accounts.get(address)
        return acct.balance if acct is not None else 0

    def contract(self, address: Address) -> Any:
        acct = self._accounts.get(address)
        if acct is None:
            raise LedgerError(f"no account at {address}")
        return acct.contract

    def run_get_method(self, address: Address, name: str) -> Any:
        return self.contract(address).run_get_method(name)

    # ------------------------------------------------------------------- sends

    def send(
        self,
        sender: Address,
        to: Address,
        value: int,
        body: bytes = b"",
        *,
        bounce: bool = True,
        init: Any = None,
    ) -> SendResult:
        """
        External trigger: `sender` (a treasury) sends one message, then the
        ledger runs until no messages remain.
        """
        if value < 0:
            raise LedgerError("value must be >= 0")
        src = self._accounts.get(sender)
        if src is None or not isinstance(src.contract, Treasury):
            raise LedgerError(f"{sender} is not a treasury")
        if src.balance < value:
            raise LedgerError(f"treasury {src.contract.name} has {src.balance}, needs {value}")
        src.balance -= value
        return self._run(_Envelope(sender, to, value, body, bounce, init=init))

    def deploy(self, contract: Any, *, sender: Address, value: int, body: bytes = b"") -> SendResult:
        return self.send(sender, contract.address, value, body, init=contract)

    # ---------------------------------------------------------------- internals

    def _run(self, first: _Envelope) -> SendResult:
        queue: Deque[_Envelope] = deque([first])
        result = SendResult()
        while queue:
            if len(result.transactions) >= MAX_MESSAGES_PER_RUN:
                raise LedgerError("message limit exceeded; contracts are looping")
            env = queue.popleft()
            tx, out = self._deliver(env)
            result.transactions.append(tx)
            queue.extend(out)
        return result

    def _deliver(self, env: _Envelope) -> "tuple[Transaction, List[_Envelope]]":
        op = body_op(env.body)
        dlog = with_fields(log, sender=str(env.from_), op=op)

        deployed = False
        acct = self._accounts.get(env.to)
        if acct is None and env.init is not None:
            acct = Account(env.to, env.init)
            self._accounts[env.to] = acct
            deployed = True
        if acct is None:
            dlog.debug("no account at destination", extra={"to": str(env.to), "value": env.value})
            out = self._bounce(env)
            tx = Transaction(env.from_, env.to, env.value, op, TxStatus.ABORTED, bounced=env.bounced)
            return tx, out

        saved_state = copy.deepcopy(vars(acct.contract))
        saved_balance = acct.balance
        acct.balance += env.value

        ctx = MessageContext(sender=env.from_, value=env.value, body=env.body, bounced=env.bounced, bounce=env.bounce)
        res = acct.contract.receive(ctx)

        if not res.is_success:
            self._restore(acct, saved_state, saved_balance, deployed)
            dlog.debug("compute phase failed", extra={"to": str(env.to), "exit_code": res.exit_code})
            tx = Transaction(
                env.from_, env.to, env.value, op, res.status, res.exit_code,
                bounced=env.bounced, error=res.error,
            )
            return tx, self._bounce(env)

        try:
            out = self._actions(acct, env, res)
        except _ActionFailed as e:
            self._restore(acct, saved_state, saved_balance, deployed)
            dlog.debug("action phase failed", extra={"to": str(env.to), "detail": str(e)})
            tx = Transaction(
                env.from_, env.to, env.value, op, TxStatus.ABORTED, EXIT_ACTION_NOT_ENOUGH_BALANCE,
                bounced=env.bounced, deployed=deployed,
            )
            return tx, self._bounce(env)

        wants_destroy = res.destroyed or any(m.mode & SendMode.DESTROY_IF_ZERO for m in res.out_messages)
        destroyed = wants_destroy and acct.balance == 0
        if destroyed:
            del self._accounts[acct.address]

        dlog.debug(
            "delivered",
            extra={"to": str(env.to), "value": env.value, "out": len(out), "destroyed": destroyed},
        )
        tx = Transaction(
            env.from_, env.to, env.value, op, TxStatus.SUCCESS,
            out_messages=len(out), bounced=env.bounced, deployed=deployed, destroyed=destroyed,
        )
        return tx, out

    def _actions(self, acct: Account, env: _Envelope, res: HandleResult) -> List[_Envelope]:
        out: List[_Envelope] = []
        for m in res.out_messages:
            amount = self._send_amount(acct, env, m)
            if amount > acct.balance:
                if m.mode & SendMode.IGNORE_ERRORS:
                    continue
                raise _ActionFailed(f"send of {amount} to {m.to} exceeds balance {acct.balance}")
            acct.balance -= amount
            out.append(_Envelope(acct.address, m.to, amount, m.body, m.bounce, init=m.init))
        return out

    @staticmethod
    def _send_amount(acct: Account, env: _Envelope, m: OutboundMessage) -> int:
        if m.mode & SendMode.CARRY_ALL_BALANCE:
            return acct.balance
        if m.mode & SendMode.CARRY_REMAINING_VALUE:
            return m.value + env.value
        return m.value

    def _restore(self, acct: Account, state: Dict[str, Any], balance: int, deployed: bool) -> None:
        if deployed:
            # a failed first message leaves no account behind
            del self._accounts[acct.address]
            return
        # restore in place; the contract object keeps its identity
        live = vars(acct.contract)
        live.clear()
        live.update(state)
        acct.balance = balance

    @staticmethod
    def _bounce(env: _Envelope) -> List[_Envelope]:
        if not env.bounce or env.bounced or env.value == 0:
            return []
        return [_Envelope(env.to, env.from_, env.value, env.body, bounce=False, bounced=True)]


class _ActionFailed(Exception):
    pass


__all__ = [
    "EXIT_ACTION_NOT_ENOUGH_BALANCE",
    "DEFAULT_TREASURY_BALANCE",
    "LedgerError",
    "Treasury",
    "Account",
    "Transaction",
    "SendResult",
    "Ledger",
]
