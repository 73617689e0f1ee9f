"""
escrow_vm.errors — deal-level exceptions with stable exit codes.

Every rejection of an inbound message is reported through a typed exception
that carries a *numeric exit code*. Those codes are part of the wire contract
with existing integrations and must never change.

Hierarchy
---------
EscrowError (base)
 ├─ WrongFundAmount             15301
 ├─ AlreadyFunded               33704
 ├─ WrongAssetType              52368
 ├─ NotGuarantor                21150
 ├─ NotFunded                   14215
 ├─ NotificationSenderMismatch  37726
 ├─ LowMessageValue              5357
 ├─ NotSeller                   49469
 └─ InvalidMessage                130

Notes
-----
* These are *semantic* failures: the surrounding ledger rolls the deal back and
  bounces the attached value. They are not node bugs.
* The classes import nothing from the rest of the package so they can be used
  from the lowest layers (guards, codecs) without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

# Exit codes (bit-exact with deployed integrations)
EXIT_WRONG_FUND_AMOUNT = 15301
EXIT_ALREADY_FUNDED = 33704
EXIT_WRONG_ASSET_TYPE = 52368
EXIT_NOT_GUARANTOR = 21150
EXIT_NOT_FUNDED = 14215
EXIT_NOTIFICATION_SENDER_MISMATCH = 37726
EXIT_LOW_MESSAGE_VALUE = 5357
EXIT_NOT_SELLER = 49469
EXIT_INVALID_MESSAGE = 130


@dataclass
class EscrowError(Exception):
    """
    Base escrow error.

    Attributes:
        message:   Human-readable explanation.
        code:      Stable machine code string (e.g. 'ALREADY_FUNDED').
        exit_code: Stable numeric code reported to the ledger.
        data:      Optional structured details (JSON-serializable).
    """
    message: str = "escrow error"
    code: str = "ESCROW_ERROR"
    exit_code: int = 1
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}({self.exit_code}): {self.message} ({self.data})"
        return f"{self.code}({self.exit_code}): {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for results/logs."""
        out: Dict[str, Any] = {
            "code": self.code,
            "exitCode": self.exit_code,
            "message": self.message,
        }
        if self.data is not None:
            out["data"] = self.data
        return out


class WrongFundAmount(EscrowError):
    """Funding amount differs from the deal amount."""
    EXIT_CODE = EXIT_WRONG_FUND_AMOUNT

    def __init__(self, message: str = "wrong fund amount", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="WRONG_FUND_AMOUNT", exit_code=self.EXIT_CODE, data=data)


class AlreadyFunded(EscrowError):
    """
    The deal already has a buyer.

    Also raised for a wallet template update once funded: swapping the
    template then would redirect refund transfers away from the buyer.
    """
    EXIT_CODE = EXIT_ALREADY_FUNDED

    def __init__(self, message: str = "already funded", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="ALREADY_FUNDED", exit_code=self.EXIT_CODE, data=data)


class WrongAssetType(EscrowError):
    """Operation does not apply to the deal's configured asset."""
    EXIT_CODE = EXIT_WRONG_ASSET_TYPE

    def __init__(self, message: str = "wrong asset type", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="WRONG_ASSET_TYPE", exit_code=self.EXIT_CODE, data=data)


class NotGuarantor(EscrowError):
    EXIT_CODE = EXIT_NOT_GUARANTOR

    def __init__(self, message: str = "caller is not the guarantor", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_GUARANTOR", exit_code=self.EXIT_CODE, data=data)


class NotFunded(EscrowError):
    EXIT_CODE = EXIT_NOT_FUNDED

    def __init__(self, message: str = "deal is not funded yet", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_FUNDED", exit_code=self.EXIT_CODE, data=data)


class NotificationSenderMismatch(EscrowError):
    """
    Token notification whose *direct* sender is not the escrow's own derived
    wallet. The embedded `from` field is never consulted.
    """
    EXIT_CODE = EXIT_NOTIFICATION_SENDER_MISMATCH

    def __init__(
        self,
        message: str = "notification not from escrow token wallet",
        *,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if expected is not None:
            d.setdefault("expected", expected)
        if actual is not None:
            d.setdefault("actual", actual)
        super().__init__(
            message=message,
            code="NOTIFICATION_SENDER_MISMATCH",
            exit_code=self.EXIT_CODE,
            data=d or None,
        )


class LowMessageValue(EscrowError):
    """Approve value cannot carry both settlement transfers."""
    EXIT_CODE = EXIT_LOW_MESSAGE_VALUE

    def __init__(
        self,
        message: str = "insufficient attached value",
        *,
        required: Optional[int] = None,
        attached: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = {}
        if data:
            d.update(data)
        if required is not None:
            d.setdefault("required", required)
        if attached is not None:
            d.setdefault("attached", attached)
        super().__init__(message=message, code="LOW_MESSAGE_VALUE", exit_code=self.EXIT_CODE, data=d or None)


class NotSeller(EscrowError):
    EXIT_CODE = EXIT_NOT_SELLER

    def __init__(self, message: str = "caller is not the seller", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="NOT_SELLER", exit_code=self.EXIT_CODE, data=data)


class InvalidMessage(EscrowError):
    """No receiver matches the inbound message."""
    EXIT_CODE = EXIT_INVALID_MESSAGE

    def __init__(self, message: str = "invalid incoming message", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="INVALID_MESSAGE", exit_code=self.EXIT_CODE, data=data)


# -------- helper utilities ----------------------------------------------------


_BY_EXIT_CODE: Dict[int, Type[EscrowError]] = {
    cls.EXIT_CODE: cls  # type: ignore[attr-defined]
    for cls in (
        WrongFundAmount,
        AlreadyFunded,
        WrongAssetType,
        NotGuarantor,
        NotFunded,
        NotificationSenderMismatch,
        LowMessageValue,
        NotSeller,
        InvalidMessage,
    )
}


def error_from_exit_code(exit_code: int, message: Optional[str] = None) -> EscrowError:
    """
    Build the typed error for a known exit code (e.g. from a transaction trace).

    Unknown codes map to the base class so callers can still branch on
    `.exit_code`.
    """
    cls = _BY_EXIT_CODE.get(int(exit_code))
    if cls is None:
        return EscrowError(message=message or f"exit code {exit_code}", exit_code=int(exit_code))
    return cls(message) if message else cls()


__all__ = [
    "EscrowError",
    "WrongFundAmount",
    "AlreadyFunded",
    "WrongAssetType",
    "NotGuarantor",
    "NotFunded",
    "NotificationSenderMismatch",
    "LowMessageValue",
    "NotSeller",
    "InvalidMessage",
    "error_from_exit_code",
    "EXIT_WRONG_FUND_AMOUNT",
    "EXIT_ALREADY_FUNDED",
    "EXIT_WRONG_ASSET_TYPE",
    "EXIT_NOT_GUARANTOR",
    "EXIT_NOT_FUNDED",
    "EXIT_NOTIFICATION_SENDER_MISMATCH",
    "EXIT_LOW_MESSAGE_VALUE",
    "EXIT_NOT_SELLER",
    "EXIT_INVALID_MESSAGE",
]
