"""
issuance.errors — typed failures for the issuance engine.

Every operation of the engine communicates failure by raising one of the
exceptions below. They are synchronous and caller-visible; the engine never
retries. Any raised error aborts the whole operation and the coordinator
reverts every state change made so far.

Hierarchy
---------
IssuanceError (base)
 ├─ AuthorizationError : Unauthorized, InvalidSignature, NotAdmin, BotDetected,
 │                       WrongTarget, AllowlistRequired
 ├─ ReplayError        : AlreadyUsed (terminal), OutOfWindow
 ├─ SupplyError        : InsufficientLazyMinted (NotEnoughLazyMinted), ExceedsSupplyCap,
 │                       ExceedsWalletLimit, InvalidIdentifier, LazyRangePending
 ├─ PaymentError       : WrongPayment (PriceMismatch), CurrencyOrPriceMismatch,
 │                       UnsupportedCurrency, InsufficientFunds
 ├─ RevealError        : BadKey, AlreadyRevealed, BatchNotFound, NotEncrypted
 ├─ ValidationError    : ZeroQuantity, EmptyLocator, InvalidArgument, NotStarted,
 │                       NoActiveCondition
 └─ ConfigError        : malformed configuration

`terminal` marks failures that no resubmission can fix; only replay-token
reuse is terminal for its request.

This module imports nothing from the rest of the package so it can be used
from every layer without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional


class ErrorKind(str, Enum):
    INTERNAL = "INTERNAL"
    AUTHORIZATION = "AUTHORIZATION"
    REPLAY = "REPLAY"
    SUPPLY = "SUPPLY"
    PAYMENT = "PAYMENT"
    REVEAL = "REVEAL"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"


def _coerce_json(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Mapping):
        return {str(k): _coerce_json(x) for k, x in v.items()}
    if isinstance(v, (list, tuple, set, frozenset)):
        return [_coerce_json(x) for x in v]
    return str(v)


@dataclass(eq=False)
class IssuanceError(Exception):
    """
    Root error for the issuance engine.

    Attributes:
        message:  Human-readable explanation.
        code:     Stable machine code string (e.g. 'REPLAY/ALREADY_USED').
        data:     Structured details (kept JSON-serializable).
        terminal: True when resubmitting the same request can never succeed.
    """

    message: str = "issuance error"
    code: str = "ISSUANCE/ERROR"
    data: Dict[str, Any] = field(default_factory=dict)
    terminal: bool = False

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL

    def __post_init__(self) -> None:
        self.data = {str(k): _coerce_json(v) for k, v in (self.data or {}).items()}
        super().__init__(f"{self.code}: {self.message}")

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and audit trails."""
        out: Dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "terminal": self.terminal,
        }
        if self.data:
            out["data"] = dict(self.data)
        return out


class _CodedError(IssuanceError):
    """Concrete errors carry their own default code and message."""

    default_code: ClassVar[str] = "ISSUANCE/ERROR"
    default_message: ClassVar[str] = "issuance error"
    is_terminal: ClassVar[bool] = False

    def __init__(self, message: Optional[str] = None, *, data: Optional[Mapping[str, Any]] = None):
        super().__init__(
            message=message or self.default_message,
            code=self.default_code,
            data=dict(data or {}),
            terminal=self.is_terminal,
        )


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------


class AuthorizationError(_CodedError):
    kind = ErrorKind.AUTHORIZATION
    default_code = "AUTH/ERROR"
    default_message = "not authorized"


class ReplayError(_CodedError):
    kind = ErrorKind.REPLAY
    default_code = "REPLAY/ERROR"
    default_message = "request cannot be replayed"


class SupplyError(_CodedError):
    kind = ErrorKind.SUPPLY
    default_code = "SUPPLY/ERROR"
    default_message = "supply constraint violated"


class PaymentError(_CodedError):
    kind = ErrorKind.PAYMENT
    default_code = "PAYMENT/ERROR"
    default_message = "payment rejected"


class RevealError(_CodedError):
    kind = ErrorKind.REVEAL
    default_code = "REVEAL/ERROR"
    default_message = "reveal failed"


class ValidationError(_CodedError):
    kind = ErrorKind.VALIDATION
    default_code = "VALIDATION/ERROR"
    default_message = "invalid input"


class ConfigError(_CodedError):
    kind = ErrorKind.CONFIG
    default_code = "CONFIG/INVALID"
    default_message = "invalid configuration"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class Unauthorized(AuthorizationError):
    default_code = "AUTH/UNAUTHORIZED_SIGNER"
    default_message = "signer is not approved"


class InvalidSignature(AuthorizationError):
    default_code = "AUTH/INVALID_SIGNATURE"
    default_message = "signature does not verify"


class NotAdmin(AuthorizationError):
    default_code = "AUTH/NOT_ADMIN"
    default_message = "caller is not an admin"


class BotDetected(AuthorizationError):
    default_code = "AUTH/BOT_DETECTED"
    default_message = "caller is not the originating account"


class WrongTarget(AuthorizationError):
    default_code = "AUTH/WRONG_TARGET"
    default_message = "request is bound to another contract"


class AllowlistRequired(AuthorizationError):
    default_code = "AUTH/ALLOWLIST_REQUIRED"
    default_message = "allowlist proof does not verify"


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


class AlreadyUsed(ReplayError):
    default_code = "REPLAY/ALREADY_USED"
    default_message = "request uid already consumed"
    is_terminal = True


class OutOfWindow(ReplayError):
    default_code = "REPLAY/OUT_OF_WINDOW"
    default_message = "request is outside its validity window"


# ---------------------------------------------------------------------------
# Supply
# ---------------------------------------------------------------------------


class InsufficientLazyMinted(SupplyError):
    default_code = "SUPPLY/INSUFFICIENT_LAZY_MINTED"
    default_message = "not enough lazy-minted identifiers"


class NotEnoughLazyMinted(InsufficientLazyMinted):
    default_code = "SUPPLY/NOT_ENOUGH_LAZY_MINTED"


class ExceedsSupplyCap(SupplyError):
    default_code = "SUPPLY/EXCEEDS_SUPPLY_CAP"
    default_message = "claim exceeds the condition's supply cap"


class ExceedsWalletLimit(SupplyError):
    default_code = "SUPPLY/EXCEEDS_WALLET_LIMIT"
    default_message = "claim exceeds the per-wallet limit"


class InvalidIdentifier(SupplyError):
    default_code = "SUPPLY/INVALID_IDENTIFIER"
    default_message = "identifier has not been minted yet"


class LazyRangePending(SupplyError):
    default_code = "SUPPLY/LAZY_RANGE_PENDING"
    default_message = "lazy-minted identifiers are still unclaimed"


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


class WrongPayment(PaymentError):
    default_code = "PAYMENT/WRONG_PAYMENT"
    default_message = "attached payment does not equal the total price"


class PriceMismatch(WrongPayment):
    default_code = "PAYMENT/PRICE_MISMATCH"


class CurrencyOrPriceMismatch(PaymentError):
    default_code = "PAYMENT/CURRENCY_OR_PRICE_MISMATCH"
    default_message = "currency or price differs from the active terms"


class UnsupportedCurrency(PaymentError):
    default_code = "PAYMENT/UNSUPPORTED_CURRENCY"
    default_message = "currency is not supported"


class InsufficientFunds(PaymentError):
    default_code = "PAYMENT/INSUFFICIENT_FUNDS"
    default_message = "payer balance is too low"


# ---------------------------------------------------------------------------
# Reveal
# ---------------------------------------------------------------------------


class BadKey(RevealError):
    default_code = "REVEAL/BAD_KEY"
    default_message = "key does not decrypt the batch locator"


class AlreadyRevealed(RevealError):
    default_code = "REVEAL/ALREADY_REVEALED"
    default_message = "batch is already revealed"


class BatchNotFound(RevealError):
    default_code = "REVEAL/BATCH_NOT_FOUND"
    default_message = "no batch covers this identifier"


class NotEncrypted(RevealError):
    default_code = "REVEAL/NOT_ENCRYPTED"
    default_message = "batch was registered without an encrypted locator"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ZeroQuantity(ValidationError):
    default_code = "VALIDATION/ZERO_QUANTITY"
    default_message = "quantity must be positive"


class EmptyLocator(ValidationError):
    default_code = "VALIDATION/EMPTY_LOCATOR"
    default_message = "a fresh identifier requires a metadata locator"


class InvalidArgument(ValidationError):
    default_code = "VALIDATION/INVALID_ARGUMENT"


class NotStarted(ValidationError):
    default_code = "VALIDATION/NOT_STARTED"
    default_message = "claim condition has not started"


class NoActiveCondition(ValidationError):
    default_code = "VALIDATION/NO_ACTIVE_CONDITION"
    default_message = "no claim condition is active"


def error_to_record(err: IssuanceError) -> Dict[str, Any]:
    """
    Map an error to the fields an audit log stores for a rejected operation.

    Returns:
        {"status": "REJECTED" | "TERMINAL", "error": {...}}
    """
    return {"status": "TERMINAL" if err.terminal else "REJECTED", "error": err.to_dict()}


__all__ = [
    "ErrorKind",
    "IssuanceError",
    "AuthorizationError",
    "ReplayError",
    "SupplyError",
    "PaymentError",
    "RevealError",
    "ValidationError",
    "ConfigError",
    "Unauthorized",
    "InvalidSignature",
    "NotAdmin",
    "BotDetected",
    "WrongTarget",
    "AllowlistRequired",
    "AlreadyUsed",
    "OutOfWindow",
    "InsufficientLazyMinted",
    "NotEnoughLazyMinted",
    "ExceedsSupplyCap",
    "ExceedsWalletLimit",
    "InvalidIdentifier",
    "LazyRangePending",
    "WrongPayment",
    "PriceMismatch",
    "CurrencyOrPriceMismatch",
    "UnsupportedCurrency",
    "InsufficientFunds",
    "BadKey",
    "AlreadyRevealed",
    "BatchNotFound",
    "NotEncrypted",
    "ZeroQuantity",
    "EmptyLocator",
    "InvalidArgument",
    "NotStarted",
    "NoActiveCondition",
    "error_to_record",
]
