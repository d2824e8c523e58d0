"""
issuance.types.context — the explicit caller context of one operation.

Every entry point of the coordinator takes a `CallContext` instead of reading
an ambient "current caller": the trust boundary is an argument.

Conventions
-----------
* Addresses are lower-case `0x` + 40 hex chars.
* `sender` is the immediate caller; `origin` is the account that started the
  whole call chain. They differ when a program calls on an account's behalf.
* `value` is the native-currency amount attached to the call.
* `timestamp` is Unix time in seconds (int), supplied by the host.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from ..config import normalize_address
from ..errors import InvalidArgument

ZERO_ADDRESS = "0x" + "00" * 20
# Distinguished currency id for the chain's native asset.
NATIVE_CURRENCY = "0x" + "ee" * 20


@dataclass(frozen=True)
class CallContext:
    """
    Attributes:
        sender:    immediate caller
        origin:    account that originated the call chain
        value:     native amount attached to the call (>= 0)
        timestamp: host clock in Unix seconds (>= 0)
    """

    sender: str
    origin: str
    value: int = 0
    timestamp: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", normalize_address(self.sender, error=InvalidArgument))
        object.__setattr__(self, "origin", normalize_address(self.origin, error=InvalidArgument))
        if not isinstance(self.value, int) or isinstance(self.value, bool) or self.value < 0:
            raise InvalidArgument("value must be a non-negative int", data={"value": repr(self.value)})
        if not isinstance(self.timestamp, int) or isinstance(self.timestamp, bool) or self.timestamp < 0:
            raise InvalidArgument("timestamp must be a non-negative int", data={"timestamp": repr(self.timestamp)})

    @classmethod
    def direct(cls, account: str, *, timestamp: int, value: int = 0) -> "CallContext":
        """Context for an account calling the engine itself (origin == sender)."""
        return cls(sender=account, origin=account, value=value, timestamp=timestamp)

    def relayed(self, sender: str, *, value: Optional[int] = None) -> "CallContext":
        """Same origin and clock, called through `sender`."""
        return replace(self, sender=sender, value=self.value if value is None else value)

    @property
    def is_direct(self) -> bool:
        return self.sender == self.origin

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": self.sender, "origin": self.origin, "value": self.value, "timestamp": self.timestamp}


__all__ = ["CallContext", "NATIVE_CURRENCY", "ZERO_ADDRESS"]
