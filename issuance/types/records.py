"""
issuance.types.records — the audit record emitted on every successful mint.

External observers rely on these records as the issuance audit trail. Every
record correlates who authorized the mint (the signer, or None for a drop
claim), who received it, what was issued, what was paid and a hash of the
originating request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class IssuancePath(str, Enum):
    SIGNATURE = "signature"
    CLAIM = "claim"


@dataclass(frozen=True)
class IssuanceRecord:
    signer: Optional[str]
    recipient: str
    identifier: int
    quantity: int
    price: int
    currency: str
    request_hash: bytes
    path: IssuancePath
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signer": self.signer,
            "recipient": self.recipient,
            "identifier": self.identifier,
            "quantity": self.quantity,
            "price": self.price,
            "currency": self.currency,
            "request_hash": "0x" + self.request_hash.hex(),
            "path": self.path.value,
            "timestamp": self.timestamp,
        }


__all__ = ["IssuancePath", "IssuanceRecord"]
