"""
issuance.types.request — the signed mint request.

A `MintRequest` is produced off-chain, signed by an approved signer and
submitted by anyone. Its `uid` makes it single-use; its validity window
bounds when it may be used; `target` binds it to one engine deployment.

Identifier semantics
--------------------
* `identifier == ANY_IDENTIFIER` asks for a fresh identifier. The request
  must then carry a non-empty `locator`, which becomes that identifier's
  full metadata locator.
* Any other value names an already-minted identifier; the request issues
  more units of it and `locator` is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..config import normalize_address
from ..errors import EmptyLocator, InvalidArgument, ZeroQuantity

# Sentinel for "draw a fresh identifier" (the largest 256-bit value).
ANY_IDENTIFIER = (1 << 256) - 1

UID_MIN_LEN = 16
UID_MAX_LEN = 32


@dataclass(frozen=True)
class MintRequest:
    recipient: str
    identifier: int
    quantity: int
    locator: str
    currency: str
    price_per_token: int
    validity_start: int
    validity_end: int
    uid: bytes
    target: str
    primary_sale_recipient: Optional[str] = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "recipient", normalize_address(self.recipient, error=InvalidArgument))
        object.__setattr__(self, "currency", normalize_address(self.currency, error=InvalidArgument))
        object.__setattr__(self, "target", normalize_address(self.target, error=InvalidArgument))
        if self.primary_sale_recipient is not None:
            object.__setattr__(
                self,
                "primary_sale_recipient",
                normalize_address(self.primary_sale_recipient, error=InvalidArgument),
            )
        for name in ("identifier", "quantity", "price_per_token", "validity_start", "validity_end"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise InvalidArgument(f"{name} must be a non-negative int", data={name: repr(v)})
        if not isinstance(self.locator, str):
            raise InvalidArgument("locator must be a string")
        if not isinstance(self.uid, (bytes, bytearray)) or not UID_MIN_LEN <= len(self.uid) <= UID_MAX_LEN:
            raise InvalidArgument(
                f"uid must be {UID_MIN_LEN}..{UID_MAX_LEN} bytes", data={"uid": repr(self.uid)[:80]}
            )
        object.__setattr__(self, "uid", bytes(self.uid))

    @property
    def wants_fresh_identifier(self) -> bool:
        return self.identifier == ANY_IDENTIFIER

    @property
    def total_price(self) -> int:
        return self.quantity * self.price_per_token

    def check_shape(self) -> None:
        """
        Stateless request checks that run before anything else, signature
        recovery included.
        """
        if self.quantity == 0:
            raise ZeroQuantity(data={"uid": self.uid})
        if self.wants_fresh_identifier and not self.locator.strip():
            raise EmptyLocator(data={"uid": self.uid})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipient": self.recipient,
            "identifier": "any" if self.wants_fresh_identifier else self.identifier,
            "quantity": self.quantity,
            "locator": self.locator,
            "currency": self.currency,
            "price_per_token": self.price_per_token,
            "validity_start": self.validity_start,
            "validity_end": self.validity_end,
            "uid": "0x" + self.uid.hex(),
            "target": self.target,
            "primary_sale_recipient": self.primary_sale_recipient,
        }


__all__ = ["ANY_IDENTIFIER", "MintRequest", "UID_MIN_LEN", "UID_MAX_LEN"]
