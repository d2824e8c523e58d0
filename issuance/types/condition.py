"""
issuance.types.condition — claim conditions and allowlist proofs.

"Unset" and "zero" are different things everywhere in this module:

* `allowlist_root=None`   → anyone may claim; a root → only proven members.
* `max_per_wallet=None`   → no per-wallet limit; `0` → no wallet may claim.
* `supply_cap=None`       → no cap for the phase; `0` → nothing claimable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..config import normalize_address
from ..errors import InvalidArgument


def _opt_non_negative(name: str, v: Optional[int]) -> None:
    if v is None:
        return
    if not isinstance(v, int) or isinstance(v, bool) or v < 0:
        raise InvalidArgument(f"{name} must be None or a non-negative int", data={name: repr(v)})


@dataclass(frozen=True)
class ClaimCondition:
    """
    One phase of a drop.

    Attributes:
        start_timestamp: phase becomes active at this Unix time (inclusive)
        price_per_token: unit price in `currency`
        currency:        currency id (NATIVE_CURRENCY for the native asset)
        allowlist_root:  32-byte Merkle root, or None for an open phase
        max_per_wallet:  per-wallet cap, or None
        supply_cap:      total claimable in this phase, or None
        metadata:        free-form label (phase name, URI, ...)
    """

    start_timestamp: int
    price_per_token: int
    currency: str
    allowlist_root: Optional[bytes] = None
    max_per_wallet: Optional[int] = None
    supply_cap: Optional[int] = None
    metadata: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency", normalize_address(self.currency, error=InvalidArgument))
        for name in ("start_timestamp", "price_per_token"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise InvalidArgument(f"{name} must be a non-negative int", data={name: repr(v)})
        _opt_non_negative("max_per_wallet", self.max_per_wallet)
        _opt_non_negative("supply_cap", self.supply_cap)
        if self.allowlist_root is not None:
            if not isinstance(self.allowlist_root, (bytes, bytearray)) or len(self.allowlist_root) != 32:
                raise InvalidArgument("allowlist_root must be 32 bytes or None")
            object.__setattr__(self, "allowlist_root", bytes(self.allowlist_root))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_timestamp": self.start_timestamp,
            "price_per_token": self.price_per_token,
            "currency": self.currency,
            "allowlist_root": None if self.allowlist_root is None else "0x" + self.allowlist_root.hex(),
            "max_per_wallet": self.max_per_wallet,
            "supply_cap": self.supply_cap,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class AllowlistProof:
    """
    Membership proof for an allowlisted phase.

    The leaf committed in the root binds the wallet to its overrides, so a
    proof is only valid together with the exact overrides it was built for:

        leaf = sha3_256(cbor([wallet, quantity_limit, price_per_token, currency]))

    `None` overrides mean "use the condition's value".
    """

    proof: Tuple[bytes, ...] = field(default_factory=tuple)
    quantity_limit: Optional[int] = None
    price_per_token: Optional[int] = None
    currency: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "proof", tuple(bytes(p) for p in self.proof))
        for p in self.proof:
            if len(p) != 32:
                raise InvalidArgument("proof nodes must be 32 bytes")
        _opt_non_negative("quantity_limit", self.quantity_limit)
        _opt_non_negative("price_per_token", self.price_per_token)
        if self.currency is not None:
            object.__setattr__(self, "currency", normalize_address(self.currency, error=InvalidArgument))


__all__ = ["AllowlistProof", "ClaimCondition"]
