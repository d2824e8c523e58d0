"""
issuance.state.supply — supply watermarks and issued-unit counters.

Two monotonic watermarks partition the identifier space:

    [0, next_to_mint)                  identifiers already issued
    [next_to_mint, next_lazy_minted)   committed by a lazy mint, not yet issued
    [next_lazy_minted, ...)            not committed

Invariants: `next_to_mint <= next_lazy_minted`; neither ever decreases;
`issued_total` equals the sum of every `issued(identifier)`.

All mutation goes through the coordinator's components; this class only
enforces the arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..errors import InsufficientLazyMinted, InvalidArgument
from .store import StateStore, make_key

K_NEXT_TO_MINT = make_key("supply", "next_to_mint")
K_NEXT_LAZY = make_key("supply", "next_lazy_minted")
K_ISSUED_TOTAL = make_key("supply", "issued_total")


@dataclass(frozen=True)
class SupplySnapshot:
    next_to_mint: int
    next_lazy_minted: int
    issued_total: int

    @property
    def unclaimed(self) -> int:
        return self.next_lazy_minted - self.next_to_mint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "next_to_mint": self.next_to_mint,
            "next_lazy_minted": self.next_lazy_minted,
            "issued_total": self.issued_total,
        }


class SupplyState:
    def __init__(self, store: StateStore) -> None:
        self._store = store

    @property
    def next_to_mint(self) -> int:
        return self._store.get_int(K_NEXT_TO_MINT)

    @property
    def next_lazy_minted(self) -> int:
        return self._store.get_int(K_NEXT_LAZY)

    @property
    def issued_total(self) -> int:
        return self._store.get_int(K_ISSUED_TOTAL)

    def issued(self, identifier: int) -> int:
        return self._store.get_int(make_key("supply", "issued", identifier))

    def snapshot(self) -> SupplySnapshot:
        return SupplySnapshot(self.next_to_mint, self.next_lazy_minted, self.issued_total)

    def advance_lazy(self, amount: int) -> int:
        """Commit `amount` more identifiers. Returns the first one."""
        if amount <= 0:
            raise InvalidArgument("amount must be positive", data={"amount": amount})
        start = self.next_lazy_minted
        self._store.set_int(K_NEXT_LAZY, start + amount)
        return start

    def advance_mint(self, count: int) -> int:
        """Move `count` committed identifiers to issued. Returns the first one."""
        if count <= 0:
            raise InvalidArgument("count must be positive", data={"count": count})
        start = self.next_to_mint
        lazy = self.next_lazy_minted
        if start + count > lazy:
            raise InsufficientLazyMinted(
                data={"next_to_mint": start, "requested": count, "next_lazy_minted": lazy}
            )
        self._store.set_int(K_NEXT_TO_MINT, start + count)
        return start

    def record_issued(self, identifier: int, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidArgument("quantity must be positive", data={"quantity": quantity})
        self._store.add_int(make_key("supply", "issued", identifier), quantity)
        self._store.add_int(K_ISSUED_TOTAL, quantity)


__all__ = ["SupplySnapshot", "SupplyState"]
