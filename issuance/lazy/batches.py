"""
issuance.lazy.batches — the lazy-mint batch table.

Batches are appended in identifier order and never overlap, so the table is
sorted by both start and end. Lookups bisect over batch ends, reading one
stored batch per step.

Fresh identifiers issued through the signature path get a one-identifier
batch plus a per-identifier locator (`locator:<id>`) that resolution returns
verbatim.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional, Tuple

from ..config import IssuanceConfig
from ..errors import BatchNotFound, InvalidArgument, ValidationError
from ..state.store import StateStore, make_key
from ..state.supply import SupplyState
from ..types.batch import Batch

log = logging.getLogger(__name__)

K_BATCH_COUNT = make_key("batch", "count")


def _batch_key(index: int) -> bytes:
    return make_key("batch", index)


def _override_key(identifier: int) -> bytes:
    return make_key("locator", identifier)


class BatchLedger:
    def __init__(self, store: StateStore, supply: SupplyState, config: IssuanceConfig) -> None:
        self._store = store
        self._supply = supply
        self._config = config

    # ---------------------------------------------------------------- writes

    def register_batch(self, amount: int, base_locator: str = "", encrypted_locator: bytes = b"") -> Batch:
        """
        Commit the next `amount` identifiers as one batch.

        Exactly one of `base_locator` (plaintext) or `encrypted_locator`
        (delayed reveal) must be given. The batch id is its first identifier.
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise ValidationError("amount must be a positive int", data={"amount": repr(amount)})
        if amount > self._config.max_batch_size:
            raise ValidationError(
                "amount exceeds the maximum batch size",
                data={"amount": amount, "max_batch_size": self._config.max_batch_size},
            )
        base_locator = base_locator or ""
        encrypted_locator = bytes(encrypted_locator or b"")
        if bool(base_locator) == bool(encrypted_locator):
            raise ValidationError("exactly one of base_locator or encrypted_locator is required")

        start = self._supply.advance_lazy(amount)
        batch = Batch(
            start=start,
            end=start + amount,
            base_locator=base_locator,
            encrypted_locator=encrypted_locator,
            was_encrypted=bool(encrypted_locator),
        )
        index = self.batch_count()
        self._store.set_obj(_batch_key(index), batch.to_state())
        self._store.set_int(K_BATCH_COUNT, index + 1)
        log.info(
            "batch registered",
            extra={"batch_id": batch.batch_id, "size": amount, "hidden": batch.is_hidden},
        )
        return batch

    def replace(self, batch: Batch) -> None:
        """Overwrite the stored batch with the same id (reveal)."""
        index, current = self.find(batch.batch_id)
        if current.batch_id != batch.batch_id or current.end != batch.end:
            raise BatchNotFound(data={"batch_id": batch.batch_id})
        self._store.set_obj(_batch_key(index), batch.to_state())

    def reserve_range(self, count: int) -> int:
        """Hand out the next `count` committed identifiers. Returns the first."""
        return self._supply.advance_mint(count)

    def set_locator_override(self, identifier: int, locator: str) -> None:
        if not locator:
            raise InvalidArgument("locator must be non-empty")
        self._store.set_obj(_override_key(identifier), locator)

    # ----------------------------------------------------------------- reads

    def batch_count(self) -> int:
        return self._store.get_int(K_BATCH_COUNT)

    def batch_at(self, index: int) -> Batch:
        raw = self._store.get_obj(_batch_key(index))
        if raw is None:
            raise BatchNotFound(data={"index": index})
        return Batch.from_state(raw)

    def batch_id_at(self, index: int) -> int:
        return self.batch_at(index).batch_id

    def batches(self) -> Iterator[Batch]:
        for i in range(self.batch_count()):
            yield self.batch_at(i)

    def find(self, identifier: int) -> Tuple[int, Batch]:
        """(index, batch) of the batch containing `identifier`."""
        lo, hi = 0, self.batch_count()
        while lo < hi:
            mid = (lo + hi) // 2
            if self.batch_at(mid).end <= identifier:
                lo = mid + 1
            else:
                hi = mid
        if lo < self.batch_count():
            batch = self.batch_at(lo)
            if batch.contains(identifier):
                return lo, batch
        raise BatchNotFound(data={"identifier": identifier})

    def get_batch(self, batch_id: int) -> Batch:
        _, batch = self.find(batch_id)
        if batch.batch_id != batch_id:
            raise BatchNotFound(data={"batch_id": batch_id})
        return batch

    def locator_override(self, identifier: int) -> Optional[str]:
        return self._store.get_obj(_override_key(identifier))

    def resolve_locator(self, identifier: int) -> str:
        override = self.locator_override(identifier)
        if override is not None:
            return override
        _, batch = self.find(identifier)
        if batch.is_hidden:
            return self._config.hidden_locator
        return batch.locator_for(identifier)


__all__ = ["BatchLedger"]
