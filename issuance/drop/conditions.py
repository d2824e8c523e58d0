"""
issuance.drop.conditions — claim-condition evaluation and the phase book.

`evaluate()` decides whether one claim satisfies one condition and returns
what it costs. It is a pure function of its arguments: counters and the
clock are passed in, nothing is read or written.

Checks, in order:

1. NotStarted               now < condition.start_timestamp
2. AllowlistRequired        a root is set and the proof does not verify for
                            (requester, overrides)
3. ExceedsWalletLimit       claimed_by_wallet + quantity > per-wallet limit
4. ExceedsSupplyCap         supply_claimed + quantity > phase supply cap
5. CurrencyOrPriceMismatch  the claimer's declared (currency, price) differ
                            from the effective terms
6. PriceMismatch            native currency: payment != quantity * price;
                            other currency: any native payment attached

Effective terms are the condition's, replaced field by field by the
allowlist entry's overrides when the phase is allowlisted and the entry
carries them.

`ClaimConditionBook` persists the ordered list of phases and the counters
(`supply_claimed` per phase, claimed quantity per wallet per phase). The
active phase is the last one whose start is not in the future.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from ..crypto import merkle
from ..errors import (AllowlistRequired, CurrencyOrPriceMismatch,
                      ExceedsSupplyCap, ExceedsWalletLimit, InvalidArgument,
                      NoActiveCondition, NotStarted, PriceMismatch)
from ..state.store import StateStore, make_key
from ..types.condition import AllowlistProof, ClaimCondition
from ..types.context import NATIVE_CURRENCY

log = logging.getLogger(__name__)

K_CONDITIONS = make_key("claim", "conditions")
K_EPOCH = make_key("claim", "epoch")


@dataclass(frozen=True)
class ClaimTerms:
    price_per_token: int
    currency: str
    max_per_wallet: Optional[int]


def effective_terms(condition: ClaimCondition, proof: Optional[AllowlistProof]) -> ClaimTerms:
    price = condition.price_per_token
    currency = condition.currency
    limit = condition.max_per_wallet
    if condition.allowlist_root is not None and proof is not None:
        if proof.price_per_token is not None:
            price = proof.price_per_token
        if proof.currency is not None:
            currency = proof.currency
        if proof.quantity_limit is not None:
            limit = proof.quantity_limit
    return ClaimTerms(price_per_token=price, currency=currency, max_per_wallet=limit)


def verify_allowlist(condition: ClaimCondition, requester: str, proof: Optional[AllowlistProof]) -> bool:
    if condition.allowlist_root is None:
        return True
    if proof is None:
        return False
    leaf = merkle.leaf_hash(requester, proof.quantity_limit, proof.price_per_token, proof.currency)
    return merkle.verify(condition.allowlist_root, leaf, proof.proof)


def evaluate(
    condition: ClaimCondition,
    *,
    requester: str,
    quantity: int,
    payment: int,
    proof: Optional[AllowlistProof],
    now: int,
    claimed_by_wallet: int,
    supply_claimed: int,
    currency: str,
    price_per_token: int,
) -> int:
    """Validate one claim against `condition`. Returns the total price owed."""
    if now < condition.start_timestamp:
        raise NotStarted(data={"now": now, "start_timestamp": condition.start_timestamp})

    if not verify_allowlist(condition, requester, proof):
        raise AllowlistRequired(data={"requester": requester})

    terms = effective_terms(condition, proof)
    if terms.max_per_wallet is not None and claimed_by_wallet + quantity > terms.max_per_wallet:
        raise ExceedsWalletLimit(
            data={"claimed": claimed_by_wallet, "quantity": quantity, "limit": terms.max_per_wallet}
        )

    if condition.supply_cap is not None and supply_claimed + quantity > condition.supply_cap:
        raise ExceedsSupplyCap(
            data={"supply_claimed": supply_claimed, "quantity": quantity, "cap": condition.supply_cap}
        )

    if currency.lower() != terms.currency or price_per_token != terms.price_per_token:
        raise CurrencyOrPriceMismatch(
            data={
                "currency": currency,
                "price_per_token": price_per_token,
                "expected_currency": terms.currency,
                "expected_price_per_token": terms.price_per_token,
            }
        )

    total = quantity * terms.price_per_token
    expected_payment = total if terms.currency == NATIVE_CURRENCY else 0
    if payment != expected_payment:
        raise PriceMismatch(data={"payment": payment, "expected": expected_payment, "currency": terms.currency})
    return total


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def _to_state(c: ClaimCondition) -> List[Any]:
    return [c.start_timestamp, c.price_per_token, c.currency, c.allowlist_root,
            c.max_per_wallet, c.supply_cap, c.metadata]


def _from_state(raw: List[Any]) -> ClaimCondition:
    start, price, currency, root, limit, cap, metadata = raw
    return ClaimCondition(
        start_timestamp=start,
        price_per_token=price,
        currency=currency,
        allowlist_root=root,
        max_per_wallet=limit,
        supply_cap=cap,
        metadata=metadata,
    )


class ClaimConditionBook:
    """
    The drop's phases and their counters.

    Counters are namespaced by an *epoch*. Replacing the phases with
    `reset_eligibility=True` bumps the epoch so every wallet and every phase
    starts again from zero; otherwise counters of phase `i` carry over to
    the new phase `i`.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store

    @property
    def epoch(self) -> int:
        return self._store.get_int(K_EPOCH)

    def conditions(self) -> List[ClaimCondition]:
        return [_from_state(raw) for raw in self._store.get_obj(K_CONDITIONS, [])]

    def set_conditions(self, conditions: Sequence[ClaimCondition], *, reset_eligibility: bool = False) -> int:
        """Replace every phase. Returns the epoch the new phases count under."""
        prev_start = -1
        for c in conditions:
            if c.start_timestamp <= prev_start:
                raise InvalidArgument("phase start timestamps must strictly increase")
            prev_start = c.start_timestamp

        epoch = self.epoch + 1 if reset_eligibility else self.epoch
        if not reset_eligibility:
            for i, c in enumerate(conditions):
                claimed = self.supply_claimed(i)
                if c.supply_cap is not None and c.supply_cap < claimed:
                    raise InvalidArgument(
                        "supply cap is below what the phase already issued",
                        data={"phase": i, "cap": c.supply_cap, "supply_claimed": claimed},
                    )
        self._store.set_int(K_EPOCH, epoch)
        self._store.set_obj(K_CONDITIONS, [_to_state(c) for c in conditions])
        log.info("claim conditions replaced", extra={"phases": len(conditions), "epoch": epoch})
        return epoch

    def active_index(self, now: int) -> Optional[int]:
        idx: Optional[int] = None
        for i, c in enumerate(self.conditions()):
            if c.start_timestamp <= now:
                idx = i
        return idx

    def for_claim(self, now: int) -> Tuple[int, ClaimCondition]:
        """
        The phase a claim at `now` is judged against: the active phase, or
        the first phase when none has started yet (so the claim fails with
        NotStarted rather than with a missing-condition error).
        """
        conds = self.conditions()
        if not conds:
            raise NoActiveCondition()
        idx = self.active_index(now)
        if idx is None:
            return 0, conds[0]
        return idx, conds[idx]

    def supply_claimed(self, phase: int) -> int:
        return self._store.get_int(make_key("claim", "supply", self.epoch, phase))

    def claimed_by(self, wallet: str, phase: int) -> int:
        return self._store.get_int(make_key("claim", "wallet", self.epoch, phase, wallet))

    def record_claim(self, phase: int, wallet: str, quantity: int) -> None:
        epoch = self.epoch
        self._store.add_int(make_key("claim", "supply", epoch, phase), quantity)
        self._store.add_int(make_key("claim", "wallet", epoch, phase, wallet), quantity)


__all__ = [
    "ClaimConditionBook",
    "ClaimTerms",
    "effective_terms",
    "evaluate",
    "verify_allowlist",
]
