"""
issuance.runtime.coordinator — the two issuance paths and the admin surface.

`IssuanceCoordinator` composes the narrow components (signature verifier,
replay guard, claim conditions, batch ledger, reveal manager) by explicit
delegation and owns the operation boundary:

* Every public operation runs inside one journal transaction. Any exception
  reverts every state change of that operation, including the in-memory
  host collaborators that share the journal, and drops the issuance records
  it buffered. Records reach the event sink only when the outermost
  operation commits.
* Effects precede interactions: the request uid is consumed and the supply
  watermarks and counters are advanced before value is transferred or units
  are issued. A re-entrant call made from inside a transfer runs as a nested
  operation with its own checkpoint and sees those effects.

Signature path order
--------------------
shape (ZeroQuantity, EmptyLocator) → target binding (WrongTarget) →
explicit identifier below the watermark (InvalidIdentifier) → validity
window (OutOfWindow) → signature (InvalidSignature) → approved signer
(Unauthorized) → uid consumption (AlreadyUsed) → identifier resolution →
payment (WrongPayment) → counters → transfers → issuance → record.

Claim path order
----------------
origin == sender (BotDetected) → lazy supply (NotEnoughLazyMinted) →
active phase (NoActiveCondition) → condition evaluation → counters →
range reservation → transfers → issuance → record.

Fresh identifiers
-----------------
Identifiers are issued in one sequence shared by both paths. A signature
mint asking for a fresh identifier (`ANY_IDENTIFIER`) therefore waits until
every lazy-minted identifier has been claimed: while a drop still has
inventory it raises `LazyRangePending`. Requests naming an existing
identifier are not affected.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from .. import encoding
from .. import logging as ilog
from ..auth.replay import ReplayGuard
from ..config import MAX_BPS, IssuanceConfig, get_config, normalize_address
from ..crypto import signing
from ..crypto.reveal_cipher import KeyLike
from ..drop.conditions import ClaimConditionBook, evaluate
from ..errors import (BotDetected, InvalidArgument, InvalidIdentifier,
                      IssuanceError, LazyRangePending, NotAdmin,
                      NotEnoughLazyMinted, Unauthorized, WrongPayment,
                      WrongTarget, ZeroQuantity)
from ..lazy.batches import BatchLedger
from ..lazy.reveal import RevealManager
from ..state.journal import Journal
from ..state.store import StateStore, make_key
from ..state.supply import SupplySnapshot, SupplyState
from ..types.batch import Batch
from ..types.condition import AllowlistProof, ClaimCondition
from ..types.context import NATIVE_CURRENCY, CallContext
from ..types.records import IssuancePath, IssuanceRecord
from ..types.request import MintRequest
from .events import InMemoryEventSink
from .interfaces import AssetLedger, AuthorizationLookup, EventSink, ValueTransfer

log = logging.getLogger(__name__)

CLAIM_DOMAIN = b"issuance/claim"

K_PRIMARY_SALE_RECIPIENT = make_key("config", "primary_sale_recipient")
K_PLATFORM_FEE_RECIPIENT = make_key("config", "platform_fee_recipient")
K_PLATFORM_FEE_BPS = make_key("config", "platform_fee_bps")
K_CONTRACT_URI = make_key("config", "contract_uri")


def _address(value: str) -> str:
    return normalize_address(value, error=InvalidArgument)


class IssuanceCoordinator:
    def __init__(
        self,
        *,
        auth: AuthorizationLookup,
        ledger: AssetLedger,
        treasury: ValueTransfer,
        events: Optional[EventSink] = None,
        config: Optional[IssuanceConfig] = None,
        journal: Optional[Journal] = None,
        primary_sale_recipient: Optional[str] = None,
    ) -> None:
        self.config = config if config is not None else get_config()
        self.journal = journal if journal is not None else Journal()
        self.store = StateStore(self.journal)
        self.auth = auth
        self.ledger = ledger
        self.treasury = treasury
        self.events: EventSink = events if events is not None else InMemoryEventSink()

        self.supply_state = SupplyState(self.store)
        self.replay = ReplayGuard(self.store)
        self.batches = BatchLedger(self.store, self.supply_state, self.config)
        self.reveals = RevealManager(self.batches)
        self.conditions = ClaimConditionBook(self.store)

        # one buffer per operation currently on the stack
        self._pending: List[List[IssuanceRecord]] = []

        if primary_sale_recipient is not None:
            self.store.set_obj(K_PRIMARY_SALE_RECIPIENT, _address(primary_sale_recipient))

    # ------------------------------------------------------------------
    # Operation boundary
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, op: str, ctx: CallContext, **fields) -> Iterator[List[IssuanceRecord]]:
        buffer: List[IssuanceRecord] = []
        self._pending.append(buffer)
        with ilog.trace_scope(op=op, caller=ctx.sender, **fields):
            try:
                with self.journal.transaction():
                    yield buffer
            except IssuanceError as e:
                log.warning("%s rejected: %s", op, e.code, extra={"code": e.code, "error_data": e.data})
                raise
            finally:
                self._pending.pop()

            if self._pending:
                self._pending[-1].extend(buffer)
            else:
                for record in buffer:
                    self.events.emit(record)
            log.info("%s ok", op, extra={"records": len(buffer)})

    def _require_admin(self, ctx: CallContext) -> None:
        if not self.auth.is_admin(ctx.sender):
            raise NotAdmin(data={"sender": ctx.sender})

    # ------------------------------------------------------------------
    # Signature path
    # ------------------------------------------------------------------

    def mint_with_signature(self, ctx: CallContext, request: MintRequest, signature: bytes) -> IssuanceRecord:
        """
        Issue units authorized off-chain by an approved signer.

        A fresh-identifier request raises `LazyRangePending` while lazy-minted
        identifiers remain unclaimed.
        """
        with self._operation("mint_with_signature", ctx, uid=request.uid.hex()) as records:
            request.check_shape()
            if request.target != self.config.contract_address:
                raise WrongTarget(data={"target": request.target, "expected": self.config.contract_address})
            if not request.wants_fresh_identifier and request.identifier >= self.supply_state.next_to_mint:
                raise InvalidIdentifier(
                    data={"identifier": request.identifier, "next_to_mint": self.supply_state.next_to_mint}
                )
            self.replay.check_window(request, ctx.timestamp)

            signer = signing.recover_signer(
                request, signature, contract_address=self.config.contract_address, chain_id=self.config.chain_id
            )
            ilog.bind(signer=signer)
            if not self.auth.is_approved_signer(signer):
                raise Unauthorized(data={"signer": signer})

            self.replay.consume(request, ctx.timestamp)

            identifier = self._resolve_identifier(request)
            price = request.total_price
            self._check_payment(ctx, request.currency, price)
            self.supply_state.record_issued(identifier, request.quantity)

            self._collect(ctx.sender, request.currency, price, request.primary_sale_recipient)
            self.ledger.issue(request.recipient, identifier, request.quantity)

            record = IssuanceRecord(
                signer=signer,
                recipient=request.recipient,
                identifier=identifier,
                quantity=request.quantity,
                price=price,
                currency=request.currency,
                request_hash=signing.request_hash(
                    request, contract_address=self.config.contract_address, chain_id=self.config.chain_id
                ),
                path=IssuancePath.SIGNATURE,
                timestamp=ctx.timestamp,
            )
            records.append(record)
        return record

    def _resolve_identifier(self, request: MintRequest) -> int:
        if not request.wants_fresh_identifier:
            return request.identifier

        snap = self.supply_state.snapshot()
        if snap.next_to_mint != snap.next_lazy_minted:
            raise LazyRangePending(data=snap.to_dict())
        identifier = snap.next_to_mint
        if self.ledger.next_free_identifier() > identifier:
            raise InvalidIdentifier(
                "asset ledger already holds the next identifier",
                data={"identifier": identifier, "ledger_next_free": self.ledger.next_free_identifier()},
            )
        self.batches.register_batch(1, base_locator=request.locator)
        self.batches.set_locator_override(identifier, request.locator)
        self.batches.reserve_range(1)
        return identifier

    # ------------------------------------------------------------------
    # Claim path
    # ------------------------------------------------------------------

    def claim(
        self,
        ctx: CallContext,
        requester: str,
        quantity: int,
        currency: str,
        price_per_token: int,
        allowlist_proof: Optional[AllowlistProof] = None,
    ) -> IssuanceRecord:
        """Claim `quantity` lazy-minted identifiers under the active phase."""
        with self._operation("claim", ctx) as records:
            if not ctx.is_direct:
                raise BotDetected(data={"sender": ctx.sender, "origin": ctx.origin})
            requester = _address(requester)
            currency = _address(currency)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 0:
                raise InvalidArgument("quantity must be a non-negative int", data={"quantity": repr(quantity)})
            if quantity == 0:
                raise ZeroQuantity()

            snap = self.supply_state.snapshot()
            if snap.next_to_mint + quantity > snap.next_lazy_minted:
                raise NotEnoughLazyMinted(data={"quantity": quantity, **snap.to_dict()})

            phase, condition = self.conditions.for_claim(ctx.timestamp)
            price = evaluate(
                condition,
                requester=requester,
                quantity=quantity,
                payment=ctx.value,
                proof=allowlist_proof,
                now=ctx.timestamp,
                claimed_by_wallet=self.conditions.claimed_by(requester, phase),
                supply_claimed=self.conditions.supply_claimed(phase),
                currency=currency,
                price_per_token=price_per_token,
            )

            self.conditions.record_claim(phase, requester, quantity)
            start = self.batches.reserve_range(quantity)
            identifiers = range(start, start + quantity)
            for identifier in identifiers:
                self.supply_state.record_issued(identifier, 1)

            self._collect(ctx.sender, currency, price, None)
            for identifier in identifiers:
                self.ledger.issue(requester, identifier, 1)

            record = IssuanceRecord(
                signer=None,
                recipient=requester,
                identifier=start,
                quantity=quantity,
                price=price,
                currency=currency,
                request_hash=encoding.digest(
                    [self.config.chain_id, self.config.contract_address, ctx.sender, requester,
                     phase, start, quantity, currency, price_per_token, ctx.timestamp],
                    domain=CLAIM_DOMAIN,
                ),
                path=IssuancePath.CLAIM,
                timestamp=ctx.timestamp,
            )
            records.append(record)
        return record

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def _check_payment(self, ctx: CallContext, currency: str, price: int) -> None:
        expected = price if currency == NATIVE_CURRENCY else 0
        if ctx.value != expected:
            raise WrongPayment(data={"value": ctx.value, "expected": expected, "currency": currency})

    def _collect(self, payer: str, currency: str, price: int, sale_recipient: Optional[str]) -> None:
        """Move `price` from `payer`: platform fee first, the rest to the sale recipient."""
        if price == 0:
            return
        recipient = sale_recipient or self.primary_sale_recipient
        if recipient is None:
            raise InvalidArgument("primary sale recipient is not set")
        fee_recipient, fee_bps = self.platform_fee()
        fee = price * fee_bps // MAX_BPS if fee_recipient is not None else 0
        if fee:
            self.treasury.transfer(currency, payer, fee_recipient, fee)
        if price - fee:
            self.treasury.transfer(currency, payer, recipient, price - fee)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def lazy_mint(self, ctx: CallContext, amount: int, base_locator: str = "", encrypted_locator: bytes = b"") -> Batch:
        with self._operation("lazy_mint", ctx):
            self._require_admin(ctx)
            batch = self.batches.register_batch(amount, base_locator=base_locator, encrypted_locator=encrypted_locator)
        return batch

    def reveal(self, ctx: CallContext, batch_id: int, key: KeyLike) -> str:
        with self._operation("reveal", ctx, batch_id=batch_id):
            self._require_admin(ctx)
            locator = self.reveals.reveal(batch_id, key)
        return locator

    def set_claim_conditions(
        self, ctx: CallContext, conditions: Sequence[ClaimCondition], reset_eligibility: bool = False
    ) -> int:
        with self._operation("set_claim_conditions", ctx):
            self._require_admin(ctx)
            epoch = self.conditions.set_conditions(conditions, reset_eligibility=reset_eligibility)
        return epoch

    def set_primary_sale_recipient(self, ctx: CallContext, recipient: str) -> None:
        with self._operation("set_primary_sale_recipient", ctx):
            self._require_admin(ctx)
            self.store.set_obj(K_PRIMARY_SALE_RECIPIENT, _address(recipient))

    def set_platform_fee(self, ctx: CallContext, recipient: str, bps: int) -> None:
        with self._operation("set_platform_fee", ctx):
            self._require_admin(ctx)
            if not isinstance(bps, int) or isinstance(bps, bool) or not 0 <= bps <= MAX_BPS:
                raise InvalidArgument(f"bps must be within [0, {MAX_BPS}]", data={"bps": repr(bps)})
            self.store.set_obj(K_PLATFORM_FEE_RECIPIENT, _address(recipient))
            self.store.set_int(K_PLATFORM_FEE_BPS, bps)

    def set_contract_uri(self, ctx: CallContext, uri: str) -> None:
        with self._operation("set_contract_uri", ctx):
            self._require_admin(ctx)
            if not isinstance(uri, str):
                raise InvalidArgument("uri must be a string")
            self.store.set_obj(K_CONTRACT_URI, uri)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def verify(self, request: MintRequest, signature: bytes) -> Tuple[bool, Optional[str]]:
        """
        (ok, signer): ok when the signature recovers to an approved signer,
        the request targets this engine and its uid is unused.
        """
        signer = signing.try_recover(
            request, signature, contract_address=self.config.contract_address, chain_id=self.config.chain_id
        )
        if signer is None:
            return False, None
        ok = (
            self.auth.is_approved_signer(signer)
            and request.target == self.config.contract_address
            and not self.replay.is_consumed(request.uid)
        )
        return ok, signer

    def token_locator(self, identifier: int) -> str:
        return self.batches.resolve_locator(identifier)

    def active_condition(self, now: int) -> Optional[Tuple[int, ClaimCondition]]:
        idx = self.conditions.active_index(now)
        if idx is None:
            return None
        return idx, self.conditions.conditions()[idx]

    def claimed_by(self, wallet: str, now: int) -> int:
        """Quantity `wallet` claimed in the phase active at `now`."""
        idx = self.conditions.active_index(now)
        return 0 if idx is None else self.conditions.claimed_by(_address(wallet), idx)

    def supply(self) -> SupplySnapshot:
        return self.supply_state.snapshot()

    def is_consumed(self, uid: bytes) -> bool:
        return self.replay.is_consumed(uid)

    def contract_uri(self) -> str:
        return self.store.get_obj(K_CONTRACT_URI, "")

    @property
    def primary_sale_recipient(self) -> Optional[str]:
        return self.store.get_obj(K_PRIMARY_SALE_RECIPIENT)

    def platform_fee(self) -> Tuple[Optional[str], int]:
        return (
            self.store.get_obj(K_PLATFORM_FEE_RECIPIENT),
            self.store.get_int(K_PLATFORM_FEE_BPS, self.config.platform_fee_bps),
        )


__all__ = ["CLAIM_DOMAIN", "IssuanceCoordinator"]
