"""
issuance.auth.replay — single-use enforcement for signed mint requests.

Each `MintRequest` carries a `uid`. Consuming a request records its uid;
a uid is never released, so a consumed request can never be used again
(terminal `AlreadyUsed`). Requests are also only usable while the host clock
is inside `[validity_start, validity_end]` (`OutOfWindow`).

`consume()` writes through the shared state store, so it is rolled back
with the rest of an operation that fails later, and it runs before any
external call of that operation: a re-entrant call carrying the same
request sees the uid as consumed.
"""

from __future__ import annotations

import logging
from typing import Iterator

from ..errors import AlreadyUsed, OutOfWindow
from ..state.store import StateStore, make_key
from ..types.request import MintRequest

log = logging.getLogger(__name__)

_PREFIX = b"replay:"


class ReplayGuard:
    def __init__(self, store: StateStore) -> None:
        self._store = store

    def is_consumed(self, uid: bytes) -> bool:
        return self._store.has(make_key("replay", bytes(uid)))

    def check_window(self, request: MintRequest, now: int) -> None:
        if not request.validity_start <= now <= request.validity_end:
            raise OutOfWindow(
                data={
                    "uid": request.uid,
                    "now": now,
                    "validity_start": request.validity_start,
                    "validity_end": request.validity_end,
                }
            )

    def consume(self, request: MintRequest, now: int) -> None:
        key = make_key("replay", request.uid)
        if self._store.has(key):
            raise AlreadyUsed(data={"uid": request.uid})
        self.check_window(request, now)
        self._store.set_flag(key)
        log.debug("request uid consumed", extra={"uid": request.uid.hex()})

    def consumed(self) -> Iterator[bytes]:
        """Every consumed uid, ordered by uid bytes."""
        for key, _ in self._store.items(_PREFIX):
            yield bytes.fromhex(key[len(_PREFIX):].decode("ascii"))


__all__ = ["ReplayGuard"]
