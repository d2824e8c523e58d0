"""
issuance.runtime.interfaces — what the engine needs from its host.

The coordinator never reaches for ambient globals: the authorization
lookup, the asset ledger, value transfer and the event sink are handed to it.
`issuance.runtime.host` ships in-memory implementations.

`ValueTransfer.transfer` must be atomic: it either moves the full amount or
raises. It may call back into the engine (re-entrancy); the engine finishes
all of its own state changes before calling it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..types.records import IssuanceRecord


@runtime_checkable
class AuthorizationLookup(Protocol):
    def is_approved_signer(self, address: str) -> bool: ...

    def is_admin(self, address: str) -> bool: ...


@runtime_checkable
class AssetLedger(Protocol):
    def issue(self, recipient: str, identifier: int, quantity: int) -> None: ...

    def next_free_identifier(self) -> int: ...

    def current_supply(self, identifier: int) -> int: ...


@runtime_checkable
class ValueTransfer(Protocol):
    def transfer(self, currency: str, sender: str, recipient: str, amount: int) -> None: ...


@runtime_checkable
class EventSink(Protocol):
    def emit(self, record: IssuanceRecord) -> None: ...


__all__ = ["AssetLedger", "AuthorizationLookup", "EventSink", "ValueTransfer"]
