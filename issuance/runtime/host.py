"""
issuance.runtime.host — in-memory host collaborators.

Reference implementations of the host interfaces for tests, local tooling
and embedding. They keep their state in the coordinator's `Journal` under
the `host:` namespace, so a failed operation rolls back their effects too
(the host-side atomicity the engine assumes).

    host:role:<role>:<address>             -> 1
    host:asset:balance:<id>:<address>      -> int
    host:asset:supply:<id>                 -> int
    host:asset:next_free                   -> int
    host:funds:<currency>:<address>        -> int
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from ..config import normalize_address
from ..errors import InsufficientFunds, InvalidArgument, UnsupportedCurrency
from ..state.journal import Journal
from ..state.store import StateStore, make_key
from ..types.context import NATIVE_CURRENCY

log = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_SIGNER = "signer"

TransferHook = Callable[[str, str, str, int], None]


def _addr(value: str) -> str:
    return normalize_address(value, error=InvalidArgument)


class RoleTable:
    """Admin and minter-signer roles."""

    def __init__(self, journal: Journal) -> None:
        self._store = StateStore(journal)

    def _key(self, role: str, address: str) -> bytes:
        return make_key("host", "role", role, _addr(address))

    def grant(self, role: str, address: str) -> None:
        self._store.set_flag(self._key(role, address))

    def revoke(self, role: str, address: str) -> None:
        self._store.journal.delete(self._key(role, address))

    def has_role(self, role: str, address: str) -> bool:
        return self._store.has(self._key(role, address))

    def is_admin(self, address: str) -> bool:
        return self.has_role(ROLE_ADMIN, address)

    def is_approved_signer(self, address: str) -> bool:
        return self.has_role(ROLE_SIGNER, address)


class MemoryLedger:
    """Multi-unit asset balances: every identifier has a supply and holders."""

    def __init__(self, journal: Journal) -> None:
        self._store = StateStore(journal)

    def issue(self, recipient: str, identifier: int, quantity: int) -> None:
        if quantity <= 0:
            raise InvalidArgument("quantity must be positive", data={"quantity": quantity})
        recipient = _addr(recipient)
        self._store.add_int(make_key("host", "asset", "balance", identifier, recipient), quantity)
        self._store.add_int(make_key("host", "asset", "supply", identifier), quantity)
        if identifier >= self.next_free_identifier():
            self._store.set_int(make_key("host", "asset", "next_free"), identifier + 1)

    def next_free_identifier(self) -> int:
        return self._store.get_int(make_key("host", "asset", "next_free"))

    def current_supply(self, identifier: int) -> int:
        return self._store.get_int(make_key("host", "asset", "supply", identifier))

    def balance_of(self, owner: str, identifier: int) -> int:
        return self._store.get_int(make_key("host", "asset", "balance", identifier, _addr(owner)))


class MemoryTreasury:
    """
    Per-currency account balances. NATIVE_CURRENCY is always supported;
    other currencies must be listed at construction or via `support()`.

    Hooks run after a transfer has moved funds, with the transfer's
    arguments. They model recipients that call back into the engine.
    """

    def __init__(self, journal: Journal, currencies: Iterable[str] = ()) -> None:
        self._store = StateStore(journal)
        self._supported = {NATIVE_CURRENCY}
        for c in currencies:
            self.support(c)
        self._hooks: List[TransferHook] = []

    def support(self, currency: str) -> None:
        self._supported.add(_addr(currency))

    def add_hook(self, hook: TransferHook) -> None:
        self._hooks.append(hook)

    def _key(self, currency: str, account: str) -> bytes:
        return make_key("host", "funds", currency, account)

    def _check_currency(self, currency: str) -> str:
        currency = _addr(currency)
        if currency not in self._supported:
            raise UnsupportedCurrency(data={"currency": currency})
        return currency

    def deposit(self, currency: str, account: str, amount: int) -> None:
        currency = self._check_currency(currency)
        self._store.add_int(self._key(currency, _addr(account)), amount)

    def balance_of(self, currency: str, account: str) -> int:
        return self._store.get_int(self._key(_addr(currency), _addr(account)))

    def transfer(self, currency: str, sender: str, recipient: str, amount: int) -> None:
        currency = self._check_currency(currency)
        sender, recipient = _addr(sender), _addr(recipient)
        if amount < 0:
            raise InvalidArgument("amount must be non-negative", data={"amount": amount})
        have = self.balance_of(currency, sender)
        if have < amount:
            raise InsufficientFunds(data={"currency": currency, "account": sender, "balance": have, "amount": amount})
        self._store.add_int(self._key(currency, sender), -amount)
        self._store.add_int(self._key(currency, recipient), amount)
        log.debug("value transferred", extra={"currency": currency, "to": recipient, "amount": amount})
        for hook in list(self._hooks):
            hook(currency, sender, recipient, amount)


def make_host(journal: Optional[Journal] = None, currencies: Iterable[str] = ()):
    """(journal, roles, ledger, treasury) sharing one journal."""
    j = journal if journal is not None else Journal()
    return j, RoleTable(j), MemoryLedger(j), MemoryTreasury(j, currencies)


__all__ = [
    "MemoryLedger",
    "MemoryTreasury",
    "ROLE_ADMIN",
    "ROLE_SIGNER",
    "RoleTable",
    "TransferHook",
    "make_host",
]
