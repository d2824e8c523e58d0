# -*- coding: utf-8 -*-
"""
issuance.tests.conftest
=======================

Fixtures for the engine tests.

- Deterministic account addresses (sha3 of a label) and signing keys.
- A fully wired `IssuanceCoordinator` over the in-memory host: roles, asset
  ledger and treasury all share the coordinator's journal.
- `mint_request()` / `sign()` helpers for the signature path.

Usage:
    def test_something(engine, accounts, mint_request, sign):
        req = mint_request(quantity=2)
        engine.coordinator.mint_with_signature(engine.ctx(accounts.alice), req, sign(req))
"""
from __future__ import annotations

import hashlib
import itertools
import os
from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from issuance.config import IssuanceConfig
from issuance.crypto.signing import SigningKey
from issuance.runtime import (InMemoryEventSink, IssuanceCoordinator,
                              MemoryLedger, MemoryTreasury, RoleTable,
                              make_host)
from issuance.runtime.host import ROLE_ADMIN, ROLE_SIGNER
from issuance.state import Journal
from issuance.types import ANY_IDENTIFIER, NATIVE_CURRENCY, CallContext, MintRequest

os.environ.setdefault("TZ", "UTC")

NOW = 1_700_000_000
TOKEN = "0x" + "70" * 20  # an ERC20-style currency


def addr(label: str) -> str:
    return "0x" + hashlib.sha3_256(b"issuance-test|" + label.encode()).digest()[-20:].hex()


@dataclass(frozen=True)
class Accounts:
    admin: str
    alice: str
    bob: str
    carol: str
    seller: str
    platform: str
    relayer: str


@dataclass
class Engine:
    coordinator: IssuanceCoordinator
    journal: Journal
    roles: RoleTable
    ledger: MemoryLedger
    treasury: MemoryTreasury
    events: InMemoryEventSink
    config: IssuanceConfig

    def ctx(self, account: str, *, value: int = 0, timestamp: int = NOW) -> CallContext:
        return CallContext.direct(account, timestamp=timestamp, value=value)


@pytest.fixture()
def accounts() -> Accounts:
    return Accounts(**{name: addr(name) for name in Accounts.__dataclass_fields__})


@pytest.fixture()
def signer_key() -> SigningKey:
    return SigningKey.from_label("approved-signer")


@pytest.fixture()
def rogue_key() -> SigningKey:
    return SigningKey.from_label("rogue-signer")


@pytest.fixture()
def config() -> IssuanceConfig:
    return IssuanceConfig(chain_id=1337, hidden_locator="hidden://", max_batch_size=1_000)


@pytest.fixture()
def engine(config, accounts, signer_key) -> Engine:
    journal, roles, ledger, treasury = make_host(Journal(), currencies=[TOKEN])
    roles.grant(ROLE_ADMIN, accounts.admin)
    roles.grant(ROLE_SIGNER, signer_key.address)
    for who in (accounts.alice, accounts.bob, accounts.carol, accounts.relayer):
        treasury.deposit(NATIVE_CURRENCY, who, 1_000_000)
        treasury.deposit(TOKEN, who, 1_000_000)
    events = InMemoryEventSink()
    coordinator = IssuanceCoordinator(
        auth=roles,
        ledger=ledger,
        treasury=treasury,
        events=events,
        config=config,
        journal=journal,
        primary_sale_recipient=accounts.seller,
    )
    return Engine(coordinator, journal, roles, ledger, treasury, events, config)


@pytest.fixture()
def mint_request(accounts, config) -> Callable[..., MintRequest]:
    counter = itertools.count(1)

    def make(**overrides) -> MintRequest:
        n = next(counter)
        fields = dict(
            recipient=accounts.bob,
            identifier=ANY_IDENTIFIER,
            quantity=1,
            locator=f"ipfs://token-{n}",
            currency=NATIVE_CURRENCY,
            price_per_token=0,
            validity_start=NOW - 60,
            validity_end=NOW + 3600,
            uid=hashlib.sha3_256(b"uid|%d" % n).digest()[:16],
            target=config.contract_address,
        )
        fields.update(overrides)
        return MintRequest(**fields)

    return make


@pytest.fixture()
def sign(signer_key, config) -> Callable[..., bytes]:
    def _sign(req: MintRequest, key: Optional[SigningKey] = None) -> bytes:
        k = key or signer_key
        return k.sign_request(req, contract_address=config.contract_address, chain_id=config.chain_id)

    return _sign
