"""
issuance.config — runtime configuration for the issuance engine.

This module centralizes knobs for:
  • Signature domain (chain id and the engine's own contract address)
  • Delayed reveal (placeholder locator returned while a batch is hidden)
  • Limits (largest batch a single lazy mint may commit)
  • Sale defaults (platform fee in basis points)

Configuration may be provided via environment variables. Safe defaults are chosen so a
local developer run works out of the box.

Environment variables (all optional):
  ISSUANCE_CHAIN_ID           -> integer chain id mixed into signature domains (default: 1337)
  ISSUANCE_CONTRACT_ADDRESS   -> 0x-prefixed 20-byte address of this engine (default: devnet address)
  ISSUANCE_HIDDEN_LOCATOR     -> placeholder returned for hidden batches (default: "hidden://")
  ISSUANCE_MAX_BATCH_SIZE     -> integer upper bound for a single lazy mint (default: 10000)
  ISSUANCE_PLATFORM_FEE_BPS   -> integer in [0, 10000] (default: 0)

Programmatic usage:
    from issuance.config import get_config
    cfg = get_config()
    coordinator = IssuanceCoordinator(..., config=cfg)

Tests should prefer `load_config(env={...})`, which never touches the cache.
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Type

from .errors import ConfigError, IssuanceError

# ----------------------------- helpers -------------------------------------

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")

DEFAULT_CONTRACT_ADDRESS = "0x" + "1c" * 20
MAX_BPS = 10_000


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip(), 0)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer", data={"value": raw}) from e


def is_address(value: Any) -> bool:
    """True for a lower-case 0x-prefixed 20-byte hex address."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def normalize_address(value: str, *, error: Type[IssuanceError] = ConfigError) -> str:
    """Lower-case an address and check its shape; raises `error` when malformed."""
    if not isinstance(value, str):
        raise error("address must be a string", data={"value": repr(value)})
    addr = value.strip().lower()
    if not _ADDRESS_RE.match(addr):
        raise error("address must be 0x followed by 40 hex chars", data={"value": value})
    return addr


# ------------------------------ dataclass -----------------------------------


@dataclass(frozen=True)
class IssuanceConfig:
    """
    Immutable engine configuration.

    Attributes:
        chain_id:          Chain id mixed into the signature domain.
        contract_address:  This engine's address; binds signatures to one deployment.
        hidden_locator:    Locator returned for identifiers of a still-hidden batch.
        max_batch_size:    Largest amount a single lazy mint may commit.
        platform_fee_bps:  Default platform fee taken out of every sale (basis points).
    """

    chain_id: int = 1337
    contract_address: str = DEFAULT_CONTRACT_ADDRESS
    hidden_locator: str = "hidden://"
    max_batch_size: int = 10_000
    platform_fee_bps: int = 0

    def __post_init__(self) -> None:
        if self.chain_id < 1:
            raise ConfigError("chain_id must be >= 1", data={"chain_id": self.chain_id})
        if self.max_batch_size < 1:
            raise ConfigError("max_batch_size must be >= 1", data={"max_batch_size": self.max_batch_size})
        if not 0 <= self.platform_fee_bps <= MAX_BPS:
            raise ConfigError("platform_fee_bps must be within [0, 10000]", data={"bps": self.platform_fee_bps})
        # frozen: normalize in place
        object.__setattr__(self, "contract_address", normalize_address(self.contract_address))

    def with_overrides(self, **changes: Any) -> "IssuanceConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(env: Optional[Mapping[str, str]] = None) -> IssuanceConfig:
    """Build a config from `env` (defaults to os.environ)."""
    e = os.environ if env is None else env
    return IssuanceConfig(
        chain_id=_int_env(e, "ISSUANCE_CHAIN_ID", 1337),
        contract_address=e.get("ISSUANCE_CONTRACT_ADDRESS", DEFAULT_CONTRACT_ADDRESS),
        hidden_locator=e.get("ISSUANCE_HIDDEN_LOCATOR", "hidden://"),
        max_batch_size=_int_env(e, "ISSUANCE_MAX_BATCH_SIZE", 10_000),
        platform_fee_bps=_int_env(e, "ISSUANCE_PLATFORM_FEE_BPS", 0),
    )


@lru_cache(maxsize=1)
def get_config() -> IssuanceConfig:
    """Process-wide config resolved once from the environment."""
    return load_config()


__all__ = [
    "IssuanceConfig",
    "DEFAULT_CONTRACT_ADDRESS",
    "MAX_BPS",
    "get_config",
    "load_config",
    "is_address",
    "normalize_address",
]
