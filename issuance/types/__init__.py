"""
issuance.types — plain dataclasses shared by every component.

* CallContext      — explicit caller identity, attached value and clock
* MintRequest      — signed intent to issue units (signature path)
* ClaimCondition   — one phase of a drop's public-sale rules
* AllowlistProof   — Merkle proof plus optional per-wallet overrides
* Batch            — a committed range of lazy-minted identifiers
* IssuanceRecord   — audit record emitted on every successful mint (IssuancePath)
"""

from .batch import Batch
from .condition import AllowlistProof, ClaimCondition
from .context import NATIVE_CURRENCY, ZERO_ADDRESS, CallContext
from .records import IssuancePath, IssuanceRecord
from .request import ANY_IDENTIFIER, MintRequest

__all__ = [
    "ANY_IDENTIFIER",
    "NATIVE_CURRENCY",
    "ZERO_ADDRESS",
    "AllowlistProof",
    "Batch",
    "CallContext",
    "ClaimCondition",
    "IssuancePath",
    "IssuanceRecord",
    "MintRequest",
]
