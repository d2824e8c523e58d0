"""
issuance.state — journaled persistent state.

* Journal       — bytes→bytes overlays with nested checkpoints
* StateStore    — typed (int / CBOR object / flag) accessors and key layout
* SupplyState   — identifier watermarks and issued-unit counters
"""

from .journal import Journal
from .store import StateStore, make_key
from .supply import SupplySnapshot, SupplyState

__all__ = ["Journal", "StateStore", "SupplySnapshot", "SupplyState", "make_key"]
