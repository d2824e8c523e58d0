"""issuance.runtime — the coordinator, its host interfaces and in-memory hosts."""

from .coordinator import IssuanceCoordinator
from .events import InMemoryEventSink
from .host import MemoryLedger, MemoryTreasury, RoleTable, make_host
from .interfaces import AssetLedger, AuthorizationLookup, EventSink, ValueTransfer

__all__ = [
    "AssetLedger",
    "AuthorizationLookup",
    "EventSink",
    "InMemoryEventSink",
    "IssuanceCoordinator",
    "MemoryLedger",
    "MemoryTreasury",
    "RoleTable",
    "ValueTransfer",
    "make_host",
]
