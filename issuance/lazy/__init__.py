"""issuance.lazy — lazy-mint batches and delayed reveal."""

from .batches import BatchLedger
from .reveal import RevealManager

__all__ = ["BatchLedger", "RevealManager"]
