"""
issuance.lazy.reveal — Hidden → Revealed transitions for encrypted batches.

A batch registered with an encrypted locator stays Hidden (its identifiers
resolve to the configured placeholder) until the admin publishes the key.
A successful reveal stores the plaintext base locator and clears the
ciphertext; it cannot be undone. A wrong key leaves the batch Hidden.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..crypto import reveal_cipher
from ..crypto.reveal_cipher import KeyLike
from ..errors import AlreadyRevealed, NotEncrypted
from ..types.batch import Batch
from .batches import BatchLedger

log = logging.getLogger(__name__)


class RevealManager:
    def __init__(self, ledger: BatchLedger) -> None:
        self._ledger = ledger

    def _hidden_batch(self, batch_id: int) -> Batch:
        batch = self._ledger.get_batch(batch_id)
        if not batch.is_hidden:
            if batch.was_encrypted:
                raise AlreadyRevealed(data={"batch_id": batch_id})
            raise NotEncrypted(data={"batch_id": batch_id})
        return batch

    def is_hidden(self, batch_id: int) -> bool:
        return self._ledger.get_batch(batch_id).is_hidden

    def preview(self, batch_id: int, key: KeyLike) -> str:
        """Decrypt a hidden batch's base locator without revealing it."""
        batch = self._hidden_batch(batch_id)
        return reveal_cipher.decrypt_locator(batch.encrypted_locator, key, batch_id)

    def reveal(self, batch_id: int, key: KeyLike) -> str:
        """Decrypt, store the plaintext base locator and return it."""
        batch = self._hidden_batch(batch_id)
        base = reveal_cipher.decrypt_locator(batch.encrypted_locator, key, batch_id)
        self._ledger.replace(batch.revealed_with(base))
        log.info("batch revealed", extra={"batch_id": batch_id})
        return base

    @staticmethod
    def encrypt_locator(locator: str, key: KeyLike, batch_id: int, *, nonce: Optional[bytes] = None) -> bytes:
        """Ciphertext for a batch that will start at `batch_id`."""
        return reveal_cipher.encrypt_locator(locator, key, batch_id, nonce=nonce)


__all__ = ["RevealManager"]
