"""
issuance.types.batch — a committed range of lazy-minted identifiers.

A batch covers `[start, end)`. Its id is `start`, which never changes and
is therefore a stable handle. Exactly one of the two locators is meaningful:

* Revealed: `base_locator` set, `encrypted_locator` empty. The locator of
  identifier `i` is `base_locator + str(i - start)`.
* Hidden:   `encrypted_locator` set, `base_locator` empty. Identifiers
  resolve to the configured placeholder until the batch is revealed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List


@dataclass(frozen=True)
class Batch:
    start: int
    end: int
    base_locator: str = ""
    encrypted_locator: bytes = b""
    was_encrypted: bool = False

    @property
    def batch_id(self) -> int:
        return self.start

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def is_hidden(self) -> bool:
        return bool(self.encrypted_locator)

    @property
    def is_revealed(self) -> bool:
        """True once a batch registered encrypted has been disclosed."""
        return self.was_encrypted and not self.encrypted_locator

    def contains(self, identifier: int) -> bool:
        return self.start <= identifier < self.end

    def locator_for(self, identifier: int) -> str:
        return f"{self.base_locator}{identifier - self.start}"

    def revealed_with(self, base_locator: str) -> "Batch":
        return replace(self, base_locator=base_locator, encrypted_locator=b"")

    # Persisted form (canonical CBOR array inside the state store).
    def to_state(self) -> List[Any]:
        return [self.start, self.end, self.base_locator, self.encrypted_locator, self.was_encrypted]

    @classmethod
    def from_state(cls, raw: List[Any]) -> "Batch":
        start, end, base, enc, was_enc = raw
        return cls(
            start=int(start),
            end=int(end),
            base_locator=str(base),
            encrypted_locator=bytes(enc),
            was_encrypted=bool(was_enc),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "start": self.start,
            "end": self.end,
            "base_locator": self.base_locator,
            "encrypted_locator": "0x" + self.encrypted_locator.hex() if self.encrypted_locator else "",
            "hidden": self.is_hidden,
        }


__all__ = ["Batch"]
