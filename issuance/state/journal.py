"""
issuance.state.journal — journaled key/value writes with nested checkpoints.

Every piece of engine state (batches, watermarks, replay tokens, claim
counters, and the in-memory host's balances and holdings) lives in one
bytes→bytes mapping behind this journal. An operation opens a checkpoint,
stages its writes in an overlay, and either commits them into the parent
layer (or the base mapping) or discards them. That is what makes every
operation all-or-nothing.

Key properties
--------------
- Pure Python, no I/O; deterministic.
- Reads consult overlays from top → bottom, then the base mapping.
- Writes go to the top overlay; with no open checkpoint they hit the base.
- `None` in an overlay is a deletion marker.
- Nested checkpoints: a re-entrant operation opens its own layer, so its
  failure reverts only its own writes.

Intended usage
--------------
    j = Journal()
    with j.transaction():
        j.set(b"k", b"v")
        ...                      # raising here discards b"k"
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, MutableMapping, Optional, Tuple


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


@dataclass
class _Overlay:
    writes: Dict[bytes, Optional[bytes]] = field(default_factory=dict)


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    API highlights
    --------------
    - begin() / commit() / revert(), commit_to(marker) / revert_to(marker)
    - transaction() context manager
    - get(), set(), delete(), items(prefix)
    """

    def __init__(self, base: Optional[MutableMapping[bytes, bytes]] = None) -> None:
        self._base: MutableMapping[bytes, bytes] = {} if base is None else base
        self._layers: List[_Overlay] = []

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open checkpoints (0 when writing straight to base)."""
        return len(self._layers)

    def begin(self) -> int:
        """Open a checkpoint. Returns the depth *before* opening it (a marker)."""
        marker = len(self._layers)
        self._layers.append(_Overlay())
        return marker

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into the base if it is the last one."""
        if not self._layers:
            raise RuntimeError("no open checkpoint to commit")
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].writes.update(top.writes)
            return
        for k, v in top.writes.items():
            if v is None:
                self._base.pop(k, None)
            else:
                self._base[k] = v

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise RuntimeError("no open checkpoint to revert")
        self._layers.pop()

    def commit_to(self, marker: int) -> None:
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.revert()

    @contextmanager
    def transaction(self) -> Iterator[int]:
        """
        Run a block inside its own checkpoint: commit on normal exit,
        revert and re-raise on any exception.
        """
        marker = self.begin()
        try:
            yield marker
        except BaseException:
            self.revert_to(marker)
            raise
        else:
            self.commit_to(marker)

    # ------------------------------------------------------------------ #
    # Reads & writes
    # ------------------------------------------------------------------ #

    def get(self, key: bytes, default: Optional[bytes] = None) -> Optional[bytes]:
        k = _b(key, name="key")
        for layer in reversed(self._layers):
            if k in layer.writes:
                v = layer.writes[k]
                return default if v is None else v
        return self._base.get(k, default)

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def set(self, key: bytes, value: bytes) -> None:
        k = _b(key, name="key")
        v = _b(value, name="value")
        if self._layers:
            self._layers[-1].writes[k] = v
        else:
            self._base[k] = v

    def delete(self, key: bytes) -> None:
        k = _b(key, name="key")
        if self._layers:
            self._layers[-1].writes[k] = None
        else:
            self._base.pop(k, None)

    def items(self, prefix: bytes = b"") -> Iterator[Tuple[bytes, bytes]]:
        """Visible (key, value) pairs under `prefix`, ordered by key."""
        p = _b(prefix, name="prefix")
        visible: Dict[bytes, bytes] = {k: v for k, v in self._base.items() if k.startswith(p)}
        for layer in self._layers:
            for k, v in layer.writes.items():
                if not k.startswith(p):
                    continue
                if v is None:
                    visible.pop(k, None)
                else:
                    visible[k] = v
        for k in sorted(visible):
            yield k, visible[k]


__all__ = ["Journal"]
