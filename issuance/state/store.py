"""
issuance.state.store — typed accessors over the journaled key/value state.

Storage layout
--------------
Keys are ASCII, colon-separated, with a fixed namespace first:

    supply:next_to_mint                      -> int
    supply:next_lazy_minted                  -> int
    supply:issued_total                      -> int
    supply:issued:<identifier>               -> int
    batch:count                              -> int
    batch:<index>                            -> [start, end, base, enc, was_enc]
    locator:<identifier>                     -> str
    replay:<uid hex>                         -> 1
    claim:conditions                         -> [[...], ...]
    claim:epoch                              -> int
    claim:supply:<epoch>:<phase>             -> int
    claim:wallet:<epoch>:<phase>:<address>   -> int
    config:<name>                            -> int | str
    host:...                                 -> owned by issuance.runtime.host

Values are canonical CBOR (`issuance.encoding`), so the whole state is
byte-for-byte deterministic.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional, Tuple, Union

from .. import encoding
from .journal import Journal

KeyPart = Union[str, int, bytes]


def make_key(namespace: str, *parts: KeyPart) -> bytes:
    out = [namespace]
    for p in parts:
        if isinstance(p, bytes):
            out.append(p.hex())
        elif isinstance(p, bool):
            raise TypeError("bool is not a valid key part")
        elif isinstance(p, int):
            out.append(str(p))
        elif isinstance(p, str):
            if ":" in p:
                raise ValueError(f"key part must not contain ':' ({p!r})")
            out.append(p)
        else:
            raise TypeError(f"unsupported key part: {type(p).__name__}")
    return ":".join(out).encode("ascii")


class StateStore:
    """Thin typed facade; the journal is shared with anything that needs rollback."""

    def __init__(self, journal: Optional[Journal] = None) -> None:
        self.journal = journal if journal is not None else Journal()

    @contextmanager
    def transaction(self) -> Iterator[int]:
        with self.journal.transaction() as marker:
            yield marker

    # ints

    def get_int(self, key: bytes, default: int = 0) -> int:
        raw = self.journal.get(key)
        if raw is None:
            return default
        v = encoding.loads(raw)
        if not isinstance(v, int):
            raise TypeError(f"state value at {key!r} is not an int")
        return v

    def set_int(self, key: bytes, value: int) -> None:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError("value must be an int")
        self.journal.set(key, encoding.dumps(value))

    def add_int(self, key: bytes, delta: int) -> int:
        n = self.get_int(key) + delta
        if n < 0:
            raise ValueError(f"counter at {key!r} would go negative")
        self.set_int(key, n)
        return n

    # objects

    def get_obj(self, key: bytes, default: Any = None) -> Any:
        raw = self.journal.get(key)
        return default if raw is None else encoding.loads(raw)

    def set_obj(self, key: bytes, value: Any) -> None:
        self.journal.set(key, encoding.dumps(value))

    # flags

    def has(self, key: bytes) -> bool:
        return self.journal.has(key)

    def set_flag(self, key: bytes) -> None:
        self.journal.set(key, encoding.dumps(1))

    def items(self, prefix: bytes) -> Iterator[Tuple[bytes, Any]]:
        for k, raw in self.journal.items(prefix):
            yield k, encoding.loads(raw)


__all__ = ["KeyPart", "StateStore", "make_key"]
