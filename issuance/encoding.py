"""
issuance.encoding
=================

Canonical CBOR helpers used everywhere bytes must be deterministic:

- signature preimages for mint requests (`issuance.crypto.signing`)
- allowlist Merkle leaves (`issuance.crypto.merkle`)
- request hashes carried by issuance records
- values persisted in the journaled state store

Backend is `cbor2` in canonical mode (RFC 8949 deterministic encoding:
shortest integer forms, sorted map keys). Dataclasses, Enums and tuples are
flattened to plain CBOR types before encoding; floats are rejected because
nothing in the engine is allowed to depend on them.

Public API
----------
dumps(obj) -> bytes
loads(data) -> Any
digest(obj, domain=b"") -> bytes   # sha3_256 over the canonical encoding
"""

from __future__ import annotations

import hashlib
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

import cbor2


class EncodingError(TypeError):
    """Raised for values that have no canonical encoding."""


def _to_plain(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, str, bytes)):
        return obj
    if isinstance(obj, float):
        raise EncodingError("floats have no canonical encoding here")
    if isinstance(obj, (bytearray, memoryview)):
        return bytes(obj)
    if isinstance(obj, Enum):
        return _to_plain(obj.value)
    if is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: _to_plain(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        out = {}
        for k, v in obj.items():
            if not isinstance(k, (str, int, bytes)):
                raise EncodingError(f"unsupported map key type: {type(k).__name__}")
            out[k] = _to_plain(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [_to_plain(x) for x in obj]
    raise EncodingError(f"unsupported type: {type(obj).__name__}")


def dumps(obj: Any) -> bytes:
    """Canonical CBOR encoding of `obj`."""
    try:
        return cbor2.dumps(_to_plain(obj), canonical=True)
    except cbor2.CBOREncodeError as e:
        raise EncodingError(str(e)) from e


def loads(data: bytes | bytearray | memoryview) -> Any:
    try:
        return cbor2.loads(bytes(data))
    except cbor2.CBORDecodeError as e:
        raise EncodingError(f"invalid CBOR: {e}") from e


def digest(obj: Any, *, domain: bytes = b"") -> bytes:
    """SHA3-256 of `domain || dumps(obj)`."""
    h = hashlib.sha3_256()
    if domain:
        h.update(domain)
    h.update(dumps(obj))
    return h.digest()


__all__ = ["EncodingError", "dumps", "loads", "digest"]
