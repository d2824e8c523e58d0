"""
Delayed-reveal locator cipher
=============================

Hidden batches store their real metadata locator encrypted. The admin
encrypts it off-chain before the lazy mint and later publishes the key to
reveal it.

Construction
------------
  k     = HKDF-SHA256(ikm=key, salt=None, info=AAD || be256(batch_id), len=32)
  blob  = nonce (12 bytes) || ChaCha20-Poly1305(k).encrypt(nonce, utf8(locator), AAD)

The Poly1305 tag is the checksum embedded at encryption time: a wrong key
fails authentication instead of yielding garbage, so decryption either
returns the exact locator or raises `BadKey`. Binding `batch_id` into the
derived key stops a ciphertext from one batch being accepted for another.
"""

from __future__ import annotations

import os
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import BadKey, InvalidArgument

REVEAL_AAD = b"issuance/reveal/v1"
NONCE_SIZE = 12
KEY_SIZE = 32
TAG_SIZE = 16

KeyLike = Union[bytes, bytearray, str]


def _key_bytes(key: KeyLike) -> bytes:
    if isinstance(key, str):
        key = key.encode("utf-8")
    if not isinstance(key, (bytes, bytearray)) or len(key) == 0:
        raise InvalidArgument("reveal key must be non-empty bytes or str")
    return bytes(key)


def derive_key(key: KeyLike, batch_id: int) -> bytes:
    if batch_id < 0:
        raise InvalidArgument("batch_id must be non-negative", data={"batch_id": batch_id})
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=None,
        info=REVEAL_AAD + batch_id.to_bytes(32, "big"),
    )
    return hkdf.derive(_key_bytes(key))


def encrypt_locator(locator: str, key: KeyLike, batch_id: int, *, nonce: Optional[bytes] = None) -> bytes:
    """Encrypt `locator` for the batch that will start at `batch_id`."""
    if not isinstance(locator, str) or not locator:
        raise InvalidArgument("locator must be a non-empty string")
    n = os.urandom(NONCE_SIZE) if nonce is None else bytes(nonce)
    if len(n) != NONCE_SIZE:
        raise InvalidArgument("nonce must be 12 bytes")
    aead = ChaCha20Poly1305(derive_key(key, batch_id))
    return n + aead.encrypt(n, locator.encode("utf-8"), REVEAL_AAD)


def decrypt_locator(blob: bytes, key: KeyLike, batch_id: int) -> str:
    """Return the plaintext locator, or raise BadKey."""
    if len(blob) < NONCE_SIZE + TAG_SIZE + 1:
        raise BadKey("ciphertext is too short", data={"batch_id": batch_id})
    try:
        k = derive_key(key, batch_id)
    except InvalidArgument as e:
        raise BadKey(str(e.message), data={"batch_id": batch_id}) from e
    nonce, ct = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        plain = ChaCha20Poly1305(k).decrypt(nonce, ct, REVEAL_AAD)
    except InvalidTag as e:
        raise BadKey(data={"batch_id": batch_id}) from e
    try:
        locator = plain.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadKey("decrypted locator is not UTF-8", data={"batch_id": batch_id}) from e
    if not locator:
        raise BadKey("decrypted locator is empty", data={"batch_id": batch_id})
    return locator


__all__ = ["REVEAL_AAD", "decrypt_locator", "derive_key", "encrypt_locator"]
