"""
Mint-request signatures
=======================

Signers authorize a `MintRequest` off-chain; anyone may submit the signed
request. This module turns a request into deterministic SignBytes, verifies a
signature over them, and recovers the signer's address. It does not decide
whether that signer is allowed to authorize mints; the coordinator asks the
authorization lookup for that.

SignBytes
---------
Canonical CBOR (see `issuance.encoding`) of a fixed, versioned array:

    [DOMAIN_TAG, ENCODING_VERSION, TYPE_ID, chain_id, contract_address,
     [recipient, identifier, quantity, locator, currency, price_per_token,
      validity_start, validity_end, uid, target, primary_sale_recipient]]

Array framing with typed, length-prefixed items makes the encoding
injective: two requests that differ in any field encode differently. The
chain id and the verifying contract's address separate deployments; the type
id and version separate request shapes.

Signature envelope
------------------
Ed25519 cannot recover a public key from a signature, so the envelope
carries it:

    signature = pubkey (32 bytes) || ed25519_signature (64 bytes)

The signer identity is `address_from_pubkey(pubkey)`:
`0x` + last 20 bytes of sha3_256(ADDRESS_DOMAIN || pubkey).

Before the curve check, the public key and the signature's R component must
be canonical encodings (y < p) of points outside the small-order subgroup.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import List, Optional

from cryptography.exceptions import InvalidSignature as _BadEd25519Signature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .. import encoding
from ..errors import InvalidSignature
from ..types.request import MintRequest

DOMAIN_TAG = b"issuance/mint-request"
ENCODING_VERSION = 1
TYPE_ID = "MintRequest"
ADDRESS_DOMAIN = b"issuance/ed25519"

PUBKEY_LEN = 32
SIG_LEN = 64
ENVELOPE_LEN = PUBKEY_LEN + SIG_LEN

_FIELD_P = 2**255 - 19
_Y_MASK = 2**255 - 1

# y-coordinates of the eight small-order points, compared with the sign bit
# cleared.
SMALL_ORDER_Y = frozenset(
    [
        0,
        1,
        _FIELD_P - 1,
        int.from_bytes(bytes.fromhex("26e8958fc2b227b045c3f489f2ef98f0d5dfac05d3c63339b13802886d53fc05"), "little"),
        int.from_bytes(bytes.fromhex("c7176a703d4dd84fba3c0b760d10670f2a2053fa2c39ccc64ec7fd7792ac037a"), "little"),
    ]
)


def request_fields(req: MintRequest) -> List[object]:
    return [
        req.recipient,
        req.identifier,
        req.quantity,
        req.locator,
        req.currency,
        req.price_per_token,
        req.validity_start,
        req.validity_end,
        req.uid,
        req.target,
        req.primary_sale_recipient,
    ]


def sign_bytes(req: MintRequest, *, contract_address: str, chain_id: int) -> bytes:
    """Deterministic preimage a signer signs for `req` on one deployment."""
    return encoding.dumps(
        [DOMAIN_TAG, ENCODING_VERSION, TYPE_ID, int(chain_id), contract_address, request_fields(req)]
    )


def request_hash(req: MintRequest, *, contract_address: str, chain_id: int) -> bytes:
    """sha3_256 of the SignBytes; the correlation id carried by issuance records."""
    return hashlib.sha3_256(sign_bytes(req, contract_address=contract_address, chain_id=chain_id)).digest()


def address_from_pubkey(pubkey: bytes) -> str:
    if not isinstance(pubkey, (bytes, bytearray)) or len(pubkey) != PUBKEY_LEN:
        raise InvalidSignature("public key must be 32 bytes")
    return "0x" + hashlib.sha3_256(ADDRESS_DOMAIN + bytes(pubkey)).digest()[-20:].hex()


def split_envelope(signature: bytes) -> tuple[bytes, bytes]:
    if not isinstance(signature, (bytes, bytearray)) or len(signature) != ENVELOPE_LEN:
        raise InvalidSignature(
            f"signature envelope must be {ENVELOPE_LEN} bytes",
            data={"length": len(signature) if isinstance(signature, (bytes, bytearray)) else None},
        )
    sig = bytes(signature)
    return sig[:PUBKEY_LEN], sig[PUBKEY_LEN:]


def is_weak_point(encoded: bytes) -> bool:
    """True for a non-canonical or small-order Ed25519 point encoding."""
    y = int.from_bytes(encoded, "little") & _Y_MASK
    return y >= _FIELD_P or y in SMALL_ORDER_Y


def recover_signer(req: MintRequest, signature: bytes, *, contract_address: str, chain_id: int) -> str:
    """
    Verify `signature` over the request's SignBytes and return the signer's
    address. Raises InvalidSignature when it does not verify.
    """
    pubkey, sig = split_envelope(signature)
    if is_weak_point(pubkey) or is_weak_point(sig[:32]):
        raise InvalidSignature("weak public key or signature point", data={"uid": req.uid})
    try:
        Ed25519PublicKey.from_public_bytes(pubkey).verify(
            sig, sign_bytes(req, contract_address=contract_address, chain_id=chain_id)
        )
    except (_BadEd25519Signature, ValueError) as e:
        raise InvalidSignature(data={"uid": req.uid}) from e
    return address_from_pubkey(pubkey)


@dataclass(frozen=True)
class SigningKey:
    """
    Ed25519 signing key for request authors (tools, tests, back-office
    signers). Never used by the engine itself.
    """

    seed: bytes

    def __post_init__(self) -> None:
        if len(self.seed) != 32:
            raise ValueError("Ed25519 seed must be 32 bytes")

    @classmethod
    def generate(cls) -> "SigningKey":
        return cls(os.urandom(32))

    @classmethod
    def from_label(cls, label: str) -> "SigningKey":
        """Deterministic key from a label; for fixtures and local devnets only."""
        return cls(hashlib.sha3_256(b"issuance/dev-key|" + label.encode("utf-8")).digest())

    def _private(self) -> Ed25519PrivateKey:
        return Ed25519PrivateKey.from_private_bytes(self.seed)

    @property
    def public_bytes(self) -> bytes:
        return self._private().public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    @property
    def address(self) -> str:
        return address_from_pubkey(self.public_bytes)

    def sign(self, message: bytes) -> bytes:
        """Envelope (pubkey || signature) over raw `message`."""
        return self.public_bytes + self._private().sign(message)

    def sign_request(self, req: MintRequest, *, contract_address: str, chain_id: int) -> bytes:
        return self.sign(sign_bytes(req, contract_address=contract_address, chain_id=chain_id))


def try_recover(req: MintRequest, signature: bytes, *, contract_address: str, chain_id: int) -> Optional[str]:
    """Like recover_signer, but returns None instead of raising."""
    try:
        return recover_signer(req, signature, contract_address=contract_address, chain_id=chain_id)
    except InvalidSignature:
        return None


__all__ = [
    "ADDRESS_DOMAIN",
    "DOMAIN_TAG",
    "ENCODING_VERSION",
    "ENVELOPE_LEN",
    "SigningKey",
    "TYPE_ID",
    "address_from_pubkey",
    "is_weak_point",
    "recover_signer",
    "request_fields",
    "request_hash",
    "sign_bytes",
    "split_envelope",
    "try_recover",
]
