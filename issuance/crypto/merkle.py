"""
Allowlist Merkle commitments
============================

An allowlisted claim phase commits to its members with a single 32-byte
root. Each member is a leaf binding the wallet to its optional overrides:

    leaf = sha3_256(LEAF_TAG || cbor([wallet, quantity_limit, price_per_token, currency]))

Interior nodes hash the *sorted* pair of children:

    node = sha3_256(NODE_TAG || min(a, b) || max(a, b))

Sorting removes the need for left/right direction bits in proofs; the
distinct leaf/node tags keep a leaf from being passed off as a node.
Odd levels promote the last node unchanged.

Helpers here are used both by the engine (`verify`) and by tooling that
builds allowlists (`build_tree`, `root_of`, `proof_for`).
"""

from __future__ import annotations

import hashlib
from typing import List, Optional, Sequence, Tuple

from .. import encoding

LEAF_TAG = b"\x00issuance/allowlist-leaf"
NODE_TAG = b"\x01issuance/allowlist-node"

Entry = Tuple[str, Optional[int], Optional[int], Optional[str]]


def leaf_hash(wallet: str, quantity_limit: Optional[int] = None, price_per_token: Optional[int] = None,
              currency: Optional[str] = None) -> bytes:
    return hashlib.sha3_256(
        LEAF_TAG + encoding.dumps([wallet.lower(), quantity_limit, price_per_token,
                                   None if currency is None else currency.lower()])
    ).digest()


def node_hash(a: bytes, b: bytes) -> bytes:
    lo, hi = (a, b) if a <= b else (b, a)
    return hashlib.sha3_256(NODE_TAG + lo + hi).digest()


def build_tree(leaves: Sequence[bytes]) -> List[List[bytes]]:
    """All levels, leaves first. Raises on an empty list."""
    if not leaves:
        raise ValueError("allowlist must have at least one entry")
    levels = [list(leaves)]
    while len(levels[-1]) > 1:
        cur = levels[-1]
        nxt = [node_hash(cur[i], cur[i + 1]) for i in range(0, len(cur) - 1, 2)]
        if len(cur) % 2:
            nxt.append(cur[-1])
        levels.append(nxt)
    return levels


def root_of(entries: Sequence[Entry]) -> bytes:
    return build_tree([leaf_hash(*e) for e in entries])[-1][0]


def proof_for(entries: Sequence[Entry], index: int) -> List[bytes]:
    levels = build_tree([leaf_hash(*e) for e in entries])
    proof: List[bytes] = []
    idx = index
    for level in levels[:-1]:
        sibling = idx ^ 1
        if sibling < len(level):
            proof.append(level[sibling])
        idx //= 2
    return proof


def verify(root: bytes, leaf: bytes, proof: Sequence[bytes]) -> bool:
    h = leaf
    for sibling in proof:
        h = node_hash(h, sibling)
    return h == root


__all__ = ["build_tree", "leaf_hash", "node_hash", "proof_for", "root_of", "verify"]
