"""
issuance.crypto — signature recovery, allowlist Merkle proofs and the
delayed-reveal cipher. Backed by `cryptography` (Ed25519, ChaCha20-Poly1305,
HKDF) and SHA3-256 from hashlib.
"""

from . import merkle, reveal_cipher, signing

__all__ = ["merkle", "reveal_cipher", "signing"]
