"""
Deterministic ECDSA nonces (RFC 6979) for the STARK curve.

The HMAC-DRBG itself is ``ecdsa.rfc6979.generate_k`` with SHA-256.
Two STARK-specific adjustments happen before it is called:

1. A message hash that is exactly one nibble short of a byte boundary
   (bit length ≥ 248 and ``bit_length % 8`` in 1..4) is multiplied by
   16, matching the alignment the reference signers use.
2. A non-zero ``seed`` is appended as RFC 6979 "extra data", serialised
   big-endian in the smallest of u8 / u16 / u32 / u64 that holds it.
   The signer bumps the seed each time it rejects a candidate ``k``.

References
----------
- RFC 6979 §3.2  Generation of k
- RFC 6979 §3.6  Variants (additional data)
"""

from __future__ import annotations

import hashlib
import math

from ecdsa.rfc6979 import generate_k

_SEED_WIDTHS = (1, 2, 4, 8)


def seed_to_bytes(seed: int) -> bytes:
    """Extra-entropy encoding of a retry seed; empty for ``seed == 0``."""
    if seed < 0:
        raise ValueError(f"seed must be non-negative, got {seed}")
    if seed == 0:
        return b""
    for width in _SEED_WIDTHS:
        if seed < 1 << (8 * width):
            return seed.to_bytes(width, "big")
    raise ValueError(f"seed does not fit in 64 bits: {seed}")


def generate_k_rfc6979(msg_hash: int, priv_key: int, order: int, seed: int = 0) -> int:
    """
    Candidate nonce ``k`` in ``[1, order)`` for ``(msg_hash, priv_key)``.

    Parameters
    ----------
    msg_hash : int
        Message digest (a STARK field element).
    priv_key : int
        Signer's private key.
    order : int
        Curve order N.
    seed : int
        Retry counter; 0 on the first attempt.
    """
    if 1 <= msg_hash.bit_length() % 8 <= 4 and msg_hash.bit_length() >= 248:
        # only if we are one nibble short
        msg_hash *= 16

    data = msg_hash.to_bytes(max(1, math.ceil(msg_hash.bit_length() / 8)), "big")
    return generate_k(
        order, priv_key, hashlib.sha256, data,
        extra_entropy=seed_to_bytes(seed),
    )
