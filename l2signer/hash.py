"""
Hash-derived values used around the two signers.

StarkEx side
    ``nonce_from_client_id``    SHA-256(client id) mod 2^32
    ``expiration_epoch_hours``  ⌈unix / 3600⌉ + 168
    ``fact_to_condition``       Keccak-256(registry ‖ fact) & (2^250 - 1)

zkLink side
    Domain-separated SHA-256 (BIP-340 tagged-hash convention) for the
    deterministic MuSig nonce and for seed-to-key derivation:

        H_tag(x) = SHA-256( SHA-256(tag) ‖ SHA-256(tag) ‖ x )
"""

from __future__ import annotations

import hashlib
import math
from datetime import datetime
from typing import Any, Union

from eth_utils import decode_hex, keccak as _keccak

# ── StarkEx constants ───────────────────────────────────────────────────
NONCE_UPPER_BOUND_EXCLUSIVE = 1 << 32
ONE_HOUR_IN_SECONDS = 60 * 60
ORDER_SIGNATURE_EXPIRATION_BUFFER_HOURS = 24 * 7
BIT_MASK_250 = (1 << 250) - 1

# ── domain tags ─────────────────────────────────────────────────────────
_TAG_MUSIG_NONCE = b"l2signer/v1/zklink/musig_nonce"
_TAG_ZKLINK_KEY  = b"l2signer/v1/zklink/private_key"

_INT_BYTES = 32


# ── StarkEx derived values ──────────────────────────────────────────────
def nonce_from_client_id(client_id: str) -> int:
    """Generate a nonce deterministically from an arbitrary string."""
    digest = hashlib.sha256(client_id.encode("utf-8")).digest()
    return int.from_bytes(digest, "big") % NONCE_UPPER_BOUND_EXCLUSIVE


def expiration_epoch_hours(expiration: Union[int, float, datetime]) -> int:
    """
    Whole hours since the epoch, rounded up, plus a seven-day buffer.

    Orders may have a short time-to-live on the book, but the signature
    must still be valid by the time it reaches the chain.
    """
    if isinstance(expiration, datetime):
        expiration = expiration.timestamp()
    if isinstance(expiration, int):
        hours = -(-expiration // ONE_HOUR_IN_SECONDS)
    else:
        hours = math.ceil(expiration / ONE_HOUR_IN_SECONDS)
    return hours + ORDER_SIGNATURE_EXPIRATION_BUFFER_HOURS


def keccak(data: bytes) -> bytes:
    return _keccak(primitive=data)


def fact_to_condition(fact_registry_address: str, fact: bytes) -> int:
    """Generate the condition signed as part of a conditional transfer."""
    if not isinstance(fact, bytes):
        raise ValueError("fact must be a byte-string")
    data = decode_hex(fact_registry_address) + fact
    return int.from_bytes(keccak(data), "big") & BIT_MASK_250


# ── tagged hashing ──────────────────────────────────────────────────────
def _tagged_hasher(tag: bytes) -> "hashlib._Hash":
    """Return a SHA-256 context pre-loaded with the BIP-340 tag prefix."""
    tag_hash = hashlib.sha256(tag).digest()
    h = hashlib.sha256()
    h.update(tag_hash)
    h.update(tag_hash)
    return h


def _encode_item(item: Any) -> bytes:
    """
    Canonical encoding of a hash input.

    Byte strings are length-prefixed; ints are fixed-width big-endian.
    """
    if isinstance(item, bytes):
        return len(item).to_bytes(4, "big") + item
    if isinstance(item, int):
        return item.to_bytes(_INT_BYTES, "big")
    raise TypeError(f"cannot hash item of type {type(item).__name__}")


def _tagged_hash(tag: bytes, *args: Any) -> bytes:
    h = _tagged_hasher(tag)
    for a in args:
        h.update(_encode_item(a))
    return h.digest()


def hash_musig_nonce(private_key: int, message: bytes, modulus: int, counter: int = 0) -> int:
    """
    Deterministic Schnorr nonce  r = H_nonce(d, m, counter) mod l.

    The caller bumps *counter* in the (negligible) case the result is 0.
    """
    digest = _tagged_hash(_TAG_MUSIG_NONCE, private_key, message, counter)
    return int.from_bytes(digest, "big") % modulus


def hash_private_key_seed(seed: bytes, counter: int) -> bytes:
    """One candidate in the seed → private key derivation sequence."""
    return _tagged_hash(_TAG_ZKLINK_KEY, seed, counter)
