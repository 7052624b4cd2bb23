"""
ECDSA on the STARK curve with deterministic nonces.

Signing ``h`` (a field element below 2^251) with private key ``d``:

    seed = 0
    loop:
        k    = RFC6979(h, d, N, seed);  seed += 1
        r    = (k·G).x                  reject unless 1 <= r < 2^251
        t    = h + r·d                  reject if t ≡ 0 (mod N)
        w    = k / t  (mod N)           reject unless 1 <= w < 2^251
        s    = 1 / w  (mod N)
        return (r, s)

Unlike textbook ECDSA, ``r`` is not reduced mod N and both ``r`` and
``w`` are bounded by 2^251: the STARK verifier enforces the stricter
bound and would silently reject anything above it.  Rejections are
vanishingly rare; the loop is capped (32 attempts by default) and
raises ``SignerExhausted`` past the cap.

Verification replays the AIR step order,

    x = w·(h·G + r·Q)

computed as three shifted multiplications, so a signature accepted here
is accepted by the on-chain verifier and vice versa.

References
----------
- StarkWare, ``starkex-resources/crypto/starkware/crypto/signature``
- RFC 6979  Deterministic Usage of DSA and ECDSA
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Tuple, Union

from .config import max_sign_attempts
from .curve import ECPoint, ec_add, ec_mult, get_y_coordinate, is_on_curve, mimic_ec_mult_air
from .errors import (
    DegenerateOp,
    InvalidHashPayload,
    InvalidPrivateKey,
    InvalidPublicKey,
    SignerExhausted,
)
from .field import div_mod
from .params import PedersenParams, load_params
from .rfc6979 import generate_k_rfc6979

logger = logging.getLogger(__name__)

SIGNATURE_HEX_LENGTH = 128

# (k, seed) -> True to discard the candidate; used to exercise the retry path
KRejection = Callable[[int, int], bool]


# ── serialisation ───────────────────────────────────────────────────────
def int_to_hex_32(x: int) -> str:
    """Normalize to a 32-byte hex string without 0x prefix."""
    if x < 0:
        raise ValueError("negative value cannot be serialised")
    padded_hex = format(x, "x").rjust(64, "0")
    if len(padded_hex) != 64:
        raise ValueError("input does not fit in 32 bytes")
    return padded_hex


def serialize_signature(r: int, s: int) -> str:
    """``r`` then ``s``, each 32-byte big-endian hex: 128 characters."""
    return int_to_hex_32(r) + int_to_hex_32(s)


def deserialize_signature(signature: str) -> Tuple[int, int]:
    if signature.startswith(("0x", "0X")):
        signature = signature[2:]
    if len(signature) != SIGNATURE_HEX_LENGTH:
        raise ValueError(
            f"invalid serialized signature, expected hex string of length "
            f"{SIGNATURE_HEX_LENGTH}, got {len(signature)}"
        )
    return int(signature[:64], 16), int(signature[64:], 16)


@dataclass(frozen=True)
class StarkSignature:
    """ECDSA signature ``(r, s)`` on the STARK curve."""

    r: int
    s: int

    def to_hex(self) -> str:
        return serialize_signature(self.r, self.s)

    @classmethod
    def from_hex(cls, data: str) -> StarkSignature:
        r, s = deserialize_signature(data)
        return cls(r=r, s=s)

    def __str__(self) -> str:
        return self.to_hex()


# ── key parsing ─────────────────────────────────────────────────────────
def parse_private_key(key: Union[str, int], order: int) -> int:
    """
    Accept an int or a base-prefixed string (``0x…``, ``0o…``, ``0b…``
    or plain decimal) and return it as an int in ``[1, order)``.
    """
    if isinstance(key, bool):
        raise InvalidPrivateKey("private key must be an int or a string")
    if isinstance(key, str):
        text = key.strip()
        if not text:
            raise InvalidPrivateKey("private key is empty")
        try:
            value = int(text, 0)
        except ValueError:
            raise InvalidPrivateKey("private key is not a base-prefixed integer") from None
    elif isinstance(key, int):
        value = key
    else:
        raise InvalidPrivateKey("private key must be an int or a string")
    if not 0 < value < order:
        raise InvalidPrivateKey("private key is out of range")
    return value


# ── signer ──────────────────────────────────────────────────────────────
class StarkSigner:
    """
    Deterministic ECDSA signer over one STARK parameter table.

    Holds no key material; every call receives the private key and
    forgets it on return.  One instance can serve any number of threads.

    Parameters
    ----------
    params : PedersenParams, optional
        Curve table; the default StarkEx table when omitted.
    max_attempts : int, optional
        k-rejection cap; ``$L2SIGNER_MAX_SIGN_ATTEMPTS`` or 32 when omitted.
    reject_k : callable, optional
        Extra predicate ``(k, seed) -> bool`` that discards a candidate
        nonce on top of the curve checks.
    """

    def __init__(
        self,
        params: Optional[PedersenParams] = None,
        max_attempts: Optional[int] = None,
        reject_k: Optional[KRejection] = None,
    ) -> None:
        self.params = params if params is not None else load_params()
        self.max_attempts = max_attempts if max_attempts is not None else max_sign_attempts()
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._reject_k = reject_k

        p = self.params
        self._p = p.field_prime
        self._n = p.ec_order
        self._alpha = p.alpha
        self._gen = p.ec_gen
        self._bound = 2 ** p.n_element_bits_ecdsa

    # keys -------------------------------------------------------------------
    def public_key(self, private_key: Union[str, int]) -> ECPoint:
        d = parse_private_key(private_key, self._n)
        return ec_mult(d, self._gen, self._alpha, self._p)

    def stark_key(self, private_key: Union[str, int]) -> int:
        """x coordinate of the public key (the "STARK key")."""
        return self.public_key(private_key)[0]

    def get_y_coordinate(self, x: int) -> int:
        return get_y_coordinate(x, self._alpha, self.params.beta, self._p)

    # signing ----------------------------------------------------------------
    def sign(self, msg_hash: int, private_key: Union[str, int]) -> StarkSignature:
        if not isinstance(msg_hash, int) or not 0 <= msg_hash < self._bound:
            raise InvalidHashPayload("message hash is not signable")
        d = parse_private_key(private_key, self._n)

        for seed in range(self.max_attempts):
            k = generate_k_rfc6979(msg_hash, d, self._n, seed)

            if self._reject_k is not None and self._reject_k(k, seed):
                logger.debug("k candidate rejected by predicate (seed=%d)", seed)
                continue

            # cannot fail: 0 < k < N and N is prime
            r = ec_mult(k, self._gen, self._alpha, self._p)[0]
            if not 1 <= r < self._bound:
                logger.debug("k candidate rejected: r out of range (seed=%d)", seed)
                continue

            t = msg_hash + r * d
            if t % self._n == 0:
                logger.debug("k candidate rejected: h + r·d ≡ 0 (seed=%d)", seed)
                continue

            w = div_mod(k, t, self._n)
            if not 1 <= w < self._bound:
                logger.debug("k candidate rejected: w out of range (seed=%d)", seed)
                continue

            return StarkSignature(r=r, s=div_mod(1, w, self._n))

        logger.error("no valid nonce after %d attempts", self.max_attempts)
        raise SignerExhausted(f"no valid nonce after {self.max_attempts} attempts")

    # verification -----------------------------------------------------------
    def verify(
        self,
        msg_hash: int,
        r: int,
        s: int,
        public_key: Union[int, ECPoint],
    ) -> bool:
        """
        True iff ``(r, s)`` is a valid signature of *msg_hash*.

        *public_key* is either the full point or only its x coordinate,
        in which case both candidate y coordinates are tried.
        """
        p = self.params
        if not 1 <= s < self._n:
            return False
        w = div_mod(1, s, self._n)
        if not (1 <= r < self._bound and 1 <= w < self._bound):
            return False
        if not 0 < msg_hash < self._bound:
            # the AIR cannot multiply by zero
            return False

        if isinstance(public_key, int):
            try:
                y = self.get_y_coordinate(public_key)
            except InvalidPublicKey:
                return False
            return (
                self.verify(msg_hash, r, s, (public_key, y))
                or self.verify(msg_hash, r, s, (public_key, (-y) % self._p))
            )

        if not is_on_curve(public_key, self._alpha, p.beta, self._p):
            return False

        bits = p.n_element_bits_ecdsa
        try:
            zG = mimic_ec_mult_air(msg_hash, self._gen, p.minus_shift_point, self._alpha, self._p, bits)
            rQ = mimic_ec_mult_air(r, public_key, p.shift_point, self._alpha, self._p, bits)
            wB = mimic_ec_mult_air(w, ec_add(zG, rQ, self._p), p.shift_point, self._alpha, self._p, bits)
            x = ec_add(wB, p.minus_shift_point, self._p)[0]
        except DegenerateOp:
            return False

        # no reduction mod N here, unlike textbook ECDSA
        return r == x

    def verify_signature(
        self,
        msg_hash: int,
        signature: Union[str, StarkSignature],
        public_key: Union[int, ECPoint],
    ) -> bool:
        if isinstance(signature, str):
            signature = StarkSignature.from_hex(signature)
        return self.verify(msg_hash, signature.r, signature.s, public_key)


# ── module-level helpers over the default table ─────────────────────────
@lru_cache(maxsize=None)
def default_signer() -> StarkSigner:
    return StarkSigner()


def sign(msg_hash: int, private_key: Union[str, int]) -> StarkSignature:
    return default_signer().sign(msg_hash, private_key)


def verify(msg_hash: int, r: int, s: int, public_key: Union[int, ECPoint]) -> bool:
    return default_signer().verify(msg_hash, r, s, public_key)


def private_to_stark_key(private_key: Union[str, int]) -> int:
    return default_signer().stark_key(private_key)
