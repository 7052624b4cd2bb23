"""
Rescue algebraic hash over the Bn254 scalar field.

Sponge construction with a width-3 state (rate 2, capacity 1) and
22 double rounds.  Each double round applies the inverse S-box
``x^(1/5)``, then the MDS matrix and round constants, then the forward
S-box ``x^5``, then the MDS matrix and round constants again.

Parameter derivation
--------------------
Round constants
    BLAKE2s (personalisation ``Rescue_f``) over a fixed 64-byte seed
    followed by a big-endian u32 counter; each digest read as a
    little-endian integer and kept when it is a non-zero field element.
MDS matrix
    Cauchy matrix ``M[i][j] = 1 / (x_i - y_j)`` where the ``x`` and
    ``y`` are field elements sampled, as ChaChaRng would, from a ChaCha20
    keystream seeded by BLAKE2s (personalisation ``ResM0003``) of the
    same seed.  The digest becomes eight big-endian u32 seed words and
    each element is read as four Montgomery-form u64 limbs.  A draw is
    retried until all ``x`` are distinct, all ``y`` are distinct and
    the two sets are disjoint, which makes the matrix MDS.

Absorption pads the input with ones up to a multiple of the rate and
records the input length in the capacity element, so inputs of
different lengths never collide by padding.

References
----------
- Aly et al., "Design of Symmetric-Key Primitives for Advanced
  Cryptographic Protocols" (ToSC 2020), §4 Rescue
- matter-labs ``franklin-crypto``, ``rescue/bn256``
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from Crypto.Cipher import ChaCha20

from .field import batch_inverse, inverse
from .jubjub import FIELD_MODULUS

logger = logging.getLogger(__name__)

# ── parameters ──────────────────────────────────────────────────────────
GH_FIRST_BLOCK = b"096b36a5804bfacef1691e173c366a47ff5ba84a44f26ddd7e8d9f79d5b42df0"

RESCUE_ROUNDS = 22
RESCUE_CAPACITY = 1
RESCUE_RATE = 2
RESCUE_WIDTH = RESCUE_CAPACITY + RESCUE_RATE
RESCUE_ALPHA = 5

_ROUND_CONSTANTS_TAG = b"Rescue_f"
_MDS_TAG = b"ResM0003"
_TOP_LIMB_MASK = (1 << 62) - 1
_REPR_BITS = 256

Matrix = Tuple[Tuple[int, ...], ...]
FieldDraw = Callable[[], int]


def _blake2s(tag: bytes, *chunks: bytes) -> bytes:
    h = hashlib.blake2s(digest_size=32, person=tag)
    for c in chunks:
        h.update(c)
    return h.digest()


def generate_round_constants(count: int, modulus: int = FIELD_MODULUS) -> List[int]:
    constants: List[int] = []
    nonce = 0
    while len(constants) < count:
        digest = _blake2s(_ROUND_CONSTANTS_TAG, GH_FIRST_BLOCK, nonce.to_bytes(4, "big"))
        nonce += 1
        candidate = int.from_bytes(digest, "little")
        if 0 < candidate < modulus:
            constants.append(candidate)
    return constants


def chacha_seed_key(digest: bytes) -> bytes:
    """
    ChaCha20 key bytes for a ChaChaRng seeded from *digest*.

    The seed is eight u32 words read big-endian from the digest; the
    cipher takes its key words little-endian.
    """
    words = [int.from_bytes(digest[i:i + 4], "big") for i in range(0, 32, 4)]
    return b"".join(w.to_bytes(4, "little") for w in words)


def chacha_field_draw(key: bytes, modulus: int = FIELD_MODULUS) -> FieldDraw:
    """
    Field-element sampler over a ChaCha20 keystream (zero nonce).

    Each candidate is four u64 limbs, least significant first, each limb
    two keystream u32 words high word first.  The top limb is shaved to
    254 bits and candidates not below *modulus* are rejected.  The limbs
    are a Montgomery representation, so the element is ``repr / 2^256``.
    """
    cipher = ChaCha20.new(key=key, nonce=b"\x00" * 8)
    r_inv = inverse(1 << _REPR_BITS, modulus)

    def next_u32() -> int:
        return int.from_bytes(cipher.encrypt(b"\x00" * 4), "little")

    def draw() -> int:
        while True:
            limbs = [(next_u32() << 32) | next_u32() for _ in range(4)]
            limbs[3] &= _TOP_LIMB_MASK
            candidate = sum(limb << (64 * i) for i, limb in enumerate(limbs))
            if candidate < modulus:
                return candidate * r_inv % modulus

    return draw


def generate_mds_matrix(
    width: int = RESCUE_WIDTH,
    modulus: int = FIELD_MODULUS,
    draw: Optional[FieldDraw] = None,
) -> Matrix:
    """
    Cauchy MDS matrix of size *width*.

    *draw* supplies field elements; by default the seeded ChaCha20
    sampler.
    """
    if draw is None:
        draw = chacha_field_draw(chacha_seed_key(_blake2s(_MDS_TAG, GH_FIRST_BLOCK)), modulus)

    attempts = 0
    while True:
        attempts += 1
        xs = [draw() for _ in range(width)]
        ys = [draw() for _ in range(width)]
        if len(set(xs)) == width and len(set(ys)) == width and not set(xs) & set(ys):
            break
        logger.debug("MDS candidate %d rejected: coordinates not distinct", attempts)

    flat = batch_inverse([(x - y) % modulus for x in xs for y in ys], modulus)
    return tuple(tuple(flat[i * width:(i + 1) * width]) for i in range(width))


# ── parameter set ───────────────────────────────────────────────────────
@dataclass(frozen=True)
class Bn256RescueParams:
    """Everything the permutation needs; derive once and share."""

    modulus: int
    rounds: int
    rate: int
    capacity: int
    round_constants: Matrix
    mds_matrix: Matrix
    alpha: int
    alpha_inv: int

    @property
    def width(self) -> int:
        return self.rate + self.capacity

    @classmethod
    def derive(cls, rounds: int = RESCUE_ROUNDS, rate: int = RESCUE_RATE,
               capacity: int = RESCUE_CAPACITY, modulus: int = FIELD_MODULUS) -> Bn256RescueParams:
        width = rate + capacity
        flat = generate_round_constants((1 + 2 * rounds) * width, modulus)
        constants = tuple(
            tuple(flat[i * width:(i + 1) * width]) for i in range(1 + 2 * rounds)
        )
        return cls(
            modulus=modulus,
            rounds=rounds,
            rate=rate,
            capacity=capacity,
            round_constants=constants,
            mds_matrix=generate_mds_matrix(width, modulus),
            alpha=RESCUE_ALPHA,
            alpha_inv=inverse(RESCUE_ALPHA, modulus - 1),
        )

    @classmethod
    def check_2_into_1(cls) -> Bn256RescueParams:
        """Shared 2-into-1 parameter set (rate 2, capacity 1, 22 rounds)."""
        return _check_2_into_1()


@lru_cache(maxsize=None)
def _check_2_into_1() -> Bn256RescueParams:
    logger.info("deriving Rescue parameters (%d rounds)", RESCUE_ROUNDS)
    return Bn256RescueParams.derive()


# ── permutation / sponge ────────────────────────────────────────────────
def _mds_mul(matrix: Matrix, state: Sequence[int], modulus: int) -> List[int]:
    return [sum(m * s for m, s in zip(row, state)) % modulus for row in matrix]


def rescue_mimc(state: Sequence[int], params: Optional[Bn256RescueParams] = None) -> List[int]:
    """Apply the Rescue permutation to a full-width *state*."""
    params = params or Bn256RescueParams.check_2_into_1()
    p = params.modulus
    if len(state) != params.width:
        raise ValueError(f"state must have {params.width} elements, got {len(state)}")

    out = [(s + c) % p for s, c in zip(state, params.round_constants[0])]
    for rnd in range(2 * params.rounds):
        exponent = params.alpha_inv if rnd % 2 == 0 else params.alpha
        out = [pow(s, exponent, p) for s in out]
        out = _mds_mul(params.mds_matrix, out, p)
        out = [(s + c) % p for s, c in zip(out, params.round_constants[rnd + 1])]
    return out


def rescue_hash(inputs: Iterable[int], params: Optional[Bn256RescueParams] = None) -> int:
    """Sponge digest of a non-empty sequence of field elements."""
    params = params or Bn256RescueParams.check_2_into_1()
    p = params.modulus
    elements = list(inputs)
    if not elements:
        raise ValueError("rescue_hash needs at least one input")
    for e in elements:
        if not isinstance(e, int) or not 0 <= e < p:
            raise ValueError("rescue_hash input is not a field element")

    state = [0] * params.width
    state[params.rate] = len(elements)
    remainder = len(elements) % params.rate
    if remainder:
        elements.extend([1] * (params.rate - remainder))

    for i in range(0, len(elements), params.rate):
        for j, e in enumerate(elements[i:i + params.rate]):
            state[j] = (state[j] + e) % p
        state = rescue_mimc(state, params)
    return state[0]
