"""
AltJubjubBn256: Baby Jubjub in the a = -1 twisted Edwards form.

    -x² + y² = 1 + d·x²·y²      over  F_r,  r = Bn254 scalar field

This is the model the zkLink circuit (franklin-crypto) works in.  It is
the image of the a = 168700, d = 168696 form under  x ↦ SCALE·x,  where
``SCALE² = -(MONTGOMERY_A + 2)``; the y coordinate is shared, so
``d = -168696 / 168700``.  The curve has cofactor 8; keys and nonces
live in the prime-order subgroup of size ``l`` generated by
``GENERATOR``.

Points are packed into 32 bytes: ``y`` little-endian with the top bit of
the last byte set when ``x`` is odd.

``-1`` is a square and ``d`` is not, so the addition law is complete:
no special case for doubling or the identity.

References
----------
- EIP-2494  Baby Jubjub Elliptic Curve
- Bernstein et al., "Twisted Edwards Curves" (AFRICACRYPT 2008)
- matter-labs ``franklin-crypto``, ``alt_babyjubjub``
"""

from __future__ import annotations

from typing import Tuple

from .errors import InvalidPublicKey
from .field import div_mod, is_quad_residue, sqrt_mod

# ── curve parameters ────────────────────────────────────────────────────
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617
A = FIELD_MODULUS - 1
EDWARDS_D = 12181644023421730124874158521699555681764249180949974110617291017600649128846
MONTGOMERY_A = 168698
SCALE = 6360561867910373094066688120553762416144456282423235903351243436111059670888
SUBGROUP_ORDER = 2736030358979909402780800718157159386076813972158567259200215660948447373041
COFACTOR = 8

GENERATOR = (
    12216525397769193039033285140139874868932027386087289415053270333399021305954,
    16950150798460657717958625567821834550301663161624707787222815936182638968203,
)

PACKED_POINT_BYTES = 32
_SIGN_BIT = 0x80


class Point:
    """
    Affine point on AltJubjubBn256.

    Immutable; supports ``P + Q``, ``-P``, ``P - Q`` and ``k * P`` for an
    integer ``k``.  The identity is ``(0, 1)``.
    """

    __slots__ = ("x", "y")

    def __init__(self, x: int, y: int):
        self.x = x % FIELD_MODULUS
        self.y = y % FIELD_MODULUS

    # constructors -----------------------------------------------------------
    @classmethod
    def generator(cls) -> Point:
        """Generator of the prime-order subgroup."""
        return cls(*GENERATOR)

    @classmethod
    def identity(cls) -> Point:
        return cls(0, 1)

    @classmethod
    def from_scalar(cls, k: int) -> Point:
        """Compute ``k · GENERATOR``."""
        return k * cls.generator()

    # predicates -------------------------------------------------------------
    def is_on_curve(self) -> bool:
        x2 = self.x * self.x % FIELD_MODULUS
        y2 = self.y * self.y % FIELD_MODULUS
        return (A * x2 + y2) % FIELD_MODULUS == (1 + EDWARDS_D * x2 * y2) % FIELD_MODULUS

    def is_identity(self) -> bool:
        return self.x == 0 and self.y == 1

    def in_subgroup(self) -> bool:
        return self.is_on_curve() and (SUBGROUP_ORDER * self).is_identity()

    # serialisation ----------------------------------------------------------
    def pack(self) -> bytes:
        """32-byte compressed encoding."""
        buf = bytearray(self.y.to_bytes(PACKED_POINT_BYTES, "little"))
        if self.x & 1:
            buf[-1] |= _SIGN_BIT
        return bytes(buf)

    @classmethod
    def unpack(cls, data: bytes) -> Point:
        """Inverse of :meth:`pack`; raises ``InvalidPublicKey`` off-curve."""
        if len(data) != PACKED_POINT_BYTES:
            raise InvalidPublicKey(f"packed point must be {PACKED_POINT_BYTES} bytes, got {len(data)}")
        buf = bytearray(data)
        negative = bool(buf[-1] & _SIGN_BIT)
        buf[-1] &= ~_SIGN_BIT & 0xFF
        y = int.from_bytes(buf, "little")
        if y >= FIELD_MODULUS:
            raise InvalidPublicKey("y coordinate is not a field element")

        # x² = (1 - y²) / (a - d·y²)
        y2 = y * y % FIELD_MODULUS
        x2 = div_mod(1 - y2, A - EDWARDS_D * y2, FIELD_MODULUS)
        if not is_quad_residue(x2, FIELD_MODULUS):
            raise InvalidPublicKey("packed point is not on the curve")
        x = sqrt_mod(x2, FIELD_MODULUS)
        if bool(x & 1) != negative:
            x = (FIELD_MODULUS - x) % FIELD_MODULUS
        if x == 0 and negative:
            raise InvalidPublicKey("non-canonical encoding of x = 0")
        return cls(x, y)

    def to_tuple(self) -> Tuple[int, int]:
        return self.x, self.y

    # group operations -------------------------------------------------------
    def __add__(self, o: Point) -> Point:
        if not isinstance(o, Point):
            return NotImplemented
        p = FIELD_MODULUS
        x1, y1, x2, y2 = self.x, self.y, o.x, o.y
        t = EDWARDS_D * x1 * x2 * y1 * y2 % p
        x3 = div_mod(x1 * y2 + y1 * x2, 1 + t, p)
        y3 = div_mod(y1 * y2 - A * x1 * x2, 1 - t, p)
        return Point(x3, y3)

    def __neg__(self) -> Point:
        return Point(-self.x, self.y)

    def __sub__(self, o: Point) -> Point:
        return self + (-o)

    def __rmul__(self, k) -> Point:
        if not isinstance(k, int) or isinstance(k, bool):
            return NotImplemented
        if k < 0:
            return (-k) * (-self)
        result, addend = Point.identity(), self
        while k:
            if k & 1:
                result = result + addend
            addend = addend + addend
            k >>= 1
        return result

    def __mul__(self, k) -> Point:
        return self.__rmul__(k)

    def __eq__(self, o: object) -> bool:
        if not isinstance(o, Point):
            return NotImplemented
        return self.x == o.x and self.y == o.y

    def __hash__(self) -> int:
        return hash((self.x, self.y))

    def __repr__(self) -> str:
        if self.is_identity():
            return "Point(identity)"
        return f"Point({self.pack().hex()[:16]}…)"
