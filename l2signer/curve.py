"""
Affine arithmetic on the STARK curve.

    y² = x³ + α·x + β   (mod p),   α = 1,
    p  = 2^251 + 17·2^192 + 1,     N = order of the generator (252 bits).

Points are plain ``(x, y)`` tuples of reduced ints; the point at
infinity is never materialised.  Every function takes the curve
constants explicitly so that the parameter table stays the only source
of truth (see :mod:`l2signer.params`).

Degenerate inputs (coincident x-coordinates in an addition, ``y == 0``
in a doubling) raise ``DegenerateOp``.  Legitimate signing inputs never
reach them; ``verify`` treats them as "signature invalid".

References
----------
- StarkWare, ``starkex-resources/crypto/starkware/crypto/signature``
- SEC 1 v2 §2.2.1  elliptic curve arithmetic over F_p
"""

from __future__ import annotations

from typing import List, Tuple

from .errors import DegenerateOp, InvalidPublicKey
from .field import div_mod, is_quad_residue, sqrt_mod

# A point (x, y) on the curve, affine form.
ECPoint = Tuple[int, int]


# ── predicates ──────────────────────────────────────────────────────────
def is_on_curve(point: ECPoint, alpha: int, beta: int, p: int) -> bool:
    x, y = point
    return (y * y - (x * x * x + alpha * x + beta)) % p == 0


def get_y_coordinate(x: int, alpha: int, beta: int, p: int) -> int:
    """
    Smallest ``y`` such that ``(x, y)`` is on the curve.

    The real y coordinate of a public key is either ``y`` or ``p - y``.
    Raises ``InvalidPublicKey`` if *x* is not the abscissa of any point.
    """
    y_squared = (x * x * x + alpha * x + beta) % p
    if not is_quad_residue(y_squared, p):
        raise InvalidPublicKey(
            "given x coordinate does not represent any point on the curve"
        )
    return sqrt_mod(y_squared, p)


# ── group law ───────────────────────────────────────────────────────────
def ec_neg(point: ECPoint, p: int) -> ECPoint:
    x, y = point
    return x, (-y) % p


def ec_add(point1: ECPoint, point2: ECPoint, p: int) -> ECPoint:
    """
    Sum of two points with different x coordinates.

    slope m = (y1 - y2) / (x1 - x2),  x = m² - x1 - x2,  y = m·(x1 - x) - y1
    """
    if (point1[0] - point2[0]) % p == 0:
        raise DegenerateOp("ec_add on points with equal x coordinates")
    m = div_mod(point1[1] - point2[1], point1[0] - point2[0], p)
    x = (m * m - point1[0] - point2[0]) % p
    y = (m * (point1[0] - x) - point1[1]) % p
    return x, y


def ec_double(point: ECPoint, alpha: int, p: int) -> ECPoint:
    """Double a point with ``y != 0``;  slope m = (3x² + α) / 2y."""
    if point[1] % p == 0:
        raise DegenerateOp("ec_double on a point with y == 0")
    m = div_mod(3 * point[0] * point[0] + alpha, 2 * point[1], p)
    x = (m * m - 2 * point[0]) % p
    y = (m * (point[0] - x) - point[1]) % p
    return x, y


def ec_mult(m: int, point: ECPoint, alpha: int, p: int) -> ECPoint:
    """
    ``m · point`` for ``0 < m < order(point)``.

    Defined recursively as

        m == 1   ->  point
        m even   ->  ec_mult(m / 2, ec_double(point))
        m odd    ->  ec_add(ec_mult(m - 1, point), point)

    The loop below performs exactly the same doublings and additions in
    the same order, so results (and failures) are identical.
    """
    if m <= 0:
        raise ValueError(f"scalar must be positive, got {m}")

    # walk down the recursion: one doubling per bit below the top one,
    # remembering the operand of every pending "odd" addition.
    pending: List[ECPoint] = []
    while m != 1:
        if m & 1:
            pending.append(point)
            m -= 1
        else:
            point = ec_double(point, alpha, p)
            m >>= 1

    # unwind: innermost pending addition is applied first
    result = point
    for addend in reversed(pending):
        result = ec_add(result, addend, p)
    return result


def mimic_ec_mult_air(
    m: int,
    point: ECPoint,
    shift_point: ECPoint,
    alpha: int,
    p: int,
    n_bits: int,
) -> ECPoint:
    """
    ``m · point + shift_point`` using the same steps as the STARK AIR.

    Raises ``DegenerateOp`` if and only if the AIR would fail on the
    same input.
    """
    if not 0 < m < 2 ** n_bits:
        raise ValueError(f"scalar out of range for the AIR: {m}")
    partial_sum = shift_point
    for _ in range(n_bits):
        if partial_sum[0] == point[0]:
            raise DegenerateOp("AIR partial sum collides with the doubled point")
        if m & 1:
            partial_sum = ec_add(partial_sum, point, p)
        point = ec_double(point, alpha, p)
        m >>= 1
    return partial_sum
