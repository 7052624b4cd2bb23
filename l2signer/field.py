"""
Modular arithmetic over prime fields  Z_p.

Shared by the STARK layer (p = 2^251 + 17·2^192 + 1) and the Bn254
layer (scalar field r of Bn254, the base field of AltJubjubBn256).  Values
are plain ``int``; every function returns a fully reduced result in
``[0, p)``.

Division goes through sympy's extended Euclid ``igcdex``, so the same
code also serves composite moduli such as ``r - 1`` (used for the Rescue
inverse S-box exponent).
"""

from __future__ import annotations

from typing import List

import sympy
from sympy.core.intfunc import igcdex

from .errors import NonInvertible


# ── division / inversion ────────────────────────────────────────────────
def div_mod(n: int, m: int, p: int) -> int:
    """
    Unique  0 <= x < p  with  (m · x) % p == n % p.

    Raises ``NonInvertible`` when gcd(m, p) != 1.
    """
    a, _, g = igcdex(m, p)
    if g != 1:
        raise NonInvertible(f"{m} has no inverse modulo {p} (gcd = {g})")
    return int(n * a % p)


def inverse(a: int, p: int) -> int:
    return div_mod(1, a, p)


# ── batch inverse (Montgomery's trick) ──────────────────────────────────
def batch_inverse(values: List[int], p: int) -> List[int]:
    """
    Invert a list of non-zero residues with a single modular inversion
    (Montgomery's trick).

    Cost: 3(n-1) multiplications + 1 inversion  vs  n inversions naïvely.

    Raises ``NonInvertible`` if any element is zero mod *p*.
    """
    n = len(values)
    if n == 0:
        return []
    if any(v % p == 0 for v in values):
        raise NonInvertible("cannot batch-invert a zero element")
    if n == 1:
        return [inverse(values[0], p)]

    # prefix products  pre[i] = v[0] * v[1] * … * v[i]
    prefix = [0] * n
    prefix[0] = values[0] % p
    for i in range(1, n):
        prefix[i] = prefix[i - 1] * values[i] % p

    inv_all = inverse(prefix[-1], p)

    # back-substitution
    result = [0] * n
    for i in range(n - 1, 0, -1):
        result[i] = prefix[i - 1] * inv_all % p
        inv_all = inv_all * values[i] % p
    result[0] = inv_all
    return result


# ── square roots ────────────────────────────────────────────────────────
def is_quad_residue(n: int, p: int) -> bool:
    return bool(sympy.is_quad_residue(n % p, p))


def sqrt_mod(n: int, p: int) -> int:
    """Smallest non-negative ``m`` with  m² ≡ n (mod p)."""
    return int(min(sympy.sqrt_mod(n % p, p, all_roots=True)))
