"""
Pedersen hash over the STARK field.

    H(a, b) = [shift + Σ_i a_i·P_{2+i} + Σ_i b_i·P_{2+252+i}].x

where ``a_i`` / ``b_i`` are the bits of the inputs (least-significant
first) and ``P_j`` are the constant points of the parameter table.
More than two inputs are folded from the left:

    H(x1, x2, x3, …) = H(H(H(x1, x2), x3), …)

The hasher is stateless beyond the (immutable) table, so one instance
can be shared freely between threads.
"""

from __future__ import annotations

from functools import lru_cache, reduce
from typing import Optional

from .curve import ECPoint, ec_add
from .errors import DegenerateOp
from .params import PedersenParams, load_params


class PedersenHasher:
    """Two-input Pedersen hash bound to one parameter table."""

    __slots__ = ("_params", "_p", "_bits")

    def __init__(self, params: Optional[PedersenParams] = None) -> None:
        self._params = params if params is not None else load_params()
        self._p = self._params.field_prime
        self._bits = self._params.n_element_bits_hash

    @property
    def params(self) -> PedersenParams:
        return self._params

    def hash_as_point(self, a: int, b: int) -> ECPoint:
        """Same as :meth:`hash` but returns the whole accumulator point."""
        points = self._params.constant_points
        point = self._params.shift_point
        for i, x in enumerate((a, b)):
            if not 0 <= x < self._p:
                raise ValueError(f"Pedersen input {i} is not a field element: {x}")
            offset = 2 + i * self._bits
            for pt in points[offset:offset + self._bits]:
                if point[0] == pt[0]:
                    raise DegenerateOp("unhashable input")
                if x & 1:
                    point = ec_add(point, pt, self._p)
                x >>= 1
        return point

    def hash(self, a: int, b: int) -> int:
        return self.hash_as_point(a, b)[0]

    def hash_many(self, *elements: int) -> int:
        """Left fold of :meth:`hash` over two or more elements."""
        if len(elements) < 2:
            raise ValueError("Pedersen hash needs at least two elements")
        return reduce(self.hash, elements)

    def __repr__(self) -> str:
        return f"PedersenHasher({len(self._params.constant_points)} points)"


@lru_cache(maxsize=None)
def default_hasher() -> PedersenHasher:
    """Process-wide hasher over the default StarkEx table."""
    return PedersenHasher()


def pedersen_hash(*elements: int) -> int:
    """``H(x1, x2, …)`` with the default table."""
    return default_hasher().hash_many(*elements)
