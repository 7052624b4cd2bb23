"""
STARK curve parameter table.

The table is a JSON document with the keys ``FIELD_PRIME``,
``FIELD_GEN``, ``EC_ORDER``, ``ALPHA``, ``BETA`` and
``CONSTANT_POINTS`` (decimal integers).  Constant point layout:

    [0]                 shift point (Pedersen accumulator start)
    [1]                 EC generator G
    [2   .. 2+252)      Pedersen base points for the first input
    [254 .. 254+252)    Pedersen base points for the second input

Every constant point is checked against the curve equation once, when
the table is loaded, so hashing never needs to.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import PARAMS_ENV
from .curve import ECPoint, ec_neg, is_on_curve

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).with_name("data")

# both StarkEx deployments we sign for share the same curve and table
_TABLES = {
    "starkex": "pedersen_params.json",
    "apexpro": "pedersen_params.json",
    "dydx": "pedersen_params.json",
}


class PedersenParams(BaseModel):
    """Validated, immutable STARK curve parameters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    field_prime: int = Field(alias="FIELD_PRIME")
    field_gen: int = Field(alias="FIELD_GEN")
    ec_order: int = Field(alias="EC_ORDER")
    alpha: int = Field(alias="ALPHA")
    beta: int = Field(alias="BETA")
    constant_points: Tuple[Tuple[int, int], ...] = Field(alias="CONSTANT_POINTS")

    @field_validator("field_prime", "ec_order")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 2:
            raise ValueError("modulus must be greater than 2")
        return v

    @model_validator(mode="after")
    def _check_table(self) -> "PedersenParams":
        p = self.field_prime
        if not 1 < self.field_gen < p:
            raise ValueError("FIELD_GEN out of range")
        needed = 2 + 2 * self.n_element_bits_hash
        if len(self.constant_points) < needed:
            raise ValueError(
                f"CONSTANT_POINTS has {len(self.constant_points)} entries, "
                f"need at least {needed}"
            )
        for i, pt in enumerate(self.constant_points):
            if not (0 <= pt[0] < p and 0 <= pt[1] < p):
                raise ValueError(f"constant point {i} is not reduced mod FIELD_PRIME")
            if not is_on_curve(pt, self.alpha, self.beta, p):
                raise ValueError(f"constant point {i} is not on the curve")
        return self

    # derived values ---------------------------------------------------------
    @property
    def n_element_bits_ecdsa(self) -> int:
        """floor(log2(p)), 251 for the STARK field."""
        return self.field_prime.bit_length() - 1

    @property
    def n_element_bits_hash(self) -> int:
        """Bit window per Pedersen input, 252 for the STARK field."""
        return self.field_prime.bit_length()

    @property
    def shift_point(self) -> ECPoint:
        return self.constant_points[0]

    @property
    def minus_shift_point(self) -> ECPoint:
        return ec_neg(self.constant_points[0], self.field_prime)

    @property
    def ec_gen(self) -> ECPoint:
        return self.constant_points[1]


def params_path(exchange: str = "starkex") -> Path:
    """Resolve the table path; ``$L2SIGNER_PEDERSEN_PARAMS`` wins."""
    override = os.environ.get(PARAMS_ENV)
    if override:
        return Path(override)
    try:
        name = _TABLES[exchange.lower()]
    except KeyError:
        raise ValueError(f"no STARK parameter table for exchange {exchange!r}") from None
    return DATA_DIR / name


@lru_cache(maxsize=None)
def _load(path: str) -> PedersenParams:
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    params = PedersenParams.model_validate(raw)
    logger.info(
        "loaded STARK parameters from %s (%d constant points)",
        path, len(params.constant_points),
    )
    return params


def load_params(exchange: str = "starkex") -> PedersenParams:
    """Load (once per path) and validate the parameter table."""
    return _load(str(params_path(exchange)))
