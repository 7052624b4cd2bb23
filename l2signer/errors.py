"""
Error taxonomy for the signing core.

Every failure a signing call can surface is one of the classes below.
Input problems also derive from ``ValueError``, arithmetic problems from
``ArithmeticError`` and loop exhaustion from ``RuntimeError``, so code
that already catches the builtin bases keeps working.
"""

from __future__ import annotations


class L2SignerError(Exception):
    """Base class for every error raised by :mod:`l2signer`."""


# ── caller input ────────────────────────────────────────────────────────
class InvalidPrivateKey(L2SignerError, ValueError):
    """Key is empty, malformed, or not in ``[1, N)``."""


class InvalidPublicKey(L2SignerError, ValueError):
    """Given x coordinate does not represent any point on the curve."""


class InvalidHashPayload(L2SignerError, ValueError):
    """Pre-image digest is not a signable field element."""


class InvalidAssetID(L2SignerError, ValueError):
    pass


class InvalidPositionID(L2SignerError, ValueError):
    pass


class InvalidEthereumAddress(L2SignerError, ValueError):
    pass


class FieldWidthExceeded(L2SignerError, ValueError):
    """A payload field does not fit its declared bit width."""


class ExpirationRequired(L2SignerError, ValueError):
    pass


class LimitFeeRequired(L2SignerError, ValueError):
    pass


# ── upstream exchange metadata ──────────────────────────────────────────
class ContractNotFound(L2SignerError, LookupError):
    pass


class SettlementCurrencyNotFound(L2SignerError, LookupError):
    pass


class PairNotEnabled(L2SignerError):
    """Contract exists in the symbols config but trading is disabled."""


# ── arithmetic ──────────────────────────────────────────────────────────
class NonInvertible(L2SignerError, ArithmeticError):
    """``gcd(m, p) != 1`` in a modular division."""


class DegenerateOp(L2SignerError, ArithmeticError):
    """Coincident x-coordinates in ``ec_add`` or ``y == 0`` in ``ec_double``."""


# ── signer ──────────────────────────────────────────────────────────────
class SignerExhausted(L2SignerError, RuntimeError):
    """The k-rejection loop hit its attempt cap."""
