"""
StarkEx pre-images and their Pedersen digests.

Each signable packs its fixed-width fields into one or more field
elements (``a ‖ b`` means ``(a << width(b)) + b``) and hashes them with
the Pedersen hash.  Widths, prefixes and padding are part of the wire
contract with the StarkEx verifier: any deviation is a silent mis-sign.

    Order (limit with fee), prefix 3
        part1  = qSell ‖ qBuy ‖ qFee ‖ nonce                 64/64/64/32
        part2  = 3 ‖ pos ‖ pos ‖ pos ‖ expHours ‖ 0^17       64/64/64/32
        digest = H(H(H(H(assetSell, assetBuy), assetFee), part1), part2)

    Withdrawal, prefix 6 / WithdrawalToAddress, prefix 7
        packed = prefix ‖ pos ‖ nonce ‖ amount ‖ expHours ‖ 0^49
        digest = H(asset, packed)  /  H(H(asset, ethAddress), packed)

    Transfer, prefix 4 / ConditionalTransfer, prefix 5
        asset  = H(assetId, assetIdFee)
        part1  = H(asset, receiverKey)  /  H(H(asset, receiverKey), condition)
        part2  = senderPos ‖ receiverPos ‖ feePos ‖ nonce
        part3  = prefix ‖ amount ‖ maxFee ‖ expHours ‖ 0^81
        digest = H(H(part1, part2), part3)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .curve import ECPoint
from .errors import FieldWidthExceeded
from .pedersen import PedersenHasher, default_hasher
from .signing import StarkSigner, default_signer

# ── wire constants ──────────────────────────────────────────────────────
ORDER_PREFIX = 3
TRANSFER_PREFIX = 4
CONDITIONAL_TRANSFER_PREFIX = 5
WITHDRAWAL_PREFIX = 6
WITHDRAWAL_TO_ADDRESS_PREFIX = 7

ORDER_PADDING_BITS = 17
WITHDRAWAL_PADDING_BITS = 49
TRANSFER_PADDING_BITS = 81

CONDITIONAL_TRANSFER_FEE_ASSET_ID = 0
CONDITIONAL_TRANSFER_MAX_AMOUNT_FEE = 0

ORDER_FIELD_BIT_LENGTHS = {
    "asset_id_synthetic": 128,
    "asset_id_collateral": 250,
    "asset_id_fee": 250,
    "quantums_amount": 64,
    "nonce": 32,
    "position_id": 64,
    "expiration_epoch_hours": 32,
}

WITHDRAWAL_FIELD_BIT_LENGTHS = {
    "asset_id": 250,
    "eth_address": 160,
    "position_id": 64,
    "nonce": 32,
    "quantums_amount": 64,
    "expiration_epoch_hours": 32,
}

TRANSFER_FIELD_BIT_LENGTHS = {
    "asset_id": 250,
    "receiver_public_key": 251,
    "position_id": 64,
    "quantums_amount": 64,
    "nonce": 32,
    "expiration_epoch_hours": 32,
    "condition": 251,
}


# ── helpers ─────────────────────────────────────────────────────────────
def _check(name: str, value: int, bits: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if not 0 <= value < 1 << bits:
        raise FieldWidthExceeded(f"{name}={value} does not fit in {bits} bits")


def _pack(prefix: int, *fields: Tuple[int, int], padding: int = 0) -> int:
    """``prefix ‖ v1 ‖ v2 ‖ … ‖ 0^padding`` for ``(value, width)`` fields."""
    packed = prefix
    for value, width in fields:
        packed = (packed << width) + value
    return packed << padding


class Signable:
    """Mixin: sign / verify the Pedersen digest of a pre-image."""

    def hash(self, hasher: Optional[PedersenHasher] = None) -> int:
        raise NotImplementedError

    def sign(self, private_key: Union[str, int], signer: Optional[StarkSigner] = None) -> str:
        """Sign the digest; returns the 128-character hex signature."""
        signer = signer or default_signer()
        return signer.sign(self.hash(), private_key).to_hex()

    def verify_signature(
        self,
        signature: str,
        public_key: Union[int, ECPoint],
        signer: Optional[StarkSigner] = None,
    ) -> bool:
        signer = signer or default_signer()
        return signer.verify_signature(self.hash(), signature, public_key)


# ── order ───────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Order(Signable):
    """StarkEx ``LIMIT_ORDER_WITH_FEES`` pre-image."""

    asset_id_synthetic: int
    asset_id_collateral: int
    asset_id_fee: int
    quantums_amount_synthetic: int
    quantums_amount_collateral: int
    quantums_amount_fee: int
    is_buying_synthetic: bool
    position_id: int
    nonce: int
    expiration_epoch_hours: int

    def __post_init__(self) -> None:
        w = ORDER_FIELD_BIT_LENGTHS
        _check("asset_id_synthetic", self.asset_id_synthetic, w["asset_id_synthetic"])
        _check("asset_id_collateral", self.asset_id_collateral, w["asset_id_collateral"])
        _check("asset_id_fee", self.asset_id_fee, w["asset_id_fee"])
        _check("quantums_amount_synthetic", self.quantums_amount_synthetic, w["quantums_amount"])
        _check("quantums_amount_collateral", self.quantums_amount_collateral, w["quantums_amount"])
        _check("quantums_amount_fee", self.quantums_amount_fee, w["quantums_amount"])
        _check("position_id", self.position_id, w["position_id"])
        _check("nonce", self.nonce, w["nonce"])
        _check("expiration_epoch_hours", self.expiration_epoch_hours, w["expiration_epoch_hours"])

    def sides(self) -> Tuple[int, int, int, int]:
        """``(asset_sell, asset_buy, quantums_sell, quantums_buy)``."""
        if self.is_buying_synthetic:
            return (
                self.asset_id_collateral, self.asset_id_synthetic,
                self.quantums_amount_collateral, self.quantums_amount_synthetic,
            )
        return (
            self.asset_id_synthetic, self.asset_id_collateral,
            self.quantums_amount_synthetic, self.quantums_amount_collateral,
        )

    def hash(self, hasher: Optional[PedersenHasher] = None) -> int:
        h = hasher or default_hasher()
        w = ORDER_FIELD_BIT_LENGTHS
        asset_sell, asset_buy, quantums_sell, quantums_buy = self.sides()

        part_1 = _pack(
            quantums_sell,
            (quantums_buy, w["quantums_amount"]),
            (self.quantums_amount_fee, w["quantums_amount"]),
            (self.nonce, w["nonce"]),
        )
        part_2 = _pack(
            ORDER_PREFIX,
            (self.position_id, w["position_id"]),
            (self.position_id, w["position_id"]),
            (self.position_id, w["position_id"]),
            (self.expiration_epoch_hours, w["expiration_epoch_hours"]),
            padding=ORDER_PADDING_BITS,
        )

        assets_hash = h.hash(h.hash(asset_sell, asset_buy), self.asset_id_fee)
        return h.hash(h.hash(assets_hash, part_1), part_2)


# ── withdrawals ─────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Withdrawal(Signable):
    asset_id_collateral: int
    position_id: int
    nonce: int
    quantums_amount: int
    expiration_epoch_hours: int

    def __post_init__(self) -> None:
        w = WITHDRAWAL_FIELD_BIT_LENGTHS
        _check("asset_id_collateral", self.asset_id_collateral, w["asset_id"])
        _check("position_id", self.position_id, w["position_id"])
        _check("nonce", self.nonce, w["nonce"])
        _check("quantums_amount", self.quantums_amount, w["quantums_amount"])
        _check("expiration_epoch_hours", self.expiration_epoch_hours, w["expiration_epoch_hours"])

    def _packed(self, prefix: int) -> int:
        w = WITHDRAWAL_FIELD_BIT_LENGTHS
        return _pack(
            prefix,
            (self.position_id, w["position_id"]),
            (self.nonce, w["nonce"]),
            (self.quantums_amount, w["quantums_amount"]),
            (self.expiration_epoch_hours, w["expiration_epoch_hours"]),
            padding=WITHDRAWAL_PADDING_BITS,
        )

    def hash(self, hasher: Optional[PedersenHasher] = None) -> int:
        h = hasher or default_hasher()
        return h.hash(self.asset_id_collateral, self._packed(WITHDRAWAL_PREFIX))


@dataclass(frozen=True)
class WithdrawalToAddress(Withdrawal):
    """Withdrawal whose funds are released to an Ethereum address."""

    eth_address: int = 0

    def __post_init__(self) -> None:
        super().__post_init__()
        _check("eth_address", self.eth_address, WITHDRAWAL_FIELD_BIT_LENGTHS["eth_address"])

    def hash(self, hasher: Optional[PedersenHasher] = None) -> int:
        h = hasher or default_hasher()
        return h.hash(
            h.hash(self.asset_id_collateral, self.eth_address),
            self._packed(WITHDRAWAL_TO_ADDRESS_PREFIX),
        )


# ── transfers ───────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Transfer(Signable):
    """
    Transfer between two positions.

    The fee is charged from ``fee_position_id`` (the sender's position
    unless given).
    """

    asset_id: int
    receiver_public_key: int
    sender_position_id: int
    receiver_position_id: int
    quantums_amount: int
    nonce: int
    expiration_epoch_hours: int
    asset_id_fee: int = 0
    max_amount_fee: int = 0
    fee_position_id: Optional[int] = None

    def __post_init__(self) -> None:
        w = TRANSFER_FIELD_BIT_LENGTHS
        _check("asset_id", self.asset_id, w["asset_id"])
        _check("asset_id_fee", self.asset_id_fee, w["asset_id"])
        _check("receiver_public_key", self.receiver_public_key, w["receiver_public_key"])
        _check("sender_position_id", self.sender_position_id, w["position_id"])
        _check("receiver_position_id", self.receiver_position_id, w["position_id"])
        if self.fee_position_id is not None:
            _check("fee_position_id", self.fee_position_id, w["position_id"])
        _check("quantums_amount", self.quantums_amount, w["quantums_amount"])
        _check("max_amount_fee", self.max_amount_fee, w["quantums_amount"])
        _check("nonce", self.nonce, w["nonce"])
        _check("expiration_epoch_hours", self.expiration_epoch_hours, w["expiration_epoch_hours"])

    @property
    def prefix(self) -> int:
        return TRANSFER_PREFIX

    def _part_1(self, h: PedersenHasher) -> int:
        return h.hash(h.hash(self.asset_id, self.asset_id_fee), self.receiver_public_key)

    def hash(self, hasher: Optional[PedersenHasher] = None) -> int:
        h = hasher or default_hasher()
        w = TRANSFER_FIELD_BIT_LENGTHS
        fee_position_id = (
            self.sender_position_id if self.fee_position_id is None else self.fee_position_id
        )
        part_2 = _pack(
            self.sender_position_id,
            (self.receiver_position_id, w["position_id"]),
            (fee_position_id, w["position_id"]),
            (self.nonce, w["nonce"]),
        )
        part_3 = _pack(
            self.prefix,
            (self.quantums_amount, w["quantums_amount"]),
            (self.max_amount_fee, w["quantums_amount"]),
            (self.expiration_epoch_hours, w["expiration_epoch_hours"]),
            padding=TRANSFER_PADDING_BITS,
        )
        return h.hash(h.hash(self._part_1(h), part_2), part_3)


@dataclass(frozen=True)
class ConditionalTransfer(Transfer):
    """
    Transfer that only goes through once ``condition`` (a registered
    fact, see :func:`l2signer.hash.fact_to_condition`) holds on L1.

    Conditional transfers carry no fee: ``asset_id_fee`` and
    ``max_amount_fee`` must be left at zero.
    """

    condition: int = 0

    def __post_init__(self) -> None:
        super().__post_init__()
        _check("condition", self.condition, TRANSFER_FIELD_BIT_LENGTHS["condition"])
        if self.asset_id_fee != CONDITIONAL_TRANSFER_FEE_ASSET_ID:
            raise FieldWidthExceeded("conditional transfers have no fee asset")
        if self.max_amount_fee != CONDITIONAL_TRANSFER_MAX_AMOUNT_FEE:
            raise FieldWidthExceeded("conditional transfers have no fee amount")

    @property
    def prefix(self) -> int:
        return CONDITIONAL_TRANSFER_PREFIX

    def _part_1(self, h: PedersenHasher) -> int:
        return h.hash(super()._part_1(h), self.condition)
