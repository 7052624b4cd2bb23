"""
zkLink message packing and single-party MuSig (Schnorr) signatures.

Messages
--------
Each builder packs its fields MSB-first into one integer, message type
first, with the widths of the zkLink circuit:

    contract   254 ‖ account 32 ‖ sub-account 8 ‖ slot 16 ‖ nonce 24 ‖
               pair 16 ‖ direction 8 ‖ size 40 ‖ price 120 ‖
               fee rates 16 (maker << 8 | taker) ‖ subsidy 8
    withdraw   3 ‖ to-chain 8 ‖ account 36 ‖ sub-account 8 ‖ to 256 ‖
               l2 token 16 ‖ l1 token 16 ‖ amount 128 ‖ fee 16 ‖
               nonce 32 ‖ to-L1 8 ‖ fee ratio 16 ‖ ts 32
    transfer   4 ‖ account 32 ‖ from sub 8 ‖ to 256 ‖ to sub 8 ‖
               token 16 ‖ amount 40 ‖ fee 16 ‖ nonce 32 ‖ ts 32

The signed message is that integer as big-endian bytes, sized by the
builder's total width.

Signature
---------
With private key ``d`` and public key ``A = d·G`` on AltJubjubBn256:

    r = H_nonce(d, m)                     (never 0)
    R = r·G
    c = Rescue(R.x, R.y, A.x, A.y, |m|, m₀, m₁, …)  mod l
    s = r + c·d  mod l

where ``mᵢ`` are 31-byte little-endian limbs of the message.  Verifiers
check ``s·G == R + c·A``.  The wire form is ``pack(R) ‖ s`` (``s``
32 bytes little-endian) next to ``pack(A)``.

References
----------
- Maxwell, Poelstra, Seurin, Wuille, "Simple Schnorr Multi-Signatures
  with Applications to Bitcoin" (MuSig), single-signer case
- zkLink ``zklink_sdk`` signers, message layouts
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import ClassVar, Dict, List, Tuple, Union

from .errors import FieldWidthExceeded, InvalidPrivateKey
from .hash import hash_musig_nonce, hash_private_key_seed
from .jubjub import SUBGROUP_ORDER, Point
from .rescue import rescue_hash

logger = logging.getLogger(__name__)

CONTRACT_MSG_TYPE = 254
WITHDRAW_MSG_TYPE = 3
TRANSFER_MSG_TYPE = 4

CONTRACT_FIELD_BIT_LENGTHS: Dict[str, int] = {
    "type": 8,
    "accountId": 32,
    "subAccountId": 8,
    "slotId": 16,
    "nonce": 24,
    "pairId": 16,
    "direction": 8,
    "size": 40,
    "price": 120,
    "feeRates": 16,
    "hasSubsidy": 8,
}

WITHDRAW_FIELD_BIT_LENGTHS: Dict[str, int] = {
    "type": 8,
    "toChainId": 8,
    "accountId": 36,
    "subAccountId": 8,
    "to": 256,
    "l2SourceToken": 16,
    "l1TargetToken": 16,
    "amount": 128,
    "fee": 16,
    "nonce": 32,
    "withdrawToL1": 8,
    "withdrawFeeRatio": 16,
    "ts": 32,
}

TRANSFER_FIELD_BIT_LENGTHS: Dict[str, int] = {
    "type": 8,
    "accountId": 32,
    "fromSubAccountId": 8,
    "to": 256,
    "toSubAccountId": 8,
    "token": 16,
    "amount": 40,
    "feeAmount": 16,
    "nonce": 32,
    "ts": 32,
}

SCALAR_BYTES = 32
MESSAGE_LIMB_BYTES = 31
MIN_SEED_BYTES = 32


# ── message builders ────────────────────────────────────────────────────
class ZkLinkSignable:
    """Shared packing for the builders below."""

    MSG_TYPE: ClassVar[int]
    BIT_LENGTHS: ClassVar[Dict[str, int]]

    def _fields(self) -> List[Tuple[str, int]]:
        raise NotImplementedError

    def _validate(self) -> None:
        for name, value in self._fields():
            bits = self.BIT_LENGTHS[name]
            if not isinstance(value, int) or value < 0:
                raise TypeError(f"{name} must be a non-negative int")
            if value >= 1 << bits:
                raise FieldWidthExceeded(f"{name} does not fit in {bits} bits")

    @property
    def bit_length(self) -> int:
        return sum(self.BIT_LENGTHS.values())

    def get_bytes(self) -> int:
        """The packed message as one integer."""
        payload = self.MSG_TYPE
        for name, value in self._fields():
            payload = (payload << self.BIT_LENGTHS[name]) + value
        return payload

    def to_bytes(self) -> bytes:
        return self.get_bytes().to_bytes((self.bit_length + 7) // 8, "big")


@dataclass(frozen=True)
class ContractBuilder(ZkLinkSignable):
    """Perpetual contract order."""

    account_id: int
    sub_account_id: int
    slot_id: int
    nonce: int
    pair_id: int
    size: int
    price: int
    direction: bool
    taker_fee_rate: int
    maker_fee_rate: int
    has_subsidy: bool = False

    MSG_TYPE: ClassVar[int] = CONTRACT_MSG_TYPE
    BIT_LENGTHS: ClassVar[Dict[str, int]] = CONTRACT_FIELD_BIT_LENGTHS

    def __post_init__(self) -> None:
        half = CONTRACT_FIELD_BIT_LENGTHS["feeRates"] // 2
        for name in ("taker_fee_rate", "maker_fee_rate"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value < 1 << half:
                raise FieldWidthExceeded(f"{name} does not fit in {half} bits")
        self._validate()

    def _fields(self) -> List[Tuple[str, int]]:
        half = CONTRACT_FIELD_BIT_LENGTHS["feeRates"] // 2
        return [
            ("accountId", self.account_id),
            ("subAccountId", self.sub_account_id),
            ("slotId", self.slot_id),
            ("nonce", self.nonce),
            ("pairId", self.pair_id),
            ("direction", int(self.direction)),
            ("size", self.size),
            ("price", self.price),
            ("feeRates", (self.maker_fee_rate << half) + self.taker_fee_rate),
            ("hasSubsidy", int(self.has_subsidy)),
        ]


@dataclass(frozen=True)
class WithdrawBuilder(ZkLinkSignable):
    """Withdrawal from an L2 sub-account to an L1 address."""

    account_id: int
    sub_account_id: int
    to_chain_id: int
    to_address: int
    l2_source_token: int
    l1_target_token: int
    amount: int
    fee: int
    nonce: int
    withdraw_fee_ratio: int
    timestamp: int
    withdraw_to_l1: bool = False

    MSG_TYPE: ClassVar[int] = WITHDRAW_MSG_TYPE
    BIT_LENGTHS: ClassVar[Dict[str, int]] = WITHDRAW_FIELD_BIT_LENGTHS

    def __post_init__(self) -> None:
        self._validate()

    def _fields(self) -> List[Tuple[str, int]]:
        return [
            ("toChainId", self.to_chain_id),
            ("accountId", self.account_id),
            ("subAccountId", self.sub_account_id),
            ("to", self.to_address),
            ("l2SourceToken", self.l2_source_token),
            ("l1TargetToken", self.l1_target_token),
            ("amount", self.amount),
            ("fee", self.fee),
            ("nonce", self.nonce),
            ("withdrawToL1", int(self.withdraw_to_l1)),
            ("withdrawFeeRatio", self.withdraw_fee_ratio),
            ("ts", self.timestamp),
        ]


@dataclass(frozen=True)
class TransferBuilder(ZkLinkSignable):
    """Transfer between L2 accounts."""

    account_id: int
    to_address: int
    from_sub_account_id: int
    to_sub_account_id: int
    token: int
    amount: int
    fee: int
    nonce: int
    timestamp: int

    MSG_TYPE: ClassVar[int] = TRANSFER_MSG_TYPE
    BIT_LENGTHS: ClassVar[Dict[str, int]] = TRANSFER_FIELD_BIT_LENGTHS

    def __post_init__(self) -> None:
        self._validate()

    def _fields(self) -> List[Tuple[str, int]]:
        return [
            ("accountId", self.account_id),
            ("fromSubAccountId", self.from_sub_account_id),
            ("to", self.to_address),
            ("toSubAccountId", self.to_sub_account_id),
            ("token", self.token),
            ("amount", self.amount),
            ("feeAmount", self.fee),
            ("nonce", self.nonce),
            ("ts", self.timestamp),
        ]


# ── signature ───────────────────────────────────────────────────────────
@dataclass(frozen=True)
class ZkLinkSignature:
    """Packed public key and packed ``R ‖ s``, both 0x-prefixed hex."""

    pub_key: str
    signature: str

    def to_dict(self) -> Dict[str, str]:
        return {"pubKey": self.pub_key, "signature": self.signature}

    @classmethod
    def from_parts(cls, public_key: Point, R: Point, s: int) -> ZkLinkSignature:
        return cls(
            pub_key="0x" + public_key.pack().hex(),
            signature="0x" + (R.pack() + s.to_bytes(SCALAR_BYTES, "little")).hex(),
        )

    def parts(self) -> Tuple[Point, Point, int]:
        """Unpack into ``(A, R, s)``; raises ``InvalidPublicKey`` / ``ValueError``."""
        pub = bytes.fromhex(_strip_0x(self.pub_key))
        sig = bytes.fromhex(_strip_0x(self.signature))
        if len(sig) != 2 * SCALAR_BYTES:
            raise ValueError(f"signature must be {2 * SCALAR_BYTES} bytes, got {len(sig)}")
        A = Point.unpack(pub)
        R = Point.unpack(sig[:SCALAR_BYTES])
        s = int.from_bytes(sig[SCALAR_BYTES:], "little")
        return A, R, s


def _strip_0x(text: str) -> str:
    return text[2:] if text.startswith(("0x", "0X")) else text


def _message_limbs(message: bytes) -> List[int]:
    return [
        int.from_bytes(message[i:i + MESSAGE_LIMB_BYTES], "little")
        for i in range(0, len(message), MESSAGE_LIMB_BYTES)
    ]


def musig_challenge(R: Point, A: Point, message: bytes) -> int:
    """``c = Rescue(R, A, |m|, limbs(m)) mod l``."""
    inputs = [R.x, R.y, A.x, A.y, len(message)] + _message_limbs(message)
    return rescue_hash(inputs) % SUBGROUP_ORDER


def verify_musig(message: bytes, signature: ZkLinkSignature) -> bool:
    """True iff *signature* is valid for *message* under its own ``pub_key``."""
    try:
        A, R, s = signature.parts()
    except ValueError:
        return False
    if not 0 <= s < SUBGROUP_ORDER:
        return False
    if A.is_identity() or not A.in_subgroup():
        return False
    c = musig_challenge(R, A, message)
    return s * Point.generator() == R + c * A


# ── signer ──────────────────────────────────────────────────────────────
class ZkLinkSigner:
    """
    AltJubjubBn256 key pair producing zkLink MuSig signatures.

    Parameters
    ----------
    private_key : int
        Scalar in ``[1, l)``.
    """

    __slots__ = ("_d", "public_key")

    def __init__(self, private_key: int):
        if isinstance(private_key, bool) or not isinstance(private_key, int):
            raise InvalidPrivateKey("zkLink private key must be an int")
        if not 0 < private_key < SUBGROUP_ORDER:
            raise InvalidPrivateKey("zkLink private key is out of range")
        self._d = private_key
        self.public_key = Point.from_scalar(private_key)

    @classmethod
    def from_seed(cls, seed: bytes) -> ZkLinkSigner:
        """
        Derive the key deterministically from *seed* (at least 32 bytes,
        typically an Ethereum signature).
        """
        if not isinstance(seed, bytes) or len(seed) < MIN_SEED_BYTES:
            raise ValueError(f"seed must be at least {MIN_SEED_BYTES} bytes")
        for counter in itertools.count():
            d = int.from_bytes(hash_private_key_seed(seed, counter), "big") % SUBGROUP_ORDER
            if d:
                return cls(d)
            logger.debug("zero key candidate skipped (counter=%d)", counter)

    @property
    def pub_key_hex(self) -> str:
        return "0x" + self.public_key.pack().hex()

    def sign_musig(self, message: bytes) -> ZkLinkSignature:
        for counter in itertools.count():
            r = hash_musig_nonce(self._d, message, SUBGROUP_ORDER, counter)
            if r:
                break
        R = Point.from_scalar(r)
        c = musig_challenge(R, self.public_key, message)
        s = (r + c * self._d) % SUBGROUP_ORDER
        return ZkLinkSignature.from_parts(self.public_key, R, s)

    def sign(self, builder: Union[ContractBuilder, WithdrawBuilder, TransferBuilder]) -> ZkLinkSignature:
        return self.sign_musig(builder.to_bytes())

    def __repr__(self) -> str:
        return f"ZkLinkSigner(pub_key={self.pub_key_hex[:18]}…)"
