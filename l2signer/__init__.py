"""
l2signer: Layer-2 order signing for StarkEx and zkLink exchanges.

Two independent signers:

- **StarkEx** (ApexPro, dYdX v3): bit-packed pre-images hashed with the
  Pedersen hash over the STARK field, signed with deterministic
  (RFC 6979) ECDSA on the STARK curve.
- **zkLink**: bit-packed messages signed with single-party MuSig over
  AltJubjubBn256, challenge computed with the Rescue hash over Bn254.

Quick start
-----------
::

    from l2signer import Order, StarkSigner, nonce_from_client_id

    order = Order(
        asset_id_synthetic=0x4254432d3130000000000000000000,
        asset_id_collateral=0x02893294412a4c8f915f75892b395ebbf6859ec246ec365c3b1f56f47c3a0a5d,
        asset_id_fee=0x02893294412a4c8f915f75892b395ebbf6859ec246ec365c3b1f56f47c3a0a5d,
        quantums_amount_synthetic=100_000_000,
        quantums_amount_collateral=200_000_000,
        quantums_amount_fee=1_000_000,
        is_buying_synthetic=True,
        position_id=12345,
        nonce=nonce_from_client_id("client-1"),
        expiration_epoch_hours=472391,
    )
    signature = order.sign(private_key)          # 128 hex characters
    assert order.verify_signature(signature, StarkSigner().stark_key(private_key))
"""

__version__ = "0.1.0"

# ── errors ──────────────────────────────────────────────────────────────
from .errors import (
    L2SignerError,
    InvalidPrivateKey,
    InvalidPublicKey,
    InvalidHashPayload,
    InvalidAssetID,
    InvalidPositionID,
    InvalidEthereumAddress,
    FieldWidthExceeded,
    ExpirationRequired,
    LimitFeeRequired,
    ContractNotFound,
    SettlementCurrencyNotFound,
    PairNotEnabled,
    NonInvertible,
    DegenerateOp,
    SignerExhausted,
)

# ── configuration ───────────────────────────────────────────────────────
from .config import configure_logging, max_sign_attempts
from .params import PedersenParams, load_params

# ── STARK curve ─────────────────────────────────────────────────────────
from .curve import ECPoint, ec_add, ec_double, ec_mult, ec_neg, get_y_coordinate
from .pedersen import PedersenHasher, pedersen_hash
from .rfc6979 import generate_k_rfc6979
from .signing import (
    StarkSigner,
    StarkSignature,
    sign,
    verify,
    private_to_stark_key,
    serialize_signature,
    deserialize_signature,
    parse_private_key,
)

# ── StarkEx payloads ────────────────────────────────────────────────────
from .signables import (
    Order,
    Withdrawal,
    WithdrawalToAddress,
    Transfer,
    ConditionalTransfer,
)
from .hash import nonce_from_client_id, expiration_epoch_hours, fact_to_condition

# ── exchange processing & keys ──────────────────────────────────────────
from .orders import (
    OrderProcessor,
    SymbolsConfig,
    PerpetualContract,
    CurrencyConfig,
    Account,
    AccountDetail,
)
from .keys import derive_stark_private_key, derive_zklink_signer, stark_private_key_from_bytes

# ── zkLink ──────────────────────────────────────────────────────────────
from .jubjub import Point
from .rescue import Bn256RescueParams, rescue_hash
from .zklink import (
    ContractBuilder,
    WithdrawBuilder,
    TransferBuilder,
    ZkLinkSigner,
    ZkLinkSignature,
    verify_musig,
)

__all__ = [
    # version
    "__version__",
    # errors
    "L2SignerError", "InvalidPrivateKey", "InvalidPublicKey", "InvalidHashPayload",
    "InvalidAssetID", "InvalidPositionID", "InvalidEthereumAddress",
    "FieldWidthExceeded", "ExpirationRequired", "LimitFeeRequired",
    "ContractNotFound", "SettlementCurrencyNotFound", "PairNotEnabled",
    "NonInvertible", "DegenerateOp", "SignerExhausted",
    # configuration
    "configure_logging", "max_sign_attempts", "PedersenParams", "load_params",
    # STARK curve
    "ECPoint", "ec_add", "ec_double", "ec_mult", "ec_neg", "get_y_coordinate",
    "PedersenHasher", "pedersen_hash", "generate_k_rfc6979",
    "StarkSigner", "StarkSignature", "sign", "verify", "private_to_stark_key",
    "serialize_signature", "deserialize_signature", "parse_private_key",
    # StarkEx payloads
    "Order", "Withdrawal", "WithdrawalToAddress", "Transfer", "ConditionalTransfer",
    "nonce_from_client_id", "expiration_epoch_hours", "fact_to_condition",
    # processing & keys
    "OrderProcessor", "SymbolsConfig", "PerpetualContract", "CurrencyConfig",
    "Account", "AccountDetail",
    "derive_stark_private_key", "derive_zklink_signer", "stark_private_key_from_bytes",
    # zkLink
    "Point", "Bn256RescueParams", "rescue_hash",
    "ContractBuilder", "WithdrawBuilder", "TransferBuilder",
    "ZkLinkSigner", "ZkLinkSignature", "verify_musig",
]
