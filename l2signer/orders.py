"""
ApexPro request processing: from human-readable order / withdrawal /
transfer parameters to signed StarkEx pre-images.

An ``OrderProcessor`` holds the exchange's symbol configuration, the
user's account detail and the L2 secret.  Each ``build_*`` method
resolves asset ids, resolutions and position ids, converts amounts to
quantums and returns the signable pre-image; the matching ``process_*``
method signs it and returns the 128-character hex signature.

Usage
-----
::

    from l2signer.orders import AccountDetail, OrderProcessor, SymbolsConfig

    proc = OrderProcessor(
        SymbolsConfig.model_validate(symbols_json),
        AccountDetail.model_validate(account_json),
        l2_secret="0x…",
    )
    sig = proc.process_order(
        "BTC-USDC", "BUY", size="0.01", price="20000",
        client_id="client-1", expiration=1_700_000_000,
    )

Quantum rounding follows the exchange: synthetic amounts must convert
exactly, collateral is rounded in the exchange's favour (up when
buying, down when selling) and the fee is always rounded up.
"""

from __future__ import annotations

import decimal
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import (
    ContractNotFound,
    ExpirationRequired,
    InvalidAssetID,
    InvalidEthereumAddress,
    InvalidPositionID,
    InvalidPrivateKey,
    LimitFeeRequired,
    PairNotEnabled,
    SettlementCurrencyNotFound,
)
from .hash import expiration_epoch_hours, fact_to_condition, nonce_from_client_id
from .signables import ConditionalTransfer, Order, Transfer, Withdrawal, WithdrawalToAddress
from .signing import StarkSigner, default_signer

logger = logging.getLogger(__name__)

ORDER_SIDE_BUY = "BUY"
ORDER_SIDE_SELL = "SELL"

DECIMAL_CTX_ROUND_DOWN = decimal.Context(rounding=decimal.ROUND_DOWN)
DECIMAL_CTX_ROUND_UP = decimal.Context(rounding=decimal.ROUND_UP)
DECIMAL_CTX_EXACT = decimal.Context(
    rounding=decimal.ROUND_DOWN,
    traps=[decimal.Inexact, decimal.DivisionByZero, decimal.InvalidOperation, decimal.Overflow],
)

LIMIT_FEE_PRECISION = Decimal("0.000001")

Amount = Union[str, int, Decimal]
Expiration = Union[int, float, datetime]


# ── exchange configuration ──────────────────────────────────────────────
class PerpetualContract(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str
    enable_trade: bool = Field(alias="enableTrade")
    settle_currency_id: str = Field(alias="settleCurrencyId")
    starkex_synthetic_asset_id: str = Field(alias="starkExSyntheticAssetId")
    starkex_resolution: Decimal = Field(alias="starkExResolution")


class CurrencyConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    starkex_asset_id: str = Field(alias="starkExAssetId")
    starkex_resolution: Decimal = Field(alias="starkExResolution")


class SymbolsConfig(BaseModel):
    """Symbol configuration as served by the exchange."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    perpetual_contract: List[PerpetualContract] = Field(default_factory=list, alias="perpetualContract")
    currency: List[CurrencyConfig] = Field(default_factory=list)


class Account(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    token: str
    taker_fee_rate: Decimal = Field(alias="takerFeeRate")


class AccountDetail(BaseModel):
    """The user's account: L2 position and per-token fee rates."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    position_id: str = Field(alias="positionId")
    accounts: List[Account] = Field(default_factory=list)


# ── conversions ─────────────────────────────────────────────────────────
def _parse_hex(value: str, error: type, what: str) -> int:
    text = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        return int(text, 16)
    except ValueError:
        raise error(f"invalid {what}: {value!r}") from None


def _to_quantums(amount: Amount, resolution: Decimal, ctx: decimal.Context) -> int:
    try:
        amount_dec = ctx.create_decimal(amount)
        quantums = (amount_dec * ctx.create_decimal(resolution)).to_integral_exact(context=ctx)
    except decimal.Inexact:
        raise ValueError(
            f"amount {amount} is not a multiple of the quantum size {1 / resolution}"
        ) from None
    return int(quantums)


def to_quantums_exact(amount: Amount, resolution: Decimal) -> int:
    return _to_quantums(amount, resolution, DECIMAL_CTX_EXACT)


def to_quantums_round_down(amount: Amount, resolution: Decimal) -> int:
    return _to_quantums(amount, resolution, DECIMAL_CTX_ROUND_DOWN)


def to_quantums_round_up(amount: Amount, resolution: Decimal) -> int:
    return _to_quantums(amount, resolution, DECIMAL_CTX_ROUND_UP)


def fee_quantums(limit_fee: Amount, quantums_amount_collateral: int) -> int:
    """Limit fee (a fraction, six decimals, rounded down) times collateral, rounded up."""
    limit_fee_rounded = DECIMAL_CTX_ROUND_DOWN.quantize(Decimal(limit_fee), LIMIT_FEE_PRECISION)
    fee = DECIMAL_CTX_ROUND_UP.multiply(limit_fee_rounded, Decimal(quantums_amount_collateral))
    return int(fee.to_integral_value(context=DECIMAL_CTX_ROUND_UP))


# ── processor ───────────────────────────────────────────────────────────
class OrderProcessor:
    """
    Build and sign ApexPro StarkEx requests.

    Parameters
    ----------
    symbols : SymbolsConfig
        Exchange symbol / currency configuration.
    account : AccountDetail
        The user's account detail.
    l2_secret : str or int, optional
        STARK private key; required by the ``process_*`` methods only.
    signer : StarkSigner, optional
        Defaults to the shared signer over the StarkEx table.
    """

    def __init__(
        self,
        symbols: SymbolsConfig,
        account: AccountDetail,
        l2_secret: Optional[Union[str, int]] = None,
        signer: Optional[StarkSigner] = None,
    ) -> None:
        self.symbols = symbols
        self.account = account
        self._l2_secret = l2_secret
        self._signer = signer or default_signer()

    # lookups ----------------------------------------------------------------
    def contract(self, symbol: str) -> PerpetualContract:
        for c in self.symbols.perpetual_contract:
            if c.symbol == symbol:
                if not c.enable_trade:
                    raise PairNotEnabled(f"trading is disabled for {symbol}")
                return c
        raise ContractNotFound(f"contract not found: {symbol}")

    def currency(self, currency_id: str) -> CurrencyConfig:
        for c in self.symbols.currency:
            if c.id == currency_id:
                return c
        raise SettlementCurrencyNotFound(f"settlement currency not found: {currency_id}")

    def position_id(self) -> int:
        try:
            return int(self.account.position_id, 0)
        except ValueError:
            raise InvalidPositionID(f"invalid position id: {self.account.position_id!r}") from None

    def taker_fee_rate(self, token: str) -> Decimal:
        for a in self.account.accounts:
            if a.token == token:
                return a.taker_fee_rate
        raise LimitFeeRequired(f"no account with settlement currency {token}")

    def _secret(self) -> Union[str, int]:
        if self._l2_secret is None or self._l2_secret == "":
            raise InvalidPrivateKey("L2 secret is not configured")
        return self._l2_secret

    @staticmethod
    def _expiration_hours(expiration: Optional[Expiration]) -> int:
        if expiration is None:
            raise ExpirationRequired("expiration time is required")
        return expiration_epoch_hours(expiration)

    def _sign(self, signable) -> str:
        return signable.sign(self._secret(), self._signer)

    # orders -----------------------------------------------------------------
    def build_order(
        self,
        symbol: str,
        side: str,
        size: Amount,
        price: Amount,
        client_id: str,
        expiration: Optional[Expiration],
        limit_fee: Optional[Amount] = None,
    ) -> Order:
        expiration_hours = self._expiration_hours(expiration)
        contract = self.contract(symbol)
        synthetic_asset_id = _parse_hex(contract.starkex_synthetic_asset_id, InvalidAssetID, "synthetic asset id")
        if limit_fee is None:
            limit_fee = self.taker_fee_rate(contract.settle_currency_id)
        collateral = self.currency(contract.settle_currency_id)
        collateral_asset_id = _parse_hex(collateral.starkex_asset_id, InvalidAssetID, "collateral asset id")
        position_id = self.position_id()

        is_buying_synthetic = side.upper() == ORDER_SIDE_BUY
        quantums_amount_synthetic = to_quantums_exact(size, contract.starkex_resolution)

        # the product is taken at full precision; rounding happens on conversion
        if is_buying_synthetic:
            cost = DECIMAL_CTX_ROUND_UP.multiply(Decimal(size), Decimal(price))
            quantums_amount_collateral = to_quantums_round_up(cost, collateral.starkex_resolution)
        else:
            cost = DECIMAL_CTX_ROUND_DOWN.multiply(Decimal(size), Decimal(price))
            quantums_amount_collateral = to_quantums_round_down(cost, collateral.starkex_resolution)

        logger.debug(
            "order %s %s: synthetic=%d collateral=%d",
            symbol, side.upper(), quantums_amount_synthetic, quantums_amount_collateral,
        )
        return Order(
            asset_id_synthetic=synthetic_asset_id,
            asset_id_collateral=collateral_asset_id,
            asset_id_fee=collateral_asset_id,
            quantums_amount_synthetic=quantums_amount_synthetic,
            quantums_amount_collateral=quantums_amount_collateral,
            quantums_amount_fee=fee_quantums(limit_fee, quantums_amount_collateral),
            is_buying_synthetic=is_buying_synthetic,
            position_id=position_id,
            nonce=nonce_from_client_id(client_id),
            expiration_epoch_hours=expiration_hours,
        )

    def process_order(self, *args, **kwargs) -> str:
        """Sign :meth:`build_order`'s pre-image."""
        self._secret()
        return self._sign(self.build_order(*args, **kwargs))

    # withdrawals ------------------------------------------------------------
    def _collateral(self, currency_id: str):
        currency = self.currency(currency_id)
        asset_id = _parse_hex(currency.starkex_asset_id, InvalidAssetID, "asset id")
        return currency, asset_id

    def build_withdrawal(
        self,
        currency_id: str,
        amount: Amount,
        client_id: str,
        expiration: Optional[Expiration],
    ) -> Withdrawal:
        currency, asset_id = self._collateral(currency_id)
        return Withdrawal(
            asset_id_collateral=asset_id,
            position_id=self.position_id(),
            nonce=nonce_from_client_id(client_id),
            quantums_amount=to_quantums_exact(amount, currency.starkex_resolution),
            expiration_epoch_hours=self._expiration_hours(expiration),
        )

    def process_withdrawal(self, *args, **kwargs) -> str:
        self._secret()
        return self._sign(self.build_withdrawal(*args, **kwargs))

    def build_withdrawal_to_address(
        self,
        currency_id: str,
        amount: Amount,
        eth_address: str,
        client_id: str,
        expiration: Optional[Expiration],
    ) -> WithdrawalToAddress:
        currency, asset_id = self._collateral(currency_id)
        if not eth_address:
            raise InvalidEthereumAddress("ethereum address is required")
        address = _parse_hex(eth_address, InvalidEthereumAddress, "ethereum address")
        return WithdrawalToAddress(
            asset_id_collateral=asset_id,
            position_id=self.position_id(),
            nonce=nonce_from_client_id(client_id),
            quantums_amount=to_quantums_exact(amount, currency.starkex_resolution),
            expiration_epoch_hours=self._expiration_hours(expiration),
            eth_address=address,
        )

    def process_withdrawal_to_address(self, *args, **kwargs) -> str:
        self._secret()
        return self._sign(self.build_withdrawal_to_address(*args, **kwargs))

    # transfers --------------------------------------------------------------
    def build_transfer(
        self,
        currency_id: str,
        amount: Amount,
        receiver_public_key: Union[str, int],
        receiver_position_id: Union[str, int],
        client_id: str,
        expiration: Optional[Expiration],
        max_amount_fee: int = 0,
    ) -> Transfer:
        currency, asset_id = self._collateral(currency_id)
        return Transfer(
            asset_id=asset_id,
            asset_id_fee=0,
            receiver_public_key=_receiver_key(receiver_public_key),
            sender_position_id=self.position_id(),
            receiver_position_id=_receiver_position(receiver_position_id),
            quantums_amount=to_quantums_exact(amount, currency.starkex_resolution),
            max_amount_fee=max_amount_fee,
            nonce=nonce_from_client_id(client_id),
            expiration_epoch_hours=self._expiration_hours(expiration),
        )

    def process_transfer(self, *args, **kwargs) -> str:
        self._secret()
        return self._sign(self.build_transfer(*args, **kwargs))

    def build_conditional_transfer(
        self,
        currency_id: str,
        amount: Amount,
        receiver_public_key: Union[str, int],
        receiver_position_id: Union[str, int],
        fact_registry_address: str,
        fact: bytes,
        client_id: str,
        expiration: Optional[Expiration],
    ) -> ConditionalTransfer:
        currency, asset_id = self._collateral(currency_id)
        return ConditionalTransfer(
            asset_id=asset_id,
            receiver_public_key=_receiver_key(receiver_public_key),
            sender_position_id=self.position_id(),
            receiver_position_id=_receiver_position(receiver_position_id),
            quantums_amount=to_quantums_exact(amount, currency.starkex_resolution),
            nonce=nonce_from_client_id(client_id),
            expiration_epoch_hours=self._expiration_hours(expiration),
            condition=fact_to_condition(fact_registry_address, fact),
        )

    def process_conditional_transfer(self, *args, **kwargs) -> str:
        self._secret()
        return self._sign(self.build_conditional_transfer(*args, **kwargs))


def _receiver_key(key: Union[str, int]) -> int:
    if isinstance(key, int):
        return key
    return _parse_hex(key, ValueError, "receiver public key")


def _receiver_position(position: Union[str, int]) -> int:
    if isinstance(position, int):
        return position
    try:
        return int(position, 0)
    except ValueError:
        raise InvalidPositionID(f"invalid receiver position id: {position!r}") from None
