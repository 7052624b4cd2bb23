import unittest
from decimal import Decimal

from l2signer.errors import (
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
from l2signer.hash import fact_to_condition
from l2signer.orders import (
    AccountDetail,
    OrderProcessor,
    SymbolsConfig,
    fee_quantums,
    to_quantums_exact,
    to_quantums_round_down,
    to_quantums_round_up,
)
from l2signer.signables import ConditionalTransfer, Transfer
from l2signer.signing import default_signer

from tests.vectors import (
    ASSET_ID_COLLATERAL,
    ASSET_ID_SYNTHETIC,
    ETH_ADDRESS,
    EXPIRATION_HOURS,
    EXPIRATION_UNIX,
    MOCK_PRIVATE_KEY,
    MOCK_PUBLIC_KEY,
    ORDER_BUY_HASH,
    ORDER_BUY_SIGNATURE,
    ORDER_SELL_HASH,
    ORDER_SELL_SIGNATURE,
    TRANSFER_HASH,
    WITHDRAWAL_HASH,
    WITHDRAWAL_TO_ADDRESS_HASH,
    WITHDRAWAL_TO_ADDRESS_SIGNATURE,
)

SYMBOLS = {
    "perpetualContract": [
        {
            "symbol": "BTC-USDC",
            "enableTrade": True,
            "settleCurrencyId": "USDC",
            "starkExSyntheticAssetId": hex(ASSET_ID_SYNTHETIC),
            "starkExResolution": "10000000000",
        },
        {
            "symbol": "ETH-USDC",
            "enableTrade": False,
            "settleCurrencyId": "USDC",
            "starkExSyntheticAssetId": "0x4554482d3900000000000000000000",
            "starkExResolution": "1000000000",
        },
        {
            "symbol": "DOGE-USDT",
            "enableTrade": True,
            "settleCurrencyId": "USDT",
            "starkExSyntheticAssetId": "0x1",
            "starkExResolution": "1000000",
        },
        {
            "symbol": "BAD-USDC",
            "enableTrade": True,
            "settleCurrencyId": "USDC",
            "starkExSyntheticAssetId": "not-hex",
            "starkExResolution": "1000000",
        },
    ],
    "currency": [
        {
            "id": "USDC",
            "starkExAssetId": "0x02893294412a4c8f915f75892b395ebbf6859ec246ec365c3b1f56f47c3a0a5d",
            "starkExResolution": "1000000",
        },
    ],
}

ACCOUNT = {
    "id": "1",
    "positionId": "12345",
    "accounts": [{"token": "USDC", "takerFeeRate": "0.0005"}],
}


def make_processor(account=None, secret=MOCK_PRIVATE_KEY, **overrides):
    detail = dict(ACCOUNT)
    detail.update(overrides)
    return OrderProcessor(
        SymbolsConfig.model_validate(SYMBOLS),
        AccountDetail.model_validate(account or detail),
        l2_secret=secret,
    )


class TestQuantumConversion(unittest.TestCase):
    def test_exact(self):
        self.assertEqual(to_quantums_exact("0.01", Decimal("10000000000")), 100_000_000)
        with self.assertRaises(ValueError):
            to_quantums_exact("0.000000000001", Decimal("10000000000"))

    def test_rounding(self):
        self.assertEqual(to_quantums_round_up("1.0000001", Decimal("1000000")), 1_000_001)
        self.assertEqual(to_quantums_round_down("1.0000009", Decimal("1000000")), 1_000_000)

    def test_fee(self):
        self.assertEqual(fee_quantums("0.005", 200_000_000), 1_000_000)
        # limit fee truncated to six decimals, product rounded up
        self.assertEqual(fee_quantums("0.0012345", 200_000_000), 246_800)
        self.assertEqual(fee_quantums("0.0005", 200_005_556), 100_003)


class TestConfigModels(unittest.TestCase):
    def test_aliases(self):
        symbols = SymbolsConfig.model_validate(SYMBOLS)
        btc = symbols.perpetual_contract[0]
        self.assertTrue(btc.enable_trade)
        self.assertEqual(btc.starkex_resolution, Decimal("10000000000"))
        self.assertEqual(symbols.currency[0].id, "USDC")
        detail = AccountDetail.model_validate(ACCOUNT)
        self.assertEqual(detail.accounts[0].taker_fee_rate, Decimal("0.0005"))


class TestOrders(unittest.TestCase):
    def setUp(self):
        self.proc = make_processor()

    def build(self, side="BUY", **overrides):
        kwargs = dict(
            symbol="BTC-USDC",
            side=side,
            size="0.01",
            price="20000",
            client_id="client-1",
            expiration=EXPIRATION_UNIX,
            limit_fee="0.005",
        )
        kwargs.update(overrides)
        return kwargs

    def test_buy_order(self):
        order = self.proc.build_order(**self.build())
        self.assertEqual(order.asset_id_synthetic, ASSET_ID_SYNTHETIC)
        self.assertEqual(order.asset_id_collateral, ASSET_ID_COLLATERAL)
        self.assertEqual(order.expiration_epoch_hours, EXPIRATION_HOURS)
        self.assertEqual(order.hash(), ORDER_BUY_HASH)
        self.assertEqual(self.proc.process_order(**self.build()), ORDER_BUY_SIGNATURE)

    def test_sell_order(self):
        order = self.proc.build_order(**self.build("SELL"))
        self.assertEqual(order.hash(), ORDER_SELL_HASH)
        self.assertEqual(self.proc.process_order(**self.build("sell")), ORDER_SELL_SIGNATURE)

    def test_collateral_rounds_in_exchange_favour(self):
        buy = self.proc.build_order(**self.build(price="20000.55555555", limit_fee=None))
        sell = self.proc.build_order(**self.build("SELL", price="20000.55555555", limit_fee=None))
        self.assertEqual(buy.quantums_amount_collateral, 200_005_556)
        self.assertEqual(sell.quantums_amount_collateral, 200_005_555)
        # default limit fee is the account's taker rate
        self.assertEqual(buy.quantums_amount_fee, 100_003)

    def test_size_must_be_whole_quantums(self):
        with self.assertRaises(ValueError):
            self.proc.build_order(**self.build(size="0.000000000001"))

    def test_expiration_required(self):
        with self.assertRaises(ExpirationRequired):
            self.proc.build_order(**self.build(expiration=None))

    def test_unknown_symbol(self):
        with self.assertRaises(ContractNotFound):
            self.proc.build_order(**self.build(symbol="SOL-USDC"))

    def test_disabled_pair(self):
        with self.assertRaises(PairNotEnabled):
            self.proc.build_order(**self.build(symbol="ETH-USDC"))

    def test_bad_asset_id(self):
        with self.assertRaises(InvalidAssetID):
            self.proc.build_order(**self.build(symbol="BAD-USDC"))

    def test_missing_settlement_currency(self):
        with self.assertRaises(SettlementCurrencyNotFound):
            self.proc.build_order(**self.build(symbol="DOGE-USDT"))

    def test_limit_fee_required(self):
        proc = make_processor(accounts=[])
        with self.assertRaises(LimitFeeRequired):
            proc.build_order(**self.build(limit_fee=None))
        # an explicit limit fee needs no account
        self.assertEqual(proc.build_order(**self.build()).hash(), ORDER_BUY_HASH)

    def test_invalid_position_id(self):
        proc = make_processor(positionId="abc")
        with self.assertRaises(InvalidPositionID):
            proc.build_order(**self.build())

    def test_missing_secret(self):
        for secret in (None, ""):
            proc = make_processor(secret=secret)
            with self.assertRaises(InvalidPrivateKey):
                proc.process_order(**self.build())
            # building alone needs no key
            proc.build_order(**self.build())


class TestWithdrawals(unittest.TestCase):
    def setUp(self):
        self.proc = make_processor(positionId="67890")

    def test_withdrawal_to_address(self):
        args = ("USDC", "1", ETH_ADDRESS, "withdrawal-1", EXPIRATION_UNIX)
        self.assertEqual(self.proc.build_withdrawal_to_address(*args).hash(), WITHDRAWAL_TO_ADDRESS_HASH)
        self.assertEqual(self.proc.process_withdrawal_to_address(*args), WITHDRAWAL_TO_ADDRESS_SIGNATURE)

    def test_withdrawal(self):
        args = ("USDC", "1", "withdrawal-1", EXPIRATION_UNIX)
        self.assertEqual(self.proc.build_withdrawal(*args).hash(), WITHDRAWAL_HASH)
        sig = self.proc.process_withdrawal(*args)
        self.assertTrue(default_signer().verify_signature(WITHDRAWAL_HASH, sig, MOCK_PUBLIC_KEY))

    def test_invalid_eth_address(self):
        for address in ("", "0xnothex"):
            with self.assertRaises(InvalidEthereumAddress):
                self.proc.build_withdrawal_to_address("USDC", "1", address, "w", EXPIRATION_UNIX)

    def test_unknown_currency(self):
        with self.assertRaises(SettlementCurrencyNotFound):
            self.proc.build_withdrawal("USDT", "1", "withdrawal-1", EXPIRATION_UNIX)

    def test_expiration_required(self):
        with self.assertRaises(ExpirationRequired):
            self.proc.build_withdrawal("USDC", "1", "withdrawal-1", None)


class TestTransfers(unittest.TestCase):
    def setUp(self):
        self.proc = make_processor()

    def test_transfer(self):
        t = self.proc.build_transfer(
            "USDC", "1", hex(MOCK_PUBLIC_KEY), "67890", "transfer-1", EXPIRATION_UNIX,
            max_amount_fee=1000,
        )
        self.assertIsInstance(t, Transfer)
        self.assertEqual(t.hash(), TRANSFER_HASH)
        sig = self.proc.process_transfer(
            "USDC", "1", MOCK_PUBLIC_KEY, 67890, "transfer-1", EXPIRATION_UNIX, max_amount_fee=1000,
        )
        self.assertTrue(default_signer().verify_signature(TRANSFER_HASH, sig, MOCK_PUBLIC_KEY))

    def test_conditional_transfer(self):
        registry, fact = "0x" + "12" * 20, b"\x34" * 32
        t = self.proc.build_conditional_transfer(
            "USDC", "1", MOCK_PUBLIC_KEY, "67890", registry, fact, "transfer-1", EXPIRATION_UNIX,
        )
        self.assertIsInstance(t, ConditionalTransfer)
        self.assertEqual(t.condition, fact_to_condition(registry, fact))
        self.assertEqual(t.prefix, 5)
        sig = self.proc.process_conditional_transfer(
            "USDC", "1", MOCK_PUBLIC_KEY, "67890", registry, fact, "transfer-1", EXPIRATION_UNIX,
        )
        self.assertTrue(default_signer().verify_signature(t.hash(), sig, MOCK_PUBLIC_KEY))

    def test_invalid_receiver_position(self):
        with self.assertRaises(InvalidPositionID):
            self.proc.build_transfer("USDC", "1", MOCK_PUBLIC_KEY, "x1", "transfer-1", EXPIRATION_UNIX)


if __name__ == "__main__":
    unittest.main()
