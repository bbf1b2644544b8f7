"""
Tests for the simulated and live price feeds
"""

import random
import pytest
import httpx
from decimal import Decimal

from zentri_bank.prices import (
    PriceFeed, LivePriceClient, BASE_PRICES, SUPPORTED_CRYPTOS,
    is_supported, network_fee, network_options
)


class TestPriceFeed:

    def setup_method(self):
        self.feed = PriceFeed(rng=random.Random(42))

    def test_all_symbols_quoted(self):
        prices = self.feed.get_prices()
        assert set(prices) == set(SUPPORTED_CRYPTOS)
        assert prices["BTC"].name == "Bitcoin"
        assert prices["BTC"].icon == "₿"

    def test_variation_within_one_percent(self):
        for _ in range(50):
            for symbol, quote in self.feed.get_prices().items():
                base = BASE_PRICES[symbol]
                assert base * Decimal("0.99") <= quote.price <= base * Decimal("1.01")
                assert Decimal("-5") <= quote.change_24h <= Decimal("5")

    def test_zero_variation_returns_base_price(self):
        feed = PriceFeed(variation=0)
        assert feed.get_price("eth").price == BASE_PRICES["ETH"]

    def test_unsupported_symbol(self):
        with pytest.raises(ValueError):
            self.feed.get_price("DOGE")

    def test_conversions(self):
        feed = PriceFeed(variation=0)
        assert feed.usd_to_crypto(Decimal("100"), "USDT") == Decimal("100.00000000")
        assert feed.crypto_to_usd(Decimal("2"), "SOL") == Decimal("290.00")

    def test_response_shape(self):
        response = self.feed.get_price("SOL").to_response()
        assert set(response) == {"symbol", "name", "price", "change24h", "icon"}
        assert isinstance(response["price"], float)


class TestNetworks:

    def test_supported(self):
        assert is_supported("btc")
        assert not is_supported("DOGE")
        assert not is_supported(None)

    def test_fees(self):
        assert network_fee("BTC") == Decimal("0.0001")
        assert network_fee("USDT") == Decimal("1")
        assert network_fee("UNKNOWN") == Decimal("0.001")

    def test_options(self):
        assert "TRC20" in network_options("usdt")
        assert network_options("DOGE") == []


class TestLivePriceClient:

    def make_client(self, handler):
        return LivePriceClient(
            "https://prices.example.com/latest",
            client=httpx.Client(transport=httpx.MockTransport(handler))
        )

    def test_live_prices_override_simulation(self):
        def handler(request):
            return httpx.Response(200, json={"BTC": 70000.5, "DOGE": 0.1})

        feed = PriceFeed(variation=0, live_client=self.make_client(handler))
        prices = feed.get_prices()

        assert prices["BTC"].price == Decimal("70000.50000000")
        assert prices["ETH"].price == BASE_PRICES["ETH"]

    def test_error_status_falls_back(self):
        client = self.make_client(lambda request: httpx.Response(503))
        assert client.fetch_prices() is None

        feed = PriceFeed(variation=0, live_client=client)
        assert feed.get_price("BTC").price == BASE_PRICES["BTC"]

    def test_network_error_falls_back(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assert self.make_client(handler).fetch_prices() is None

    def test_invalid_values_ignored(self):
        client = self.make_client(lambda request: httpx.Response(200, json={"BTC": -1, "ETH": "abc"}))
        assert client.fetch_prices() is None
