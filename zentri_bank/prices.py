"""
Crypto Price Module

Simulated market data for the supported cryptocurrencies: base USD prices
with a small random variation on every read, network options and network
fees for outgoing sends. An optional HTTP client can pull live prices and
falls back to the simulation whenever the feed is unavailable.
"""

import httpx
import logging
import random
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Any

from .currency import Currency, quantize

logger = logging.getLogger("zentri.prices")


SUPPORTED_CRYPTOS = ("BTC", "ETH", "USDT", "USDC", "BNB", "XRP", "SOL", "ADA")

BASE_PRICES: Dict[str, Decimal] = {
    "BTC": Decimal("67500"),
    "ETH": Decimal("3450"),
    "USDT": Decimal("1"),
    "USDC": Decimal("1"),
    "BNB": Decimal("595"),
    "XRP": Decimal("0.52"),
    "SOL": Decimal("145"),
    "ADA": Decimal("0.45"),
}

ICONS = {
    "BTC": "₿",
    "ETH": "Ξ",
    "USDT": "₮",
    "USDC": "$",
    "BNB": "B",
    "XRP": "X",
    "SOL": "S",
    "ADA": "A",
}

NETWORK_OPTIONS: Dict[str, List[str]] = {
    "BTC": ["Bitcoin Network"],
    "ETH": ["ERC20", "Arbitrum", "Optimism"],
    "USDT": ["ERC20", "TRC20", "BEP20"],
    "USDC": ["ERC20", "TRC20", "BEP20", "Solana"],
    "BNB": ["BEP20", "BEP2"],
    "XRP": ["Ripple Network"],
    "SOL": ["Solana Network"],
    "ADA": ["Cardano Network"],
}

NETWORK_FEES: Dict[str, Decimal] = {
    "BTC": Decimal("0.0001"),
    "ETH": Decimal("0.002"),
    "USDT": Decimal("1"),
    "USDC": Decimal("1"),
    "BNB": Decimal("0.001"),
    "XRP": Decimal("0.1"),
    "SOL": Decimal("0.01"),
    "ADA": Decimal("0.5"),
}
DEFAULT_NETWORK_FEE = Decimal("0.001")


def is_supported(symbol: Optional[str]) -> bool:
    return bool(symbol) and symbol.upper() in SUPPORTED_CRYPTOS


def network_fee(symbol: str) -> Decimal:
    return NETWORK_FEES.get(symbol.upper(), DEFAULT_NETWORK_FEE)


def network_options(symbol: str) -> List[str]:
    return list(NETWORK_OPTIONS.get(symbol.upper(), []))


@dataclass
class CryptoPrice:
    """One price quote"""
    symbol: str
    name: str
    price: Decimal
    change_24h: Decimal
    icon: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "price": float(self.price),
            "change24h": float(self.change_24h),
            "icon": self.icon,
        }


class PriceFeed:
    """
    Price source backed by the base price table.

    Each read moves the price by up to half of ``variation`` in either
    direction (the default 0.02 gives +/-1%).
    """

    def __init__(
        self,
        variation: Decimal = Decimal("0.02"),
        rng: Optional[random.Random] = None,
        live_client: Optional['LivePriceClient'] = None
    ):
        self.variation = Decimal(str(variation))
        self.rng = rng or random.Random()
        self.live_client = live_client

    def _quote(self, symbol: str, live: Optional[Dict[str, Decimal]] = None) -> CryptoPrice:
        if live and symbol in live:
            price = live[symbol]
        else:
            factor = Decimal(1) + (Decimal(str(self.rng.random())) - Decimal("0.5")) * self.variation
            price = BASE_PRICES[symbol] * factor
        change = (Decimal(str(self.rng.random())) - Decimal("0.5")) * 10
        return CryptoPrice(
            symbol=symbol,
            name=Currency[symbol].display_name,
            price=price.quantize(Decimal("0.00000001"), rounding=ROUND_HALF_UP),
            change_24h=change.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
            icon=ICONS[symbol]
        )

    def _live_prices(self) -> Optional[Dict[str, Decimal]]:
        if self.live_client is None:
            return None
        return self.live_client.fetch_prices()

    def get_prices(self) -> Dict[str, CryptoPrice]:
        """Quotes for every supported symbol"""
        live = self._live_prices()
        return {symbol: self._quote(symbol, live) for symbol in SUPPORTED_CRYPTOS}

    def get_price(self, symbol: str) -> CryptoPrice:
        """
        Quote for one symbol

        Raises:
            ValueError: If the symbol is not supported
        """
        symbol = (symbol or "").upper()
        if symbol not in SUPPORTED_CRYPTOS:
            raise ValueError(f"Unsupported cryptocurrency: {symbol}")
        return self._quote(symbol, self._live_prices())

    def usd_to_crypto(self, usd_amount: Decimal, symbol: str) -> Decimal:
        price = self.get_price(symbol).price
        return quantize(Decimal(usd_amount) / price, Currency[symbol.upper()])

    def crypto_to_usd(self, crypto_amount: Decimal, symbol: str) -> Decimal:
        price = self.get_price(symbol).price
        return quantize(Decimal(crypto_amount) * price, Currency.USD)


class LivePriceClient:
    """HTTP client for an external price feed returning ``{"BTC": 67000.1, ...}``"""

    def __init__(self, url: str, timeout: float = 2.0, client: Optional[httpx.Client] = None):
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def fetch_prices(self) -> Optional[Dict[str, Decimal]]:
        """Return live prices, or None so callers fall back to the simulation"""
        try:
            response = self._client.get(self.url)
            if response.status_code != 200:
                logger.warning(f"Price feed returned {response.status_code}")
                return None
            data = response.json()
            prices = {}
            for symbol in SUPPORTED_CRYPTOS:
                if symbol in data:
                    value = Decimal(str(data[symbol]))
                    if value.is_finite() and value > 0:
                        prices[symbol] = value
            return prices or None
        except (httpx.HTTPError, ValueError, TypeError, ArithmeticError) as e:
            logger.error(f"Price feed request failed: {e}")
            return None

    def close(self):
        self._client.close()
