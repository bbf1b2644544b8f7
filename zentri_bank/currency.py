"""
Currency and Money Module

Fiat and crypto currency codes with their decimal precision, an immutable
Money type, and helpers for parsing user-supplied amounts. NEVER uses float
for monetary values.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from dataclasses import dataclass
from typing import Any
from enum import Enum
import re

# Set global decimal context for financial precision
getcontext().prec = 28

# Client amounts at or above this are rejected; keeps every value quantizable
# to 8 decimal places within the 28-digit context
MAX_AMOUNT = Decimal("1e15")


class Currency(Enum):
    """Currency codes with precision and display name"""
    USD = ("USD", 2, "US Dollar")
    BTC = ("BTC", 8, "Bitcoin")
    ETH = ("ETH", 8, "Ethereum")
    USDT = ("USDT", 8, "Tether")
    USDC = ("USDC", 8, "USD Coin")
    BNB = ("BNB", 8, "Binance Coin")
    XRP = ("XRP", 8, "Ripple")
    SOL = ("SOL", 8, "Solana")
    ADA = ("ADA", 8, "Cardano")

    def __init__(self, code: str, precision: int, display_name: str):
        self.code = code
        self.precision = precision
        self.display_name = display_name

    @property
    def is_crypto(self) -> bool:
        return self is not Currency.USD

    @classmethod
    def from_code(cls, code: str) -> 'Currency':
        """Look up a currency by code, case-insensitive"""
        try:
            return cls[code.strip().upper()]
        except (KeyError, AttributeError):
            raise ValueError(f"Unsupported currency: {code}")


@dataclass(frozen=True)
class Money:
    """
    Immutable money representation with currency and proper precision.
    All monetary values MUST use this class or raw Decimal.
    """
    amount: Decimal
    currency: Currency

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        object.__setattr__(self, 'amount', quantize(self.amount, self.currency))

    @classmethod
    def zero(cls, currency: Currency = Currency.USD) -> 'Money':
        return cls(Decimal('0'), currency)

    def _check_currency(self, other: 'Money', verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(f"Cannot {verb} {self.currency.code} and {other.currency.code}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = Decimal(str(multiplier))
        return Money(self.amount * multiplier, self.currency)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount), self.currency)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount and self.currency == other.currency

    def __hash__(self):
        return hash((self.amount, self.currency.code))

    def __lt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        if self.currency == Currency.USD:
            return f"${self.amount:,.2f}"
        return f"{self.amount:.{self.currency.precision}f} {self.currency.code}"


def quantize(value: Decimal, currency: Currency) -> Decimal:
    """Round a Decimal to the precision of the given currency"""
    return value.quantize(Decimal('0.1') ** currency.precision, rounding=ROUND_HALF_UP)


def usd(value: Any) -> Money:
    """Shorthand for a USD Money value"""
    return Money(Decimal(str(value)), Currency.USD)


def parse_amount(value: Any) -> Decimal:
    """
    Parse an amount supplied by a client.

    Numbers are taken as-is; strings have every character other than digits,
    '.' and '-' stripped first, so "$1,250.50" parses as 1250.50.

    Raises:
        ValueError: If the value is missing, not numeric or not below MAX_AMOUNT
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Amount is required")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = re.sub(r'[^0-9.\-]', '', value)
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to an amount")
    else:
        raise ValueError(f"Cannot convert {type(value).__name__} to an amount")

    if not result.is_finite():
        raise ValueError("Amount must be a finite number")
    if abs(result) >= MAX_AMOUNT:
        raise ValueError("Amount is too large")
    return result
