"""
Crypto Wallet Module

Simulated custodial crypto wallets: USD-to-crypto conversion funded from a
cash account, outgoing sends that lock funds until an admin approves or
rejects them, and transaction history.

Wallet balance invariant: 0 <= locked_balance <= balance for every symbol.
"""

import random
import string
import time
import uuid
from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
from enum import Enum

from .currency import Money, Currency, parse_amount, quantize
from .storage import StorageInterface, StorageRecord, parse_datetime
from .audit import AuditTrail, AuditEventType
from .users import User, UserManager, AccountType
from .transactions import TransactionProcessor
from .prices import PriceFeed, SUPPORTED_CRYPTOS, is_supported, network_fee, network_options
from .errors import ValidationError, InsufficientFundsError, InvalidStateError, NotFoundError
from .logging_config import get_logger, log_action


CRYPTO_QUANTUM = Decimal("0.00000001")


def crypto_quantize(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CRYPTO_QUANTUM)


def crypto_reference(prefix: str) -> str:
    """PREFIX-<last 8 digits of epoch ms>-<4 uppercase base36 chars>"""
    millis = str(int(time.time() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"{prefix}-{millis}-{suffix}"


def mask_address(address: str, head: int = 12, tail: int = 8) -> str:
    if len(address) <= head + tail:
        return address
    return f"{address[:head]}...{address[-tail:]}"


class CryptoTransactionType(Enum):
    CONVERSION = "conversion"
    SEND = "send"
    RECEIVE = "receive"


class CryptoTransactionStatus(Enum):
    PROCESSING = "processing"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CryptoBalance:
    """Holding of one symbol; ``locked_balance`` is reserved for pending sends"""
    symbol: str
    currency: str
    balance: Decimal = Decimal("0")
    locked_balance: Decimal = Decimal("0")

    def __post_init__(self):
        self.balance = crypto_quantize(self.balance)
        self.locked_balance = crypto_quantize(self.locked_balance)
        self._check()

    @property
    def available(self) -> Decimal:
        return self.balance - self.locked_balance

    def _check(self):
        if self.locked_balance < 0 or self.locked_balance > self.balance:
            raise InvalidStateError(
                f"Locked {self.symbol} balance out of range",
                details={"balance": float(self.balance), "lockedBalance": float(self.locked_balance)}
            )

    def credit(self, amount: Decimal) -> None:
        self.balance = crypto_quantize(self.balance + amount)

    def lock(self, amount: Decimal) -> None:
        if amount > self.available:
            raise InsufficientFundsError(
                "Insufficient crypto balance",
                details={"available": float(self.available), "required": float(amount)}
            )
        self.locked_balance = crypto_quantize(self.locked_balance + amount)

    def release(self, amount: Decimal) -> None:
        """Return locked funds to the available balance"""
        self.locked_balance = crypto_quantize(self.locked_balance - amount)
        self._check()

    def settle(self, amount: Decimal) -> None:
        """Remove locked funds from the wallet entirely"""
        self.balance = crypto_quantize(self.balance - amount)
        self.locked_balance = crypto_quantize(self.locked_balance - amount)
        self._check()


@dataclass
class CryptoWallet(StorageRecord):
    """One wallet per user"""
    user_id: str
    balances: List[CryptoBalance] = field(default_factory=list)

    def get_balance(self, symbol: str) -> Optional[CryptoBalance]:
        for entry in self.balances:
            if entry.symbol == symbol:
                return entry
        return None

    def ensure_balance(self, symbol: str) -> CryptoBalance:
        entry = self.get_balance(symbol)
        if entry is None:
            entry = CryptoBalance(symbol=symbol, currency=Currency[symbol].display_name)
            self.balances.append(entry)
        return entry

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CryptoWallet':
        data = dict(data)
        data['created_at'] = parse_datetime(data['created_at'])
        data['updated_at'] = parse_datetime(data['updated_at'])
        data['balances'] = [
            CryptoBalance(
                symbol=b['symbol'],
                currency=b.get('currency', b['symbol']),
                balance=Decimal(b.get('balance', '0')),
                locked_balance=Decimal(b.get('locked_balance', '0'))
            )
            for b in data.get('balances', [])
        ]
        return cls(**data)


@dataclass
class CryptoTransaction(StorageRecord):
    """Conversion, send or receive event"""
    user_id: str
    transaction_type: CryptoTransactionType
    reference: str
    description: str
    status: CryptoTransactionStatus = CryptoTransactionStatus.PROCESSING
    from_currency: Optional[str] = None
    to_currency: Optional[str] = None
    from_amount: Optional[Decimal] = None
    to_amount: Optional[Decimal] = None
    exchange_rate: Optional[Decimal] = None
    crypto_currency: Optional[str] = None
    crypto_amount: Optional[Decimal] = None
    wallet_address: Optional[str] = None
    network: Optional[str] = None
    tx_hash: Optional[str] = None
    fee: Decimal = Decimal("0")
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_with_fee(self) -> Decimal:
        """Amount locked by a pending send"""
        recorded = self.metadata.get("totalWithFee")
        if recorded is not None:
            return crypto_quantize(Decimal(str(recorded)))
        return crypto_quantize((self.crypto_amount or Decimal("0")) + self.fee)

    def to_response(self) -> Dict[str, Any]:
        def num(value):
            return float(value) if value is not None else None

        return {
            "id": self.id,
            "type": self.transaction_type.value,
            "status": self.status.value,
            "reference": self.reference,
            "description": self.description,
            "fromCurrency": self.from_currency,
            "toCurrency": self.to_currency,
            "fromAmount": num(self.from_amount),
            "toAmount": num(self.to_amount),
            "exchangeRate": num(self.exchange_rate),
            "cryptoCurrency": self.crypto_currency,
            "cryptoAmount": num(self.crypto_amount),
            "walletAddress": self.wallet_address,
            "network": self.network,
            "txHash": self.tx_hash,
            "fee": float(self.fee),
            "rejectionReason": self.rejection_reason,
            "date": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CryptoTransaction':
        data = dict(data)
        for key in ('created_at', 'updated_at', 'approved_at'):
            data[key] = parse_datetime(data.get(key))
        for key in ('from_amount', 'to_amount', 'exchange_rate', 'crypto_amount', 'fee'):
            if data.get(key) is not None:
                data[key] = Decimal(data[key])
        data['transaction_type'] = CryptoTransactionType(data['transaction_type'])
        data['status'] = CryptoTransactionStatus(data['status'])
        return cls(**data)


@dataclass
class ConversionResult:
    transaction: CryptoTransaction
    user: User
    usd_amount: Money
    fee: Money
    total_debited: Money
    crypto_amount: Decimal
    price: Decimal


@dataclass
class SendResult:
    transaction: CryptoTransaction
    user: User
    usd_value: Decimal
    total_required: Decimal


class WalletManager:
    """Loads, creates and saves crypto wallets"""

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.table_name = "crypto_wallets"
        self.logger = get_logger("zentri.crypto")

    def find_wallet(self, user_id: str) -> Optional[CryptoWallet]:
        matches = self.storage.find(self.table_name, {"user_id": user_id})
        if matches:
            return CryptoWallet.from_dict(matches[0])
        return None

    def get_or_create(self, user_id: str) -> CryptoWallet:
        """Existing wallet, or a new one holding every supported symbol at zero"""
        with self.storage.atomic():
            wallet = self.find_wallet(user_id)
            if wallet:
                return wallet

            now = datetime.now(timezone.utc)
            wallet = CryptoWallet(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                user_id=user_id,
                balances=[
                    CryptoBalance(symbol=s, currency=Currency[s].display_name)
                    for s in SUPPORTED_CRYPTOS
                ]
            )
            self.save_wallet(wallet)
            self.audit_trail.log_event(
                event_type=AuditEventType.WALLET_CREATED,
                entity_type="wallet",
                entity_id=wallet.id,
                user_id=user_id
            )

        self.logger.info(f"Crypto wallet created for user {user_id}")
        return wallet

    def save_wallet(self, wallet: CryptoWallet) -> None:
        wallet.touch()
        self.storage.save(self.table_name, wallet.id, wallet.to_dict())


class CryptoService:
    """
    Conversions, sends and the admin approval queue for crypto transfers.
    """

    def __init__(
        self,
        storage: StorageInterface,
        user_manager: UserManager,
        transaction_processor: TransactionProcessor,
        audit_trail: AuditTrail,
        price_feed: Optional[PriceFeed] = None,
        conversion_fee_rate: Decimal = Decimal("0.01"),
        min_conversion: Decimal = Decimal("10.00")
    ):
        self.storage = storage
        self.user_manager = user_manager
        self.transaction_processor = transaction_processor
        self.audit_trail = audit_trail
        self.price_feed = price_feed or PriceFeed()
        self.wallets = WalletManager(storage, audit_trail)
        self.conversion_fee_rate = Decimal(str(conversion_fee_rate))
        self.min_conversion = Decimal(str(min_conversion))
        self.table_name = "crypto_transactions"
        self.logger = get_logger("zentri.crypto")

    # ------------------------------------------------------------------
    # Wallet view
    # ------------------------------------------------------------------

    def get_wallet_view(self, user_id: str) -> Dict[str, Any]:
        """Wallet balances valued at current prices"""
        wallet = self.wallets.get_or_create(user_id)
        prices = self.price_feed.get_prices()

        balances = []
        total = Decimal("0")
        for entry in wallet.balances:
            quote = prices.get(entry.symbol)
            price = quote.price if quote else Decimal("0")
            usd_value = quantize(entry.balance * price, Currency.USD)
            total += usd_value
            balances.append({
                "currency": entry.currency,
                "symbol": entry.symbol,
                "balance": float(entry.balance),
                "lockedBalance": float(entry.locked_balance),
                "availableBalance": float(entry.available),
                "usdValue": float(usd_value),
                "lockedUsdValue": float(quantize(entry.locked_balance * price, Currency.USD)),
                "price": float(price),
                "change24h": float(quote.change_24h) if quote else 0.0,
            })

        return {"id": wallet.id, "balances": balances, "totalUsdValue": float(total)}

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def convert_usd_to_crypto(
        self,
        user_id: str,
        to_crypto: Optional[str],
        usd_amount: Any,
        from_account: Optional[str] = "checking"
    ) -> ConversionResult:
        """
        Buy crypto with cash from one of the user's accounts.

        The cash debit includes the conversion fee; the wallet is credited
        with usd_amount / price. Debit, credit and the completed conversion
        record are committed together.

        The fee is rounded half-up to whole cents before it is added, so
        $10.55 at 1% debits $10.66 rather than $10.6555.
        """
        if not is_supported(to_crypto):
            raise ValidationError("Unsupported cryptocurrency")
        symbol = to_crypto.upper()

        try:
            amount = parse_amount(usd_amount)
        except ValueError:
            raise ValidationError("Invalid amount")
        if amount <= 0:
            raise ValidationError("Invalid amount")
        if amount < self.min_conversion:
            raise ValidationError(f"Minimum conversion is ${self.min_conversion.normalize():f}")

        usd = Money(amount, Currency.USD)
        fee = usd * self.conversion_fee_rate
        total_debit = usd + fee
        account = AccountType.resolve(from_account)

        with self.storage.atomic():
            user = self.user_manager.require_user(user_id)
            available = user.get_balance(account)
            if total_debit > available:
                raise InsufficientFundsError(
                    "Insufficient funds",
                    details={"available": float(available.amount), "required": float(total_debit.amount)}
                )

            price = self.price_feed.get_price(symbol).price
            crypto_amount = crypto_quantize(amount / price)
            wallet = self.wallets.get_or_create(user.id)

            now = datetime.now(timezone.utc)
            transaction = CryptoTransaction(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                user_id=user.id,
                transaction_type=CryptoTransactionType.CONVERSION,
                status=CryptoTransactionStatus.COMPLETED,
                reference=crypto_reference("CONV"),
                description=f"Converted ${amount:.2f} to {crypto_amount:.8f} {symbol}",
                from_currency="USD",
                to_currency=symbol,
                from_amount=usd.amount,
                to_amount=crypto_amount,
                exchange_rate=price,
                fee=fee.amount,
                metadata={"fromAccount": account.value, "cryptoPrice": price}
            )

            self.transaction_processor.apply_delta(user, account, -total_debit, user.id, transaction.id)
            wallet.ensure_balance(symbol).credit(crypto_amount)
            self.wallets.save_wallet(wallet)
            self._save_transaction(transaction)

            self.audit_trail.log_event(
                event_type=AuditEventType.CRYPTO_CONVERTED,
                entity_type="crypto_transaction",
                entity_id=transaction.id,
                user_id=user.id,
                metadata={
                    "reference": transaction.reference,
                    "usd_amount": usd.amount,
                    "fee": fee.amount,
                    "symbol": symbol,
                    "crypto_amount": crypto_amount,
                    "price": price,
                }
            )

        log_action(
            self.logger, "info", f"Crypto conversion completed: {transaction.reference}",
            user_id=user.id, action="convert", resource=f"crypto_transaction:{transaction.id}",
            extra={"usd": str(usd.amount), "symbol": symbol, "crypto_amount": str(crypto_amount)}
        )
        return ConversionResult(
            transaction=transaction,
            user=user,
            usd_amount=usd,
            fee=fee,
            total_debited=total_debit,
            crypto_amount=crypto_amount,
            price=price
        )

    # ------------------------------------------------------------------
    # Sends
    # ------------------------------------------------------------------

    def send_crypto(
        self,
        user_id: str,
        crypto_currency: Optional[str],
        amount: Any,
        wallet_address: Optional[str],
        network: Optional[str],
        memo: Optional[str] = None
    ) -> SendResult:
        """
        Request an outgoing transfer. Amount plus network fee is locked in
        the wallet and a pending_approval record is created.
        """
        if not crypto_currency:
            raise ValidationError("Cryptocurrency is required")
        symbol = crypto_currency.upper()
        networks = network_options(symbol)
        if not networks:
            raise ValidationError("Unsupported cryptocurrency")
        if not wallet_address or not wallet_address.strip():
            raise ValidationError("Wallet address is required")
        if not network or network not in networks:
            raise ValidationError("Invalid network selected")

        try:
            send_amount = crypto_quantize(parse_amount(amount))
        except ValueError:
            raise ValidationError("Invalid amount")
        if send_amount <= 0:
            raise ValidationError("Invalid amount")

        address = wallet_address.strip()
        fee = network_fee(symbol)
        total_required = crypto_quantize(send_amount + fee)

        with self.storage.atomic():
            user = self.user_manager.require_user(user_id)
            wallet = self.wallets.find_wallet(user.id)
            if not wallet:
                raise NotFoundError("Crypto wallet not found")
            entry = wallet.get_balance(symbol)
            if entry is None:
                raise ValidationError(f"No {symbol} balance found")

            if total_required > entry.available:
                raise InsufficientFundsError(
                    "Insufficient crypto balance",
                    details={
                        "available": float(entry.available),
                        "required": float(total_required),
                        "networkFee": float(fee),
                    }
                )

            price = self.price_feed.get_price(symbol).price
            usd_value = quantize(send_amount * price, Currency.USD)

            now = datetime.now(timezone.utc)
            transaction = CryptoTransaction(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                user_id=user.id,
                transaction_type=CryptoTransactionType.SEND,
                status=CryptoTransactionStatus.PENDING_APPROVAL,
                reference=crypto_reference("CSND"),
                description=f"Send {send_amount.normalize():f} {symbol} to {address[:8]}...{address[-6:]}",
                crypto_currency=symbol,
                crypto_amount=send_amount,
                wallet_address=address,
                network=network,
                fee=fee,
                metadata={
                    "usdValue": usd_value,
                    "cryptoPrice": price,
                    "totalWithFee": total_required,
                    "memo": memo or None,
                }
            )

            entry.lock(total_required)
            self.wallets.save_wallet(wallet)
            self._save_transaction(transaction)

            self.audit_trail.log_event(
                event_type=AuditEventType.CRYPTO_SEND_REQUESTED,
                entity_type="crypto_transaction",
                entity_id=transaction.id,
                user_id=user.id,
                metadata={
                    "reference": transaction.reference,
                    "symbol": symbol,
                    "amount": send_amount,
                    "locked": total_required,
                    "network": network,
                }
            )

        log_action(
            self.logger, "info", f"Crypto send pending approval: {transaction.reference}",
            user_id=user.id, action="send", resource=f"crypto_transaction:{transaction.id}",
            extra={"symbol": symbol, "amount": str(send_amount), "network": network}
        )
        return SendResult(transaction=transaction, user=user, usd_value=usd_value, total_required=total_required)

    def approve_crypto_transaction(
        self,
        transaction_id: str,
        admin_id: Optional[str] = None,
        tx_hash: Optional[str] = None
    ) -> CryptoTransaction:
        """Settle a pending send: the locked total leaves the wallet"""
        with self.storage.atomic():
            transaction, wallet, entry = self._load_pending_send(transaction_id)
            total = transaction.total_with_fee

            entry.settle(total)
            self.wallets.save_wallet(wallet)

            now = datetime.now(timezone.utc)
            transaction.status = CryptoTransactionStatus.COMPLETED
            transaction.approved_by = admin_id
            transaction.approved_at = now
            if tx_hash:
                transaction.tx_hash = tx_hash
            transaction.touch()
            self._save_transaction(transaction)

            self.audit_trail.log_event(
                event_type=AuditEventType.CRYPTO_SEND_APPROVED,
                entity_type="crypto_transaction",
                entity_id=transaction.id,
                user_id=admin_id,
                metadata={"reference": transaction.reference, "settled": total, "tx_hash": tx_hash}
            )

        self.logger.info(f"Crypto send approved: {transaction.reference}")
        return transaction

    def reject_crypto_transaction(
        self,
        transaction_id: str,
        admin_id: Optional[str] = None,
        reason: Optional[str] = None
    ) -> CryptoTransaction:
        """Decline a pending send and release its locked funds"""
        with self.storage.atomic():
            transaction, wallet, entry = self._load_pending_send(transaction_id)
            total = transaction.total_with_fee

            entry.release(total)
            self.wallets.save_wallet(wallet)

            transaction.status = CryptoTransactionStatus.REJECTED
            transaction.approved_by = admin_id
            transaction.rejection_reason = reason or "Transaction rejected by admin"
            transaction.touch()
            self._save_transaction(transaction)

            self.audit_trail.log_event(
                event_type=AuditEventType.CRYPTO_SEND_REJECTED,
                entity_type="crypto_transaction",
                entity_id=transaction.id,
                user_id=admin_id,
                metadata={"reference": transaction.reference, "released": total, "reason": transaction.rejection_reason}
            )

        self.logger.info(f"Crypto send rejected: {transaction.reference}")
        return transaction

    def _load_pending_send(self, transaction_id: str):
        if not transaction_id:
            raise ValidationError("Transaction ID is required")
        transaction = self.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        if transaction.status != CryptoTransactionStatus.PENDING_APPROVAL:
            raise InvalidStateError(
                "Transaction already processed",
                details={"status": transaction.status.value}
            )

        wallet = self.wallets.find_wallet(transaction.user_id)
        entry = wallet.get_balance(transaction.crypto_currency) if wallet else None
        if entry is None:
            raise NotFoundError("Crypto wallet not found")
        return transaction, wallet, entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Optional[CryptoTransaction]:
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return CryptoTransaction.from_dict(data)
        return None

    def list_pending_approvals(self) -> List[Dict[str, Any]]:
        """Pending sends, newest first, with the requesting user"""
        records = [
            CryptoTransaction.from_dict(d)
            for d in self.storage.find(
                self.table_name, {"status": CryptoTransactionStatus.PENDING_APPROVAL.value}
            )
        ]
        records.sort(key=lambda t: t.created_at, reverse=True)

        pending = []
        for transaction in records:
            user = self.user_manager.get_user(transaction.user_id)
            item = transaction.to_response()
            item["user"] = {"name": user.name, "email": user.email} if user else None
            item["usdValue"] = float(Decimal(str(transaction.metadata.get("usdValue", 0))))
            item["totalWithFee"] = float(transaction.total_with_fee)
            pending.append(item)
        return pending

    def get_history(
        self,
        user_id: str,
        transaction_type: Optional[str] = None,
        limit: int = 50
    ) -> List[CryptoTransaction]:
        """User's crypto transactions, newest first; an unknown type filter is ignored"""
        filters: Dict[str, Any] = {"user_id": user_id}
        if transaction_type in {t.value for t in CryptoTransactionType}:
            filters["transaction_type"] = transaction_type

        records = [CryptoTransaction.from_dict(d) for d in self.storage.find(self.table_name, filters)]
        records.sort(key=lambda t: t.created_at, reverse=True)
        return records[:max(limit, 1)]

    def get_send_history(self, user_id: str) -> List[CryptoTransaction]:
        return self.get_history(user_id, CryptoTransactionType.SEND.value, limit=20)

    def _save_transaction(self, transaction: CryptoTransaction) -> None:
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
