"""
Cash Ledger Module

Credit/debit transactions against a user's checking, savings and investment
balances: admin-created adjustments, admin approval and rejection of pending
transactions, and customer transfers (internal, external, wire).

Every balance change and the transaction record describing it are written in
one atomic storage commit. The balance check for a debit happens inside that
same commit, so two concurrent debits can never overdraw an account and a
pending transaction can never be applied twice.
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

from .currency import Money, Currency, parse_amount
from .storage import StorageInterface, StorageRecord, parse_datetime
from .audit import AuditTrail, AuditEventType
from .users import User, UserManager, AccountType
from .errors import ValidationError, InsufficientFundsError, InvalidStateError, NotFoundError
from .logging_config import get_logger, log_action


# Types accepted when an admin creates a transaction
CREDIT_TYPES = ("deposit", "transfer-in", "interest", "adjustment-credit")
ADMIN_DEBIT_TYPES = ("withdraw", "transfer-out", "fee", "adjustment-debit")

# Types recognised as debits when a stored transaction is applied
DEBIT_TYPES = ADMIN_DEBIT_TYPES + ("withdrawal", "payment", "charge", "purchase")

ADMIN_TYPES = CREDIT_TYPES + ADMIN_DEBIT_TYPES


def is_credit(transaction_type: str) -> bool:
    return transaction_type in CREDIT_TYPES


def is_debit(transaction_type: str) -> bool:
    return transaction_type in DEBIT_TYPES


class TransactionStatus(Enum):
    """Lifecycle of a cash transaction"""
    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @property
    def is_settled(self) -> bool:
        return self in (TransactionStatus.APPROVED, TransactionStatus.COMPLETED)


class TransactionChannel(Enum):
    ADMIN = "admin"
    ONLINE = "online"
    MOBILE = "mobile"
    SYSTEM = "system"


def generate_reference(prefix: str, random_length: int = 4, full_timestamp: bool = False) -> str:
    """
    Human-readable reference, distinct from the record id.

    Format: PREFIX-<epoch ms>-<random uppercase alphanumerics>. The timestamp
    is cut to its last 8 digits unless full_timestamp is set.
    """
    millis = str(int(time.time() * 1000))
    if not full_timestamp:
        millis = millis[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=random_length))
    return f"{prefix}-{millis}-{suffix}"


@dataclass
class Transaction(StorageRecord):
    """One cash ledger event"""
    user_id: str
    transaction_type: str
    amount: Money
    account_type: AccountType
    status: TransactionStatus
    reference: str
    description: str
    date: datetime
    currency: Currency = Currency.USD
    posted: bool = False
    posted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    channel: TransactionChannel = TransactionChannel.ADMIN
    origin: Optional[str] = None
    idempotency_key: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.amount.is_positive():
            raise ValueError("Transaction amount must be positive")

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def signed_amount(self) -> Money:
        """Amount as applied to the balance; unknown types count as credits"""
        return -self.amount if is_debit(self.transaction_type) else self.amount

    def to_response(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "userId": self.user_id,
            "reference": self.reference,
            "type": self.transaction_type,
            "amount": float(self.amount.amount),
            "currency": self.currency.code,
            "status": self.status.value,
            "accountType": self.account_type.value,
            "description": self.description,
            "date": self.date.isoformat(),
            "posted": self.posted,
            "postedAt": self.posted_at.isoformat() if self.posted_at else None,
            "rejectionReason": self.rejection_reason,
            "channel": self.channel.value,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        data = dict(data)
        for key in ('created_at', 'updated_at', 'date', 'posted_at', 'approved_at', 'rejected_at'):
            data[key] = parse_datetime(data.get(key))
        data['currency'] = Currency.from_code(data.get('currency', 'USD'))
        data['amount'] = Money(Decimal(data['amount']['amount']), data['currency'])
        data['account_type'] = AccountType(data['account_type'])
        data['status'] = TransactionStatus(data['status'])
        data['channel'] = TransactionChannel(data['channel'])
        return cls(**data)


@dataclass
class BalanceChange:
    """Snapshot of one balance before and after a ledger operation"""
    account_type: AccountType
    previous: Money
    current: Money
    updated: bool

    @property
    def change(self) -> Money:
        return self.current - self.previous

    def to_response(self) -> Dict[str, Any]:
        return {
            "field": self.account_type.client_field,
            "previous": float(self.previous.amount),
            "current": float(self.current.amount),
            "change": float(self.change.amount),
            "updated": self.updated,
        }


@dataclass
class LedgerResult:
    """Outcome of a ledger operation"""
    transaction: Transaction
    user: User
    balance: BalanceChange
    duplicate: bool = False
    related: List[Transaction] = field(default_factory=list)


class TransactionProcessor:
    """
    Applies credits and debits to user balances and manages the
    pending -> approved/rejected lifecycle.
    """

    def __init__(
        self,
        storage: StorageInterface,
        user_manager: UserManager,
        audit_trail: AuditTrail,
        wire_fees: Optional[Dict[str, Decimal]] = None
    ):
        self.storage = storage
        self.user_manager = user_manager
        self.audit_trail = audit_trail
        self.table_name = "transactions"
        self.logger = get_logger("zentri.transactions")
        self.wire_fees = wire_fees or {
            "domestic": Decimal("30.00"),
            "international": Decimal("45.00"),
            "urgent": Decimal("25.00"),
        }

    # ------------------------------------------------------------------
    # Balance mutation
    # ------------------------------------------------------------------

    def apply_delta(
        self,
        user: User,
        account_type: AccountType,
        delta: Money,
        actor_id: Optional[str] = None,
        transaction_id: Optional[str] = None
    ) -> BalanceChange:
        """
        Apply a signed amount to one of the user's balances and persist the user.

        Must be called inside ``storage.atomic()``.

        Raises:
            InsufficientFundsError: If a debit would take the balance below zero
        """
        previous = user.get_balance(account_type)
        current = previous + delta
        if current.is_negative():
            raise InsufficientFundsError(
                "Insufficient funds",
                details={
                    "available": float(previous.amount),
                    "required": float((-delta).amount),
                }
            )

        user.set_balance(account_type, current)
        user.touch()
        self.user_manager.save_user(user)

        self.audit_trail.log_event(
            event_type=AuditEventType.BALANCE_DEBITED if delta.is_negative() else AuditEventType.BALANCE_CREDITED,
            entity_type="user",
            entity_id=user.id,
            user_id=actor_id,
            metadata={
                "account_type": account_type.value,
                "previous": previous.amount,
                "current": current.amount,
                "transaction_id": transaction_id,
            }
        )
        return BalanceChange(account_type, previous, current, updated=True)

    def _require_funds(self, user: User, account_type: AccountType, required: Money) -> None:
        available = user.get_balance(account_type)
        if required > available:
            raise InsufficientFundsError(
                "Insufficient funds",
                details={"available": float(available.amount), "required": float(required.amount)}
            )

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def create_admin_transaction(
        self,
        user_id: str,
        transaction_type: str,
        amount: Any,
        account_type: Optional[str] = "checking",
        description: Optional[str] = None,
        status: str = "completed",
        date: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
        admin_id: Optional[str] = None
    ) -> LedgerResult:
        """
        Credit or debit a user's account on behalf of an administrator.

        With status ``completed`` or ``approved`` the balance is updated
        immediately and the record is stored as approved; any other status
        stores a pending record and leaves balances untouched.

        Raises:
            ValidationError: Missing user id, unknown type or non-positive amount
            NotFoundError: User does not exist
            InsufficientFundsError: Immediate debit larger than the balance
        """
        if not user_id:
            raise ValidationError("User ID is required")
        if not transaction_type or amount in (None, "", 0):
            raise ValidationError("Type and amount are required")
        if transaction_type not in ADMIN_TYPES:
            raise ValidationError(f"Invalid type. Must be: {', '.join(ADMIN_TYPES)}")

        try:
            value = abs(parse_amount(amount))
        except ValueError:
            raise ValidationError("Amount must be greater than 0")
        tx_amount = Money(value, Currency.USD)
        if not tx_amount.is_positive():
            raise ValidationError("Amount must be greater than 0")

        account = AccountType.resolve(account_type)
        apply_now = status in ("completed", "approved")

        with self.storage.atomic():
            if idempotency_key:
                existing = self._find_by_idempotency_key(idempotency_key)
                if existing:
                    user = self.user_manager.require_user(existing.user_id)
                    balance = user.get_balance(existing.account_type)
                    return LedgerResult(
                        transaction=existing,
                        user=user,
                        balance=BalanceChange(existing.account_type, balance, balance, updated=False),
                        duplicate=True
                    )

            user = self.user_manager.require_user(user_id)
            now = datetime.now(timezone.utc)

            transaction = Transaction(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                user_id=user.id,
                transaction_type=transaction_type,
                amount=tx_amount,
                account_type=account,
                status=TransactionStatus.APPROVED if apply_now else TransactionStatus.PENDING,
                reference=generate_reference("ADM", random_length=6, full_timestamp=True),
                description=description or f"Admin {transaction_type}",
                date=date or now,
                posted=apply_now,
                posted_at=now if apply_now else None,
                approved_at=now if apply_now else None,
                approved_by=admin_id if apply_now else None,
                channel=TransactionChannel.ADMIN,
                origin="admin_panel",
                idempotency_key=idempotency_key
            )

            if apply_now:
                balance = self.apply_delta(user, account, transaction.signed_amount, admin_id, transaction.id)
            else:
                current = user.get_balance(account)
                balance = BalanceChange(account, current, current, updated=False)

            self._save_transaction(transaction)
            self._log_created(transaction, admin_id)

        log_action(
            self.logger, "info", f"Admin transaction created: {transaction.reference}",
            user_id=admin_id, action="create_admin_transaction",
            resource=f"transaction:{transaction.id}",
            extra={
                "type": transaction_type,
                "amount": tx_amount.to_string(),
                "account_type": account.value,
                "status": transaction.status.value,
                "previous": str(balance.previous.amount),
                "current": str(balance.current.amount),
            }
        )
        return LedgerResult(transaction=transaction, user=user, balance=balance)

    def approve_transaction(self, transaction_id: str, approved_by: Optional[str] = None) -> LedgerResult:
        """
        Approve a pending transaction and apply it to the owner's balance.

        Raises:
            ValidationError: Missing id
            NotFoundError: Unknown transaction or owner
            InvalidStateError: Transaction is not pending
            InsufficientFundsError: Debit no longer covered by the balance
        """
        if not transaction_id:
            raise ValidationError("Transaction ID is required")

        with self.storage.atomic():
            transaction = self.require_transaction(transaction_id)
            if transaction.status.is_settled:
                raise InvalidStateError(
                    "Transaction is already approved",
                    details={"status": transaction.status.value}
                )
            if transaction.status == TransactionStatus.REJECTED:
                raise InvalidStateError(
                    "Transaction has already been rejected",
                    details={"status": transaction.status.value}
                )

            user = self.user_manager.get_user(transaction.user_id)
            if not user:
                raise NotFoundError("User not found for this transaction")

            balance = self.apply_delta(
                user, transaction.account_type, transaction.signed_amount, approved_by, transaction.id
            )

            now = datetime.now(timezone.utc)
            transaction.status = TransactionStatus.APPROVED
            transaction.posted = True
            transaction.posted_at = now
            transaction.approved_at = now
            transaction.approved_by = approved_by
            transaction.updated_at = now
            self._save_transaction(transaction)

            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_APPROVED,
                entity_type="transaction",
                entity_id=transaction.id,
                user_id=approved_by,
                metadata={"reference": transaction.reference, "amount": transaction.amount.amount}
            )

        log_action(
            self.logger, "info", f"Transaction approved: {transaction.reference}",
            user_id=approved_by, action="approve_transaction",
            resource=f"transaction:{transaction.id}",
            extra={"previous": str(balance.previous.amount), "current": str(balance.current.amount)}
        )
        return LedgerResult(transaction=transaction, user=user, balance=balance)

    def reject_transaction(
        self,
        transaction_id: str,
        reason: Optional[str] = None,
        rejected_by: Optional[str] = None
    ) -> Transaction:
        """Decline a pending transaction; balances are not touched"""
        with self.storage.atomic():
            transaction = self.require_transaction(transaction_id)
            if not transaction.is_pending:
                raise InvalidStateError(
                    "Only pending transactions can be declined",
                    details={"status": transaction.status.value}
                )

            now = datetime.now(timezone.utc)
            transaction.status = TransactionStatus.REJECTED
            transaction.rejected_at = now
            transaction.rejection_reason = reason or "Transaction declined by admin"
            transaction.updated_at = now
            self._save_transaction(transaction)

            self.audit_trail.log_event(
                event_type=AuditEventType.TRANSACTION_REJECTED,
                entity_type="transaction",
                entity_id=transaction.id,
                user_id=rejected_by,
                metadata={"reference": transaction.reference, "reason": transaction.rejection_reason}
            )

        self.logger.info(f"Transaction declined: {transaction.reference}")
        return transaction

    def update_transaction(
        self,
        transaction_id: str,
        description: Optional[str] = None,
        date: Optional[datetime] = None,
        amount: Any = None,
        updated_by: Optional[str] = None
    ) -> Transaction:
        """
        Edit descriptive fields of a transaction.

        The amount can only change while the transaction is pending, since a
        settled amount is already reflected in the balance.
        """
        with self.storage.atomic():
            transaction = self.require_transaction(transaction_id)
            changes: Dict[str, Any] = {}

            if amount is not None:
                try:
                    new_amount = Money(abs(parse_amount(amount)), Currency.USD)
                except ValueError:
                    raise ValidationError("Amount must be greater than 0")
                if not new_amount.is_positive():
                    raise ValidationError("Amount must be greater than 0")
                if new_amount != transaction.amount:
                    if not transaction.is_pending:
                        raise InvalidStateError(
                            "Amount can only be changed while the transaction is pending",
                            details={"status": transaction.status.value}
                        )
                    changes["amount"] = {"from": transaction.amount.amount, "to": new_amount.amount}
                    transaction.amount = new_amount

            if description is not None and description != transaction.description:
                changes["description"] = {"from": transaction.description, "to": description}
                transaction.description = description

            if date is not None and date != transaction.date:
                changes["date"] = {"from": transaction.date, "to": date}
                transaction.date = date
                transaction.metadata["edited_date_by_admin"] = True

            if changes:
                transaction.touch()
                self._save_transaction(transaction)
                self.audit_trail.log_event(
                    event_type=AuditEventType.TRANSACTION_UPDATED,
                    entity_type="transaction",
                    entity_id=transaction.id,
                    user_id=updated_by,
                    metadata=changes
                )

        return transaction

    # ------------------------------------------------------------------
    # Customer transfers
    # ------------------------------------------------------------------

    def internal_transfer(
        self,
        user_id: str,
        from_account: str,
        to_account: str,
        amount: Any,
        description: Optional[str] = None,
        channel: TransactionChannel = TransactionChannel.ONLINE
    ) -> LedgerResult:
        """Move funds between two of the user's own accounts immediately"""
        source = self._parse_account(from_account, "fromAccount")
        target = self._parse_account(to_account, "toAccount")
        if source == target:
            raise ValidationError("Source and destination accounts must differ")
        tx_amount = self._parse_transfer_amount(amount)
        description = description or "Internal Transfer"

        with self.storage.atomic():
            user = self.user_manager.require_user(user_id)
            reference = generate_reference("INT")
            now = datetime.now(timezone.utc)

            outgoing = self._new_settled(
                user, "transfer-out", tx_amount, source, reference, description, channel, now,
                metadata={"to_account": target.value}
            )
            incoming = self._new_settled(
                user, "transfer-in", tx_amount, target, reference, description, channel, now,
                metadata={"from_account": source.value}
            )

            debit = self.apply_delta(user, source, -tx_amount, user.id, outgoing.id)
            self.apply_delta(user, target, tx_amount, user.id, incoming.id)

            for transaction in (outgoing, incoming):
                self._save_transaction(transaction)
                self._log_created(transaction, user.id)

        self.logger.info(f"Internal transfer {reference}: {tx_amount.to_string()} {source.value} -> {target.value}")
        return LedgerResult(transaction=outgoing, user=user, balance=debit, related=[incoming])

    def external_transfer(
        self,
        user_id: str,
        from_account: str,
        amount: Any,
        recipient_name: str,
        recipient_account: str,
        recipient_bank: str,
        recipient_routing_number: Optional[str] = None,
        description: Optional[str] = None,
        transfer_speed: str = "standard",
        channel: TransactionChannel = TransactionChannel.ONLINE
    ) -> LedgerResult:
        """
        Request a transfer to another bank.

        Funds are checked now; the debit happens when an admin approves.
        """
        if not recipient_name or not recipient_account or not recipient_bank:
            raise ValidationError("Recipient name, account and bank are required")

        return self._create_pending_transfer(
            user_id=user_id,
            from_account=from_account,
            principal=self._parse_transfer_amount(amount),
            fee=Money.zero(),
            prefix="EXT",
            description=description or f"Transfer to {recipient_name}",
            channel=channel,
            metadata={
                "transfer_kind": "external",
                "recipient_name": recipient_name,
                "recipient_account": recipient_account,
                "recipient_bank": recipient_bank,
                "recipient_routing_number": recipient_routing_number,
                "transfer_speed": transfer_speed,
            }
        )

    def wire_fee(self, wire_type: str, urgent: bool) -> Money:
        """Domestic or international wire fee, plus the urgent surcharge"""
        fee = self.wire_fees["international"] if wire_type == "international" else self.wire_fees["domestic"]
        if urgent:
            fee += self.wire_fees["urgent"]
        return Money(fee, Currency.USD)

    def wire_transfer(
        self,
        user_id: str,
        from_account: str,
        amount: Any,
        recipient_name: str,
        recipient_account: str,
        recipient_bank: str,
        recipient_routing_number: Optional[str] = None,
        recipient_bank_address: Optional[str] = None,
        recipient_address: Optional[str] = None,
        wire_type: str = "domestic",
        purpose: Optional[str] = None,
        urgent: bool = False,
        description: Optional[str] = None,
        channel: TransactionChannel = TransactionChannel.ONLINE
    ) -> LedgerResult:
        """Request a wire transfer; the pending amount includes the wire fee"""
        if not recipient_name or not recipient_account or not recipient_bank:
            raise ValidationError("Recipient name, account and bank are required")
        if wire_type not in ("domestic", "international"):
            raise ValidationError("Wire type must be domestic or international")

        fee = self.wire_fee(wire_type, urgent)
        principal = self._parse_transfer_amount(amount)

        return self._create_pending_transfer(
            user_id=user_id,
            from_account=from_account,
            principal=principal,
            fee=fee,
            prefix="WIRE",
            description=description or f"Wire transfer to {recipient_name}",
            channel=channel,
            metadata={
                "transfer_kind": "wire",
                "wire_type": wire_type,
                "recipient_name": recipient_name,
                "recipient_account": recipient_account,
                "recipient_bank": recipient_bank,
                "recipient_routing_number": recipient_routing_number,
                "recipient_bank_address": recipient_bank_address,
                "recipient_address": recipient_address,
                "purpose": purpose,
                "urgent": urgent,
                "principal": principal.amount,
                "fee": fee.amount,
            }
        )

    def _create_pending_transfer(
        self,
        user_id: str,
        from_account: str,
        principal: Money,
        fee: Money,
        prefix: str,
        description: str,
        channel: TransactionChannel,
        metadata: Dict[str, Any]
    ) -> LedgerResult:
        source = self._parse_account(from_account, "fromAccount")
        total = principal + fee

        with self.storage.atomic():
            user = self.user_manager.require_user(user_id)
            self._require_funds(user, source, total)

            now = datetime.now(timezone.utc)
            transaction = Transaction(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                user_id=user.id,
                transaction_type="transfer-out",
                amount=total,
                account_type=source,
                status=TransactionStatus.PENDING,
                reference=generate_reference(prefix),
                description=description,
                date=now,
                channel=channel,
                origin=f"{metadata['transfer_kind']}_transfer",
                metadata=metadata
            )
            self._save_transaction(transaction)
            self._log_created(transaction, user.id)

        current = user.get_balance(source)
        self.logger.info(f"Pending transfer {transaction.reference}: {total.to_string()} from {source.value}")
        return LedgerResult(
            transaction=transaction,
            user=user,
            balance=BalanceChange(source, current, current, updated=False)
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return Transaction.from_dict(data)
        return None

    def require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction

    def get_user_transactions(self, user_id: str, limit: Optional[int] = None) -> List[Transaction]:
        """User's transactions, newest first"""
        transactions = [
            Transaction.from_dict(d)
            for d in self.storage.find(self.table_name, {"user_id": user_id})
        ]
        transactions.sort(key=lambda t: (t.date, t.created_at), reverse=True)
        return transactions[:max(limit, 1)] if limit else transactions

    def get_balances(self, user_id: str) -> Dict[str, Money]:
        """Current checking, savings and investment balances"""
        return self.user_manager.require_user(user_id).balances()

    def list_transactions(self, status: Optional[TransactionStatus] = None) -> List[Transaction]:
        """All transactions, newest first, optionally filtered by status"""
        filters = {"status": status.value} if status else {}
        transactions = [Transaction.from_dict(d) for d in self.storage.find(self.table_name, filters)]
        transactions.sort(key=lambda t: t.created_at, reverse=True)
        return transactions

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _save_transaction(self, transaction: Transaction) -> None:
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())

    def _find_by_idempotency_key(self, key: str) -> Optional[Transaction]:
        matches = self.storage.find(self.table_name, {"idempotency_key": key})
        if matches:
            return Transaction.from_dict(matches[0])
        return None

    def _log_created(self, transaction: Transaction, actor_id: Optional[str]) -> None:
        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction.id,
            user_id=actor_id,
            metadata={
                "type": transaction.transaction_type,
                "amount": transaction.amount.amount,
                "account_type": transaction.account_type.value,
                "status": transaction.status.value,
                "reference": transaction.reference,
            }
        )

    def _new_settled(
        self,
        user: User,
        transaction_type: str,
        amount: Money,
        account_type: AccountType,
        reference: str,
        description: str,
        channel: TransactionChannel,
        now: datetime,
        metadata: Dict[str, Any]
    ) -> Transaction:
        return Transaction(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            user_id=user.id,
            transaction_type=transaction_type,
            amount=amount,
            account_type=account_type,
            status=TransactionStatus.COMPLETED,
            reference=f"{reference}-{'OUT' if transaction_type == 'transfer-out' else 'IN'}",
            description=description,
            date=now,
            posted=True,
            posted_at=now,
            channel=channel,
            origin="internal_transfer",
            metadata=metadata
        )

    @staticmethod
    def _parse_account(value: Optional[str], field_name: str) -> AccountType:
        try:
            return AccountType(value)
        except ValueError:
            raise ValidationError(f"Invalid {field_name}: {value}")

    @staticmethod
    def _parse_transfer_amount(amount: Any) -> Money:
        try:
            value = parse_amount(amount)
        except ValueError:
            raise ValidationError("Please enter a valid amount")
        tx_amount = Money(value, Currency.USD)
        if not tx_amount.is_positive():
            raise ValidationError("Please enter a valid amount")
        return tx_amount
