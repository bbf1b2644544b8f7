"""
Test suite for the cash ledger

Tests admin-created credits and debits, the pending approval lifecycle,
idempotency, customer transfers and the atomicity of balance updates.
"""

import pytest
import threading
from decimal import Decimal
from datetime import datetime, timezone
from unittest.mock import patch

from zentri_bank.storage import InMemoryStorage
from zentri_bank.audit import AuditTrail, AuditEventType
from zentri_bank.users import UserManager, AccountType
from zentri_bank.transactions import (
    TransactionProcessor, TransactionStatus, TransactionChannel,
    is_credit, is_debit, generate_reference
)
from zentri_bank.errors import (
    ValidationError, InsufficientFundsError, InvalidStateError, NotFoundError
)


class TestClassification:

    def test_credit_types(self):
        for t in ("deposit", "transfer-in", "interest", "adjustment-credit"):
            assert is_credit(t)
            assert not is_debit(t)

    def test_debit_types(self):
        for t in ("withdraw", "withdrawal", "transfer-out", "fee", "adjustment-debit",
                  "payment", "charge", "purchase"):
            assert is_debit(t)
            assert not is_credit(t)

    def test_reference_format(self):
        reference = generate_reference("ADM", random_length=6)
        prefix, millis, suffix = reference.split("-")
        assert prefix == "ADM"
        assert len(millis) == 8
        assert len(suffix) == 6 and suffix.upper() == suffix


class LedgerTestCase:
    """Shared fixtures"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.audit_trail = AuditTrail(self.storage)
        self.user_manager = UserManager(self.storage, self.audit_trail)
        self.processor = TransactionProcessor(self.storage, self.user_manager, self.audit_trail)
        self.user = self.user_manager.create_user(
            name="John Doe",
            email="john@example.com",
            checking_balance=Decimal("1000.00"),
            savings_balance=Decimal("250.00")
        )

    def balance(self, account_type: AccountType = AccountType.CHECKING) -> Decimal:
        return self.user_manager.get_user(self.user.id).get_balance(account_type).amount


class TestAdminTransactions(LedgerTestCase):
    """Test admin-created transactions"""

    def test_completed_credit_updates_balance(self):
        result = self.processor.create_admin_transaction(self.user.id, "deposit", 500)

        assert result.transaction.status == TransactionStatus.APPROVED
        assert result.transaction.posted
        assert result.transaction.reference.startswith("ADM-")
        assert result.transaction.channel == TransactionChannel.ADMIN
        assert self.balance() == Decimal("1500.00")

        snapshot = result.balance.to_response()
        assert snapshot == {
            "field": "checkingBalance",
            "previous": 1000.0,
            "current": 1500.0,
            "change": 500.0,
            "updated": True,
        }

    def test_completed_debit_updates_balance(self):
        result = self.processor.create_admin_transaction(
            self.user.id, "fee", "25.50", account_type="savings"
        )
        assert result.balance.change.amount == Decimal("-25.50")
        assert self.balance(AccountType.SAVINGS) == Decimal("224.50")

    def test_debit_larger_than_balance_rejected(self):
        with pytest.raises(InsufficientFundsError) as exc_info:
            self.processor.create_admin_transaction(self.user.id, "withdraw", 1500)

        assert exc_info.value.details == {"available": 1000.0, "required": 1500.0}
        assert self.balance() == Decimal("1000.00")
        assert self.processor.get_user_transactions(self.user.id) == []

    def test_pending_transaction_leaves_balance(self):
        result = self.processor.create_admin_transaction(
            self.user.id, "deposit", 500, status="pending"
        )
        assert result.transaction.status == TransactionStatus.PENDING
        assert not result.transaction.posted
        assert not result.balance.updated
        assert self.balance() == Decimal("1000.00")

    def test_negative_amount_uses_absolute_value(self):
        result = self.processor.create_admin_transaction(self.user.id, "deposit", -40)
        assert result.transaction.amount.amount == Decimal("40.00")

    def test_unknown_account_type_maps_to_checking(self):
        result = self.processor.create_admin_transaction(
            self.user.id, "deposit", 10, account_type="brokerage"
        )
        assert result.transaction.account_type == AccountType.CHECKING

    def test_validation(self):
        with pytest.raises(ValidationError, match="User ID is required"):
            self.processor.create_admin_transaction("", "deposit", 10)
        with pytest.raises(ValidationError, match="Type and amount are required"):
            self.processor.create_admin_transaction(self.user.id, "deposit", None)
        with pytest.raises(ValidationError, match="Invalid type"):
            self.processor.create_admin_transaction(self.user.id, "payment", 10)
        with pytest.raises(ValidationError):
            self.processor.create_admin_transaction(self.user.id, "deposit", "abc")

    def test_admin_reference_uses_full_millisecond_timestamp(self):
        admin = self.processor.create_admin_transaction(self.user.id, "deposit", 5)
        transfer = self.processor.internal_transfer(self.user.id, "checking", "savings", "5")

        prefix, millis, suffix = admin.transaction.reference.split("-")
        assert prefix == "ADM"
        assert len(millis) == 13 and millis.isdigit()
        assert len(transfer.transaction.reference.split("-")[1]) == 8

    def test_unknown_user(self):
        with pytest.raises(NotFoundError):
            self.processor.create_admin_transaction("missing", "deposit", 10)

    def test_idempotency_key_applies_once(self):
        first = self.processor.create_admin_transaction(
            self.user.id, "deposit", 100, idempotency_key="key-1"
        )
        second = self.processor.create_admin_transaction(
            self.user.id, "deposit", 100, idempotency_key="key-1"
        )

        assert second.duplicate
        assert second.transaction.id == first.transaction.id
        assert not second.balance.updated
        assert self.balance() == Decimal("1100.00")

    def test_custom_date_and_description(self):
        date = datetime(2024, 5, 1, tzinfo=timezone.utc)
        result = self.processor.create_admin_transaction(
            self.user.id, "interest", 5, description="May interest", date=date
        )
        stored = self.processor.get_transaction(result.transaction.id)
        assert stored.date == date
        assert stored.description == "May interest"

    def test_audit_events(self):
        self.processor.create_admin_transaction(self.user.id, "deposit", 100)
        assert len(self.audit_trail.get_events(event_type=AuditEventType.TRANSACTION_CREATED)) == 1
        assert len(self.audit_trail.get_events(event_type=AuditEventType.BALANCE_CREDITED)) == 1
        assert self.audit_trail.verify_integrity()["valid"]


class TestApproval(LedgerTestCase):
    """Test the pending approval lifecycle"""

    def create_pending(self, tx_type="deposit", amount=500, account_type="checking"):
        return self.processor.create_admin_transaction(
            self.user.id, tx_type, amount, account_type=account_type, status="pending"
        ).transaction

    def test_approve_pending_deposit(self):
        pending = self.create_pending()
        result = self.processor.approve_transaction(pending.id, approved_by="admin-1")

        assert result.transaction.status == TransactionStatus.APPROVED
        assert result.transaction.posted
        assert result.transaction.posted_at is not None
        assert result.transaction.approved_at is not None
        assert result.transaction.approved_by == "admin-1"
        assert self.balance() == Decimal("1500.00")

        stored = self.processor.get_transaction(pending.id)
        assert stored.status == TransactionStatus.APPROVED

    def test_approve_twice_rejected(self):
        pending = self.create_pending()
        self.processor.approve_transaction(pending.id)

        with pytest.raises(InvalidStateError, match="already approved"):
            self.processor.approve_transaction(pending.id)
        assert self.balance() == Decimal("1500.00")

    def test_approve_unknown(self):
        with pytest.raises(NotFoundError):
            self.processor.approve_transaction("missing")
        with pytest.raises(ValidationError):
            self.processor.approve_transaction("")

    def test_approve_debit_checks_funds(self):
        pending = self.create_pending("withdraw", 800)
        self.processor.create_admin_transaction(self.user.id, "withdraw", 500)

        with pytest.raises(InsufficientFundsError):
            self.processor.approve_transaction(pending.id)

        assert self.balance() == Decimal("500.00")
        assert self.processor.get_transaction(pending.id).status == TransactionStatus.PENDING

    def test_unknown_stored_type_applies_as_credit(self):
        pending = self.create_pending()
        data = self.storage.load("transactions", pending.id)
        data["transaction_type"] = "cashback"
        self.storage.save("transactions", pending.id, data)

        self.processor.approve_transaction(pending.id)
        assert self.balance() == Decimal("1500.00")

    def test_failed_write_rolls_back_balance(self):
        pending = self.create_pending()

        with patch.object(self.processor, "_save_transaction", side_effect=RuntimeError("disk full")):
            with pytest.raises(RuntimeError):
                self.processor.approve_transaction(pending.id)

        assert self.balance() == Decimal("1000.00")
        assert self.processor.get_transaction(pending.id).status == TransactionStatus.PENDING

    def test_concurrent_approvals_apply_once(self):
        pending = self.create_pending()
        errors = []

        def approve():
            try:
                self.processor.approve_transaction(pending.id)
            except InvalidStateError as e:
                errors.append(e)

        threads = [threading.Thread(target=approve) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 4
        assert self.balance() == Decimal("1500.00")

    def test_reject(self):
        pending = self.create_pending()
        rejected = self.processor.reject_transaction(pending.id, reason="Suspicious")

        assert rejected.status == TransactionStatus.REJECTED
        assert rejected.rejection_reason == "Suspicious"
        assert self.balance() == Decimal("1000.00")

        with pytest.raises(InvalidStateError):
            self.processor.approve_transaction(pending.id)
        with pytest.raises(InvalidStateError):
            self.processor.reject_transaction(pending.id)


class TestUpdateTransaction(LedgerTestCase):

    def test_update_pending_amount(self):
        pending = self.processor.create_admin_transaction(
            self.user.id, "deposit", 100, status="pending"
        ).transaction
        updated = self.processor.update_transaction(pending.id, amount="150", description="Corrected")

        assert updated.amount.amount == Decimal("150.00")
        assert updated.description == "Corrected"
        self.processor.approve_transaction(pending.id)
        assert self.balance() == Decimal("1150.00")

    def test_settled_amount_is_locked(self):
        settled = self.processor.create_admin_transaction(self.user.id, "deposit", 100).transaction

        with pytest.raises(InvalidStateError):
            self.processor.update_transaction(settled.id, amount=200)

        updated = self.processor.update_transaction(settled.id, description="Renamed")
        assert updated.description == "Renamed"

    def test_update_date_marks_metadata(self):
        settled = self.processor.create_admin_transaction(self.user.id, "deposit", 100).transaction
        date = datetime(2023, 12, 31, tzinfo=timezone.utc)
        updated = self.processor.update_transaction(settled.id, date=date)
        assert updated.date == date
        assert updated.metadata["edited_date_by_admin"]


class TestTransfers(LedgerTestCase):
    """Test customer transfers"""

    def test_internal_transfer(self):
        result = self.processor.internal_transfer(self.user.id, "checking", "savings", "200")

        assert self.balance() == Decimal("800.00")
        assert self.balance(AccountType.SAVINGS) == Decimal("450.00")
        assert result.transaction.transaction_type == "transfer-out"
        assert result.transaction.status == TransactionStatus.COMPLETED
        assert result.related[0].transaction_type == "transfer-in"

        records = self.processor.get_user_transactions(self.user.id)
        assert len(records) == 2

    def test_internal_transfer_insufficient(self):
        with pytest.raises(InsufficientFundsError):
            self.processor.internal_transfer(self.user.id, "savings", "checking", 300)

        assert self.balance() == Decimal("1000.00")
        assert self.balance(AccountType.SAVINGS) == Decimal("250.00")
        assert self.processor.get_user_transactions(self.user.id) == []

    def test_internal_transfer_validation(self):
        with pytest.raises(ValidationError):
            self.processor.internal_transfer(self.user.id, "checking", "checking", 10)
        with pytest.raises(ValidationError):
            self.processor.internal_transfer(self.user.id, "checking", "crypto", 10)
        with pytest.raises(ValidationError):
            self.processor.internal_transfer(self.user.id, "checking", "savings", 0)

    def test_external_transfer_pending_until_approved(self):
        result = self.processor.external_transfer(
            self.user.id, "checking", 300,
            recipient_name="Acme", recipient_account="123", recipient_bank="First Bank"
        )

        assert result.transaction.status == TransactionStatus.PENDING
        assert result.transaction.metadata["recipient_name"] == "Acme"
        assert self.balance() == Decimal("1000.00")

        self.processor.approve_transaction(result.transaction.id)
        assert self.balance() == Decimal("700.00")

    def test_external_transfer_checks_funds(self):
        with pytest.raises(InsufficientFundsError):
            self.processor.external_transfer(
                self.user.id, "checking", 5000,
                recipient_name="Acme", recipient_account="123", recipient_bank="First Bank"
            )

    def test_external_transfer_requires_recipient(self):
        with pytest.raises(ValidationError):
            self.processor.external_transfer(
                self.user.id, "checking", 10,
                recipient_name="", recipient_account="123", recipient_bank="First Bank"
            )

    @pytest.mark.parametrize("wire_type,urgent,fee", [
        ("domestic", False, Decimal("30.00")),
        ("international", False, Decimal("45.00")),
        ("domestic", True, Decimal("55.00")),
        ("international", True, Decimal("70.00")),
    ])
    def test_wire_fee(self, wire_type, urgent, fee):
        assert self.processor.wire_fee(wire_type, urgent).amount == fee

    def test_wire_transfer_includes_fee(self):
        result = self.processor.wire_transfer(
            self.user.id, "checking", 100,
            recipient_name="Acme", recipient_account="123", recipient_bank="First Bank",
            wire_type="international", urgent=True
        )

        assert result.transaction.amount.amount == Decimal("170.00")
        assert result.transaction.metadata["fee"] == Decimal("70.00")
        assert result.transaction.reference.startswith("WIRE-")

        self.processor.approve_transaction(result.transaction.id)
        assert self.balance() == Decimal("830.00")

    def test_wire_transfer_fee_counts_toward_funds(self):
        with pytest.raises(InsufficientFundsError):
            self.processor.wire_transfer(
                self.user.id, "checking", 980,
                recipient_name="Acme", recipient_account="123", recipient_bank="First Bank"
            )


class TestQueries(LedgerTestCase):

    def test_user_transactions_newest_first(self):
        old = self.processor.create_admin_transaction(
            self.user.id, "deposit", 1, date=datetime(2020, 1, 1, tzinfo=timezone.utc)
        )
        new = self.processor.create_admin_transaction(self.user.id, "deposit", 2)

        ids = [t.id for t in self.processor.get_user_transactions(self.user.id)]
        assert ids == [new.transaction.id, old.transaction.id]
        assert len(self.processor.get_user_transactions(self.user.id, limit=1)) == 1

    def test_list_by_status(self):
        self.processor.create_admin_transaction(self.user.id, "deposit", 1, status="pending")
        self.processor.create_admin_transaction(self.user.id, "deposit", 1)

        assert len(self.processor.list_transactions()) == 2
        assert len(self.processor.list_transactions(TransactionStatus.PENDING)) == 1

    def test_get_balances(self):
        balances = self.processor.get_balances(self.user.id)
        assert balances["checking"].amount == Decimal("1000.00")
        assert balances["savings"].amount == Decimal("250.00")
        assert balances["investment"].is_zero()

    def test_non_positive_limit_returns_newest_only(self):
        for amount in (1, 2, 3):
            self.processor.create_admin_transaction(
                self.user.id, "deposit", amount,
                date=datetime(2021, 1, amount, tzinfo=timezone.utc)
            )

        newest = self.processor.get_user_transactions(self.user.id, limit=-3)
        assert [t.amount.amount for t in newest] == [Decimal("3.00")]
