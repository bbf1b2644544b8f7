"""
User Management Module

Bank customers and administrators. Each user holds three USD cash balances
(checking, savings, investment); balances are only changed through the
ledger in transactions.py.
"""

import hashlib
import secrets
import uuid
from datetime import datetime, timezone
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Any

from .currency import Money, Currency
from .storage import StorageInterface, StorageRecord, parse_datetime
from .audit import AuditTrail, AuditEventType
from .errors import ValidationError, NotFoundError
from .logging_config import get_logger


class AccountType(Enum):
    """Cash account held by every user"""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"

    @classmethod
    def resolve(cls, value: Optional[str]) -> 'AccountType':
        """Map a client-supplied account name; unknown names fall back to checking"""
        if value == "savings":
            return cls.SAVINGS
        if value == "investment":
            return cls.INVESTMENT
        return cls.CHECKING

    @property
    def balance_field(self) -> str:
        return f"{self.value}_balance"

    @property
    def client_field(self) -> str:
        """Field name used in JSON responses"""
        return f"{self.value}Balance"


@dataclass
class User(StorageRecord):
    """Bank user with three cash balances"""
    name: str
    email: str
    password_hash: str = ""
    password_salt: str = ""
    is_admin: bool = False
    checking_balance: Money = Money.zero()
    savings_balance: Money = Money.zero()
    investment_balance: Money = Money.zero()

    def get_balance(self, account_type: AccountType) -> Money:
        return getattr(self, account_type.balance_field)

    def set_balance(self, account_type: AccountType, balance: Money) -> None:
        setattr(self, account_type.balance_field, balance)

    def balances(self) -> Dict[str, Money]:
        return {t.value: self.get_balance(t) for t in AccountType}

    def summary(self) -> Dict[str, Any]:
        return {"_id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        data = dict(data)
        data['created_at'] = parse_datetime(data['created_at'])
        data['updated_at'] = parse_datetime(data['updated_at'])
        for account_type in AccountType:
            raw = data.get(account_type.balance_field)
            amount = raw['amount'] if isinstance(raw, dict) else (raw or '0')
            data[account_type.balance_field] = Money(Decimal(amount), Currency.USD)
        return cls(**data)


class UserManager:
    """Creates, loads and authenticates users"""

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.table_name = "users"
        self.logger = get_logger("zentri.users")

    def create_user(
        self,
        name: str,
        email: str,
        password: Optional[str] = None,
        is_admin: bool = False,
        checking_balance: Decimal = Decimal('0'),
        savings_balance: Decimal = Decimal('0'),
        investment_balance: Decimal = Decimal('0')
    ) -> User:
        """
        Create a new user

        Raises:
            ValidationError: If the email is missing, malformed or already registered
        """
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")
        if self.get_user_by_email(email):
            raise ValidationError("Email is already registered")

        now = datetime.now(timezone.utc)
        user = User(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name.strip() if name else "",
            email=email,
            is_admin=is_admin,
            checking_balance=Money(checking_balance, Currency.USD),
            savings_balance=Money(savings_balance, Currency.USD),
            investment_balance=Money(investment_balance, Currency.USD)
        )
        if password:
            user.password_salt = secrets.token_hex(16)
            user.password_hash = self._hash_password(password, user.password_salt)

        with self.storage.atomic():
            self.save_user(user)
            self.audit_trail.log_event(
                event_type=AuditEventType.USER_CREATED,
                entity_type="user",
                entity_id=user.id,
                metadata={"email": user.email, "is_admin": is_admin}
            )

        self.logger.info(f"User created: {user.email}")
        return user

    def save_user(self, user: User) -> None:
        self.storage.save(self.table_name, user.id, user.to_dict())

    def get_user(self, user_id: str) -> Optional[User]:
        data = self.storage.load(self.table_name, user_id)
        if data:
            return User.from_dict(data)
        return None

    def require_user(self, user_id: str) -> User:
        """Get a user or raise NotFoundError"""
        user = self.get_user(user_id) if user_id else None
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        matches = self.storage.find(self.table_name, {"email": (email or "").strip().lower()})
        if matches:
            return User.from_dict(matches[0])
        return None

    def list_users(self) -> List[User]:
        users = [User.from_dict(d) for d in self.storage.load_all(self.table_name)]
        return sorted(users, key=lambda u: u.created_at, reverse=True)

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user when the password matches, otherwise None"""
        user = self.get_user_by_email(email)
        if not user or not user.password_hash:
            self.audit_trail.log_event(
                event_type=AuditEventType.LOGIN_FAILED,
                entity_type="user",
                entity_id=(email or "").lower(),
                metadata={"reason": "unknown_user"}
            )
            return None

        expected = self._hash_password(password, user.password_salt)
        if not secrets.compare_digest(expected, user.password_hash):
            self.audit_trail.log_event(
                event_type=AuditEventType.LOGIN_FAILED,
                entity_type="user",
                entity_id=user.id,
                metadata={"reason": "bad_password"}
            )
            return None

        self.audit_trail.log_event(
            event_type=AuditEventType.LOGIN_SUCCESS,
            entity_type="user",
            entity_id=user.id,
            user_id=user.id
        )
        return user

    def _hash_password(self, password: str, salt: str) -> str:
        """Hash password with salt using scrypt"""
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()
