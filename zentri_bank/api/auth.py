"""
Banking system wiring and authentication dependencies
"""

from decimal import Decimal
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..storage import create_storage
from ..audit import AuditTrail
from ..users import User, UserManager
from ..transactions import TransactionProcessor
from ..prices import PriceFeed, LivePriceClient
from ..crypto import CryptoService
from ..notifications import NotificationEngine, create_notification_engine
from ..auth import TokenManager, is_admin
from ..errors import AuthenticationError, AuthorizationError
from ..config import ZentriConfig, get_config


class BankingSystem:
    """All banking components wired to one storage backend"""

    def __init__(
        self,
        use_sqlite: Optional[bool] = None,
        config: Optional[ZentriConfig] = None,
        notifications: Optional[NotificationEngine] = None,
        price_feed: Optional[PriceFeed] = None
    ):
        self.config = config or get_config()
        if use_sqlite is None:
            use_sqlite = self.config.use_sqlite

        self.storage = create_storage(use_sqlite, self.config.database_path)
        self.audit_trail = AuditTrail(self.storage)
        self.user_manager = UserManager(self.storage, self.audit_trail)
        self.transaction_processor = TransactionProcessor(
            self.storage, self.user_manager, self.audit_trail,
            wire_fees={
                "domestic": Decimal(self.config.wire_fee_domestic),
                "international": Decimal(self.config.wire_fee_international),
                "urgent": Decimal(self.config.wire_fee_urgent),
            }
        )
        self.price_feed = price_feed or self._create_price_feed()
        self.crypto_service = CryptoService(
            self.storage, self.user_manager, self.transaction_processor, self.audit_trail,
            price_feed=self.price_feed,
            conversion_fee_rate=Decimal(self.config.conversion_fee_rate),
            min_conversion=Decimal(self.config.min_conversion_usd)
        )
        self.notifications = notifications or create_notification_engine(self.config)
        self.token_manager = TokenManager(
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
            expiry_hours=self.config.jwt_expiry_hours
        )

    def _create_price_feed(self) -> PriceFeed:
        """Simulated prices, backed by the live feed only if a URL is configured"""
        live_client = None
        if self.config.price_feed_url:
            live_client = LivePriceClient(self.config.price_feed_url, timeout=self.config.price_feed_timeout)
        return PriceFeed(variation=Decimal(self.config.price_variation), live_client=live_client)

    def is_admin(self, user: User) -> bool:
        return is_admin(user, self.config.admin_email_list)


# Global banking system instance, created on first use
banking_system: Optional[BankingSystem] = None


def get_banking_system() -> BankingSystem:
    global banking_system
    if banking_system is None:
        banking_system = BankingSystem()
    return banking_system


bearer_scheme = HTTPBearer(auto_error=False)


def _resolve_user(system: BankingSystem, token: Optional[str]) -> User:
    payload = system.token_manager.decode_token(token)
    user = system.user_manager.get_user(payload["sub"])
    if not user:
        raise AuthenticationError("Unauthorized")
    return user


def get_session_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    system: BankingSystem = Depends(get_banking_system)
) -> User:
    """Web session: token from the session cookie, Bearer accepted as well"""
    token = request.cookies.get(system.config.session_cookie_name)
    if not token and credentials:
        token = credentials.credentials
    return _resolve_user(system, token)


def get_mobile_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    system: BankingSystem = Depends(get_banking_system)
) -> User:
    """Mobile clients authenticate with a Bearer token only"""
    return _resolve_user(system, credentials.credentials if credentials else None)


def require_admin(
    user: User = Depends(get_session_user),
    system: BankingSystem = Depends(get_banking_system)
) -> User:
    if not system.is_admin(user):
        raise AuthorizationError("Forbidden")
    return user
