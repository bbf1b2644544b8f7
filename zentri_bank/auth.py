"""
Token authentication

Issues and verifies HS256 JWTs identifying a user. The web client carries the
token in a session cookie, the mobile client as a Bearer token; both resolve
to the same claims.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

import jwt

from .errors import AuthenticationError
from .users import User


class TokenManager:
    """Creates and validates user session tokens"""

    def __init__(self, secret: str, algorithm: str = "HS256", expiry_hours: int = 24):
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_hours = expiry_hours

    def create_token(self, user: User) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user.id,
            "email": user.email,
            "iat": now,
            "exp": now + timedelta(hours=self.expiry_hours),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Validate a token and return its claims

        Raises:
            AuthenticationError: Missing, expired or invalid token
        """
        if not token:
            raise AuthenticationError("Unauthorized")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        if not payload.get("sub"):
            raise AuthenticationError("Invalid token")
        return payload


def is_admin(user: User, admin_emails: List[str]) -> bool:
    """Admins are flagged users or users on the configured email allowlist"""
    return user.is_admin or user.email.lower() in admin_emails
