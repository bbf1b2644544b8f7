"""
Banking error types

Each error carries the HTTP status it maps to and optional structured
details that are merged into the JSON error response.
"""

from typing import Any, Dict, Optional


class BankingError(Exception):
    """Base class for all expected banking failures"""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, **self.details}


class ValidationError(BankingError):
    status_code = 400


class InsufficientFundsError(BankingError):
    status_code = 400


class InvalidStateError(BankingError):
    """Operation not allowed in the record's current status"""
    status_code = 400


class NotFoundError(BankingError):
    status_code = 404


class AuthenticationError(BankingError):
    status_code = 401


class AuthorizationError(BankingError):
    status_code = 403
