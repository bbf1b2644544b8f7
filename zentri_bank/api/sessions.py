"""
Login endpoints
"""

from fastapi import APIRouter, Depends, Response

from .auth import BankingSystem, get_banking_system
from .schemas import LoginRequest
from ..errors import AuthenticationError
from ..logging_config import get_logger, log_action


router = APIRouter()
logger = get_logger("zentri.api")


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    system: BankingSystem = Depends(get_banking_system)
):
    """Verify credentials, issue a token and set the session cookie"""
    user = system.user_manager.authenticate(request.email, request.password)
    if not user:
        log_action(
            logger, "warning", "Authentication failed",
            action="login_failed", resource="auth", extra={"email": request.email}
        )
        raise AuthenticationError("Invalid email or password")

    token = system.token_manager.create_token(user)
    response.set_cookie(
        system.config.session_cookie_name,
        token,
        httponly=True,
        samesite="lax",
        max_age=system.config.jwt_expiry_hours * 3600
    )
    log_action(logger, "info", "User authenticated successfully", user_id=user.id, action="login", resource="auth")

    return {
        "success": True,
        "token": token,
        "token_type": "bearer",
        "user": {**user.summary(), "isAdmin": system.is_admin(user)},
    }


@router.post("/logout")
async def logout(response: Response, system: BankingSystem = Depends(get_banking_system)):
    response.delete_cookie(system.config.session_cookie_name)
    return {"success": True}
