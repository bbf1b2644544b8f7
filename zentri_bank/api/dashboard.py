"""
Customer dashboard endpoint
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query

from .auth import BankingSystem, get_banking_system, get_session_user
from ..users import User


router = APIRouter()


@router.get("/dashboard")
async def get_dashboard(
    limit: int = Query(10, ge=1),
    user: User = Depends(get_session_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Balances and most recent cash transactions of the signed-in user"""
    balances = user.balances()
    total = sum((money.amount for money in balances.values()), Decimal("0"))
    recent = system.transaction_processor.get_user_transactions(user.id, limit=limit)

    return {
        "success": True,
        "user": user.summary(),
        "balances": {
            **{name: float(money.amount) for name, money in balances.items()},
            "total": float(total),
        },
        "recentTransactions": [t.to_response() for t in recent],
    }
