"""
Admin back-office endpoints for users and cash transactions
"""

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, require_admin
from .schemas import CreateTransactionRequest, DeclineTransactionRequest, UpdateTransactionRequest
from ..errors import ValidationError
from ..transactions import LedgerResult, Transaction, TransactionStatus, is_credit
from ..users import User


router = APIRouter()


def _ledger_response(result: LedgerResult, message: str):
    return {
        "success": True,
        "message": message,
        "duplicate": result.duplicate,
        "transaction": result.transaction.to_response(),
        "user": result.user.summary(),
        "balance": result.balance.to_response(),
    }


def _direction(transaction: Transaction):
    if is_credit(transaction.transaction_type):
        return "credited", "to"
    return "debited", "from"


async def _notify(system: BankingSystem, user: User, transaction: Transaction) -> None:
    await system.notifications.send_transaction_email(user.email, user.name, transaction.to_response())


@router.get("/users")
async def list_users(
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    users = system.user_manager.list_users()
    return {
        "success": True,
        "users": [
            {
                **u.summary(),
                "isAdmin": system.is_admin(u),
                "balances": {name: float(money.amount) for name, money in u.balances().items()},
                "createdAt": u.created_at.isoformat(),
            }
            for u in users
        ],
    }


@router.get("/transactions")
async def list_transactions(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """All cash transactions, newest first, optionally filtered by status"""
    status_filter = None
    if status:
        try:
            status_filter = TransactionStatus(status)
        except ValueError:
            raise ValidationError(f"Invalid status: {status}")

    transactions = system.transaction_processor.list_transactions(status_filter)
    return {"success": True, "transactions": [t.to_response() for t in transactions]}


@router.post("/create-transaction")
async def create_transaction(
    request: CreateTransactionRequest,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """Credit or debit a user account, either immediately or as a pending transaction"""
    result = system.transaction_processor.create_admin_transaction(
        user_id=request.userId,
        transaction_type=request.type,
        amount=request.amount,
        account_type=request.accountType,
        description=request.description,
        status=request.status,
        date=request.date,
        idempotency_key=request.idempotencyKey,
        admin_id=admin.id
    )
    if not result.duplicate:
        await _notify(system, result.user, result.transaction)

    verb, preposition = _direction(result.transaction)
    return _ledger_response(
        result,
        f"Successfully {verb} {result.transaction.amount.to_string()} {preposition} "
        f"{result.user.name}'s {result.transaction.account_type.value} account"
    )


@router.post("/transactions/{transaction_id}/approve")
async def approve_transaction(
    transaction_id: str,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    result = system.transaction_processor.approve_transaction(transaction_id, approved_by=admin.id)
    await _notify(system, result.user, result.transaction)

    verb, preposition = _direction(result.transaction)
    return _ledger_response(
        result,
        f"Transaction approved. {verb.capitalize()} {result.transaction.amount.to_string()} {preposition} "
        f"{result.user.name}'s {result.transaction.account_type.value} account."
    )


@router.post("/transactions/{transaction_id}/decline")
async def decline_transaction(
    transaction_id: str,
    request: Optional[DeclineTransactionRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    transaction = system.transaction_processor.reject_transaction(
        transaction_id,
        reason=request.reason if request else None,
        rejected_by=admin.id
    )
    user = system.user_manager.get_user(transaction.user_id)
    if user:
        await _notify(system, user, transaction)
    return {"success": True, "message": "Transaction declined", "transaction": transaction.to_response()}


@router.put("/transactions/{transaction_id}")
async def update_transaction(
    transaction_id: str,
    request: UpdateTransactionRequest,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    transaction = system.transaction_processor.update_transaction(
        transaction_id,
        description=request.description,
        date=request.date,
        amount=request.amount,
        updated_by=admin.id
    )
    return {"success": True, "transaction": transaction.to_response()}
