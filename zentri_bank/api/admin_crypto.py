"""
Admin approval queue for outgoing crypto transfers
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, require_admin
from .schemas import CryptoDecisionRequest
from ..errors import ValidationError
from ..users import User


router = APIRouter()


@router.get("/pending")
async def list_pending(
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return {"success": True, "transactions": system.crypto_service.list_pending_approvals()}


@router.post("/approve")
async def decide(
    request: CryptoDecisionRequest,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """Approve (settle) or reject (release) a pending crypto send"""
    if not request.transactionId or request.action not in ("approve", "reject"):
        raise ValidationError("Invalid request")

    service = system.crypto_service
    if request.action == "approve":
        transaction = service.approve_crypto_transaction(
            request.transactionId, admin_id=admin.id, tx_hash=request.txHash
        )
        subject = "Crypto Transfer Approved and Completed"
        message = "Transaction approved"
    else:
        transaction = service.reject_crypto_transaction(
            request.transactionId, admin_id=admin.id, reason=request.rejectionReason
        )
        subject = "Crypto Transfer Rejected"
        message = "Transaction rejected, funds released"

    user = system.user_manager.get_user(transaction.user_id)
    if user:
        await system.notifications.send_transaction_email(
            user.email, user.name,
            {
                "type": "Crypto Transfer",
                "amount": transaction.crypto_amount,
                "currency": transaction.crypto_currency,
                "description": f"Transfer to {(transaction.wallet_address or '')[:12]}...",
                "reference": transaction.reference,
                "status": transaction.status.value,
                "network": transaction.network,
            },
            subject=subject
        )

    return {"success": True, "message": message, "transaction": transaction.to_response()}
