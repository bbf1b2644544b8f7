"""
Customer transfer endpoints
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, get_session_user
from .schemas import InternalTransferRequest, ExternalTransferRequest, WireTransferRequest
from ..transactions import LedgerResult
from ..users import User


router = APIRouter()


def _transfer_response(result: LedgerResult, message: str) -> Dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "reference": result.transaction.reference,
        "transaction": result.transaction.to_response(),
        "balances": {name: float(money.amount) for name, money in result.user.balances().items()},
    }


async def _notify(system: BankingSystem, result: LedgerResult) -> None:
    await system.notifications.send_transaction_email(
        result.user.email, result.user.name, result.transaction.to_response()
    )


@router.post("/internal")
async def internal_transfer(
    request: InternalTransferRequest,
    user: User = Depends(get_session_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Move funds between the user's own accounts"""
    result = system.transaction_processor.internal_transfer(
        user_id=user.id,
        from_account=request.fromAccount,
        to_account=request.toAccount,
        amount=request.amount,
        description=request.description
    )
    await _notify(system, result)
    return _transfer_response(
        result,
        f"Transferred {result.transaction.amount.to_string()} from {request.fromAccount} to {request.toAccount}"
    )


@router.post("/external")
async def external_transfer(
    request: ExternalTransferRequest,
    user: User = Depends(get_session_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Submit a transfer to another bank for approval"""
    result = system.transaction_processor.external_transfer(
        user_id=user.id,
        from_account=request.fromAccount,
        amount=request.amount,
        recipient_name=request.recipientName,
        recipient_account=request.recipientAccount,
        recipient_bank=request.recipientBank,
        recipient_routing_number=request.recipientRoutingNumber,
        description=request.description,
        transfer_speed=request.transferSpeed
    )
    await _notify(system, result)
    return _transfer_response(result, "Transfer submitted for approval")


@router.post("/wire")
async def wire_transfer(
    request: WireTransferRequest,
    user: User = Depends(get_session_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Submit a wire transfer for approval; the wire fee is added to the amount"""
    result = system.transaction_processor.wire_transfer(
        user_id=user.id,
        from_account=request.fromAccount,
        amount=request.amount,
        recipient_name=request.recipientName,
        recipient_account=request.recipientAccount,
        recipient_bank=request.recipientBank,
        recipient_routing_number=request.recipientRoutingNumber,
        recipient_bank_address=request.recipientBankAddress,
        recipient_address=request.recipientAddress,
        wire_type=request.wireType,
        purpose=request.purpose,
        urgent=request.urgent,
        description=request.description
    )
    await _notify(system, result)
    response = _transfer_response(result, "Wire transfer submitted for approval")
    response["fee"] = float(result.transaction.metadata["fee"])
    return response
