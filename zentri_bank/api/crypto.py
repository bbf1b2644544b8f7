"""
Crypto wallet endpoints

The same routes are served twice: under /api/crypto for the web session and
under /api/crypto/mobile for Bearer-token clients.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Query

from .auth import BankingSystem, get_banking_system, get_session_user, get_mobile_user
from .schemas import ConvertRequest, SendCryptoRequest
from ..crypto import CryptoTransaction, mask_address
from ..prices import NETWORK_OPTIONS
from ..users import User


def _usd_value(record: CryptoTransaction) -> Optional[float]:
    value = record.metadata.get("usdValue")
    return float(value) if value is not None else None


def build_router(current_user: Callable[..., User]) -> APIRouter:
    """Crypto routes bound to the given user dependency"""
    router = APIRouter()

    @router.get("/prices")
    async def get_prices(
        user: User = Depends(current_user),
        system: BankingSystem = Depends(get_banking_system)
    ):
        prices = system.price_feed.get_prices()
        return {
            "success": True,
            "prices": [quote.to_response() for quote in prices.values()],
            "networks": NETWORK_OPTIONS,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @router.get("/wallet")
    async def get_wallet(
        user: User = Depends(current_user),
        system: BankingSystem = Depends(get_banking_system)
    ):
        return {"success": True, "wallet": system.crypto_service.get_wallet_view(user.id)}

    @router.get("/transactions")
    async def get_transactions(
        type: Optional[str] = None,
        limit: int = Query(50, ge=1),
        user: User = Depends(current_user),
        system: BankingSystem = Depends(get_banking_system)
    ):
        history = system.crypto_service.get_history(user.id, transaction_type=type, limit=limit)
        transactions = []
        for record in history:
            item = record.to_response()
            item["usdValue"] = _usd_value(record)
            transactions.append(item)
        return {"success": True, "transactions": transactions}

    @router.post("/convert")
    async def convert(
        request: ConvertRequest,
        user: User = Depends(current_user),
        system: BankingSystem = Depends(get_banking_system)
    ):
        """Buy crypto with cash; a 1% fee is added to the cash debit"""
        result = system.crypto_service.convert_usd_to_crypto(
            user_id=user.id,
            to_crypto=request.toCrypto,
            usd_amount=request.usdAmount,
            from_account=request.fromAccount
        )
        symbol = result.transaction.to_currency

        await system.notifications.send_transaction_email(
            result.user.email, result.user.name,
            {
                "type": "Crypto Conversion",
                "amount": result.usd_amount.amount,
                "description": f"Converted to {result.crypto_amount:.8f} {symbol}",
                "reference": result.transaction.reference,
                "status": "completed",
            },
            subject="Crypto Conversion Completed"
        )

        return {
            "success": True,
            "message": (
                f"Successfully converted ${result.usd_amount.amount:.2f} "
                f"to {result.crypto_amount:.8f} {symbol}"
            ),
            "reference": result.transaction.reference,
            "conversion": {
                "fromCurrency": "USD",
                "fromAmount": float(result.usd_amount.amount),
                "toCurrency": symbol,
                "toAmount": float(result.crypto_amount),
                "exchangeRate": float(result.price),
                "fee": float(result.fee.amount),
                "totalDebited": float(result.total_debited.amount),
                "status": result.transaction.status.value,
                "date": result.transaction.created_at.isoformat(),
            },
            "balances": {name: float(money.amount) for name, money in result.user.balances().items()},
        }

    @router.post("/send")
    async def send(
        request: SendCryptoRequest,
        user: User = Depends(current_user),
        system: BankingSystem = Depends(get_banking_system)
    ):
        """Request an outgoing transfer; funds stay locked until an admin decides"""
        result = system.crypto_service.send_crypto(
            user_id=user.id,
            crypto_currency=request.cryptoCurrency,
            amount=request.amount,
            wallet_address=request.walletAddress,
            network=request.network,
            memo=request.memo
        )
        transaction = result.transaction

        await system.notifications.send_transaction_email(
            result.user.email, result.user.name,
            {
                "type": "Crypto Transfer",
                "amount": transaction.crypto_amount,
                "currency": transaction.crypto_currency,
                "description": f"Transfer to {transaction.wallet_address[:12]}...",
                "reference": transaction.reference,
                "status": "pending",
                "network": transaction.network,
            },
            subject="Crypto Transfer Initiated - Pending Approval"
        )

        return {
            "success": True,
            "message": "Crypto transfer submitted for approval",
            "reference": transaction.reference,
            "transfer": {
                "cryptoCurrency": transaction.crypto_currency,
                "amount": float(transaction.crypto_amount),
                "networkFee": float(transaction.fee),
                "totalAmount": float(result.total_required),
                "usdValue": float(result.usd_value),
                "walletAddress": mask_address(transaction.wallet_address),
                "network": transaction.network,
                "status": transaction.status.value,
                "date": transaction.created_at.isoformat(),
            },
        }

    @router.get("/send")
    async def get_send_history(
        user: User = Depends(current_user),
        system: BankingSystem = Depends(get_banking_system)
    ):
        history = system.crypto_service.get_send_history(user.id)
        return {
            "success": True,
            "transactions": [
                {
                    "id": t.id,
                    "reference": t.reference,
                    "cryptoCurrency": t.crypto_currency,
                    "amount": float(t.crypto_amount),
                    "walletAddress": t.wallet_address,
                    "network": t.network,
                    "fee": float(t.fee),
                    "status": t.status.value,
                    "usdValue": _usd_value(t),
                    "date": t.created_at.isoformat(),
                }
                for t in history
            ],
        }

    return router


web_router = build_router(get_session_user)
mobile_router = build_router(get_mobile_user)
