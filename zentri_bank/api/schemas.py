"""
Pydantic schemas for API requests

Field names follow the JSON clients (camelCase). Amounts are accepted as
numbers or strings so that formatted input like "$1,250.00" reaches the
amount parser unchanged.
"""

from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, Field


AmountInput = Union[float, int, str]


class LoginRequest(BaseModel):
    email: str
    password: str


# Admin cash ledger schemas
class CreateTransactionRequest(BaseModel):
    userId: str = ""
    type: str = ""
    amount: Optional[AmountInput] = None
    accountType: Optional[str] = "checking"
    description: Optional[str] = None
    status: str = "completed"
    date: Optional[datetime] = None
    idempotencyKey: Optional[str] = None


class DeclineTransactionRequest(BaseModel):
    reason: Optional[str] = None


class UpdateTransactionRequest(BaseModel):
    description: Optional[str] = None
    date: Optional[datetime] = None
    amount: Optional[AmountInput] = None


# Transfer schemas
class InternalTransferRequest(BaseModel):
    fromAccount: str
    toAccount: str
    amount: AmountInput
    description: Optional[str] = None


class RecipientFields(BaseModel):
    fromAccount: str = "checking"
    amount: AmountInput
    recipientName: str = ""
    recipientAccount: str = ""
    recipientBank: str = ""
    recipientRoutingNumber: Optional[str] = None
    description: Optional[str] = None


class ExternalTransferRequest(RecipientFields):
    transferSpeed: str = "standard"


class WireTransferRequest(RecipientFields):
    wireType: str = "domestic"
    recipientBankAddress: Optional[str] = None
    recipientAddress: Optional[str] = None
    purpose: Optional[str] = None
    urgent: bool = False


# Crypto schemas
class ConvertRequest(BaseModel):
    fromAccount: str = "checking"
    toCrypto: Optional[str] = None
    usdAmount: Optional[AmountInput] = None


class SendCryptoRequest(BaseModel):
    cryptoCurrency: Optional[str] = None
    amount: Optional[AmountInput] = None
    walletAddress: Optional[str] = None
    network: Optional[str] = None
    memo: Optional[str] = None


class CryptoDecisionRequest(BaseModel):
    transactionId: str = ""
    action: str = Field("", description="approve or reject")
    rejectionReason: Optional[str] = None
    txHash: Optional[str] = None
