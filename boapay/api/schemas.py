"""
Pydantic schemas for API requests

Amounts travel as decimal strings and are parsed by the banking core, never
as floats.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


# Auth schemas
class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str = ""


# Account schemas
class CreateAccountRequest(BaseModel):
    account_name: str = Field(..., min_length=1)
    account_type: str = Field(..., description="checking or savings")
    currency: str = "USD"
    initial_deposit: Optional[str] = Field(None, description="Opening balance as a decimal string")


# Transfer schemas
class TransferFundsRequest(BaseModel):
    from_account: str = Field(..., min_length=1, description="Source account number")
    to_account: str = Field(..., min_length=1, description="Destination account number")
    amount: str
    description: Optional[str] = None


# Bill schemas
class CreateBillRequest(BaseModel):
    bill_name: str = Field(..., min_length=1)
    bill_category: str = Field(..., min_length=1)
    payment_amount: str
    account_number: str = Field(..., min_length=1, description="Payee account number")
    bill_reference: str = ""
    due_date: Optional[datetime] = None


class BillPaymentRequest(BaseModel):
    account_id: int
    bill_id: int
    amount: str


# External bank account schemas
class ExternalBankAccountRequest(BaseModel):
    account_name: str = Field(..., min_length=1)
    bank_name: str = Field(..., min_length=1)
    account_number: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2)
    currency: str = Field(..., min_length=3, max_length=3)
    swift_code: Optional[str] = None
    iban: Optional[str] = None
    routing_number: Optional[str] = None


class UpdateExternalBankAccountRequest(BaseModel):
    account_name: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    country: Optional[str] = None
    currency: Optional[str] = None
    swift_code: Optional[str] = None
    iban: Optional[str] = None
    routing_number: Optional[str] = None


# International transfer schemas
class InternationalTransferRequest(BaseModel):
    source_account_id: int
    external_account_id: int
    amount: str
    purpose_of_transfer: str = Field(..., min_length=1)


class ConvertCurrencyRequest(BaseModel):
    amount: str
    from_currency: str
    to_currency: str


# Crypto schemas
class CryptoPurchaseRequest(BaseModel):
    source_account_id: int
    symbol: str
    amount: str = Field(..., description="USD amount to spend")


class CryptoExchangeRequest(BaseModel):
    source_account_id: int
    target_symbol: str
    amount: str


class CryptoTransferRequestBody(BaseModel):
    source_account_id: int
    amount: str
    destination_account_number: Optional[str] = None
    destination_address: Optional[str] = None


# Loan schemas
class LoanApplicationRequest(BaseModel):
    product_id: int
    amount: str
    term_months: int = Field(..., gt=0)
    purpose: str = Field(..., min_length=1)
    disbursement_account_id: int


# Categorization schemas
class CategorizeTransactionRequest(BaseModel):
    category: str
    subcategory: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None


# Admin schemas
class ReviewRequest(BaseModel):
    notes: Optional[str] = None


class FailTransferRequest(BaseModel):
    reason: Optional[str] = None


class SetRoleRequest(BaseModel):
    role: str = Field(..., description="customer or admin")


# Notification schemas
class NotificationRequest(BaseModel):
    message: str = Field(..., min_length=1)
