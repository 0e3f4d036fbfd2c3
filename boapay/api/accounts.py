"""
Account endpoints
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import CreateAccountRequest
from ..accounts import AccountType
from ..currency import parse_amount
from ..errors import ValidationError
from ..users import User


router = APIRouter()

OPENABLE_ACCOUNT_TYPES = {AccountType.CHECKING.value, AccountType.SAVINGS.value}


@router.get("")
async def list_accounts(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """All accounts of the current user"""
    return [a.to_dict() for a in system.accounts.list_accounts_for_user(user.id)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_account(
    request: CreateAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Open a checking or savings account"""
    if request.account_type not in OPENABLE_ACCOUNT_TYPES:
        raise ValidationError("Account type must be checking or savings")

    opening_balance = Decimal('0')
    if request.initial_deposit:
        opening_balance = parse_amount(request.initial_deposit)

    account = system.accounts.create_account(
        user_id=user.id,
        account_name=request.account_name,
        account_type=AccountType(request.account_type),
        currency=request.currency,
        balance=opening_balance
    )
    return account.to_dict()


@router.get("/{account_id}")
async def get_account(
    account_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.accounts.get_owned_account(account_id, user.id).to_dict()


@router.get("/{account_id}/transactions")
async def list_account_transactions(
    account_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Account history, newest first"""
    account = system.accounts.get_owned_account(account_id, user.id)
    return [t.to_dict() for t in system.transactions.list_for_account(account.id)]


@router.get("/{account_id}/statement")
async def get_statement(
    account_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Statement for a date range, the last month by default"""
    statement = system.statements.generate_statement(user.id, account_id, start_date, end_date)
    return statement.to_dict()


@router.get("/{account_id}/international-transfers")
async def list_account_international_transfers(
    account_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    account = system.accounts.get_owned_account(account_id, user.id)
    return [t.to_dict() for t in system.international.list_transfers_for_account(account.id)]
