"""
External bank account and international transfer endpoints
"""

from fastapi import APIRouter, Depends, Response, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import (
    ExternalBankAccountRequest, InternationalTransferRequest, UpdateExternalBankAccountRequest
)
from ..currency import get_transfer_conversion_details
from ..errors import AuthorizationError, NotFoundError
from ..users import User


external_router = APIRouter()
router = APIRouter()


def _conversion_to_dict(details):
    return {key: str(value) for key, value in details.items()}


# External bank accounts

@external_router.get("")
async def list_external_accounts(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return [a.to_dict() for a in system.international.list_external_accounts_for_user(user.id)]


@external_router.post("", status_code=status.HTTP_201_CREATED)
async def create_external_account(
    request: ExternalBankAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    account = system.international.create_external_account(user_id=user.id, **request.model_dump())
    return account.to_dict()


@external_router.get("/{account_id}")
async def get_external_account(
    account_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.international.get_owned_external_account(account_id, user.id).to_dict()


@external_router.put("/{account_id}")
async def update_external_account(
    account_id: int,
    request: UpdateExternalBankAccountRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Partial update; omitted fields keep their value"""
    system.international.get_owned_external_account(account_id, user.id)
    account = system.international.update_external_account(
        account_id, request.model_dump(exclude_unset=True)
    )
    return account.to_dict()


@external_router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_external_account(
    account_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    system.international.get_owned_external_account(account_id, user.id)
    system.international.delete_external_account(account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# International transfers

@router.get("")
async def list_international_transfers(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfers sent from any of the user's accounts, newest first"""
    account_ids = [a.id for a in system.accounts.list_accounts_for_user(user.id)]
    return [t.to_dict() for t in system.international.list_transfers_for_accounts(account_ids)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_international_transfer(
    request: InternationalTransferRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    result = system.operations.send_international_transfer(
        user_id=user.id,
        source_account_id=request.source_account_id,
        external_account_id=request.external_account_id,
        amount=request.amount,
        purpose_of_transfer=request.purpose_of_transfer
    )
    return {
        "message": "International transfer initiated successfully",
        "reference": result.transfer.reference,
        "transfer_id": result.transfer.id,
        "estimated_delivery": result.transfer.estimated_delivery.isoformat(),
        "conversion_details": _conversion_to_dict(result.conversion),
    }


@router.get("/{transfer_id}")
async def get_international_transfer(
    transfer_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Transfer with a quote at today's rates alongside the booked one"""
    transfer = system.international.get_transfer(transfer_id)
    if not transfer:
        raise NotFoundError("International transfer not found")
    source = system.accounts.get_account(transfer.source_account_id)
    if not source:
        raise NotFoundError("Source account not found")
    if source.user_id != user.id:
        raise AuthorizationError("Access denied")

    current = get_transfer_conversion_details(
        transfer.amount, transfer.source_currency, transfer.target_currency
    )
    data = transfer.to_dict()
    data["current_conversion_details"] = _conversion_to_dict(current)
    return data
