"""
Intra-bank transfer and transfer request endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import TransferFundsRequest
from ..errors import AuthorizationError
from ..users import User


router = APIRouter()
requests_router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def transfer_funds(
    request: TransferFundsRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Move money from an owned account to any account of the bank"""
    result = system.operations.transfer_funds(
        user_id=user.id,
        from_account_number=request.from_account,
        to_account_number=request.to_account,
        amount=request.amount,
        description=request.description
    )
    return {
        "message": "Transfer completed successfully",
        "reference": result.reference,
        "balance": str(result.source.balance),
    }


@requests_router.get("")
async def list_transfer_requests(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return [r.to_dict() for r in system.transfer_requests.list_requests_for_user(user.id)]


@requests_router.post("", status_code=status.HTTP_201_CREATED)
async def create_transfer_request(
    request: TransferFundsRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Queue a transfer for admin approval"""
    transfer_request = system.operations.create_transfer_request(
        user_id=user.id,
        from_account_number=request.from_account,
        to_account_number=request.to_account,
        amount=request.amount,
        description=request.description
    )
    return transfer_request.to_dict()


@requests_router.get("/{request_id}")
async def get_transfer_request(
    request_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    transfer_request = system.transfer_requests.require_request(request_id)
    if transfer_request.user_id != user.id and not user.is_admin:
        raise AuthorizationError("Access denied")
    return transfer_request.to_dict()
