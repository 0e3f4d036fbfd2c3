"""
Cryptocurrency endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import CryptoExchangeRequest, CryptoPurchaseRequest, CryptoTransferRequestBody
from ..crypto import get_cryptocurrency, list_cryptocurrencies
from ..errors import AuthorizationError
from ..operations import CryptoTradeResult
from ..users import User


catalog_router = APIRouter()
router = APIRouter()


def _trade_to_dict(result: CryptoTradeResult, message: str):
    return {
        "message": message,
        "reference": result.reference,
        "source_account": result.source.to_dict(),
        "target_account": result.target.to_dict(),
        "source_amount": str(result.source_amount),
        "target_amount": str(result.target_amount),
        "exchange_rate": str(result.exchange_rate),
    }


@catalog_router.get("")
async def list_supported_cryptocurrencies():
    return [c.to_dict() for c in list_cryptocurrencies()]


@catalog_router.get("/{symbol}")
async def get_supported_cryptocurrency(symbol: str):
    return get_cryptocurrency(symbol).to_dict()


@router.get("/accounts")
async def list_crypto_accounts(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return [a.to_dict() for a in system.accounts.list_accounts_for_user(user.id, crypto=True)]


@router.post("/purchase", status_code=status.HTTP_201_CREATED)
async def purchase_crypto(
    request: CryptoPurchaseRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Buy crypto with a USD amount"""
    result = system.operations.purchase_crypto(
        user_id=user.id,
        source_account_id=request.source_account_id,
        symbol=request.symbol,
        usd_amount=request.amount
    )
    return _trade_to_dict(result, "Cryptocurrency purchased successfully")


@router.post("/exchange", status_code=status.HTTP_201_CREATED)
async def exchange_crypto(
    request: CryptoExchangeRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    result = system.operations.exchange_crypto(
        user_id=user.id,
        source_account_id=request.source_account_id,
        target_symbol=request.target_symbol,
        amount=request.amount
    )
    return _trade_to_dict(result, "Cryptocurrency exchanged successfully")


@router.get("/transfer-requests")
async def list_crypto_transfer_requests(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return [r.to_dict() for r in system.crypto_requests.list_requests_for_user(user.id)]


@router.post("/transfer-requests", status_code=status.HTTP_201_CREATED)
async def create_crypto_transfer_request(
    request: CryptoTransferRequestBody,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Request a crypto transfer; it moves funds only once an admin approves it"""
    transfer_request = system.operations.create_crypto_transfer_request(
        user_id=user.id,
        source_account_id=request.source_account_id,
        amount=request.amount,
        destination_account_number=request.destination_account_number,
        destination_address=request.destination_address
    )
    return transfer_request.to_dict()


@router.get("/transfer-requests/{request_id}")
async def get_crypto_transfer_request(
    request_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    transfer_request = system.crypto_requests.require_request(request_id)
    if transfer_request.user_id != user.id and not user.is_admin:
        raise AuthorizationError("Access denied")
    return transfer_request.to_dict()
