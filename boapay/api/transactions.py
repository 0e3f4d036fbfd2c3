"""
Transaction history and categorization endpoints
"""

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import CategorizeTransactionRequest
from ..categorization import CATEGORIES
from ..users import User


router = APIRouter()


@router.get("")
async def list_transactions(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """History across all of the user's accounts, newest first"""
    account_ids = [a.id for a in system.accounts.list_accounts_for_user(user.id)]
    return [t.to_dict() for t in system.transactions.list_for_accounts(account_ids)]


@router.get("/categories")
async def list_categories():
    return [
        {"category": category, "subcategories": subcategories}
        for category, subcategories in CATEGORIES.items()
    ]


@router.get("/categories/{category}/subcategories")
async def list_subcategories(
    category: str,
    system: BankingSystem = Depends(get_banking_system)
):
    return system.categorization.list_subcategories(category)


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.categorization.get_owned_transaction(user.id, transaction_id).to_dict()


@router.post("/{transaction_id}/categorize")
async def categorize_transaction(
    transaction_id: int,
    request: CategorizeTransactionRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Set category, subcategory, tags and notes"""
    transaction = system.categorization.categorize_transaction(
        user_id=user.id,
        transaction_id=transaction_id,
        category=request.category,
        subcategory=request.subcategory,
        tags=request.tags,
        notes=request.notes
    )
    return transaction.to_dict()


@router.post("/{transaction_id}/suggest-category")
def suggest_category(
    transaction_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Category suggested by the categorization service; uncategorized when unavailable"""
    return system.categorization.suggest_category(user.id, transaction_id).to_dict()
