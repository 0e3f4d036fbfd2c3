"""
Loan product and application endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import LoanApplicationRequest
from ..errors import AuthorizationError
from ..users import User


router = APIRouter()


@router.get("/products")
async def list_loan_products(system: BankingSystem = Depends(get_banking_system)):
    return [p.to_dict() for p in system.loans.list_products()]


@router.get("/products/{product_id}")
async def get_loan_product(product_id: int, system: BankingSystem = Depends(get_banking_system)):
    return system.loans.get_product(product_id).to_dict()


@router.get("/applications")
async def list_loan_applications(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return [a.to_dict() for a in system.loans.list_applications_for_user(user.id)]


@router.post("/applications", status_code=status.HTTP_201_CREATED)
async def apply_for_loan(
    request: LoanApplicationRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Apply for a catalog product; an admin reviews the application"""
    application = system.operations.apply_for_loan(
        user_id=user.id,
        product_id=request.product_id,
        amount=request.amount,
        term_months=request.term_months,
        purpose=request.purpose,
        disbursement_account_id=request.disbursement_account_id
    )
    return application.to_dict()


@router.get("/applications/{application_id}")
async def get_loan_application(
    application_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    application = system.loans.require_application(application_id)
    if application.user_id != user.id and not user.is_admin:
        raise AuthorizationError("Access denied")
    return application.to_dict()
