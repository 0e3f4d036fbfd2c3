"""
Bill and bill payment endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import BillPaymentRequest, CreateBillRequest
from ..currency import parse_amount
from ..users import User


router = APIRouter()
payments_router = APIRouter()


@router.get("")
async def list_bills(
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Bills by due date; bills without one last"""
    return [b.to_dict() for b in system.bills.list_bills_for_user(user.id)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bill(
    request: CreateBillRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    bill = system.bills.create_bill(
        user_id=user.id,
        bill_name=request.bill_name,
        bill_category=request.bill_category,
        payment_amount=parse_amount(request.payment_amount),
        account_number=request.account_number,
        bill_reference=request.bill_reference,
        due_date=request.due_date
    )
    return bill.to_dict()


@router.get("/{bill_id}")
async def get_bill(
    bill_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.bills.get_owned_bill(bill_id, user.id).to_dict()


@router.get("/{bill_id}/payments")
async def list_bill_payments(
    bill_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    bill = system.bills.get_owned_bill(bill_id, user.id)
    return [p.to_dict() for p in system.bills.list_payments_for_bill(bill.id)]


@payments_router.post("", status_code=status.HTTP_201_CREATED)
async def pay_bill(
    request: BillPaymentRequest,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    """Pay a bill from an owned account"""
    result = system.operations.pay_bill(
        user_id=user.id,
        account_id=request.account_id,
        bill_id=request.bill_id,
        amount=request.amount
    )
    return {
        "message": "Bill payment completed successfully",
        "reference": result.reference,
        "payment_id": result.payment.id,
    }


@payments_router.get("/{payment_id}")
async def get_bill_payment(
    payment_id: int,
    user: User = Depends(get_current_user),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.bills.get_owned_payment(payment_id, user.id).to_dict()
