"""
Admin endpoints: user management and review of queued requests
"""

from typing import Optional

from fastapi import APIRouter, Depends

from .auth import BankingSystem, get_banking_system, require_admin
from .schemas import FailTransferRequest, ReviewRequest, SetRoleRequest
from ..approvals import ApprovalStatus
from ..errors import ValidationError
from ..users import User, UserRole


router = APIRouter()


def _parse_status(value: Optional[str]) -> Optional[ApprovalStatus]:
    if value is None:
        return None
    try:
        return ApprovalStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status: {value}")


# Users

@router.get("/users")
async def list_users(
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return [u.to_public_dict() for u in system.users.list_users()]


@router.put("/users/{user_id}/role")
async def set_user_role(
    user_id: int,
    request: SetRoleRequest,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    try:
        role = UserRole(request.role)
    except ValueError:
        raise ValidationError(f"Unknown role: {request.role}")
    return system.users.set_role(user_id, role).to_public_dict()


@router.post("/users/{user_id}/approve")
async def approve_user(
    user_id: int,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.users.approve_user(user_id).to_public_dict()


@router.post("/users/{user_id}/verify")
async def verify_user(
    user_id: int,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return system.users.verify_user(user_id).to_public_dict()


# Loan applications

@router.get("/loan-applications")
async def list_loan_applications(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return [a.to_dict() for a in system.loans.list_applications(_parse_status(status))]


@router.post("/loan-applications/{application_id}/approve")
async def approve_loan_application(
    application_id: int,
    request: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """Approve and disburse"""
    notes = request.notes if request else None
    return system.operations.approve_loan_application(admin, application_id, notes).to_dict()


@router.post("/loan-applications/{application_id}/reject")
async def reject_loan_application(
    application_id: int,
    request: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    notes = request.notes if request else None
    return system.operations.reject_loan_application(admin, application_id, notes).to_dict()


# Crypto transfer requests

@router.get("/crypto-transfer-requests")
async def list_crypto_transfer_requests(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return [r.to_dict() for r in system.crypto_requests.list_requests(_parse_status(status))]


@router.post("/crypto-transfer-requests/{request_id}/approve")
async def approve_crypto_transfer_request(
    request_id: int,
    request: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """Approve and execute; the balance is checked again first"""
    notes = request.notes if request else None
    return system.operations.approve_crypto_transfer_request(admin, request_id, notes).to_dict()


@router.post("/crypto-transfer-requests/{request_id}/reject")
async def reject_crypto_transfer_request(
    request_id: int,
    request: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    notes = request.notes if request else None
    return system.operations.reject_crypto_transfer_request(admin, request_id, notes).to_dict()


# Transfer requests

@router.get("/transfer-requests")
async def list_transfer_requests(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    return [r.to_dict() for r in system.transfer_requests.list_requests(_parse_status(status))]


@router.post("/transfer-requests/{request_id}/approve")
async def approve_transfer_request(
    request_id: int,
    request: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    notes = request.notes if request else None
    return system.operations.approve_transfer_request(admin, request_id, notes).to_dict()


@router.post("/transfer-requests/{request_id}/reject")
async def reject_transfer_request(
    request_id: int,
    request: Optional[ReviewRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    notes = request.notes if request else None
    return system.operations.reject_transfer_request(admin, request_id, notes).to_dict()


# International transfers and bills

@router.post("/international-transfers/{transfer_id}/fail")
async def fail_international_transfer(
    transfer_id: int,
    request: Optional[FailTransferRequest] = None,
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """Fail a pending transfer and refund the sender"""
    reason = request.reason if request else None
    return system.operations.fail_international_transfer(admin, transfer_id, reason).to_dict()


@router.post("/international-transfers/settle")
async def settle_international_transfers(
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    """Run one settlement pass now"""
    settled = system.settlement_job.run_once()
    return {"settled": [t.id for t in settled]}


@router.post("/bills/mark-overdue")
async def mark_overdue_bills(
    admin: User = Depends(require_admin),
    system: BankingSystem = Depends(get_banking_system)
):
    updated = system.bills.mark_overdue_bills()
    return {"updated": [b.id for b in updated]}
