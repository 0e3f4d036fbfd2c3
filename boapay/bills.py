"""
Bill Management Module

Bills registered by users against payees, and the immutable payment records
that settle them.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import List, Optional
from enum import Enum

from .currency import quantize_fiat
from .errors import AuthorizationError, NotFoundError, ValidationError
from .storage import StorageInterface, StorageRecord, utcnow


class BillStatus(Enum):
    """Bill lifecycle"""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class BillPaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Bill(StorageRecord):
    """A payee bill owned by a user"""
    user_id: int
    bill_name: str
    bill_category: str
    payment_amount: Decimal
    account_number: str  # Payee account the payment is sent to
    bill_reference: str
    due_date: Optional[datetime] = None
    status: BillStatus = BillStatus.PENDING

    @property
    def is_paid(self) -> bool:
        return self.status == BillStatus.PAID


@dataclass
class BillPayment(StorageRecord):
    """Settlement of a bill from one account"""
    bill_id: int
    account_id: int
    amount: Decimal
    reference: str
    status: BillPaymentStatus = BillPaymentStatus.COMPLETED


class BillManager:
    """Stores bills and bill payments"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.bills_table = "bills"
        self.payments_table = "bill_payments"

    def create_bill(
        self,
        user_id: int,
        bill_name: str,
        bill_category: str,
        payment_amount: Decimal,
        account_number: str,
        bill_reference: str,
        due_date: Optional[datetime] = None,
        status: BillStatus = BillStatus.PENDING
    ) -> Bill:
        """Register a bill for a user"""
        if payment_amount <= 0:
            raise ValidationError("Payment amount must be positive")
        if due_date and due_date.tzinfo is None:
            due_date = due_date.replace(tzinfo=timezone.utc)

        now = utcnow()
        bill = Bill(
            id=0,
            created_at=now,
            updated_at=now,
            user_id=user_id,
            bill_name=bill_name,
            bill_category=bill_category,
            payment_amount=quantize_fiat(payment_amount),
            account_number=account_number,
            bill_reference=bill_reference,
            due_date=due_date,
            status=status
        )
        bill.id = self.storage.insert(self.bills_table, bill.to_dict())
        return bill

    def get_bill(self, bill_id: int) -> Optional[Bill]:
        data = self.storage.load(self.bills_table, bill_id)
        return Bill.from_dict(data) if data else None

    def get_owned_bill(self, bill_id: int, user_id: int) -> Bill:
        bill = self.get_bill(bill_id)
        if not bill:
            raise NotFoundError("Bill not found")
        if bill.user_id != user_id:
            raise AuthorizationError("Access denied")
        return bill

    def list_bills_for_user(self, user_id: int) -> List[Bill]:
        """A user's bills by due date ascending; bills without a due date last"""
        bills = [Bill.from_dict(d) for d in self.storage.find(self.bills_table, {"user_id": user_id})]
        return sorted(bills, key=lambda b: (b.due_date is None, b.due_date or b.created_at, b.id))

    def update_bill_status(self, bill_id: int, status: BillStatus) -> Bill:
        bill = self.get_bill(bill_id)
        if not bill:
            raise NotFoundError("Bill not found")
        bill.status = status
        bill.updated_at = utcnow()
        self.storage.save(self.bills_table, bill.id, bill.to_dict())
        return bill

    def mark_overdue_bills(self, now: Optional[datetime] = None) -> List[Bill]:
        """Flip pending bills whose due date has passed to overdue"""
        now = now or utcnow()
        updated = []
        with self.storage.atomic():
            for data in self.storage.find(self.bills_table, {"status": BillStatus.PENDING.value}):
                bill = Bill.from_dict(data)
                if bill.due_date and bill.due_date < now:
                    updated.append(self.update_bill_status(bill.id, BillStatus.OVERDUE))
        return updated

    def create_payment(self, bill_id: int, account_id: int, amount: Decimal, reference: str) -> BillPayment:
        now = utcnow()
        payment = BillPayment(
            id=0,
            created_at=now,
            updated_at=now,
            bill_id=bill_id,
            account_id=account_id,
            amount=amount,
            reference=reference
        )
        payment.id = self.storage.insert(self.payments_table, payment.to_dict())
        return payment

    def get_payment(self, payment_id: int) -> Optional[BillPayment]:
        data = self.storage.load(self.payments_table, payment_id)
        return BillPayment.from_dict(data) if data else None

    def get_owned_payment(self, payment_id: int, user_id: int) -> BillPayment:
        """A payment visible only to the owner of the paid bill"""
        payment = self.get_payment(payment_id)
        if not payment:
            raise NotFoundError("Bill payment not found")
        self.get_owned_bill(payment.bill_id, user_id)
        return payment

    def list_payments_for_bill(self, bill_id: int) -> List[BillPayment]:
        """Payments of a bill, newest first"""
        payments = [BillPayment.from_dict(d) for d in self.storage.find(self.payments_table, {"bill_id": bill_id})]
        return sorted(payments, key=lambda p: (p.created_at, p.id), reverse=True)
