"""
Loan Products and Applications Module

A static catalog of loan products and the customer applications made against
it. Applications follow the shared approval workflow; an approved
application is disbursed into the customer's nominated account.
"""

from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional

from .approvals import ApprovalStatus
from .currency import quantize_fiat
from .errors import NotFoundError, ValidationError
from .storage import StorageInterface, StorageRecord, utcnow


@dataclass(frozen=True)
class LoanProduct:
    """Loan product offered to customers"""
    id: int
    name: str
    description: str
    annual_interest_rate: Decimal  # As a fraction, 0.0599 = 5.99%
    min_amount: Decimal
    max_amount: Decimal
    min_term_months: int
    max_term_months: int
    currency: str = "USD"

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "annual_interest_rate": str(self.annual_interest_rate),
            "min_amount": str(self.min_amount),
            "max_amount": str(self.max_amount),
            "min_term_months": self.min_term_months,
            "max_term_months": self.max_term_months,
            "currency": self.currency,
        }


LOAN_PRODUCTS: Dict[int, LoanProduct] = {
    product.id: product for product in (
        LoanProduct(
            id=1,
            name="Personal Loan",
            description="Unsecured loan for personal expenses",
            annual_interest_rate=Decimal("0.0899"),
            min_amount=Decimal("1000.00"),
            max_amount=Decimal("50000.00"),
            min_term_months=12,
            max_term_months=60,
        ),
        LoanProduct(
            id=2,
            name="Auto Loan",
            description="Financing for new and used vehicles",
            annual_interest_rate=Decimal("0.0599"),
            min_amount=Decimal("5000.00"),
            max_amount=Decimal("75000.00"),
            min_term_months=24,
            max_term_months=84,
        ),
        LoanProduct(
            id=3,
            name="Home Improvement Loan",
            description="Renovations, repairs and upgrades",
            annual_interest_rate=Decimal("0.0749"),
            min_amount=Decimal("2500.00"),
            max_amount=Decimal("100000.00"),
            min_term_months=12,
            max_term_months=120,
        ),
        LoanProduct(
            id=4,
            name="Student Loan",
            description="Tuition and education costs",
            annual_interest_rate=Decimal("0.0450"),
            min_amount=Decimal("1000.00"),
            max_amount=Decimal("40000.00"),
            min_term_months=36,
            max_term_months=120,
        ),
    )
}


def calculate_monthly_payment(principal: Decimal, annual_interest_rate: Decimal,
                              term_months: int) -> Decimal:
    """
    Level monthly payment for a fully amortizing loan

    Uses the annuity formula P * r / (1 - (1 + r)^-n) with r the monthly rate;
    a zero rate spreads the principal evenly.
    """
    if term_months <= 0:
        raise ValidationError("Term must be positive")
    monthly_rate = annual_interest_rate / Decimal('12')
    if monthly_rate == 0:
        return quantize_fiat(principal / term_months)

    factor = (Decimal('1') + monthly_rate) ** term_months
    payment = principal * monthly_rate * factor / (factor - Decimal('1'))
    return payment.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


@dataclass
class LoanApplication(StorageRecord):
    """Customer application for a catalog loan product"""
    user_id: int
    product_id: int
    amount: Decimal
    term_months: int
    purpose: str
    disbursement_account_id: int
    monthly_payment: Decimal
    disbursement_reference: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None


class LoanManager:
    """Serves the product catalog and stores loan applications"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "loan_applications"

    def list_products(self) -> List[LoanProduct]:
        return list(LOAN_PRODUCTS.values())

    def get_product(self, product_id: int) -> LoanProduct:
        product = LOAN_PRODUCTS.get(product_id)
        if not product:
            raise NotFoundError("Loan product not found")
        return product

    def create_application(
        self,
        user_id: int,
        product_id: int,
        amount: Decimal,
        term_months: int,
        purpose: str,
        disbursement_account_id: int
    ) -> LoanApplication:
        """
        Record a pending application after checking the product bounds

        Raises:
            NotFoundError: Unknown product
            ValidationError: Amount or term outside the product's range
        """
        product = self.get_product(product_id)

        if not product.min_amount <= amount <= product.max_amount:
            raise ValidationError(
                f"Amount must be between {product.min_amount} and {product.max_amount}"
            )
        if not product.min_term_months <= term_months <= product.max_term_months:
            raise ValidationError(
                f"Term must be between {product.min_term_months} and {product.max_term_months} months"
            )

        amount = quantize_fiat(amount)
        now = utcnow()
        application = LoanApplication(
            id=0,
            created_at=now,
            updated_at=now,
            user_id=user_id,
            product_id=product.id,
            amount=amount,
            term_months=term_months,
            purpose=purpose,
            disbursement_account_id=disbursement_account_id,
            monthly_payment=calculate_monthly_payment(amount, product.annual_interest_rate, term_months)
        )
        application.id = self.storage.insert(self.table_name, application.to_dict())
        return application

    def get_application(self, application_id: int) -> Optional[LoanApplication]:
        data = self.storage.load(self.table_name, application_id)
        return LoanApplication.from_dict(data) if data else None

    def require_application(self, application_id: int) -> LoanApplication:
        application = self.get_application(application_id)
        if not application:
            raise NotFoundError("Loan application not found")
        return application

    def list_applications_for_user(self, user_id: int) -> List[LoanApplication]:
        applications = [LoanApplication.from_dict(d) for d in self.storage.find(self.table_name, {"user_id": user_id})]
        return sorted(applications, key=lambda a: (a.created_at, a.id), reverse=True)

    def list_applications(self, status: Optional[ApprovalStatus] = None) -> List[LoanApplication]:
        filters = {"status": status} if status else {}
        return [LoanApplication.from_dict(d) for d in self.storage.find(self.table_name, filters)]

    def save_application(self, application: LoanApplication) -> LoanApplication:
        self.storage.save(self.table_name, application.id, application.to_dict())
        return application
