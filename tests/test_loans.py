"""
Tests for loan products, applications and disbursement
"""

import pytest
from decimal import Decimal

from boapay.accounts import AccountType
from boapay.approvals import ApprovalStatus
from boapay.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from boapay.loans import LOAN_PRODUCTS, LoanManager, calculate_monthly_payment
from boapay.storage import InMemoryStorage
from boapay.transactions import TransactionType


class TestLoanCatalog:
    """Test the static product catalog"""

    def setup_method(self):
        """Set up test fixtures"""
        self.loans = LoanManager(InMemoryStorage())

    def test_products(self):
        products = self.loans.list_products()

        assert [p.id for p in products] == [1, 2, 3, 4]
        assert self.loans.get_product(2).annual_interest_rate == Decimal("0.0599")

    def test_unknown_product(self):
        with pytest.raises(NotFoundError, match="Loan product not found"):
            self.loans.get_product(99)

    def test_product_to_dict(self):
        data = LOAN_PRODUCTS[1].to_dict()
        assert data["min_amount"] == "1000.00"
        assert data["max_term_months"] == 60


class TestMonthlyPayment:
    """Test amortization math"""

    def test_standard_annuity(self):
        """10,000 at 12% over 12 months pays 888.49 a month"""
        assert calculate_monthly_payment(Decimal("10000"), Decimal("0.12"), 12) == Decimal("888.49")

    def test_zero_rate(self):
        assert calculate_monthly_payment(Decimal("1200"), Decimal("0"), 12) == Decimal("100.00")

    def test_term_must_be_positive(self):
        with pytest.raises(ValidationError):
            calculate_monthly_payment(Decimal("1000"), Decimal("0.05"), 0)


class TestLoanApplications:
    """Test applying for and reviewing loans"""

    @pytest.fixture(autouse=True)
    def setup(self, system, customer, checking, admin):
        self.system = system
        self.customer = customer
        self.checking = checking
        self.admin = admin

    def _apply(self, amount="5000", term=24, product_id=1, account_id=None):
        return self.system.operations.apply_for_loan(
            self.customer.id, product_id, amount, term, "Kitchen renovation",
            account_id or self.checking.id
        )

    def test_apply(self):
        application = self._apply()

        assert application.status == ApprovalStatus.PENDING
        assert application.amount == Decimal("5000.00")
        assert application.monthly_payment > Decimal("0")
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("1000.00")

    @pytest.mark.parametrize("amount,term", [
        ("999.99", 24),
        ("50000.01", 24),
        ("5000", 11),
        ("5000", 61),
    ])
    def test_bounds_enforced(self, amount, term):
        with pytest.raises(ValidationError):
            self._apply(amount, term)
        assert self.system.storage.count("loan_applications") == 0

    def test_disbursement_account_must_be_owned(self, other_customer):
        theirs = self.system.accounts.create_account(other_customer.id, "Checking", AccountType.CHECKING)
        with pytest.raises(AuthorizationError):
            self._apply(account_id=theirs.id)

    def test_disbursement_account_currency(self):
        euros = self.system.accounts.create_account(self.customer.id, "Euro", AccountType.CHECKING, "EUR")
        with pytest.raises(ValidationError, match="USD account"):
            self._apply(account_id=euros.id)

    def test_approve_disburses(self):
        application = self._apply()

        approved = self.system.operations.approve_loan_application(self.admin, application.id, "good credit")

        assert approved.status == ApprovalStatus.APPROVED
        assert approved.disbursement_reference.startswith("LON")
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("6000.00")

        entries = self.system.transactions.get_by_reference(approved.disbursement_reference)
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionType.LOAN_DISBURSEMENT

    def test_approved_loan_is_disbursed_once(self):
        application = self._apply()
        self.system.operations.approve_loan_application(self.admin, application.id)

        with pytest.raises(ConflictError):
            self.system.operations.approve_loan_application(self.admin, application.id)
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("6000.00")

    def test_reject(self):
        application = self._apply()

        rejected = self.system.operations.reject_loan_application(self.admin, application.id, "income too low")

        assert rejected.status == ApprovalStatus.REJECTED
        with pytest.raises(ConflictError):
            self.system.operations.approve_loan_application(self.admin, application.id)
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("1000.00")

    def test_listing(self):
        first = self._apply()
        second = self._apply("7000", 36)
        self.system.operations.reject_loan_application(self.admin, first.id)

        mine = self.system.loans.list_applications_for_user(self.customer.id)
        pending = self.system.loans.list_applications(ApprovalStatus.PENDING)

        assert [a.id for a in mine] == [second.id, first.id]
        assert [a.id for a in pending] == [second.id]
