"""
Tests for account statements
"""

import pytest
from decimal import Decimal
from datetime import timedelta

from boapay.accounts import AccountType
from boapay.errors import AuthorizationError, ValidationError
from boapay.storage import utcnow


class TestStatementGenerator:
    """Test statement balances and totals"""

    @pytest.fixture(autouse=True)
    def setup(self, system, customer, checking):
        self.system = system
        self.customer = customer
        self.checking = checking
        self.savings = system.accounts.create_account(
            customer.id, "Savings", AccountType.SAVINGS, "USD", Decimal("0")
        )
        ops = system.operations
        ops.transfer_funds(customer.id, checking.account_number, self.savings.account_number, "300")
        ops.transfer_funds(customer.id, self.savings.account_number, checking.account_number, "50")

    def test_default_period(self):
        """Last 30 days: opening balance reconstructed from the ledger"""
        statement = self.system.statements.generate_statement(self.customer.id, self.checking.id)

        assert statement.opening_balance == Decimal("1000.00")
        assert statement.closing_balance == Decimal("750.00")
        assert statement.total_debits == Decimal("300.00")
        assert statement.total_credits == Decimal("50.00")
        assert len(statement.transactions) == 2
        assert statement.end_date - statement.start_date == timedelta(days=30)

    def test_opening_plus_net_equals_closing(self):
        statement = self.system.statements.generate_statement(self.customer.id, self.savings.id)

        assert statement.opening_balance + statement.total_credits - statement.total_debits == statement.closing_balance

    def test_period_before_activity(self):
        """Transactions after the period are unwound from the current balance"""
        yesterday = utcnow().date() - timedelta(days=1)
        statement = self.system.statements.generate_statement(
            self.customer.id, self.checking.id, start_date=yesterday - timedelta(days=7), end_date=yesterday
        )

        assert statement.transactions == []
        assert statement.opening_balance == Decimal("1000.00")
        assert statement.closing_balance == Decimal("1000.00")

    def test_start_after_end(self):
        with pytest.raises(ValidationError):
            self.system.statements.generate_statement(
                self.customer.id, self.checking.id,
                start_date=utcnow(), end_date=utcnow() - timedelta(days=2)
            )

    def test_only_owner(self, other_customer):
        with pytest.raises(AuthorizationError):
            self.system.statements.generate_statement(other_customer.id, self.checking.id)

    def test_to_dict(self):
        data = self.system.statements.generate_statement(self.customer.id, self.checking.id).to_dict()

        assert data["account_name"] == "Alice Smith - checking"
        assert data["opening_balance"] == "$1,000.00"
        assert data["closing_balance"] == "$750.00"
        assert data["total_debits"] == "$300.00"
        assert len(data["transactions"]) == 2
