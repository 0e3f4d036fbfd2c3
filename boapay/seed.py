"""
Demo data

Populates an empty store with a demo customer, an administrator, two funded
accounts, a little transaction history and some bills.
"""

from datetime import timedelta
from decimal import Decimal

from .accounts import AccountType
from .bills import BillStatus
from .logging_config import get_logger
from .storage import utcnow
from .transactions import TransactionDirection, TransactionType, generate_reference
from .users import UserRole

logger = get_logger("boapay.seed")

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "password123"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin12345"


def seed_demo_data(system) -> bool:
    """
    Seed the banking system once; returns False when users already exist
    """
    if system.users.list_users():
        return False

    with system.storage.atomic():
        demo = system.users.register(
            DEMO_USERNAME, DEMO_PASSWORD, "Demo", "User", "demo@boapay.com", "555-123-4567"
        )
        system.users.approve_user(demo.id)
        system.users.verify_user(demo.id)

        admin = system.users.register(
            ADMIN_USERNAME, ADMIN_PASSWORD, "Bank", "Admin", "admin@boapay.com", "555-000-0000",
            role=UserRole.ADMIN
        )
        system.users.approve_user(admin.id)
        system.users.verify_user(admin.id)

        checking = system.accounts.create_account(
            demo.id, "Everyday Checking", AccountType.CHECKING, "USD",
            balance=Decimal("5000.00"), account_number="1000123456"
        )
        savings = system.accounts.create_account(
            demo.id, "Premium Savings", AccountType.SAVINGS, "USD",
            balance=Decimal("15000.00"), account_number="2000123456"
        )

        history = [
            (checking.id, "3500.00", TransactionType.DEPOSIT, TransactionDirection.CREDIT, "Salary Deposit"),
            (checking.id, "120.45", TransactionType.WITHDRAWAL, TransactionDirection.DEBIT, "Grocery Store"),
            (checking.id, "45.00", TransactionType.WITHDRAWAL, TransactionDirection.DEBIT, "Gas Station"),
            (savings.id, "500.00", TransactionType.DEPOSIT, TransactionDirection.CREDIT, "Interest Payment"),
        ]
        for account_id, amount, kind, direction, description in history:
            system.transactions.create_transaction(
                account_id=account_id,
                amount=Decimal(amount),
                transaction_type=kind,
                direction=direction,
                description=description,
                reference=generate_reference("TRX")
            )

        now = utcnow()
        system.bills.create_bill(
            demo.id, "Electricity", "utility", Decimal("85.50"), "ELEC-9876543",
            "ELEC-REF-1", due_date=now + timedelta(days=7)
        )
        system.bills.create_bill(
            demo.id, "Internet", "utility", Decimal("65.99"), "NET-1234567",
            "NET-REF-1", due_date=now + timedelta(days=12)
        )
        system.bills.create_bill(
            demo.id, "Netflix", "subscription", Decimal("14.99"), "NFLX-5551212",
            "NFLX-REF-1", due_date=now - timedelta(days=3), status=BillStatus.PAID
        )

    logger.info("Demo data seeded")
    return True
