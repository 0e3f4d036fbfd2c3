"""
Shared fixtures: an in-memory banking system with one customer and one admin
"""

import pytest
from decimal import Decimal

from boapay.accounts import AccountType
from boapay.api.auth import BankingSystem
from boapay.categorization import CategorizationClient
from boapay.config import BoapayConfig
from boapay.storage import InMemoryStorage
from boapay.users import UserRole


@pytest.fixture
def config():
    return BoapayConfig(
        database_url="memory://",
        seed_demo_data=False,
        international_settlement_delay_seconds=30,
        log_level="WARNING",
    )


@pytest.fixture
def system(config):
    banking_system = BankingSystem(InMemoryStorage(), config, categorization_client=CategorizationClient())
    yield banking_system
    banking_system.close()


@pytest.fixture
def customer(system):
    return system.users.register("alice", "secret-pass", "Alice", "Smith", "alice@example.com", "555-0100")


@pytest.fixture
def other_customer(system):
    return system.users.register("bob", "secret-pass", "Bob", "Jones", "bob@example.com", "555-0101")


@pytest.fixture
def admin(system):
    return system.users.register(
        "root", "admin-pass", "Bank", "Admin", "admin@example.com", "555-0000", role=UserRole.ADMIN
    )


@pytest.fixture
def checking(system, customer):
    return system.accounts.create_account(
        customer.id, "Checking", AccountType.CHECKING, "USD", balance=Decimal("1000.00")
    )
