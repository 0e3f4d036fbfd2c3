"""
Account Management Module

Manages customer accounts (checking, savings and crypto holdings) and their
balances. Balances change only through update_balance, which the mutation
operations call inside an atomic storage block.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import List, Optional
from enum import Enum
import secrets

from .currency import is_fiat_currency, quantize_crypto, quantize_fiat
from .errors import (
    AuthorizationError, InsufficientFundsError, NotFoundError, ValidationError
)
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord, utcnow


class AccountType(Enum):
    """Account product types"""
    CHECKING = "checking"
    SAVINGS = "savings"
    CRYPTO = "crypto"


# First digit of generated account numbers per type
ACCOUNT_NUMBER_PREFIX = {
    AccountType.CHECKING: "1",
    AccountType.SAVINGS: "2",
    AccountType.CRYPTO: "3",
}


@dataclass
class Account(StorageRecord):
    """
    Customer account holding a single currency or crypto asset
    """
    user_id: int
    account_number: str
    account_name: str
    account_type: AccountType
    currency: str
    balance: Decimal = Decimal('0.00')
    is_crypto: bool = False

    def quantize(self, value: Decimal) -> Decimal:
        """Round an amount to this account's precision"""
        return quantize_crypto(value) if self.is_crypto else quantize_fiat(value)

    def has_funds(self, amount: Decimal) -> bool:
        return self.balance >= amount


class AccountManager:
    """
    Manages account lifecycle and balance updates
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "accounts"
        self.logger = get_logger("boapay.accounts")

    def create_account(
        self,
        user_id: int,
        account_name: str,
        account_type: AccountType,
        currency: str = "USD",
        balance: Decimal = Decimal('0'),
        account_number: Optional[str] = None
    ) -> Account:
        """
        Create a new account

        Args:
            user_id: Owner of the account
            account_name: Display name
            account_type: checking, savings or crypto
            currency: Fiat code for checking/savings, asset symbol for crypto
            balance: Opening balance
            account_number: Specific account number (generated if not provided)

        Returns:
            Created Account object
        """
        is_crypto = account_type == AccountType.CRYPTO
        currency = currency.upper()

        if not is_crypto and not is_fiat_currency(currency):
            raise ValidationError(f"Invalid currency code: {currency}")
        if is_crypto and is_fiat_currency(currency):
            raise ValidationError("Crypto accounts must hold a cryptocurrency")
        if balance < 0:
            raise ValidationError("Opening balance cannot be negative")

        with self.storage.atomic():
            if account_number is None:
                account_number = self._generate_account_number(account_type)
            elif self.get_account_by_number(account_number):
                raise ValidationError(f"Account number {account_number} already exists")

            now = utcnow()
            account = Account(
                id=0,
                created_at=now,
                updated_at=now,
                user_id=user_id,
                account_number=account_number,
                account_name=account_name,
                account_type=account_type,
                currency=currency,
                is_crypto=is_crypto
            )
            account.balance = account.quantize(balance)
            account.id = self.storage.insert(self.table_name, account.to_dict())

        log_action(
            self.logger, "info", f"Account created: {account.account_number}",
            user_id=user_id, action="create_account", resource="account",
            extra={"account_id": account.id, "account_type": account_type.value, "currency": currency}
        )
        return account

    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID"""
        data = self.storage.load(self.table_name, account_id)
        return Account.from_dict(data) if data else None

    def get_account_by_number(self, account_number: str) -> Optional[Account]:
        """Get account by account number"""
        results = self.storage.find(self.table_name, {"account_number": account_number})
        return Account.from_dict(results[0]) if results else None

    def get_owned_account(self, account_id: int, user_id: int) -> Account:
        """Load an account and check that it belongs to the user"""
        account = self.get_account(account_id)
        if not account:
            raise NotFoundError("Account not found")
        if account.user_id != user_id:
            raise AuthorizationError("Access denied")
        return account

    def list_accounts_for_user(self, user_id: int, crypto: Optional[bool] = None) -> List[Account]:
        """List a user's accounts, optionally only fiat (crypto=False) or crypto (crypto=True)"""
        accounts = [Account.from_dict(d) for d in self.storage.find(self.table_name, {"user_id": user_id})]
        if crypto is not None:
            accounts = [a for a in accounts if a.is_crypto == crypto]
        return accounts

    def find_crypto_account(self, user_id: int, symbol: str) -> Optional[Account]:
        """A user's holding account for a crypto symbol, if one exists"""
        for account in self.list_accounts_for_user(user_id, crypto=True):
            if account.currency == symbol.upper():
                return account
        return None

    def update_balance(self, account_id: int, delta: Decimal) -> Account:
        """
        Add a (possibly negative) delta to an account balance

        Raises:
            NotFoundError: If the account does not exist
            InsufficientFundsError: If the balance would go negative
        """
        with self.storage.atomic():
            account = self.get_account(account_id)
            if not account:
                raise NotFoundError("Account not found")

            new_balance = account.quantize(account.balance + delta)
            if new_balance < 0:
                raise InsufficientFundsError()

            account.balance = new_balance
            account.updated_at = utcnow()
            self.storage.save(self.table_name, account.id, account.to_dict())
            return account

    def _generate_account_number(self, account_type: AccountType) -> str:
        """Generate a unique 10 digit account number"""
        prefix = ACCOUNT_NUMBER_PREFIX[account_type]
        while True:
            candidate = prefix + "".join(str(secrets.randbelow(10)) for _ in range(9))
            if not self.get_account_by_number(candidate):
                return candidate
