"""
Transaction Log Module

Immutable ledger entries, one per balance movement. Paired debit/credit
entries produced by one operation share a reference string. Only the
categorization metadata (category, subcategory, tags, notes) may change after
creation.
"""

from decimal import Decimal
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from enum import Enum
import secrets
import string

from .errors import NotFoundError
from .logging_config import get_logger
from .storage import StorageInterface, StorageRecord, utcnow


REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


class TransactionType(Enum):
    """Types of ledger movements"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    CRYPTO_PURCHASE = "crypto_purchase"
    CRYPTO_EXCHANGE = "crypto_exchange"
    CRYPTO_TRANSFER = "crypto_transfer"
    LOAN_DISBURSEMENT = "loan_disbursement"
    REFUND = "refund"


class TransactionDirection(Enum):
    """Whether the entry takes money out of or puts money into its account"""
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionStatus(Enum):
    """States of a transaction"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Transaction(StorageRecord):
    """
    Ledger entry against a single account. Amount is always positive;
    direction says which way it moved the balance.
    """
    account_id: int
    amount: Decimal
    transaction_type: TransactionType
    direction: TransactionDirection
    description: str
    reference: str
    status: TransactionStatus = TransactionStatus.COMPLETED
    sender_account: Optional[str] = None
    receiver_account: Optional[str] = None

    # Currency conversion metadata
    original_amount: Optional[Decimal] = None
    original_currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None

    # Categorization metadata
    category: Optional[str] = None
    subcategory: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affected the balance"""
        return self.amount if self.direction == TransactionDirection.CREDIT else -self.amount


def generate_reference(prefix: str) -> str:
    """Reference string such as TRX4K9QZ2MA: prefix plus 8 random characters"""
    return prefix + "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(8))


class TransactionManager:
    """
    Records ledger entries and serves transaction history
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "transactions"
        self.logger = get_logger("boapay.transactions")

    def create_transaction(
        self,
        account_id: int,
        amount: Decimal,
        transaction_type: TransactionType,
        direction: TransactionDirection,
        description: str,
        reference: str,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        sender_account: Optional[str] = None,
        receiver_account: Optional[str] = None,
        original_amount: Optional[Decimal] = None,
        original_currency: Optional[str] = None,
        exchange_rate: Optional[Decimal] = None
    ) -> Transaction:
        """
        Record a ledger entry

        Args:
            account_id: Account whose balance the entry describes
            amount: Positive amount in the account's currency
            transaction_type: Kind of movement
            direction: DEBIT or CREDIT
            description: Free text shown to the customer
            reference: Shared reference of the operation that produced it
            status: Entry status, completed unless stated otherwise
            sender_account: Counter-party account number for credits
            receiver_account: Counter-party account number for debits
            original_amount: Amount before conversion, when converted
            original_currency: Currency of original_amount
            exchange_rate: Rate applied to the conversion
        """
        if amount <= 0:
            raise ValueError("Transaction amount must be positive")

        now = utcnow()
        transaction = Transaction(
            id=0,
            created_at=now,
            updated_at=now,
            account_id=account_id,
            amount=amount,
            transaction_type=transaction_type,
            direction=direction,
            description=description,
            reference=reference,
            status=status,
            sender_account=sender_account,
            receiver_account=receiver_account,
            original_amount=original_amount,
            original_currency=original_currency,
            exchange_rate=exchange_rate
        )
        transaction.id = self.storage.insert(self.table_name, transaction.to_dict())
        return transaction

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID"""
        data = self.storage.load(self.table_name, transaction_id)
        return Transaction.from_dict(data) if data else None

    def get_by_reference(self, reference: str) -> List[Transaction]:
        """All entries sharing a reference string"""
        return [Transaction.from_dict(d) for d in self.storage.find(self.table_name, {"reference": reference})]

    def list_for_account(self, account_id: int) -> List[Transaction]:
        """Account history, newest first"""
        return self._newest_first(
            Transaction.from_dict(d) for d in self.storage.find(self.table_name, {"account_id": account_id})
        )

    def list_for_accounts(self, account_ids: Iterable[int]) -> List[Transaction]:
        """History across several accounts, newest first"""
        wanted = set(account_ids)
        return self._newest_first(
            Transaction.from_dict(d) for d in self.storage.load_all(self.table_name)
            if d["account_id"] in wanted
        )

    def update_categorization(
        self,
        transaction_id: int,
        category: str,
        subcategory: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None
    ) -> Transaction:
        """Replace a transaction's categorization metadata"""
        transaction = self.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")

        transaction.category = category
        transaction.subcategory = subcategory
        transaction.tags = list(tags or [])
        transaction.notes = notes
        transaction.updated_at = utcnow()
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())
        return transaction

    @staticmethod
    def _newest_first(transactions: Iterable[Transaction]) -> List[Transaction]:
        return sorted(transactions, key=lambda t: (t.created_at, t.id), reverse=True)
