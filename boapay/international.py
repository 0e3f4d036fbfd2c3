"""
International Transfers Module

External (foreign) bank accounts registered by users, and the international
transfers sent to them. Transfers start pending and are settled later by the
settlement job; their state lives entirely in storage so settlement survives
a restart.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
from enum import Enum

from .currency import get_currency
from .errors import AuthorizationError, NotFoundError, ValidationError
from .storage import StorageInterface, StorageRecord, utcnow


class InternationalTransferStatus(Enum):
    """International transfer lifecycle"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


EXTERNAL_ACCOUNT_FIELDS = (
    "account_name", "bank_name", "account_number", "swift_code",
    "iban", "routing_number", "country", "currency",
)


@dataclass
class ExternalBankAccount(StorageRecord):
    """Foreign bank account a user can send money to"""
    user_id: int
    account_name: str
    bank_name: str
    account_number: str
    country: str
    currency: str
    swift_code: Optional[str] = None
    iban: Optional[str] = None
    routing_number: Optional[str] = None


@dataclass
class InternationalTransfer(StorageRecord):
    """Cross-currency transfer to an external bank account"""
    source_account_id: int
    external_account_id: int
    amount: Decimal
    source_currency: str
    target_currency: str
    exchange_rate: Decimal
    fees: Decimal
    converted_amount: Decimal
    total_debit: Decimal
    reference: str
    purpose_of_transfer: str
    estimated_delivery: datetime
    settle_after: datetime
    status: InternationalTransferStatus = InternationalTransferStatus.PENDING
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status in (InternationalTransferStatus.PENDING, InternationalTransferStatus.PROCESSING)


class InternationalManager:
    """Stores external bank accounts and international transfers"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.external_table = "external_bank_accounts"
        self.transfers_table = "international_transfers"

    # External bank accounts

    def create_external_account(
        self,
        user_id: int,
        account_name: str,
        bank_name: str,
        account_number: str,
        country: str,
        currency: str,
        swift_code: Optional[str] = None,
        iban: Optional[str] = None,
        routing_number: Optional[str] = None
    ) -> ExternalBankAccount:
        currency = get_currency(currency).code

        now = utcnow()
        account = ExternalBankAccount(
            id=0,
            created_at=now,
            updated_at=now,
            user_id=user_id,
            account_name=account_name,
            bank_name=bank_name,
            account_number=account_number,
            country=country,
            currency=currency,
            swift_code=swift_code,
            iban=iban,
            routing_number=routing_number
        )
        account.id = self.storage.insert(self.external_table, account.to_dict())
        return account

    def get_external_account(self, account_id: int) -> Optional[ExternalBankAccount]:
        data = self.storage.load(self.external_table, account_id)
        return ExternalBankAccount.from_dict(data) if data else None

    def get_owned_external_account(self, account_id: int, user_id: int) -> ExternalBankAccount:
        account = self.get_external_account(account_id)
        if not account:
            raise NotFoundError("External bank account not found")
        if account.user_id != user_id:
            raise AuthorizationError("Access denied")
        return account

    def list_external_accounts_for_user(self, user_id: int) -> List[ExternalBankAccount]:
        return [ExternalBankAccount.from_dict(d) for d in self.storage.find(self.external_table, {"user_id": user_id})]

    def update_external_account(self, account_id: int, changes: Dict[str, Any]) -> ExternalBankAccount:
        """Apply a partial update; only registration fields may change"""
        account = self.get_external_account(account_id)
        if not account:
            raise NotFoundError("External bank account not found")

        unknown = set(changes) - set(EXTERNAL_ACCOUNT_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        for key, value in changes.items():
            if key == "currency":
                value = get_currency(value).code
            setattr(account, key, value)
        account.updated_at = utcnow()
        self.storage.save(self.external_table, account.id, account.to_dict())
        return account

    def delete_external_account(self, account_id: int) -> bool:
        return self.storage.delete(self.external_table, account_id)

    # International transfers

    def create_transfer(self, transfer: InternationalTransfer) -> InternationalTransfer:
        transfer.id = self.storage.insert(self.transfers_table, transfer.to_dict())
        return transfer

    def get_transfer(self, transfer_id: int) -> Optional[InternationalTransfer]:
        data = self.storage.load(self.transfers_table, transfer_id)
        return InternationalTransfer.from_dict(data) if data else None

    def list_transfers_for_account(self, account_id: int) -> List[InternationalTransfer]:
        """Transfers sent from an account, newest first"""
        return self._newest_first(
            InternationalTransfer.from_dict(d)
            for d in self.storage.find(self.transfers_table, {"source_account_id": account_id})
        )

    def list_transfers_for_accounts(self, account_ids: Iterable[int]) -> List[InternationalTransfer]:
        wanted = set(account_ids)
        return self._newest_first(
            InternationalTransfer.from_dict(d) for d in self.storage.load_all(self.transfers_table)
            if d["source_account_id"] in wanted
        )

    def list_due_transfers(self, now: Optional[datetime] = None) -> List[InternationalTransfer]:
        """Pending transfers whose settlement time has passed"""
        now = now or utcnow()
        due = []
        for data in self.storage.load_all(self.transfers_table):
            transfer = InternationalTransfer.from_dict(data)
            if transfer.is_pending and transfer.settle_after <= now:
                due.append(transfer)
        return due

    def save_transfer(self, transfer: InternationalTransfer) -> InternationalTransfer:
        transfer.updated_at = utcnow()
        self.storage.save(self.transfers_table, transfer.id, transfer.to_dict())
        return transfer

    @staticmethod
    def _newest_first(transfers: Iterable[InternationalTransfer]) -> List[InternationalTransfer]:
        return sorted(transfers, key=lambda t: (t.created_at, t.id), reverse=True)
