"""
Cryptocurrency Module

Static reference data for the supported crypto assets and the transfer
requests customers raise to move crypto out of a holding account. Transfer
requests need admin approval before any balance moves.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum

from .approvals import ApprovalStatus
from .errors import NotFoundError, ValidationError
from .storage import StorageInterface, StorageRecord, utcnow


class Cryptocurrency(Enum):
    """Supported assets: symbol, name, USD price, EUR price, minimum purchase (USD)"""
    BTC = ("BTC", "Bitcoin", "50000.00", "46500.00", "10.00")
    ETH = ("ETH", "Ethereum", "3000.00", "2790.00", "10.00")
    SOL = ("SOL", "Solana", "150.00", "139.50", "5.00")
    USDT = ("USDT", "Tether", "1.00", "0.93", "1.00")

    def __init__(self, symbol: str, display_name: str, usd_rate: str, eur_rate: str,
                 min_purchase_amount: str):
        self.symbol = symbol
        self.display_name = display_name
        self.usd_rate = Decimal(usd_rate)
        self.eur_rate = Decimal(eur_rate)
        self.min_purchase_amount = Decimal(min_purchase_amount)

    def to_dict(self) -> Dict[str, str]:
        return {
            "symbol": self.symbol,
            "name": self.display_name,
            "usd_rate": str(self.usd_rate),
            "eur_rate": str(self.eur_rate),
            "min_purchase_amount": str(self.min_purchase_amount),
        }


def get_cryptocurrency(symbol: str) -> Cryptocurrency:
    """Resolve a crypto symbol, raising ValidationError for unknown symbols"""
    try:
        return Cryptocurrency[str(symbol).upper()]
    except KeyError:
        raise ValidationError(f"Unsupported cryptocurrency: {symbol}")


def list_cryptocurrencies() -> List[Cryptocurrency]:
    return list(Cryptocurrency)


@dataclass
class CryptoTransferRequest(StorageRecord):
    """
    Request to send crypto from a holding account, either to another
    account of this bank (by account number) or to an external wallet address
    """
    user_id: int
    source_account_id: int
    symbol: str
    amount: Decimal
    reference: str
    destination_account_number: Optional[str] = None
    destination_address: Optional[str] = None
    status: ApprovalStatus = ApprovalStatus.PENDING
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None


class CryptoTransferRequestManager:
    """Stores crypto transfer requests"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "crypto_transfer_requests"

    def create_request(
        self,
        user_id: int,
        source_account_id: int,
        symbol: str,
        amount: Decimal,
        reference: str,
        destination_account_number: Optional[str] = None,
        destination_address: Optional[str] = None
    ) -> CryptoTransferRequest:
        if not destination_account_number and not destination_address:
            raise ValidationError("A destination account number or address is required")

        now = utcnow()
        request = CryptoTransferRequest(
            id=0,
            created_at=now,
            updated_at=now,
            user_id=user_id,
            source_account_id=source_account_id,
            symbol=symbol,
            amount=amount,
            reference=reference,
            destination_account_number=destination_account_number,
            destination_address=destination_address
        )
        request.id = self.storage.insert(self.table_name, request.to_dict())
        return request

    def get_request(self, request_id: int) -> Optional[CryptoTransferRequest]:
        data = self.storage.load(self.table_name, request_id)
        return CryptoTransferRequest.from_dict(data) if data else None

    def require_request(self, request_id: int) -> CryptoTransferRequest:
        request = self.get_request(request_id)
        if not request:
            raise NotFoundError("Crypto transfer request not found")
        return request

    def list_requests_for_user(self, user_id: int) -> List[CryptoTransferRequest]:
        requests = [CryptoTransferRequest.from_dict(d) for d in self.storage.find(self.table_name, {"user_id": user_id})]
        return sorted(requests, key=lambda r: (r.created_at, r.id), reverse=True)

    def list_requests(self, status: Optional[ApprovalStatus] = None) -> List[CryptoTransferRequest]:
        filters = {"status": status} if status else {}
        return [CryptoTransferRequest.from_dict(d) for d in self.storage.find(self.table_name, filters)]

    def save_request(self, request: CryptoTransferRequest) -> CryptoTransferRequest:
        self.storage.save(self.table_name, request.id, request.to_dict())
        return request
