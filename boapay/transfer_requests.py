"""
Transfer Requests Module

Intra-bank transfers queued for admin review, used for amounts above the
direct-transfer threshold when one is configured.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import List, Optional

from .approvals import ApprovalStatus
from .errors import NotFoundError
from .storage import StorageInterface, StorageRecord, utcnow


@dataclass
class TransferRequest(StorageRecord):
    """Pending intra-bank transfer awaiting review"""
    user_id: int
    from_account_number: str
    to_account_number: str
    amount: Decimal
    description: str
    reference: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None


class TransferRequestManager:

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "transfer_requests"

    def create_request(
        self,
        user_id: int,
        from_account_number: str,
        to_account_number: str,
        amount: Decimal,
        description: str,
        reference: str
    ) -> TransferRequest:
        now = utcnow()
        request = TransferRequest(
            id=0,
            created_at=now,
            updated_at=now,
            user_id=user_id,
            from_account_number=from_account_number,
            to_account_number=to_account_number,
            amount=amount,
            description=description,
            reference=reference
        )
        request.id = self.storage.insert(self.table_name, request.to_dict())
        return request

    def get_request(self, request_id: int) -> Optional[TransferRequest]:
        data = self.storage.load(self.table_name, request_id)
        return TransferRequest.from_dict(data) if data else None

    def require_request(self, request_id: int) -> TransferRequest:
        request = self.get_request(request_id)
        if not request:
            raise NotFoundError("Transfer request not found")
        return request

    def list_requests_for_user(self, user_id: int) -> List[TransferRequest]:
        requests = [TransferRequest.from_dict(d) for d in self.storage.find(self.table_name, {"user_id": user_id})]
        return sorted(requests, key=lambda r: (r.created_at, r.id), reverse=True)

    def list_requests(self, status: Optional[ApprovalStatus] = None) -> List[TransferRequest]:
        filters = {"status": status} if status else {}
        return [TransferRequest.from_dict(d) for d in self.storage.find(self.table_name, filters)]

    def save_request(self, request: TransferRequest) -> TransferRequest:
        self.storage.save(self.table_name, request.id, request.to_dict())
        return request
