"""
Approval Workflow Module

State machine shared by loan applications, crypto transfer requests and
transfer requests:

    pending -> approved -> completed
    pending -> rejected

Only administrators move a request out of pending. Request records carry
the review fields status, reviewed_by, reviewed_at and review_notes.
"""

from typing import Any, Dict, Optional, Set
from enum import Enum

from .errors import AuthorizationError, ConflictError
from .storage import utcnow


class ApprovalStatus(Enum):
    """Review states of a request"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


ALLOWED_TRANSITIONS: Dict[ApprovalStatus, Set[ApprovalStatus]] = {
    ApprovalStatus.PENDING: {ApprovalStatus.APPROVED, ApprovalStatus.REJECTED},
    ApprovalStatus.APPROVED: {ApprovalStatus.COMPLETED},
    ApprovalStatus.REJECTED: set(),
    ApprovalStatus.COMPLETED: set(),
}


def check_transition(current: ApprovalStatus, target: ApprovalStatus) -> None:
    """Raise ConflictError unless current -> target is a legal move"""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ConflictError(
            f"Cannot move request from {current.value} to {target.value}"
        )


def require_admin(user) -> None:
    if user is None or not user.is_admin:
        raise AuthorizationError("Admin access required")


def apply_review(record: Any, status: ApprovalStatus, reviewer_id: int,
                 notes: Optional[str] = None) -> Any:
    """Move a request to approved or rejected and stamp the reviewer"""
    check_transition(record.status, status)
    now = utcnow()
    record.status = status
    record.reviewed_by = reviewer_id
    record.reviewed_at = now
    record.review_notes = notes
    record.updated_at = now
    return record


def mark_completed(record: Any) -> Any:
    check_transition(record.status, ApprovalStatus.COMPLETED)
    record.status = ApprovalStatus.COMPLETED
    record.updated_at = utcnow()
    return record
