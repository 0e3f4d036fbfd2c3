"""
Error Taxonomy Module

Every rejection raised by the banking core derives from BankingError and
carries the HTTP status the API layer answers with.
"""

from typing import Optional


class BankingError(Exception):
    """Base class for all rejections raised by the banking core"""
    status_code = 500
    default_message = "Banking operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BankingError):
    """Malformed or missing input"""
    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(BankingError):
    """Missing or invalid credentials/session"""
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(BankingError):
    """Acting on another user's resource or missing the admin role"""
    status_code = 403
    default_message = "Access denied"


class NotFoundError(BankingError):
    """Unknown account, bill, user or request"""
    status_code = 404
    default_message = "Not found"


class ConflictError(BankingError):
    """Duplicate resource or an invalid state transition"""
    status_code = 409
    default_message = "Conflict"


class BusinessRuleError(BankingError):
    """Request is well formed but violates a banking rule"""
    status_code = 400
    default_message = "Business rule violated"


class InsufficientFundsError(BusinessRuleError):
    """Balance does not cover the requested debit"""
    default_message = "Insufficient funds"
