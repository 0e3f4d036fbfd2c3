"""
Authentication and authorization dependencies
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Response
from starlette.requests import HTTPConnection

from ..accounts import AccountManager
from ..approvals import require_admin as check_admin
from ..bills import BillManager
from ..categorization import CategorizationClient, CategorizationService
from ..config import BoapayConfig, get_config
from ..crypto import CryptoTransferRequestManager
from ..errors import AuthenticationError
from ..international import InternationalManager
from ..loans import LoanManager
from ..notifications import NotificationHub
from ..operations import BankingOperations
from ..settlement import InternationalSettlementJob
from ..statements import StatementGenerator
from ..storage import StorageInterface, create_storage
from ..transactions import TransactionManager
from ..transfer_requests import TransferRequestManager
from ..users import User, UserManager


class BankingSystem:
    """Banking system with all components initialized"""

    def __init__(self, storage: StorageInterface, config: Optional[BoapayConfig] = None,
                 categorization_client: Optional[CategorizationClient] = None):
        self.config = config or get_config()
        self.storage = storage

        # Entity managers
        self.users = UserManager(self.storage, password_min_length=self.config.password_min_length)
        self.accounts = AccountManager(self.storage)
        self.transactions = TransactionManager(self.storage)
        self.bills = BillManager(self.storage)
        self.international = InternationalManager(self.storage)
        self.loans = LoanManager(self.storage)
        self.crypto_requests = CryptoTransferRequestManager(self.storage)
        self.transfer_requests = TransferRequestManager(self.storage)

        # Composite operations
        self.operations = BankingOperations(
            self.storage, self.accounts, self.transactions, self.bills,
            self.international, self.loans, self.crypto_requests, self.transfer_requests,
            approval_threshold=self.config.approval_threshold(),
            delivery_days=self.config.international_delivery_days,
            settlement_delay_seconds=self.config.international_settlement_delay_seconds
        )
        self.settlement_job = InternationalSettlementJob(self.international, self.operations)
        self.statements = StatementGenerator(self.accounts, self.transactions, self.users)
        self.categorization = CategorizationService(
            self.accounts, self.transactions,
            categorization_client or self._create_categorization_client()
        )
        self.notifications = NotificationHub()

    @classmethod
    def from_config(cls, config: Optional[BoapayConfig] = None) -> "BankingSystem":
        config = config or get_config()
        return cls(create_storage(config.database_url), config)

    def _create_categorization_client(self) -> CategorizationClient:
        """Create the categorization client; an empty URL disables it"""
        return CategorizationClient(
            base_url=self.config.categorization_url,
            api_key=self.config.categorization_api_key or None,
            model=self.config.categorization_model,
            timeout=self.config.categorization_timeout
        )

    def close(self) -> None:
        self.categorization.client.close()
        self.storage.close()


# Dependency to get banking system
def get_banking_system(conn: HTTPConnection) -> BankingSystem:
    return conn.app.state.banking_system


def create_session_token(user: User, config: BoapayConfig) -> str:
    """Signed JWT identifying the user"""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(hours=config.jwt_expiry_hours),
    }
    return jwt.encode(payload, config.jwt_secret, algorithm=config.jwt_algorithm)


def decode_session_token(token: str, config: BoapayConfig) -> int:
    """User id from a session token; AuthenticationError when invalid or expired"""
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.jwt_algorithm])
        return int(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Session expired")
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise AuthenticationError("Unauthorized")


def set_session_cookie(response: Response, user: User, config: BoapayConfig) -> None:
    response.set_cookie(
        key=config.session_cookie_name,
        value=create_session_token(user, config),
        max_age=config.jwt_expiry_hours * 3600,
        httponly=True,
        secure=config.session_cookie_secure,
        samesite="lax"
    )


def clear_session_cookie(response: Response, config: BoapayConfig) -> None:
    response.delete_cookie(config.session_cookie_name)


def get_optional_user(
    conn: HTTPConnection,
    system: BankingSystem = Depends(get_banking_system)
) -> Optional[User]:
    token = conn.cookies.get(system.config.session_cookie_name)
    if not token:
        return None
    user_id = decode_session_token(token, system.config)
    return system.users.get_user(user_id)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """Authenticated user, or 401"""
    if not user:
        raise AuthenticationError("Unauthorized")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    """Authenticated administrator, or 403"""
    check_admin(user)
    return user
