"""
User Management Module

Registration, credential verification and the admin-managed role, approval
and verification flags. Users are never deleted.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .storage import StorageInterface, StorageRecord, utcnow


class UserRole(Enum):
    """Roles a user can hold"""
    CUSTOMER = "customer"
    ADMIN = "admin"


@dataclass
class User(StorageRecord):
    """Bank customer or administrator"""
    username: str
    password_hash: str
    password_salt: str
    first_name: str
    last_name: str
    email: str
    phone: str
    role: UserRole = UserRole.CUSTOMER
    is_verified: bool = False
    is_approved: bool = False
    last_login: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_public_dict(self) -> Dict[str, Any]:
        """User data without credentials"""
        data = self.to_dict()
        data.pop('password_hash', None)
        data.pop('password_salt', None)
        return data


class UserManager:
    """Creates users, checks credentials and applies admin flag changes"""

    def __init__(self, storage: StorageInterface, password_min_length: int = 8):
        self.storage = storage
        self.password_min_length = password_min_length
        self.table_name = "users"
        self.logger = get_logger("boapay.users")

    def register(
        self,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
        email: str,
        phone: str,
        role: UserRole = UserRole.CUSTOMER
    ) -> User:
        """
        Register a new user

        Raises:
            ValidationError: If the username is blank or the password is too short
            ConflictError: If the username is taken
        """
        username = username.strip()
        if not username:
            raise ValidationError("Username is required")
        if len(password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters"
            )

        with self.storage.atomic():
            if self.get_user_by_username(username):
                raise ConflictError("Username already exists")

            now = utcnow()
            salt = self._generate_salt()
            user = User(
                id=0,
                created_at=now,
                updated_at=now,
                username=username,
                password_hash=self._hash_password(password, salt),
                password_salt=salt,
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                role=role
            )
            user.id = self.storage.insert(self.table_name, user.to_dict())

        log_action(
            self.logger, "info", f"User registered: {username}",
            user_id=user.id, action="register", resource="user"
        )
        return user

    def authenticate(self, username: str, password: str) -> User:
        """Verify credentials, raising AuthenticationError on any mismatch"""
        user = self.get_user_by_username(username)
        if not user or not self._verify_password(user, password):
            log_action(
                self.logger, "warning", "Login failed",
                action="login_failed", resource="user", extra={"username": username}
            )
            raise AuthenticationError("Invalid username or password")

        user.last_login = utcnow()
        user.updated_at = user.last_login
        self._save_user(user)
        return user

    def get_user(self, user_id: int) -> Optional[User]:
        data = self.storage.load(self.table_name, user_id)
        return User.from_dict(data) if data else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        results = self.storage.find(self.table_name, {"username": username})
        return User.from_dict(results[0]) if results else None

    def require_user(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        users = [User.from_dict(d) for d in self.storage.load_all(self.table_name)]
        if role:
            users = [u for u in users if u.role == role]
        return users

    def set_role(self, user_id: int, role: UserRole) -> User:
        user = self.require_user(user_id)
        user.role = role
        user.updated_at = utcnow()
        self._save_user(user)
        log_action(self.logger, "info", f"Role set to {role.value}",
                   user_id=user_id, action="set_role", resource="user")
        return user

    def approve_user(self, user_id: int) -> User:
        user = self.require_user(user_id)
        user.is_approved = True
        user.updated_at = utcnow()
        self._save_user(user)
        return user

    def verify_user(self, user_id: int) -> User:
        user = self.require_user(user_id)
        user.is_verified = True
        user.updated_at = utcnow()
        self._save_user(user)
        return user

    def _save_user(self, user: User) -> None:
        self.storage.save(self.table_name, user.id, user.to_dict())

    def _generate_salt(self) -> str:
        """Generate random salt for password hashing"""
        return secrets.token_hex(16)

    def _hash_password(self, password: str, salt: str) -> str:
        """Hash password with salt using scrypt"""
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=16384, r=8, p=1
        ).hex()

    def _verify_password(self, user: User, password: str) -> bool:
        if not user.password_hash or not user.password_salt:
            return False
        expected = self._hash_password(password, user.password_salt)
        return hmac.compare_digest(expected, user.password_hash)
