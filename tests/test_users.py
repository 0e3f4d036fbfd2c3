"""
Tests for user registration, credentials and admin flags
"""

import pytest

from boapay.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from boapay.storage import InMemoryStorage
from boapay.users import UserManager, UserRole


class TestUserManager:
    """Test UserManager functionality"""

    def setup_method(self):
        """Set up test fixtures"""
        self.storage = InMemoryStorage()
        self.users = UserManager(self.storage)

    def _register(self, username="alice", password="password123"):
        return self.users.register(username, password, "Alice", "Smith", "alice@example.com", "555-0100")

    def test_register(self):
        """New users are unapproved customers with a hashed password"""
        user = self._register()

        assert user.id == 1
        assert user.role == UserRole.CUSTOMER
        assert not user.is_approved
        assert not user.is_verified
        assert user.password_hash != "password123"
        assert user.full_name == "Alice Smith"

    def test_duplicate_username(self):
        self._register()
        with pytest.raises(ConflictError, match="Username already exists"):
            self._register()

    def test_short_password(self):
        with pytest.raises(ValidationError, match="at least 8"):
            self._register(password="short")

    def test_blank_username(self):
        with pytest.raises(ValidationError):
            self._register(username="   ")

    def test_authenticate(self):
        user = self._register()

        authenticated = self.users.authenticate("alice", "password123")

        assert authenticated.id == user.id
        assert authenticated.last_login is not None
        assert self.users.get_user(user.id).last_login is not None

    @pytest.mark.parametrize("username,password", [
        ("alice", "wrong-password"),
        ("nobody", "password123"),
    ])
    def test_authenticate_failures(self, username, password):
        """Unknown user and wrong password fail the same way"""
        self._register()
        with pytest.raises(AuthenticationError, match="Invalid username or password"):
            self.users.authenticate(username, password)

    def test_public_dict_hides_credentials(self):
        data = self._register().to_public_dict()

        assert "password_hash" not in data
        assert "password_salt" not in data
        assert data["username"] == "alice"
        assert data["role"] == "customer"

    def test_admin_flags(self):
        user = self._register()

        self.users.approve_user(user.id)
        self.users.verify_user(user.id)
        self.users.set_role(user.id, UserRole.ADMIN)

        stored = self.users.get_user(user.id)
        assert stored.is_approved
        assert stored.is_verified
        assert stored.is_admin

    def test_list_users_by_role(self):
        self._register("alice")
        bob = self._register("bob")
        self.users.set_role(bob.id, UserRole.ADMIN)

        assert [u.username for u in self.users.list_users()] == ["alice", "bob"]
        assert [u.username for u in self.users.list_users(UserRole.ADMIN)] == ["bob"]

    def test_unknown_user(self):
        with pytest.raises(NotFoundError):
            self.users.approve_user(99)
