"""
Tests for transaction categorization and the suggestion client
"""

import json
import pytest
from decimal import Decimal
from unittest.mock import Mock, patch
import httpx

from boapay.categorization import (
    CATEGORIES, CategorizationClient, CategorizationService, CategorySuggestion
)
from boapay.errors import AuthorizationError, NotFoundError, ValidationError
from boapay.transactions import TransactionDirection, TransactionType, generate_reference


def _completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestCategorizationClient:
    """Test the suggestion service client"""

    def setup_method(self):
        """Set up test fixtures"""
        self.client = CategorizationClient(base_url="http://categorizer.test/v1", api_key="test-key")

    def teardown_method(self):
        self.client.close()

    def test_disabled_without_url(self):
        client = CategorizationClient()

        result = client.suggest("Coffee shop", "4.50", "withdrawal")

        assert not client.enabled
        assert result.category == "uncategorized"
        assert result.subcategory == "other"
        assert result.confidence == 0.0
        client.close()

    @patch('httpx.Client.post')
    def test_successful_suggestion(self, mock_post):
        """Test a well formed suggestion"""
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.json.return_value = _completion(json.dumps({
            "category": "Food",
            "subcategory": "coffee",
            "tags": ["morning", "cafe", "daily", "extra"],
            "confidence": 0.92
        }))
        mock_post.return_value = mock_response

        result = self.client.suggest("Starbucks", "4.50", "withdrawal")

        assert result.category == "food"
        assert result.subcategory == "coffee"
        assert result.tags == ["morning", "cafe", "daily"]
        assert result.confidence == 0.92

        args, kwargs = mock_post.call_args
        assert args[0] == "http://categorizer.test/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert "Starbucks" in kwargs["json"]["messages"][0]["content"]

    @patch('httpx.Client.post')
    def test_confidence_is_clamped(self, mock_post):
        mock_response = Mock()
        mock_response.status_code = 200
        mock_response.json.return_value = _completion(json.dumps({"category": "income", "confidence": 7}))
        mock_post.return_value = mock_response

        assert self.client.suggest("Payroll", "3500", "deposit").confidence == 1.0

    @patch('httpx.Client.post')
    def test_connection_error_falls_back(self, mock_post):
        """Test fallback when the service is unreachable"""
        mock_post.side_effect = httpx.ConnectError("Connection failed")

        result = self.client.suggest("Starbucks", "4.50", "withdrawal")

        assert result.category == "uncategorized"
        assert result.tags == []

    @patch('httpx.Client.post')
    def test_server_error_falls_back(self, mock_post):
        mock_response = Mock()
        mock_response.status_code = 500
        mock_response.text = "Internal Server Error"
        mock_post.return_value = mock_response

        assert self.client.suggest("Starbucks", "4.50", "withdrawal").category == "uncategorized"

    @pytest.mark.parametrize("body", [
        {"choices": []},
        {"unexpected": True},
        _completion("not json at all"),
        _completion(""),
        _completion(json.dumps({"category": "astrology"})),
        _completion(json.dumps({"category": "food", "tags": "coffee"})),
    ])
    def test_malformed_body_falls_back(self, body):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        client = CategorizationClient(base_url="http://categorizer.test/v1", transport=transport)

        assert client.suggest("Starbucks", "4.50", "withdrawal").category == "uncategorized"
        client.close()

    def test_timeout_falls_back(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = CategorizationClient(base_url="http://categorizer.test/v1",
                                      transport=httpx.MockTransport(handler))

        assert client.suggest("Starbucks", "4.50", "withdrawal").category == "uncategorized"
        client.close()

    def test_suggestion_to_dict(self):
        data = CategorySuggestion("food", "coffee", ["cafe"], 0.5, 12.0).to_dict()
        assert data == {"category": "food", "subcategory": "coffee", "tags": ["cafe"], "confidence": 0.5}


class TestCategorizationService:
    """Test owner-only categorization of ledger entries"""

    @pytest.fixture(autouse=True)
    def setup(self, system, customer, checking):
        self.system = system
        self.customer = customer
        self.transaction = system.transactions.create_transaction(
            account_id=checking.id,
            amount=Decimal("4.50"),
            transaction_type=TransactionType.WITHDRAWAL,
            direction=TransactionDirection.DEBIT,
            description="Starbucks",
            reference=generate_reference("TRX")
        )

    def test_categories(self):
        assert self.system.categorization.list_categories() == list(CATEGORIES)
        assert "coffee" in self.system.categorization.list_subcategories("food")
        with pytest.raises(NotFoundError):
            self.system.categorization.list_subcategories("astrology")

    def test_categorize(self):
        updated = self.system.categorization.categorize_transaction(
            self.customer.id, self.transaction.id, "food", "coffee", ["cafe"], "morning latte"
        )

        assert updated.category == "food"
        assert updated.notes == "morning latte"
        assert self.system.transactions.get_transaction(self.transaction.id).subcategory == "coffee"

    def test_unknown_category(self):
        with pytest.raises(ValidationError, match="Unknown category"):
            self.system.categorization.categorize_transaction(self.customer.id, self.transaction.id, "astrology")

    def test_other_users_transaction(self, other_customer):
        with pytest.raises(AuthorizationError):
            self.system.categorization.categorize_transaction(other_customer.id, self.transaction.id, "food")
        with pytest.raises(NotFoundError):
            self.system.categorization.categorize_transaction(self.customer.id, 999, "food")

    def test_suggest_without_service(self):
        """The default client is disabled and always returns the fallback"""
        suggestion = self.system.categorization.suggest_category(self.customer.id, self.transaction.id)
        assert suggestion.category == "uncategorized"

    def test_suggest_uses_client(self):
        client = Mock()
        client.suggest.return_value = CategorySuggestion("food", "coffee", ["cafe"], 0.9)
        service = CategorizationService(self.system.accounts, self.system.transactions, client)

        assert service.suggest_category(self.customer.id, self.transaction.id).category == "food"
        client.suggest.assert_called_once_with("Starbucks", "4.50", "withdrawal")
