"""
Transaction Categorization Module

Fixed category catalog, owner-only categorization of ledger entries, and a
REST client for a chat-completions style service that suggests a category.
The client never raises: on any failure it returns the uncategorized
fallback.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from .accounts import AccountManager
from .errors import AuthorizationError, NotFoundError, ValidationError
from .logging_config import get_logger, log_action
from .transactions import Transaction, TransactionManager

logger = get_logger("boapay.categorization")


CATEGORIES: Dict[str, List[str]] = {
    "income": ["salary", "bonus", "interest", "dividends", "refund", "other"],
    "shopping": ["groceries", "clothing", "electronics", "home", "online", "other"],
    "food": ["restaurants", "coffee", "fast_food", "delivery", "other"],
    "utilities": ["electricity", "water", "gas", "internet", "phone", "other"],
    "transportation": ["fuel", "public_transit", "taxi", "parking", "maintenance", "other"],
    "housing": ["rent", "mortgage", "insurance", "repairs", "other"],
    "entertainment": ["streaming", "movies", "games", "events", "other"],
    "health": ["pharmacy", "doctor", "insurance", "fitness", "other"],
    "education": ["tuition", "books", "courses", "other"],
    "personal": ["care", "gifts", "donations", "other"],
    "travel": ["flights", "hotels", "car_rental", "other"],
    "business": ["supplies", "services", "advertising", "other"],
    "investments": ["stocks", "crypto", "retirement", "other"],
    "transfers": ["internal", "external", "international", "other"],
    "uncategorized": ["other"],
}

FALLBACK_CATEGORY = "uncategorized"
FALLBACK_SUBCATEGORY = "other"

SUGGESTION_PROMPT = """Please analyze this banking transaction and categorize it:

Transaction description: {description}
Amount: {amount}
Type: {transaction_type}

Return a JSON object with these fields:
- category: The primary category (one of: {categories})
- subcategory: More specific categorization
- tags: Array of relevant tags (1-3 tags)
- confidence: A number between 0 and 1 indicating your confidence level in this categorization

Only respond with valid JSON in this exact format, no additional text."""


@dataclass
class CategorySuggestion:
    """Category proposed for a transaction"""
    category: str
    subcategory: str
    tags: List[str] = field(default_factory=list)
    confidence: float = 0.0
    latency_ms: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "category": self.category,
            "subcategory": self.subcategory,
            "tags": self.tags,
            "confidence": self.confidence,
        }


class CategorizationClient:
    """REST client for the category suggestion service"""

    def __init__(
        self,
        base_url: str = "",
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.enabled = bool(self.base_url)
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def suggest(self, description: str, amount: str, transaction_type: str) -> CategorySuggestion:
        """
        Ask the service for a category

        Args:
            description: Transaction description
            amount: Amount as a string
            transaction_type: deposit, withdrawal, transfer, ...

        Returns:
            The service's suggestion, or the uncategorized fallback on
            any transport error, non-200 answer or malformed body
        """
        if not self.enabled:
            return self._fallback(0.0)

        start = time.time()
        try:
            headers = {}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"

            prompt = SUGGESTION_PROMPT.format(
                description=description,
                amount=amount,
                transaction_type=transaction_type,
                categories=", ".join(CATEGORIES)
            )
            response = self._client.post(
                f"{self.base_url}/chat/completions",
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": prompt}],
                    "response_format": {"type": "json_object"},
                },
                headers=headers
            )
            latency_ms = (time.time() - start) * 1000

            if response.status_code != 200:
                logger.warning(f"Categorization service returned {response.status_code}: {response.text}")
                return self._fallback(latency_ms)

            return self._parse(response.json(), latency_ms)

        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Categorization service call failed: {e}")
            return self._fallback((time.time() - start) * 1000)

    def _parse(self, body: dict, latency_ms: float) -> CategorySuggestion:
        content = body["choices"][0]["message"]["content"]
        if not content:
            raise ValueError("Empty response from categorization service")
        result = json.loads(content)

        category = str(result["category"]).lower()
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category in suggestion: {category}")
        tags = result.get("tags") or []
        if not isinstance(tags, list):
            raise ValueError("Suggestion tags must be a list")

        return CategorySuggestion(
            category=category,
            subcategory=str(result.get("subcategory") or FALLBACK_SUBCATEGORY),
            tags=[str(t) for t in tags][:3],
            confidence=min(max(float(result.get("confidence", 0.0)), 0.0), 1.0),
            latency_ms=latency_ms
        )

    def _fallback(self, latency_ms: float) -> CategorySuggestion:
        return CategorySuggestion(
            category=FALLBACK_CATEGORY,
            subcategory=FALLBACK_SUBCATEGORY,
            tags=[],
            confidence=0.0,
            latency_ms=latency_ms
        )

    def close(self):
        """Close the HTTP client"""
        self._client.close()


class CategorizationService:
    """Owner-checked categorization and suggestions for ledger entries"""

    def __init__(self, accounts: AccountManager, transactions: TransactionManager,
                 client: CategorizationClient):
        self.accounts = accounts
        self.transactions = transactions
        self.client = client

    @staticmethod
    def list_categories() -> List[str]:
        return list(CATEGORIES)

    @staticmethod
    def list_subcategories(category: str) -> List[str]:
        if category not in CATEGORIES:
            raise NotFoundError("Category not found")
        return list(CATEGORIES[category])

    def get_owned_transaction(self, user_id: int, transaction_id: int) -> Transaction:
        transaction = self.transactions.get_transaction(transaction_id)
        if not transaction:
            raise NotFoundError("Transaction not found")
        account = self.accounts.get_account(transaction.account_id)
        if not account or account.user_id != user_id:
            raise AuthorizationError("Access denied")
        return transaction

    def categorize_transaction(
        self,
        user_id: int,
        transaction_id: int,
        category: str,
        subcategory: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None
    ) -> Transaction:
        """Set category metadata on an owned transaction; balances are untouched"""
        self.get_owned_transaction(user_id, transaction_id)
        if category not in CATEGORIES:
            raise ValidationError(f"Unknown category: {category}")

        transaction = self.transactions.update_categorization(
            transaction_id, category, subcategory, tags, notes
        )
        log_action(
            logger, "info", f"Transaction categorized as {category}",
            user_id=user_id, action="categorize_transaction", resource="transaction",
            extra={"transaction_id": transaction_id}
        )
        return transaction

    def suggest_category(self, user_id: int, transaction_id: int) -> CategorySuggestion:
        transaction = self.get_owned_transaction(user_id, transaction_id)
        return self.client.suggest(
            transaction.description,
            str(transaction.amount),
            transaction.transaction_type.value
        )
