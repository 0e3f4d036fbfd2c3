"""
Account Statement Module

Builds account statements for a date range: the transactions in the period
with opening/closing balances and credit/debit totals, derived from the
current balance and the ledger.
"""

from decimal import Decimal
from datetime import date, datetime, time, timedelta, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .accounts import Account, AccountManager
from .currency import format_currency
from .errors import NotFoundError, ValidationError
from .transactions import Transaction, TransactionDirection, TransactionManager
from .users import UserManager
from .storage import utcnow


DateInput = Union[date, datetime, None]


@dataclass
class Statement:
    """Account statement for one period"""
    account: Account
    account_holder: str
    start_date: datetime
    end_date: datetime
    opening_balance: Decimal
    closing_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    transactions: List[Transaction] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        currency = self.account.currency
        return {
            "account_number": self.account.account_number,
            "account_name": f"{self.account_holder} - {self.account.account_type.value}",
            "account_type": self.account.account_type.value,
            "currency": currency,
            "balance": format_currency(self.account.balance, currency),
            "start_date": self.start_date.date().isoformat(),
            "end_date": self.end_date.date().isoformat(),
            "opening_balance": format_currency(self.opening_balance, currency),
            "closing_balance": format_currency(self.closing_balance, currency),
            "total_credits": format_currency(self.total_credits, currency),
            "total_debits": format_currency(self.total_debits, currency),
            "transactions": [t.to_dict() for t in self.transactions],
        }


def _as_datetime(value: DateInput, end_of_day: bool = False) -> Optional[datetime]:
    """Dates cover the whole day; naive datetimes are taken as UTC"""
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end_of_day else time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class StatementGenerator:
    """Generates statements from account balances and transaction history"""

    def __init__(self, accounts: AccountManager, transactions: TransactionManager, users: UserManager):
        self.accounts = accounts
        self.transactions = transactions
        self.users = users

    def generate_statement(
        self,
        user_id: int,
        account_id: int,
        start_date: DateInput = None,
        end_date: DateInput = None
    ) -> Statement:
        """
        Statement of an owned account between start_date and end_date inclusive

        Defaults to the month up to now. Balances are reconstructed backwards
        from the current balance:
            closing = balance - net(transactions after end_date)
            opening = closing - net(transactions in the period)
        """
        account = self.accounts.get_owned_account(account_id, user_id)
        user = self.users.get_user(account.user_id)
        if not user:
            raise NotFoundError("User not found")

        end = _as_datetime(end_date, end_of_day=True) or utcnow()
        start = _as_datetime(start_date) or end - timedelta(days=30)
        if start > end:
            raise ValidationError("Start date must be before end date")

        history = self.transactions.list_for_account(account.id)
        in_period = [t for t in history if start <= t.created_at <= end]
        after_period = [t for t in history if t.created_at > end]

        closing = account.balance - sum((t.signed_amount for t in after_period), Decimal('0'))
        opening = closing - sum((t.signed_amount for t in in_period), Decimal('0'))

        credits = sum(
            (t.amount for t in in_period if t.direction == TransactionDirection.CREDIT), Decimal('0')
        )
        debits = sum(
            (t.amount for t in in_period if t.direction == TransactionDirection.DEBIT), Decimal('0')
        )

        return Statement(
            account=account,
            account_holder=user.full_name,
            start_date=start,
            end_date=end,
            opening_balance=account.quantize(opening),
            closing_balance=account.quantize(closing),
            total_credits=account.quantize(credits),
            total_debits=account.quantize(debits),
            transactions=in_period
        )
