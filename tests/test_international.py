"""
Tests for external bank accounts, international transfers and settlement
"""

import asyncio
import pytest
from decimal import Decimal
from datetime import timedelta

from boapay.errors import (
    AuthorizationError, ConflictError, InsufficientFundsError, NotFoundError, ValidationError
)
from boapay.international import InternationalManager, InternationalTransferStatus
from boapay.settlement import InternationalSettlementJob
from boapay.operations import BankingOperations
from boapay.storage import utcnow
from boapay.transactions import TransactionDirection, TransactionType


class TestExternalBankAccounts:
    """Test external account registration"""

    @pytest.fixture(autouse=True)
    def setup(self, system, customer):
        self.international = system.international
        self.customer = customer

    def _register(self, currency="EUR"):
        return self.international.create_external_account(
            self.customer.id, "Hans Muller", "Deutsche Bank", "DE89370400440532013000", "DE", currency,
            swift_code="DEUTDEFF", iban="DE89370400440532013000"
        )

    def test_create_and_list(self):
        external = self._register("eur")

        assert external.currency == "EUR"
        assert [a.id for a in self.international.list_external_accounts_for_user(self.customer.id)] == [external.id]

    def test_unsupported_currency(self):
        with pytest.raises(ValidationError):
            self._register("XYZ")

    def test_ownership(self, other_customer):
        external = self._register()

        with pytest.raises(AuthorizationError):
            self.international.get_owned_external_account(external.id, other_customer.id)
        with pytest.raises(NotFoundError):
            self.international.get_owned_external_account(99, self.customer.id)

    def test_update(self):
        external = self._register()

        updated = self.international.update_external_account(external.id, {"bank_name": "Commerzbank", "currency": "gbp"})

        assert updated.bank_name == "Commerzbank"
        assert updated.currency == "GBP"
        with pytest.raises(ValidationError, match="Unknown fields"):
            self.international.update_external_account(external.id, {"user_id": 99})

    def test_delete(self):
        external = self._register()

        assert self.international.delete_external_account(external.id)
        assert self.international.get_external_account(external.id) is None


class TestInternationalTransfers:
    """Test sending, settling and failing international transfers"""

    @pytest.fixture(autouse=True)
    def setup(self, system, customer, checking, admin):
        self.system = system
        self.customer = customer
        self.checking = checking
        self.admin = admin
        self.external = system.international.create_external_account(
            customer.id, "Hans Muller", "Deutsche Bank", "DE89370400440532013000", "DE", "EUR"
        )

    def _send(self, amount="500.00"):
        return self.system.operations.send_international_transfer(
            self.customer.id, self.checking.id, self.external.id, amount, "Family support"
        )

    def test_send_debits_amount_plus_fee(self):
        result = self._send()
        transfer = result.transfer

        assert transfer.status == InternationalTransferStatus.PENDING
        assert transfer.fees == Decimal("5.00")
        assert transfer.total_debit == Decimal("505.00")
        assert transfer.converted_amount == Decimal("460.35")
        assert transfer.exchange_rate == Decimal("0.930000")
        assert transfer.reference.startswith("INT")
        assert transfer.settle_after > transfer.created_at
        assert transfer.estimated_delivery - transfer.created_at == timedelta(days=2)
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("495.00")

        debit = self.system.transactions.get_by_reference(transfer.reference)
        assert len(debit) == 1
        assert debit[0].amount == Decimal("505.00")
        assert debit[0].direction == TransactionDirection.DEBIT

    def test_fee_counts_toward_funds_check(self):
        """1000.00 balance cannot cover 995 + 9.95 fee"""
        with pytest.raises(InsufficientFundsError, match="including fees"):
            self._send("995.00")
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("1000.00")
        assert self.system.storage.count("international_transfers") == 0

    def test_external_account_must_be_owned(self, other_customer):
        theirs = self.system.international.create_external_account(
            other_customer.id, "Someone", "Bank", "GB001", "GB", "GBP"
        )
        with pytest.raises(AuthorizationError):
            self.system.operations.send_international_transfer(
                self.customer.id, self.checking.id, theirs.id, "10", "Gift"
            )

    def test_settlement_completes_only_due_transfers(self):
        transfer = self._send().transfer
        job = self.system.settlement_job

        assert job.run_once(now=transfer.created_at) == []
        assert self.system.international.get_transfer(transfer.id).status == InternationalTransferStatus.PENDING

        settled = job.run_once(now=transfer.settle_after + timedelta(seconds=1))

        assert [t.id for t in settled] == [transfer.id]
        stored = self.system.international.get_transfer(transfer.id)
        assert stored.status == InternationalTransferStatus.COMPLETED
        assert stored.completed_at is not None
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("495.00")

    def test_settlement_survives_restart(self):
        """A fresh job over the same storage picks up pending transfers"""
        transfer = self._send().transfer
        international = InternationalManager(self.system.storage)
        operations = BankingOperations(
            self.system.storage, self.system.accounts, self.system.transactions, self.system.bills,
            international, self.system.loans, self.system.crypto_requests, self.system.transfer_requests
        )
        job = InternationalSettlementJob(international, operations)

        settled = job.run_once(now=utcnow() + timedelta(minutes=5))

        assert [t.id for t in settled] == [transfer.id]

    def test_completed_transfer_is_not_settled_again(self):
        transfer = self._send().transfer
        later = transfer.settle_after + timedelta(seconds=1)
        self.system.settlement_job.run_once(now=later)

        assert self.system.settlement_job.run_once(now=later) == []
        with pytest.raises(ConflictError, match="already completed"):
            self.system.operations.complete_international_transfer(transfer.id)

    def test_fail_refunds_total_debit(self):
        transfer = self._send().transfer

        failed = self.system.operations.fail_international_transfer(self.admin, transfer.id, "Beneficiary bank rejected")

        assert failed.status == InternationalTransferStatus.FAILED
        assert failed.failure_reason == "Beneficiary bank rejected"
        assert self.system.accounts.get_account(self.checking.id).balance == Decimal("1000.00")

        entries = self.system.transactions.get_by_reference(transfer.reference)
        refund = next(t for t in entries if t.direction == TransactionDirection.CREDIT)
        assert refund.transaction_type == TransactionType.REFUND
        assert refund.amount == Decimal("505.00")

        assert self.system.settlement_job.run_once(now=transfer.settle_after + timedelta(seconds=1)) == []

    def test_only_admins_fail_transfers(self):
        transfer = self._send().transfer
        with pytest.raises(AuthorizationError):
            self.system.operations.fail_international_transfer(self.customer, transfer.id)

    def test_list_transfers_newest_first(self):
        first = self._send("10").transfer
        second = self._send("20").transfer

        listed = self.system.international.list_transfers_for_account(self.checking.id)

        assert [t.id for t in listed] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_background_job_polls_until_cancelled(self):
        self.system.operations.settlement_delay_seconds = 0
        transfer = self._send().transfer

        task = asyncio.create_task(self.system.settlement_job.run_forever(interval=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert self.system.international.get_transfer(transfer.id).status == InternationalTransferStatus.COMPLETED
