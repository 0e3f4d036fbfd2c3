"""
Banking Operations Module

Composite, user-facing mutations built from the entity managers: fund
transfers, bill payments, international transfers, crypto purchase and
exchange, and the admin approval workflows.

Each operation validates its input, then runs its checks and all of its
writes inside a single storage.atomic() block. Checks and writes are
serialized against every other operation, and a failure at any step leaves
no partial records or balance changes behind.
"""

from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timedelta
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Union

from .accounts import Account, AccountManager, AccountType
from .approvals import ApprovalStatus, apply_review, mark_completed, require_admin
from .bills import Bill, BillManager, BillPayment, BillStatus
from .crypto import (
    Cryptocurrency, CryptoTransferRequest, CryptoTransferRequestManager, get_cryptocurrency
)
from .currency import (
    CRYPTO_PLACES, get_transfer_conversion_details, parse_amount, quantize_crypto, quantize_fiat
)
from .errors import (
    AuthorizationError, BankingError, BusinessRuleError, ConflictError,
    InsufficientFundsError, NotFoundError, ValidationError
)
from .international import (
    InternationalManager, InternationalTransfer, InternationalTransferStatus
)
from .loans import LoanApplication, LoanManager
from .logging_config import get_logger, log_action
from .storage import StorageInterface, utcnow
from .transactions import (
    Transaction, TransactionDirection, TransactionManager, TransactionType, generate_reference
)
from .transfer_requests import TransferRequest, TransferRequestManager
from .users import User


AmountInput = Union[str, Decimal, int]


@dataclass
class TransferResult:
    """Outcome of an intra-bank transfer"""
    reference: str
    source: Account
    destination: Account
    debit: Transaction
    credit: Transaction


@dataclass
class BillPaymentResult:
    reference: str
    payment: BillPayment
    bill: Bill
    account: Account
    transaction: Transaction


@dataclass
class InternationalTransferResult:
    transfer: InternationalTransfer
    account: Account
    transaction: Transaction
    conversion: Dict[str, Any]


@dataclass
class CryptoTradeResult:
    """Outcome of a crypto purchase or exchange"""
    reference: str
    source: Account
    target: Account
    debit: Transaction
    credit: Transaction
    source_amount: Decimal
    target_amount: Decimal
    exchange_rate: Decimal


class BankingOperations:
    """
    Executes multi-record banking mutations atomically
    """

    def __init__(
        self,
        storage: StorageInterface,
        accounts: AccountManager,
        transactions: TransactionManager,
        bills: BillManager,
        international: InternationalManager,
        loans: LoanManager,
        crypto_requests: CryptoTransferRequestManager,
        transfer_requests: TransferRequestManager,
        approval_threshold: Optional[Decimal] = None,
        delivery_days: int = 2,
        settlement_delay_seconds: int = 30
    ):
        self.storage = storage
        self.accounts = accounts
        self.transactions = transactions
        self.bills = bills
        self.international = international
        self.loans = loans
        self.crypto_requests = crypto_requests
        self.transfer_requests = transfer_requests
        self.approval_threshold = approval_threshold
        self.delivery_days = delivery_days
        self.settlement_delay_seconds = settlement_delay_seconds
        self.logger = get_logger("boapay.operations")

    @contextmanager
    def _rejections_logged(self, action: str, user_id: Optional[int]) -> Iterator[None]:
        try:
            yield
        except BankingError as e:
            log_action(
                self.logger, "warning", f"{action} rejected: {e.message}",
                user_id=user_id, action=action, extra={"status_code": e.status_code}
            )
            raise

    # Intra-bank transfers

    def transfer_funds(
        self,
        user_id: int,
        from_account_number: str,
        to_account_number: str,
        amount: AmountInput,
        description: Optional[str] = None
    ) -> TransferResult:
        """
        Move money between two accounts of this bank

        The destination may belong to any customer. Source and destination
        must hold the same currency.

        Raises:
            ValidationError: Bad amount, same account or currency mismatch
            NotFoundError: Unknown source or destination account
            AuthorizationError: Source account belongs to someone else
            BusinessRuleError: Amount above the approval threshold
            InsufficientFundsError: Source balance below the amount
        """
        with self._rejections_logged("transfer_funds", user_id):
            amount = parse_amount(amount)
            with self.storage.atomic():
                source = self._owned_account_by_number(from_account_number, user_id)
                result = self._move_funds(
                    source, to_account_number, amount, description,
                    generate_reference("TRX"), enforce_threshold=True
                )

        log_action(
            self.logger, "info", f"Transfer completed: {result.reference}",
            user_id=user_id, action="transfer_funds", resource="account",
            extra={
                "reference": result.reference,
                "from_account": result.source.account_number,
                "to_account": result.destination.account_number,
                "amount": str(result.debit.amount),
            }
        )
        return result

    def _owned_account_by_number(self, account_number: str, user_id: int) -> Account:
        account = self.accounts.get_account_by_number(account_number)
        if not account:
            raise NotFoundError("Source account not found")
        if account.user_id != user_id:
            raise AuthorizationError("Access denied")
        return account

    def _check_transfer_pair(self, source: Account, to_account_number: str) -> Account:
        """Resolve the destination of an intra-bank transfer and check it can receive"""
        if source.is_crypto:
            raise ValidationError("Crypto holdings are moved with a crypto transfer request")

        destination = self.accounts.get_account_by_number(to_account_number)
        if not destination:
            raise NotFoundError("Destination account not found")
        if destination.id == source.id:
            raise ValidationError("Cannot transfer to the same account")
        if destination.currency != source.currency:
            raise ValidationError(
                f"Cannot transfer between accounts with different currencies: "
                f"{source.currency} -> {destination.currency}"
            )
        return destination

    def _move_funds(
        self,
        source: Account,
        to_account_number: str,
        amount: Decimal,
        description: Optional[str],
        reference: str,
        enforce_threshold: bool
    ) -> TransferResult:
        destination = self._check_transfer_pair(source, to_account_number)

        amount = source.quantize(amount)
        if amount <= 0:
            raise ValidationError("Invalid amount")
        if enforce_threshold and self.approval_threshold is not None and amount > self.approval_threshold:
            raise BusinessRuleError(
                f"Transfers above {self.approval_threshold} require a transfer request"
            )
        if not source.has_funds(amount):
            raise InsufficientFundsError()

        description = description or f"Transfer to {destination.account_number}"
        debit = self.transactions.create_transaction(
            account_id=source.id,
            amount=amount,
            transaction_type=TransactionType.WITHDRAWAL,
            direction=TransactionDirection.DEBIT,
            description=description,
            reference=reference,
            receiver_account=destination.account_number
        )
        credit = self.transactions.create_transaction(
            account_id=destination.id,
            amount=amount,
            transaction_type=TransactionType.DEPOSIT,
            direction=TransactionDirection.CREDIT,
            description=description,
            reference=reference,
            sender_account=source.account_number
        )

        source = self.accounts.update_balance(source.id, -amount)
        destination = self.accounts.update_balance(destination.id, amount)
        return TransferResult(reference, source, destination, debit, credit)

    # Bill payments

    def pay_bill(self, user_id: int, account_id: int, bill_id: int, amount: AmountInput) -> BillPaymentResult:
        """
        Pay a bill in full from one of the user's fiat accounts

        Raises:
            NotFoundError: Unknown account or bill
            AuthorizationError: Account or bill belongs to someone else
            ConflictError: Bill already paid
            InsufficientFundsError: Account balance below the amount
        """
        with self._rejections_logged("pay_bill", user_id):
            amount = parse_amount(amount)
            with self.storage.atomic():
                account = self.accounts.get_owned_account(account_id, user_id)
                bill = self.bills.get_owned_bill(bill_id, user_id)
                if bill.is_paid:
                    raise ConflictError("Bill is already paid")
                if account.is_crypto:
                    raise ValidationError("Bills must be paid from a fiat account")

                amount = quantize_fiat(amount)
                if amount <= 0:
                    raise ValidationError("Invalid amount")
                if not account.has_funds(amount):
                    raise InsufficientFundsError()

                reference = generate_reference("BPY")
                payment = self.bills.create_payment(bill.id, account.id, amount, reference)
                transaction = self.transactions.create_transaction(
                    account_id=account.id,
                    amount=amount,
                    transaction_type=TransactionType.WITHDRAWAL,
                    direction=TransactionDirection.DEBIT,
                    description=f"Bill Payment - {bill.bill_name}",
                    reference=reference,
                    receiver_account=bill.account_number
                )
                account = self.accounts.update_balance(account.id, -amount)
                bill = self.bills.update_bill_status(bill.id, BillStatus.PAID)

        log_action(
            self.logger, "info", f"Bill paid: {bill.bill_name}",
            user_id=user_id, action="pay_bill", resource="bill",
            extra={"reference": reference, "bill_id": bill.id, "amount": str(amount)}
        )
        return BillPaymentResult(reference, payment, bill, account, transaction)

    # International transfers

    def send_international_transfer(
        self,
        user_id: int,
        source_account_id: int,
        external_account_id: int,
        amount: AmountInput,
        purpose_of_transfer: str
    ) -> InternationalTransferResult:
        """
        Debit amount plus fee from a fiat account and queue the transfer for settlement

        The transfer starts pending; the settlement job completes it once
        settle_after has passed.
        """
        with self._rejections_logged("send_international_transfer", user_id):
            amount = parse_amount(amount)
            with self.storage.atomic():
                source = self.accounts.get_owned_account(source_account_id, user_id)
                if source.is_crypto:
                    raise ValidationError("International transfers must be sent from a fiat account")
                external = self.international.get_owned_external_account(external_account_id, user_id)

                amount = quantize_fiat(amount)
                if amount <= 0:
                    raise ValidationError("Invalid amount")

                conversion = get_transfer_conversion_details(amount, source.currency, external.currency)
                total_debit = conversion["total_debit"]
                if not source.has_funds(total_debit):
                    raise InsufficientFundsError("Insufficient funds (including fees)")

                reference = generate_reference("INT")
                now = utcnow()
                transfer = self.international.create_transfer(InternationalTransfer(
                    id=0,
                    created_at=now,
                    updated_at=now,
                    source_account_id=source.id,
                    external_account_id=external.id,
                    amount=amount,
                    source_currency=conversion["from_currency"],
                    target_currency=conversion["to_currency"],
                    exchange_rate=conversion["exchange_rate"],
                    fees=conversion["fee"],
                    converted_amount=conversion["converted_amount"],
                    total_debit=total_debit,
                    reference=reference,
                    purpose_of_transfer=purpose_of_transfer,
                    estimated_delivery=now + timedelta(days=self.delivery_days),
                    settle_after=now + timedelta(seconds=self.settlement_delay_seconds)
                ))
                transaction = self.transactions.create_transaction(
                    account_id=source.id,
                    amount=total_debit,
                    transaction_type=TransactionType.WITHDRAWAL,
                    direction=TransactionDirection.DEBIT,
                    description=f"International Transfer to {external.account_name} ({external.bank_name})",
                    reference=reference,
                    receiver_account=external.account_number
                )
                source = self.accounts.update_balance(source.id, -total_debit)

        log_action(
            self.logger, "info", f"International transfer initiated: {reference}",
            user_id=user_id, action="send_international_transfer", resource="international_transfer",
            extra={"transfer_id": transfer.id, "total_debit": str(total_debit),
                   "target_currency": transfer.target_currency}
        )
        return InternationalTransferResult(transfer, source, transaction, conversion)

    def complete_international_transfer(self, transfer_id: int,
                                        now: Optional[datetime] = None) -> InternationalTransfer:
        """Settle a pending transfer; the debit was taken when it was sent"""
        with self._rejections_logged("complete_international_transfer", None):
            with self.storage.atomic():
                transfer = self._pending_transfer(transfer_id)
                transfer.status = InternationalTransferStatus.COMPLETED
                transfer.completed_at = now or utcnow()
                transfer = self.international.save_transfer(transfer)

        log_action(
            self.logger, "info", f"International transfer settled: {transfer.reference}",
            action="complete_international_transfer", resource="international_transfer",
            extra={"transfer_id": transfer.id}
        )
        return transfer

    def fail_international_transfer(self, admin: User, transfer_id: int,
                                    reason: Optional[str] = None) -> InternationalTransfer:
        """Mark a pending transfer failed and refund its total debit"""
        with self._rejections_logged("fail_international_transfer", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                transfer = self._pending_transfer(transfer_id)
                transfer.status = InternationalTransferStatus.FAILED
                transfer.failure_reason = reason
                transfer = self.international.save_transfer(transfer)

                external = self.international.get_external_account(transfer.external_account_id)
                self.transactions.create_transaction(
                    account_id=transfer.source_account_id,
                    amount=transfer.total_debit,
                    transaction_type=TransactionType.REFUND,
                    direction=TransactionDirection.CREDIT,
                    description=f"Refund of international transfer {transfer.reference}",
                    reference=transfer.reference,
                    sender_account=external.account_number if external else None
                )
                self.accounts.update_balance(transfer.source_account_id, transfer.total_debit)

        log_action(
            self.logger, "info", f"International transfer failed: {transfer.reference}",
            user_id=admin.id, action="fail_international_transfer", resource="international_transfer",
            extra={"transfer_id": transfer.id, "refunded": str(transfer.total_debit)}
        )
        return transfer

    def _pending_transfer(self, transfer_id: int) -> InternationalTransfer:
        transfer = self.international.get_transfer(transfer_id)
        if not transfer:
            raise NotFoundError("International transfer not found")
        if not transfer.is_pending:
            raise ConflictError(f"International transfer is already {transfer.status.value}")
        return transfer

    # Crypto

    def purchase_crypto(self, user_id: int, source_account_id: int, symbol: str,
                        usd_amount: AmountInput) -> CryptoTradeResult:
        """
        Buy crypto with dollars from a USD account

        crypto_amount = usd_amount / usd_rate, rounded to 8 places. A holding
        account for the symbol is opened on first purchase.
        """
        with self._rejections_logged("purchase_crypto", user_id):
            usd_amount = parse_amount(usd_amount)
            crypto = get_cryptocurrency(symbol)
            with self.storage.atomic():
                source = self.accounts.get_owned_account(source_account_id, user_id)
                if source.is_crypto or source.currency != "USD":
                    raise ValidationError("Crypto purchases must be funded from a USD account")

                usd_amount = quantize_fiat(usd_amount)
                if usd_amount <= 0:
                    raise ValidationError("Invalid amount")
                if not source.has_funds(usd_amount):
                    raise InsufficientFundsError()

                crypto_amount = quantize_crypto(usd_amount / crypto.usd_rate)
                if crypto_amount <= 0:
                    raise ValidationError(f"Amount is too small to buy any {crypto.symbol}")

                target = self._holding_account(user_id, crypto)
                reference = generate_reference("CRY")
                description = f"Purchase of {crypto_amount} {crypto.symbol}"
                debit = self.transactions.create_transaction(
                    account_id=source.id,
                    amount=usd_amount,
                    transaction_type=TransactionType.CRYPTO_PURCHASE,
                    direction=TransactionDirection.DEBIT,
                    description=description,
                    reference=reference,
                    receiver_account=target.account_number
                )
                credit = self.transactions.create_transaction(
                    account_id=target.id,
                    amount=crypto_amount,
                    transaction_type=TransactionType.CRYPTO_PURCHASE,
                    direction=TransactionDirection.CREDIT,
                    description=description,
                    reference=reference,
                    sender_account=source.account_number,
                    original_amount=usd_amount,
                    original_currency="USD",
                    exchange_rate=crypto.usd_rate
                )
                source = self.accounts.update_balance(source.id, -usd_amount)
                target = self.accounts.update_balance(target.id, crypto_amount)

        log_action(
            self.logger, "info", f"Crypto purchased: {crypto_amount} {crypto.symbol}",
            user_id=user_id, action="purchase_crypto", resource="account",
            extra={"reference": reference, "usd_amount": str(usd_amount)}
        )
        return CryptoTradeResult(
            reference, source, target, debit, credit, usd_amount, crypto_amount, crypto.usd_rate
        )

    def exchange_crypto(self, user_id: int, source_account_id: int, target_symbol: str,
                        amount: AmountInput) -> CryptoTradeResult:
        """
        Swap one crypto asset for another, pivoting through the USD price

        target_amount = amount * usd_rate(source) / usd_rate(target), rounded to 8 places.
        """
        with self._rejections_logged("exchange_crypto", user_id):
            amount = parse_amount(amount)
            target_crypto = get_cryptocurrency(target_symbol)
            with self.storage.atomic():
                source = self.accounts.get_owned_account(source_account_id, user_id)
                if not source.is_crypto:
                    raise ValidationError("Exchanges must be made from a crypto account")
                source_crypto = get_cryptocurrency(source.currency)
                if source_crypto == target_crypto:
                    raise ValidationError("Cannot exchange a cryptocurrency for itself")

                amount = quantize_crypto(amount)
                if amount <= 0:
                    raise ValidationError("Invalid amount")
                if not source.has_funds(amount):
                    raise InsufficientFundsError()

                usd_value = amount * source_crypto.usd_rate
                target_amount = quantize_crypto(usd_value / target_crypto.usd_rate)
                if target_amount <= 0:
                    raise ValidationError(f"Amount is too small to buy any {target_crypto.symbol}")
                exchange_rate = (source_crypto.usd_rate / target_crypto.usd_rate).quantize(
                    Decimal('0.1') ** CRYPTO_PLACES, rounding=ROUND_HALF_UP
                )

                target = self._holding_account(user_id, target_crypto)
                reference = generate_reference("CRY")
                description = f"Exchange {amount} {source_crypto.symbol} to {target_amount} {target_crypto.symbol}"
                debit = self.transactions.create_transaction(
                    account_id=source.id,
                    amount=amount,
                    transaction_type=TransactionType.CRYPTO_EXCHANGE,
                    direction=TransactionDirection.DEBIT,
                    description=description,
                    reference=reference,
                    receiver_account=target.account_number
                )
                credit = self.transactions.create_transaction(
                    account_id=target.id,
                    amount=target_amount,
                    transaction_type=TransactionType.CRYPTO_EXCHANGE,
                    direction=TransactionDirection.CREDIT,
                    description=description,
                    reference=reference,
                    sender_account=source.account_number,
                    original_amount=amount,
                    original_currency=source_crypto.symbol,
                    exchange_rate=exchange_rate
                )
                source = self.accounts.update_balance(source.id, -amount)
                target = self.accounts.update_balance(target.id, target_amount)

        log_action(
            self.logger, "info",
            f"Crypto exchanged: {amount} {source_crypto.symbol} -> {target_amount} {target_crypto.symbol}",
            user_id=user_id, action="exchange_crypto", resource="account",
            extra={"reference": reference}
        )
        return CryptoTradeResult(
            reference, source, target, debit, credit, amount, target_amount, exchange_rate
        )

    def _holding_account(self, user_id: int, crypto: Cryptocurrency) -> Account:
        """The user's account for a crypto asset, opened on first use"""
        account = self.accounts.find_crypto_account(user_id, crypto.symbol)
        if account:
            return account
        return self.accounts.create_account(
            user_id=user_id,
            account_name=f"{crypto.display_name} Wallet",
            account_type=AccountType.CRYPTO,
            currency=crypto.symbol
        )

    # Crypto transfer requests

    def create_crypto_transfer_request(
        self,
        user_id: int,
        source_account_id: int,
        amount: AmountInput,
        destination_account_number: Optional[str] = None,
        destination_address: Optional[str] = None
    ) -> CryptoTransferRequest:
        """Queue a crypto transfer for admin approval after an ownership and balance check"""
        with self._rejections_logged("create_crypto_transfer_request", user_id):
            amount = parse_amount(amount)
            with self.storage.atomic():
                source = self.accounts.get_owned_account(source_account_id, user_id)
                if not source.is_crypto:
                    raise ValidationError("Crypto transfers must be made from a crypto account")

                amount = quantize_crypto(amount)
                if amount <= 0:
                    raise ValidationError("Invalid amount")
                if not source.has_funds(amount):
                    raise InsufficientFundsError()

                if destination_account_number:
                    destination = self.accounts.get_account_by_number(destination_account_number)
                    if not destination:
                        raise NotFoundError("Destination account not found")
                    if destination.id == source.id:
                        raise ValidationError("Cannot transfer to the same account")
                    if destination.currency != source.currency:
                        raise ValidationError("Destination account holds a different asset")

                request = self.crypto_requests.create_request(
                    user_id=user_id,
                    source_account_id=source.id,
                    symbol=source.currency,
                    amount=amount,
                    reference=generate_reference("CRY"),
                    destination_account_number=destination_account_number,
                    destination_address=destination_address
                )

        log_action(
            self.logger, "info", f"Crypto transfer requested: {request.reference}",
            user_id=user_id, action="create_crypto_transfer_request", resource="crypto_transfer_request",
            extra={"request_id": request.id, "amount": str(amount), "symbol": request.symbol}
        )
        return request

    def approve_crypto_transfer_request(self, admin: User, request_id: int,
                                        notes: Optional[str] = None) -> CryptoTransferRequest:
        """
        Approve and execute a crypto transfer request

        The balance is checked again at approval time. When it no longer
        covers the amount the approval fails and the request stays pending.
        """
        with self._rejections_logged("approve_crypto_transfer_request", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                request = self.crypto_requests.require_request(request_id)
                apply_review(request, ApprovalStatus.APPROVED, admin.id, notes)

                source = self.accounts.get_account(request.source_account_id)
                if not source:
                    raise NotFoundError("Account not found")
                if not source.has_funds(request.amount):
                    raise InsufficientFundsError("Insufficient funds to complete the crypto transfer")

                destination_label = request.destination_account_number or request.destination_address
                description = f"Crypto transfer of {request.amount} {request.symbol} to {destination_label}"
                self.transactions.create_transaction(
                    account_id=source.id,
                    amount=request.amount,
                    transaction_type=TransactionType.CRYPTO_TRANSFER,
                    direction=TransactionDirection.DEBIT,
                    description=description,
                    reference=request.reference,
                    receiver_account=destination_label
                )
                self.accounts.update_balance(source.id, -request.amount)

                if request.destination_account_number:
                    destination = self.accounts.get_account_by_number(request.destination_account_number)
                    if not destination or destination.currency != request.symbol:
                        raise NotFoundError("Destination account not found")
                    self.transactions.create_transaction(
                        account_id=destination.id,
                        amount=request.amount,
                        transaction_type=TransactionType.CRYPTO_TRANSFER,
                        direction=TransactionDirection.CREDIT,
                        description=description,
                        reference=request.reference,
                        sender_account=source.account_number
                    )
                    self.accounts.update_balance(destination.id, request.amount)

                mark_completed(request)
                request = self.crypto_requests.save_request(request)

        log_action(
            self.logger, "info", f"Crypto transfer approved: {request.reference}",
            user_id=admin.id, action="approve_crypto_transfer_request", resource="crypto_transfer_request",
            extra={"request_id": request.id}
        )
        return request

    def reject_crypto_transfer_request(self, admin: User, request_id: int,
                                       notes: Optional[str] = None) -> CryptoTransferRequest:
        with self._rejections_logged("reject_crypto_transfer_request", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                request = self.crypto_requests.require_request(request_id)
                apply_review(request, ApprovalStatus.REJECTED, admin.id, notes)
                request = self.crypto_requests.save_request(request)

        log_action(
            self.logger, "info", f"Crypto transfer rejected: {request.reference}",
            user_id=admin.id, action="reject_crypto_transfer_request", resource="crypto_transfer_request",
            extra={"request_id": request.id}
        )
        return request

    # Transfer requests

    def create_transfer_request(
        self,
        user_id: int,
        from_account_number: str,
        to_account_number: str,
        amount: AmountInput,
        description: Optional[str] = None
    ) -> TransferRequest:
        """Queue an intra-bank transfer for admin review"""
        with self._rejections_logged("create_transfer_request", user_id):
            amount = parse_amount(amount)
            with self.storage.atomic():
                source = self._owned_account_by_number(from_account_number, user_id)
                destination = self._check_transfer_pair(source, to_account_number)

                amount = source.quantize(amount)
                if amount <= 0:
                    raise ValidationError("Invalid amount")
                if not source.has_funds(amount):
                    raise InsufficientFundsError()

                request = self.transfer_requests.create_request(
                    user_id=user_id,
                    from_account_number=source.account_number,
                    to_account_number=destination.account_number,
                    amount=amount,
                    description=description or f"Transfer to {destination.account_number}",
                    reference=generate_reference("TRX")
                )

        log_action(
            self.logger, "info", f"Transfer requested: {request.reference}",
            user_id=user_id, action="create_transfer_request", resource="transfer_request",
            extra={"request_id": request.id, "amount": str(amount)}
        )
        return request

    def approve_transfer_request(self, admin: User, request_id: int,
                                 notes: Optional[str] = None) -> TransferRequest:
        """Approve a queued transfer and move the funds"""
        with self._rejections_logged("approve_transfer_request", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                request = self.transfer_requests.require_request(request_id)
                apply_review(request, ApprovalStatus.APPROVED, admin.id, notes)

                source = self.accounts.get_account_by_number(request.from_account_number)
                if not source:
                    raise NotFoundError("Source account not found")
                self._move_funds(
                    source, request.to_account_number, request.amount, request.description,
                    request.reference, enforce_threshold=False
                )

                mark_completed(request)
                request = self.transfer_requests.save_request(request)

        log_action(
            self.logger, "info", f"Transfer request approved: {request.reference}",
            user_id=admin.id, action="approve_transfer_request", resource="transfer_request",
            extra={"request_id": request.id}
        )
        return request

    def reject_transfer_request(self, admin: User, request_id: int,
                                notes: Optional[str] = None) -> TransferRequest:
        with self._rejections_logged("reject_transfer_request", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                request = self.transfer_requests.require_request(request_id)
                apply_review(request, ApprovalStatus.REJECTED, admin.id, notes)
                request = self.transfer_requests.save_request(request)

        log_action(
            self.logger, "info", f"Transfer request rejected: {request.reference}",
            user_id=admin.id, action="reject_transfer_request", resource="transfer_request",
            extra={"request_id": request.id}
        )
        return request

    # Loans

    def apply_for_loan(
        self,
        user_id: int,
        product_id: int,
        amount: AmountInput,
        term_months: int,
        purpose: str,
        disbursement_account_id: int
    ) -> LoanApplication:
        """Submit a loan application to be disbursed into an owned fiat account"""
        with self._rejections_logged("apply_for_loan", user_id):
            amount = parse_amount(amount)
            with self.storage.atomic():
                account = self.accounts.get_owned_account(disbursement_account_id, user_id)
                product = self.loans.get_product(product_id)
                if account.is_crypto or account.currency != product.currency:
                    raise ValidationError(
                        f"Loans are disbursed into a {product.currency} account"
                    )
                application = self.loans.create_application(
                    user_id=user_id,
                    product_id=product.id,
                    amount=amount,
                    term_months=term_months,
                    purpose=purpose,
                    disbursement_account_id=account.id
                )

        log_action(
            self.logger, "info", f"Loan application submitted: {product.name}",
            user_id=user_id, action="apply_for_loan", resource="loan_application",
            extra={"application_id": application.id, "amount": str(application.amount)}
        )
        return application

    def approve_loan_application(self, admin: User, application_id: int,
                                 notes: Optional[str] = None) -> LoanApplication:
        """Approve an application and disburse the loan amount"""
        with self._rejections_logged("approve_loan_application", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                application = self.loans.require_application(application_id)
                apply_review(application, ApprovalStatus.APPROVED, admin.id, notes)

                account = self.accounts.get_account(application.disbursement_account_id)
                if not account:
                    raise NotFoundError("Account not found")
                product = self.loans.get_product(application.product_id)

                reference = generate_reference("LON")
                self.transactions.create_transaction(
                    account_id=account.id,
                    amount=application.amount,
                    transaction_type=TransactionType.LOAN_DISBURSEMENT,
                    direction=TransactionDirection.CREDIT,
                    description=f"{product.name} disbursement",
                    reference=reference
                )
                self.accounts.update_balance(account.id, application.amount)
                application.disbursement_reference = reference
                application = self.loans.save_application(application)

        log_action(
            self.logger, "info", f"Loan application approved: {application.id}",
            user_id=admin.id, action="approve_loan_application", resource="loan_application",
            extra={"application_id": application.id, "reference": reference}
        )
        return application

    def reject_loan_application(self, admin: User, application_id: int,
                                notes: Optional[str] = None) -> LoanApplication:
        with self._rejections_logged("reject_loan_application", getattr(admin, "id", None)):
            require_admin(admin)
            with self.storage.atomic():
                application = self.loans.require_application(application_id)
                apply_review(application, ApprovalStatus.REJECTED, admin.id, notes)
                application = self.loans.save_application(application)

        log_action(
            self.logger, "info", f"Loan application rejected: {application.id}",
            user_id=admin.id, action="reject_loan_application", resource="loan_application",
            extra={"application_id": application.id}
        )
        return application
