from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Union

import structlog

from application.locks import UserLocks
from domain.errors import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidRequestError,
    RecipientNotFoundError,
)
from domain.models import Account, Transaction, TransactionType, WalletUnit
from domain.repositories import RecipientResolver, WalletRepository

logger = structlog.get_logger(__name__)

DEFAULT_STARTING_BALANCE = 1000
DEFAULT_RETENTION = 100


@dataclass
class LedgerResult:
    new_balance: int
    transaction: Transaction


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def require_amount(amount: Any, label: str = "Amount") -> int:
    # bool is an int subclass but never a meaningful amount.
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"{label} must be a whole number of tokens.")
    return amount


def require_positive_amount(amount: Any, label: str = "Amount") -> int:
    require_amount(amount, label)
    if amount <= 0:
        raise InvalidAmountError(f"{label} must be greater than zero.")
    return amount


def coerce_transaction_type(value: Union[TransactionType, str]) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError:
        raise InvalidRequestError(f"Unknown transaction type: {value!r}") from None


class LedgerEngine:
    """
    Owns every user's balance and transaction log.

    All mutations go through `post`, which checks the non-negative balance
    invariant, prepends the transaction and trims the log to the retention
    bound. Public mutating operations wrap the full load/post/save sequence
    in the user's lock so concurrent calls cannot lose updates.
    """

    def __init__(
        self,
        repo: WalletRepository,
        recipients: RecipientResolver,
        locks: Optional[UserLocks] = None,
        starting_balance: int = DEFAULT_STARTING_BALANCE,
        retention: int = DEFAULT_RETENTION,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = new_transaction_id,
    ) -> None:
        if starting_balance < 0:
            raise ValueError("starting_balance must be non-negative")
        if retention < 1:
            raise ValueError("retention must be at least 1")

        self._repo = repo
        self._recipients = recipients
        self._locks = locks if locks is not None else UserLocks()
        self._starting_balance = starting_balance
        self._retention = retention
        self._clock = clock
        self._id_factory = id_factory

    @property
    def locks(self) -> UserLocks:
        return self._locks

    def open_account(self, user_id: str, username: str = "", email: str = "") -> Account:
        """
        Create the account with the starting balance, an empty log and
        zeroed statistics. Returns the existing account if there is one.
        """

        if not user_id:
            raise InvalidRequestError("User ID must not be empty.")

        with self._locks.hold(user_id):
            existing = self._repo.load(user_id)
            if existing is not None:
                return existing.account

            account = Account(
                user_id=user_id,
                balance=self._starting_balance,
                created_at=self._clock(),
                username=username,
                email=email,
            )
            self._repo.save(WalletUnit(account=account))

        logger.info("ledger.account_opened", user_id=user_id, balance=account.balance)
        return account

    def load(self, user_id: str) -> WalletUnit:
        unit = self._repo.load(user_id)
        if unit is None:
            raise AccountNotFoundError(user_id)
        return unit

    def get_account(self, user_id: str) -> Account:
        return self.load(user_id).account

    def get_transactions(self, user_id: str, limit: Optional[int] = None) -> List[Transaction]:
        """Return the user's transactions, newest first."""

        if limit is not None and (
            isinstance(limit, bool) or not isinstance(limit, int) or limit < 0
        ):
            raise InvalidRequestError("Limit must be a non-negative whole number.")

        transactions = self.load(user_id).transactions[: self._retention]
        if limit is not None:
            transactions = transactions[:limit]
        return transactions

    def post(
        self,
        unit: WalletUnit,
        amount: int,
        type: Union[TransactionType, str],
        description: str,
        **details: Optional[str],
    ) -> Transaction:
        """
        Apply `amount` to the loaded unit in memory and record it.

        Nothing is persisted here; the caller saves the unit once every step
        of its operation has succeeded. On failure the unit is untouched.
        """

        transaction_type = coerce_transaction_type(type)
        require_amount(amount)

        account = unit.account
        new_balance = account.balance + amount
        if new_balance < 0:
            raise InsufficientBalanceError(account.user_id, account.balance, amount)

        transaction = Transaction(
            id=self._id_factory(),
            type=transaction_type,
            amount=amount,
            description=description,
            timestamp=self._clock(),
            balance_after=new_balance,
            **details,
        )
        account.balance = new_balance
        unit.transactions.insert(0, transaction)
        del unit.transactions[self._retention:]
        return transaction

    def credit_or_debit(
        self,
        user_id: str,
        amount: int,
        type: Union[TransactionType, str],
        description: str,
    ) -> LedgerResult:
        transaction_type = coerce_transaction_type(type)
        require_amount(amount)

        with self._locks.hold(user_id):
            unit = self.load(user_id)
            transaction = self.post(unit, amount, transaction_type, description)
            self._repo.save(unit)

        logger.info(
            "ledger.posted",
            user_id=user_id,
            type=transaction_type.value,
            amount=amount,
            balance=unit.account.balance,
        )
        return LedgerResult(new_balance=unit.account.balance, transaction=transaction)

    def transfer(
        self,
        sender_id: str,
        recipient_ref: str,
        amount: int,
        note: Optional[str] = None,
    ) -> LedgerResult:
        """
        Move `amount` tokens from the sender to the account `recipient_ref`
        resolves to.

        The sender's `sent` and the recipient's `received` transactions are
        committed together. The sender's balance is checked before the
        recipient is required to exist.
        """

        require_positive_amount(amount)
        recipient_id = self._recipients.resolve(recipient_ref)
        if recipient_id is not None and recipient_id == sender_id:
            raise InvalidRequestError("Cannot transfer tokens to yourself.")

        suffix = f" - {note}" if note else ""
        lock_ids = [sender_id] if recipient_id is None else [sender_id, recipient_id]

        with self._locks.hold(*lock_ids):
            sender = self.load(sender_id)
            sent = self.post(
                sender,
                -amount,
                TransactionType.SENT,
                f"Sent to {recipient_ref}{suffix}",
            )

            recipient = self._repo.load(recipient_id) if recipient_id is not None else None
            if recipient is None:
                raise RecipientNotFoundError(recipient_ref)

            sender_label = sender.account.username or sender_id
            self.post(
                recipient,
                amount,
                TransactionType.RECEIVED,
                f"Received from {sender_label}{suffix}",
            )
            self._repo.save(sender, recipient)

        logger.info(
            "ledger.transferred",
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount=amount,
            balance=sender.account.balance,
        )
        return LedgerResult(new_balance=sender.account.balance, transaction=sent)
