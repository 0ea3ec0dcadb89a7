import itertools
import unittest
from datetime import datetime, timedelta, timezone

from application.ledger import LedgerEngine
from domain.errors import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidRequestError,
    RecipientNotFoundError,
)
from domain.models import TransactionType
from infrastructure.db.kv_store_memory import InMemoryKeyValueStore
from infrastructure.db.recipient_directory_kv import KeyValueRecipientDirectory
from infrastructure.db.wallet_repository_kv import KeyValueWalletRepository


def ticking_clock(start=datetime(2026, 1, 1, tzinfo=timezone.utc)):
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


class LedgerEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryKeyValueStore()
        self.repo = KeyValueWalletRepository(self.store)
        self.recipients = KeyValueRecipientDirectory(self.store)
        self.ledger = LedgerEngine(self.repo, self.recipients, clock=ticking_clock())

        self.ledger.open_account("alice", username="alice")
        self.recipients.register("alice", "alice")

    def _add_bob(self) -> None:
        self.ledger.open_account("bob", username="bob")
        self.recipients.register("bob", "bob")

    def test_open_account_starts_with_starting_balance(self):
        account = self.ledger.get_account("alice")
        self.assertEqual(account.balance, 1000)
        self.assertEqual(account.games_played, 0)
        self.assertEqual(self.ledger.get_transactions("alice"), [])

    def test_open_account_is_idempotent(self):
        self.ledger.credit_or_debit("alice", -100, TransactionType.SENT, "coffee")
        account = self.ledger.open_account("alice", username="someone-else")
        self.assertEqual(account.balance, 900)
        self.assertEqual(account.username, "alice")

    def test_get_account_unknown_user_raises_not_found(self):
        with self.assertRaises(AccountNotFoundError):
            self.ledger.get_account("nobody")
        with self.assertRaises(AccountNotFoundError):
            self.ledger.get_transactions("nobody")

    def test_credit_and_debit_record_transactions(self):
        credit = self.ledger.credit_or_debit("alice", 250, "received", "bonus")
        self.assertEqual(credit.new_balance, 1250)
        self.assertEqual(credit.transaction.amount, 250)
        self.assertEqual(credit.transaction.balance_after, 1250)

        debit = self.ledger.credit_or_debit("alice", -50, TransactionType.SENT, "fee")
        self.assertEqual(debit.new_balance, 1200)

        transactions = self.ledger.get_transactions("alice")
        self.assertEqual([t.description for t in transactions], ["fee", "bonus"])
        self.assertEqual(transactions[0].type, TransactionType.SENT)

    def test_debit_beyond_balance_fails_and_leaves_account_untouched(self):
        with self.assertRaises(InsufficientBalanceError):
            self.ledger.credit_or_debit("alice", -1001, TransactionType.SENT, "too much")

        self.assertEqual(self.ledger.get_account("alice").balance, 1000)
        self.assertEqual(self.ledger.get_transactions("alice"), [])

    def test_debit_of_whole_balance_reaches_zero(self):
        result = self.ledger.credit_or_debit("alice", -1000, TransactionType.SENT, "all in")
        self.assertEqual(result.new_balance, 0)

    def test_credit_or_debit_rejects_malformed_input(self):
        with self.assertRaises(InvalidRequestError):
            self.ledger.credit_or_debit("alice", 10, "refund", "unknown type")
        with self.assertRaises(InvalidAmountError):
            self.ledger.credit_or_debit("alice", True, TransactionType.RECEIVED, "bool")
        with self.assertRaises(InvalidAmountError):
            self.ledger.credit_or_debit("alice", 1.5, TransactionType.RECEIVED, "float")
        with self.assertRaises(AccountNotFoundError):
            self.ledger.credit_or_debit("nobody", 10, TransactionType.RECEIVED, "gift")

    def test_balance_is_explained_by_transactions(self):
        for amount in (120, -30, -45, 300, -1, 7):
            self.ledger.credit_or_debit("alice", amount, TransactionType.RECEIVED, "move")

        account = self.ledger.get_account("alice")
        transactions = self.ledger.get_transactions("alice")
        self.assertEqual(account.balance, 1000 + sum(t.amount for t in transactions))
        self.assertEqual(transactions[0].balance_after, account.balance)

    def test_log_is_trimmed_to_retention_bound(self):
        for i in range(101):
            self.ledger.credit_or_debit("alice", 1, TransactionType.RECEIVED, f"credit {i}")

        transactions = self.ledger.get_transactions("alice")
        self.assertEqual(len(transactions), 100)
        self.assertEqual(transactions[0].description, "credit 100")
        self.assertNotIn("credit 0", [t.description for t in transactions])
        self.assertEqual(self.ledger.get_account("alice").balance, 1101)

    def test_transactions_are_newest_first(self):
        for i in range(5):
            self.ledger.credit_or_debit("alice", 1, TransactionType.RECEIVED, f"credit {i}")

        timestamps = [t.timestamp for t in self.ledger.get_transactions("alice")]
        self.assertEqual(timestamps, sorted(timestamps, reverse=True))

    def test_get_transactions_limit(self):
        for i in range(5):
            self.ledger.credit_or_debit("alice", 1, TransactionType.RECEIVED, f"credit {i}")

        limited = self.ledger.get_transactions("alice", limit=2)
        self.assertEqual([t.description for t in limited], ["credit 4", "credit 3"])
        self.assertEqual(self.ledger.get_transactions("alice", limit=0), [])
        with self.assertRaises(InvalidRequestError):
            self.ledger.get_transactions("alice", limit=-1)

    def test_transaction_ids_are_unique_with_a_frozen_clock(self):
        frozen = datetime(2026, 1, 1, tzinfo=timezone.utc)
        ledger = LedgerEngine(self.repo, self.recipients, clock=lambda: frozen)
        for _ in range(50):
            ledger.credit_or_debit("alice", 1, TransactionType.RECEIVED, "same instant")

        ids = {t.id for t in ledger.get_transactions("alice")}
        self.assertEqual(len(ids), 50)

    def test_transfer_requires_positive_amount(self):
        self._add_bob()
        with self.assertRaises(InvalidAmountError):
            self.ledger.transfer("alice", "bob", 0, "")
        with self.assertRaises(InvalidAmountError):
            self.ledger.transfer("alice", "bob", -5, "")

    def test_transfer_with_insufficient_balance_appends_nothing(self):
        self.ledger.credit_or_debit("alice", -990, TransactionType.SENT, "spent")

        with self.assertRaises(InsufficientBalanceError):
            self.ledger.transfer("alice", "0xabc", 50, "")

        self.assertEqual(self.ledger.get_account("alice").balance, 10)
        self.assertEqual(len(self.ledger.get_transactions("alice")), 1)

    def test_transfer_to_unknown_recipient_is_rejected(self):
        with self.assertRaises(RecipientNotFoundError) as caught:
            self.ledger.transfer("alice", "0xabc", 50, "")

        self.assertIsInstance(caught.exception, AccountNotFoundError)
        self.assertEqual(self.ledger.get_account("alice").balance, 1000)
        self.assertEqual(self.ledger.get_transactions("alice"), [])

    def test_transfer_from_unknown_sender_raises_not_found(self):
        self._add_bob()
        with self.assertRaises(AccountNotFoundError):
            self.ledger.transfer("nobody", "bob", 10, "")

    def test_transfer_to_self_is_rejected(self):
        with self.assertRaises(InvalidRequestError):
            self.ledger.transfer("alice", "@Alice", 10, "")

    def test_transfer_debits_sender_and_credits_recipient(self):
        self._add_bob()

        result = self.ledger.transfer("alice", "@Bob", 100, "lunch")

        self.assertEqual(result.new_balance, 900)
        self.assertEqual(result.transaction.type, TransactionType.SENT)
        self.assertEqual(result.transaction.amount, -100)
        self.assertEqual(result.transaction.description, "Sent to @Bob - lunch")

        bob = self.ledger.get_account("bob")
        self.assertEqual(bob.balance, 1100)
        received = self.ledger.get_transactions("bob")[0]
        self.assertEqual(received.type, TransactionType.RECEIVED)
        self.assertEqual(received.amount, 100)
        self.assertEqual(received.description, "Received from alice - lunch")
        self.assertEqual(received.balance_after, 1100)

    def test_transfer_by_wallet_address(self):
        self._add_bob()
        address = self.recipients.address_for("bob")

        result = self.ledger.transfer("alice", address, 25)

        self.assertEqual(result.transaction.description, f"Sent to {address}")
        self.assertEqual(self.ledger.get_account("bob").balance, 1025)

    def test_constructor_rejects_bad_configuration(self):
        with self.assertRaises(ValueError):
            LedgerEngine(self.repo, self.recipients, starting_balance=-1)
        with self.assertRaises(ValueError):
            LedgerEngine(self.repo, self.recipients, retention=0)


if __name__ == "__main__":
    unittest.main()
