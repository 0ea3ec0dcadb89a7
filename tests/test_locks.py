import threading
import unittest

from application.ledger import LedgerEngine
from application.locks import UserLocks
from domain.errors import AccountNotFoundError
from domain.models import TransactionType
from infrastructure.db.kv_store_memory import InMemoryKeyValueStore
from infrastructure.db.recipient_directory_kv import KeyValueRecipientDirectory
from infrastructure.db.wallet_repository_kv import KeyValueWalletRepository


class UserLocksTests(unittest.TestCase):
    def test_hold_same_user_twice_in_one_call_does_not_deadlock(self):
        locks = UserLocks()
        with locks.hold("a", "a", "b"):
            pass
        with locks.hold("a"):
            pass

    def test_hold_releases_on_error(self):
        locks = UserLocks()
        with self.assertRaises(RuntimeError):
            with locks.hold("a", "b"):
                raise RuntimeError("boom")

        acquired = threading.Event()

        def grab():
            with locks.hold("b", "a"):
                acquired.set()

        thread = threading.Thread(target=grab)
        thread.start()
        thread.join(timeout=5)
        self.assertTrue(acquired.is_set())

    def test_locks_are_dropped_when_no_one_holds_them(self):
        locks = UserLocks()
        with locks.hold("a", "b"):
            self.assertEqual(locks.tracked(), 2)
            with locks.hold("c"):
                self.assertEqual(locks.tracked(), 3)
        self.assertEqual(locks.tracked(), 0)

    def test_waiting_caller_shares_the_held_lock(self):
        locks = UserLocks()
        entered = threading.Event()
        order = []

        def waiter():
            entered.set()
            with locks.hold("a"):
                order.append("waiter")

        with locks.hold("a"):
            thread = threading.Thread(target=waiter)
            thread.start()
            entered.wait(timeout=5)
            order.append("holder")
        thread.join(timeout=5)

        self.assertEqual(order, ["holder", "waiter"])
        self.assertEqual(locks.tracked(), 0)


class ConcurrentLedgerTests(unittest.TestCase):
    def setUp(self) -> None:
        store = InMemoryKeyValueStore()
        self.recipients = KeyValueRecipientDirectory(store)
        self.ledger = LedgerEngine(KeyValueWalletRepository(store), self.recipients)
        for user_id in ("alice", "bob"):
            self.ledger.open_account(user_id, username=user_id)
            self.recipients.register(user_id, user_id)

    def _run(self, *targets) -> None:
        threads = [threading.Thread(target=target) for target in targets]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
            self.assertFalse(thread.is_alive())

    def test_concurrent_credits_do_not_lose_updates(self):
        def worker():
            for _ in range(25):
                self.ledger.credit_or_debit("alice", 1, TransactionType.RECEIVED, "tip")

        self._run(*[worker] * 8)

        self.assertEqual(self.ledger.get_account("alice").balance, 1200)
        self.assertEqual(len(self.ledger.get_transactions("alice")), 100)

    def test_opposite_transfers_conserve_tokens(self):
        def alice_to_bob():
            for _ in range(40):
                self.ledger.transfer("alice", "bob", 3)

        def bob_to_alice():
            for _ in range(40):
                self.ledger.transfer("bob", "alice", 2)

        self._run(alice_to_bob, bob_to_alice)

        alice = self.ledger.get_account("alice").balance
        bob = self.ledger.get_account("bob").balance
        self.assertEqual(alice, 1000 - 40 * 3 + 40 * 2)
        self.assertEqual(bob, 1000 + 40 * 3 - 40 * 2)
        self.assertEqual(self.ledger.locks.tracked(), 0)

    def test_unknown_user_leaves_no_lock_behind(self):
        with self.assertRaises(AccountNotFoundError):
            self.ledger.credit_or_debit("nobody", 5, TransactionType.RECEIVED, "tip")

        self.assertEqual(self.ledger.locks.tracked(), 0)


if __name__ == "__main__":
    unittest.main()
