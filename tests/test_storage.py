import os
import tempfile
import unittest
from datetime import datetime, timezone

from domain.errors import InvalidRecordError
from domain.models import (
    Account,
    GamingStatistics,
    Transaction,
    TransactionType,
    WalletUnit,
)
from infrastructure.db.kv_store_memory import InMemoryKeyValueStore
from infrastructure.db.kv_store_sqlite import SqliteKeyValueStore
from infrastructure.db.wallet_repository_kv import KeyValueWalletRepository


def _sample_unit() -> WalletUnit:
    created = datetime(2026, 3, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)
    return WalletUnit(
        account=Account(
            user_id="u1",
            balance=950,
            created_at=created,
            games_played=1,
            total_wins=0,
            total_losses=1,
            username="alice",
            email="alice@example.com",
        ),
        transactions=[
            Transaction(
                id="t2",
                type=TransactionType.LOSS,
                amount=-50,
                description="Lost against Bob in Arena",
                timestamp=created,
                balance_after=950,
                game_id="g1",
                game="Arena",
                opponent="Bob",
                duration="3:15",
            ),
            Transaction(
                id="t1",
                type=TransactionType.RECEIVED,
                amount=0,
                description="Received from carol",
                timestamp=created,
                balance_after=1000,
            ),
        ],
        statistics=GamingStatistics(
            games_lost=1,
            total_loss_amount=50,
            current_streak=0,
            best_streak=2,
        ),
    )


class InMemoryKeyValueStoreTests(unittest.TestCase):
    def test_missing_key_is_none(self):
        self.assertIsNone(InMemoryKeyValueStore().get("absent"))

    def test_values_are_copied(self):
        store = InMemoryKeyValueStore()
        value = {"items": [1, 2]}
        store.set("k", value)
        value["items"].append(3)

        stored = store.get("k")
        self.assertEqual(stored, {"items": [1, 2]})
        stored["items"].append(4)
        self.assertEqual(store.get("k"), {"items": [1, 2]})


class SqliteKeyValueStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "wallet.db")
        self.store = SqliteKeyValueStore(self.db_path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_get_set_and_overwrite(self):
        self.assertIsNone(self.store.get("user:1"))
        self.store.set("user:1", {"balance": 10})
        self.store.set("user:1", {"balance": 20})
        self.assertEqual(self.store.get("user:1"), {"balance": 20})

    def test_set_many_and_persistence_across_instances(self):
        self.store.set_many({"a": [1, -2], "b": None, "c": "text"})

        reopened = SqliteKeyValueStore(self.db_path)
        self.assertEqual(reopened.get("a"), [1, -2])
        self.assertIsNone(reopened.get("b"))
        self.assertEqual(reopened.get("c"), "text")

    def test_wallet_unit_round_trips_every_field(self):
        repo = KeyValueWalletRepository(self.store)
        unit = _sample_unit()

        repo.save(unit)

        self.assertEqual(repo.load("u1"), unit)
        self.assertEqual(repo.load_statistics("u1"), unit.statistics)
        self.assertIsNone(repo.load("u2"))
        self.assertIsNone(repo.load_statistics("u2"))


class WalletRepositoryValidationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryKeyValueStore()
        self.repo = KeyValueWalletRepository(self.store)
        self.repo.save(_sample_unit())

    def test_negative_balance_is_rejected(self):
        record = self.store.get("user:u1")
        record["balance"] = -5
        self.store.set("user:u1", record)

        with self.assertRaises(InvalidRecordError):
            self.repo.load("u1")

    def test_unknown_transaction_type_is_rejected(self):
        records = self.store.get("transactions:u1")
        records[0]["type"] = "refund"
        self.store.set("transactions:u1", records)

        with self.assertRaises(InvalidRecordError):
            self.repo.load("u1")

    def test_transaction_log_must_be_a_list(self):
        self.store.set("transactions:u1", {"id": "t1"})
        with self.assertRaises(InvalidRecordError):
            self.repo.load("u1")

    def test_streak_above_best_streak_is_rejected(self):
        self.store.set(
            "gaming:u1",
            {
                "games_won": 1,
                "games_lost": 0,
                "total_earnings": 10,
                "total_loss_amount": 0,
                "current_streak": 2,
                "best_streak": 1,
            },
        )
        with self.assertRaises(InvalidRecordError):
            self.repo.load_statistics("u1")

    def test_missing_log_and_statistics_default_to_empty(self):
        self.store.set_many({"transactions:u1": None, "gaming:u1": None})

        unit = self.repo.load("u1")

        self.assertEqual(unit.transactions, [])
        self.assertEqual(unit.statistics, GamingStatistics())


if __name__ == "__main__":
    unittest.main()
