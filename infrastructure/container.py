from __future__ import annotations

from application.ledger import LedgerEngine
from application.locks import UserLocks
from application.services import Wallet
from application.settlement import SettlementEngine
from application.statistics import GamingStatisticsTracker
from domain.repositories import KeyValueStore
from infrastructure.config import Settings
from infrastructure.db.identity_repository_kv import KeyValueIdentityRepository
from infrastructure.db.kv_store_memory import InMemoryKeyValueStore
from infrastructure.db.kv_store_sqlite import SqliteKeyValueStore
from infrastructure.db.leaderboard_kv import KeyValueLeaderboard
from infrastructure.db.recipient_directory_kv import KeyValueRecipientDirectory
from infrastructure.db.wallet_repository_kv import KeyValueWalletRepository


def build_store(settings: Settings) -> KeyValueStore:
    if settings.store_backend == "memory":
        return InMemoryKeyValueStore()
    if settings.store_backend == "postgres":
        # Imported lazily so SQLite deployments do not need libpq.
        from infrastructure.db.kv_store_postgres import PostgresKeyValueStore

        return PostgresKeyValueStore(settings.postgres_params)
    return SqliteKeyValueStore(settings.db_path)


def build_wallet(settings: Settings, store: KeyValueStore | None = None) -> Wallet:
    """
    Wire one process-wide wallet: a single store, one set of user locks
    and the engines sharing them.
    """

    if store is None:
        store = build_store(settings)

    repo = KeyValueWalletRepository(store)
    recipients = KeyValueRecipientDirectory(store)
    ledger = LedgerEngine(
        repo,
        recipients,
        locks=UserLocks(),
        starting_balance=settings.starting_balance,
        retention=settings.transaction_retention,
    )
    statistics = GamingStatisticsTracker(repo)

    return Wallet(
        ledger=ledger,
        settlement=SettlementEngine(ledger, repo, statistics),
        statistics=statistics,
        identities=KeyValueIdentityRepository(store),
        recipients=recipients,
        leaderboard=KeyValueLeaderboard(store),
    )
