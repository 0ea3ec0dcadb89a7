from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from domain.errors import InvalidRecordError
from domain.models import (
    Account,
    GamingStatistics,
    Transaction,
    TransactionType,
    WalletUnit,
)
from domain.repositories import KeyValueStore, WalletRepository


def account_key(user_id: str) -> str:
    return f"user:{user_id}"


def transactions_key(user_id: str) -> str:
    return f"transactions:{user_id}"


def statistics_key(user_id: str) -> str:
    return f"gaming:{user_id}"


def _int_field(record: dict, name: str, key: str, minimum: Optional[int] = None) -> int:
    value = record.get(name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRecordError(key, f"{name} must be an integer")
    if minimum is not None and value < minimum:
        raise InvalidRecordError(key, f"{name} must be >= {minimum}")
    return value


def _str_field(record: dict, name: str, key: str, default: Optional[str] = None) -> str:
    value = record.get(name, default)
    if not isinstance(value, str):
        raise InvalidRecordError(key, f"{name} must be a string")
    return value


def _optional_str_field(record: dict, name: str, key: str) -> Optional[str]:
    value = record.get(name)
    if value is not None and not isinstance(value, str):
        raise InvalidRecordError(key, f"{name} must be a string or null")
    return value


def _datetime_field(record: dict, name: str, key: str) -> datetime:
    value = _str_field(record, name, key)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise InvalidRecordError(key, f"{name} is not an ISO timestamp") from None


class KeyValueWalletRepository(WalletRepository):
    """
    `WalletRepository` on top of any `KeyValueStore`.

    Each user owns three keys: the account (`user:{id}`), the transaction
    log (`transactions:{id}`, newest first) and the gaming statistics
    (`gaming:{id}`). This class maps between those records and the domain
    models and rejects records that do not have the expected shape.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @staticmethod
    def _account_to_record(account: Account) -> Dict[str, Any]:
        return {
            "user_id": account.user_id,
            "balance": account.balance,
            "games_played": account.games_played,
            "total_wins": account.total_wins,
            "total_losses": account.total_losses,
            "created_at": account.created_at.isoformat(),
            "username": account.username,
            "email": account.email,
        }

    @staticmethod
    def _account_to_domain(record: Any, key: str) -> Account:
        if not isinstance(record, dict):
            raise InvalidRecordError(key, "account record must be an object")
        return Account(
            user_id=_str_field(record, "user_id", key),
            balance=_int_field(record, "balance", key, minimum=0),
            created_at=_datetime_field(record, "created_at", key),
            games_played=_int_field(record, "games_played", key, minimum=0),
            total_wins=_int_field(record, "total_wins", key, minimum=0),
            total_losses=_int_field(record, "total_losses", key, minimum=0),
            username=_str_field(record, "username", key, default=""),
            email=_str_field(record, "email", key, default=""),
        )

    @staticmethod
    def _transaction_to_record(transaction: Transaction) -> Dict[str, Any]:
        return {
            "id": transaction.id,
            "type": transaction.type.value,
            "amount": transaction.amount,
            "description": transaction.description,
            "timestamp": transaction.timestamp.isoformat(),
            "balance_after": transaction.balance_after,
            "game_id": transaction.game_id,
            "game": transaction.game,
            "opponent": transaction.opponent,
            "duration": transaction.duration,
        }

    @staticmethod
    def _transaction_to_domain(record: Any, key: str) -> Transaction:
        if not isinstance(record, dict):
            raise InvalidRecordError(key, "transaction record must be an object")
        try:
            transaction_type = TransactionType(record.get("type"))
        except ValueError:
            raise InvalidRecordError(key, f"unknown transaction type {record.get('type')!r}") from None
        return Transaction(
            id=_str_field(record, "id", key),
            type=transaction_type,
            amount=_int_field(record, "amount", key),
            description=_str_field(record, "description", key),
            timestamp=_datetime_field(record, "timestamp", key),
            balance_after=_int_field(record, "balance_after", key, minimum=0),
            game_id=_optional_str_field(record, "game_id", key),
            game=_optional_str_field(record, "game", key),
            opponent=_optional_str_field(record, "opponent", key),
            duration=_optional_str_field(record, "duration", key),
        )

    @staticmethod
    def _statistics_to_record(statistics: GamingStatistics) -> Dict[str, Any]:
        return {
            "games_won": statistics.games_won,
            "games_lost": statistics.games_lost,
            "total_earnings": statistics.total_earnings,
            "total_loss_amount": statistics.total_loss_amount,
            "current_streak": statistics.current_streak,
            "best_streak": statistics.best_streak,
        }

    @staticmethod
    def _statistics_to_domain(record: Any, key: str) -> GamingStatistics:
        if not isinstance(record, dict):
            raise InvalidRecordError(key, "statistics record must be an object")
        statistics = GamingStatistics(
            games_won=_int_field(record, "games_won", key, minimum=0),
            games_lost=_int_field(record, "games_lost", key, minimum=0),
            total_earnings=_int_field(record, "total_earnings", key, minimum=0),
            total_loss_amount=_int_field(record, "total_loss_amount", key, minimum=0),
            current_streak=_int_field(record, "current_streak", key, minimum=0),
            best_streak=_int_field(record, "best_streak", key, minimum=0),
        )
        if statistics.current_streak > statistics.best_streak:
            raise InvalidRecordError(key, "current_streak exceeds best_streak")
        return statistics

    def _load_transactions(self, user_id: str) -> List[Transaction]:
        key = transactions_key(user_id)
        records = self._store.get(key)
        if records is None:
            return []
        if not isinstance(records, list):
            raise InvalidRecordError(key, "transaction log must be a list")
        return [self._transaction_to_domain(record, key) for record in records]

    def load(self, user_id: str) -> Optional[WalletUnit]:
        key = account_key(user_id)
        record = self._store.get(key)
        if record is None:
            return None

        statistics = self.load_statistics(user_id)
        return WalletUnit(
            account=self._account_to_domain(record, key),
            transactions=self._load_transactions(user_id),
            statistics=statistics if statistics is not None else GamingStatistics(),
        )

    def load_statistics(self, user_id: str) -> Optional[GamingStatistics]:
        key = statistics_key(user_id)
        record = self._store.get(key)
        if record is None:
            return None
        return self._statistics_to_domain(record, key)

    def save(self, *units: WalletUnit) -> None:
        items: Dict[str, Any] = {}
        for unit in units:
            user_id = unit.user_id
            items[transactions_key(user_id)] = [
                self._transaction_to_record(transaction)
                for transaction in unit.transactions
            ]
            items[statistics_key(user_id)] = self._statistics_to_record(unit.statistics)
        # Accounts go last: the balance is what the log and stats explain.
        for unit in units:
            items[account_key(unit.user_id)] = self._account_to_record(unit.account)

        self._store.set_many(items)
