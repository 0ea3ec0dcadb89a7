from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import structlog

from application.ledger import LedgerEngine, require_amount, require_positive_amount
from application.statistics import GamingStatisticsTracker
from domain.errors import InvalidAmountError, InvalidRequestError
from domain.models import GameResult, GamingStatistics, Transaction, TransactionType
from domain.repositories import WalletRepository

logger = structlog.get_logger(__name__)


@dataclass
class EscrowResult:
    new_balance: int
    transaction: Transaction


@dataclass
class SettlementResult:
    new_balance: int
    transaction: Transaction
    statistics: GamingStatistics


def coerce_game_result(value: Union[GameResult, str]) -> GameResult:
    try:
        return GameResult(value)
    except ValueError:
        raise InvalidRequestError(f"Unknown game result: {value!r}") from None


class SettlementEngine:
    """
    Two-phase economic protocol for a game session.

    `escrow` takes the entry fee when a player joins; `settle` applies the
    outcome once the caller's game rules have decided it. The engine holds
    no session state: whether a game is in progress is up to the caller.
    """

    def __init__(
        self,
        ledger: LedgerEngine,
        repo: WalletRepository,
        statistics: GamingStatisticsTracker,
    ) -> None:
        self._ledger = ledger
        self._repo = repo
        self._statistics = statistics

    def escrow(
        self,
        user_id: str,
        game_id: str,
        game_label: str,
        entry_fee: int,
    ) -> EscrowResult:
        require_positive_amount(entry_fee, "Entry fee")

        with self._ledger.locks.hold(user_id):
            unit = self._ledger.load(user_id)
            transaction = self._ledger.post(
                unit,
                -entry_fee,
                TransactionType.GAME_ENTRY,
                f"Joined {game_label}",
                game_id=game_id,
                game=game_label,
            )
            self._repo.save(unit)

        logger.info(
            "settlement.escrowed",
            user_id=user_id,
            game_id=game_id,
            entry_fee=entry_fee,
            balance=unit.account.balance,
        )
        return EscrowResult(new_balance=unit.account.balance, transaction=transaction)

    def settle(
        self,
        user_id: str,
        game_id: str,
        game_label: str,
        result: Union[GameResult, str],
        amount: int,
        opponent: str,
        duration: str,
    ) -> SettlementResult:
        """
        Apply a finished game's net `amount` and advance the play counters
        and gaming statistics.

        A win must not reduce the balance and a loss must not increase it.
        Statistics only move if the ledger posting succeeded, and all three
        records are committed together.
        """

        game_result = coerce_game_result(result)
        require_amount(amount)
        if game_result is GameResult.WIN and amount < 0:
            raise InvalidAmountError("A win cannot have a negative amount.")
        if game_result is GameResult.LOSS and amount > 0:
            raise InvalidAmountError("A loss cannot have a positive amount.")

        verb = "Won" if game_result is GameResult.WIN else "Lost"

        with self._ledger.locks.hold(user_id):
            unit = self._ledger.load(user_id)
            transaction = self._ledger.post(
                unit,
                amount,
                TransactionType(game_result.value),
                f"{verb} against {opponent} in {game_label}",
                game_id=game_id,
                game=game_label,
                opponent=opponent,
                duration=duration,
            )

            account = unit.account
            account.games_played += 1
            if game_result is GameResult.WIN:
                account.total_wins += 1
            else:
                account.total_losses += 1

            unit.statistics = self._statistics.apply_result(
                unit.statistics, game_result, amount
            )
            self._repo.save(unit)

        logger.info(
            "settlement.settled",
            user_id=user_id,
            game_id=game_id,
            result=game_result.value,
            amount=amount,
            balance=account.balance,
            streak=unit.statistics.current_streak,
        )
        return SettlementResult(
            new_balance=account.balance,
            transaction=transaction,
            statistics=unit.statistics,
        )
