from __future__ import annotations

from dataclasses import replace

from domain.models import GameResult, GamingStatistics
from domain.repositories import WalletRepository


class GamingStatisticsTracker:
    """
    Read access to the per-user gaming aggregates.

    Statistics are derived state: the only way they change is through
    `apply_result`, which the settlement engine calls while staging a
    settlement. The tracker itself never writes.
    """

    def __init__(self, repo: WalletRepository) -> None:
        self._repo = repo

    def get(self, user_id: str) -> GamingStatistics:
        statistics = self._repo.load_statistics(user_id)
        return statistics if statistics is not None else GamingStatistics()

    @staticmethod
    def apply_result(
        statistics: GamingStatistics,
        result: GameResult,
        amount: int,
    ) -> GamingStatistics:
        if result is GameResult.WIN:
            current_streak = statistics.current_streak + 1
            return replace(
                statistics,
                games_won=statistics.games_won + 1,
                total_earnings=statistics.total_earnings + amount,
                current_streak=current_streak,
                best_streak=max(statistics.best_streak, current_streak),
            )

        return replace(
            statistics,
            games_lost=statistics.games_lost + 1,
            total_loss_amount=statistics.total_loss_amount + abs(amount),
            current_streak=0,
        )
