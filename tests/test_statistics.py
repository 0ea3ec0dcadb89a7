import unittest

from application.statistics import GamingStatisticsTracker
from domain.models import GameResult, GamingStatistics
from infrastructure.db.kv_store_memory import InMemoryKeyValueStore
from infrastructure.db.wallet_repository_kv import KeyValueWalletRepository


class GamingStatisticsTrackerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tracker = GamingStatisticsTracker(
            KeyValueWalletRepository(InMemoryKeyValueStore())
        )

    def test_unknown_user_gets_zeroed_statistics(self):
        self.assertEqual(self.tracker.get("nobody"), GamingStatistics())

    def test_win_raises_streak_and_best_streak(self):
        start = GamingStatistics(games_won=2, current_streak=2, best_streak=2)

        advanced = self.tracker.apply_result(start, GameResult.WIN, 75)

        self.assertEqual(advanced.games_won, 3)
        self.assertEqual(advanced.total_earnings, 75)
        self.assertEqual(advanced.current_streak, 3)
        self.assertEqual(advanced.best_streak, 3)
        # The input is not modified.
        self.assertEqual(start.current_streak, 2)

    def test_win_below_best_streak_keeps_best(self):
        start = GamingStatistics(current_streak=1, best_streak=4)
        advanced = self.tracker.apply_result(start, GameResult.WIN, 10)
        self.assertEqual(advanced.current_streak, 2)
        self.assertEqual(advanced.best_streak, 4)

    def test_loss_resets_streak_and_accumulates_absolute_amount(self):
        start = GamingStatistics(games_won=3, current_streak=3, best_streak=3)

        advanced = self.tracker.apply_result(start, GameResult.LOSS, -40)

        self.assertEqual(advanced.games_lost, 1)
        self.assertEqual(advanced.total_loss_amount, 40)
        self.assertEqual(advanced.current_streak, 0)
        self.assertEqual(advanced.best_streak, 3)


if __name__ == "__main__":
    unittest.main()
