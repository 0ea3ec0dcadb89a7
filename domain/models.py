from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class TransactionType(str, Enum):
    SENT = "sent"
    RECEIVED = "received"
    WIN = "win"
    LOSS = "loss"
    GAME_ENTRY = "game_entry"


class GameResult(str, Enum):
    WIN = "win"
    LOSS = "loss"


@dataclass
class Account:
    """
    Domain representation of a player's wallet.

    The balance is kept in whole token units and never goes below zero.
    Play counters only ever move up, and only through settlement.
    """

    user_id: str
    balance: int
    created_at: datetime
    games_played: int = 0
    total_wins: int = 0
    total_losses: int = 0
    username: str = ""
    email: str = ""


@dataclass
class Transaction:
    """
    One immutable entry of a player's transaction log.

    `amount` is the signed delta applied to the balance and `balance_after`
    is the balance snapshot right after it was applied.
    """

    id: str
    type: TransactionType
    amount: int
    description: str
    timestamp: datetime
    balance_after: int
    game_id: Optional[str] = None
    game: Optional[str] = None
    opponent: Optional[str] = None
    duration: Optional[str] = None


@dataclass
class GamingStatistics:
    games_won: int = 0
    games_lost: int = 0
    total_earnings: int = 0
    total_loss_amount: int = 0
    current_streak: int = 0
    best_streak: int = 0


@dataclass
class LeaderboardEntry:
    rank: int
    username: str
    winnings: int
    games_won: int


@dataclass
class WalletUnit:
    """
    Everything stored for one user, loaded and saved as a single aggregate.

    Transactions are ordered newest first.
    """

    account: Account
    transactions: List[Transaction] = field(default_factory=list)
    statistics: GamingStatistics = field(default_factory=GamingStatistics)

    @property
    def user_id(self) -> str:
        return self.account.user_id
