from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class GameDefinition:
    """
    Caller-side rules for a game offered on the platform.

    The settlement engine never looks at these: entry fees and payout caps
    are decided here, before the engine is asked to escrow or settle.
    """

    id: str
    name: str
    description: str
    entry_fee: int
    max_payout: int


GAMES: Dict[str, GameDefinition] = {
    game.id: game
    for game in (
        GameDefinition(
            id="battle-royale",
            name="Battle Royale Arena",
            description="Last player standing wins the pot",
            entry_fee=50,
            max_payout=500,
        ),
        GameDefinition(
            id="racing",
            name="Speed Racing Circuit",
            description="First to finish wins",
            entry_fee=25,
            max_payout=200,
        ),
        GameDefinition(
            id="strategy",
            name="Tower Defense Master",
            description="Defend your base the longest",
            entry_fee=30,
            max_payout=180,
        ),
        GameDefinition(
            id="puzzle",
            name="Mind Bender Puzzles",
            description="Solve puzzles faster than opponents",
            entry_fee=15,
            max_payout=90,
        ),
    )
}


def get_game(game_id: str) -> Optional[GameDefinition]:
    return GAMES.get((game_id or "").strip().lower())


def list_games() -> List[GameDefinition]:
    return list(GAMES.values())
