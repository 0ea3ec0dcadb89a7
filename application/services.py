from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from application.games import get_game, list_games
from application.ledger import LedgerEngine, require_amount
from application.sessions import ActiveGames
from application.settlement import SettlementEngine, coerce_game_result
from application.statistics import GamingStatisticsTracker
from domain.errors import LedgerError
from domain.models import GameResult
from domain.repositories import IdentityRepository, LeaderboardSource, RecipientDirectory

logger = structlog.get_logger(__name__)

NOT_REGISTERED = "You don't have a wallet yet. Use register to create one."


@dataclass
class ExternalContext:
    """
    Information about the caller from a particular channel (Telegram, Discord).

    The application layer never depends on concrete SDK types; it only sees
    this small context object.
    """

    provider: str
    provider_user_id: str
    first_name: str
    last_name: str
    username: str = ""

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.username or self.provider_user_id


@dataclass
class BroadcastMessage:
    """A message that should be delivered to a particular external user/chat."""

    user_id: str
    text: str


@dataclass
class OperationResult:
    """Generic result type for channel-facing operations."""

    success: bool
    error_message: Optional[str] = None
    message: Optional[str] = None
    broadcasts: List[BroadcastMessage] = field(default_factory=list)


@dataclass
class Wallet:
    """The core engines and their collaborators, as wired for one process."""

    ledger: LedgerEngine
    settlement: SettlementEngine
    statistics: GamingStatisticsTracker
    identities: IdentityRepository
    recipients: RecipientDirectory
    leaderboard: LeaderboardSource
    active_games: ActiveGames = field(default_factory=ActiveGames)


def _failure(operation: str, external_ctx: ExternalContext, exc: LedgerError) -> OperationResult:
    logger.info(
        "wallet.rejected",
        operation=operation,
        provider=external_ctx.provider,
        provider_user_id=external_ctx.provider_user_id,
        error=type(exc).__name__,
        reason=str(exc),
    )
    return OperationResult(success=False, error_message=str(exc))


def _resolve_user_id(external_ctx: ExternalContext, wallet: Wallet) -> Optional[str]:
    return wallet.identities.find_user_id(
        external_ctx.provider, external_ctx.provider_user_id
    )


def _pick_handle(external_ctx: ExternalContext, wallet: Wallet) -> str:
    handle = external_ctx.username or external_ctx.provider_user_id
    if wallet.recipients.resolve(handle) is None:
        return handle
    # Someone already owns the name on another channel.
    return f"{external_ctx.provider}-{external_ctx.provider_user_id}"


def register_player(external_ctx: ExternalContext, wallet: Wallet) -> OperationResult:
    """
    Open a wallet for the caller and link their external identity to it.

    Registering twice is harmless: the existing wallet is reported.
    """

    # Wallet user IDs are bare hex, so a "provider:id" key never collides.
    identity_key = f"{external_ctx.provider}:{external_ctx.provider_user_id}"
    with wallet.ledger.locks.hold(identity_key):
        user_id = _resolve_user_id(external_ctx, wallet)
        if user_id is not None:
            try:
                account = wallet.ledger.get_account(user_id)
            except LedgerError as exc:
                return _failure("register", external_ctx, exc)
            return OperationResult(
                success=True,
                message=f"Welcome back {account.username}! Balance: {account.balance} tokens.",
            )

        user_id = uuid.uuid4().hex
        handle = _pick_handle(external_ctx, wallet)
        account = wallet.ledger.open_account(user_id, username=handle)
        wallet.recipients.register(handle, user_id)
        wallet.identities.set_external_identity(
            external_ctx.provider, external_ctx.provider_user_id, user_id
        )

    return OperationResult(
        success=True,
        message=(
            f"Wallet created for {handle} with {account.balance} tokens.\n"
            f"Address: {wallet.recipients.address_for(user_id)}"
        ),
    )


def show_balance(external_ctx: ExternalContext, wallet: Wallet) -> OperationResult:
    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    try:
        account = wallet.ledger.get_account(user_id)
    except LedgerError as exc:
        return _failure("balance", external_ctx, exc)

    return OperationResult(
        success=True,
        message=(
            f"{account.username}: {account.balance} tokens\n"
            f"Games played: {account.games_played} "
            f"({account.total_wins} won, {account.total_losses} lost)"
        ),
    )


def show_address(external_ctx: ExternalContext, wallet: Wallet) -> OperationResult:
    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    return OperationResult(
        success=True,
        message=(
            "Share this address or your username to receive tokens:\n"
            f"{wallet.recipients.address_for(user_id)}"
        ),
    )


def send_tokens(
    external_ctx: ExternalContext,
    recipient_ref: str,
    amount: int,
    note: Optional[str],
    wallet: Wallet,
) -> OperationResult:
    """
    Transfer tokens to another player:
    - Debit the caller and credit the recipient in one commit.
    - Notify the recipient on every chat of the same channel they use.
    """

    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    try:
        result = wallet.ledger.transfer(user_id, recipient_ref, amount, note)
    except LedgerError as exc:
        return _failure("send", external_ctx, exc)

    recipient_id = wallet.recipients.resolve(recipient_ref)
    text = f"{external_ctx.display_name} sent you {amount} tokens"
    if note:
        text += f": {note}"
    broadcasts = [
        BroadcastMessage(user_id=external_id, text=text)
        for external_id in wallet.identities.get_external_ids_for_user(
            external_ctx.provider, recipient_id
        )
    ] if recipient_id is not None else []

    return OperationResult(
        success=True,
        message=f"Sent {amount} tokens to {recipient_ref}. New balance: {result.new_balance}",
        broadcasts=broadcasts,
    )


def show_games() -> OperationResult:
    lines = [
        f"{game.id}: {game.name} - entry {game.entry_fee}, up to {game.max_payout}"
        for game in list_games()
    ]
    return OperationResult(success=True, message="\n".join(lines))


def join_game(external_ctx: ExternalContext, game_id: str, wallet: Wallet) -> OperationResult:
    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    game = get_game(game_id)
    if game is None:
        return OperationResult(success=False, error_message=f"Unknown game: {game_id}")

    try:
        result = wallet.settlement.escrow(user_id, game.id, game.name, game.entry_fee)
    except LedgerError as exc:
        return _failure("join", external_ctx, exc)

    wallet.active_games.add(user_id, game.id)
    return OperationResult(
        success=True,
        message=(
            f"Joined {game.name}! Entry fee: {game.entry_fee} tokens. "
            f"Balance: {result.new_balance}"
        ),
    )


def complete_game(
    external_ctx: ExternalContext,
    game_id: str,
    result: str,
    amount: int,
    opponent: str,
    duration: str,
    wallet: Wallet,
) -> OperationResult:
    """
    Report the outcome of a game the caller joined.

    `amount` is the signed net change: positive for a win, negative for a
    loss. A win is capped at the game's max payout. Each join pays for
    exactly one reported result.
    """

    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    game = get_game(game_id)
    if game is None:
        return OperationResult(success=False, error_message=f"Unknown game: {game_id}")

    try:
        game_result = coerce_game_result(result)
        require_amount(amount)
        if game_result is GameResult.WIN and amount > game.max_payout:
            return OperationResult(
                success=False,
                error_message=f"{game.name} pays out at most {game.max_payout} tokens.",
            )
    except LedgerError as exc:
        return _failure("complete", external_ctx, exc)

    if not wallet.active_games.take(user_id, game.id):
        return OperationResult(
            success=False,
            error_message=f"You are not playing {game.name}. Join it first.",
        )

    try:
        settled = wallet.settlement.settle(
            user_id, game.id, game.name, game_result, amount, opponent, duration
        )
    except LedgerError as exc:
        wallet.active_games.add(user_id, game.id)
        return _failure("complete", external_ctx, exc)

    if game_result is GameResult.WIN:
        headline = f"You won {amount} tokens in {game.name}!"
    else:
        headline = f"You lost {abs(amount)} tokens in {game.name}."
    statistics = settled.statistics
    return OperationResult(
        success=True,
        message=(
            f"{headline}\nBalance: {settled.new_balance}\n"
            f"Streak: {statistics.current_streak} (best {statistics.best_streak})"
        ),
    )


def show_history(
    external_ctx: ExternalContext,
    wallet: Wallet,
    limit: int = 10,
) -> OperationResult:
    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    try:
        transactions = wallet.ledger.get_transactions(user_id, limit=limit)
    except LedgerError as exc:
        return _failure("history", external_ctx, exc)

    if not transactions:
        return OperationResult(success=True, message="No transactions yet.")

    lines = [
        f"{t.timestamp:%Y-%m-%d %H:%M} {t.amount:+d} {t.description} (balance {t.balance_after})"
        for t in transactions
    ]
    return OperationResult(success=True, message="\n".join(lines))


def show_stats(external_ctx: ExternalContext, wallet: Wallet) -> OperationResult:
    user_id = _resolve_user_id(external_ctx, wallet)
    if user_id is None:
        return OperationResult(success=False, error_message=NOT_REGISTERED)

    statistics = wallet.statistics.get(user_id)
    return OperationResult(
        success=True,
        message=(
            f"Won: {statistics.games_won}  Lost: {statistics.games_lost}\n"
            f"Earnings: {statistics.total_earnings}  Losses: {statistics.total_loss_amount}\n"
            f"Current streak: {statistics.current_streak}  Best: {statistics.best_streak}"
        ),
    )


def show_leaderboard(wallet: Wallet, limit: int = 10) -> OperationResult:
    try:
        entries = wallet.leaderboard.get_leaderboard(limit=limit)
    except LedgerError as exc:
        logger.warning("wallet.leaderboard_unavailable", reason=str(exc))
        return OperationResult(success=False, error_message="Leaderboard is unavailable.")

    if not entries:
        return OperationResult(success=True, message="No leaderboard yet.")

    lines = [
        f"#{entry.rank} {entry.username}: {entry.winnings} tokens, {entry.games_won} wins"
        for entry in entries
    ]
    return OperationResult(success=True, message="\n".join(lines))
