from __future__ import annotations

from typing import Optional

import discord
import structlog
from discord.ext import commands

from application.services import (
    ExternalContext,
    OperationResult,
    Wallet,
    complete_game,
    join_game,
    register_player,
    send_tokens,
    show_address,
    show_balance,
    show_games,
    show_history,
    show_leaderboard,
    show_stats,
)

logger = structlog.get_logger(__name__)

PROVIDER = "discord"


def _build_external_context(user: discord.abc.User) -> ExternalContext:
    """Create an `ExternalContext` from a Discord user."""

    # Discord has `name` and `display_name`; the full display name goes in
    # `first_name` and the unique account name becomes the wallet handle.
    display_name = user.display_name or user.name
    return ExternalContext(
        provider=PROVIDER,
        provider_user_id=str(user.id),
        first_name=display_name,
        last_name="",
        username=user.name,
    )


def create_discord_bot(wallet: Wallet) -> commands.Bot:
    """
    Configure and return a Discord bot wired to the wallet services:
    registration, balance, transfers, game entry/settlement and history.
    """

    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True

    # Disable the default help command so we can provide our own `!help`.
    bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)

    async def _reply(ctx: commands.Context, result: OperationResult, fallback: str) -> None:
        if not result.success:
            await ctx.send(result.error_message or fallback)
            return
        await ctx.send(result.message or fallback)

    async def _deliver_broadcasts(result: OperationResult) -> None:
        for broadcast in result.broadcasts:
            try:
                target = await bot.fetch_user(int(broadcast.user_id))
                await target.send(broadcast.text)
            except discord.HTTPException as exc:
                logger.warning(
                    "discord.broadcast_failed",
                    discord_user_id=broadcast.user_id,
                    reason=str(exc),
                )

    @bot.event
    async def on_ready():
        logger.info("discord.ready", bot_user=str(bot.user), bot_id=bot.user.id)

    @bot.command(name="start")
    async def start_cmd(ctx: commands.Context):
        await ctx.send(
            "Welcome to the token wallet!\n"
            "Use !register to open a wallet, then !join a game or !send tokens.\n"
            "Type !help to see available commands."
        )

    @bot.command(name="help")
    async def help_cmd(ctx: commands.Context):
        await ctx.send(
            "!register                                  - open your wallet\n"
            "!balance                                   - show your balance\n"
            "!address                                   - show your wallet address\n"
            "!send <user|address> <amount> [note]       - send tokens\n"
            "!games                                     - list games\n"
            "!join <game>                               - pay the entry fee and join\n"
            "!won <game> <amount> <opponent> [duration] - report a win\n"
            "!lost <game> <amount> <opponent> [duration]- report a loss\n"
            "!history [count]                           - recent transactions\n"
            "!stats                                     - your gaming statistics\n"
            "!leaderboard                               - top players\n"
        )

    @bot.command(name="register")
    async def register_cmd(ctx: commands.Context):
        result = register_player(_build_external_context(ctx.author), wallet)
        await _reply(ctx, result, "Registration failed.")

    @bot.command(name="balance")
    async def balance_cmd(ctx: commands.Context):
        result = show_balance(_build_external_context(ctx.author), wallet)
        await _reply(ctx, result, "Could not read balance.")

    @bot.command(name="address")
    async def address_cmd(ctx: commands.Context):
        result = show_address(_build_external_context(ctx.author), wallet)
        await _reply(ctx, result, "Could not read address.")

    @bot.command(name="send")
    async def send_cmd(
        ctx: commands.Context,
        recipient: str,
        amount: int,
        *,
        note: Optional[str] = None,
    ):
        """
        !send <user|address> <amount> [note]
        """

        result = send_tokens(
            _build_external_context(ctx.author),
            recipient,
            amount,
            note,
            wallet,
        )
        await _reply(ctx, result, "Transfer completed.")
        if result.success:
            await _deliver_broadcasts(result)

    @bot.command(name="games")
    async def games_cmd(ctx: commands.Context):
        await _reply(ctx, show_games(), "No games available.")

    @bot.command(name="join")
    async def join_cmd(ctx: commands.Context, game_id: str):
        result = join_game(_build_external_context(ctx.author), game_id, wallet)
        await _reply(ctx, result, "Joined.")

    async def _finish(
        ctx: commands.Context,
        game_id: str,
        outcome: str,
        amount: int,
        opponent: str,
        duration: str,
    ) -> None:
        signed_amount = abs(amount) if outcome == "win" else -abs(amount)
        result = complete_game(
            _build_external_context(ctx.author),
            game_id,
            outcome,
            signed_amount,
            opponent,
            duration,
            wallet,
        )
        await _reply(ctx, result, "Game completed.")

    @bot.command(name="won")
    async def won_cmd(
        ctx: commands.Context,
        game_id: str,
        amount: int,
        opponent: str,
        duration: str = "",
    ):
        await _finish(ctx, game_id, "win", amount, opponent, duration)

    @bot.command(name="lost")
    async def lost_cmd(
        ctx: commands.Context,
        game_id: str,
        amount: int,
        opponent: str,
        duration: str = "",
    ):
        await _finish(ctx, game_id, "loss", amount, opponent, duration)

    @bot.command(name="history")
    async def history_cmd(ctx: commands.Context, count: int = 10):
        result = show_history(_build_external_context(ctx.author), wallet, limit=count)
        await _reply(ctx, result, "No transactions yet.")

    @bot.command(name="stats")
    async def stats_cmd(ctx: commands.Context):
        result = show_stats(_build_external_context(ctx.author), wallet)
        await _reply(ctx, result, "No statistics yet.")

    @bot.command(name="leaderboard")
    async def leaderboard_cmd(ctx: commands.Context):
        await _reply(ctx, show_leaderboard(wallet), "No leaderboard yet.")

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, (commands.MissingRequiredArgument, commands.BadArgument)):
            await ctx.send(f"{error}\nType !help to see usage.")
            return
        logger.error("discord.command_failed", command=str(ctx.command), error=repr(error))
        await ctx.send("Something went wrong.")

    return bot
