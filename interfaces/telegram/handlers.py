from __future__ import annotations

from typing import Dict, Tuple

import structlog
import telebot
from telebot.types import InlineKeyboardButton, InlineKeyboardMarkup

from application.games import list_games
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
    show_history,
    show_leaderboard,
    show_stats,
)
from interfaces.telegram.callback_data import (
    encode_join_choice,
    encode_send_confirmation,
    parse_join_choice,
    parse_send_confirmation,
)

logger = structlog.get_logger(__name__)

PROVIDER = "telegram"


def _build_external_context(from_user) -> ExternalContext:
    """Extract a channel-agnostic context object from a Telegram user."""

    return ExternalContext(
        provider=PROVIDER,
        provider_user_id=str(from_user.id),
        first_name=from_user.first_name or "",
        last_name=from_user.last_name or "",
        username=from_user.username or "",
    )


def create_telegram_bot(bot_token: str, wallet: Wallet) -> telebot.TeleBot:
    """
    Configure and return a TeleBot instance wired to the application layer.

    This module contains only Telegram-specific concerns: parsing Telegram
    messages/callbacks and mapping them to/from application services.
    """

    bot = telebot.TeleBot(bot_token)

    # Transfers waiting for confirmation, keyed by the ID of the confirmation
    # message: (Telegram ID of the sender, note). Callback data is capped at
    # 64 bytes, too small to carry them next to a wallet address.
    pending_sends: Dict[int, Tuple[str, str]] = {}

    def _reply(chat_id, result: OperationResult, fallback: str) -> None:
        if not result.success:
            bot.send_message(chat_id, result.error_message or fallback)
            return
        bot.send_message(chat_id, result.message or fallback)
        for broadcast in result.broadcasts:
            bot.send_message(broadcast.user_id, broadcast.text)

    @bot.message_handler(commands=["start", "hello"])
    def handle_start(message):
        bot.send_message(
            message.chat.id,
            "Welcome to the token wallet!\n"
            "Use /register to open a wallet, then /games or /send.\n"
            "Type /help to see available commands.",
        )

    @bot.message_handler(commands=["help"])
    def handle_help(message):
        bot.send_message(
            message.chat.id,
            "/register                                   - open your wallet\n"
            "/balance                                    - show your balance\n"
            "/address                                    - show your wallet address\n"
            "/send <user|address> <amount> [note]        - send tokens\n"
            "/games                                      - pick a game to join\n"
            "/won <game> <amount> <opponent> [duration]  - report a win\n"
            "/lost <game> <amount> <opponent> [duration] - report a loss\n"
            "/history [count]                            - recent transactions\n"
            "/stats                                      - your gaming statistics\n"
            "/leaderboard                                - top players\n",
        )

    @bot.message_handler(commands=["register"])
    def handle_register(message):
        result = register_player(_build_external_context(message.from_user), wallet)
        _reply(message.chat.id, result, "Registration failed.")

    @bot.message_handler(commands=["balance"])
    def handle_balance(message):
        result = show_balance(_build_external_context(message.from_user), wallet)
        _reply(message.chat.id, result, "Could not read balance.")

    @bot.message_handler(commands=["address"])
    def handle_address(message):
        result = show_address(_build_external_context(message.from_user), wallet)
        _reply(message.chat.id, result, "Could not read address.")

    @bot.message_handler(commands=["send"])
    def handle_send(message):
        parts = message.text.split(" ", 3)
        if len(parts) < 3:
            bot.send_message(message.chat.id, "Usage: /send <user|address> <amount> [note]")
            return

        recipient_ref = parts[1]
        try:
            amount = int(parts[2])
        except ValueError:
            bot.send_message(message.chat.id, "Amount must be a number.")
            return
        note = parts[3] if len(parts) > 3 else ""

        markup = InlineKeyboardMarkup(row_width=2)
        markup.add(
            InlineKeyboardButton(
                "send",
                callback_data=encode_send_confirmation(recipient_ref, amount, accepted=True),
            ),
            InlineKeyboardButton(
                "cancel",
                callback_data=encode_send_confirmation(recipient_ref, amount, accepted=False),
            ),
        )
        confirmation = bot.send_message(
            message.chat.id,
            f"Send {amount} tokens to {recipient_ref}?",
            reply_markup=markup,
        )
        pending_sends[confirmation.message_id] = (str(message.from_user.id), note)

    @bot.callback_query_handler(func=lambda call: call.data.startswith("send:"))
    def handle_send_confirmation(call):
        try:
            accepted, recipient_ref, amount = parse_send_confirmation(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid confirmation.")
            return

        pending = pending_sends.get(call.message.message_id)
        if pending is None:
            bot.answer_callback_query(call.id, "This transfer has expired.")
            return
        sender_id, note = pending
        if str(call.from_user.id) != sender_id:
            bot.answer_callback_query(call.id, "Only the sender can confirm this transfer.")
            return

        if pending_sends.pop(call.message.message_id, None) is None:
            # Another click on the same button got there first.
            bot.answer_callback_query(call.id, "This transfer has expired.")
            return
        try:
            if not accepted:
                bot.send_message(call.message.chat.id, "Transfer cancelled.")
                return

            result = send_tokens(
                _build_external_context(call.from_user),
                recipient_ref,
                amount,
                note or None,
                wallet,
            )
            _reply(call.message.chat.id, result, "Transfer completed.")
        finally:
            bot.delete_message(call.message.chat.id, call.message.message_id)

    @bot.message_handler(commands=["games"])
    def handle_games(message):
        markup = InlineKeyboardMarkup(row_width=1)
        for game in list_games():
            markup.add(
                InlineKeyboardButton(
                    f"{game.name} - entry {game.entry_fee}, up to {game.max_payout}",
                    callback_data=encode_join_choice(game.id),
                )
            )
        bot.send_message(message.chat.id, "Choose a game to join", reply_markup=markup)

    @bot.callback_query_handler(func=lambda call: call.data.startswith("join:"))
    def handle_join_choice(call):
        try:
            game_id = parse_join_choice(call.data)
        except ValueError:
            bot.answer_callback_query(call.id, "Invalid selection.")
            return

        result = join_game(_build_external_context(call.from_user), game_id, wallet)
        _reply(call.message.chat.id, result, "Joined.")
        bot.delete_message(call.message.chat.id, call.message.message_id)

    @bot.message_handler(commands=["won", "lost"])
    def handle_game_result(message):
        parts = message.text.split(" ")
        if len(parts) < 4:
            bot.send_message(
                message.chat.id, "Usage: /won|/lost <game> <amount> <opponent> [duration]"
            )
            return

        op = parts[0][1:].split("@")[0]  # strip leading '/' and bot mention
        try:
            amount = abs(int(parts[2]))
        except ValueError:
            bot.send_message(message.chat.id, "Amount must be a number.")
            return
        outcome = "win" if op == "won" else "loss"
        duration = parts[4] if len(parts) > 4 else ""

        result = complete_game(
            _build_external_context(message.from_user),
            parts[1],
            outcome,
            amount if outcome == "win" else -amount,
            parts[3],
            duration,
            wallet,
        )
        _reply(message.chat.id, result, "Game completed.")

    @bot.message_handler(commands=["history"])
    def handle_history(message):
        parts = message.text.split(" ")
        try:
            limit = int(parts[1]) if len(parts) > 1 else 10
        except ValueError:
            bot.send_message(message.chat.id, "Count must be a number.")
            return

        result = show_history(_build_external_context(message.from_user), wallet, limit=limit)
        _reply(message.chat.id, result, "No transactions yet.")

    @bot.message_handler(commands=["stats"])
    def handle_stats(message):
        result = show_stats(_build_external_context(message.from_user), wallet)
        _reply(message.chat.id, result, "No statistics yet.")

    @bot.message_handler(commands=["leaderboard"])
    def handle_leaderboard(message):
        _reply(message.chat.id, show_leaderboard(wallet), "No leaderboard yet.")

    return bot
