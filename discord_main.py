from infrastructure.config import load_settings
from infrastructure.container import build_wallet
from infrastructure.log_config import configure_logging
from interfaces.discord.handlers import create_discord_bot


def main() -> None:
    settings = load_settings()
    configure_logging(settings.debug)

    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN environment variable is not set.")

    wallet = build_wallet(settings)

    bot = create_discord_bot(wallet)
    bot.run(settings.discord_token, log_handler=None)


if __name__ == "__main__":
    main()
