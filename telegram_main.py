from infrastructure.config import load_settings
from infrastructure.container import build_wallet
from infrastructure.log_config import configure_logging
from interfaces.telegram.handlers import create_telegram_bot


def main() -> None:
    settings = load_settings()
    configure_logging(settings.debug)

    if not settings.telegram_token:
        raise RuntimeError("TELEGRAM_TOKEN environment variable is not set.")

    wallet = build_wallet(settings)

    bot = create_telegram_bot(settings.telegram_token, wallet)
    bot.infinity_polling()


if __name__ == "__main__":
    main()
