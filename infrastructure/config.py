from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv

STORE_BACKENDS = ("sqlite", "postgres", "memory")


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _bool_env(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    store_backend: str = "sqlite"
    db_path: str = "wallet.db"
    postgres_params: dict = field(default_factory=dict)
    starting_balance: int = 1000
    transaction_retention: int = 100
    debug: bool = False
    discord_token: Optional[str] = None
    telegram_token: Optional[str] = None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build `Settings` from the environment.

    When `env` is not given, variables from a local `.env` file are loaded
    into the process environment first.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    store_backend = env.get("STORE_BACKEND", "sqlite").strip().lower()
    if store_backend not in STORE_BACKENDS:
        raise ValueError(
            f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got {store_backend!r}"
        )

    starting_balance = _int_env(env, "STARTING_BALANCE", 1000)
    if starting_balance < 0:
        raise ValueError("STARTING_BALANCE must be non-negative")

    retention = _int_env(env, "TRANSACTION_RETENTION", 100)
    if retention < 1:
        raise ValueError("TRANSACTION_RETENTION must be at least 1")

    postgres_params = {
        "host": env.get("PGHOST", "localhost"),
        "port": _int_env(env, "PGPORT", 5432),
        "dbname": env.get("PGDATABASE", "wallet"),
        "user": env.get("PGUSER", "postgres"),
        "password": env.get("PGPASSWORD", ""),
    }

    return Settings(
        store_backend=store_backend,
        db_path=env.get("DB_PATH", "wallet.db"),
        postgres_params=postgres_params,
        starting_balance=starting_balance,
        transaction_retention=retention,
        debug=_bool_env(env, "DEBUG"),
        discord_token=env.get("DISCORD_TOKEN") or None,
        telegram_token=env.get("TELEGRAM_TOKEN") or None,
    )
