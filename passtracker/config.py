from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_DB_PATH = "pass_tracker.db"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


@dataclass(frozen=True, slots=True)
class Config:
    discord_token: str
    guild_id: int
    timezone: ZoneInfo
    db_path: str
    admin_user_ids: tuple[str, ...]
    seed_default_accounts: bool


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ValueError(f"Missing required environment variable: {name}")
    return value.strip()


def _required_int_env(name: str) -> int:
    value = _required_env(name)
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc

    if parsed <= 0:
        raise ValueError(f"Environment variable {name} must be positive")
    return parsed


def _timezone_from_env(name: str) -> ZoneInfo:
    tz_name = _required_env(name)
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError as exc:
        raise ValueError(f"Invalid timezone in {name}: {tz_name}") from exc


def _id_list_env(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "")
    ids = tuple(part.strip() for part in raw.split(",") if part.strip())
    for user_id in ids:
        if not user_id.isdigit():
            raise ValueError(f"Environment variable {name} must list numeric user IDs, got {user_id!r}")
    return ids


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default

    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Environment variable {name} must be a boolean")


def load_config() -> Config:
    return Config(
        discord_token=_required_env("DISCORD_TOKEN"),
        guild_id=_required_int_env("GUILD_ID"),
        timezone=_timezone_from_env("TIMEZONE"),
        db_path=os.getenv("DB_PATH", DEFAULT_DB_PATH).strip() or DEFAULT_DB_PATH,
        admin_user_ids=_id_list_env("ADMIN_USER_IDS"),
        seed_default_accounts=_bool_env("SEED_DEFAULT_ACCOUNTS", True),
    )
