import pytest

from passtracker.config import DEFAULT_DB_PATH, load_config


@pytest.fixture
def base_env(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "token")
    monkeypatch.setenv("GUILD_ID", "1234")
    monkeypatch.setenv("TIMEZONE", "Europe/Paris")
    for name in ("DB_PATH", "ADMIN_USER_IDS", "SEED_DEFAULT_ACCOUNTS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_load_config_defaults(base_env) -> None:
    config = load_config()

    assert config.guild_id == 1234
    assert config.timezone.key == "Europe/Paris"
    assert config.db_path == DEFAULT_DB_PATH
    assert config.admin_user_ids == ()
    assert config.seed_default_accounts is True


def test_load_config_optional_values(base_env) -> None:
    base_env.setenv("DB_PATH", "/tmp/passes.db")
    base_env.setenv("ADMIN_USER_IDS", "111, 222,")
    base_env.setenv("SEED_DEFAULT_ACCOUNTS", "no")

    config = load_config()

    assert config.db_path == "/tmp/passes.db"
    assert config.admin_user_ids == ("111", "222")
    assert config.seed_default_accounts is False


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("GUILD_ID", "abc", "GUILD_ID must be an integer"),
        ("GUILD_ID", "-4", "GUILD_ID must be positive"),
        ("TIMEZONE", "Mars/Olympus", "Invalid timezone in TIMEZONE"),
        ("ADMIN_USER_IDS", "12,bob", "ADMIN_USER_IDS must list numeric user IDs"),
        ("SEED_DEFAULT_ACCOUNTS", "maybe", "SEED_DEFAULT_ACCOUNTS must be a boolean"),
    ],
)
def test_load_config_rejects_invalid_values(base_env, name, value, message) -> None:
    base_env.setenv(name, value)

    with pytest.raises(ValueError, match=message):
        load_config()


def test_missing_token(base_env) -> None:
    base_env.delenv("DISCORD_TOKEN")

    with pytest.raises(ValueError, match="DISCORD_TOKEN"):
        load_config()
