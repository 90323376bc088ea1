from __future__ import annotations

import json
import logging

import pytest
from pydantic import ValidationError

from soundwave.core.config import Settings
from soundwave.core.logging import setup_logging


@pytest.mark.parametrize(
    "value, expected",
    [
        ("postgres://u:p@db:5432/music", "postgresql+asyncpg://u:p@db:5432/music"),
        ("postgresql://u:p@db/music", "postgresql+asyncpg://u:p@db/music"),
        ("postgresql+asyncpg://u:p@db/music", "postgresql+asyncpg://u:p@db/music"),
        ("sqlite+aiosqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
        ("sqlite:///./local.db", "sqlite+aiosqlite:///./local.db"),
    ],
)
def test_database_dsn_uses_async_driver(value, expected):
    settings = Settings(database_dsn=value)
    assert settings.database_dsn == expected
    assert settings.is_sqlite == expected.startswith("sqlite")


@pytest.mark.parametrize("value", ["mysql+aiomysql://u:p@db/music", "oracle://u:p@db"])
def test_database_dsn_rejects_unsupported_backends(value):
    with pytest.raises(ValidationError, match="unsupported database backend"):
        Settings(database_dsn=value)


def test_settings_defaults():
    settings = Settings(_env_file=None)
    assert settings.guest_user_id == "guest"
    assert settings.discover_limit == 20
    assert settings.completed_play_seconds == 30


def test_setup_logging_emits_json(capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("debug")
        logging.getLogger("soundwave.test").info("discovery ranked", extra={"algorithm": "mixed"})
        line = capsys.readouterr().out.strip().splitlines()[-1]
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
    record = json.loads(line)
    assert record["message"] == "discovery ranked"
    assert record["level"] == "INFO"
    assert record["name"] == "soundwave.test"
    assert record["algorithm"] == "mixed"
