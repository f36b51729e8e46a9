"""Tests for the one-off table creation script."""

from unittest.mock import patch

import pytest
from sqlalchemy import create_engine as create_sync_engine
from sqlalchemy import inspect

from core.config import clear_settings_cache
from scripts.create_tables import main

pytestmark = pytest.mark.unit


async def test_creates_tables_and_logs_once(tmp_path, monkeypatch):
    db_path = tmp_path / "setup.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    clear_settings_cache()

    with patch("core.database.logger") as mock_logger:
        await main()

    events = [c.args[0] for c in mock_logger.info.call_args_list]
    assert events.count("db.tables.created") == 1
    assert "db.engine.disposed" in events

    engine = create_sync_engine(f"sqlite:///{db_path}")
    try:
        assert {"users", "user_emails"} <= set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
