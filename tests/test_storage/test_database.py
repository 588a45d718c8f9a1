"""Tests for the asyncpg Database wrapper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ar_momentum.config.settings import get_settings
from ar_momentum.storage.database import Database


class TestDatabase:

    def test_pool_requires_connect(self):
        db = Database(database_url="postgresql://localhost/test")
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.pool

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self):
        pool = AsyncMock()
        with patch(
            "ar_momentum.storage.database.asyncpg.create_pool",
            AsyncMock(return_value=pool),
        ) as create_pool:
            async with Database(
                database_url="postgresql://localhost/test", min_size=1, max_size=3,
            ) as db:
                assert db.pool is pool

        assert create_pool.call_args.kwargs["max_size"] == 3
        pool.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_propagates(self):
        with patch(
            "ar_momentum.storage.database.asyncpg.create_pool",
            AsyncMock(side_effect=OSError("connection refused")),
        ):
            with pytest.raises(OSError):
                await Database(database_url="postgresql://localhost/test").connect()

    @pytest.mark.asyncio
    async def test_health_check_false_when_unreachable(self):
        db = Database(database_url="postgresql://localhost/test")
        assert await db.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_true(self):
        conn = AsyncMock()
        conn.fetchval.return_value = 1
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = conn
        db = Database(database_url="postgresql://localhost/test")
        db._pool = pool

        assert await db.health_check() is True
        conn.fetchval.assert_awaited_once_with("SELECT 1")

    def test_command_timeout_from_settings(self, monkeypatch):
        monkeypatch.setenv("DB_COMMAND_TIMEOUT", "5")
        get_settings.cache_clear()
        try:
            db = Database(database_url="postgresql://localhost/test")
        finally:
            get_settings.cache_clear()
        assert db._command_timeout == 5.0
