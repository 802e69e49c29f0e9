"""Tests for scripts/reset_daily_quota.py."""

import importlib.util
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from guardian.app.core.options import RedisOptionsStore
from guardian.app.services.quota import COUNTER_OPTION, RESET_DATE_OPTION

SCRIPT_PATH = Path(__file__).parent.parent / "scripts" / "reset_daily_quota.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("reset_daily_quota", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def stale_store(options):
    options._data.update({COUNTER_OPTION: 3, RESET_DATE_OPTION: "2000-01-01"})
    return options


class TestResetQuota:
    @pytest.mark.asyncio
    async def test_unconditional_reset(self, script, options):
        options._data.update({COUNTER_OPTION: 3, RESET_DATE_OPTION: "2099-01-01"})

        with patch.object(script, "get_options_store", return_value=options):
            assert await script.reset_quota() is True

        assert options._data[COUNTER_OPTION] == 0
        assert options._data[RESET_DATE_OPTION] != "2099-01-01"

    @pytest.mark.asyncio
    async def test_only_if_stale_resets_stale_counter(self, script, stale_store):
        with patch.object(script, "get_options_store", return_value=stale_store):
            assert await script.reset_quota(only_if_stale=True) is True

        assert stale_store._data[COUNTER_OPTION] == 0

    @pytest.mark.asyncio
    async def test_only_if_stale_keeps_fresh_counter(self, script, stale_store):
        with patch.object(script, "get_options_store", return_value=stale_store):
            await script.reset_quota()
            stale_store._data[COUNTER_OPTION] = 2
            assert await script.reset_quota(only_if_stale=True) is False

        assert stale_store._data[COUNTER_OPTION] == 2


class TestMain:
    def test_refuses_process_local_store(self, script, stale_store):
        with patch.object(script, "get_options_store", return_value=stale_store), \
                patch.object(script, "setup_logging"), \
                patch.object(script, "logger") as mock_logger:
            assert script.main([]) == 1

        mock_logger.error.assert_called_once()
        assert "ai-reset" in mock_logger.error.call_args.args[0]
        assert stale_store._data[COUNTER_OPTION] == 3

    def test_runs_against_shared_store(self, script):
        shared = RedisOptionsStore("redis://localhost:6379/0", client=AsyncMock())
        reset_quota = AsyncMock(return_value=True)
        with patch.object(script, "get_options_store", return_value=shared), \
                patch.object(script, "setup_logging"), \
                patch.object(script, "reset_quota", reset_quota):
            assert script.main(["--only-if-stale"]) == 0

        reset_quota.assert_awaited_once_with(only_if_stale=True)
