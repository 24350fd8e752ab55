"""Tests for the storage read retry helper."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from keygate.core.errors import (
    InvalidCredentialsError,
    NotFoundError,
    StorageError,
    TransientStorageError,
)
from keygate.core.retry import RetryConfig, retry_read

# ─── RetryConfig ──────────────────────────────────────────────


class TestRetryConfig:
    def test_defaults(self):
        cfg = RetryConfig()
        assert cfg.max_retries == 3
        assert cfg.base_delay == 0.05
        assert cfg.max_delay == 1.0
        assert cfg.jitter is True

    def test_frozen(self):
        cfg = RetryConfig()
        with pytest.raises(AttributeError):
            cfg.max_retries = 5  # type: ignore[misc]


class TestDelays:
    def test_doubles_each_retry(self):
        cfg = RetryConfig(max_retries=3, base_delay=1.0, max_delay=60.0, jitter=False)
        assert list(cfg.delays()) == [1.0, 2.0, 4.0]

    def test_capped_at_max_delay(self):
        cfg = RetryConfig(max_retries=3, base_delay=10.0, max_delay=15.0, jitter=False)
        assert list(cfg.delays()) == [10.0, 15.0, 15.0]

    def test_jitter_scales_delay(self):
        cfg = RetryConfig(max_retries=1, base_delay=10.0, max_delay=60.0)
        with patch("keygate.core.retry.random.uniform", return_value=0.8):
            assert list(cfg.delays()) == [pytest.approx(8.0)]

    def test_no_retries_no_delays(self):
        assert list(RetryConfig(max_retries=0).delays()) == []


# ─── retry_read ───────────────────────────────────────────────


class TestRetryRead:
    async def test_succeeds_on_first_try(self):
        fn = AsyncMock(return_value="ok")
        assert await retry_read(fn) == "ok"
        assert fn.call_count == 1

    async def test_retries_on_transient_error(self):
        fn = AsyncMock(side_effect=[TransientStorageError("busy"), "ok"])
        with patch.object(asyncio, "sleep", new_callable=AsyncMock):
            result = await retry_read(fn)
        assert result == "ok"
        assert fn.call_count == 2

    @pytest.mark.parametrize(
        "error",
        [
            StorageError("disk I/O error"),
            NotFoundError("API key", "x"),
            InvalidCredentialsError("nope"),
            ValueError("bad"),
        ],
    )
    async def test_other_errors_fail_fast(self, error):
        fn = AsyncMock(side_effect=error)
        with pytest.raises(type(error)):
            await retry_read(fn)
        assert fn.call_count == 1

    async def test_exhausts_retries_then_raises(self):
        cfg = RetryConfig(max_retries=2, jitter=False)
        fn = AsyncMock(side_effect=TransientStorageError("locked"))
        with (
            patch.object(asyncio, "sleep", new_callable=AsyncMock),
            pytest.raises(TransientStorageError),
        ):
            await retry_read(fn, cfg)
        # 1 initial + 2 retries = 3 total attempts
        assert fn.call_count == 3

    async def test_zero_retries_means_single_attempt(self):
        fn = AsyncMock(side_effect=TransientStorageError("locked"))
        with pytest.raises(TransientStorageError):
            await retry_read(fn, RetryConfig(max_retries=0))
        assert fn.call_count == 1

    async def test_sleeps_follow_backoff(self):
        cfg = RetryConfig(max_retries=2, base_delay=1.0, max_delay=10.0, jitter=False)
        fn = AsyncMock(
            side_effect=[
                TransientStorageError("locked"),
                TransientStorageError("busy"),
                "ok",
            ],
        )
        with patch.object(asyncio, "sleep", new_callable=AsyncMock) as sleep:
            result = await retry_read(fn, cfg)
        assert result == "ok"
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    async def test_each_retry_logged(self, caplog):
        fn = AsyncMock(side_effect=[TransientStorageError("locked"), "ok"])
        with (
            patch.object(asyncio, "sleep", new_callable=AsyncMock),
            caplog.at_level("WARNING", logger="keygate.core.retry"),
        ):
            await retry_read(fn, RetryConfig(jitter=False))
        assert "retrying read" in caplog.text
