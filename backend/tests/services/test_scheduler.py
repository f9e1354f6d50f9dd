"""Tests for the login attempt retention sweep scheduling."""

import logging
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from app.core.exceptions import StorageUnavailableError, SweepFailedError
from app.models.login_attempt import LoginAttempt
from app.services.scheduler import LOGIN_ATTEMPT_SWEEP_JOB_ID, SchedulerService

LOCKOUT_DURATION = timedelta(minutes=15)


class TestSweep:
    @pytest.mark.asyncio
    async def test_sweep_removes_attempts_older_than_window(self, ledger, clock, test_session):
        await ledger.record("203.0.113.5", "alice", False)
        await ledger.record("198.51.100.7", "bob", True)
        clock.advance(minutes=10)
        await ledger.record("203.0.113.5", "alice", False)
        clock.advance(minutes=6)

        service = SchedulerService(ledger, LOCKOUT_DURATION, clock=clock)
        deleted = await service.sweep_login_attempts()

        assert deleted == 2
        result = await test_session.execute(select(LoginAttempt))
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_sweep_uses_lockout_window_as_cutoff(self, clock):
        ledger = MagicMock()
        ledger.delete_before = AsyncMock(return_value=0)
        service = SchedulerService(ledger, LOCKOUT_DURATION, clock=clock)

        await service.sweep_login_attempts()

        ledger.delete_before.assert_awaited_once_with(clock.now - LOCKOUT_DURATION)

    @pytest.mark.asyncio
    async def test_storage_error_becomes_sweep_failure(self, clock):
        ledger = MagicMock()
        ledger.delete_before = AsyncMock(side_effect=StorageUnavailableError("delete_before", "disk full"))
        service = SchedulerService(ledger, LOCKOUT_DURATION, clock=clock)

        with pytest.raises(SweepFailedError) as exc_info:
            await service.sweep_login_attempts()

        assert exc_info.value.reason == "disk full"

    @pytest.mark.asyncio
    async def test_scheduled_run_logs_and_continues(self, clock, caplog):
        ledger = MagicMock()
        ledger.delete_before = AsyncMock(side_effect=StorageUnavailableError("delete_before", "disk full"))
        service = SchedulerService(ledger, LOCKOUT_DURATION, clock=clock)

        with caplog.at_level(logging.WARNING, logger="app.services.scheduler"):
            # Should not raise
            await service._run_login_attempt_sweep()

        assert "Login attempt sweep failed: disk full" in caplog.text

        # Next tick succeeds once storage is back
        ledger.delete_before = AsyncMock(return_value=3)
        assert await service.sweep_login_attempts() == 3


class TestLifecycle:
    def test_sweep_interval_defaults_to_settings(self, ledger):
        service = SchedulerService(ledger, LOCKOUT_DURATION)
        assert service.sweep_interval == timedelta(minutes=60)

    def test_start_registers_interval_job(self, ledger):
        mock_scheduler = MagicMock()
        mock_scheduler.running = False
        service = SchedulerService(
            ledger, LOCKOUT_DURATION, sweep_interval=timedelta(minutes=5), scheduler=mock_scheduler
        )

        service.start()

        mock_scheduler.start.assert_called_once()
        kwargs = mock_scheduler.add_job.call_args.kwargs
        assert kwargs["id"] == LOGIN_ATTEMPT_SWEEP_JOB_ID
        assert kwargs["trigger"].interval == timedelta(minutes=5)
        assert kwargs["replace_existing"] is True

    @pytest.mark.asyncio
    async def test_stop_shuts_down_running_scheduler(self, ledger):
        mock_scheduler = MagicMock()
        mock_scheduler.running = True

        def shutdown(wait):
            mock_scheduler.running = False

        mock_scheduler.shutdown.side_effect = shutdown
        service = SchedulerService(ledger, LOCKOUT_DURATION, scheduler=mock_scheduler)

        await service.stop()

        mock_scheduler.shutdown.assert_called_once_with(wait=False)
        assert service.running is False

    @pytest.mark.asyncio
    async def test_stop_gives_up_when_scheduler_never_stops(self, ledger, caplog):
        mock_scheduler = MagicMock()
        mock_scheduler.running = True
        service = SchedulerService(ledger, LOCKOUT_DURATION, scheduler=mock_scheduler)

        with caplog.at_level(logging.WARNING, logger="app.services.scheduler"):
            await service.stop()

        mock_scheduler.shutdown.assert_called_once_with(wait=False)
        assert "still running" in caplog.text

    @pytest.mark.asyncio
    async def test_stop_is_noop_when_not_running(self, ledger):
        mock_scheduler = MagicMock()
        mock_scheduler.running = False
        service = SchedulerService(ledger, LOCKOUT_DURATION, scheduler=mock_scheduler)

        await service.stop()

        mock_scheduler.shutdown.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_and_stop_real_scheduler(self, ledger, clock):
        service = SchedulerService(ledger, LOCKOUT_DURATION, clock=clock)

        service.start()
        try:
            assert service.running is True
            next_run = service.get_next_run_time()
            assert next_run is not None
        finally:
            await service.stop()

        # Shutdown has fully completed once stop() returns
        assert service.running is False

    def test_next_run_time_unknown_job(self, ledger):
        service = SchedulerService(ledger, LOCKOUT_DURATION)
        assert service.get_next_run_time("missing") is None
