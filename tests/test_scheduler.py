"""Tests for task scheduler."""

import pytest
import asyncio
from datetime import datetime, timezone

from whale_tracker.scheduler.scheduler import (
    Job,
    JobRun,
    JobStatus,
    Scheduler,
)


async def dummy():
    pass


class TestJobRun:
    """Tests for JobRun dataclass."""

    def test_duration_after_completion(self):
        """Duration should calculate from start to end when complete."""
        start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        end = datetime(2024, 1, 1, 12, 0, 5, tzinfo=timezone.utc)

        run = JobRun(started_at=start, ended_at=end)

        assert run.duration_seconds == 5.0


class TestJob:
    """Tests for Job dataclass."""

    def test_next_run_disabled(self):
        """Next run should be None if disabled."""
        job = Job(name="test", func=dummy, interval_seconds=60, enabled=False)

        assert job.next_run is None

    def test_success_rate_with_history(self):
        """Success rate should calculate from history."""
        job = Job(name="test", func=dummy, interval_seconds=60)
        now = datetime.now(timezone.utc)
        job.history = [
            JobRun(started_at=now, ended_at=now, status=JobStatus.COMPLETED),
            JobRun(started_at=now, ended_at=now, status=JobStatus.COMPLETED),
            JobRun(started_at=now, ended_at=now, status=JobStatus.COMPLETED),
            JobRun(started_at=now, ended_at=now, status=JobStatus.FAILED),
        ]

        assert job.success_rate == 0.75

    def test_not_scheduled_until_started(self):
        """A job has no loop task before the scheduler starts."""
        job = Job(name="test", func=dummy, interval_seconds=60)

        assert job.is_scheduled is False
        assert job.to_dict()["scheduled"] is False


class TestScheduler:
    """Tests for Scheduler."""

    def test_add_and_has_job(self):
        """Should add job to scheduler."""
        scheduler = Scheduler()

        scheduler.add_job("price:BTCUSDT", dummy, interval_seconds=5)

        assert scheduler.has_job("price:BTCUSDT")
        assert scheduler.get_job("price:BTCUSDT").interval_seconds == 5

    def test_add_duplicate_job_raises(self):
        """Adding duplicate job name should raise."""
        scheduler = Scheduler()
        scheduler.add_job("test", dummy, interval_seconds=60)

        with pytest.raises(ValueError, match="already exists"):
            scheduler.add_job("test", dummy, interval_seconds=60)

    def test_remove_job(self):
        """Removing reports whether the job existed."""
        scheduler = Scheduler()
        scheduler.add_job("test", dummy, interval_seconds=60)

        assert scheduler.remove_job("test") is True
        assert scheduler.remove_job("test") is False
        assert scheduler.get_job("test") is None

    @pytest.mark.asyncio
    async def test_run_job_once(self):
        """Should run job immediately."""
        scheduler = Scheduler()
        counter = {"value": 0}

        async def increment():
            counter["value"] += 1

        scheduler.add_job("counter", increment, interval_seconds=60)

        assert await scheduler.run_job_once("counter") is True
        assert await scheduler.run_job_once("nonexistent") is False
        assert counter["value"] == 1

    @pytest.mark.asyncio
    async def test_job_execution_failure(self):
        """Job should handle failures with retries."""
        scheduler = Scheduler()
        calls = {"value": 0}

        async def failing_job():
            calls["value"] += 1
            raise ValueError("Test error")

        job = scheduler.add_job("failing", failing_job, interval_seconds=60, max_retries=1)
        job.retry_delay_seconds = 0.01

        result = await scheduler._execute_job(job)

        assert result is False
        assert calls["value"] == 2
        assert job.last_run.status == JobStatus.FAILED
        assert job._consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_error_callback(self):
        """Should call error callback on failure."""
        errors = []

        async def error_handler(job_name: str, error: Exception):
            errors.append((job_name, str(error)))

        scheduler = Scheduler(error_callback=error_handler)

        async def failing_job():
            raise ValueError("Test error")

        job = scheduler.add_job("failing", failing_job, interval_seconds=60)
        await scheduler._execute_job(job)

        assert errors == [("failing", "Test error")]

    @pytest.mark.asyncio
    async def test_start_stop(self):
        """Should start and stop cleanly."""
        scheduler = Scheduler()
        counter = {"value": 0}

        async def increment():
            counter["value"] += 1

        scheduler.add_job("counter", increment, interval_seconds=0.05, run_immediately=True)

        await scheduler.start()
        await asyncio.sleep(0.12)
        await scheduler.stop()

        assert counter["value"] >= 2
        assert scheduler.is_running is False
        assert scheduler.get_job("counter").is_scheduled is False

    @pytest.mark.asyncio
    async def test_add_job_while_running_schedules_it(self):
        """Jobs added after start get their own loop."""
        scheduler = Scheduler()
        await scheduler.start()

        job = scheduler.add_job("late", dummy, interval_seconds=60)

        assert job.is_scheduled is True
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_remove_job_cancels_only_that_job(self):
        """Removing one job leaves the others running."""
        scheduler = Scheduler()
        await scheduler.start()
        first = scheduler.add_job("price:BTCUSDT", dummy, interval_seconds=60)
        second = scheduler.add_job("price:ETHUSDT", dummy, interval_seconds=60)

        scheduler.remove_job("price:BTCUSDT")
        await asyncio.sleep(0)

        assert first.is_scheduled is False
        assert second.is_scheduled is True
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_get_status(self):
        """Status lists every job."""
        scheduler = Scheduler()
        scheduler.add_job("a", dummy, interval_seconds=1)
        scheduler.add_job("b", dummy, interval_seconds=2, enabled=False)

        status = scheduler.get_status()

        assert status["running"] is False
        assert status["total_jobs"] == 2
        assert status["enabled_jobs"] == 1
