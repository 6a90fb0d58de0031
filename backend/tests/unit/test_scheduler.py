"""
Unit Tests: Scheduler

Test cases:
- Resolution poll always registered
- Generation job only when enabled
"""

from cascade_tracker.config import SchedulerConfig, Settings
from cascade_tracker.scheduler import build_scheduler


def test_poll_job_registered_and_generation_disabled_by_default():
    scheduler = build_scheduler(Settings())

    jobs = {job.id: job for job in scheduler.get_jobs()}

    assert set(jobs) == {"resolution-poll"}
    assert jobs["resolution-poll"].max_instances == 1
    assert jobs["resolution-poll"].coalesce


def test_generation_job_registered_when_enabled():
    settings = Settings(scheduler=SchedulerConfig(resolution_poll_minutes=5, generation_minutes=60))

    scheduler = build_scheduler(settings)

    assert {job.id for job in scheduler.get_jobs()} == {"resolution-poll", "cascade-generation"}
