"""Unit tests for the periodic scheduler and worker retry policy."""

from referral_engine.config.settings import settings


class TestCreateScheduler:
    """Daily membership jobs are registered with cron triggers."""

    def test_jobs_registered(self):
        from jobs.scheduler import create_scheduler

        scheduler = create_scheduler()
        jobs = {job.id: job for job in scheduler.get_jobs()}

        assert set(jobs) == {
            "membership_expiration_sweep",
            "membership_expiry_notices",
        }
        sweep = jobs["membership_expiration_sweep"]
        assert str(sweep.trigger.fields[5]) == str(settings.expiry_sweep_hour)
        notices = jobs["membership_expiry_notices"]
        assert str(notices.trigger.fields[5]) == str(settings.expiry_notice_hour)


class TestRetryPolicy:
    """Workers retry store outages only."""

    def test_transient_error_retried_until_limit(self):
        from jobs.broker import should_retry
        from referral_engine.utils.exceptions import TransientStoreError

        error = TransientStoreError("connection reset")

        assert should_retry(0, error) is True
        assert should_retry(settings.task_max_retries - 1, error) is True
        assert should_retry(settings.task_max_retries, error) is False

    def test_other_errors_not_retried(self):
        from jobs.broker import should_retry
        from referral_engine.utils.exceptions import InvalidPlan

        assert should_retry(0, InvalidPlan("GOLD")) is False
        assert should_retry(0, ValueError("bad input")) is False
