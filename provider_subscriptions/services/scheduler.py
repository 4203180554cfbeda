"""Recurring expiration sweep scheduler.

Runs the expiration sweep on a background thread at the times given by a
cron expression (evaluated in UTC against wall-clock time).
"""

from datetime import datetime, timezone
from threading import Event, Lock, Thread
from typing import Callable, Optional

from croniter import croniter

from provider_subscriptions.logging_config import get_logger

logger = get_logger(__name__)


def compute_next_run(cron_expression: str, from_dt: datetime) -> datetime:
    """Next instant strictly after from_dt matching the cron expression.

    Raises:
        ValueError: If the expression is not a valid cron expression
    """
    if not croniter.is_valid(cron_expression):
        raise ValueError(f"Invalid cron expression: {cron_expression}")
    return croniter(cron_expression, from_dt).get_next(datetime)


class ExpirationScheduler(Thread):
    """Daemon thread running a job on a cron schedule.

    Args:
        job: Callable returning the number of subscriptions processed
        cron_expression: When to run, e.g. "0 0 * * *" for daily at midnight
    """

    def __init__(self, job: Callable[[], int], cron_expression: str):
        super().__init__(name="expiration-scheduler", daemon=True)
        compute_next_run(cron_expression, datetime.now(timezone.utc))
        self._job = job
        self._cron_expression = cron_expression
        self._stop_event = Event()
        self.next_run: Optional[datetime] = None

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:  # pragma: no cover - thread execution
        logger.info("expiration_scheduler_started", cron=self._cron_expression)
        while not self._stop_event.is_set():
            now = datetime.now(timezone.utc)
            self.next_run = compute_next_run(self._cron_expression, now)
            delay = max((self.next_run - now).total_seconds(), 0.0)
            logger.debug("expiration_sweep_scheduled", next_run=self.next_run.isoformat())
            if self._stop_event.wait(delay):
                break
            self.run_once()
        logger.info("expiration_scheduler_stopped")

    def run_once(self) -> int:
        """Run the job now; failures are logged and reported as 0."""
        try:
            processed = self._job()
        except Exception as e:
            logger.error("scheduled_sweep_failed", error=str(e), exc_info=True)
            return 0
        logger.info("scheduled_sweep_completed", processed=processed)
        return processed


_scheduler: Optional[ExpirationScheduler] = None
_scheduler_lock = Lock()


def start_scheduler() -> Optional[ExpirationScheduler]:
    """Start the global scheduler when enabled in configuration."""
    from provider_subscriptions.config import get_config
    from provider_subscriptions.services.expiration_sweep import get_expiration_sweep

    global _scheduler
    settings = get_config().scheduler_settings
    if not settings.enabled:
        logger.info("expiration_scheduler_disabled")
        return None

    with _scheduler_lock:
        if _scheduler is not None and _scheduler.is_alive():
            return _scheduler
        sweep = get_expiration_sweep()
        _scheduler = ExpirationScheduler(sweep.run, settings.expiration_cron)
        _scheduler.start()
        return _scheduler


def shutdown_scheduler(timeout: float = 5.0) -> None:
    global _scheduler
    with _scheduler_lock:
        if _scheduler is None:
            return
        _scheduler.stop()
        _scheduler.join(timeout)
        _scheduler = None


def is_scheduler_running() -> bool:
    with _scheduler_lock:
        return _scheduler is not None and _scheduler.is_alive()
