import threading
import time
import schedule

from infrastructure.logging import get_module_logger
from infrastructure.notifications.service import DeliveryService
from modules.escalation.scheduler import EscalationScheduler

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:
            logger.error(
                "safe_run_error",
                function=getattr(job, "__name__", repr(job)),
                module=getattr(job, "__module__", None),
                job_args=args,
                job_kwargs=kwargs,
                error=str(e),
                exc_info=True,
            )

    return wrapper


def init(
    scheduler: EscalationScheduler,
    delivery: DeliveryService | None = None,
    tick_interval_seconds: int = 30,
):
    logger.info(
        "scheduled_tasks_initialized", tick_interval_seconds=tick_interval_seconds
    )

    schedule.every(tick_interval_seconds).seconds.do(safe_run(scheduler.tick))
    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat), scheduler=scheduler)
    if delivery is not None:
        schedule.every(5).minutes.do(safe_run(channel_healthchecks), delivery=delivery)


def scheduler_heartbeat(scheduler: EscalationScheduler):
    logger.info(
        "scheduler_heartbeat",
        at=time.ctime(),
        active_runs=len(scheduler.list_runs()),
        queued_jobs=len(scheduler.queue),
    )


def channel_healthchecks(delivery: DeliveryService):
    logger.info("channel_healthchecks_started")
    for channel, healthy in delivery.health_check().items():
        if not healthy:
            logger.error("channel_unhealthy", channel=channel)
        else:
            logger.info("channel_healthy", channel=channel)


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if the tick is registered every
    30 seconds and the loop stalls for five minutes, the tick
    runs once when the loop resumes, not ten times.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True)
    continuous_thread.start()
    return cease_continuous_run
