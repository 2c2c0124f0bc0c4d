import signal
import threading

from dotenv import load_dotenv

from infrastructure.configuration import settings
from infrastructure.logging import get_module_logger
from infrastructure.notifications import (
    DeadEndpointHook,
    DeliveryService,
)
from jobs import scheduled_tasks
from modules.escalation import InMemoryDirectory, lifecycle
from modules.escalation.scheduler import EscalationScheduler

logger = get_module_logger()

load_dotenv()


def build_directory() -> InMemoryDirectory:
    path = settings.escalation.ESCALATION_DIRECTORY_FILE
    if path:
        return InMemoryDirectory.from_file(path)
    logger.warning("directory_empty", reason="ESCALATION_DIRECTORY_FILE not set")
    return InMemoryDirectory()


def build_engine(directory: InMemoryDirectory):
    """Wire delivery pipeline and scheduler from settings."""
    delivery = DeliveryService(settings, on_result=DeadEndpointHook(directory))
    scheduler = EscalationScheduler.from_settings(settings, directory, delivery)
    lifecycle.init(scheduler)
    return delivery, scheduler


def main():
    """Main function to start the escalation engine."""
    logger.info("application_startup", git_sha=settings.GIT_SHA)
    list_configs()

    directory = build_directory()
    delivery, scheduler = build_engine(directory)

    scheduled_tasks.init(
        scheduler,
        delivery,
        tick_interval_seconds=settings.escalation.ESCALATION_TICK_INTERVAL_SECONDS,
    )
    stop_run_continuously = scheduled_tasks.run_continuously()

    stopped = threading.Event()

    def _shutdown(signum, frame):
        logger.info("application_shutdown", signal=signum)
        stopped.set()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    stopped.wait()
    stop_run_continuously.set()
    delivery.shutdown(wait=True)


def list_configs():
    """List all configuration settings keys"""
    config_settings = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


if __name__ == "__main__":
    main()
