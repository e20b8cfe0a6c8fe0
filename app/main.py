import signal
import threading

from dotenv import load_dotenv

load_dotenv()

from infrastructure.logging import configure_logging, get_module_logger  # noqa: E402
from infrastructure.services import (  # noqa: E402
    get_notification_service,
    get_settings,
)

logger = get_module_logger()


def list_configs(settings):
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


def main():
    """Main function to start the delivery service."""
    settings = get_settings()
    configure_logging(log_level=settings.LOG_LEVEL, is_production=settings.is_production)

    logger.info("application_startup", git_sha=settings.GIT_SHA)
    list_configs(settings)

    service = get_notification_service()
    stop_requested = threading.Event()

    def _handle_signal(signum, _frame):
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        stop_requested.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    service.init()
    try:
        while not stop_requested.wait(timeout=60):
            logger.info("queue_heartbeat", **vars(service.queue.stats()))
    finally:
        service.shutdown(timeout=30)
        logger.info("application_shutdown")


if __name__ == "__main__":
    main()
