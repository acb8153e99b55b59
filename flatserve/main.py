"""Static file server entry point — serves a flat directory and logs requests hourly."""

import atexit
import logging
import signal
import sys
from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from flatserve.app import create_app
from flatserve.config import load_config
from flatserve.retention import RetentionSweeper

logger = logging.getLogger(__name__)


def _signal_handler(sig, _frame):
    logger.info("Shutdown signal received (signal %d), stopping...", sig)
    raise KeyboardInterrupt


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [flatserve] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        config = load_config()
        app = create_app(config)
    except (OSError, ValueError) as exc:
        logger.critical("Startup failed: %s", exc)
        sys.exit(1)

    components = app.config["components"]
    tz = components["timezone"]
    sweeper = RetentionSweeper(
        config.log_dir, tz, timedelta(hours=config.retention_hours)
    )

    scheduler = BackgroundScheduler()
    sweeper.start(scheduler, config.sweep_interval_seconds)
    scheduler.start()
    atexit.register(scheduler.shutdown)

    logger.info("Starting static file server on %s:%d", config.host, config.port)
    logger.info("WWW root: %s", components["www_root"])
    logger.info("Log directory: %s", config.log_dir)
    logger.info("Timezone: %s", tz)
    logger.info("Retention: %d hours (sweep every %ds)",
                config.retention_hours, config.sweep_interval_seconds)

    try:
        app.run(
            host=config.host, port=config.port,
            debug=False, use_reloader=False, threaded=True,
        )
    except KeyboardInterrupt:
        pass
    except OSError as exc:
        logger.critical("Server failed: %s", exc)
        sys.exit(1)

    logger.info("Shut down cleanly")


if __name__ == "__main__":
    main()
