"""
Redirects Worker Service

Runs the redirect reconciliation cycle on a fixed interval.

This worker uses ONLY:
- basecore (DB, settings, logging, redis)
- chat_redirects (reconciler, directory)

Features:
- Activation/deactivation of scheduled redirects every cycle
- Single-flight cycles (Redis lock when REDIS_URL is set)
- Graceful shutdown
"""

import logging
import signal
import time

from basecore.db import get_appchat_db, get_db
from basecore.logging import setup_logging
from basecore.redis import get_redis_client
from basecore.settings import get_settings
from chat_redirects.directory import build_directory_gateway
from chat_redirects.service import RedirectReconciler

setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()

# Configuration
CYCLE_INTERVAL_SEC = settings.REDIRECTS_CYCLE_INTERVAL_SEC
SLEEP_SLICE_SEC = 1

# Graceful shutdown
shutdown_requested = False


def signal_handler(signum, frame):
    global shutdown_requested
    logger.info(f"Received signal {signum}, requesting shutdown...")
    shutdown_requested = True


def run_cycle(directory, redis_client) -> None:
    """Run one reconciliation cycle with fresh sessions."""
    db = next(get_db())
    appchat_db = next(get_appchat_db())

    try:
        reconciler = RedirectReconciler(db, appchat_db, directory, redis_client=redis_client)
        result = reconciler.run_cycle()

        if result.skipped:
            logger.info("Cycle skipped, another one is running")
        elif result.activated or result.completed or result.failed:
            logger.info(
                f"Cycle finished",
                extra={
                    "activated": result.activated,
                    "completed": result.completed,
                    "failed": result.failed,
                },
            )
    finally:
        appchat_db.close()
        db.close()


def sleep_until_next_cycle() -> None:
    """Sleep in short slices so a shutdown signal is honoured promptly."""
    for _ in range(max(CYCLE_INTERVAL_SEC // SLEEP_SLICE_SEC, 1)):
        if shutdown_requested:
            return
        time.sleep(SLEEP_SLICE_SEC)


def main_loop() -> None:
    """Main worker loop."""
    directory = build_directory_gateway(settings)
    redis_client = get_redis_client()

    logger.info(
        f"Starting redirects worker "
        f"(interval={CYCLE_INTERVAL_SEC}s, directory={settings.DIRECTORY_PROVIDER}, "
        f"distributed_lock={redis_client is not None})"
    )

    try:
        while not shutdown_requested:
            try:
                run_cycle(directory, redis_client)
            except Exception as e:
                logger.error(f"Error in reconciliation cycle: {e}", exc_info=True)

            sleep_until_next_cycle()
    finally:
        directory.close()

    logger.info("Redirects worker shutting down gracefully")


def main():
    """Entry point."""
    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    logger.info("Redirects worker starting...")
    main_loop()


if __name__ == "__main__":
    main()
