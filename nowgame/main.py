"""
nowgame - Application Entry Point
=================================

Bootstrap
---------
- Config validation
- Logging setup
- ApplicationContext initialization (storage, migrations, services)
- Run until SIGINT/SIGTERM
- Graceful shutdown (the termination commit point for task progress)
"""

import asyncio
import signal
import sys

from nowgame.core.config.config import Config
from nowgame.core.infra.application_context import ApplicationContext
from nowgame.core.logging.logger import get_logger, setup_logging, shutdown_logging

logger = get_logger(__name__)


# ============================================================================
# Process Signals
# ============================================================================

def _install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
            logger.debug("Signal handler installed", extra={"signal": sig.name})
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform (likely Windows)")


# ============================================================================
# Application Entrypoint
# ============================================================================

async def main() -> None:
    """
    nowgame entry point.

    Lifecycle:
        1. Validate configuration
        2. Initialize the application context
        3. Wait for a termination signal
        4. Commit task progress and shut down
    """
    Config.validate()
    setup_logging()
    logger.info("========== NOWGAME START ==========")
    logger.info("Configuration", extra=Config.get_config_summary())

    context = ApplicationContext()
    stop = asyncio.Event()

    try:
        await context.initialize()
        _install_signal_handlers(stop)
        logger.info("nowgame running; waiting for shutdown signal")
        await stop.wait()
    finally:
        await context.shutdown()
        logger.info("========== NOWGAME STOPPED ==========")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped via keyboard interrupt.")
    except Exception as exc:
        logger.critical(f"Fatal startup error: {exc}", exc_info=True)
        sys.exit(1)
    finally:
        shutdown_logging()


if __name__ == "__main__":
    run()
