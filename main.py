"""Application entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from config import load_config
from core import setup_logger
from core.app_initializer import ApplicationInitializer
from services import set_main_loop

logger = logging.getLogger("app")


async def main() -> None:
    """Main application entry point."""
    config = load_config()
    setup_logger(
        level=logging.DEBUG if config.debug else logging.INFO,
        log_file=str(Path(config.log_folder) / "secret_santa.log"),
        colored=True,
    )

    # Flask handlers reach the draw through this loop
    set_main_loop(asyncio.get_running_loop())

    app = ApplicationInitializer(config)
    await app.initialize()
    await app.run()


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except Exception as e:
        logger.error(f"Application failed: {e}", exc_info=True)
        raise SystemExit(1)


if __name__ == "__main__":
    run()
