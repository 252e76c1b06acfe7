"""Application initialization orchestrator."""

from __future__ import annotations

import asyncio
import signal
from contextlib import suppress
from typing import Optional

from aiohttp import web as aiohttp_web
from aiohttp_wsgi import WSGIHandler

from config import Config, load_config
from core.logger import get_logger
from database import init_db_pool, run_migrations
from services.draw_runtime import DrawRuntime, create_runtime
from services.persistence import JsonFileBackend, PersistenceGateway, SQLiteSnapshotBackend, StorageBackend

logger = get_logger(__name__)


class ApplicationInitializer:
    """Orchestrates application initialization and lifecycle."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or load_config()
        self.db_pool = None
        self.runtime: Optional[DrawRuntime] = None
        self.web_runner = None
        self._stop = asyncio.Event()

    async def initialize(self) -> None:
        """Initialize all application components."""
        backends = await self._init_storage()
        self.runtime = await create_runtime(self.config, PersistenceGateway(backends))
        await self._init_web_server()

    async def run(self) -> None:
        """Serve until interrupted, then shut down cleanly."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError):
                loop.add_signal_handler(sig, self._stop.set)
        try:
            logger.info("🎄 Draw is running; press Ctrl+C to stop")
            await self._stop.wait()
        finally:
            await self.cleanup()

    async def cleanup(self) -> None:
        """Flush the last session write, then release resources."""
        if self.runtime:
            try:
                await self.runtime.shutdown()
            except Exception as e:
                logger.error(f"Final session save failed: {e}", exc_info=True)
        with suppress(Exception):
            if self.web_runner:
                await self.web_runner.cleanup()
        with suppress(Exception):
            if self.db_pool:
                await self.db_pool.close()
        logger.info("Shutdown complete")

    async def _init_storage(self) -> list[StorageBackend]:
        """Build the storage tiers; the SQLite tier is skipped if it cannot open."""
        backends: list[StorageBackend] = []
        try:
            self.db_pool = await init_db_pool(
                database_path=self.config.database_path,
                busy_timeout_ms=self.config.db_busy_timeout,
            )
            await run_migrations(self.db_pool)
            backends.append(SQLiteSnapshotBackend(self.db_pool, self.config.event_key))
            logger.info(f"✅ Primary storage ready: {self.config.database_path}")
        except Exception as e:
            logger.error(f"SQLite storage unavailable, continuing with file fallback only: {e}")

        backends.append(JsonFileBackend(
            self.config.fallback_store_path,
            max_bytes=self.config.fallback_store_max_bytes,
        ))
        logger.info(f"✅ Fallback storage ready: {self.config.fallback_store_path}")
        return backends

    async def _init_web_server(self) -> None:
        """Serve the Flask app from the same event loop as the draw."""
        from web import create_app

        flask_app = create_app(self.config, runtime=self.runtime)

        # Flask views run in aiohttp_wsgi's executor threads
        wsgi_handler = WSGIHandler(flask_app)
        aio_app = aiohttp_web.Application()
        aio_app.router.add_route("*", "/{path_info:.*}", wsgi_handler)

        self.web_runner = aiohttp_web.AppRunner(aio_app)
        await self.web_runner.setup()

        site = aiohttp_web.TCPSite(self.web_runner, self.config.web_host, self.config.web_port)
        await site.start()

        logger.info(f"🚀 Web server started on http://{self.config.web_host}:{self.config.web_port}")
        logger.info(f"🎁 Session API: http://{self.config.web_host}:{self.config.web_port}/api/session")
