"""Application initialization orchestrator."""

from __future__ import annotations

import os
from contextlib import suppress
from typing import TYPE_CHECKING, Optional

from core.logger import get_logger
from database import close_db_pool, init_db_pool, run_migrations
from services.async_runner import (
    run_coroutine_sync,
    start_background_loop,
    stop_background_loop,
)

if TYPE_CHECKING:
    from config import Config

logger = get_logger(__name__)


class ApplicationInitializer:
    """Orchestrates application initialization and lifecycle.

    The database pool and the async services live on a background event
    loop; the Flask-SocketIO server owns the main thread.
    """

    def __init__(self, config: Optional[Config] = None):
        if config is None:
            from config import load_config
            config = load_config()
        self.config = config
        self.db_pool = None
        self.app = None
        self.loop = None

    def initialize(self):
        """Initialize all application components and return the Flask app."""
        self.loop = start_background_loop()
        run_coroutine_sync(self._init_database())
        self._init_web_app()
        return self.app

    def run(self) -> None:
        """Serve HTTP and Socket.IO until interrupted."""
        if self.app is None:
            self.initialize()

        # Bind to PORT env var if present (Render/Heroku)
        effective_port = int(os.getenv("PORT", str(self.config.web_port)))
        effective_host = "0.0.0.0" if os.getenv("PORT") else self.config.web_host

        socketio = self.app.extensions["socketio"]
        logger.info(f"🚀 Web server started on http://{effective_host}:{effective_port}")
        try:
            socketio.run(
                self.app,
                host=effective_host,
                port=effective_port,
                debug=self.config.debug,
                use_reloader=False,
                allow_unsafe_werkzeug=True,
            )
        except KeyboardInterrupt:
            logger.info("Shutting down...")
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Cancel pending reveals, close the pool and stop the loop."""
        with suppress(Exception):
            if self.app is not None:
                run_coroutine_sync(self._shutdown_services(), timeout=10)
        with suppress(Exception):
            stop_background_loop()
        logger.info("Application stopped")

    async def _init_database(self) -> None:
        """Initialize database pool and run migrations."""
        self.db_pool = await init_db_pool(
            database_path=self.config.database_path,
            pool_size=self.config.db_pool_size,
            busy_timeout_ms=self.config.db_busy_timeout,
        )
        await run_migrations(self.db_pool)
        logger.info("✅ Database initialized")

    async def _shutdown_services(self) -> None:
        services = self.app.config["SERVICES"]
        cancelled = services.publisher.shutdown()
        if cancelled:
            logger.warning(f"{cancelled} spin reveals were not broadcast before shutdown")
        await close_db_pool()

    def _init_web_app(self) -> None:
        """Build the Flask app around the initialized services."""
        from web import create_app

        self.app = create_app(self.config)
        logger.info(f"🔗 Registration links point to {self.config.public_base_url}/register/<token>")
