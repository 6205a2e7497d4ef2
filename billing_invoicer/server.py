from __future__ import annotations

import logging
import socket

import uvicorn

from billing_invoicer import create_app
from billing_invoicer.config import Config

logger = logging.getLogger("billing_invoicer.api")


def announce_startup(config: Config) -> None:
    logger.info("Server running on port %s", config.PORT)
    logger.info("Health check: http://localhost:%s/health", config.PORT)
    logger.info("Environment: %s", config.NODE_ENV)


class BillingServer(uvicorn.Server):
    def __init__(self, config: uvicorn.Config, *, app_config: Config) -> None:
        super().__init__(config)
        self.app_config = app_config

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            announce_startup(self.app_config)


def build_server(app_config: Config) -> BillingServer:
    server_config = uvicorn.Config(
        create_app(app_config),
        host=app_config.HOST,
        port=app_config.PORT,
        # Forwarded headers are handled by the application's own middleware.
        proxy_headers=False,
        log_config=None,
        access_log=False,
    )
    return BillingServer(server_config, app_config=app_config)


def serve(app_config: Config | None = None) -> None:
    if app_config is None:
        app_config = Config()
    build_server(app_config).run()
