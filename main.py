"""
OAuth2 authorization broker — application entry point.
"""

from __future__ import annotations

import logging
import sys

import uvicorn
from fastapi import FastAPI

from api.middleware import register_middleware
from api.routes import router as oauth2_router
from config.settings import config
from database.session import init_db
from handlers.registry import HandlerRegistry

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "urllib3"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="OAuth2 Authorization Broker",
        version="1.0.0",
        description="Links external mailboxes to internal ones via OAuth2.",
    )

    register_middleware(app)

    # Routes
    app.include_router(oauth2_router, prefix=config.server_path)

    @app.on_event("startup")
    def on_startup():
        logger.info("Creating database tables…")
        init_db()

        providers = HandlerRegistry().list_providers()
        logger.info("OAuth2 providers available: %s", ", ".join(providers))
        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )
