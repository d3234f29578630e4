"""FastAPI application.

``create_app`` wires CORS and the routers; the module-level ``app`` is what
uvicorn serves (``uvicorn erec.main:app``).
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from erec.api.routes import audit, dashboard, exports, health, imports, notices, notifications, protocols, reviewers
from erec.core.logging import setup_logging
from erec.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

ROUTERS = (
    health.router,
    imports.router,
    protocols.router,
    dashboard.router,
    reviewers.router,
    notices.router,
    notifications.router,
    exports.router,
    audit.router,
)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        setup_logging()
        logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.app_env)
        yield
        logger.info("Stopping %s", settings.app_name)

    application = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    # the reviewer portal is served from a separate origin
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    for router in ROUTERS:
        application.include_router(router)
    return application


app = create_app()
