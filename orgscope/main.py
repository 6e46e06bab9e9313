from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from orgscope.db.init_db import init_db
from orgscope.db.session import create_engine_from_settings
from orgscope.logging_config import configure_app_logging
from orgscope.routers import health, me, org
from orgscope.scope_engine.errors import AuthorizationError
from orgscope.security.config import load_security_config
from orgscope.settings import Settings, get_settings

logger = logging.getLogger(__name__)


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    logger.info(
        "Authorization error status=%s path=%s method=%s detail=%s",
        exc.status_code,
        request.url.path,
        request.method,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(settings: Settings | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        resolved = settings or get_settings()
        configure_app_logging(resolved.log_level)
        logger.info("App startup beginning")

        app.state.settings = resolved
        app.state.security_config = load_security_config(resolved.resolved_security_config_path())
        logger.info("Loaded security config: %s", resolved.resolved_security_config_path())

        app.state.engine = create_engine_from_settings(resolved)
        await init_db(app.state.engine, app.state.security_config, seed=resolved.seed_demo_data)
        logger.info("Database initialized (tables ensured, seed=%s)", resolved.seed_demo_data)

        yield

        await app.state.engine.dispose()

    app = FastAPI(title="orgscope", lifespan=lifespan)
    app.add_exception_handler(AuthorizationError, authorization_error_handler)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(org.router)

    return app


app = create_app()
