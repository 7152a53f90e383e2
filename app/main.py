from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
import uvicorn
from fastapi import FastAPI, Request

from app.api.routes.balance import router as balance_router
from app.api.routes.health import router as health_router
from app.api.routes.promocodes import router as promocodes_router
from app.api.routes.purchases import router as purchases_router
from app.api.routes.students import router as students_router
from app.core.config import get_settings
from app.core.logging import bind_request_context, clear_request_context, configure_logging
from app.db.schema_guard import assert_schema_initialized
from app.db.session import dispose_engine, engine

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    if get_settings().schema_check_on_startup:
        await assert_schema_initialized(engine)
        logger.info("ledger_schema_check_passed")
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Course Ledger API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        bind_request_context(request_id=request_id, method=request.method, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-Id"] = request_id
        return response

    app.include_router(health_router)
    app.include_router(purchases_router)
    app.include_router(promocodes_router)
    app.include_router(balance_router)
    app.include_router(students_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
