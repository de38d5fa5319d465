"""
Application entry point: wires the coordination core into FastAPI.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from link_app.config import Settings, settings
from link_app.features.coordination import (
    CoordinationService,
    build_coordination_service,
    coordination_router,
    realtime_router,
)
from link_app.infrastructure.observability.logging import get_logger, log_request, setup_logging
from link_app.middleware import RequestContextMiddleware
from link_app.routes import health

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL, json_logs=settings.environment != "development")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and close every live realtime connection on shutdown."""
    coordination: CoordinationService = app.state.coordination
    logger.info(
        "Application starting",
        environment=app.state.settings.environment,
        debug=app.state.settings.debug,
        oracle_enabled=coordination.oracle_enabled,
    )

    yield

    logger.info("Application shutting down", live_connections=coordination.hub.connection_count)
    try:
        await coordination.hub.close_all()
    except Exception as e:
        logger.error("Error closing realtime connections", error=str(e))
    else:
        logger.info("All realtime connections closed")


def create_app(
    app_settings: Settings | None = None, coordination: CoordinationService | None = None
) -> FastAPI:
    app_settings = app_settings or settings
    app = FastAPI(
        title="Link Coordination",
        description="Availability, group chat and voting, and matching for Link events",
        version="0.1.0",
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.coordination = coordination or build_coordination_service(app_settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log HTTP requests with timing."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000

        log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(process_time, 2),
        )
        return response

    # Outermost middleware; binds the request id before the timing log runs
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health.router)
    app.include_router(coordination_router)
    app.include_router(realtime_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
