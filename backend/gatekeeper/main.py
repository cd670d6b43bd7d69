"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Callable, Iterable

from fastapi import APIRouter, FastAPI

from gatekeeper.api.responses import indented_json_response
from gatekeeper.api.v1 import forecast, health
from gatekeeper.core.config import Settings, settings
from gatekeeper.core.logging import get_logger, setup_logging, shutdown_logging
from gatekeeper.pipeline import RequestContext, RequestPipelineMiddleware, build_default_pipeline
from gatekeeper.pipeline.stages.timing import ConsoleSink, stdout_sink

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    config: Settings = app.state.settings
    setup_logging("DEBUG" if config.IS_DEVELOPMENT else config.LOG_LEVEL, config)
    logger = get_logger("startup")
    logger.info(
        "Application starting",
        env=config.APP_ENV,
        pipeline=app.state.pipeline_stages,
    )
    yield
    logger.info("Application shutting down")
    shutdown_logging()


def create_app(
    config: Settings | None = None,
    routers: Iterable[APIRouter] | None = None,
    console: ConsoleSink = stdout_sink,
    authenticate: Callable[[RequestContext], bool] | None = None,
    authorize: Callable[[RequestContext], bool] | None = None,
) -> FastAPI:
    """
    Build the application: routers plus the request pipeline around them.

    Args:
        config: Settings to use instead of the environment-loaded ones.
        routers: Routers to mount under API_PREFIX (default: the v1 API).
        console: Sink for the timing stage's console line.
        authenticate: Replacement for the ``authenticated`` query-flag check.
        authorize: Replacement for the ``authorized`` query-flag check.
    """
    config = config or settings

    # Docs are served by the pipeline's documentation stage, not by FastAPI
    app = FastAPI(
        title=config.APP_TITLE,
        version=config.APP_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        default_response_class=indented_json_response(config.JSON_INDENT),
    )
    app.state.settings = config
    app.state.pipeline_stages = []

    pipeline_logger = get_logger("gatekeeper.pipeline")

    def pipeline_factory(inner):
        pipeline = build_default_pipeline(
            inner,
            app.router.routes,
            config,
            pipeline_logger,
            openapi=app.openapi,
            console=console,
            authenticate=authenticate,
            authorize=authorize,
        )
        app.state.pipeline_stages = pipeline.stage_names
        return pipeline

    app.add_middleware(RequestPipelineMiddleware, pipeline_factory=pipeline_factory)

    app.include_router(health.router)
    for router in routers if routers is not None else (forecast.router,):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import os

    import uvicorn

    uvicorn.run(
        "gatekeeper.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_config=None,
    )
