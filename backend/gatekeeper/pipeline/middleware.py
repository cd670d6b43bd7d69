"""
ASGI adapter — runs the request pipeline for every HTTP request.

Installed with ``app.add_middleware`` so it sits directly around
FastAPI's exception layer and router.  Lifespan and websocket traffic
bypass the pipeline untouched.
"""

from __future__ import annotations

from typing import Callable

import structlog
from starlette.types import ASGIApp, Receive, Scope, Send

from gatekeeper.pipeline.builder import Pipeline
from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.errors import ResponseAborted


class RequestPipelineMiddleware:
    """
    Builds the pipeline once around the inner application, then feeds
    each HTTP request through it.
    """

    def __init__(self, app: ASGIApp, pipeline_factory: Callable[[ASGIApp], Pipeline]) -> None:
        self.app = app
        self.pipeline = pipeline_factory(app)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.from_asgi(scope, receive, send)
        with structlog.contextvars.bound_contextvars(request_id=ctx.request_id):
            await self.pipeline(ctx)

        if ctx.response.aborted:
            raise ResponseAborted(
                "Response aborted after it had started",
                request_id=ctx.request_id,
                details={"path": ctx.path, "method": ctx.method},
            )
