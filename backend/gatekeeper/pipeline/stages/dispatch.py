"""
RouteDispatcher — the chain's base case.

Resolves the request against the route table and hands it to the
application (FastAPI's exception layer and router), with the request's
ResponseInProgress as the ASGI ``send``.  When nothing matches, it
writes the fixed 404 fallback itself.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Iterable

from starlette.routing import BaseRoute, Match
from starlette.types import ASGIApp

from gatekeeper.core.constants import NOT_FOUND_MESSAGE
from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.stage import CallNext, PipelineStage


class RouteTable:
    """
    Read-only view over the application's routes.

    Only a route matching both path and method is dispatched.  A path
    known under another method gets the same 404 fallback as an unknown
    path, so the framework never answers 405.
    """

    def __init__(self, routes: Iterable[BaseRoute]) -> None:
        self._routes = routes

    def resolve(self, method: str, path: str) -> BaseRoute | None:
        scope = {
            "type": "http",
            "method": method.upper(),
            "path": path,
            "root_path": "",
            "headers": [],
        }
        for route in self._routes:
            match, _ = route.matches(scope)
            if match == Match.FULL:
                return route
        return None


class RouteDispatcher(PipelineStage):
    """Invokes the matching route handler or writes the 404 fallback."""

    name = "dispatch"
    description = "Route dispatch and not-found fallback"
    terminal = True

    def __init__(self, app: ASGIApp, route_table: RouteTable, logger) -> None:
        self.app = app
        self.route_table = route_table
        self.logger = logger

    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        route = self.route_table.resolve(ctx.method, ctx.path)
        if route is None:
            await self.fallback(ctx)
            return

        ctx.state["route"] = getattr(route, "path", None)
        await self.app(ctx.scope, ctx.receive, ctx.response.send)

    async def fallback(self, ctx: RequestContext) -> None:
        self.logger.info(
            "No route matched",
            method=ctx.method,
            path=ctx.path,
            request_id=ctx.request_id,
        )
        ctx.response.set_status(HTTPStatus.NOT_FOUND.value)
        await ctx.response.write_json(NOT_FOUND_MESSAGE)
