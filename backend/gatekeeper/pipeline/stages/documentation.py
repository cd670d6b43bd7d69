"""
DocumentationStage — machine-readable and browsable API description.

Only mounted in development.  It sits outside the gates so the docs
are reachable without trust signals.  Requests for anything other than
the two documentation paths pass straight through.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from fastapi.openapi.docs import get_swagger_ui_html

from gatekeeper.core.constants import CONTENT_TYPE_JSON, HTTPMethod
from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.stage import CallNext, PipelineStage

CONTENT_TYPE_HTML = "text/html; charset=utf-8"


class DocumentationStage(PipelineStage):
    """Serves the generated OpenAPI document and Swagger UI."""

    name = "documentation"
    description = "Development API documentation"

    def __init__(
        self,
        openapi: Callable[[], dict[str, Any]],
        openapi_url: str = "/swagger/v1/swagger.json",
        docs_url: str = "/swagger",
        title: str = "API",
    ) -> None:
        """
        Args:
            openapi: Zero-argument callable producing the OpenAPI schema
                     (normally ``FastAPI.openapi``).
            openapi_url: Path the schema is served under.
            docs_url: Path of the interactive Swagger UI.
            title: Page title of the Swagger UI.
        """
        self.openapi = openapi
        self.openapi_url = openapi_url
        self.docs_paths = {docs_url, f"{docs_url.rstrip('/')}/index.html"}
        self.title = title

    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        if ctx.method != HTTPMethod.GET:
            await call_next(ctx)
            return

        if ctx.path == self.openapi_url:
            schema = json.dumps(self.openapi(), indent=2).encode("utf-8")
            await ctx.response.write(schema, CONTENT_TYPE_JSON)
            return

        if ctx.path in self.docs_paths:
            page = get_swagger_ui_html(openapi_url=self.openapi_url, title=f"{self.title} - Swagger UI")
            await ctx.response.write(page.body, CONTENT_TYPE_HTML)
            return

        await call_next(ctx)
