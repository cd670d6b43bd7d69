"""
PipelineBuilder — composes an ordered list of stages into one chain.

Stages are listed outermost first and nested right-to-left once, at
startup.  The resulting Pipeline is immutable and shared by every
request; all per-request state lives in the RequestContext.

Usage::

    pipeline = (
        PipelineBuilder()
        .add(ErrorBoundaryStage(logger))
        .add(AuthenticationGate(logger))
        .add(RouteDispatcher(app, RouteTable(routes), logger))
        .build()
    )
    await pipeline(ctx)
"""

from __future__ import annotations

from typing import Any, Callable

from starlette.routing import BaseRoute
from starlette.types import ASGIApp

from gatekeeper.core.config import Settings
from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.errors import PipelineConfigurationError
from gatekeeper.pipeline.stage import PipelineStage
from gatekeeper.pipeline.stages.access_log import AccessLogStage
from gatekeeper.pipeline.stages.authentication import AuthenticationGate
from gatekeeper.pipeline.stages.authorization import AuthorizationGate
from gatekeeper.pipeline.stages.dispatch import RouteDispatcher, RouteTable
from gatekeeper.pipeline.stages.documentation import DocumentationStage
from gatekeeper.pipeline.stages.error_boundary import ErrorBoundaryStage
from gatekeeper.pipeline.stages.timing import ConsoleSink, TimingStage, stdout_sink


class _Link:
    """One stage bound to the link after it."""

    __slots__ = ("stage", "next")

    def __init__(self, stage: PipelineStage, next_link: Callable) -> None:
        self.stage = stage
        self.next = next_link

    async def __call__(self, ctx: RequestContext) -> None:
        await self.stage.handle(ctx, self.next)


async def _end_of_chain(ctx: RequestContext) -> None:
    raise PipelineConfigurationError(
        "The terminal stage delegated past the end of the chain",
        request_id=ctx.request_id,
    )


class Pipeline:
    """A composed chain; call it with a RequestContext."""

    def __init__(self, stages: list[PipelineStage]) -> None:
        self.stages = tuple(stages)
        entry: Callable = _end_of_chain
        for stage in reversed(self.stages):
            entry = _Link(stage, entry)
        self._entry = entry

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    async def __call__(self, ctx: RequestContext) -> None:
        await self._entry(ctx)


class PipelineBuilder:
    """Collects stages (outermost first) and validates the chain on build()."""

    def __init__(self) -> None:
        self._stages: list[PipelineStage] = []

    def add(self, stage: PipelineStage) -> PipelineBuilder:
        self._stages.append(stage)
        return self

    def add_if(self, condition: bool, stage_factory: Callable[[], PipelineStage]) -> PipelineBuilder:
        """Append the stage only when ``condition`` holds (e.g. dev-only stages)."""
        if condition:
            self._stages.append(stage_factory())
        return self

    def build(self) -> Pipeline:
        stages = list(self._stages)
        if not stages:
            raise PipelineConfigurationError("Cannot build an empty pipeline")

        terminal_positions = [i for i, stage in enumerate(stages) if stage.terminal]
        if terminal_positions != [len(stages) - 1]:
            raise PipelineConfigurationError(
                "Exactly one terminal stage is required, and it must be last",
                details={"stages": [s.name for s in stages]},
            )

        names = [stage.name for stage in stages]
        if AuthorizationGate.name in names:
            authz_index = names.index(AuthorizationGate.name)
            authn_index = names.index(AuthenticationGate.name) if AuthenticationGate.name in names else None
            if authn_index is not None and authn_index > authz_index:
                raise PipelineConfigurationError(
                    "The authorization gate must come after the authentication gate",
                    stage_name=AuthorizationGate.name,
                    details={"stages": names},
                )

        return Pipeline(stages)


def build_default_pipeline(
    app: ASGIApp,
    routes: list[BaseRoute],
    config: Settings,
    logger: Any,
    openapi: Callable[[], dict[str, Any]] | None = None,
    console: ConsoleSink = stdout_sink,
    authenticate: Callable[[RequestContext], bool] | None = None,
    authorize: Callable[[RequestContext], bool] | None = None,
) -> Pipeline:
    """
    The standard chain, outermost first:

        error boundary → access log → timing → documentation (dev only)
            → authentication → authorization → dispatch

    Args:
        app: ASGI application the dispatcher hands matched requests to.
        routes: Route list the dispatcher resolves against.
        config: Application settings.
        logger: Structured logger every stage reports to.
        openapi: Schema provider for the documentation stage.
        console: Sink for the timing stage's console line.
        authenticate: Predicate replacing the ``authenticated`` query flag.
        authorize: Predicate replacing the ``authorized`` query flag.
    """
    serve_docs = config.IS_DEVELOPMENT and openapi is not None

    return (
        PipelineBuilder()
        .add(ErrorBoundaryStage(logger, expose_detail=config.IS_DEVELOPMENT))
        .add(AccessLogStage(
            logger,
            request_body_limit=config.HTTP_LOG_REQUEST_BODY_LIMIT,
            response_body_limit=config.HTTP_LOG_RESPONSE_BODY_LIMIT,
        ))
        .add(TimingStage(logger, console=console))
        .add_if(serve_docs, lambda: DocumentationStage(
            openapi,
            openapi_url=config.OPENAPI_URL,
            docs_url=config.DOCS_URL,
            title=config.APP_TITLE,
        ))
        .add(AuthenticationGate(logger, predicate=authenticate))
        .add(AuthorizationGate(logger, predicate=authorize, mutating_methods=config.MUTATING_METHODS))
        .add(RouteDispatcher(app, RouteTable(routes), logger))
        .build()
    )
