"""
Pipeline-level tests: composition order, the response-started invariant,
and aborting instead of double-writing.  Drives the ASGI callables
directly with a recording transport.
"""

from __future__ import annotations

import pytest
from starlette.routing import Route
from structlog.testing import capture_logs

from gatekeeper.core.config import Settings
from gatekeeper.core.constants import AUTHENTICATION_DENIED_MESSAGE, UNEXPECTED_ERROR_MESSAGE
from gatekeeper.core.logging import get_logger
from gatekeeper.pipeline import (
    PipelineBuilder,
    RequestContext,
    RequestPipelineMiddleware,
    build_default_pipeline,
)
from gatekeeper.pipeline.errors import PipelineConfigurationError, ResponseAborted
from gatekeeper.pipeline.stage import PipelineStage
from gatekeeper.pipeline.stages import (
    AuthenticationGate,
    AuthorizationGate,
    ErrorBoundaryStage,
    RouteDispatcher,
    RouteTable,
)
from tests.conftest import Transport, http_scope, run

logger = get_logger("tests.pipeline")


async def _unused_endpoint(request):  # pragma: no cover - routes are only matched, never called
    raise AssertionError("route endpoints are not invoked by the dispatcher")


ROUTES = [
    Route("/ok", _unused_endpoint, methods=["GET", "POST"]),
    Route("/stream", _unused_endpoint, methods=["GET"]),
    Route("/broken", _unused_endpoint, methods=["GET"]),
]


async def downstream_app(scope, receive, send):
    """Plain ASGI application standing in for the framework router."""
    if scope["path"] == "/ok":
        await send({"type": "http.response.start", "status": 200, "headers": [(b"content-type", b"text/plain")]})
        await send({"type": "http.response.body", "body": b"ok"})
    elif scope["path"] == "/stream":
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"first chunk", "more_body": True})
        raise RuntimeError("stream broke")
    elif scope["path"] == "/broken":
        raise ValueError("nothing sent yet")


def _pipeline(config: Settings | None = None):
    config = config or Settings(APP_ENV="production", LOG_TO_FILE=False, _env_file=None)
    return build_default_pipeline(downstream_app, ROUTES, config, logger, console=lambda line: None)


def _invoke(pipeline, transport: Transport, method="GET", path="/ok", query="authenticated=true"):
    ctx = RequestContext.from_asgi(http_scope(method, path, query), transport.receive, transport.send)
    run(pipeline(ctx))
    return ctx


# ─── Composition ─────────────────────────────────────────

class RecordingStage(PipelineStage):
    def __init__(self, name: str, trail: list[str], terminal: bool = False) -> None:
        self.name = name
        self.trail = trail
        self.terminal = terminal

    async def handle(self, ctx, call_next):
        self.trail.append(f"enter:{self.name}")
        if not self.terminal:
            await call_next(ctx)
        self.trail.append(f"exit:{self.name}")


def test_stages_nest_in_declared_order(transport):
    trail: list[str] = []
    pipeline = (
        PipelineBuilder()
        .add(RecordingStage("outer", trail))
        .add(RecordingStage("middle", trail))
        .add(RecordingStage("inner", trail, terminal=True))
        .build()
    )

    _invoke(pipeline, transport)

    assert trail == [
        "enter:outer", "enter:middle", "enter:inner",
        "exit:inner", "exit:middle", "exit:outer",
    ]
    assert pipeline.stage_names == ["outer", "middle", "inner"]


def test_default_order_production():
    assert _pipeline().stage_names == [
        "error_boundary", "access_log", "timing", "authentication", "authorization", "dispatch",
    ]


def test_default_order_development_mounts_docs_outside_gates():
    config = Settings(APP_ENV="development", LOG_TO_FILE=False, _env_file=None)
    pipeline = build_default_pipeline(
        downstream_app, ROUTES, config, logger, openapi=lambda: {"openapi": "3.1.0"}, console=lambda line: None,
    )
    assert pipeline.stage_names == [
        "error_boundary", "access_log", "timing", "documentation", "authentication", "authorization", "dispatch",
    ]


def test_builder_rejects_empty_chain():
    with pytest.raises(PipelineConfigurationError):
        PipelineBuilder().build()


def test_builder_requires_terminal_stage_last():
    trail: list[str] = []
    with pytest.raises(PipelineConfigurationError):
        PipelineBuilder().add(RecordingStage("outer", trail)).build()
    with pytest.raises(PipelineConfigurationError):
        (
            PipelineBuilder()
            .add(RecordingStage("base", trail, terminal=True))
            .add(RecordingStage("after", trail))
            .build()
        )


def test_builder_rejects_authorization_before_authentication():
    with pytest.raises(PipelineConfigurationError, match="authorization gate"):
        (
            PipelineBuilder()
            .add(AuthorizationGate(logger))
            .add(AuthenticationGate(logger))
            .add(RouteDispatcher(downstream_app, RouteTable(ROUTES), logger))
            .build()
        )


def test_route_table_matches_path_and_method_only():
    table = RouteTable(ROUTES)

    assert table.resolve("get", "/ok") is ROUTES[0]
    assert table.resolve("POST", "/ok") is ROUTES[0]
    assert table.resolve("PATCH", "/ok") is None
    assert table.resolve("GET", "/nowhere") is None


# ─── Terminal writes ─────────────────────────────────────

def test_exactly_one_terminal_write_on_success(transport):
    ctx = _invoke(_pipeline(), transport)
    assert len(transport.starts) == 1
    assert transport.body == b"ok"
    assert ctx.response.completed is True


def test_gate_rejection_is_single_write(transport):
    ctx = _invoke(_pipeline(), transport, query="")
    assert len(transport.starts) == 1
    assert transport.starts[0]["status"] == 403
    assert transport.body.decode() == AUTHENTICATION_DENIED_MESSAGE
    assert ctx.response.status_code == 403


def test_fault_before_start_becomes_500(transport):
    ctx = _invoke(_pipeline(), transport, path="/broken")
    assert len(transport.starts) == 1
    assert transport.starts[0]["status"] == 500
    assert UNEXPECTED_ERROR_MESSAGE.encode() in transport.body
    assert ctx.state["error"].kind == "ValueError"
    assert ctx.response.aborted is False


def test_fault_after_start_aborts_without_rewrite(transport):
    with capture_logs() as logs:
        ctx = _invoke(_pipeline(), transport, path="/stream")

    assert ctx.response.aborted is True
    assert len(transport.starts) == 1
    assert transport.starts[0]["status"] == 200
    assert transport.body == b"first chunk"
    assert any(log["event"] == "Response already started, aborting connection" for log in logs)


def test_middleware_drops_connection_after_abort(transport):
    middleware = RequestPipelineMiddleware(downstream_app, pipeline_factory=lambda inner: _pipeline())

    with pytest.raises(ResponseAborted):
        run(middleware(http_scope("GET", "/stream", "authenticated=true"), transport.receive, transport.send))

    assert len(transport.starts) == 1


def test_middleware_passes_lifespan_through():
    seen = []

    async def app(scope, receive, send):
        seen.append(scope["type"])

    middleware = RequestPipelineMiddleware(app, pipeline_factory=lambda inner: _pipeline())
    run(middleware({"type": "lifespan"}, None, None))
    assert seen == ["lifespan"]


def test_client_disconnect_while_writing_error_aborts():
    transport = Transport(fail_on_body=True)
    ctx = _invoke(_pipeline(), transport, path="/broken")

    assert ctx.response.aborted is True
    assert len(transport.starts) == 1


def test_error_boundary_never_lets_exceptions_escape(transport):
    async def explode(ctx):
        raise KeyError("missing")

    boundary = ErrorBoundaryStage(logger, expose_detail=True)
    ctx = RequestContext.from_asgi(http_scope(), transport.receive, transport.send)

    run(boundary.handle(ctx, explode))

    assert transport.starts[0]["status"] == 500
    assert b"'missing'" in transport.body
