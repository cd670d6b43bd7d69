"""
AccessLogStage — structured request/response logging.

Logs method, path, query string, protocol, scheme and every header of
the request, then the status and headers of the response.  Request and
response bodies are logged as excerpts of at most ``request_body_limit``
/ ``response_body_limit`` bytes; anything past the cap is counted but
not kept, and the record is flagged ``truncated``.

The stage observes the body streams in passing.  It never buffers a
whole body and never touches the response.
"""

from __future__ import annotations

import time
from http import HTTPStatus

from starlette.types import Message

from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.stage import CallNext, PipelineStage

DEFAULT_BODY_LOG_LIMIT = 4096


class BodyExcerpt:
    """Keeps the first ``limit`` bytes of a stream and counts the rest."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.total = 0
        self._buffer = bytearray()

    def append(self, chunk: bytes) -> None:
        self.total += len(chunk)
        room = self.limit - len(self._buffer)
        if room > 0:
            self._buffer.extend(chunk[:room])

    @property
    def truncated(self) -> bool:
        return self.total > self.limit

    @property
    def text(self) -> str:
        return self._buffer.decode("utf-8", errors="replace")

    def to_log_fields(self) -> dict:
        return {"body": self.text, "body_bytes": self.total, "truncated": self.truncated}


class AccessLogStage(PipelineStage):
    """Logs every request and its response, bodies capped."""

    name = "access_log"
    description = "HTTP request/response logging"

    def __init__(
        self,
        logger,
        request_body_limit: int = DEFAULT_BODY_LOG_LIMIT,
        response_body_limit: int = DEFAULT_BODY_LOG_LIMIT,
    ) -> None:
        self.logger = logger
        self.request_body_limit = request_body_limit
        self.response_body_limit = response_body_limit

    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        log = self.logger.bind(request_id=ctx.request_id, method=ctx.method, path=ctx.path)
        log.info(
            "HTTP request",
            query=ctx.query_string,
            protocol=ctx.protocol,
            scheme=ctx.scheme,
            headers=dict(ctx.headers.items()),
        )

        request_body = BodyExcerpt(self.request_body_limit)
        response_body = BodyExcerpt(self.response_body_limit)

        downstream_receive = ctx.receive

        async def receive() -> Message:
            message = await downstream_receive()
            if message["type"] == "http.request":
                request_body.append(message.get("body", b""))
            return message

        ctx.receive = receive
        ctx.response.observe_body(response_body.append)

        started = time.perf_counter()
        failed = False
        try:
            await call_next(ctx)
        except Exception:
            failed = True
            raise
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 3)
            status_code = ctx.response.status_code
            if failed and not ctx.response.started:
                # The error boundary outside this stage writes the 500
                status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
            if request_body.total:
                log.info("HTTP request body", **request_body.to_log_fields())
            log.info(
                "HTTP response",
                status_code=status_code,
                headers=dict(ctx.response.headers),
                response_started=ctx.response.started,
                failed=failed,
                duration_ms=duration_ms,
            )
            if response_body.total:
                log.info("HTTP response body", **response_body.to_log_fields())
