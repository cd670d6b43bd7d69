"""
ErrorBoundaryStage — outermost stage, the single point of failure containment.

Any exception escaping the rest of the chain is logged once and turned
into a sanitized JSON 500.  If the response already started, the status
line can no longer be rewritten, so the connection is aborted instead.
"""

from __future__ import annotations

from http import HTTPStatus

from gatekeeper.core.constants import UNEXPECTED_ERROR_MESSAGE
from gatekeeper.pipeline.context import ErrorRecord, RequestContext
from gatekeeper.pipeline.stage import CallNext, PipelineStage


class ErrorBoundaryStage(PipelineStage):
    """Catches every downstream failure and converts it into a response."""

    name = "error_boundary"
    description = "Contain unhandled failures"

    def __init__(self, logger, expose_detail: bool = False) -> None:
        """
        Args:
            logger: structlog logger the failure is reported to.
            expose_detail: Put the exception message in the body
                           (development only, never in production).
        """
        self.logger = logger
        self.expose_detail = expose_detail

    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        try:
            await call_next(ctx)
        except Exception as exc:
            record = ErrorRecord.from_exception(exc, ctx)
            ctx.state["error"] = record
            self.logger.exception(
                "Unhandled exception occurred while processing request.",
                **record.to_dict(),
            )

            if ctx.response.started:
                self.logger.warning(
                    "Response already started, aborting connection",
                    path=ctx.path,
                    request_id=ctx.request_id,
                )
                ctx.response.abort()
                return

            status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
            ctx.response.set_status(status_code)
            try:
                await ctx.response.write_json(
                    {
                        "statusCode": status_code,
                        "message": UNEXPECTED_ERROR_MESSAGE,
                        "detail": record.message if self.expose_detail else "",
                    }
                )
            except Exception as write_exc:
                # Client went away while the error body was being written
                self.logger.warning(
                    "Error response could not be written, aborting connection",
                    error=str(write_exc),
                    request_id=ctx.request_id,
                )
                ctx.response.abort()
