"""
AuthenticationGate — rejects requests without an "authenticated" signal.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Callable

from gatekeeper.core.constants import AUTHENTICATED_QUERY_FLAG, AUTHENTICATION_DENIED_MESSAGE
from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.stage import GateStage, query_flag


class AuthenticationGate(GateStage):
    """
    403 for every request the predicate does not accept.

    The default predicate is the placeholder ``?authenticated=true``
    query flag.  It proves nothing about the caller.
    """

    name = "authentication"
    description = "Authentication gate"

    def __init__(self, logger, predicate: Callable[[RequestContext], bool] | None = None) -> None:
        super().__init__(predicate or query_flag(AUTHENTICATED_QUERY_FLAG), logger)

    async def reject(self, ctx: RequestContext) -> None:
        self.logger.warning(
            "403 Forbidden - Unauthenticated request",
            path=ctx.path,
            query=ctx.query_string,
            request_id=ctx.request_id,
        )
        if ctx.response.started:
            return
        ctx.response.set_status(HTTPStatus.FORBIDDEN.value)
        await ctx.response.write_text(AUTHENTICATION_DENIED_MESSAGE)
