"""
AuthorizationGate — mutating requests need an "authorized" signal.

Non-mutating methods pass through without evaluation.  The gate is
always placed after the AuthenticationGate, so an unauthenticated
request never reaches this check.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Callable, Iterable

from gatekeeper.core.constants import AUTHORIZATION_DENIED_MESSAGE, AUTHORIZED_QUERY_FLAG, HTTPMethod
from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.stage import GateStage, query_flag

DEFAULT_MUTATING_METHODS = frozenset({HTTPMethod.PUT, HTTPMethod.POST})


class AuthorizationGate(GateStage):
    """403 for mutating requests the predicate does not accept."""

    name = "authorization"
    description = "Authorization gate"

    def __init__(
        self,
        logger,
        predicate: Callable[[RequestContext], bool] | None = None,
        mutating_methods: Iterable[str] = DEFAULT_MUTATING_METHODS,
    ) -> None:
        super().__init__(predicate or query_flag(AUTHORIZED_QUERY_FLAG), logger)
        self.mutating_methods = frozenset(m.upper() for m in mutating_methods)

    def applies_to(self, ctx: RequestContext) -> bool:
        return ctx.method in self.mutating_methods

    async def reject(self, ctx: RequestContext) -> None:
        self.logger.warning(
            "403 Forbidden - Unauthorized request",
            path=ctx.path,
            query=ctx.query_string,
            method=ctx.method,
            request_id=ctx.request_id,
        )
        if ctx.response.started:
            return
        ctx.response.set_status(HTTPStatus.FORBIDDEN.value)
        await ctx.response.write_text(AUTHORIZATION_DENIED_MESSAGE)
