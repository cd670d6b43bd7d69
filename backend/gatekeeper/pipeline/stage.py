"""
PipelineStage — abstract base class for every link in the request chain.

A stage receives the RequestContext and a ``call_next`` coroutine that
runs the rest of the chain.  It either awaits ``call_next`` (optionally
doing work before and after) or writes a terminal response and returns
without calling it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from gatekeeper.pipeline.context import RequestContext

CallNext = Callable[[RequestContext], Awaitable[None]]


class PipelineStage(ABC):
    """
    Base class for every pipeline stage.

    Subclasses MUST implement:
        - name (str)              — unique identifier, e.g. "authentication"
        - handle(ctx, call_next)  — pass through or short-circuit

    Set ``terminal = True`` on a stage that never delegates; the builder
    only accepts one, and only in the last position.
    """

    name: str = "unnamed_stage"
    description: str = "No description"
    terminal: bool = False

    @abstractmethod
    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class GateStage(PipelineStage):
    """
    A stage whose only job is pass/reject on a predicate over the request.

    Subclasses supply ``applies_to`` (default: every request) and
    ``reject`` (writes the terminal response).
    """

    def __init__(self, predicate: Callable[[RequestContext], bool], logger) -> None:
        self.predicate = predicate
        self.logger = logger

    def applies_to(self, ctx: RequestContext) -> bool:
        return True

    @abstractmethod
    async def reject(self, ctx: RequestContext) -> None:
        ...

    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        if self.applies_to(ctx) and not self.predicate(ctx):
            await self.reject(ctx)
            return
        await call_next(ctx)


def query_flag(name: str, expected: str = "true") -> Callable[[RequestContext], bool]:
    """
    Predicate that passes when query parameter ``name`` equals ``expected``.

    This is a placeholder trust signal, not a credential check; swap in
    a real verifier by handing the gate a different predicate.
    """

    def _check(ctx: RequestContext) -> bool:
        return ctx.query.get(name) == expected

    _check.__name__ = f"query_flag_{name}"
    return _check
