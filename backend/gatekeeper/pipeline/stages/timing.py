"""
TimingStage — wall-clock duration of everything downstream.

The measurement covers all nested stages: the gates' rejection paths,
the route handler, and the fallback.  The result goes to the console
sink and to the structured logger.
"""

from __future__ import annotations

import sys
import time
from datetime import timedelta
from typing import Callable

from gatekeeper.pipeline.context import RequestContext
from gatekeeper.pipeline.stage import CallNext, PipelineStage

ConsoleSink = Callable[[str], None]


def stdout_sink(line: str) -> None:
    """Write one line to stdout in a single call."""
    sys.stdout.write(f"{line}\n")
    sys.stdout.flush()


class TimingStage(PipelineStage):
    """Measures and reports the execution time of the inner chain."""

    name = "timing"
    description = "Execution time instrumentation"

    def __init__(self, logger, console: ConsoleSink = stdout_sink) -> None:
        self.logger = logger
        self.console = console

    async def handle(self, ctx: RequestContext, call_next: CallNext) -> None:
        started = time.perf_counter()
        try:
            await call_next(ctx)
        finally:
            elapsed = time.perf_counter() - started
            ctx.state["elapsed"] = elapsed
            formatted = str(timedelta(seconds=elapsed))

            self.console(f"Execution time: {formatted}")
            self.logger.info(
                "Execution time",
                elapsed=formatted,
                duration_ms=round(elapsed * 1000, 3),
                method=ctx.method,
                path=ctx.path,
                request_id=ctx.request_id,
            )
