"""
Domain-specific exception hierarchy for the request pipeline.

All pipeline exceptions inherit from PipelineError so callers can
catch broadly or narrowly as needed.  Each exception carries structured
context (request ID, stage name, etc.) for logging/debugging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        request_id: str | None = None,
        stage_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.request_id = request_id
        self.stage_name = stage_name
        self.details = details or {}
        super().__init__(message)


class PipelineConfigurationError(PipelineError):
    """The stage list handed to the builder cannot form a valid chain."""
    pass


class ResponseAlreadyStartedError(PipelineError):
    """A stage tried to change status, headers or body after the response started."""
    pass


class ResponseAborted(PipelineError):
    """
    The response had already started when a failure occurred.

    Raised by the ASGI adapter so the server drops the connection
    instead of completing a half-written response.
    """
    pass
