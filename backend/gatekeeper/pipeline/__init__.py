"""
Request Pipeline — ordered chain of cross-cutting stages.

This package provides the stage abstraction, the per-request context,
the builder that nests stages into one chain, and the ASGI adapter
that runs the chain for every HTTP request.
"""

from gatekeeper.pipeline.builder import Pipeline, PipelineBuilder, build_default_pipeline
from gatekeeper.pipeline.context import ErrorRecord, RequestContext, ResponseInProgress
from gatekeeper.pipeline.middleware import RequestPipelineMiddleware
from gatekeeper.pipeline.stage import GateStage, PipelineStage, query_flag

__all__ = [
    "Pipeline",
    "PipelineBuilder",
    "build_default_pipeline",
    "RequestContext",
    "ResponseInProgress",
    "ErrorRecord",
    "RequestPipelineMiddleware",
    "PipelineStage",
    "GateStage",
    "query_flag",
]
