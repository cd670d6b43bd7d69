"""Concrete pipeline stages, listed outermost first."""

from gatekeeper.pipeline.stages.error_boundary import ErrorBoundaryStage
from gatekeeper.pipeline.stages.access_log import AccessLogStage
from gatekeeper.pipeline.stages.timing import TimingStage
from gatekeeper.pipeline.stages.documentation import DocumentationStage
from gatekeeper.pipeline.stages.authentication import AuthenticationGate
from gatekeeper.pipeline.stages.authorization import AuthorizationGate
from gatekeeper.pipeline.stages.dispatch import RouteDispatcher, RouteTable

__all__ = [
    "ErrorBoundaryStage",
    "AccessLogStage",
    "TimingStage",
    "DocumentationStage",
    "AuthenticationGate",
    "AuthorizationGate",
    "RouteDispatcher",
    "RouteTable",
]
