"""API schema package."""

from gatekeeper.api.schemas.forecast import ForecastCreate, ForecastResponse

__all__ = ["ForecastCreate", "ForecastResponse"]
