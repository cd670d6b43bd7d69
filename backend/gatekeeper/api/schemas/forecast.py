"""Weather forecast request/response schemas."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class ForecastBase(BaseModel):
    """Fields shared by every forecast payload; serialised in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    date: dt.date
    temperature_c: int = Field(..., ge=-273, le=100)
    summary: str | None = Field(default=None, max_length=64)


class ForecastCreate(ForecastBase):
    """Request payload for creating or replacing a forecast."""


class ForecastResponse(ForecastBase):
    """A forecast as returned by the API."""

    @computed_field(alias="temperatureF")
    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)
