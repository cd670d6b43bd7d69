"""
Weather forecast endpoints — sample resource guarded by the pipeline.

Nothing is stored: writes validate and echo the payload back.
"""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, HTTPException, Response, status

from gatekeeper.api.schemas.forecast import ForecastCreate, ForecastResponse

router = APIRouter(prefix="/weatherforecast", tags=["WeatherForecast"])

SUMMARIES = [
    "Freezing", "Bracing", "Chilly", "Cool", "Mild",
    "Warm", "Balmy", "Hot", "Sweltering", "Scorching",
]
FORECAST_DAYS = 5


def _forecast_for(day: dt.date) -> ForecastResponse:
    # Deterministic per calendar day so repeated reads agree
    seed = day.toordinal()
    return ForecastResponse(
        date=day,
        temperature_c=-20 + (seed * 37) % 75,
        summary=SUMMARIES[seed % len(SUMMARIES)],
    )


@router.get("", response_model=list[ForecastResponse])
async def list_forecasts() -> list[ForecastResponse]:
    """Forecasts for the next five days."""
    today = dt.date.today()
    return [_forecast_for(today + dt.timedelta(days=offset)) for offset in range(1, FORECAST_DAYS + 1)]


@router.get("/{day_offset}", response_model=ForecastResponse)
async def get_forecast(day_offset: int) -> ForecastResponse:
    """Forecast for a single day, counted from today."""
    if not 1 <= day_offset <= FORECAST_DAYS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No forecast for that day")
    return _forecast_for(dt.date.today() + dt.timedelta(days=day_offset))


@router.post("", response_model=ForecastResponse, status_code=status.HTTP_201_CREATED)
async def create_forecast(payload: ForecastCreate) -> ForecastResponse:
    """Validate a forecast and echo it back."""
    return ForecastResponse(**payload.model_dump())


@router.put("/{day_offset}", response_model=ForecastResponse)
async def replace_forecast(day_offset: int, payload: ForecastCreate) -> ForecastResponse:
    """Validate a replacement forecast and echo it back."""
    if not 1 <= day_offset <= FORECAST_DAYS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No forecast for that day")
    return ForecastResponse(**payload.model_dump())


@router.delete("/{day_offset}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_forecast(day_offset: int) -> Response:
    """Accept a delete; there is nothing stored to remove."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)
