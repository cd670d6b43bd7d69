"""Liveness endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """Health check; still behind the gates like every other route."""
    return {"status": "ok", "env": request.app.state.settings.APP_ENV}
