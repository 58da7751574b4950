"""Health check endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from medsim.api import deps
from medsim.core.clock import VirtualClock
from medsim.core.config import get_settings

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(
    clock: Annotated[VirtualClock, Depends(deps.get_clock)],
) -> dict[str, str | bool]:
    """Return application health metadata."""
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
        "clock_simulating": clock.is_simulating,
    }
