"""In-process metrics snapshot."""

from typing import Any

from fastapi import APIRouter, Depends

from src.app.api.http.deps import get_telemetry
from src.app.core.telemetry import Telemetry

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


@router.get("/metrics")
def metrics(telemetry: Telemetry = Depends(get_telemetry)) -> dict[str, Any]:
    """Current request counters and duration histograms."""
    return telemetry.snapshot()
