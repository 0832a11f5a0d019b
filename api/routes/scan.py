"""
api/routes/scan.py -- Port reachability probe route.

GET /scan?target=&start=&end=

Probes the fixed candidate port list filtered to [start, end] and returns the
open ports only. Closed and unreachable ports are a normal outcome: the route
never fails because a host is down. Every step is narrated in the event log.
"""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request

from api.limiter import limiter
from api.models import ErrorDetail, PortResult, ScanResponse
from core.config import get_settings
from core.engine import Simulation
from core.models import DEFAULT_SCAN_END, DEFAULT_SCAN_START, DEFAULT_SCAN_TARGET

router = APIRouter()


@limiter.limit(get_settings().scan_rate_limit)
@router.get("/scan", response_model=ScanResponse)
async def get_scan(
    request: Request,
    target: Annotated[str, Query(max_length=253)] = DEFAULT_SCAN_TARGET,
    start: Annotated[int, Query(ge=0, le=65535)] = DEFAULT_SCAN_START,
    end: Annotated[int, Query(ge=0, le=65535)] = DEFAULT_SCAN_END,
) -> ScanResponse:
    """Run the reachability probe and report open ports in candidate order."""
    target = target.strip() or DEFAULT_SCAN_TARGET
    if start > end:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="invalid_range",
                message="start must not be greater than end.",
            ).model_dump(),
        )

    sim: Simulation = request.app.state.simulation
    results = await sim.scan(target, start, end)
    return ScanResponse(
        target=target,
        timestamp=datetime.now(timezone.utc).isoformat(),
        results=[PortResult.from_result(r) for r in results if r.is_open],
    )
