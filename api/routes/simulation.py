"""
api/routes/simulation.py -- Session state, tactical action and opponent routes.

Routes:
  GET   /state   -- full session snapshot (gives the opponent a chance to act first)
  POST  /action  -- apply a tactical action to one asset
  POST  /log     -- append a manual event
  POST  /ai      -- switch the autonomous opponent on/off, optionally set its role
  POST  /reset   -- restore the baseline session (scripts survive)

All handlers reach the engine through request.app.state.simulation; the
engine is the only thing that mutates the session.

Rate limits are applied via slowapi. The @limiter.limit() decorator must sit
ABOVE @router.get/post so that slowapi can attach the limit string to the
function object before FastAPI wraps it.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from api.limiter import limiter
from api.models import (
    ActionRequest,
    ActionResponse,
    AssetOut,
    ErrorDetail,
    LogRequest,
    OpponentOut,
    OpponentRequest,
    StateResponse,
    SuccessResponse,
)
from core.config import get_settings
from core.engine import Simulation
from core.models import EventKind, parse_faction
from core.session import AssetNotFoundError

logger = logging.getLogger("cyberwar.api")

router = APIRouter()

_settings = get_settings()


# ---------------------------------------------------------------------------
# GET /state -- snapshot, with the opponent check as a side effect
# ---------------------------------------------------------------------------


@router.get("/state", response_model=StateResponse)
def get_state(request: Request) -> StateResponse:
    """Return {assets, logs, scripts, ai}.

    The opponent tick runs before the snapshot so the poller sees the move in
    the same response. Cooldown throttling makes frequent polling harmless.
    """
    sim: Simulation = request.app.state.simulation
    sim.opponent_tick()
    return StateResponse.from_snapshot(sim.snapshot())


# ---------------------------------------------------------------------------
# POST /action -- tactical action on one asset
# ---------------------------------------------------------------------------


@limiter.limit(_settings.action_rate_limit)
@router.post("/action", response_model=ActionResponse)
async def post_action(request: Request, body: ActionRequest) -> ActionResponse:
    """Apply PATCH / ISOLATE / ROTATE_IP / ENCRYPT_PAYLOAD / BREACH to an asset.

    Unknown action names are accepted and only narrate the attempt. An unknown
    asset id is a 404 and leaves the session untouched. Runs on the event loop
    so a PATCH can arm its completion timer there.
    """
    sim: Simulation = request.app.state.simulation
    try:
        asset = sim.apply_action(body.asset_id, body.action, parse_faction(body.faction))
    except AssetNotFoundError:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(
                code="asset_not_found",
                message="Asset not found.",
                detail=f"No asset with id {body.asset_id[:50]}.",
            ).model_dump(),
        )
    return ActionResponse(asset=AssetOut.from_asset(asset))


# ---------------------------------------------------------------------------
# POST /log -- manual event
# ---------------------------------------------------------------------------


@router.post("/log", response_model=SuccessResponse)
def post_log(request: Request, body: LogRequest) -> SuccessResponse:
    """Append an operator event. Defaults: source=system, type=info."""
    sim: Simulation = request.app.state.simulation
    sim.record(body.message, body.source or "system", body.kind or EventKind.info)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# POST /ai -- opponent toggle
# ---------------------------------------------------------------------------


@router.post("/ai", response_model=OpponentOut)
def post_ai(request: Request, body: OpponentRequest) -> OpponentOut:
    """Enable or disable the autonomous opponent and return its state."""
    sim: Simulation = request.app.state.simulation
    state = sim.configure_opponent(body.enabled, body.role)
    return OpponentOut.from_state(state)


# ---------------------------------------------------------------------------
# POST /reset -- baseline restore
# ---------------------------------------------------------------------------


@router.post("/reset", response_model=SuccessResponse)
def post_reset(request: Request) -> SuccessResponse:
    """Restore baseline assets, clear the log, disable the opponent.

    Saved scripts are kept. Patch completions still pending are cancelled.
    """
    sim: Simulation = request.app.state.simulation
    sim.reset()
    logger.info("Session reset requested by %s", request.client.host if request.client else "unknown")
    return SuccessResponse()
