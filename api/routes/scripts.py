"""
api/routes/scripts.py -- Script store routes.

Routes:
  GET   /scripts  -- mapping of script name to command list
  POST  /scripts  -- save (or overwrite) a script

A malformed save is reported as 400 invalid_script and stores nothing. The
request model is deliberately loose so that shape errors reach the script
store's own validation instead of surfacing as 422s.
"""

from fastapi import APIRouter, HTTPException, Request

from api.models import ErrorDetail, ScriptSaveRequest, SuccessResponse
from core.engine import Simulation
from core.session import InvalidScriptError

router = APIRouter()


@router.get("/scripts", response_model=dict[str, list[str]])
def list_scripts(request: Request) -> dict[str, list[str]]:
    """Return every stored script."""
    sim: Simulation = request.app.state.simulation
    return sim.list_scripts()


@router.post("/scripts", response_model=SuccessResponse)
def save_script(request: Request, body: ScriptSaveRequest) -> SuccessResponse:
    """Store a named command sequence, overwriting any script with that name."""
    sim: Simulation = request.app.state.simulation
    try:
        sim.save_script(body.name, body.commands)
    except InvalidScriptError as e:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="invalid_script",
                message="Invalid script data.",
                detail=str(e),
            ).model_dump(),
        )
    return SuccessResponse()
