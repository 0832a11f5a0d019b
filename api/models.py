"""
API request and response models for the simulation REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire names follow the dashboard's camelCase convention (assetId,
createdAtEpoch, cooldownMs). Field aliases do the translation so the Python
side keeps snake_case.

Separation of concerns: core/ models = domain truth; api/ models = API contract.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from core.models import (
    Asset,
    AssetKind,
    AssetStatus,
    Event,
    EventKind,
    Faction,
    OpponentState,
    PortState,
    ProbeResult,
)

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ActionRequest(BaseModel):
    """Request body for POST /api/action.

    action is free text on purpose: unknown names are a valid no-op, not a
    validation error. faction also accepts the dashboard's older "team" key.
    """

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    asset_id: str = Field(validation_alias=AliasChoices("assetId", "asset_id"), min_length=1)
    action: str
    faction: Optional[str] = Field(default=None, validation_alias=AliasChoices("faction", "team"))


class LogRequest(BaseModel):
    """Request body for POST /api/log."""

    model_config = ConfigDict(populate_by_name=True)

    message: str
    source: Optional[str] = None
    kind: Optional[EventKind] = Field(default=None, validation_alias=AliasChoices("type", "kind"))


class OpponentRequest(BaseModel):
    """Request body for POST /api/ai."""

    enabled: bool
    role: Optional[Faction] = None


class ScriptSaveRequest(BaseModel):
    """Request body for POST /api/scripts.

    Deliberately loose: a malformed payload is a 400 from the script store,
    not a 422 from request validation.
    """

    name: Any = None
    commands: Any = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class AssetOut(_WireModel):
    id: str
    name: str
    kind: AssetKind
    status: AssetStatus
    faction: Faction

    @classmethod
    def from_asset(cls, asset: Asset) -> "AssetOut":
        """Factory Method: the domain-to-wire mapping lives beside the wire model."""
        return cls(
            id=asset.id,
            name=asset.name,
            kind=asset.kind,
            status=asset.status,
            faction=asset.faction,
        )


class EventOut(_WireModel):
    id: str
    timestamp: str
    created_at_epoch: int = Field(alias="createdAtEpoch")
    source: str
    message: str
    kind: EventKind

    @classmethod
    def from_event(cls, event: Event) -> "EventOut":
        return cls(
            id=event.id,
            timestamp=event.timestamp,
            created_at_epoch=event.created_at_epoch,
            source=event.source,
            message=event.message,
            kind=event.kind,
        )


class OpponentOut(_WireModel):
    enabled: bool
    role: Faction
    cooldown_ms: int = Field(alias="cooldownMs")
    last_action_at_epoch: int = Field(alias="lastActionAtEpoch")

    @classmethod
    def from_state(cls, state: OpponentState) -> "OpponentOut":
        return cls(
            enabled=state.enabled,
            role=state.role,
            cooldown_ms=state.cooldown_ms,
            last_action_at_epoch=state.last_action_at_epoch,
        )


class StateResponse(_WireModel):
    """Full session snapshot for GET /api/state."""

    assets: list[AssetOut]
    logs: list[EventOut]
    scripts: dict[str, list[str]]
    ai: OpponentOut

    @classmethod
    def from_snapshot(cls, snapshot: dict[str, Any]) -> "StateResponse":
        return cls(
            assets=[AssetOut.from_asset(a) for a in snapshot["assets"]],
            logs=[EventOut.from_event(e) for e in snapshot["logs"]],
            scripts=snapshot["scripts"],
            ai=OpponentOut.from_state(snapshot["ai"]),
        )


class ActionResponse(_WireModel):
    success: bool = True
    asset: AssetOut


class SuccessResponse(_WireModel):
    success: bool = True


class PortResult(_WireModel):
    port: int
    state: PortState

    @classmethod
    def from_result(cls, result: ProbeResult) -> "PortResult":
        return cls(port=result.port, state=result.state)


class ScanResponse(_WireModel):
    """Response for GET /api/scan. results holds open ports only."""

    target: str
    timestamp: str
    results: list[PortResult]


class HealthResponse(_WireModel):
    status: str = "healthy"
    version: str


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Structured error detail. code is a stable machine-readable string."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope returned by every exception handler."""

    error: ErrorDetail
