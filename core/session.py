"""
core/session.py -- In-memory simulation state: assets, events, scripts, opponent.

Pattern: Aggregate. Session owns exactly one AssetRegistry, EventLog,
ScriptStore and OpponentState. None of them holds a reference to another, and
nothing outside core/engine.py mutates them -- the engine is the single
mutation boundary and serializes access behind its lock.

Reset never mutates a session in place. Session.reset() builds a new session
from the immutable baseline, carrying scripts over by value and the opponent
settings over with enabled forced off.

Usage:
    session = Session.create(get_settings())
    asset = session.assets.get("blue-1")
    session.events.append("system", "hello", EventKind.info)
    fresh = session.reset()
"""

import time
import uuid
from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from core.config import Settings
from core.models import (
    BASELINE_ASSETS,
    BASELINE_SCRIPTS,
    Asset,
    AssetStatus,
    Event,
    EventKind,
    Faction,
    OpponentState,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SimulationError(Exception):
    """Base class for domain errors reported back to the caller."""


class AssetNotFoundError(SimulationError, LookupError):
    def __init__(self, asset_id: str) -> None:
        super().__init__(f"Asset {asset_id} not found.")
        self.asset_id = asset_id


class InvalidScriptError(SimulationError, ValueError):
    """Raised when a script save payload is malformed. Nothing is stored."""


# ---------------------------------------------------------------------------
# Asset registry
# ---------------------------------------------------------------------------


class AssetRegistry:
    """Catalog of simulated machines, keyed by id, in baseline order."""

    def __init__(self, assets: Iterable[Asset]) -> None:
        self._assets: dict[str, Asset] = {a.id: a for a in assets}

    @classmethod
    def from_baseline(cls) -> "AssetRegistry":
        # Asset is frozen, but replace() still gives every session its own values.
        return cls(replace(a) for a in BASELINE_ASSETS)

    def find(self, asset_id: str) -> Optional[Asset]:
        return self._assets.get(asset_id)

    def get(self, asset_id: str) -> Asset:
        asset = self._assets.get(asset_id)
        if asset is None:
            raise AssetNotFoundError(asset_id)
        return asset

    def set_status(self, asset_id: str, status: AssetStatus) -> Asset:
        asset = self.get(asset_id).with_status(status)
        self._assets[asset_id] = asset
        return asset

    def by_faction(self, faction: Faction) -> list[Asset]:
        return [a for a in self._assets.values() if a.faction is faction]

    def all(self) -> list[Asset]:
        return list(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class EventLog:
    """Bounded append-only event record, newest first.

    created_at_epoch is clamped so it never goes backwards even if the wall
    clock does.
    """

    def __init__(self, limit: int = 100, clock: Callable[[], int] = _epoch_ms) -> None:
        if limit <= 0:
            raise ValueError("limit must be greater than zero")
        self.limit = limit
        self.clock = clock
        self._events: deque[Event] = deque(maxlen=limit)
        self._last_epoch = 0

    def append(self, source: str, message: str, kind: EventKind = EventKind.info) -> Event:
        epoch = max(self.clock(), self._last_epoch)
        self._last_epoch = epoch
        event = Event(
            id=uuid.uuid4().hex,
            timestamp=datetime.fromtimestamp(epoch / 1000).strftime("%H:%M:%S"),
            created_at_epoch=epoch,
            source=source,
            message=message,
            kind=EventKind(kind),
        )
        # appendleft on a bounded deque drops from the right, i.e. the oldest.
        self._events.appendleft(event)
        return event

    def entries(self) -> list[Event]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


# ---------------------------------------------------------------------------
# Script store
# ---------------------------------------------------------------------------


class ScriptStore:
    """Named command sequences. Save overwrites; there is no delete."""

    def __init__(self, scripts: Optional[dict[str, Sequence[str]]] = None) -> None:
        self._scripts: dict[str, list[str]] = {}
        for name, commands in (scripts or {}).items():
            self._scripts[name] = list(commands)

    @classmethod
    def from_baseline(cls) -> "ScriptStore":
        return cls(BASELINE_SCRIPTS)

    @staticmethod
    def validate(name: Any, commands: Any) -> tuple[str, list[str]]:
        """Return the (name, commands) pair to store, or raise InvalidScriptError.

        A bare string is rejected even though it is technically a sequence --
        "scan" would otherwise be stored as four one-letter commands.
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidScriptError("Script name must be a non-empty string.")
        if name != name.strip():
            raise InvalidScriptError("Script name must not start or end with whitespace.")
        if not isinstance(commands, (list, tuple)):
            raise InvalidScriptError("Script commands must be a list of strings.")
        if not all(isinstance(c, str) for c in commands):
            raise InvalidScriptError("Every script command must be a string.")
        return name, list(commands)

    def save(self, name: Any, commands: Any) -> str:
        name, commands = self.validate(name, commands)
        self._scripts[name] = commands
        return name

    def get(self, name: str) -> Optional[list[str]]:
        commands = self._scripts.get(name)
        return list(commands) if commands is not None else None

    def list(self) -> dict[str, list[str]]:
        return {name: list(commands) for name, commands in self._scripts.items()}

    def copy(self) -> "ScriptStore":
        return ScriptStore(self._scripts)

    def __contains__(self, name: object) -> bool:
        return name in self._scripts

    def __len__(self) -> int:
        return len(self._scripts)


# ---------------------------------------------------------------------------
# Session aggregate
# ---------------------------------------------------------------------------


class Session:
    """The complete simulation state for one running instance."""

    def __init__(
        self,
        assets: AssetRegistry,
        events: EventLog,
        scripts: ScriptStore,
        opponent: OpponentState,
    ) -> None:
        self.assets = assets
        self.events = events
        self.scripts = scripts
        self.opponent = opponent

    @classmethod
    def create(cls, settings: Settings, clock: Callable[[], int] = _epoch_ms) -> "Session":
        return cls(
            assets=AssetRegistry.from_baseline(),
            events=EventLog(limit=settings.event_log_limit, clock=clock),
            scripts=ScriptStore.from_baseline(),
            opponent=OpponentState(cooldown_ms=settings.opponent_cooldown_ms),
        )

    def reset(self) -> "Session":
        """Return a new session restored to baseline.

        Assets come fresh from the baseline list, the event log is empty,
        scripts are copied by value and the opponent keeps its role and
        cooldown but is switched off.
        """
        return Session(
            assets=AssetRegistry.from_baseline(),
            events=EventLog(limit=self.events.limit, clock=self.events.clock),
            scripts=self.scripts.copy(),
            opponent=replace(self.opponent, enabled=False),
        )

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the session: {assets, logs, scripts, ai}."""
        return {
            "assets": self.assets.all(),
            "logs": self.events.entries(),
            "scripts": self.scripts.list(),
            "ai": replace(self.opponent),
        }
