"""
core/engine.py -- The simulation engine: the single mutation boundary.

Every change to the session goes through a Simulation method, and every method
holds the same lock. Route handlers run both on the event loop (async routes)
and in the threadpool (sync routes), and deferred patch completions fire from
the loop, so the lock is what keeps a read-modify-write on an asset atomic.

Deferred patch completion:
    PATCH sets an asset to patching and schedules a completion. The completion
    re-checks that the asset is still patching when it fires; if a BREACH or
    ISOLATE landed in the meantime it does nothing. Pending completions are
    keyed by asset id, and reset() cancels all of them -- a timer armed
    against the previous session must not touch the new one.

Autonomous opponent:
    opponent_tick() is cheap when the opponent is disabled or cooling down, so
    it is safe to call from every state read and from a background ticker.
    Both paths share the cooldown clock, so calling it more often never makes
    the opponent act more often.

Usage:
    sim = Simulation(get_settings())
    sim.apply_action("blue-1", "PATCH", Faction.blue)
    sim.opponent_tick()
    state = sim.snapshot()
"""

import asyncio
import logging
import random
import threading
import time
from collections.abc import Sequence
from dataclasses import replace
from typing import Any, Callable, Optional, Protocol, Union

from core.config import Settings
from core.models import (
    SCAN_PORTS,
    Action,
    Asset,
    AssetStatus,
    Event,
    EventKind,
    Faction,
    OpponentState,
    ProbeResult,
)
from core.opponent import choose_move, is_due, source_name
from core.probe import probe
from core.session import Session

logger = logging.getLogger("cyberwar.engine")


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules callbacks on the asyncio event loop.

    The loop is captured from the first call made inside it, so completions
    scheduled from threadpool routes still fire on the loop thread.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None:
            self._loop = running
            return running.call_later(delay, callback)
        if self._loop is None:
            raise RuntimeError("LoopScheduler has no event loop to schedule on")
        return _ThreadsafeTimer(self._loop, delay, callback)


class _ThreadsafeTimer:
    """Timer armed on a loop from another thread; cancel() is also thread-safe."""

    def __init__(self, loop: asyncio.AbstractEventLoop, delay: float, callback: Callable[[], None]) -> None:
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._cancelled = False
        loop.call_soon_threadsafe(self._arm, delay, callback)

    def _arm(self, delay: float, callback: Callable[[], None]) -> None:
        if not self._cancelled:
            self._handle = self._loop.call_later(delay, callback)

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle is not None:
            self._loop.call_soon_threadsafe(self._handle.cancel)


def _epoch_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Action narration
# ---------------------------------------------------------------------------

# (message, kind) appended after the generic "initiated" event. UNKNOWN has none.
_ACTION_EVENTS: dict[Action, tuple[str, EventKind]] = {
    Action.PATCH: ("PATCH: Deploying security update. Asset entering maintenance window.", EventKind.info),
    Action.ISOLATE: ("ALERT: Asset has been isolated from the network.", EventKind.alert),
    Action.ROTATE_IP: ("NETWORK: IP space rotation complete. Footprint reduced.", EventKind.info),
    Action.ENCRYPT_PAYLOAD: ("CRYPT: Payload obfuscation complete. AV evasion active.", EventKind.attack),
    Action.BREACH: ("CRITICAL: System breach detected. Privilege escalation successful.", EventKind.alert),
}

_ACTION_STATUS: dict[Action, AssetStatus] = {
    Action.PATCH: AssetStatus.patching,
    Action.ISOLATE: AssetStatus.offline,
    Action.BREACH: AssetStatus.compromised,
}

PATCH_SUCCESS_MESSAGE = "SUCCESS: Security patch applied. Asset is now hardened."


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class Simulation:
    """Mutex-guarded handle around the current Session.

    clock returns epoch milliseconds and rng drives the opponent; both are
    injectable so tests can control time and randomness. The scheduler arms
    deferred patch completions (LoopScheduler by default).
    """

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Callable[[], int] = _epoch_ms,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self._rng = rng or random.Random()
        self._scheduler: Scheduler = scheduler or LoopScheduler()
        self._lock = threading.RLock()
        self._session = Session.create(settings, clock=clock)
        self._pending_patches: dict[str, TimerHandle] = {}
        self._patch_tickets: dict[str, object] = {}

    @property
    def session(self) -> Session:
        return self._session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return self._session.snapshot()

    def get_asset(self, asset_id: str) -> Asset:
        with self._lock:
            return self._session.assets.get(asset_id)

    def list_assets(self, faction: Optional[Faction] = None) -> list[Asset]:
        with self._lock:
            if faction is None:
                return self._session.assets.all()
            return self._session.assets.by_faction(faction)

    def opponent_state(self) -> OpponentState:
        with self._lock:
            return replace(self._session.opponent)

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    def record(self, message: str, source: str = "system", kind: Union[EventKind, str] = EventKind.info) -> Event:
        """Append a manual event to the log."""
        with self._lock:
            return self._session.events.append(source, message, EventKind(kind))

    # ------------------------------------------------------------------
    # Action processor
    # ------------------------------------------------------------------

    def apply_action(self, asset_id: str, action: Union[Action, str], faction: Faction) -> Asset:
        """Apply a tactical action to one asset and return its new value.

        Raises AssetNotFoundError for an unknown id before touching anything.
        """
        if isinstance(action, Action):
            label = action.label
        else:
            # Narrate the name as the operator sent it, even when unrecognised.
            label = str(action).strip().upper() or Action.UNKNOWN.label
            action = Action.parse(action)
        with self._lock:
            session = self._session
            asset = session.assets.get(asset_id)
            session.events.append(
                asset.name,
                f"TACTICAL ACTION: {label} sequence initiated.",
                EventKind.attack if faction is Faction.red else EventKind.defense,
            )

            new_status = _ACTION_STATUS.get(action)
            if new_status is not None:
                asset = session.assets.set_status(asset_id, new_status)

            narration = _ACTION_EVENTS.get(action)
            if narration is not None:
                message, kind = narration
                session.events.append(asset.name, message, kind)

            if action is Action.PATCH:
                self._schedule_patch_completion(session, asset_id)

            logger.info("%s %s by %s -> %s", action.value, asset_id, faction.value, asset.status.value)
            return asset

    def _schedule_patch_completion(self, session: Session, asset_id: str) -> None:
        previous = self._pending_patches.pop(asset_id, None)
        if previous is not None:
            previous.cancel()
        # A re-patch supersedes the earlier timer even if its cancel loses the race.
        ticket = object()
        self._patch_tickets[asset_id] = ticket
        self._pending_patches[asset_id] = self._scheduler.call_later(
            self.settings.patch_delay_seconds,
            lambda: self._complete_patch(session, asset_id, ticket),
        )

    def _complete_patch(self, session: Session, asset_id: str, ticket: object) -> None:
        with self._lock:
            if session is not self._session or self._patch_tickets.get(asset_id) is not ticket:
                return
            del self._patch_tickets[asset_id]
            self._pending_patches.pop(asset_id, None)
            asset = session.assets.find(asset_id)
            if asset is None or asset.status is not AssetStatus.patching:
                logger.info("Patch completion for %s skipped (status changed)", asset_id)
                return
            asset = session.assets.set_status(asset_id, AssetStatus.online)
            session.events.append(asset.name, PATCH_SUCCESS_MESSAGE, EventKind.info)
            logger.info("Patch completed on %s", asset_id)

    def pending_patches(self) -> list[str]:
        with self._lock:
            return list(self._pending_patches)

    def cancel_pending_patches(self) -> int:
        """Cancel every armed patch completion. Returns how many were pending."""
        with self._lock:
            count = len(self._pending_patches)
            for handle in self._pending_patches.values():
                handle.cancel()
            self._pending_patches.clear()
            self._patch_tickets.clear()
            return count

    # ------------------------------------------------------------------
    # Autonomous opponent
    # ------------------------------------------------------------------

    def configure_opponent(self, enabled: bool, role: Optional[Faction] = None) -> OpponentState:
        """Switch the opponent on or off, optionally changing its role.

        Switching on restarts the cooldown clock, so the first autonomous move
        comes one full cooldown after enabling.
        """
        with self._lock:
            session = self._session
            state = session.opponent
            if role is not None:
                state.role = role
            state.enabled = bool(enabled)
            if state.enabled:
                state.last_action_at_epoch = self._clock()
                session.events.append(
                    source_name(state.role),
                    f"AI OPPONENT ENGAGED: Autonomous {state.role.value.upper()} team is now active.",
                    EventKind.alert,
                )
            else:
                session.events.append(
                    source_name(state.role),
                    "AI OPPONENT DISENGAGED: Autonomous operations suspended.",
                    EventKind.info,
                )
            logger.info("Opponent %s (role=%s)", "enabled" if state.enabled else "disabled", state.role.value)
            return replace(state)

    def opponent_tick(self) -> Optional[Event]:
        """Let the opponent act once if it is enabled and off cooldown.

        Returns the event it produced, or None. The cooldown restarts on every
        trigger even when no eligible target exists.
        """
        with self._lock:
            session = self._session
            state = session.opponent
            now = self._clock()
            if not is_due(state, now):
                return None
            state.last_action_at_epoch = now

            move = choose_move(state.role, session.assets.all(), self._rng)
            if move is None:
                return None
            if move.new_status is not None:
                session.assets.set_status(move.target.id, move.new_status)
            logger.info("Opponent (%s) acted on %s", state.role.value, move.target.id)
            return session.events.append(source_name(state.role), move.message, move.kind)

    # ------------------------------------------------------------------
    # Scripts
    # ------------------------------------------------------------------

    def save_script(self, name: Any, commands: Any) -> str:
        """Store a script (overwriting) and log it. Raises InvalidScriptError."""
        with self._lock:
            session = self._session
            name = session.scripts.save(name, commands)
            session.events.append("system", f"Script '{name}' saved to storage.", EventKind.info)
            return name

    def list_scripts(self) -> dict[str, list[str]]:
        with self._lock:
            return self._session.scripts.list()

    def get_script(self, name: str) -> Optional[list[str]]:
        with self._lock:
            return self._session.scripts.get(name)

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def reset(self) -> Session:
        """Replace the session with a fresh baseline and drop pending patches."""
        with self._lock:
            self.cancel_pending_patches()
            self._session = self._session.reset()
            logger.info("Simulation reset to baseline")
            return self._session

    # ------------------------------------------------------------------
    # Port probe
    # ------------------------------------------------------------------

    async def scan(
        self,
        target: str,
        start: int,
        end: int,
        ports: Sequence[int] = SCAN_PORTS,
    ) -> list[ProbeResult]:
        """Probe the candidate ports in [start, end] and narrate the findings.

        The lock is not held while probing; other requests keep running and
        the narration lands in whichever session is current when each step
        finishes.
        """
        self.record(f"Initializing port scan on {target} (ports {start}-{end})...", "system", EventKind.info)
        results = await probe(target, ports, start, end, timeout=self.settings.probe_timeout_seconds)

        findings = [r for r in results if r.is_open]
        with self._lock:
            events = self._session.events
            for finding in findings:
                events.append("scanner", f"OPEN PORT DETECTED: {finding.port}", EventKind.attack)
            if not findings:
                events.append("scanner", "Scan completed. No open ports found in specified range.", EventKind.info)
        logger.info("Scan of %s finished: %d/%d open", target, len(findings), len(results))
        return results
