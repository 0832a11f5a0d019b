"""
core/formatter.py -- Renders simulation events and assets for the terminal.
"""

import os
import re
import sys
from collections.abc import Iterable
from typing import Optional

from .models import Asset, AssetStatus, Event, EventKind, Faction

W = 68  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return _ANSI_RE.sub("", text)


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and checks sys.stdout.isatty().
    Can be overridden by calling disable_color() / enable_color().
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def enable_color() -> None:
    """Force-enable color output."""
    global _color_enabled
    _color_enabled = True


def reset_color() -> None:
    """Return to auto-detection."""
    global _color_enabled
    _color_enabled = None


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


# ---------------------------------------------------------------------------
# ANSI code helpers -- return empty string when color is off
# ---------------------------------------------------------------------------

KIND_COLORS = {
    EventKind.info: "\033[94m",  # blue
    EventKind.attack: "\033[91m",  # red
    EventKind.defense: "\033[92m",  # green
    EventKind.alert: "\033[93m",  # yellow
}

STATUS_COLORS = {
    AssetStatus.online: "\033[92m",
    AssetStatus.offline: "\033[90m",
    AssetStatus.compromised: "\033[91m",
    AssetStatus.patching: "\033[93m",
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _kind_color(kind: EventKind) -> str:
    return KIND_COLORS.get(kind, "") if _color_active() else ""


def _status_color(status: AssetStatus) -> str:
    return STATUS_COLORS.get(status, "") if _color_active() else ""


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _bar(char: str = "═") -> str:
    return char * W


def format_event(event: Event) -> str:
    """One log line: time, kind tag, source, message."""
    tag = f"[{event.kind.value.upper()}]"
    return (
        f"  {_dim()}{event.timestamp}{_reset()} "
        f"{_kind_color(event.kind)}{tag:<9}{_reset()} "
        f"{_bold()}{event.source}{_reset()}: {event.message}"
    )


def format_assets(assets: Iterable[Asset]) -> str:
    """Asset table grouped by faction, red first."""
    assets = list(assets)
    lines = [f"  {_bar()}"]
    for faction in (Faction.red, Faction.blue):
        members = [a for a in assets if a.faction is faction]
        if not members:
            continue
        lines.append(f"  {_bold()}{faction.value.upper()} TEAM{_reset()}")
        lines.append(f"  {'─' * (W - 2)}")
        for a in members:
            status = f"{_status_color(a.status)}{a.status.value.upper()}{_reset()}"
            lines.append(f"    {a.id:<8} {a.name:<16} {a.kind.value:<12} {status}")
    lines.append(f"  {_bar()}")
    return "\n".join(lines)


def print_events(events: Iterable[Event], oldest_first: bool = True) -> None:
    """Print events, oldest first by default (the log itself is newest first)."""
    events = list(events)
    if oldest_first:
        events.reverse()
    for event in events:
        print(format_event(event))
