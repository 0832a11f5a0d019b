"""Tests for core/formatter.py -- terminal rendering of events and assets."""

import pytest

from core import formatter
from core.models import BASELINE_ASSETS, AssetStatus, Event, EventKind


@pytest.fixture(autouse=True)
def _restore_color():
    yield
    formatter.reset_color()


def _event(kind=EventKind.alert) -> Event:
    return Event(
        id="abc",
        timestamp="12:00:01",
        created_at_epoch=1000,
        source="Main-DB",
        message="CRITICAL: System breach detected.",
        kind=kind,
    )


def test_format_event_plain():
    formatter.disable_color()
    line = formatter.format_event(_event())
    assert "\x1b[" not in line
    assert "12:00:01" in line
    assert "[ALERT]" in line
    assert "Main-DB: CRITICAL: System breach detected." in line


def test_format_event_colored_strips_to_plain():
    formatter.disable_color()
    plain = formatter.format_event(_event(EventKind.attack))
    formatter.enable_color()
    colored = formatter.format_event(_event(EventKind.attack))
    assert formatter.KIND_COLORS[EventKind.attack] in colored
    assert formatter.strip_ansi(colored) == plain


def test_format_assets_groups_by_faction():
    formatter.disable_color()
    assets = [a.with_status(AssetStatus.compromised) if a.id == "blue-1" else a for a in BASELINE_ASSETS]
    table = formatter.format_assets(assets)
    assert table.index("RED TEAM") < table.index("BLUE TEAM")
    blue_row = next(line for line in table.splitlines() if "blue-1" in line)
    assert "Main-DB" in blue_row
    assert "COMPROMISED" in blue_row


def test_print_events_oldest_first(capsys):
    formatter.disable_color()
    newer = _event()
    older = Event(id="x", timestamp="11:59:59", created_at_epoch=900, source="system", message="boot", kind=EventKind.info)
    formatter.print_events([newer, older])
    out = capsys.readouterr().out.splitlines()
    assert "boot" in out[0]
    assert "breach" in out[1]
