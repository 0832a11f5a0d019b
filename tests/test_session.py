"""Unit tests for core/session.py -- registry, event log, script store, reset.

Covers:
- Event log cap (100, oldest dropped first, newest first ordering)
- created_at_epoch never decreases even when the clock goes backwards
- Script store validation: blank names, non-sequence commands, bare strings
- Session.reset(): fresh baseline assets, empty log, scripts by value, AI off
"""

import pytest

from core.config import Settings
from core.models import BASELINE_ASSETS, AssetStatus, EventKind, Faction
from core.session import (
    AssetNotFoundError,
    AssetRegistry,
    EventLog,
    InvalidScriptError,
    ScriptStore,
    Session,
)

# ---------------------------------------------------------------------------
# AssetRegistry
# ---------------------------------------------------------------------------


class TestAssetRegistry:
    def test_baseline_has_six_online_assets(self):
        registry = AssetRegistry.from_baseline()
        assert len(registry) == 6
        assert [a.id for a in registry.all()] == ["red-1", "red-2", "red-3", "blue-1", "blue-2", "blue-3"]
        assert all(a.status is AssetStatus.online for a in registry.all())

    def test_unknown_id_raises_not_found(self):
        registry = AssetRegistry.from_baseline()
        with pytest.raises(AssetNotFoundError, match="ghost-9"):
            registry.get("ghost-9")
        assert registry.find("ghost-9") is None

    def test_set_status_returns_new_value_without_touching_old_snapshot(self):
        registry = AssetRegistry.from_baseline()
        before = registry.get("blue-1")
        after = registry.set_status("blue-1", AssetStatus.compromised)
        assert before.status is AssetStatus.online
        assert after.status is AssetStatus.compromised
        assert registry.get("blue-1").status is AssetStatus.compromised

    def test_by_faction(self):
        registry = AssetRegistry.from_baseline()
        assert {a.id for a in registry.by_faction(Faction.red)} == {"red-1", "red-2", "red-3"}
        assert {a.id for a in registry.by_faction(Faction.blue)} == {"blue-1", "blue-2", "blue-3"}


# ---------------------------------------------------------------------------
# EventLog
# ---------------------------------------------------------------------------


class TestEventLog:
    def test_newest_first(self):
        log = EventLog(clock=lambda: 1000)
        log.append("system", "first", EventKind.info)
        log.append("system", "second", EventKind.alert)
        entries = log.entries()
        assert [e.message for e in entries] == ["second", "first"]
        assert entries[0].kind is EventKind.alert

    def test_capped_at_100_oldest_dropped(self):
        log = EventLog(limit=100, clock=lambda: 1000)
        for i in range(150):
            log.append("system", f"event {i}")
        entries = log.entries()
        assert len(entries) == 100
        assert entries[0].message == "event 149"
        assert entries[-1].message == "event 50"

    def test_created_at_epoch_never_decreases(self):
        ticks = iter([5000, 6000, 4000, 7000])
        log = EventLog(clock=lambda: next(ticks))
        for _ in range(4):
            log.append("system", "tick")
        epochs = [e.created_at_epoch for e in reversed(log.entries())]
        assert epochs == [5000, 6000, 6000, 7000]

    def test_event_ids_unique(self):
        log = EventLog(clock=lambda: 1000)
        ids = {log.append("system", "x").id for _ in range(50)}
        assert len(ids) == 50

    def test_zero_limit_rejected(self):
        with pytest.raises(ValueError):
            EventLog(limit=0)


# ---------------------------------------------------------------------------
# ScriptStore
# ---------------------------------------------------------------------------


class TestScriptStore:
    def test_baseline_scripts(self):
        store = ScriptStore.from_baseline()
        assert set(store.list()) == {"sweep.sh", "overclock.sh"}
        assert store.get("overclock.sh") == ["rotate ip", "encrypt payload", "breach blue-1"]

    def test_save_overwrites(self):
        store = ScriptStore.from_baseline()
        store.save("sweep.sh", ["scan"])
        assert store.get("sweep.sh") == ["scan"]
        assert len(store) == 2

    @pytest.mark.parametrize("name", ["", "   ", None, 42])
    def test_invalid_name_rejected(self, name):
        store = ScriptStore.from_baseline()
        before = store.list()
        with pytest.raises(InvalidScriptError):
            store.save(name, ["scan"])
        assert store.list() == before

    @pytest.mark.parametrize("commands", [None, "scan 127.0.0.1", {"a": 1}, 7, ["ok", 3]])
    def test_invalid_commands_rejected(self, commands):
        store = ScriptStore.from_baseline()
        before = store.list()
        with pytest.raises(InvalidScriptError):
            store.save("bad.sh", commands)
        assert store.list() == before

    @pytest.mark.parametrize("name", ["  ops.sh ", "ops.sh\n", " sweep.sh"])
    def test_surrounding_whitespace_rejected_not_renamed(self, name):
        store = ScriptStore.from_baseline()
        before = store.list()
        with pytest.raises(InvalidScriptError):
            store.save(name, ["breach blue-1"])
        assert store.list() == before

    def test_inner_whitespace_kept(self):
        store = ScriptStore.from_baseline()
        assert store.save("my ops.sh", ["scan"]) == "my ops.sh"
        assert store.get("my ops.sh") == ["scan"]

    def test_list_returns_copies(self):
        store = ScriptStore.from_baseline()
        store.list()["sweep.sh"].append("breach blue-1")
        assert "breach blue-1" not in store.get("sweep.sh")


# ---------------------------------------------------------------------------
# Session.reset
# ---------------------------------------------------------------------------


class TestSessionReset:
    def test_reset_restores_baseline_and_keeps_scripts(self):
        session = Session.create(Settings())
        session.assets.set_status("blue-1", AssetStatus.compromised)
        session.assets.set_status("red-2", AssetStatus.offline)
        session.events.append("system", "noise")
        session.scripts.save("custom.sh", ["breach blue-3"])
        session.opponent.enabled = True
        session.opponent.role = Faction.blue

        fresh = session.reset()

        assert fresh is not session
        for baseline, asset in zip(BASELINE_ASSETS, fresh.assets.all()):
            assert (asset.id, asset.name, asset.kind, asset.faction) == (
                baseline.id,
                baseline.name,
                baseline.kind,
                baseline.faction,
            )
            assert asset.status is AssetStatus.online
        assert len(fresh.events) == 0
        assert fresh.scripts.list() == session.scripts.list()
        assert fresh.opponent.enabled is False
        assert fresh.opponent.role is Faction.blue

    def test_reset_scripts_are_by_value(self):
        session = Session.create(Settings())
        fresh = session.reset()
        session.scripts.save("late.sh", ["scan"])
        assert "late.sh" not in fresh.scripts
