"""
core/models.py -- Domain types for the simulation kernel.

Plain enums and frozen dataclasses with no I/O. Status changes produce new
Asset values (see Asset.with_status) so the registry is the only place that
holds the current value of an asset; callers always get a snapshot, never an
alias into registry internals.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class Faction(str, Enum):
    red = "red"
    blue = "blue"

    def opposite(self) -> "Faction":
        return Faction.blue if self is Faction.red else Faction.red


class AssetKind(str, Enum):
    server = "server"
    proxy = "proxy"
    workstation = "workstation"
    firewall = "firewall"


class AssetStatus(str, Enum):
    online = "online"
    offline = "offline"
    compromised = "compromised"
    patching = "patching"


class EventKind(str, Enum):
    info = "info"
    attack = "attack"
    defense = "defense"
    alert = "alert"


class PortState(str, Enum):
    open = "open"
    closed = "closed"


class Action(str, Enum):
    """Tactical actions an operator can apply to a single asset.

    UNKNOWN is a real variant, not an error: an unrecognised action name still
    narrates the "initiated" event and then does nothing else.
    """

    PATCH = "PATCH"
    ISOLATE = "ISOLATE"
    ROTATE_IP = "ROTATE_IP"
    ENCRYPT_PAYLOAD = "ENCRYPT_PAYLOAD"
    BREACH = "BREACH"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, name: str) -> "Action":
        """Map a wire action name to a variant. Never raises.

        Accepts the dashboard's spaced names ("PATCH CVE", "ROTATE IP") as well
        as the canonical underscore form, case-insensitively.
        """
        key = str(name).strip().upper().replace("-", "_").replace(" ", "_")
        key = _ACTION_ALIASES.get(key, key)
        try:
            action = cls(key)
        except ValueError:
            return cls.UNKNOWN
        return action

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


_ACTION_ALIASES = {
    "PATCH_CVE": "PATCH",
}


@dataclass(frozen=True)
class Asset:
    """A simulated machine. id and faction never change after creation."""

    id: str
    name: str
    kind: AssetKind
    status: AssetStatus
    faction: Faction

    def with_status(self, status: AssetStatus) -> "Asset":
        return replace(self, status=status)


@dataclass(frozen=True)
class Event:
    """One narrated entry in the event log.

    created_at_epoch is in milliseconds and is what ordering and filtering use;
    timestamp is display-only.
    """

    id: str
    timestamp: str
    created_at_epoch: int
    source: str
    message: str
    kind: EventKind


@dataclass
class OpponentState:
    """Autonomous opponent settings and its cooldown clock (epoch millis)."""

    enabled: bool = False
    role: Faction = Faction.red
    cooldown_ms: int = 5000
    last_action_at_epoch: int = 0

    def __post_init__(self) -> None:
        if self.cooldown_ms <= 0:
            raise ValueError("cooldown_ms must be greater than zero")


@dataclass(frozen=True)
class ProbeResult:
    port: int
    state: PortState

    @property
    def is_open(self) -> bool:
        return self.state is PortState.open


# ---------------------------------------------------------------------------
# Baseline content
# ---------------------------------------------------------------------------

BASELINE_ASSETS: tuple[Asset, ...] = (
    Asset("red-1", "Redirector-7", AssetKind.proxy, AssetStatus.online, Faction.red),
    Asset("red-2", "Staging-Alpha", AssetKind.server, AssetStatus.online, Faction.red),
    Asset("red-3", "C2-Primary", AssetKind.server, AssetStatus.online, Faction.red),
    Asset("blue-1", "Main-DB", AssetKind.server, AssetStatus.online, Faction.blue),
    Asset("blue-2", "Auth-Gateway", AssetKind.firewall, AssetStatus.online, Faction.blue),
    Asset("blue-3", "Sentinel-API", AssetKind.server, AssetStatus.online, Faction.blue),
)

BASELINE_SCRIPTS: dict[str, tuple[str, ...]] = {
    "sweep.sh": ("scan 127.0.0.1", "patch blue-1", "patch blue-2", "patch blue-3"),
    "overclock.sh": ("rotate ip", "encrypt payload", "breach blue-1"),
}

# Candidate ports for the reachability probe. Results keep this order.
SCAN_PORTS: tuple[int, ...] = (80, 443, 3000, 3001, 5173, 8080)

DEFAULT_SCAN_TARGET = "127.0.0.1"
DEFAULT_SCAN_START = 80
DEFAULT_SCAN_END = 5180
# The terminal "scan" command reaches further than the HTTP default.
COMMAND_SCAN_END = 8080


def parse_faction(value: Optional[str], default: Faction = Faction.blue) -> Faction:
    """Lenient faction parse for wire input; anything that is not red is blue."""
    if value is None:
        return default
    return Faction.red if str(value).strip().lower() == "red" else Faction.blue
