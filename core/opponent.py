"""
core/opponent.py -- Decision rules for the autonomous opponent.

Pure functions: given the opponent state, the current time, the asset list and
a random source, decide whether the opponent acts and what it does. Nothing
here mutates state; core/engine.py applies the returned move through the same
registry/log path the action processor uses.
"""

import random
from dataclasses import dataclass
from typing import Optional

from core.models import Asset, AssetStatus, EventKind, Faction, OpponentState

# Probability that the red opponent goes for a breach instead of encryption.
BREACH_PROBABILITY = 0.7


@dataclass(frozen=True)
class OpponentMove:
    """A decided opponent move.

    new_status is None for narrative-only moves.
    """

    target: Asset
    message: str
    kind: EventKind
    new_status: Optional[AssetStatus] = None


def source_name(role: Faction) -> str:
    return f"AI-{role.value.upper()}"


def is_due(state: OpponentState, now_ms: int) -> bool:
    """True when the opponent is enabled and its cooldown has fully elapsed."""
    return state.enabled and now_ms - state.last_action_at_epoch > state.cooldown_ms


def choose_move(role: Faction, assets: list[Asset], rng: random.Random) -> Optional[OpponentMove]:
    """Pick a target from the opposing faction and decide the move.

    Returns None when there is no eligible target or the chosen target's
    status calls for no action this cycle.
    """
    targets = [a for a in assets if a.faction is role.opposite()]
    if not targets:
        return None
    target = rng.choice(targets)

    if role is Faction.red:
        if rng.random() < BREACH_PROBABILITY:
            if target.status is AssetStatus.compromised:
                return None
            return OpponentMove(
                target=target,
                message=f"AI BREACH: Exploit chain landed on {target.name}. Foothold established.",
                kind=EventKind.alert,
                new_status=AssetStatus.compromised,
            )
        return OpponentMove(
            target=target,
            message=f"AI CRYPT: Payload encrypted against {target.name}. Signature evasion active.",
            kind=EventKind.attack,
        )

    if target.status is AssetStatus.compromised:
        return OpponentMove(
            target=target,
            message=f"AI DEFENSE: Intrusion purged from {target.name}. Asset restored.",
            kind=EventKind.defense,
            new_status=AssetStatus.online,
        )
    if target.status is AssetStatus.online:
        return OpponentMove(
            target=target,
            message=f"AI HARDENING: Firewall rules tightened on {target.name}.",
            kind=EventKind.defense,
        )
    return None
