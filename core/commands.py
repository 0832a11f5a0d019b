"""
core/commands.py -- Operator command interpreter and script runner.

Commands are the short terminal lines an operator types ("patch blue-1",
"scan 127.0.0.1 80 8080") and the lines stored in scripts. Every command is
echoed to the event log as a user event before it runs, and every failure --
bad usage, unknown asset, unknown command -- is narrated as an alert event
rather than raised, so a script keeps going past a bad line.

Scripts replay their non-blank commands through execute() with a fixed pause
between steps. A script cannot start another script.

Usage:
    runner = CommandRunner(sim, Faction.blue)
    await runner.execute("patch blue-1")
    await runner.run_script("sweep.sh")
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from core.engine import Simulation
from core.models import (
    COMMAND_SCAN_END,
    DEFAULT_SCAN_START,
    DEFAULT_SCAN_TARGET,
    Action,
    EventKind,
    Faction,
)
from core.session import AssetNotFoundError

logger = logging.getLogger("cyberwar.commands")

HELP_LINES = (
    "AVAILABLE COMMANDS:",
    "  scan [target] [start] [end] - Initiate port scan",
    "  patch [id]                  - Harden an asset",
    "  isolate [id]                - Disconnect an asset",
    "  breach [id]                 - (Debug) Force compromise",
    "  rotate [ip|id]              - Rotate IP space",
    "  encrypt [payload|id]        - Obfuscate payload",
    "  scripts                     - List available scripts",
    "  run [script_name]           - Execute an automation script",
    "  reset                       - Wipe simulation state",
    "  clear                       - (Local) Clear screen",
)

# Commands that take a single asset id argument.
_TARGETED = {
    "patch": Action.PATCH,
    "isolate": Action.ISOLATE,
    "breach": Action.BREACH,
}

# Narrative commands: "rotate ip" / "encrypt payload" act on the operator's own
# first asset; "rotate <id>" / "encrypt <id>" act on the named asset.
_NARRATIVE = {
    "rotate": (Action.ROTATE_IP, "ip"),
    "encrypt": (Action.ENCRYPT_PAYLOAD, "payload"),
}


class CommandRunner:
    """Interprets operator command lines against a Simulation.

    sleep is injectable so tests can run scripts without real pauses.
    """

    def __init__(
        self,
        simulation: Simulation,
        faction: Faction = Faction.blue,
        step_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.simulation = simulation
        self.faction = faction
        self.step_delay = simulation.settings.script_step_delay_seconds if step_delay is None else step_delay
        self._sleep = sleep
        self._running_script: Optional[str] = None

    def _alert(self, message: str) -> None:
        self.simulation.record(message, "error", EventKind.alert)

    def _info(self, message: str) -> None:
        self.simulation.record(message, "system", EventKind.info)

    async def execute(self, line: str) -> bool:
        """Run one command line. Returns False when the command failed.

        Blank lines are ignored and return True.
        """
        if not line.strip():
            return True
        self.simulation.record(f"> {line}", "user", EventKind.info)

        args = line.strip().lower().split()
        command, rest = args[0], args[1:]

        if command == "help":
            for help_line in HELP_LINES:
                self._info(help_line)
            return True

        if command == "scan":
            return await self._scan(rest)

        if command in _TARGETED:
            if not rest:
                self._alert(f"Usage: {command} [asset_id]")
                return False
            return self._act(rest[0], _TARGETED[command])

        if command in _NARRATIVE:
            action, keyword = _NARRATIVE[command]
            if not rest or rest[0] == keyword:
                own = self.simulation.list_assets(self.faction)
                if not own:
                    self._alert(f"No {self.faction.value} assets available.")
                    return False
                return self._act(own[0].id, action)
            return self._act(rest[0], action)

        if command == "scripts":
            self._info("AVAILABLE SCRIPTS:")
            for name, commands in self.simulation.list_scripts().items():
                self._info(f"  {name} ({len(commands)} cmds)")
            return True

        if command == "run":
            if not rest:
                self._alert("Usage: run [script_name]")
                return False
            return await self.run_script(rest[0])

        if command == "reset":
            self.simulation.reset()
            return True

        if command == "clear":
            # Clearing the screen is a display concern; the log is untouched.
            return True

        self._alert(f"Unknown command: {command}. Type 'help' for options.")
        return False

    def _act(self, asset_id: str, action: Action) -> bool:
        try:
            self.simulation.apply_action(asset_id, action, self.faction)
        except AssetNotFoundError:
            self._alert(f"Asset not found: {asset_id}")
            return False
        return True

    async def _scan(self, rest: list[str]) -> bool:
        target = rest[0] if rest else DEFAULT_SCAN_TARGET
        try:
            start = int(rest[1]) if len(rest) > 1 else DEFAULT_SCAN_START
            end = int(rest[2]) if len(rest) > 2 else COMMAND_SCAN_END
        except ValueError:
            self._alert("Usage: scan [target] [start] [end]")
            return False
        await self.simulation.scan(target, start, end)
        return True

    async def run_script(self, name: str) -> bool:
        """Replay a stored script, pausing step_delay seconds before each command."""
        if self._running_script is not None:
            self._alert(f"Script {self._running_script} is already running; nested run refused.")
            return False

        commands = self.simulation.get_script(name)
        if commands is None:
            self._alert(f"Script not found: {name}")
            return False

        self._running_script = name
        logger.info("Running script %s (%d commands)", name, len(commands))
        try:
            self._info(f"[AUTOMATOR] Initiating sequence: {name}")
            for command in commands:
                if not command.strip():
                    continue
                await self._sleep(self.step_delay)
                await self.execute(command)
            self._info("[AUTOMATOR] Sequence complete.")
        finally:
            self._running_script = None
        return True
