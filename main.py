#!/usr/bin/env python3
"""
Cyberwar Simulation -- run operator commands and scripts from the terminal.

Runs an in-process simulation (no server needed), executes the given commands
and/or stored script, then prints the event log and the asset board.

Usage:
  python main.py help
  python main.py "patch blue-1" "breach blue-2"
  python main.py --script overclock.sh --faction red
  python main.py --script sweep.sh --wait
  python main.py --file ops.txt
  python main.py "scan 127.0.0.1 80 9000" --no-color

For the HTTP API used by the dashboard:
  uvicorn api.main:app --reload
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from core.commands import CommandRunner
from core.config import get_settings
from core.engine import Simulation
from core.formatter import disable_color, format_assets, print_events
from core.models import Faction

logger = logging.getLogger("cyberwar.cli")


def _load_file(path: str) -> list[str]:
    """Read commands from a file, one per line, # comments and blank lines ignored.

    Resolves symlinks and verifies the path is a regular file before reading.
    """
    file_path = Path(path).resolve()
    if not file_path.is_file():
        print(f"  [!] '{path}' is not a readable file.")
        return []
    try:
        lines = file_path.read_text().splitlines()
    except OSError as e:
        print(f"  [!] Could not read file '{path}': {e}")
        return []
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


async def run(
    commands: list[str],
    script: Optional[str],
    faction: Faction,
    step_delay: Optional[float],
    wait: bool,
) -> Simulation:
    """Execute commands then the script against a fresh simulation.

    With wait=True, stays alive long enough for pending patches to complete.
    """
    settings = get_settings()
    sim = Simulation(settings)
    runner = CommandRunner(sim, faction, step_delay=step_delay)

    for command in commands:
        await runner.execute(command)
    if script:
        await runner.run_script(script)

    if wait and sim.pending_patches():
        print(f"  Waiting {settings.patch_delay_seconds:.0f}s for patches to complete...")
        await asyncio.sleep(settings.patch_delay_seconds + 0.1)
    else:
        sim.cancel_pending_patches()
    return sim


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="cyberwar-sim",
        description="Red team vs blue team network simulation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py help
  python main.py "patch blue-1" "isolate red-2"
  python main.py --script overclock.sh --faction red
  python main.py --script sweep.sh --wait --no-delay
        """,
    )
    parser.add_argument(
        "commands",
        nargs="*",
        metavar="COMMAND",
        help="Operator commands to run in order (quote multi-word commands)",
    )
    parser.add_argument(
        "--file",
        metavar="PATH",
        help="Path to a text file with one command per line (# comments supported)",
    )
    parser.add_argument(
        "--script",
        metavar="NAME",
        help="Name of a stored script to run after the commands (e.g. sweep.sh)",
    )
    parser.add_argument(
        "--faction",
        choices=["red", "blue"],
        default="blue",
        help="Faction the operator plays (default: blue)",
    )
    parser.add_argument(
        "--no-delay",
        action="store_true",
        help="Skip the pause between script steps",
    )
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for pending patches to complete before printing results",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI color codes in terminal output",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show engine log messages",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Apply color preference before any output
    if args.no_color:
        disable_color()

    commands: list[str] = list(args.commands)
    if args.file:
        commands.extend(_load_file(args.file))

    if not commands and not args.script:
        parser.print_help()
        return

    print("\nCyberwar Simulation")
    print("─" * 40)
    sim = asyncio.run(
        run(
            commands,
            args.script,
            Faction(args.faction),
            0.0 if args.no_delay else None,
            args.wait,
        )
    )

    snapshot = sim.snapshot()
    print_events(snapshot["logs"])
    print()
    print(format_assets(snapshot["assets"]))
    logger.info("Finished with %d event(s)", len(snapshot["logs"]))


if __name__ == "__main__":
    main()
