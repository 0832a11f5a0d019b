"""
core/probe.py -- Best-effort TCP reachability probe.

This is a timing/reachability check against a short fixed candidate list, not
a scanner. Each port gets one connect attempt bounded by a timeout. A refused,
unreachable or slow port is reported as closed -- that is a normal result,
never an exception -- so a probe of N ports always finishes in roughly
N * timeout seconds at worst.
"""

import asyncio
import logging
from collections.abc import Iterable

from core.models import PortState, ProbeResult

logger = logging.getLogger("cyberwar.probe")


async def check_port(host: str, port: int, timeout: float = 0.5) -> ProbeResult:
    """Attempt one TCP connection to host:port and report open or closed."""
    try:
        _reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except (OSError, ValueError, asyncio.TimeoutError) as e:
        # Unencodable hostnames (idna UnicodeError, NUL bytes) raise ValueError.
        logger.debug("Port %s:%d closed (%s)", host, port, type(e).__name__)
        return ProbeResult(port=port, state=PortState.closed)

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        # The peer may reset the connection while we hang up; the port was open.
        pass
    return ProbeResult(port=port, state=PortState.open)


def ports_in_range(candidate_ports: Iterable[int], range_low: int, range_high: int) -> list[int]:
    """Filter candidates to [range_low, range_high] inclusive, keeping candidate order."""
    return [p for p in candidate_ports if range_low <= p <= range_high]


async def probe(
    host: str,
    candidate_ports: Iterable[int],
    range_low: int,
    range_high: int,
    timeout: float = 0.5,
) -> list[ProbeResult]:
    """Probe each in-range candidate port sequentially, in candidate order.

    Result order matches the candidate list, not numeric port order.
    """
    results: list[ProbeResult] = []
    for port in ports_in_range(candidate_ports, range_low, range_high):
        results.append(await check_port(host, port, timeout))
    return results
