"""Tests for core/probe.py -- TCP reachability probe.

Uses real loopback sockets: a listening asyncio server for the open case and a
bound-then-closed port for the refused case. No mocking of asyncio internals.
"""

import asyncio
import socket

import pytest

from core.models import SCAN_PORTS, PortState
from core.probe import check_port, ports_in_range, probe


def _free_port() -> int:
    """Return a loopback port that nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_ports_in_range_keeps_candidate_order():
    assert ports_in_range([8080, 80, 3001, 3000], 80, 5000) == [80, 3001, 3000]
    assert ports_in_range(SCAN_PORTS, 3000, 6000) == [3000, 3001, 5173]
    assert ports_in_range(SCAN_PORTS, 9000, 9999) == []


def test_open_port_detected():
    async def scenario():
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        async with server:
            return await check_port("127.0.0.1", port, timeout=1.0)

    result = asyncio.run(scenario())
    assert result.state is PortState.open
    assert result.is_open


def test_closed_port_is_a_result_not_an_error():
    port = _free_port()
    result = asyncio.run(check_port("127.0.0.1", port, timeout=0.5))
    assert result.port == port
    assert result.state is PortState.closed


def test_unresolvable_host_reports_closed():
    result = asyncio.run(check_port("no-such-host.invalid", 80, timeout=0.5))
    assert result.state is PortState.closed


def test_probe_filters_and_orders_by_candidates():
    results = asyncio.run(probe("127.0.0.1", [80, 443, 3000, 3001, 5173, 8080], 3000, 6000, timeout=0.2))
    assert [r.port for r in results] == [3000, 3001, 5173]
    assert all(r.state in (PortState.open, PortState.closed) for r in results)


def test_probe_mixed_open_and_closed():
    closed_port = _free_port()

    async def scenario():
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        open_port = server.sockets[0].getsockname()[1]
        async with server:
            results = await probe("127.0.0.1", [open_port, closed_port], 0, 65535, timeout=0.5)
        return open_port, results

    open_port, results = asyncio.run(scenario())
    assert [(r.port, r.state) for r in results] == [
        (open_port, PortState.open),
        (closed_port, PortState.closed),
    ]


@pytest.mark.parametrize("host", ["a" * 64 + ".example", "..", "bad\x00host"])
def test_unencodable_host_reports_closed(host):
    result = asyncio.run(check_port(host, 80, timeout=0.5))
    assert result.state is PortState.closed


def test_probe_with_unencodable_host_finishes():
    results = asyncio.run(probe("a" * 64 + ".example", SCAN_PORTS, 80, 443, timeout=0.2))
    assert [(r.port, r.state) for r in results] == [(80, PortState.closed), (443, PortState.closed)]
