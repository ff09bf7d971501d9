"""Stop whatever process is listening on a TCP port.

Listening sockets are resolved to their owning pids through psutil and
each owner is sent SIGKILL.  Matching is strictly by port; process names
and command lines are never consulted.  Failures are collected in the
returned ``ReapResult`` rather than raised, since stopping a helper server
is best-effort cleanup.
"""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field

import psutil

from railsgen.utils import print_warning


class ReapFailed(Exception):
    """A listener on the port could not be killed."""

    def __init__(self, port: int, pid: int, reason: str) -> None:
        self.port = port
        self.pid = pid
        self.reason = reason
        super().__init__(f"Could not kill pid {pid} listening on port {port}: {reason}")


@dataclass
class ReapResult:
    """Outcome of one reap attempt on a port."""

    port: int
    killed: list[int] = field(default_factory=list)
    failures: list[ReapFailed] = field(default_factory=list)
    released: bool = True

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def killed_count(self) -> int:
        return len(self.killed)


def find_listener_pids(port: int) -> set[int]:
    """Return the pids owning a LISTEN-state TCP socket on *port*."""
    try:
        connections = psutil.net_connections(kind="tcp")
    except psutil.AccessDenied:
        # macOS needs root for the system-wide table; fall back to
        # asking each process we are allowed to inspect.
        return _find_listener_pids_per_process(port)
    return {
        conn.pid
        for conn in connections
        if conn.pid and _is_listener_on(conn, port)
    }


def _find_listener_pids_per_process(port: int) -> set[int]:
    pids: set[int] = set()
    for proc in psutil.process_iter():
        try:
            connections = proc.net_connections(kind="tcp")
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if any(_is_listener_on(conn, port) for conn in connections):
            pids.add(proc.pid)
    return pids


def _is_listener_on(conn, port: int) -> bool:
    return conn.status == psutil.CONN_LISTEN and bool(conn.laddr) and conn.laddr.port == port


async def kill_listener_on_port(port: int, release_timeout: float = 5.0) -> ReapResult:
    """Kill every process listening on *port*.

    No listener is not an error: the result simply reports zero kills.

    Args:
        port: TCP port to free.
        release_timeout: Seconds to wait for killed listeners to let go of
            the port.

    Returns:
        A ``ReapResult`` listing killed pids and per-pid failures.
    """
    result = ReapResult(port=port)
    pids = await asyncio.to_thread(find_listener_pids, port)

    for pid in sorted(pids):
        if pid == os.getpid():
            result.failures.append(ReapFailed(port, pid, "refusing to kill the generator itself"))
            continue
        try:
            psutil.Process(pid).kill()
        except psutil.NoSuchProcess:
            result.failures.append(ReapFailed(port, pid, "process exited before it could be killed"))
        except psutil.AccessDenied:
            result.failures.append(ReapFailed(port, pid, "permission denied"))
        else:
            result.killed.append(pid)

    if result.killed:
        result.released = await _wait_until_released(port, set(result.killed), release_timeout)

    for failure in result.failures:
        print_warning(f"  {failure}")
    if not result.released:
        print_warning(f"  Port {port} is still in use after killing {result.killed}")

    return result


async def _wait_until_released(port: int, killed: set[int], timeout: float) -> bool:
    deadline = time.monotonic() + timeout
    while True:
        remaining = await asyncio.to_thread(find_listener_pids, port)
        if not remaining & killed:
            return True
        if time.monotonic() >= deadline:
            return False
        await asyncio.sleep(0.1)
