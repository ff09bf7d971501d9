"""Background server supervision for railsgen.

Starts a long-running server, waits for it to print a readiness marker,
and later stops it by the TCP port it listens on.

Quick usage::

    from railsgen.supervisor import ProcessSupervisor, kill_listener_on_port

    server = await ProcessSupervisor(timeout=60).launch(
        "rails s -p 3123", "Listening on tcp", port=3123, cwd=api_dir
    )
    ...  # talk to the server
    await kill_listener_on_port(server.port)
"""

from railsgen.supervisor.process import (
    ProcessSupervisor,
    ReadinessTimeout,
    StartupFailed,
    SupervisedProcess,
    SupervisorError,
)
from railsgen.supervisor.readiness import ReadinessCondition
from railsgen.supervisor.reaper import (
    ReapFailed,
    ReapResult,
    find_listener_pids,
    kill_listener_on_port,
)

__all__ = [
    "ProcessSupervisor",
    "ReadinessCondition",
    "ReadinessTimeout",
    "ReapFailed",
    "ReapResult",
    "StartupFailed",
    "SupervisedProcess",
    "SupervisorError",
    "find_listener_pids",
    "kill_listener_on_port",
]
