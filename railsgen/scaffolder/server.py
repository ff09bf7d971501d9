"""Running the generated API while frontend code is generated from it.

The frontend generators introspect the live GraphQL schema, so the API
server is started before them and stopped right after.  A server that
fails to start does not stop the run: the code-generation steps are
skipped and the stop step still frees the port.
"""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape

from railsgen.config import ProjectOptions
from railsgen.pipeline import PipelineStep, StepStatus
from railsgen.scaffolder.commands import run_tolerated
from railsgen.supervisor import (
    ProcessSupervisor,
    SupervisedProcess,
    SupervisorError,
    kill_listener_on_port,
)
from railsgen.utils import console, print_error, print_warning, wait_for_endpoint

# Seconds to wait for the GraphQL endpoint once the server says it is listening.
ENDPOINT_TIMEOUT = 15.0


class ApiServer:
    """Owns the background API server between launch and stop."""

    def __init__(self, options: ProjectOptions, supervisor: ProcessSupervisor | None = None) -> None:
        self.options = options
        self.config = options.server
        self.supervisor = supervisor or ProcessSupervisor(timeout=self.config.ready_timeout)
        self.process: SupervisedProcess | None = None

    @property
    def available(self) -> bool:
        return self.process is not None

    def launch_step(self) -> PipelineStep:
        return PipelineStep(f"Launch rails server on port {self.config.port} ...", self.launch)

    def stop_step(self) -> PipelineStep:
        return PipelineStep(f"Stopping rails server on port {self.config.port} ...", self.stop)

    async def launch(self) -> StepStatus | None:
        try:
            self.process = await self.supervisor.launch(
                self.config.start_command,
                self.config.ready_marker,
                port=self.config.port,
                cwd=self.options.api_dir,
            )
        except SupervisorError as exc:
            print_error(f"    {escape(str(exc))}")
            for line in exc.output_tail:
                console.print(f"    [dim]{escape(line)}[/dim]")
            return StepStatus.FAILED

        if not await wait_for_endpoint(self.config.graphql_url, timeout=ENDPOINT_TIMEOUT):
            print_warning(f"    {self.config.graphql_url} is not answering yet")
        return None

    async def codegen(self, cmd: str | list[str], cwd: Path) -> StepStatus:
        """Run a code generator that needs the live API."""
        if not self.available:
            print_warning("    API server is not running; skipping code generation")
            return StepStatus.SKIPPED
        return await run_tolerated(cmd, cwd=cwd)

    async def stop(self) -> StepStatus | None:
        result = await kill_listener_on_port(self.config.port)
        self.process = None
        if not result.ok or not result.released:
            return StepStatus.FAILED
        return None
