"""railsgen wizard -- interactive GraphQL Rails app generator.

Asks for whatever the command line did not supply, then provisions:

1. ``<name>/<name>-api``   -- Rails API with graphql-rails-api, rack-cors
   and a PostgreSQL database.
2. ``<name>/<name>-front`` -- optional Elm or React + TypeScript frontend
   whose GraphQL client code is generated from the running API.

Usage::

    railsgen --name blog --front elm
    railsgen -n shop -p ~/code --no-front --no-users
    python -m railsgen.wizard --front ts --server-port 3200
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from rich.panel import Panel

from railsgen.config import FRONT_ALIASES, FrontKind, ProjectOptions, ServerConfig
from railsgen.pipeline import (
    DecisionGate,
    DecisionOutcome,
    PipelineOutcome,
    PipelineResult,
    PipelineStep,
    StepPipeline,
    StepStatus,
)
from railsgen.scaffolder import ApiServer, ApiSteps, ElmSteps, TemplateRenderer, TypeScriptSteps
from railsgen.supervisor import ProcessSupervisor
from railsgen.utils import (
    check_port_available,
    clear_console,
    console,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    to_valid_file_name,
)

FRONT_CHOICES: dict[str, FrontKind | DecisionOutcome] = {
    **FRONT_ALIASES,
    "s": DecisionOutcome.DECLINED,
    "skip": DecisionOutcome.DECLINED,
    "a": DecisionOutcome.ABORTED,
    "abort": DecisionOutcome.ABORTED,
}

ABORT_MESSAGE = "...Aborting generation..."


# ---------------------------------------------------------------------------
# Prompt phase
# ---------------------------------------------------------------------------


async def ask_project_name(gate: DecisionGate, path: Path, name: str | None = None) -> str | None:
    """Settle on a project name whose directory does not exist yet.

    Returns ``None`` if the operator aborted.
    """
    while True:
        if not name:
            name = await gate.read_line("What is the name of your project? ")
            if name is None:
                return None
        name = to_valid_file_name(name)
        if not name:
            print_warning("The project name needs at least one letter or digit.")
            continue
        if (path / name).exists():
            clear_console()
            console.print(f"The directory {name} already exists")
            console.print(f"in : {path}")
            name = None
            continue

        outcome = await gate.ask(f"The directory created will be {name}\nIs that what you want?")
        if outcome is DecisionOutcome.CONFIRMED:
            return name
        if outcome is DecisionOutcome.ABORTED:
            return None
        clear_console()
        console.print(f"Old name : {name}")
        name = None


async def ask_front(gate: DecisionGate) -> FrontKind | DecisionOutcome:
    """Ask which frontend to generate.

    Returns a ``FrontKind``, ``DecisionOutcome.DECLINED`` to skip the
    frontend, or ``DecisionOutcome.ABORTED``.
    """
    return await gate.choose(
        "What is the frontend of your project?",
        FRONT_CHOICES,
        on_eof=DecisionOutcome.ABORTED,
        hint='Only "elm" and "ts" are supported now, otherwise type "s" to skip '
        'the front generation or "a" to abort',
    )


async def collect_options(
    args: argparse.Namespace,
    gate: DecisionGate,
    server: ServerConfig,
) -> ProjectOptions | None:
    """Build the run's frozen options, or ``None`` if the operator aborted."""
    path = Path(args.path).expanduser() if args.path else Path.cwd()

    clear_console()
    name = await ask_project_name(gate, path, args.name)
    if name is None:
        return None

    front: FrontKind | None = FRONT_ALIASES[args.front] if args.front else None
    if not args.no_front and front is None:
        clear_console()
        choice = await ask_front(gate)
        if choice is DecisionOutcome.ABORTED:
            return None
        if isinstance(choice, FrontKind):
            front = choice
    if args.no_front:
        front = None

    return ProjectOptions(
        name=name,
        path=path,
        front=front,
        pg_uuid=not args.no_pg_uuid,
        action_cable_subs=not args.no_action_cable_subs,
        apollo_compatibility=not args.no_apollo_compatibility,
        users=not args.no_users,
        server=server,
    )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def build_steps(
    options: ProjectOptions,
    gate: DecisionGate,
    pipeline: StepPipeline,
    server: ApiServer,
    renderer: TemplateRenderer | None = None,
) -> list[PipelineStep]:
    """The full, ordered step list for *options*."""
    renderer = renderer or TemplateRenderer()
    steps = ApiSteps(options, gate, pipeline, renderer).steps()
    if options.front is FrontKind.ELM:
        steps += ElmSteps(options, renderer, server).steps()
    elif options.front is FrontKind.TYPESCRIPT:
        steps += TypeScriptSteps(options, renderer, server).steps()
    return steps


async def generate(
    options: ProjectOptions,
    gate: DecisionGate,
    supervisor: ProcessSupervisor | None = None,
) -> PipelineResult:
    """Run every generation step for *options*."""
    console.print(
        Panel(
            f"[bold bright_cyan]GraphQL Rails app generator[/bold bright_cyan]\n"
            f"Project : {options.name}\n"
            f"Path    : {options.project_dir.resolve()}\n"
            f"Front   : {options.front.value if options.front else 'none'}",
            title="[bold]Generation Start[/bold]",
            border_style="bright_cyan",
        )
    )

    if options.front is not None and not await check_port_available(options.server.port):
        print_warning(
            f"Port {options.server.port} is already in use; the API server may fail to start."
        )

    pipeline = StepPipeline()
    server = ApiServer(options, supervisor)
    try:
        return await pipeline.run(build_steps(options, gate, pipeline, server))
    finally:
        # A run that stopped between launch and stop must not leave the server behind.
        if server.available:
            await server.stop()


def print_next_steps(options: ProjectOptions, result: PipelineResult) -> None:
    """Tell the operator how to start what was generated."""
    attention = {
        record.label: record.status.value
        for record in result.records
        if record.status is not StepStatus.SUCCEEDED
    }
    if attention:
        print_summary_table(attention, title="Steps needing attention")

    print_success("\nSuccessful installation!")
    api = f"[yellow]  rails s[/yellow][green] in {options.name}-api[/green]"
    if options.front is None:
        print_success("You can now, run your rails server:")
        console.print(api)
        return

    front_cmd = "npm run live" if options.front is FrontKind.ELM else "npm start"
    print_success("You can now, run your rails server and front server:")
    console.print(api)
    console.print(f"[yellow]  {front_cmd}[/yellow][green] in {options.name}-front[/green]")


async def run_wizard(
    args: argparse.Namespace,
    server: ServerConfig,
    gate: DecisionGate | None = None,
) -> int:
    """Prompt, generate and report.  Returns the process exit code."""
    gate = gate or DecisionGate()
    options = await collect_options(args, gate, server)
    if options is None:
        console.print(ABORT_MESSAGE)
        return 1

    clear_console()
    console.print(f"{options.front.value} chosen" if options.front else "No front chosen")

    result = await generate(options, gate)
    if result.outcome is PipelineOutcome.ABORTED:
        console.print(ABORT_MESSAGE)
        return 1
    if not result.succeeded:
        print_error(f"Generation stopped ({result.outcome.value}): {result.error}")
        print_warning(f"Partially generated files remain in {options.project_dir}")
        return 1

    print_next_steps(options, result)
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="railsgen",
        description="Generate a Rails GraphQL API with an optional Elm or React frontend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  railsgen --name blog --front elm\n"
            "  railsgen -n shop -p ~/code --no-front\n"
        ),
    )
    parser.add_argument("-n", "--name", help="The name of your project")
    parser.add_argument("-p", "--path", help="The path of your project (created if missing)")
    parser.add_argument(
        "-f", "--front",
        choices=sorted(FRONT_ALIASES),
        help="The front of your project",
    )
    parser.add_argument("--no-front", action="store_true", help="Disables front generation")
    parser.add_argument("--no-pg-uuid", action="store_true", help="Disables PostgreSQL uuid extension")
    parser.add_argument(
        "--no-action-cable-subs",
        action="store_true",
        help="Disables ActionCable websocket subscriptions",
    )
    parser.add_argument(
        "--no-apollo-compatibility",
        action="store_true",
        help="Disables Apollo compatibility",
    )
    parser.add_argument("--no-users", action="store_true", help="Runs the script with no user migrations")
    parser.add_argument("--server-port", type=int, default=None, help="Port of the API server used for code generation")
    parser.add_argument("--ready-marker", default=None, help="Output line marking the API server as ready")
    parser.add_argument("--ready-timeout", type=float, default=None, help="Seconds to wait for the ready marker")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``railsgen``."""
    args = build_parser().parse_args(argv)

    try:
        server = ServerConfig.from_env(
            port=args.server_port,
            ready_marker=args.ready_marker,
            ready_timeout=args.ready_timeout,
        )
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid server settings: {exc}")
        sys.exit(2)

    if args.path:
        Path(args.path).expanduser().mkdir(parents=True, exist_ok=True)

    try:
        exit_code = asyncio.run(run_wizard(args, server))
    except KeyboardInterrupt:
        console.print(f"\n{ABORT_MESSAGE}")
        sys.exit(130)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
