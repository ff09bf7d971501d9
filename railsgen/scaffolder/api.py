"""Rails GraphQL API generation steps."""

from __future__ import annotations

import asyncio

from railsgen.config import ProjectOptions
from railsgen.pipeline import (
    DecisionGate,
    DecisionOutcome,
    PipelineStep,
    StepFailed,
    StepPipeline,
    StepStatus,
)
from railsgen.scaffolder.commands import failure_reason, run_required, run_tolerated
from railsgen.scaffolder.templates import TemplateRenderer
from railsgen.utils import console, run_command

# Gems added to the generated Gemfile; only the last one triggers an install.
_GEMS: list[tuple[str, list[str]]] = [
    ("graphql", ["--skip-install"]),
    ("graphql-rails-api", ["--skip-install"]),
    ("rack-cors", []),
]


class ApiSteps:
    """Builds the steps that create ``<name>/<name>-api``."""

    def __init__(
        self,
        options: ProjectOptions,
        gate: DecisionGate,
        pipeline: StepPipeline,
        renderer: TemplateRenderer,
    ) -> None:
        self.options = options
        self.gate = gate
        self.pipeline = pipeline
        self.renderer = renderer

    def steps(self) -> list[PipelineStep]:
        flags = "".join(f" {flag}" for flag in self.options.install_flags)
        return [
            PipelineStep(f"Generating {self.options.name} api ...", self.generate_api),
            PipelineStep(
                "Adding graphql, graphql-rails-api and rack-cors to the Gemfile ...",
                self.add_gems,
            ),
            PipelineStep("Creating database ...", self.create_database),
            PipelineStep(f"Installing graphql-rails-api{flags} ...", self.install_graphql_rails_api),
            PipelineStep("Installing Webpacker ...", self.install_webpacker),
            PipelineStep("Configuring cors (Cross-Origin Resource Sharing) ...", self.configure_cors),
        ]

    # ------------------------------------------------------------------
    # Step actions
    # ------------------------------------------------------------------

    async def generate_api(self) -> None:
        # No exist_ok: the name was accepted because the directory did not exist.
        await asyncio.to_thread(self.options.project_dir.mkdir, parents=True)
        await run_required(
            "rails new",
            ["rails", "new", f"{self.options.name}-api", "--api", "--database=postgresql"],
            cwd=self.options.project_dir,
        )

    async def add_gems(self) -> None:
        for gem, extra in _GEMS:
            await run_required("bundle add", ["bundle", "add", gem, *extra], cwd=self.options.api_dir)

    async def create_database(self) -> StepStatus | None:
        """Create the databases, asking before recreating existing ones."""
        returncode, stdout, stderr = await run_command(["rails", "db:create"], cwd=self.options.api_dir)
        if "already exists" not in f"{stdout}\n{stderr}":
            if returncode != 0:
                raise StepFailed(
                    "rails db:create",
                    failure_reason(["rails", "db:create"], returncode, stdout, stderr),
                )
            return None

        db_prefix = f"{self.options.name}_api"
        console.print(
            f"\nDatabases '{db_prefix}_development' and '{db_prefix}_test' already exist."
        )
        outcome = await self.gate.ask(
            "Do you want to drop and recreate the databases? [y/n/a]",
            hint="Type Y to drop and recreate the DB, N to skip and continue the app generation, A to abort",
        )
        if outcome is DecisionOutcome.CONFIRMED:
            return await self.pipeline.run_step(
                PipelineStep(
                    f"Dropping and recreating '{db_prefix}_development' and '{db_prefix}_test'",
                    self._recreate_database,
                )
            )
        if outcome is DecisionOutcome.DECLINED:
            return StepStatus.SKIPPED
        return StepStatus.ABORTED

    async def _recreate_database(self) -> None:
        await run_required("rails db:drop", ["rails", "db:drop"], cwd=self.options.api_dir)
        await run_required("rails db:create", ["rails", "db:create"], cwd=self.options.api_dir)

    async def install_graphql_rails_api(self) -> None:
        await self._stop_spring()
        await run_required(
            "graphql_rails_api:install",
            ["rails", "generate", "graphql_rails_api:install", *self.options.install_flags],
            cwd=self.options.api_dir,
        )

    async def install_webpacker(self) -> StepStatus:
        # Recent Rails releases ship without Webpacker; a failure here is not fatal.
        await self._stop_spring()
        return await run_tolerated(["rails", "webpacker:install"], cwd=self.options.api_dir)

    async def configure_cors(self) -> None:
        await self.renderer.render_to_file(
            "api/cors.rb.j2",
            self.options.api_dir / "config" / "initializers" / "cors.rb",
            {"name": self.options.name},
            append=True,
        )

    async def _stop_spring(self) -> None:
        # Spring may not be installed at all; its exit code is irrelevant.
        await run_command("spring stop", cwd=self.options.api_dir)
