"""Elm frontend generation steps (elm-graphql + elm-live)."""

from __future__ import annotations

import asyncio
from functools import partial

from railsgen.config import ProjectOptions
from railsgen.pipeline import PipelineStep, StepStatus
from railsgen.scaffolder.commands import run_required
from railsgen.scaffolder.server import ApiServer
from railsgen.scaffolder.templates import TemplateRenderer

# elm init / elm install ask for confirmation on stdin.
_ELM_YES = "y\n"


class ElmSteps:
    """Builds the steps that create ``<name>/<name>-front`` in Elm."""

    def __init__(self, options: ProjectOptions, renderer: TemplateRenderer, server: ApiServer) -> None:
        self.options = options
        self.renderer = renderer
        self.server = server

    @property
    def context(self) -> dict[str, str]:
        return {"name": self.options.name, "graphql_url": self.options.server.graphql_url}

    def steps(self) -> list[PipelineStep]:
        return [
            self.server.launch_step(),
            PipelineStep(f"Generating {self.options.name} front in elm ...", self.init_project),
            PipelineStep(
                "Installing dillonkearns/elm-graphql ...",
                partial(self.elm_install, ["dillonkearns/elm-graphql", "elm/json"]),
            ),
            PipelineStep(
                "Installing elm-athlete/athlete ...",
                partial(self.elm_install, ["elm-athlete/athlete", "elm/time", "elm/url"]),
            ),
            PipelineStep("Configuring package.json ...", self.write_package_json),
            PipelineStep(
                "Installing dillonkearns/elm-graphql CLI ...",
                partial(self.npm_dev_install, "@dillonkearns/elm-graphql"),
            ),
            PipelineStep("Installing elm-live CLI ...", partial(self.npm_dev_install, "elm-live@next")),
            PipelineStep("Generating elm with dillonkearns/elm-graphql ...", self.generate_graphql),
            PipelineStep("Writing src/Main.elm ...", self.write_main),
            self.server.stop_step(),
        ]

    async def init_project(self) -> None:
        await asyncio.to_thread(self.options.front_dir.mkdir)
        await run_required("elm init", ["elm", "init"], cwd=self.options.front_dir, input_text=_ELM_YES)

    async def elm_install(self, packages: list[str]) -> None:
        for package in packages:
            await run_required(
                "elm install",
                ["elm", "install", package],
                cwd=self.options.front_dir,
                input_text=_ELM_YES,
            )

    async def write_package_json(self) -> None:
        await self.renderer.render_to_file(
            "elm/package.json.j2", self.options.front_dir / "package.json", self.context
        )

    async def npm_dev_install(self, package: str) -> None:
        await run_required("npm install", ["npm", "install", "--save-dev", package], cwd=self.options.front_dir)

    async def generate_graphql(self) -> StepStatus:
        return await self.server.codegen(["npm", "run", "rails-graphql-api"], cwd=self.options.front_dir)

    async def write_main(self) -> None:
        await self.renderer.render_to_file(
            "elm/Main.elm.j2", self.options.front_dir / "src" / "Main.elm", self.context
        )
