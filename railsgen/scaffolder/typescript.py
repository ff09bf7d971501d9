"""React + TypeScript frontend generation steps (webpack + graphql-codegen)."""

from __future__ import annotations

import asyncio
import json
from functools import partial
from pathlib import Path

import yaml

from railsgen.config import ProjectOptions
from railsgen.pipeline import PipelineStep, StepStatus
from railsgen.scaffolder.commands import run_required
from railsgen.scaffolder.server import ApiServer
from railsgen.scaffolder.templates import TemplateRenderer

# (label, packages, dev dependency)
NPM_PACKAGES: list[tuple[str, list[str], bool]] = [
    ("@types/react and @types/react-dom", ["@types/react", "@types/react-dom"], True),
    ("awesome-typescript-loader", ["awesome-typescript-loader"], True),
    ("css-loader", ["css-loader"], True),
    ("html-webpack-plugin", ["html-webpack-plugin"], True),
    ("mini-css-extract-plugin", ["mini-css-extract-plugin"], True),
    ("source-map-loader", ["source-map-loader"], True),
    ("typescript", ["typescript"], True),
    ("webpack, webpack-cli and webpack-dev-server", ["webpack", "webpack-cli", "webpack-dev-server"], True),
    ("react and react-dom", ["react", "react-dom"], False),
]

CODEGEN_PACKAGES: list[tuple[str, list[str], bool]] = [
    ("graphql", ["graphql"], False),
    ("@graphql-codegen/cli", ["@graphql-codegen/cli"], True),
    ("@graphql-codegen/typescript", ["@graphql-codegen/typescript"], True),
]

# Template -> path inside the front project.
SOURCE_FILES: list[tuple[str, str]] = [
    ("tsconfig.json.j2", "tsconfig.json"),
    ("App.tsx.j2", "src/components/App.tsx"),
    ("index.html.j2", "src/components/index.html"),
    ("index.tsx.j2", "src/index.tsx"),
]

PACKAGE_SCRIPTS: dict[str, str] = {
    "start": "webpack-dev-server --open",
    "build": "webpack",
    "generate": "graphql-codegen",
}

# The placeholder test script written by ``npm init -y``.
_NPM_DEFAULT_TEST = 'echo "Error: no test specified" && exit 1'


class TypeScriptSteps:
    """Builds the steps that create ``<name>/<name>-front`` in React + TypeScript."""

    def __init__(self, options: ProjectOptions, renderer: TemplateRenderer, server: ApiServer) -> None:
        self.options = options
        self.renderer = renderer
        self.server = server

    @property
    def root(self) -> Path:
        return self.options.front_dir

    def steps(self) -> list[PipelineStep]:
        steps = [
            self.server.launch_step(),
            PipelineStep(
                f"Generating {self.options.name} front in react with typescript ...",
                self.create_directory,
            ),
            PipelineStep("Initialize package.json ...", self.npm_init),
        ]
        steps += [
            PipelineStep(f"Installing {label} ...", partial(self.npm_install, packages, dev))
            for label, packages, dev in NPM_PACKAGES
        ]
        steps.append(PipelineStep("Preparing project architecture ...", self.prepare_architecture))
        steps += [
            PipelineStep(f"Configuring {Path(target).name} content ...", partial(self.render, template, target))
            for template, target in SOURCE_FILES
        ]
        steps += [
            PipelineStep("Configuring package.json content ...", self.configure_package_json),
            PipelineStep(
                "Configuring webpack content ...",
                partial(self.render, "webpack.config.js.j2", "webpack.config.js"),
            ),
        ]
        steps += [
            PipelineStep(f"Installing {label} ...", partial(self.npm_install, packages, dev))
            for label, packages, dev in CODEGEN_PACKAGES
        ]
        steps += [
            PipelineStep("Configuring codegen.yml content ...", self.write_codegen_config),
            PipelineStep("Run graphql_codegen ...", self.generate_types),
            self.server.stop_step(),
        ]
        return steps

    # ------------------------------------------------------------------
    # Step actions
    # ------------------------------------------------------------------

    async def create_directory(self) -> None:
        await asyncio.to_thread(self.root.mkdir)

    async def npm_init(self) -> None:
        await run_required("npm init", ["npm", "init", "-y"], cwd=self.root)

    async def npm_install(self, packages: list[str], dev: bool) -> None:
        cmd = ["npm", "install", *(["--save-dev"] if dev else []), *packages]
        await run_required("npm install", cmd, cwd=self.root)

    async def prepare_architecture(self) -> None:
        def _prepare() -> None:
            (self.root / "src" / "components").mkdir(parents=True, exist_ok=True)
            (self.root / "src" / "styles").mkdir(parents=True, exist_ok=True)
            (self.root / "src" / "styles" / "app.css").touch()

        await asyncio.to_thread(_prepare)

    async def render(self, template: str, target: str) -> None:
        await self.renderer.render_to_file(
            f"typescript/{template}", self.root / target, {"name": self.options.name}
        )

    async def configure_package_json(self) -> None:
        """Replace npm's placeholder test script with start/build/generate."""
        path = self.root / "package.json"

        def _update() -> None:
            manifest = json.loads(path.read_text(encoding="utf-8"))
            scripts = manifest.setdefault("scripts", {})
            if scripts.get("test") == _NPM_DEFAULT_TEST:
                del scripts["test"]
            scripts.update(PACKAGE_SCRIPTS)
            path.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")

        await asyncio.to_thread(_update)

    async def write_codegen_config(self) -> None:
        config = {
            "schema": self.options.server.graphql_url,
            "generates": {"./src/types.d.ts": {"plugins": ["typescript"]}},
        }
        content = yaml.safe_dump(config, sort_keys=False)
        await asyncio.to_thread((self.root / "codegen.yml").write_text, content, "utf-8")

    async def generate_types(self) -> StepStatus:
        return await self.server.codegen(["npm", "run", "generate"], cwd=self.root)
