"""railsgen configuration.

Typed configuration for a generator run.  ``ProjectOptions`` is assembled
once by the prompt phase and frozen afterwards; every pipeline step reads
it and none may change it.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FrontKind(str, Enum):
    """Supported frontend projects."""

    ELM = "elm"
    TYPESCRIPT = "typescript"


# Operator/CLI spellings accepted for each frontend kind.
FRONT_ALIASES: dict[str, FrontKind] = {
    "elm": FrontKind.ELM,
    "ts": FrontKind.TYPESCRIPT,
    "typescript": FrontKind.TYPESCRIPT,
    "react": FrontKind.TYPESCRIPT,
}


class ServerConfig(BaseModel):
    """How the API server is started for frontend code generation.

    The server is expected to print ``ready_marker`` once it accepts
    connections and to listen on ``port``; the reaper stops it by port.
    """

    model_config = ConfigDict(frozen=True)

    port: int = Field(default=3123, ge=1024, le=65535)
    ready_marker: str = Field(default="Listening on tcp", min_length=1)
    ready_timeout: float = Field(default=60.0, gt=0, description="Seconds to wait for the marker")
    command: str = Field(default="rails s -p {port}")

    @property
    def start_command(self) -> str:
        """The shell command with every literal ``{port}`` replaced.

        Other braces (shell parameter expansion, JSON arguments) pass through
        untouched.
        """
        return self.command.replace("{port}", str(self.port))

    @property
    def graphql_url(self) -> str:
        return f"http://localhost:{self.port}/graphql"

    @classmethod
    def from_env(cls, **overrides: Any) -> "ServerConfig":
        """Build a ``ServerConfig`` from environment variables.

        Recognised variables (all optional):
            RAILSGEN_SERVER_PORT, RAILSGEN_READY_MARKER,
            RAILSGEN_READY_TIMEOUT, RAILSGEN_SERVER_COMMAND.

        Keyword *overrides* whose value is not ``None`` win over the
        environment (CLI flags are passed this way).
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("RAILSGEN_SERVER_PORT"):
            kwargs["port"] = int(os.environ["RAILSGEN_SERVER_PORT"])
        if os.environ.get("RAILSGEN_READY_MARKER"):
            kwargs["ready_marker"] = os.environ["RAILSGEN_READY_MARKER"]
        if os.environ.get("RAILSGEN_READY_TIMEOUT"):
            kwargs["ready_timeout"] = float(os.environ["RAILSGEN_READY_TIMEOUT"])
        if os.environ.get("RAILSGEN_SERVER_COMMAND"):
            kwargs["command"] = os.environ["RAILSGEN_SERVER_COMMAND"]

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)


class ProjectOptions(BaseModel):
    """Everything the operator selected for this run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Project name, already sanitised")
    path: Path = Field(default_factory=Path.cwd, description="Parent directory of the project")
    front: FrontKind | None = Field(default=None, description="None means no frontend")
    pg_uuid: bool = True
    action_cable_subs: bool = True
    apollo_compatibility: bool = True
    users: bool = True
    server: ServerConfig = Field(default_factory=ServerConfig)

    @field_validator("name")
    @classmethod
    def _name_is_single_segment(cls, value: str) -> str:
        if "/" in value or value in (".", ".."):
            raise ValueError(f"Project name must be a plain directory name: {value!r}")
        return value

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def project_dir(self) -> Path:
        """Directory holding both generated projects."""
        return self.path / self.name

    @property
    def api_dir(self) -> Path:
        return self.project_dir / f"{self.name}-api"

    @property
    def front_dir(self) -> Path:
        return self.project_dir / f"{self.name}-front"

    @property
    def install_flags(self) -> list[str]:
        """Flags passed to ``rails generate graphql_rails_api:install``."""
        flags: list[str] = []
        if not self.pg_uuid:
            flags.append("--no-pg-uuid")
        if not self.action_cable_subs:
            flags.append("--no-action-cable-subs")
        if not self.apollo_compatibility:
            flags.append("--no-apollo-compatibility")
        if not self.users:
            flags.append("--no-users")
        return flags
