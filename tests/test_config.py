"""Unit tests for configuration (railsgen.config).

Tests cover:
- ServerConfig defaults, validation and derived values
- ServerConfig.from_env with environment variables and overrides
- ProjectOptions defaults, immutability, derived paths and install flags
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from railsgen.config import FRONT_ALIASES, FrontKind, ProjectOptions, ServerConfig


_ENV_VARS = (
    "RAILSGEN_SERVER_PORT",
    "RAILSGEN_READY_MARKER",
    "RAILSGEN_READY_TIMEOUT",
    "RAILSGEN_SERVER_COMMAND",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# ServerConfig
# ---------------------------------------------------------------------------


class TestServerConfig:
    @pytest.mark.unit
    def test_defaults(self):
        config = ServerConfig()
        assert config.port == 3123
        assert config.ready_marker == "Listening on tcp"
        assert config.ready_timeout == 60.0
        assert config.start_command == "rails s -p 3123"
        assert config.graphql_url == "http://localhost:3123/graphql"

    @pytest.mark.unit
    def test_custom_command_gets_port(self):
        config = ServerConfig(port=4000, command="bin/rails server --port {port}")
        assert config.start_command == "bin/rails server --port 4000"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "command, expected",
        [
            ("PORT={port} bash -c 'rails s -p ${PORT}'", "PORT=4000 bash -c 'rails s -p ${PORT}'"),
            ("""bin/server --opts '{"port": {port}}'""", """bin/server --opts '{"port": 4000}'"""),
            ("rails s -p {port} -P tmp/{port}.pid", "rails s -p 4000 -P tmp/4000.pid"),
            ("bin/server {0} {}", "bin/server {0} {}"),
        ],
    )
    def test_other_braces_are_kept(self, command, expected):
        assert ServerConfig(port=4000, command=command).start_command == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("port", [0, 80, 1023, 65536])
    def test_port_out_of_range(self, port):
        with pytest.raises(ValidationError):
            ServerConfig(port=port)

    @pytest.mark.unit
    def test_empty_marker_rejected(self):
        with pytest.raises(ValidationError):
            ServerConfig(ready_marker="")

    @pytest.mark.unit
    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            ServerConfig(ready_timeout=0)

    @pytest.mark.unit
    def test_frozen(self):
        config = ServerConfig()
        with pytest.raises(ValidationError):
            config.port = 4000  # type: ignore[misc]


class TestServerConfigFromEnv:
    @pytest.mark.unit
    def test_no_env_gives_defaults(self):
        assert ServerConfig.from_env() == ServerConfig()

    @pytest.mark.unit
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("RAILSGEN_SERVER_PORT", "3200")
        monkeypatch.setenv("RAILSGEN_READY_MARKER", "Use Ctrl-C to stop")
        monkeypatch.setenv("RAILSGEN_READY_TIMEOUT", "90")
        monkeypatch.setenv("RAILSGEN_SERVER_COMMAND", "bundle exec rails s -p {port}")

        config = ServerConfig.from_env()

        assert config.port == 3200
        assert config.ready_marker == "Use Ctrl-C to stop"
        assert config.ready_timeout == 90.0
        assert config.start_command == "bundle exec rails s -p 3200"

    @pytest.mark.unit
    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("RAILSGEN_SERVER_PORT", "3200")
        config = ServerConfig.from_env(port=3300, ready_marker=None)
        assert config.port == 3300
        assert config.ready_marker == "Listening on tcp"

    @pytest.mark.unit
    def test_invalid_env_value_raises(self, monkeypatch):
        monkeypatch.setenv("RAILSGEN_SERVER_PORT", "not-a-port")
        with pytest.raises(ValueError):
            ServerConfig.from_env()


# ---------------------------------------------------------------------------
# ProjectOptions
# ---------------------------------------------------------------------------


class TestProjectOptions:
    @pytest.mark.unit
    def test_defaults(self, tmp_path: Path):
        options = ProjectOptions(name="blog", path=tmp_path)
        assert options.front is None
        assert options.pg_uuid
        assert options.action_cable_subs
        assert options.apollo_compatibility
        assert options.users
        assert options.server == ServerConfig()
        assert options.install_flags == []

    @pytest.mark.unit
    def test_derived_paths(self, tmp_path: Path):
        options = ProjectOptions(name="blog", path=tmp_path)
        assert options.project_dir == tmp_path / "blog"
        assert options.api_dir == tmp_path / "blog" / "blog-api"
        assert options.front_dir == tmp_path / "blog" / "blog-front"

    @pytest.mark.unit
    def test_install_flags(self, tmp_path: Path):
        options = ProjectOptions(
            name="blog",
            path=tmp_path,
            pg_uuid=False,
            action_cable_subs=False,
            apollo_compatibility=False,
            users=False,
        )
        assert options.install_flags == [
            "--no-pg-uuid",
            "--no-action-cable-subs",
            "--no-apollo-compatibility",
            "--no-users",
        ]

    @pytest.mark.unit
    def test_single_flag(self, tmp_path: Path):
        options = ProjectOptions(name="blog", path=tmp_path, users=False)
        assert options.install_flags == ["--no-users"]

    @pytest.mark.unit
    def test_frozen(self, project_options: ProjectOptions):
        with pytest.raises(ValidationError):
            project_options.name = "other"  # type: ignore[misc]

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["", ".", "..", "a/b"])
    def test_invalid_names(self, tmp_path: Path, name: str):
        with pytest.raises(ValidationError):
            ProjectOptions(name=name, path=tmp_path)

    @pytest.mark.unit
    def test_front_from_string(self, tmp_path: Path):
        options = ProjectOptions(name="blog", path=tmp_path, front="typescript")
        assert options.front is FrontKind.TYPESCRIPT


class TestFrontAliases:
    @pytest.mark.unit
    def test_aliases(self):
        assert FRONT_ALIASES["elm"] is FrontKind.ELM
        assert FRONT_ALIASES["ts"] is FrontKind.TYPESCRIPT
        assert FRONT_ALIASES["react"] is FrontKind.TYPESCRIPT
