"""Unit tests for the command line interface."""

import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from brightbox_provider.cli.app import app
from brightbox_provider.cli.state import load_resource_config, load_state
from brightbox_provider.config.loader import ENV_DEFAULTS
from brightbox_provider.core.errors import (
    ConfigurationError,
    IncompleteCreateError,
    WaitTimeoutError,
)
from brightbox_provider.mapping.server_group import ServerGroupAttributes
from brightbox_provider.provider.session import Session
from brightbox_provider.resources.base import Instance

LIFECYCLE = "brightbox_provider.cli.commands.lifecycle"

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolate(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear provider variables and restore the root logger the CLI configures."""
    for variable in ENV_DEFAULTS.values():
        monkeypatch.delenv(variable, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def write_yaml(path: Path, data: dict) -> str:
    """Write a mapping as YAML and return the path as a string."""
    path.write_text(yaml.safe_dump(data))
    return str(path)


def group_instance(group_id: str = "grp-12345") -> Instance[ServerGroupAttributes]:
    """Build a server group instance."""
    return Instance("brightbox_server_group", group_id, ServerGroupAttributes(name="web"))


class TestResourcesCommand:
    """Tests for the resources command."""

    def test_lists_types(self) -> None:
        """Test that every resource type is listed."""
        result = runner.invoke(app, ["resources"])

        assert result.exit_code == 0
        assert result.output.split() == [
            "brightbox_cloudip",
            "brightbox_firewall_policy",
            "brightbox_firewall_rule",
            "brightbox_load_balancer",
            "brightbox_server",
            "brightbox_server_group",
        ]


class TestCheckCommand:
    """Tests for the check command."""

    def test_reports_session(self, session: Session) -> None:
        """Test that a successful check names the credential mode."""
        with patch(
            "brightbox_provider.cli.commands.check.configure", AsyncMock(return_value=session)
        ):
            result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert (
            "Authenticated with api-client credentials against https://api.gb1.brightbox.com"
            in result.output
        )

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        """Test that a missing settings file is reported."""
        result = runner.invoke(app, ["check", "--settings", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1
        assert "Error: Settings file not found" in result.output


class TestCreateCommand:
    """Tests for the create command."""

    def test_writes_state_file(self, tmp_path: Path, session: Session) -> None:
        """Test that the created instance is written as state."""
        config = write_yaml(tmp_path / "group.yaml", {"name": "web", "timeouts": {"create": 60}})
        state = tmp_path / "state.yaml"
        create = AsyncMock(return_value=group_instance())

        with (
            patch(f"{LIFECYCLE}.configure", AsyncMock(return_value=session)),
            patch(f"{LIFECYCLE}.create_resource", create),
        ):
            result = runner.invoke(
                app, ["create", "brightbox_server_group", config, "--state", str(state)]
            )

        assert result.exit_code == 0
        args = create.await_args.args
        assert args[1:] == (session, "brightbox_server_group", {"name": "web"}, {"create": 60})
        assert yaml.safe_load(state.read_text()) == {
            "type": "brightbox_server_group",
            "id": "grp-12345",
            "attributes": {"name": "web"},
            "timeouts": {"create": 60},
        }

    def test_incomplete_create_records_id(self, tmp_path: Path, session: Session) -> None:
        """Test that a resource created but never ready is still written as state."""
        config = write_yaml(
            tmp_path / "server.yaml", {"image": "img-abcde", "server_groups": ["grp-12345"]}
        )
        state = tmp_path / "state.yaml"
        partial = Instance("brightbox_server", "srv-12345")
        error = IncompleteCreateError(partial, WaitTimeoutError("creating", 300))

        with (
            patch(f"{LIFECYCLE}.configure", AsyncMock(return_value=session)),
            patch(f"{LIFECYCLE}.create_resource", AsyncMock(side_effect=error)),
        ):
            result = runner.invoke(
                app, ["create", "brightbox_server", config, "--state", str(state)]
            )

        assert result.exit_code == 1
        assert "Error: brightbox_server srv-12345 was created but did not become ready" in (
            result.output
        )
        assert yaml.safe_load(state.read_text()) == {
            "type": "brightbox_server",
            "id": "srv-12345",
            "attributes": {},
        }

    def test_invalid_config_never_authenticates(self, tmp_path: Path) -> None:
        """Test that bad attributes fail before any API call."""
        config = write_yaml(tmp_path / "server.yaml", {"name": "web"})
        configure = AsyncMock()

        with patch(f"{LIFECYCLE}.configure", configure):
            result = runner.invoke(app, ["create", "brightbox_server", config])

        assert result.exit_code == 1
        assert "Error: Invalid brightbox_server configuration" in result.output
        configure.assert_not_awaited()

    def test_unknown_type(self, tmp_path: Path) -> None:
        """Test that an unknown type name is rejected."""
        config = write_yaml(tmp_path / "thing.yaml", {"name": "web"})

        result = runner.invoke(app, ["create", "brightbox_volume", config])

        assert result.exit_code == 1
        assert "Unknown resource type 'brightbox_volume'" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """Test that a missing configuration file is reported."""
        result = runner.invoke(
            app, ["create", "brightbox_server_group", str(tmp_path / "nope.yaml")]
        )

        assert result.exit_code == 1
        assert "Resource configuration file not found" in result.output


class TestReadCommand:
    """Tests for the read command."""

    def test_refresh_removed_resource(self, tmp_path: Path, session: Session) -> None:
        """Test that a vanished resource is written with an empty id."""
        source = write_yaml(
            tmp_path / "state.yaml",
            {"type": "brightbox_server_group", "id": "grp-12345", "attributes": {"name": "web"}},
        )
        output = tmp_path / "refreshed.yaml"
        read = AsyncMock(return_value=group_instance().removed())

        with (
            patch(f"{LIFECYCLE}.configure", AsyncMock(return_value=session)),
            patch(f"{LIFECYCLE}.read_resource", read),
        ):
            result = runner.invoke(app, ["read", source, "--state", str(output)])

        assert result.exit_code == 0
        assert read.await_args.args[1:] == (
            session,
            "brightbox_server_group",
            "grp-12345",
            {"name": "web"},
        )
        assert yaml.safe_load(output.read_text())["id"] == ""


class TestDeleteCommand:
    """Tests for the delete command."""

    def test_uses_recorded_timeouts(self, tmp_path: Path, session: Session) -> None:
        """Test that the timeouts kept in state apply to the delete."""
        source = write_yaml(
            tmp_path / "state.yaml",
            {
                "type": "brightbox_server_group",
                "id": "grp-12345",
                "attributes": {"name": "web"},
                "timeouts": {"delete": 900},
            },
        )
        output = tmp_path / "deleted.yaml"
        delete = AsyncMock(return_value=group_instance().removed())

        with (
            patch(f"{LIFECYCLE}.configure", AsyncMock(return_value=session)),
            patch(f"{LIFECYCLE}.delete_resource", delete),
        ):
            result = runner.invoke(app, ["delete", source, "--state", str(output)])

        assert result.exit_code == 0
        assert delete.await_args.args[-1] == {"delete": 900}
        assert yaml.safe_load(output.read_text())["timeouts"] == {"delete": 900}


class TestImportCommand:
    """Tests for the import command."""

    def test_import_by_id(self, tmp_path: Path, session: Session) -> None:
        """Test that an imported resource is written as state."""
        output = tmp_path / "state.yaml"

        with (
            patch(f"{LIFECYCLE}.configure", AsyncMock(return_value=session)),
            patch(f"{LIFECYCLE}.import_resource", AsyncMock(return_value=group_instance())),
        ):
            result = runner.invoke(
                app, ["import", "brightbox_server_group", "grp-12345", "--state", str(output)]
            )

        assert result.exit_code == 0
        assert yaml.safe_load(output.read_text())["id"] == "grp-12345"


class TestStateFiles:
    """Tests for state and resource configuration files."""

    def test_load_state(self, tmp_path: Path) -> None:
        """Test reading a state file."""
        path = write_yaml(
            tmp_path / "state.yaml",
            {"type": "brightbox_cloudip", "id": "cip-12345", "attributes": {"name": "www"}},
        )

        record = load_state(path)

        assert record.type == "brightbox_cloudip"
        assert record.id == "cip-12345"
        assert record.attributes == {"name": "www"}
        assert record.connection is None

    def test_state_without_type(self, tmp_path: Path) -> None:
        """Test that a state file must name its resource type."""
        path = write_yaml(tmp_path / "state.yaml", {"id": "cip-12345"})

        with pytest.raises(ConfigurationError, match="has no resource type"):
            load_state(path)

    def test_config_timeouts_split_off(self, tmp_path: Path) -> None:
        """Test that the timeouts block is separated from the attributes."""
        path = write_yaml(tmp_path / "lb.yaml", {"name": "lb", "timeouts": {"delete": 30}})

        attributes, timeouts = load_resource_config(path)

        assert attributes == {"name": "lb"}
        assert timeouts == {"delete": 30}

    def test_config_invalid_timeouts(self, tmp_path: Path) -> None:
        """Test that timeouts must be a mapping."""
        path = write_yaml(tmp_path / "lb.yaml", {"name": "lb", "timeouts": 30})

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_resource_config(path)
