"""Tests for the dialog-controls CLI."""

import textwrap

import click
import pytest
from click.testing import CliRunner

from dialog_controls import __version__
from dialog_controls.cli.main import cli, describe_request, load_manager
from dialog_controls.cli.output import TURN_COLUMNS, print_turns
from dialog_controls.testing import TestInput

SKILL_MODULE = textwrap.dedent(
    """
    from dialog_controls import ContainerControl, ControlManager, NumberControl


    class AgeManager(ControlManager):
        def create_control_tree(self):
            return ContainerControl("root", children=[NumberControl("age")])


    class BrokenManager(ControlManager):
        def create_control_tree(self):
            return ContainerControl("root", children=[NumberControl("age"), NumberControl("age")])


    class NotAManager:
        pass
    """
)

SCRIPT = textwrap.dedent(
    """
    session_id: demo
    turns:
      - launch: null
      - value: {slot_type: AMAZON.NUMBER, value: "16", action: set}
    """
)


@pytest.fixture
def skill(tmp_path, monkeypatch):
    """Importable module holding test managers."""
    (tmp_path / "cli_test_skill.py").write_text(SKILL_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    return "cli_test_skill"


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "conversation.yaml"
    path.write_text(SCRIPT)
    return str(path)


@pytest.fixture
def runner():
    return CliRunner()


class TestLoadManager:
    """Tests for resolving --manager."""

    def test_loads(self, skill):
        manager = load_manager(f"{skill}:AgeManager")

        assert manager.create_control_tree().id == "root"

    @pytest.mark.parametrize(
        "path",
        ["no_colon", "missing_module_xyz:Manager", "cli_test_skill:Missing", "cli_test_skill:NotAManager"],
    )
    def test_rejects(self, skill, path):
        with pytest.raises(click.BadParameter):
            load_manager(path)


def test_describe_request():
    assert describe_request(TestInput.launch()) == "LaunchRequest"
    assert describe_request(TestInput.yes()) == "YesIntent"
    assert describe_request(TestInput.user_event("age", 3)) == "UserEvent['age', 3]"
    assert describe_request(TestInput.general(target="age")) == "GeneralControlIntent(target=age)"


class TestCommands:
    """Tests for CLI commands."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_diagram(self, runner, skill):
        result = runner.invoke(cli, ["diagram", "--manager", f"{skill}:AgeManager"])

        assert result.exit_code == 0
        assert "root" in result.output
        assert "  age" in result.output

    def test_simulate_json(self, runner, skill, script):
        result = runner.invoke(cli, ["simulate", script, "--manager", f"{skill}:AgeManager", "-o", "json"])

        assert result.exit_code == 0
        assert "RequestValue" in result.output
        assert "ValueSet" in result.output

    def test_simulate_yaml(self, runner, skill, script):
        result = runner.invoke(cli, ["simulate", script, "-m", f"{skill}:AgeManager", "-o", "yaml"])

        assert result.exit_code == 0
        assert "ValueSet" in result.output

    def test_simulate_table(self, runner, skill, script):
        result = runner.invoke(cli, ["simulate", script, "-m", f"{skill}:AgeManager"])

        assert result.exit_code == 0
        assert "Simulation" in result.output

    def test_simulate_internal_error(self, runner, skill, script):
        result = runner.invoke(cli, ["simulate", script, "-m", f"{skill}:BrokenManager", "-o", "json"])

        assert result.exit_code == 1

    def test_simulate_bad_step(self, runner, skill, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("turns:\n  - shout: null\n")

        result = runner.invoke(cli, ["simulate", str(path), "-m", f"{skill}:AgeManager"])

        assert result.exit_code == 1
        assert "Invalid script" in result.output

    def test_simulate_not_a_script(self, runner, skill, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("- launch: null\n")

        result = runner.invoke(cli, ["simulate", str(path), "-m", f"{skill}:AgeManager"])

        assert result.exit_code == 2

    def test_bad_manager(self, runner, script):
        result = runner.invoke(cli, ["simulate", script, "-m", "missing_module_xyz:Manager"])

        assert result.exit_code == 2


def test_print_turns_summarizes_acts(monkeypatch):
    printed = {}
    monkeypatch.setattr(
        "dialog_controls.cli.output.print_table",
        lambda data, columns, title: printed.update(data=data, columns=columns, title=title),
    )
    rows = [
        {"turn": 1, "request": "LaunchRequest", "acts": [{"name": "RequestValue"}], "prompt": "", "internal_error": False},
        {"turn": 2, "request": "YesIntent", "acts": [], "prompt": "", "internal_error": False},
    ]

    print_turns(rows)

    assert printed["title"] == "Simulation"
    assert printed["columns"] == TURN_COLUMNS
    assert [row["acts"] for row in printed["data"]] == ["RequestValue", "-"]
    assert rows[0]["acts"] == [{"name": "RequestValue"}]
