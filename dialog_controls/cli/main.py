"""dialog-controls CLI - Main entry point."""

import asyncio
import importlib
import sys
from typing import Any, Dict, List, Optional

import click
import yaml

from .. import __version__
from ..config import Settings
from ..intents.base import IntentRequest, Request, UserEventRequest
from ..logging import configure_logging
from ..runtime.manager import ControlManager
from ..testing import TestInput, TurnRunner
from ..utils.tree import diagram
from .output import console, print_error, print_turns


def load_manager(path: str) -> ControlManager:
    """Instantiate ``module:Class``."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected module:Class, got '{path}'", param_hint="--manager")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}", param_hint="--manager") from e

    manager_class = getattr(module, attr, None)
    if manager_class is None:
        raise click.BadParameter(f"{module_name} has no attribute {attr}", param_hint="--manager")
    manager = manager_class()
    if not isinstance(manager, ControlManager):
        raise click.BadParameter(f"{path} is not a ControlManager", param_hint="--manager")
    return manager


def describe_request(request: Request) -> str:
    if isinstance(request, IntentRequest):
        slots = {name: slot.resolved_value for name, slot in request.intent.slots.items()}
        if not slots:
            return request.intent.name
        args = ", ".join(f"{k}={v}" for k, v in slots.items())
        return f"{request.intent.name}({args})"
    if isinstance(request, UserEventRequest):
        return f"UserEvent{request.arguments}"
    return request.type


def load_script(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        script = yaml.safe_load(f) or {}
    if not isinstance(script, dict) or not isinstance(script.get("turns"), list):
        raise click.BadParameter("script must be a mapping with a 'turns' list", param_hint="SCRIPT")
    return script


async def run_script(manager: ControlManager, turns: List[Dict[str, Any]], session_id: Optional[str]) -> List[Dict[str, Any]]:
    runner = TurnRunner(manager, settings=Settings(internal_error_behavior="produce_response"), session_id=session_id)
    rows = []
    for number, step in enumerate(turns, start=1):
        request = TestInput.from_step(step)
        response = await runner.say(request)
        rows.append({
            "turn": number,
            "request": describe_request(request),
            "acts": response.acts,
            "prompt": response.prompt,
            "internal_error": response.internal_error,
        })
    return rows


@click.group()
@click.version_option(version=__version__, prog_name="dialog-controls")
@click.option("--debug", is_flag=True, help="Log turn processing to stdout")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """dialog-controls - Drive control trees from the command line.

    \b
    Examples:
      dialog-controls simulate conversation.yaml --manager myskill:Manager
      dialog-controls simulate conversation.yaml --manager myskill:Manager -o yaml
      dialog-controls diagram --manager myskill:Manager
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    if debug:
        configure_logging(Settings(log_level="debug", log_format="pretty"))


@cli.command("simulate")
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.option("--manager", "-m", "manager_path", required=True, help="Control manager as module:Class")
@click.option("--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table",
              help="Output format")
def simulate(script: str, manager_path: str, output: str):
    """Play a YAML script of turns and print each turn's acts.

    \b
    Script format:
      session_id: demo            # optional
      turns:
        - value: {slot_type: AMAZON.NUMBER, value: "16", action: set}
        - "yes": null
        - general: {target: firstName}
        - user_event: [age, 16]
    """
    manager = load_manager(manager_path)
    data = load_script(script)

    try:
        rows = asyncio.run(run_script(manager, data["turns"], data.get("session_id")))
    except ValueError as e:
        print_error(f"Invalid script: {e}")
        sys.exit(1)

    print_turns(rows, output)

    if any(row["internal_error"] for row in rows):
        sys.exit(1)


@cli.command("diagram")
@click.option("--manager", "-m", "manager_path", required=True, help="Control manager as module:Class")
def diagram_cmd(manager_path: str):
    """Print the initial control tree."""
    manager = load_manager(manager_path)
    console.print(diagram(manager.create_control_tree()), markup=False, highlight=False)


def main():
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
