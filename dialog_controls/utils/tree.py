"""Helpers for walking a control tree."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List

from ..errors import DuplicateControlIdError

if TYPE_CHECKING:
    from ..controls.base import Control


def visit(control: "Control", fn: Callable[["Control"], None]) -> None:
    """Call ``fn`` on ``control`` and every descendant, depth first."""
    fn(control)
    for child in control.children:
        visit(child, fn)


def create_control_map(root: "Control") -> Dict[str, "Control"]:
    """
    Flat id -> control lookup for the whole tree.

    Raises:
        DuplicateControlIdError: Two controls share an id.
    """
    controls: Dict[str, "Control"] = {}

    def add(control: "Control") -> None:
        if control.id in controls:
            raise DuplicateControlIdError(control.id)
        controls[control.id] = control

    visit(root, add)
    return controls


def extract_state_map(root: "Control") -> Dict[str, Any]:
    """
    Flat id -> serializable state for the whole tree.

    Raises:
        DuplicateControlIdError: Two controls share an id.
    """
    state_map: Dict[str, Any] = {}

    def collect(control: "Control") -> None:
        if control.id in state_map:
            raise DuplicateControlIdError(control.id)
        state_map[control.id] = control.get_serializable_state()

    visit(root, collect)
    return state_map


def diagram(root: "Control", indent: str = "  ") -> str:
    """Text diagram of the tree, one control per line with its state summary."""
    lines: List[str] = []

    def walk(control: "Control", depth: int) -> None:
        summary = control.stringify_state_for_diagram()
        line = f"{indent * depth}{control.render_identifier()}"
        if summary:
            line += f" {summary}"
        lines.append(line)
        for child in control.children:
            walk(child, depth + 1)

    walk(root, 0)
    return "\n".join(lines)
