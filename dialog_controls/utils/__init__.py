"""Shared helpers for controls."""

from .evaluation import evaluate_bool_prop, evaluate_list_prop, maybe_await
from .formatting import format_list
from .guards import fail_if, false_if_guard_failed, ok_if
from .tree import create_control_map, diagram, extract_state_map, visit

__all__ = [
    "create_control_map",
    "diagram",
    "evaluate_bool_prop",
    "evaluate_list_prop",
    "extract_state_map",
    "fail_if",
    "false_if_guard_failed",
    "format_list",
    "maybe_await",
    "ok_if",
    "visit",
]
