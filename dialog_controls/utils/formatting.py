"""Small helpers for turning values into prompt-ready text."""

from typing import Any, Iterable, List


def format_list(items: Iterable[Any], joiner: str = "or") -> str:
    """
    Join items as natural language.

    ``["a"]`` -> ``"a"``, ``["a", "b"]`` -> ``"a or b"``,
    ``["a", "b", "c"]`` -> ``"a, b, or c"``.
    """
    parts: List[str] = [str(item) for item in items]
    if not parts:
        return ""
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return f"{parts[0]} {joiner} {parts[1]}"
    return f"{', '.join(parts[:-1])}, {joiner} {parts[-1]}"
