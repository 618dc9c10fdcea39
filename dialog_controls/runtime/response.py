"""
Control Response

What a turn produces for the host: the ordered acts plus whatever prompt
fragments the manager's renderer attached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ControlResponse:
    """
    Rendered outcome of one turn.

    Attributes:
        acts: Act dicts in the order they were produced.
        prompt_fragments: Speech fragments, joined by the host.
        reprompt_fragments: Fragments spoken if the user stays silent.
        should_end_session: ``True`` to end, ``False`` to keep listening,
            ``None`` to keep the session idle.
        internal_error: The turn failed and this is a fallback response.
    """

    acts: List[Dict[str, Any]] = field(default_factory=list)
    prompt_fragments: List[str] = field(default_factory=list)
    reprompt_fragments: List[str] = field(default_factory=list)
    should_end_session: Optional[bool] = False
    internal_error: bool = False

    @property
    def prompt(self) -> str:
        return " ".join(self.prompt_fragments)

    @property
    def reprompt(self) -> str:
        return " ".join(self.reprompt_fragments)

    def add_prompt_fragment(self, fragment: str) -> "ControlResponse":
        self.prompt_fragments.append(fragment)
        return self

    def add_reprompt_fragment(self, fragment: str) -> "ControlResponse":
        self.reprompt_fragments.append(fragment)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "acts": self.acts,
            "prompt": self.prompt,
            "reprompt": self.reprompt,
            "should_end_session": self.should_end_session,
            "internal_error": self.internal_error,
        }
