"""
Control Results

Controls append acts to a :class:`ControlResultBuilder` during a turn; the
orchestrator turns the builder into an immutable :class:`ControlResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from ..acts.base import SystemAct
from ..errors import ProtocolViolationError

logger = structlog.get_logger(__name__)


class SessionBehavior(str, Enum):
    """What should happen to the session after this turn."""

    OPEN = "open"  # Keep listening
    END = "end"  # Close the session
    IDLE = "idle"  # Keep the session but stop the microphone


@dataclass
class ControlResult:
    """Ordered acts for one turn and the session behavior."""

    acts: List[SystemAct] = field(default_factory=list)
    session_behavior: SessionBehavior = SessionBehavior.OPEN

    def has_initiative_act(self) -> bool:
        return any(act.takes_initiative for act in self.acts)

    @property
    def initiative_act(self) -> Optional[SystemAct]:
        return next((act for act in self.acts if act.takes_initiative), None)

    def to_dict(self) -> dict:
        return {
            "acts": [act.to_dict() for act in self.acts],
            "session_behavior": self.session_behavior.value,
        }

    def __str__(self) -> str:
        return f"ControlResult(acts=[{', '.join(str(a) for a in self.acts)}], session={self.session_behavior.value})"


class ControlResultBuilder:
    """Mutable accumulator for a turn's acts."""

    def __init__(self, acts: Optional[List[SystemAct]] = None):
        self.acts: List[SystemAct] = list(acts or [])
        self.session_behavior = SessionBehavior.OPEN

    def add_act(self, act: SystemAct) -> "ControlResultBuilder":
        """
        Append an act.

        Raises:
            ProtocolViolationError: A second initiative act was added.
        """
        if act.takes_initiative and self.has_initiative_act():
            raise ProtocolViolationError(
                f"Result already contains an initiative act: {self.initiative_act}. Cannot add {act}.",
                control_id=act.control_id,
            )
        logger.debug("act_added", act=act.name, control_id=act.control_id)
        self.acts.append(act)
        return self

    def has_initiative_act(self) -> bool:
        return any(act.takes_initiative for act in self.acts)

    @property
    def initiative_act(self) -> Optional[SystemAct]:
        return next((act for act in self.acts if act.takes_initiative), None)

    def end_session(self) -> None:
        self.session_behavior = SessionBehavior.END

    def enter_idle_state(self) -> None:
        self.session_behavior = SessionBehavior.IDLE

    def build(self) -> ControlResult:
        return ControlResult(acts=list(self.acts), session_behavior=self.session_behavior)
