"""
Control Manager

The host's extension point: builds the control tree every turn and turns
a turn's acts into a :class:`ControlResponse`.

Usage:
    class AgeManager(ControlManager):
        def create_control_tree(self):
            return ContainerControl("root", children=[NumberControl("age")])

        def render_act(self, act, input, response):
            if act.name == "RequestValue":
                response.add_prompt_fragment("How old are you?")
            else:
                super().render_act(act, input, response)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

import structlog

from ..acts.base import SystemAct
from ..acts.content import LiteralContentAct
from ..controls.base import Control
from ..controls.input import ControlInput
from ..controls.result import ControlResult, SessionBehavior
from .response import ControlResponse

logger = structlog.get_logger(__name__)

_SHOULD_END_SESSION = {
    SessionBehavior.OPEN: False,
    SessionBehavior.END: True,
    SessionBehavior.IDLE: None,
}


class ControlManager(ABC):
    """Abstract base class for the host's control manager."""

    @abstractmethod
    def create_control_tree(self) -> Control:
        """Build the static control tree. Called every turn; must be deterministic."""
        pass

    def reestablish_control_states(self, root: Control, state_map: Dict[str, Any]) -> None:
        """Reattach persisted state, recursing from the root. Dynamic containers rebuild their children here."""
        root.reestablish_state(state_map.get(root.id), state_map)

    def render(self, result: ControlResult, input: ControlInput) -> ControlResponse:
        """Render every act in order through :meth:`render_act`."""
        response = ControlResponse(
            acts=[act.to_dict() for act in result.acts],
            should_end_session=_SHOULD_END_SESSION[result.session_behavior],
        )
        for act in result.acts:
            self.render_act(act, input, response)
        return response

    def render_act(self, act: SystemAct, input: ControlInput, response: ControlResponse) -> None:
        """Append prompt fragments for one act. Only literal content renders by default."""
        if isinstance(act, LiteralContentAct):
            response.add_prompt_fragment(act.prompt_fragment)
            if act.reprompt_fragment:
                response.add_reprompt_fragment(act.reprompt_fragment)

    def handle_internal_error(self, input: ControlInput, error: Exception, response: ControlResponse) -> None:
        """Hook for reporting a failed turn; the session is ended afterwards."""
        logger.error(
            "internal_error_handled",
            error=type(error).__name__,
            message=str(error),
            turn_number=input.turn_number if input is not None else None,
        )
