"""Per-turn input handed to every control."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Dict, Optional

from ..intents.base import Intent, IntentRequest, Request

if TYPE_CHECKING:
    from .base import Control


@dataclass
class ControlInput:
    """
    The request for this turn plus framework context.

    Attributes:
        request: The inbound request, already resolved by NLU.
        turn_number: 1-based turn counter for the session.
        controls: Flat lookup of every control in the tree by id.
        session_id: Session the turn belongs to, when known.
    """

    request: Request
    turn_number: int = 1
    controls: Dict[str, "Control"] = field(default_factory=dict)
    session_id: Optional[str] = None

    @property
    def intent(self) -> Optional[Intent]:
        if isinstance(self.request, IntentRequest):
            return self.request.intent
        return None

    def replace_request(self, request: Request) -> "ControlInput":
        """Copy of this input carrying a different request."""
        return replace(self, request=request)

    def get_control(self, control_id: str) -> Optional["Control"]:
        return self.controls.get(control_id)
