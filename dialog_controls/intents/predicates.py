"""
Input predicates shared by the built-in controls.

Every function takes a :class:`~dialog_controls.controls.input.ControlInput`
(or its request) and answers one narrow question about it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Sequence

from .base import IntentRequest, UserEventRequest
from .control_intents import (
    FALLBACK_INTENT,
    GENERAL_CONTROL_INTENT,
    NO_INTENT,
    YES_INTENT,
    Feedback,
    is_control_intent_name,
    unpack_general_control_intent,
    value_control_intent_name,
)

if TYPE_CHECKING:
    from ..controls.input import ControlInput


def is_intent(input: "ControlInput", name: Optional[str] = None) -> bool:
    """True for an intent request, optionally with the given intent name."""
    request = input.request
    if not isinstance(request, IntentRequest):
        return False
    return name is None or request.intent.name == name


def is_value_control_intent(input: "ControlInput", slot_type: str) -> bool:
    return is_intent(input, value_control_intent_name(slot_type))


def is_general_control_intent(input: "ControlInput") -> bool:
    return is_intent(input, GENERAL_CONTROL_INTENT)


def is_fallback(input: "ControlInput") -> bool:
    return is_intent(input, FALLBACK_INTENT)


def _is_bare_feedback(input: "ControlInput", intent_name: str, feedback: Feedback) -> bool:
    if is_intent(input, intent_name):
        return True
    if not is_general_control_intent(input):
        return False
    payload = unpack_general_control_intent(input.request.intent)
    return payload.feedback == feedback and payload.action is None and payload.target is None


def is_bare_yes(input: "ControlInput") -> bool:
    """``YesIntent``, or a general control intent that is only "yes"."""
    return _is_bare_feedback(input, YES_INTENT, Feedback.AFFIRM)


def is_bare_no(input: "ControlInput") -> bool:
    """``NoIntent``, or a general control intent that is only "no"."""
    return _is_bare_feedback(input, NO_INTENT, Feedback.DISAFFIRM)


def is_control_intent(input: "ControlInput") -> bool:
    """A general or value control intent."""
    return is_intent(input) and is_control_intent_name(input.request.intent.name)


def is_user_event_for_control(input: "ControlInput", control_id: str, arg_count: Optional[int] = None) -> bool:
    """A user event whose first argument is ``control_id``."""
    request = input.request
    if not isinstance(request, UserEventRequest):
        return False
    if not request.arguments or request.arguments[0] != control_id:
        return False
    return arg_count is None or len(request.arguments) == arg_count


# =============================================================================
# Slot value matching
# =============================================================================


def feedback_is_match(feedback: Optional[str], allowed: Sequence[Any]) -> bool:
    return feedback is not None and feedback in allowed


def feedback_is_match_or_none(feedback: Optional[str], allowed: Sequence[Any]) -> bool:
    return feedback is None or feedback in allowed


def action_is_match(action: Optional[str], allowed: Sequence[Any]) -> bool:
    return action is not None and action in allowed


def action_is_match_or_none(action: Optional[str], allowed: Sequence[Any]) -> bool:
    return action is None or action in allowed


def target_is_match_or_none(target: Optional[str], targets: Sequence[Any]) -> bool:
    return target is None or target in targets
