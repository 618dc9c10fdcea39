"""
Inbound requests and the control intent vocabulary.

Usage:
    from dialog_controls.intents import IntentRequest, value_control_intent

    request = IntentRequest(intent=value_control_intent("AMAZON.NUMBER", "16", action="set"))
"""

from .base import (
    Intent,
    IntentRequest,
    LaunchRequest,
    Request,
    SessionEndedRequest,
    Slot,
    SlotResolution,
    UserEventRequest,
    parse_request,
)
from .control_intents import (
    FALLBACK_INTENT,
    GENERAL_CONTROL_INTENT,
    NO_INTENT,
    YES_INTENT,
    Action,
    Feedback,
    GeneralControlPayload,
    Target,
    ValueControlPayload,
    general_control_intent,
    simple_intent,
    unpack_general_control_intent,
    unpack_value_control_intent,
    value_control_intent,
    value_control_intent_name,
)

__all__ = [
    # Requests
    "Intent",
    "IntentRequest",
    "LaunchRequest",
    "Request",
    "SessionEndedRequest",
    "Slot",
    "SlotResolution",
    "UserEventRequest",
    "parse_request",
    # Control intents
    "FALLBACK_INTENT",
    "GENERAL_CONTROL_INTENT",
    "NO_INTENT",
    "YES_INTENT",
    "Action",
    "Feedback",
    "GeneralControlPayload",
    "Target",
    "ValueControlPayload",
    "general_control_intent",
    "simple_intent",
    "unpack_general_control_intent",
    "unpack_value_control_intent",
    "value_control_intent",
    "value_control_intent_name",
]
