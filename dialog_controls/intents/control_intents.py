"""
Control Intents

Names, shared slot vocabulary and helpers for the intents the control
framework understands:

- ``GeneralControlIntent``: feedback/action/target with no value.
- ``<SlotType>_ValueControlIntent``: the same shared slots plus one value
  slot named after its slot type.
- ``YesIntent``/``NoIntent``/``FallbackIntent``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union

from .base import Intent, Slot, SlotResolution


GENERAL_CONTROL_INTENT = "GeneralControlIntent"
YES_INTENT = "YesIntent"
NO_INTENT = "NoIntent"
FALLBACK_INTENT = "FallbackIntent"

VALUE_CONTROL_INTENT_SUFFIX = "_ValueControlIntent"

# Slots shared by every control intent
FEEDBACK_SLOT = "feedback"
ACTION_SLOT = "action"
TARGET_SLOT = "target"
SHARED_SLOTS = frozenset({FEEDBACK_SLOT, ACTION_SLOT, TARGET_SLOT, "head", "tail", "preposition", "conjunction"})


class Feedback(str, Enum):
    """Values of the ``feedback`` slot."""

    AFFIRM = "affirm"
    DISAFFIRM = "disaffirm"


class Action(str, Enum):
    """Built-in values of the ``action`` slot."""

    SET = "set"
    CHANGE = "change"
    SELECT = "select"
    CLEAR = "clear"
    ADD = "add"
    REMOVE = "remove"
    CONFIRM = "confirm"


class Target(str, Enum):
    """Built-in values of the ``target`` slot."""

    IT = "it"
    CHOICE = "choice"
    NUMBER = "number"


@dataclass
class GeneralControlPayload:
    """Unpacked shared slots of a control intent."""

    feedback: Optional[str] = None
    action: Optional[str] = None
    target: Optional[str] = None


@dataclass
class ValueControlPayload(GeneralControlPayload):
    """Unpacked value control intent."""

    values: List[SlotResolution] = field(default_factory=list)
    value_type: Optional[str] = None

    @property
    def value(self) -> Optional[str]:
        return self.values[0].value if self.values else None

    @property
    def er_match(self) -> bool:
        return self.values[0].er_match if self.values else False


def value_control_intent_name(slot_type: str) -> str:
    """``AMAZON.NUMBER`` -> ``AMAZON_NUMBER_ValueControlIntent``."""
    return f"{slot_type}{VALUE_CONTROL_INTENT_SUFFIX}".replace(".", "_")


def is_control_intent_name(name: str) -> bool:
    return name == GENERAL_CONTROL_INTENT or name.endswith(VALUE_CONTROL_INTENT_SUFFIX)


def unpack_general_control_intent(intent: Intent) -> GeneralControlPayload:
    if intent.name != GENERAL_CONTROL_INTENT:
        raise ValueError(f"Not a {GENERAL_CONTROL_INTENT}: {intent.name}")
    return GeneralControlPayload(
        feedback=intent.slot_value(FEEDBACK_SLOT),
        action=intent.slot_value(ACTION_SLOT),
        target=intent.slot_value(TARGET_SLOT),
    )


def unpack_value_control_intent(intent: Intent) -> ValueControlPayload:
    """
    Split a value control intent into shared slots and its value slot.

    Raises:
        ValueError: The intent is not a value control intent or carries
            no value. Such an utterance should have resolved to
            ``GeneralControlIntent``.
    """
    if not intent.name.endswith(VALUE_CONTROL_INTENT_SUFFIX):
        raise ValueError(f"Not a value control intent: {intent.name}")

    payload = ValueControlPayload(
        feedback=intent.slot_value(FEEDBACK_SLOT),
        action=intent.slot_value(ACTION_SLOT),
        target=intent.slot_value(TARGET_SLOT),
    )
    for name, slot in intent.slots.items():
        if name in SHARED_SLOTS:
            continue
        if slot.resolutions:
            payload.values = list(slot.resolutions)
            payload.value_type = name
        elif slot.value is not None:
            payload.values = [SlotResolution(value=slot.value, er_match=False)]
            payload.value_type = name

    if not payload.values:
        raise ValueError(f"Value control intent has no value slot filled: {intent.name}")
    return payload


# =============================================================================
# Builders
# =============================================================================


def _slot(name: str, value: Optional[str]) -> Optional[Slot]:
    if value is None:
        return None
    return Slot(name=name, value=value, resolutions=[SlotResolution(value=value)])


def _shared_slots(feedback: Optional[str], action: Optional[str], target: Optional[str]) -> dict:
    slots = {}
    for name, value in ((FEEDBACK_SLOT, feedback), (ACTION_SLOT, action), (TARGET_SLOT, target)):
        slot = _slot(name, value)
        if slot is not None:
            slots[name] = slot
    return slots


def general_control_intent(
    feedback: Optional[str] = None,
    action: Optional[str] = None,
    target: Optional[str] = None,
) -> Intent:
    """Build a ``GeneralControlIntent``."""
    return Intent(name=GENERAL_CONTROL_INTENT, slots=_shared_slots(feedback, action, target))


def value_control_intent(
    slot_type: str,
    value: Union[str, Iterable[str], SlotResolution, Iterable[SlotResolution]],
    feedback: Optional[str] = None,
    action: Optional[str] = None,
    target: Optional[str] = None,
    er_match: bool = True,
) -> Intent:
    """
    Build a ``<SlotType>_ValueControlIntent``.

    ``value`` may be a single value or several (multi-value slots). Plain
    strings become resolutions with the given ``er_match``.
    """
    if isinstance(value, (str, SlotResolution)):
        raw_values = [value]
    else:
        raw_values = list(value)

    resolutions = [
        v if isinstance(v, SlotResolution) else SlotResolution(value=str(v), er_match=er_match)
        for v in raw_values
    ]
    slots = _shared_slots(feedback, action, target)
    slots[slot_type] = Slot(name=slot_type, value=resolutions[0].value if resolutions else None, resolutions=resolutions)
    return Intent(name=value_control_intent_name(slot_type), slots=slots)


def simple_intent(name: str) -> Intent:
    return Intent(name=name)
