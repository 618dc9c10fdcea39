"""Content acts: feedback about what just happened."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .base import ContentAct


@dataclass
class ValueSetAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class ValueChangedAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None
    previous_value: Any = None
    rendered_previous_value: Optional[str] = None


@dataclass
class ValueConfirmedAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class ValueDisconfirmedAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class ValueClearedAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class ValueAddedAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class ValueRemovedAct(ContentAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class InvalidValueAct(ContentAct):
    """A value was received but failed validation."""

    value: Any = None
    rendered_value: Optional[str] = None
    reason_code: Optional[str] = None
    rendered_reason: Optional[str] = None


@dataclass
class InvalidRemoveValueAct(ContentAct):
    """The user asked to remove values that are not present."""

    value: Any = None
    rendered_value: Optional[str] = None
    reason_code: Optional[str] = None
    rendered_reason: Optional[str] = None


@dataclass
class UnusableInputValueAct(ContentAct):
    """The input could not be turned into a value at all (e.g. ordinal out of range)."""

    value: Any = None
    rendered_value: Optional[str] = None
    reason_code: Optional[str] = None
    rendered_reason: Optional[str] = None


@dataclass
class LiteralContentAct(ContentAct):
    """Pre-rendered prompt text supplied by the host."""

    prompt_fragment: str = ""
    reprompt_fragment: Optional[str] = None


@dataclass
class NonUnderstandingAct(ContentAct):
    """No control could make sense of the input."""
