"""Initiative acts: questions that drive the conversation forward."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .base import InitiativeAct


@dataclass
class RequestValueAct(InitiativeAct):
    pass


@dataclass
class RequestChangedValueAct(InitiativeAct):
    current_value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class RequestValueByListAct(InitiativeAct):
    choices_from_active_page: List[Any] = field(default_factory=list)
    all_choices: List[Any] = field(default_factory=list)
    rendered_choices_from_active_page: List[str] = field(default_factory=list)
    rendered_all_choices: List[str] = field(default_factory=list)


@dataclass
class RequestChangedValueByListAct(RequestValueByListAct):
    current_value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class RequestRemovedValueByListAct(InitiativeAct):
    """Ask which of the currently held values should be removed."""

    available_choices: List[Any] = field(default_factory=list)
    rendered_choices: List[str] = field(default_factory=list)


@dataclass
class ConfirmValueAct(InitiativeAct):
    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class SuggestValueAct(InitiativeAct):
    """Offer the most likely intended value after a disconfirmation."""

    value: Any = None
    rendered_value: Optional[str] = None


@dataclass
class DisambiguateTargetAct(InitiativeAct):
    """
    Ask which of several controls the user meant.

    ``candidates`` holds ``{"control_id", "specific_target"}`` entries in
    declaration order.
    """

    candidates: List[Dict[str, str]] = field(default_factory=list)
    rendered_targets: List[str] = field(default_factory=list)
