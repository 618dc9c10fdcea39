"""
Container Control

A control that owns an ordered list of children and arbitrates between
them. Per phase it asks every child, in declaration order, and picks at
most one winner:

- ``can_handle``: gather candidates. Several candidates with an absent
  or shared target trigger an explicit disambiguation question when
  enabled; otherwise the implicit resolution strategy picks one. On the
  fallback intent only the child that most recently took initiative is
  eligible.
- ``can_take_initiative``: gather children that want initiative and
  prefer the one that most recently held it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import structlog

from ..acts.initiative import DisambiguateTargetAct
from ..errors import (
    ConfigurationError,
    DisambiguationInconsistencyError,
    ProtocolViolationError,
    StateConsistencyError,
)
from ..intents.base import parse_request
from ..intents.control_intents import TARGET_SLOT, Action, unpack_general_control_intent
from ..intents.predicates import is_control_intent, is_fallback, is_general_control_intent
from ..utils.guards import fail_if, false_if_guard_failed, ok_if
from .base import Control, ControlState, InitiativeHandler, InputHandler

if TYPE_CHECKING:
    from .input import ControlInput
    from .result import ControlResultBuilder

logger = structlog.get_logger(__name__)


class ImplicitResolutionStrategy(str, Enum):
    """How a container picks among several children that can handle an input."""

    FIRST_MATCH = "first_match"  # Declaration order
    MOST_RECENT_INITIATIVE = "most_recent_initiative"  # Bias to the child that last asked a question


# =============================================================================
# State
# =============================================================================


@dataclass
class MostRecentInitiative:
    control_id: str
    turn_number: int


@dataclass
class DisambiguationCandidate:
    control_id: str
    specific_target: str


@dataclass
class ActiveDisambiguation:
    """A pending "which one did you mean?" question."""

    candidates: List[DisambiguationCandidate] = field(default_factory=list)
    ambiguous_request: Dict[str, Any] = field(default_factory=dict)
    turn_number: int = 0


@dataclass
class ContainerControlState(ControlState):
    most_recent_child_initiative: Optional[MostRecentInitiative] = None
    active_disambiguation: Optional[ActiveDisambiguation] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContainerControlState":
        if not isinstance(data, dict):
            raise StateConsistencyError(f"{cls.__name__} expects a dict, got {type(data).__name__}")
        data = dict(data)
        try:
            mri = data.pop("most_recent_child_initiative", None)
            disambiguation = data.pop("active_disambiguation", None)
            state = super().from_dict(data)
            if mri is not None:
                state.most_recent_child_initiative = MostRecentInitiative(**mri)
            if disambiguation is not None:
                candidates = [DisambiguationCandidate(**c) for c in disambiguation.get("candidates", [])]
                state.active_disambiguation = ActiveDisambiguation(
                    candidates=candidates,
                    ambiguous_request=disambiguation.get("ambiguous_request", {}),
                    turn_number=disambiguation.get("turn_number", 0),
                )
        except TypeError as e:
            raise StateConsistencyError(f"Malformed container state: {e}") from e
        return state


# =============================================================================
# Container
# =============================================================================


class ContainerControl(Control):
    """
    Control with children.

    Args:
        id: Control id.
        children: Initial children, in declaration order.
        explicit_target_disambiguation: Ask the user which child they meant
            when several can handle an input. Every candidate must then
            expose a distinct ``get_specific_target()``.
        implicit_resolution_strategy: Tie-break when not asking.
    """

    state_class = ContainerControlState

    def __init__(
        self,
        id: str,
        children: Optional[Sequence[Control]] = None,
        explicit_target_disambiguation: bool = False,
        implicit_resolution_strategy: ImplicitResolutionStrategy = ImplicitResolutionStrategy.MOST_RECENT_INITIATIVE,
        **kwargs: Any,
    ):
        super().__init__(id, **kwargs)
        self._children: List[Control] = []
        self.explicit_target_disambiguation = explicit_target_disambiguation
        self.implicit_resolution_strategy = ImplicitResolutionStrategy(implicit_resolution_strategy)

        self.handling_candidates: List[Control] = []
        self.selected_handling_child: Optional[Control] = None
        self.selected_initiative_child: Optional[Control] = None
        self._disambiguation_answer: Optional[DisambiguationCandidate] = None

        for child in children or []:
            self.add_child(child)

    def add_child(self, child: Control) -> "ContainerControl":
        self._children.append(child)
        return self

    @property
    def children(self) -> List[Control]:
        return self._children

    def is_container(self) -> bool:
        return True

    def reestablish_state(self, state: Optional[Dict[str, Any]], control_state_map: Dict[str, Any]) -> None:
        super().reestablish_state(state, control_state_map)
        for child in self._children:
            child.reestablish_state(control_state_map.get(child.id), control_state_map)

    def child_by_id(self, control_id: str) -> Optional[Control]:
        return next((c for c in self._children if c.id == control_id), None)

    def most_recent_initiative_child(self) -> Optional[Control]:
        record = self.state.most_recent_child_initiative
        if record is None:
            return None
        return self.child_by_id(record.control_id)

    # -------------------------------------------------------------------------
    # Handling
    # -------------------------------------------------------------------------

    def standard_input_handlers(self) -> List[InputHandler]:
        return [
            InputHandler("target_ambiguity", self.is_target_ambiguity, self.handle_target_ambiguity),
            InputHandler(
                "answer_to_disambiguation",
                self.is_answer_to_disambiguation,
                self.handle_answer_to_disambiguation,
            ),
            InputHandler("delegate_to_child", self.can_delegate_to_child, self.handle_by_child),
        ]

    async def gather_handling_candidates(self, input: "ControlInput") -> List[Control]:
        candidates = []
        for child in self._children:
            if await child.can_handle(input):
                candidates.append(child)
        logger.debug(
            "handling_candidates_gathered",
            control_id=self.id,
            candidates=[c.id for c in candidates],
        )
        return candidates

    async def can_handle(self, input: "ControlInput") -> bool:
        self.selected_handling_child = None
        self._disambiguation_answer = None
        self.handling_candidates = await self.gather_handling_candidates(input)
        return await self.evaluate_input_handlers(input, self.standard_input_handlers())

    async def handle(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        await self.run_handle_func(input, result_builder)

    def decide_handling_child(self, candidates: List[Control], input: "ControlInput") -> Control:
        """Pick one of several candidates without asking the user."""
        if self.implicit_resolution_strategy == ImplicitResolutionStrategy.MOST_RECENT_INITIATIVE:
            mri_child = self.most_recent_initiative_child()
            if mri_child is not None and mri_child in candidates:
                return mri_child
        return candidates[0]

    @false_if_guard_failed
    def can_delegate_to_child(self, input: "ControlInput") -> bool:
        candidates = self.handling_candidates
        if is_fallback(input):
            mri_child = self.most_recent_initiative_child()
            ok_if(mri_child is not None and mri_child in candidates)
            self.selected_handling_child = mri_child
            return True

        ok_if(len(candidates) > 0)
        self.selected_handling_child = self.decide_handling_child(candidates, input)
        return True

    async def handle_by_child(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        child = self.selected_handling_child
        if child is None:
            raise ProtocolViolationError(
                f"ContainerControl[{self.id}]: no child selected to handle the input",
                control_id=self.id,
            )
        logger.debug("delegating_to_child", control_id=self.id, child_id=child.id)
        self.state.active_disambiguation = None
        await child.handle(input, result_builder)
        self._record_initiative_if_taken(child, input, result_builder)

    def _record_initiative_if_taken(
        self,
        child: Control,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
    ) -> None:
        if result_builder.has_initiative_act():
            self.state.most_recent_child_initiative = MostRecentInitiative(child.id, input.turn_number)

    # -------------------------------------------------------------------------
    # Explicit disambiguation
    # -------------------------------------------------------------------------

    @staticmethod
    def _input_target(input: "ControlInput") -> Optional[str]:
        intent = input.intent
        return intent.slot_value(TARGET_SLOT) if intent is not None else None

    @false_if_guard_failed
    def is_target_ambiguity(self, input: "ControlInput") -> bool:
        candidates = self.handling_candidates
        ok_if(len(candidates) > 1)
        ok_if(self.explicit_target_disambiguation is True)
        fail_if(is_fallback(input))
        ok_if(is_control_intent(input))

        target = self._input_target(input)
        if target is not None:
            ok_if(all(target in c.get_all_targets() for c in candidates))

        labels = [c.get_specific_target() for c in candidates]
        if any(label is None for label in labels):
            missing = [c.id for c, label in zip(candidates, labels) if label is None]
            raise ConfigurationError(
                f"ContainerControl[{self.id}]: children {missing} need a specific target "
                "for explicit disambiguation",
                control_id=self.id,
            )
        if len(set(labels)) != len(labels):
            raise ConfigurationError(
                f"ContainerControl[{self.id}]: specific targets {labels} are not distinct",
                control_id=self.id,
            )
        return True

    def handle_target_ambiguity(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        candidates = [DisambiguationCandidate(c.id, c.get_specific_target()) for c in self.handling_candidates]
        self.state.active_disambiguation = ActiveDisambiguation(
            candidates=candidates,
            ambiguous_request=input.request.model_dump(mode="json"),
            turn_number=input.turn_number,
        )
        logger.info(
            "disambiguation_started",
            control_id=self.id,
            candidates=[c.control_id for c in candidates],
            turn_number=input.turn_number,
        )
        result_builder.add_act(
            DisambiguateTargetAct(
                self.id,
                candidates=[asdict(c) for c in candidates],
                rendered_targets=[c.specific_target for c in candidates],
            )
        )

    @false_if_guard_failed
    def is_answer_to_disambiguation(self, input: "ControlInput") -> bool:
        record = self.state.active_disambiguation
        ok_if(record is not None)
        ok_if(is_general_control_intent(input))
        payload = unpack_general_control_intent(input.intent)
        ok_if(payload.action is None or payload.action == Action.SELECT)
        ok_if(payload.target is not None)

        matches = [c for c in record.candidates if c.specific_target == payload.target]
        ok_if(len(matches) == 1)
        ok_if(self.child_by_id(matches[0].control_id) is not None)
        self._disambiguation_answer = matches[0]
        return True

    async def handle_answer_to_disambiguation(
        self,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
    ) -> None:
        record = self.state.active_disambiguation
        answer = self._disambiguation_answer
        if record is None or answer is None:
            raise ProtocolViolationError(
                f"ContainerControl[{self.id}]: no disambiguation answer selected",
                control_id=self.id,
            )
        child = self.child_by_id(answer.control_id)
        replayed = input.replace_request(parse_request(record.ambiguous_request))
        self.state.active_disambiguation = None

        logger.info(
            "disambiguation_resolved",
            control_id=self.id,
            child_id=child.id,
            turn_number=input.turn_number,
        )
        if not await child.can_handle(replayed):
            raise DisambiguationInconsistencyError(
                f"ContainerControl[{self.id}]: child {child.id} rejected the request it was chosen for",
                control_id=child.id,
            )
        await child.handle(replayed, result_builder)
        self._record_initiative_if_taken(child, input, result_builder)

    # -------------------------------------------------------------------------
    # Initiative
    # -------------------------------------------------------------------------

    async def can_take_initiative(self, input: "ControlInput") -> bool:
        return await self.evaluate_initiative_handlers(
            input,
            [
                InitiativeHandler(
                    "delegate_initiative_to_child",
                    self.can_delegate_initiative_to_child,
                    self.take_initiative_by_child,
                )
            ],
        )

    async def take_initiative(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        await self.run_initiative_func(input, result_builder)

    async def gather_initiative_candidates(self, input: "ControlInput") -> List[Control]:
        candidates = []
        for child in self._children:
            if await child.can_take_initiative(input):
                candidates.append(child)
        return candidates

    def decide_initiative_child(self, candidates: List[Control], input: "ControlInput") -> Control:
        """Prefer the child that most recently took initiative, else the first."""
        mri_child = self.most_recent_initiative_child()
        if mri_child is not None and mri_child in candidates:
            return mri_child
        return candidates[0]

    async def can_delegate_initiative_to_child(self, input: "ControlInput") -> bool:
        self.selected_initiative_child = None
        candidates = await self.gather_initiative_candidates(input)
        if not candidates:
            return False
        self.selected_initiative_child = self.decide_initiative_child(candidates, input)
        return True

    async def take_initiative_by_child(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        child = self.selected_initiative_child
        if child is None:
            raise ProtocolViolationError(
                f"ContainerControl[{self.id}]: no child selected to take initiative",
                control_id=self.id,
            )
        await child.take_initiative(input, result_builder)
        self.state.most_recent_child_initiative = MostRecentInitiative(child.id, input.turn_number)

    # -------------------------------------------------------------------------
    # Description
    # -------------------------------------------------------------------------

    def stringify_state_for_diagram(self) -> str:
        if self.state.active_disambiguation is not None:
            ids = [c.control_id for c in self.state.active_disambiguation.candidates]
            return f"[disambiguating: {', '.join(ids)}]"
        return ""
