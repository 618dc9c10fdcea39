"""
Value Acquisition

The set -> validate -> confirm/disconfirm -> suggest -> settle cycle shared
by every leaf control. :class:`ValueAcquisition` is a component: a leaf
control owns one, exposes its input and initiative handlers, and supplies
the control-specific pieces (slot type, value parsing, elicitation acts,
misunderstanding suggestions).

Named input transitions, in evaluation order:

    set_with_value, change_with_value, set_without_value,
    change_without_value, bare_value, affirm_with_value,
    disaffirm_with_value, confirmation_affirmed, suggestion_accepted,
    confirmation_disaffirmed, clear_value

Initiative transitions: confirm_value, fix_invalid_value, elicit_value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

import structlog

from ..acts.base import InitiativeAct
from ..acts.content import (
    InvalidValueAct,
    ValueChangedAct,
    ValueClearedAct,
    ValueConfirmedAct,
    ValueDisconfirmedAct,
    ValueSetAct,
)
from ..acts.initiative import (
    ConfirmValueAct,
    RequestChangedValueAct,
    RequestValueAct,
    SuggestValueAct,
)
from ..errors import ConfigurationError
from ..intents.control_intents import (
    Action,
    Feedback,
    Target,
    ValueControlPayload,
    unpack_general_control_intent,
    unpack_value_control_intent,
)
from ..intents.predicates import (
    action_is_match,
    feedback_is_match,
    feedback_is_match_or_none,
    is_bare_no,
    is_bare_yes,
    is_general_control_intent,
    is_value_control_intent,
    target_is_match_or_none,
)
from ..utils.evaluation import BoolProp, evaluate_bool_prop
from ..utils.guards import false_if_guard_failed, ok_if
from .base import Control, ControlState, InitiativeHandler, InputHandler
from .validation import ValidationFailure, ValidationProp, ValidationResult, evaluate_validation

if TYPE_CHECKING:
    from .input import ControlInput
    from .result import ControlResultBuilder

logger = structlog.get_logger(__name__)

FEEDBACK_TYPES = [Feedback.AFFIRM, Feedback.DISAFFIRM]

ValueRenderer = Callable[[Any, "ControlInput"], str]
ElicitationActFactory = Callable[[str, "ControlInput"], InitiativeAct]


def default_value_renderer(value: Any, input: "ControlInput") -> str:
    return str(value)


def normalize_slot_values(values: Sequence[Any]) -> List[str]:
    return [v.value if isinstance(v, (Action, Feedback, Target)) else str(v) for v in values]


# =============================================================================
# State and configuration
# =============================================================================


@dataclass
class ValueControlState(ControlState):
    """
    State shared by all value-acquiring controls.

    Attributes:
        value: Current value, ``None`` when undefined.
        previous_value: Value before the most recent assignment.
        er_match: Whether entity resolution matched the current value.
        confirmed: Set only after explicit, re-validated confirmation.
        last_initiative: Name of the most recent initiative act. Gives
            meaning to a later bare yes/no.
        elicitation_action: ``set`` or ``change``; attributes a later bare
            value.
    """

    value: Any = None
    previous_value: Any = None
    er_match: Optional[bool] = None
    confirmed: bool = False
    last_initiative: Optional[str] = None
    elicitation_action: Optional[str] = None


@dataclass
class InteractionActions:
    """``action`` slot values mapped to each kind of request."""

    set: List[str] = field(default_factory=lambda: [Action.SET.value, Action.SELECT.value])
    change: List[str] = field(default_factory=lambda: [Action.CHANGE.value])
    clear: List[str] = field(default_factory=lambda: [Action.CLEAR.value])


# =============================================================================
# Component
# =============================================================================


class ValueAcquisition:
    """
    The value-acquisition state machine, operating on ``owner.state``.

    Args:
        owner: The control whose state this component reads and writes.
        slot_type: Slot type of the value control intent, e.g. ``AMAZON.NUMBER``.
        required: Whether the control elicits a missing value (bool or
            ``(state, input)`` predicate).
        confirmation_required: Whether a value must be explicitly confirmed
            (bool or ``(state, input)`` predicate).
        validation: One ``(state, input)`` validator or an ordered list.
        targets: ``target`` slot values this control answers to.
        actions: ``action`` slot values for set/change/clear.
        value_renderer: ``(value, input) -> str`` for act payloads.
        parse_value: Converts the slot value string to the stored value.
        most_likely_misunderstanding: ``value -> alternative or None``,
            offered once after a disconfirmation.
        elicitation_act_factory: ``(action, input) -> InitiativeAct`` used
            to ask for a value.
    """

    def __init__(
        self,
        owner: Control,
        slot_type: str,
        required: BoolProp = True,
        confirmation_required: BoolProp = False,
        validation: ValidationProp = None,
        targets: Optional[Sequence[str]] = None,
        actions: Optional[InteractionActions] = None,
        value_renderer: Optional[ValueRenderer] = None,
        parse_value: Callable[[str], Any] = str,
        most_likely_misunderstanding: Optional[Callable[[Any], Any]] = None,
        elicitation_act_factory: Optional[ElicitationActFactory] = None,
    ):
        self.owner = owner
        self.slot_type = slot_type
        self.required = required
        self.confirmation_required = confirmation_required
        self.validation = validation
        self.targets = normalize_slot_values(targets if targets is not None else [Target.IT, owner.id])
        self.actions = actions or InteractionActions()
        self.value_renderer = value_renderer or default_value_renderer
        self.parse_value = parse_value
        self.most_likely_misunderstanding = most_likely_misunderstanding
        self.elicitation_act_factory = elicitation_act_factory or self.default_elicitation_act

    @property
    def state(self) -> ValueControlState:
        return self.owner.state

    @property
    def control_id(self) -> str:
        return self.owner.id

    def has_value(self) -> bool:
        return self.state.value is not None

    def payload_value(self, value: Any) -> Any:
        """Value as reported in act payloads."""
        return value

    def render(self, value: Any, input: "ControlInput") -> Optional[str]:
        if value is None:
            return None
        return self.value_renderer(self.payload_value(value), input)

    # -------------------------------------------------------------------------
    # State operations
    # -------------------------------------------------------------------------

    def set_value(self, value: Any, er_match: Optional[bool] = None) -> None:
        """Assign a value. Always clears confirmation."""
        self.state.previous_value = self.state.value
        self.state.value = value
        self.state.er_match = er_match
        self.state.confirmed = False

    def clear(self) -> None:
        self.owner.state = self.owner.state_class()

    async def validate(self, input: "ControlInput") -> ValidationResult:
        return await evaluate_validation(self.validation, self.state, input)

    async def is_required(self, input: "ControlInput") -> bool:
        return await evaluate_bool_prop(self.required, self.state, input)

    async def is_confirmation_required(self, input: "ControlInput") -> bool:
        if not self.has_value() or self.state.confirmed:
            return False
        return await evaluate_bool_prop(self.confirmation_required, self.state, input)

    def suggest(self, value: Any) -> Any:
        if self.most_likely_misunderstanding is None or value is None:
            return None
        return self.most_likely_misunderstanding(value)

    # -------------------------------------------------------------------------
    # Act helpers
    # -------------------------------------------------------------------------

    def add_initiative_act(self, act: InitiativeAct, result_builder: "ControlResultBuilder") -> None:
        self.state.last_initiative = act.name
        result_builder.add_act(act)

    def default_elicitation_act(self, action: str, input: "ControlInput") -> InitiativeAct:
        if action == Action.CHANGE:
            return RequestChangedValueAct(
                self.control_id,
                current_value=self.payload_value(self.state.value),
                rendered_value=self.render(self.state.value, input),
            )
        return RequestValueAct(self.control_id)

    def ask_elicitation_question(
        self,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
        elicitation_action: str,
    ) -> None:
        if elicitation_action not in (Action.SET, Action.CHANGE):
            raise ConfigurationError(
                f"Unknown elicitation action: {elicitation_action}",
                control_id=self.control_id,
            )
        self.state.elicitation_action = Action(elicitation_action).value
        self.add_initiative_act(self.elicitation_act_factory(elicitation_action, input), result_builder)

    def _invalid_value_act(self, failure: ValidationFailure, input: "ControlInput") -> InvalidValueAct:
        return InvalidValueAct(
            self.control_id,
            value=self.payload_value(self.state.value),
            rendered_value=self.render(self.state.value, input),
            reason_code=failure.reason_code,
            rendered_reason=failure.rendered_reason,
        )

    def _confirm_value_act(self, input: "ControlInput") -> ConfirmValueAct:
        return ConfirmValueAct(
            self.control_id,
            value=self.payload_value(self.state.value),
            rendered_value=self.render(self.state.value, input),
        )

    async def validate_and_add_acts(
        self,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
        elicitation_action: str,
    ) -> None:
        """Validate the current value; report it, or report the failure and re-elicit."""
        result = await self.validate(input)
        if result is not True:
            self.state.confirmed = False
            result_builder.add_act(self._invalid_value_act(result, input))
            self.ask_elicitation_question(input, result_builder, elicitation_action)
            return

        if elicitation_action == Action.SET:
            result_builder.add_act(
                ValueSetAct(
                    self.control_id,
                    value=self.payload_value(self.state.value),
                    rendered_value=self.render(self.state.value, input),
                )
            )
        elif elicitation_action == Action.CHANGE:
            result_builder.add_act(
                ValueChangedAct(
                    self.control_id,
                    value=self.payload_value(self.state.value),
                    rendered_value=self.render(self.state.value, input),
                    previous_value=self.payload_value(self.state.previous_value),
                    rendered_previous_value=self.render(self.state.previous_value, input),
                )
            )
        else:
            raise ConfigurationError(
                f"Unknown elicitation action: {elicitation_action}",
                control_id=self.control_id,
            )

    async def confirm_or_validate(
        self,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
        elicitation_action: str,
    ) -> None:
        """After an assignment: ask for confirmation if required, else validate and report."""
        if await self.is_confirmation_required(input):
            self.add_initiative_act(self._confirm_value_act(input), result_builder)
        else:
            await self.validate_and_add_acts(input, result_builder, elicitation_action)

    async def affirm_current_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        """Mark the current value confirmed, provided it still validates."""
        if not self.has_value():
            raise ConfigurationError(
                "Confirmation affirmed but there is no value awaiting confirmation",
                control_id=self.control_id,
            )
        result = await self.validate(input)
        if result is True:
            self.state.confirmed = True
            self.state.last_initiative = None
            result_builder.add_act(
                ValueConfirmedAct(
                    self.control_id,
                    value=self.payload_value(self.state.value),
                    rendered_value=self.render(self.state.value, input),
                )
            )
        else:
            self.state.confirmed = False
            result_builder.add_act(self._invalid_value_act(result, input))
            self.ask_elicitation_question(input, result_builder, Action.SET)

    # -------------------------------------------------------------------------
    # Input handlers
    # -------------------------------------------------------------------------

    def input_handlers(self) -> List[InputHandler]:
        return [
            InputHandler("set_with_value", self.is_set_with_value, self.handle_set_with_value),
            InputHandler("change_with_value", self.is_change_with_value, self.handle_change_with_value),
            InputHandler("set_without_value", self.is_set_without_value, self.handle_set_without_value),
            InputHandler("change_without_value", self.is_change_without_value, self.handle_change_without_value),
            InputHandler("bare_value", self.is_bare_value, self.handle_bare_value),
            InputHandler("affirm_with_value", self.is_affirm_with_value, self.handle_affirm_with_value),
            InputHandler("disaffirm_with_value", self.is_disaffirm_with_value, self.handle_disaffirm_with_value),
            InputHandler("confirmation_affirmed", self.is_confirmation_affirmed, self.handle_confirmation_affirmed),
            InputHandler("suggestion_accepted", self.is_suggestion_accepted, self.handle_suggestion_accepted),
            InputHandler(
                "confirmation_disaffirmed",
                self.is_confirmation_disaffirmed,
                self.handle_confirmation_disaffirmed,
            ),
            InputHandler("clear_value", self.is_clear_value, self.handle_clear_value),
        ]

    def _is_parsable(self, value: str) -> bool:
        try:
            self.parse_value(value)
        except (TypeError, ValueError):
            return False
        return True

    def value_payload(self, input: "ControlInput") -> ValueControlPayload:
        """Unpack this control's value intent; raises GuardFailed for anything else."""
        ok_if(is_value_control_intent(input, self.slot_type))
        payload = unpack_value_control_intent(input.intent)
        ok_if(payload.value is not None)
        ok_if(self._is_parsable(payload.value))
        return payload

    def _parsed_value(self, input: "ControlInput") -> tuple:
        payload = unpack_value_control_intent(input.intent)
        return self.parse_value(payload.value), payload.er_match

    @false_if_guard_failed
    def is_set_with_value(self, input: "ControlInput") -> bool:
        payload = self.value_payload(input)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.actions.set))
        return True

    async def handle_set_with_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        value, er_match = self._parsed_value(input)
        self.set_value(value, er_match)
        await self.confirm_or_validate(input, result_builder, Action.SET)

    @false_if_guard_failed
    def is_change_with_value(self, input: "ControlInput") -> bool:
        payload = self.value_payload(input)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.actions.change))
        return True

    async def handle_change_with_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        value, er_match = self._parsed_value(input)
        self.set_value(value, er_match)
        await self.confirm_or_validate(input, result_builder, Action.CHANGE)

    @false_if_guard_failed
    def is_set_without_value(self, input: "ControlInput") -> bool:
        ok_if(is_general_control_intent(input))
        payload = unpack_general_control_intent(input.intent)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.actions.set))
        return True

    def handle_set_without_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.ask_elicitation_question(input, result_builder, Action.SET)

    @false_if_guard_failed
    def is_change_without_value(self, input: "ControlInput") -> bool:
        ok_if(is_general_control_intent(input))
        payload = unpack_general_control_intent(input.intent)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.actions.change))
        return True

    def handle_change_without_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.ask_elicitation_question(input, result_builder, Action.CHANGE)

    @false_if_guard_failed
    def is_bare_value(self, input: "ControlInput") -> bool:
        payload = self.value_payload(input)
        ok_if(payload.feedback is None)
        ok_if(payload.action is None)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        return True

    async def handle_bare_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        value, er_match = self._parsed_value(input)
        self.set_value(value, er_match)
        await self.confirm_or_validate(input, result_builder, self.state.elicitation_action or Action.SET)

    @false_if_guard_failed
    def is_affirm_with_value(self, input: "ControlInput") -> bool:
        payload = self.value_payload(input)
        ok_if(feedback_is_match(payload.feedback, [Feedback.AFFIRM]))
        ok_if(payload.action is None)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        return True

    async def handle_affirm_with_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        value, er_match = self._parsed_value(input)
        if value != self.state.value:
            self.set_value(value, er_match)
            self.add_initiative_act(self._confirm_value_act(input), result_builder)
        else:
            await self.affirm_current_value(input, result_builder)

    @false_if_guard_failed
    def is_disaffirm_with_value(self, input: "ControlInput") -> bool:
        payload = self.value_payload(input)
        ok_if(feedback_is_match(payload.feedback, [Feedback.DISAFFIRM]))
        ok_if(payload.action is None)
        ok_if(target_is_match_or_none(payload.target, self.targets))
        return True

    def handle_disaffirm_with_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        if self.has_value():
            result_builder.add_act(
                ValueDisconfirmedAct(
                    self.control_id,
                    value=self.payload_value(self.state.value),
                    rendered_value=self.render(self.state.value, input),
                )
            )
        value, er_match = self._parsed_value(input)
        if value != self.state.value:
            self.set_value(value, er_match)
            self.add_initiative_act(self._confirm_value_act(input), result_builder)
        else:
            self.clear()
            self.ask_elicitation_question(input, result_builder, Action.SET)

    @false_if_guard_failed
    def is_confirmation_affirmed(self, input: "ControlInput") -> bool:
        ok_if(is_bare_yes(input))
        ok_if(self.state.last_initiative == ConfirmValueAct.act_name())
        return True

    async def handle_confirmation_affirmed(
        self,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
    ) -> None:
        await self.affirm_current_value(input, result_builder)

    @false_if_guard_failed
    def is_suggestion_accepted(self, input: "ControlInput") -> bool:
        ok_if(is_bare_yes(input))
        ok_if(self.state.last_initiative == SuggestValueAct.act_name())
        return True

    async def handle_suggestion_accepted(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        await self.affirm_current_value(input, result_builder)

    @false_if_guard_failed
    def is_confirmation_disaffirmed(self, input: "ControlInput") -> bool:
        ok_if(is_bare_no(input))
        ok_if(self.state.last_initiative in (ConfirmValueAct.act_name(), SuggestValueAct.act_name()))
        return True

    def handle_confirmation_disaffirmed(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        result_builder.add_act(
            ValueDisconfirmedAct(
                self.control_id,
                value=self.payload_value(self.state.value),
                rendered_value=self.render(self.state.value, input),
            )
        )
        suggestion = self.suggest(self.state.value)
        already_suggested = self.state.last_initiative == SuggestValueAct.act_name()
        if suggestion is not None and suggestion != self.state.value and not already_suggested:
            self.set_value(suggestion)
            self.add_initiative_act(
                SuggestValueAct(
                    self.control_id,
                    value=suggestion,
                    rendered_value=self.render(suggestion, input),
                ),
                result_builder,
            )
        else:
            self.clear()
            self.ask_elicitation_question(input, result_builder, Action.SET)

    @false_if_guard_failed
    def is_clear_value(self, input: "ControlInput") -> bool:
        ok_if(is_general_control_intent(input))
        payload = unpack_general_control_intent(input.intent)
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.actions.clear))
        ok_if(target_is_match_or_none(payload.target, self.targets))
        return True

    def handle_clear_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        result_builder.add_act(
            ValueClearedAct(
                self.control_id,
                value=self.payload_value(self.state.value),
                rendered_value=self.render(self.state.value, input),
            )
        )
        self.clear()

    # -------------------------------------------------------------------------
    # Initiative handlers
    # -------------------------------------------------------------------------

    def initiative_handlers(self) -> List[InitiativeHandler]:
        return [
            InitiativeHandler("confirm_value", self.wants_to_confirm_value, self.confirm_value),
            InitiativeHandler("fix_invalid_value", self.wants_to_fix_invalid_value, self.fix_invalid_value),
            InitiativeHandler("elicit_value", self.wants_to_elicit_value, self.elicit_value),
        ]

    async def wants_to_confirm_value(self, input: "ControlInput") -> bool:
        if not await self.is_confirmation_required(input):
            return False
        # an invalid value is fixed, not confirmed
        return (await self.validate(input)) is True

    def confirm_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.add_initiative_act(self._confirm_value_act(input), result_builder)

    async def wants_to_fix_invalid_value(self, input: "ControlInput") -> bool:
        if not self.has_value():
            return False
        return (await self.validate(input)) is not True

    async def fix_invalid_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        result = await self.validate(input)
        if result is not True:
            result_builder.add_act(self._invalid_value_act(result, input))
        self.ask_elicitation_question(input, result_builder, Action.CHANGE)

    async def wants_to_elicit_value(self, input: "ControlInput") -> bool:
        return not self.has_value() and await self.is_required(input)

    def elicit_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.ask_elicitation_question(input, result_builder, Action.SET)


# =============================================================================
# Leaf control base
# =============================================================================


class ValueAcquisitionControl(Control):
    """
    Base for leaf controls built on :class:`ValueAcquisition`.

    Subclasses create ``self.acquisition`` in ``__init__`` and may add
    control-specific handlers through :meth:`extra_input_handlers`.
    """

    state_class = ValueControlState
    acquisition: ValueAcquisition

    def __init__(self, id: str, target_for_disambiguation: Optional[str] = None, **kwargs: Any):
        super().__init__(id, **kwargs)
        self.target_for_disambiguation = target_for_disambiguation

    def extra_input_handlers(self) -> List[InputHandler]:
        return []

    def input_handlers(self) -> List[InputHandler]:
        return self.acquisition.input_handlers() + self.extra_input_handlers()

    async def can_handle(self, input: "ControlInput") -> bool:
        return await self.evaluate_input_handlers(input, self.input_handlers())

    async def handle(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        logger.debug("control_handle", control_id=self.id)
        await self.run_handle_func(input, result_builder)

    async def can_take_initiative(self, input: "ControlInput") -> bool:
        return await self.evaluate_initiative_handlers(input, self.acquisition.initiative_handlers())

    async def take_initiative(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        await self.run_initiative_func(input, result_builder)

    @property
    def value(self) -> Any:
        return self.state.value

    def set_value(self, value: Any, er_match: Optional[bool] = None) -> None:
        self.acquisition.set_value(value, er_match)

    def clear(self) -> None:
        self.acquisition.clear()

    def get_all_targets(self) -> List[str]:
        return list(self.acquisition.targets)

    def get_specific_target(self) -> Optional[str]:
        return self.target_for_disambiguation

    def stringify_state_for_diagram(self) -> str:
        text = "<none>" if self.state.value is None else str(self.state.value)
        if self.state.elicitation_action is not None:
            text += f"[eliciting, {self.state.elicitation_action}]"
        if self.state.confirmed:
            text += "[confirmed]"
        return text
