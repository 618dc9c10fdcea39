"""
Multi-Value List Control

Collects several items from a list of ids: "add cheese and ham", "remove
the ham", "clear my toppings". Each item is stored as ``{"id", "er_match"}``.

Validators receive ``(values, input)`` where ``values`` is the list of
items being added (or, when confirming, the whole list) and return
``True`` or a :class:`MultiValueValidationFailure` naming the rejected ids.
Invalid items are filtered out of an add; the valid ones are still added.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import structlog

from ..acts.base import InitiativeAct
from ..acts.content import (
    InvalidRemoveValueAct,
    InvalidValueAct,
    ValueAddedAct,
    ValueRemovedAct,
)
from ..acts.initiative import (
    RequestChangedValueByListAct,
    RequestRemovedValueByListAct,
    RequestValueByListAct,
)
from ..config import get_settings
from ..controls.acquisition import (
    FEEDBACK_TYPES,
    ValueAcquisition,
    ValueAcquisitionControl,
    ValueControlState,
    ValueRenderer,
)
from ..controls.base import InputHandler
from ..controls.validation import ValidationFailure
from ..intents.control_intents import (
    Action,
    Target,
    unpack_general_control_intent,
    unpack_value_control_intent,
)
from ..intents.predicates import (
    action_is_match,
    action_is_match_or_none,
    feedback_is_match_or_none,
    is_general_control_intent,
    is_user_event_for_control,
    is_value_control_intent,
    target_is_match_or_none,
)
from ..utils.evaluation import BoolProp, evaluate_list_prop, maybe_await
from ..utils.guards import false_if_guard_failed, ok_if
from .list_control import ListItemIds

if TYPE_CHECKING:
    from ..controls.input import ControlInput
    from ..controls.result import ControlResultBuilder

logger = structlog.get_logger(__name__)

TOUCH_SELECT = "Select"
TOUCH_TOGGLE = "Toggle"
TOUCH_REMOVE = "Remove"
TOUCH_COMPLETE = "Complete"


@dataclass
class MultiValueValidationFailure:
    invalid_values: List[str] = field(default_factory=list)
    reason_code: Optional[str] = None
    rendered_reason: Optional[str] = None


MultiValueResult = Union[bool, MultiValueValidationFailure]
MultiValueValidator = Callable[[List[Dict[str, Any]], Any], Union[MultiValueResult, Awaitable[MultiValueResult]]]


@dataclass
class MultiValueActions:
    add: List[str] = field(default_factory=lambda: [Action.ADD.value, Action.SELECT.value])
    remove: List[str] = field(default_factory=lambda: [Action.REMOVE.value])
    clear: List[str] = field(default_factory=lambda: [Action.CLEAR.value])
    set: List[str] = field(default_factory=lambda: [Action.SET.value])


@dataclass
class MultiValueListControlState(ValueControlState):
    spoken_items_page_index: int = 0


class MultiValueAcquisition(ValueAcquisition):
    """Acquisition cycle over a list of items; acts report item ids."""

    def has_value(self) -> bool:
        return bool(self.state.value)

    def payload_value(self, value: Any) -> Any:
        if value is None:
            return None
        return [item["id"] for item in value]


class MultiValueListControl(ValueAcquisitionControl):
    """
    Control for choosing several items from a list.

    Args:
        id: Control id.
        slot_type: Slot type whose values are the list item ids.
        list_item_ids: Ids offered to the user, or ``input -> ids``.
        page_size: Items offered per prompt.
        required: Elicit items while the list is empty.
        confirmation_required: Confirm the whole list before it is settled.
        validation: ``(values, input)`` validator or list of validators.
        targets: ``target`` slot values; defaults to ``choice``, ``it`` and the id.
        actions: Action slot values for add/remove/clear.
        value_renderer: ``(ids, input) -> str`` for a list of ids.
    """

    state_class = MultiValueListControlState

    def __init__(
        self,
        id: str,
        slot_type: str,
        list_item_ids: ListItemIds,
        page_size: Optional[int] = None,
        required: BoolProp = True,
        confirmation_required: BoolProp = False,
        validation: Union[None, MultiValueValidator, Sequence[MultiValueValidator]] = None,
        targets: Optional[Sequence[str]] = None,
        actions: Optional[MultiValueActions] = None,
        value_renderer: Optional[ValueRenderer] = None,
        target_for_disambiguation: Optional[str] = None,
        custom_handlers: Optional[Sequence[InputHandler]] = None,
    ):
        super().__init__(id, target_for_disambiguation=target_for_disambiguation, custom_handlers=custom_handlers)
        self.list_item_ids = list_item_ids
        self.page_size = page_size or get_settings().default_page_size
        self.multi_actions = actions or MultiValueActions()
        if validation is None:
            self.item_validators: List[MultiValueValidator] = []
        elif callable(validation):
            self.item_validators = [validation]
        else:
            self.item_validators = list(validation)

        self.acquisition = MultiValueAcquisition(
            self,
            slot_type=slot_type,
            required=required,
            confirmation_required=confirmation_required,
            validation=self._validate_state,
            targets=targets if targets is not None else [Target.CHOICE, Target.IT, id],
            value_renderer=value_renderer or (lambda ids, input: ", ".join(str(i) for i in ids)),
            elicitation_act_factory=self.build_elicitation_act,
        )
        # clear/confirm transitions come from the shared cycle
        self.acquisition.actions.clear = list(self.multi_actions.clear)

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    def get_slot_ids(self) -> List[str]:
        return [item["id"] for item in self.state.value or []]

    def add_value(self, item: Dict[str, Any]) -> None:
        if self.state.value is None:
            self.state.value = []
        self.state.value.append(item)
        self.state.confirmed = False

    def render_ids(self, ids: List[str], input: "ControlInput") -> str:
        return self.acquisition.value_renderer(ids, input)

    def get_choices_list(self, input: "ControlInput") -> List[str]:
        return evaluate_list_prop(self.list_item_ids, input)

    def get_choices_from_active_page(self, all_choices: List[str]) -> List[str]:
        start = self.state.spoken_items_page_index
        return all_choices[start:start + self.page_size]

    async def validate_items(self, values: List[Dict[str, Any]], input: "ControlInput") -> MultiValueResult:
        for validator in self.item_validators:
            result = await maybe_await(validator(values, input))
            if result is not True:
                if isinstance(result, MultiValueValidationFailure):
                    return result
                return MultiValueValidationFailure(invalid_values=[v["id"] for v in values])
        return True

    async def _validate_state(self, state: MultiValueListControlState, input: "ControlInput") -> Any:
        result = await self.validate_items(list(state.value or []), input)
        if result is True:
            return True
        return ValidationFailure(reason_code=result.reason_code, rendered_reason=result.rendered_reason)

    # -------------------------------------------------------------------------
    # Acts
    # -------------------------------------------------------------------------

    def _list_payload(self, choices: List[str], input: "ControlInput") -> Dict[str, Any]:
        page = self.get_choices_from_active_page(choices)
        return dict(
            choices_from_active_page=page,
            all_choices=choices,
            rendered_choices_from_active_page=[self.render_ids([c], input) for c in page],
            rendered_all_choices=[self.render_ids([c], input) for c in choices],
        )

    def build_elicitation_act(self, action: str, input: "ControlInput") -> InitiativeAct:
        payload = self._list_payload(self.get_choices_list(input), input)
        if action == Action.CHANGE:
            ids = self.get_slot_ids()
            return RequestChangedValueByListAct(
                self.id,
                current_value=ids,
                rendered_value=self.render_ids(ids, input),
                **payload,
            )
        return RequestValueByListAct(self.id, **payload)

    def ask_remove_question(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        ids = self.get_slot_ids()
        self.acquisition.add_initiative_act(
            RequestRemovedValueByListAct(
                self.id,
                available_choices=ids,
                rendered_choices=[self.render_ids([i], input) for i in ids],
            ),
            result_builder,
        )

    # -------------------------------------------------------------------------
    # Input handlers
    # -------------------------------------------------------------------------

    def input_handlers(self) -> List[InputHandler]:
        acquisition = self.acquisition
        return [
            InputHandler("add_with_value", self.is_add_with_value, self.handle_add_with_value),
            InputHandler("remove_with_value", self.is_remove_with_value, self.handle_remove_with_value),
            InputHandler("add_without_value", self.is_add_without_value, self.handle_add_without_value),
            InputHandler("remove_without_value", self.is_remove_without_value, self.handle_remove_without_value),
            InputHandler(
                "confirmation_affirmed",
                acquisition.is_confirmation_affirmed,
                acquisition.handle_confirmation_affirmed,
            ),
            InputHandler(
                "confirmation_disaffirmed",
                acquisition.is_confirmation_disaffirmed,
                acquisition.handle_confirmation_disaffirmed,
            ),
            InputHandler("clear_value", acquisition.is_clear_value, acquisition.handle_clear_value),
            InputHandler("select_choice_by_touch", self.is_select_choice_by_touch, self.handle_select_choice_by_touch),
            InputHandler("remove_choice_by_touch", self.is_remove_choice_by_touch, self.handle_remove_choice_by_touch),
            InputHandler("select_done_by_touch", self.is_select_done_by_touch, self.handle_select_done_by_touch),
        ]

    def _value_intent_payload(self, input: "ControlInput"):
        ok_if(is_value_control_intent(input, self.acquisition.slot_type))
        payload = unpack_value_control_intent(input.intent)
        ok_if(len(payload.values) > 0)
        ok_if(target_is_match_or_none(payload.target, self.acquisition.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        return payload

    @false_if_guard_failed
    def is_add_with_value(self, input: "ControlInput") -> bool:
        payload = self._value_intent_payload(input)
        ok_if(action_is_match_or_none(payload.action, self.multi_actions.add + self.multi_actions.set))
        return True

    async def handle_add_with_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        payload = unpack_value_control_intent(input.intent)
        values = [{"id": r.value, "er_match": r.er_match} for r in payload.values]
        result = await self.validate_items(values, input)
        if result is not True:
            values = [v for v in values if v["id"] not in result.invalid_values]

        added_ids = []
        for value in values:
            self.add_value(value)
            added_ids.append(value["id"])

        if added_ids:
            result_builder.add_act(
                ValueAddedAct(self.id, value=added_ids, rendered_value=self.render_ids(added_ids, input))
            )
        if result is not True:
            result_builder.add_act(
                InvalidValueAct(
                    self.id,
                    value=result.invalid_values,
                    rendered_value=self.render_ids(result.invalid_values, input),
                    reason_code=result.reason_code,
                    rendered_reason=result.rendered_reason,
                )
            )

    @false_if_guard_failed
    def is_remove_with_value(self, input: "ControlInput") -> bool:
        payload = self._value_intent_payload(input)
        ok_if(action_is_match(payload.action, self.multi_actions.remove))
        return True

    def handle_remove_with_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        payload = unpack_value_control_intent(input.intent)
        requested = [r.value for r in payload.values]
        removed: List[str] = []
        invalid: List[str] = []
        for value_id in requested:
            current = self.get_slot_ids()
            if value_id in current:
                self.state.value.pop(current.index(value_id))
                removed.append(value_id)
            else:
                invalid.append(value_id)

        if removed:
            self.state.confirmed = False
            result_builder.add_act(
                ValueRemovedAct(self.id, value=removed, rendered_value=self.render_ids(removed, input))
            )
        if invalid:
            result_builder.add_act(
                InvalidRemoveValueAct(self.id, value=invalid, rendered_value=self.render_ids(invalid, input))
            )
            self.ask_remove_question(input, result_builder)

    @false_if_guard_failed
    def is_add_without_value(self, input: "ControlInput") -> bool:
        ok_if(is_general_control_intent(input))
        payload = unpack_general_control_intent(input.intent)
        ok_if(target_is_match_or_none(payload.target, self.acquisition.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.multi_actions.add + self.multi_actions.set))
        return True

    def handle_add_without_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.acquisition.ask_elicitation_question(input, result_builder, Action.SET)

    @false_if_guard_failed
    def is_remove_without_value(self, input: "ControlInput") -> bool:
        ok_if(is_general_control_intent(input))
        payload = unpack_general_control_intent(input.intent)
        ok_if(target_is_match_or_none(payload.target, self.acquisition.targets))
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match(payload.action, self.multi_actions.remove))
        return True

    def handle_remove_without_value(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.ask_remove_question(input, result_builder)

    # -------------------------------------------------------------------------
    # Touch
    # -------------------------------------------------------------------------

    @false_if_guard_failed
    def is_select_choice_by_touch(self, input: "ControlInput") -> bool:
        ok_if(is_user_event_for_control(input, self.id, arg_count=3))
        _, touch_action, ordinal = input.request.arguments
        ok_if(touch_action in (TOUCH_SELECT, TOUCH_TOGGLE))
        ok_if(isinstance(ordinal, int) and 1 <= ordinal <= len(self.get_choices_list(input)))
        return True

    def handle_select_choice_by_touch(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        _, touch_action, ordinal = input.request.arguments
        choice_id = self.get_choices_list(input)[ordinal - 1]
        if touch_action == TOUCH_TOGGLE and choice_id in self.get_slot_ids():
            self._remove_by_id(choice_id, input, result_builder)
            return
        self.add_value({"id": choice_id, "er_match": True})
        result_builder.add_act(
            ValueAddedAct(self.id, value=[choice_id], rendered_value=self.render_ids([choice_id], input))
        )

    @false_if_guard_failed
    def is_remove_choice_by_touch(self, input: "ControlInput") -> bool:
        ok_if(is_user_event_for_control(input, self.id, arg_count=3))
        _, touch_action, ordinal = input.request.arguments
        ok_if(touch_action == TOUCH_REMOVE)
        ok_if(isinstance(ordinal, int) and 1 <= ordinal <= len(self.get_slot_ids()))
        return True

    def handle_remove_choice_by_touch(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        ordinal = input.request.arguments[2]
        self._remove_by_id(self.get_slot_ids()[ordinal - 1], input, result_builder)

    def _remove_by_id(self, choice_id: str, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        ids = self.get_slot_ids()
        self.state.value.pop(ids.index(choice_id))
        self.state.confirmed = False
        result_builder.add_act(
            ValueRemovedAct(self.id, value=[choice_id], rendered_value=self.render_ids([choice_id], input))
        )

    @false_if_guard_failed
    def is_select_done_by_touch(self, input: "ControlInput") -> bool:
        ok_if(is_user_event_for_control(input, self.id, arg_count=2))
        ok_if(input.request.arguments[1] == TOUCH_COMPLETE)
        ok_if(self.acquisition.has_value())
        return True

    async def handle_select_done_by_touch(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        await self.acquisition.affirm_current_value(input, result_builder)

    def stringify_state_for_diagram(self) -> str:
        ids = self.get_slot_ids()
        text = f"[{', '.join(ids)}]" if ids else "<none>"
        if self.state.confirmed:
            text += "[confirmed]"
        return text
