"""
List Control

Selects one item from a list of ids. Choices are offered a page at a
time; the user can name an item, pick one by ordinal ("the second one"),
or touch it on screen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Union

import structlog

from ..acts.base import InitiativeAct
from ..acts.content import UnusableInputValueAct, ValueSetAct
from ..acts.initiative import RequestChangedValueByListAct, RequestValueByListAct
from ..config import get_settings
from ..controls.acquisition import (
    FEEDBACK_TYPES,
    InteractionActions,
    ValueAcquisition,
    ValueAcquisitionControl,
    ValueControlState,
    ValueRenderer,
)
from ..controls.base import InputHandler
from ..controls.validation import ValidationFailure, ValidationProp
from ..errors import StateConsistencyError
from ..intents.control_intents import Action, Target, unpack_value_control_intent
from ..intents.predicates import (
    action_is_match_or_none,
    feedback_is_match_or_none,
    is_user_event_for_control,
    is_value_control_intent,
    target_is_match_or_none,
)
from ..utils.evaluation import BoolProp, evaluate_list_prop
from ..utils.guards import false_if_guard_failed, ok_if

if TYPE_CHECKING:
    from ..controls.input import ControlInput
    from ..controls.result import ControlResultBuilder

logger = structlog.get_logger(__name__)

ORDINAL_SLOT_TYPE = "AMAZON.Ordinal"

ListItemIds = Union[Sequence[str], Callable[["ControlInput"], Sequence[str]]]


@dataclass
class ListControlState(ValueControlState):
    spoken_items_page_index: int = 0


class ListControl(ValueAcquisitionControl):
    """
    Control for choosing one item from a list.

    Args:
        id: Control id.
        slot_type: Slot type whose values are the list item ids.
        list_item_ids: Ids offered to the user, or ``input -> ids``.
        page_size: Items offered per prompt. Defaults to
            ``Settings.default_page_size``.
        required: Elicit a choice when missing.
        confirmation_required: Ask "was that X?" before accepting.
        validation: ``(state, input)`` validator or list of validators.
        targets: ``target`` slot values; defaults to ``choice``, ``it`` and the id.
        actions: Action slot values for set/change/clear.
        value_renderer: ``(id, input) -> str``.
        target_for_disambiguation: Label used in disambiguation questions.
    """

    state_class = ListControlState

    def __init__(
        self,
        id: str,
        slot_type: str,
        list_item_ids: ListItemIds,
        page_size: Optional[int] = None,
        required: BoolProp = True,
        confirmation_required: BoolProp = False,
        validation: ValidationProp = None,
        targets: Optional[Sequence[str]] = None,
        actions: Optional[InteractionActions] = None,
        value_renderer: Optional[ValueRenderer] = None,
        target_for_disambiguation: Optional[str] = None,
        custom_handlers: Optional[Sequence[InputHandler]] = None,
    ):
        super().__init__(id, target_for_disambiguation=target_for_disambiguation, custom_handlers=custom_handlers)
        self.list_item_ids = list_item_ids
        self.page_size = page_size or get_settings().default_page_size
        self.acquisition = ValueAcquisition(
            self,
            slot_type=slot_type,
            required=required,
            confirmation_required=confirmation_required,
            validation=validation,
            targets=targets if targets is not None else [Target.CHOICE, Target.IT, id],
            actions=actions,
            value_renderer=value_renderer,
            elicitation_act_factory=self.build_elicitation_act,
        )

    # -------------------------------------------------------------------------
    # Choices
    # -------------------------------------------------------------------------

    def get_choices_list(self, input: "ControlInput") -> List[str]:
        return evaluate_list_prop(self.list_item_ids, input)

    def get_choices_from_active_page(self, all_choices: List[str]) -> List[str]:
        start = self.state.spoken_items_page_index
        return all_choices[start:start + self.page_size]

    def build_elicitation_act(self, action: str, input: "ControlInput") -> InitiativeAct:
        all_choices = self.get_choices_list(input)
        page = self.get_choices_from_active_page(all_choices)
        render = self.acquisition.value_renderer
        kwargs = dict(
            choices_from_active_page=page,
            all_choices=all_choices,
            rendered_choices_from_active_page=[render(c, input) for c in page],
            rendered_all_choices=[render(c, input) for c in all_choices],
        )
        if action == Action.CHANGE:
            return RequestChangedValueByListAct(
                self.id,
                current_value=self.state.value,
                rendered_value=self.acquisition.render(self.state.value, input),
                **kwargs,
            )
        return RequestValueByListAct(self.id, **kwargs)

    # -------------------------------------------------------------------------
    # List-specific handlers
    # -------------------------------------------------------------------------

    def extra_input_handlers(self) -> List[InputHandler]:
        return [
            InputHandler("ordinal_selection", self.is_ordinal_selection, self.handle_ordinal_selection),
            InputHandler("ordinal_touch", self.is_ordinal_touch, self.handle_ordinal_touch),
        ]

    @false_if_guard_failed
    def is_ordinal_selection(self, input: "ControlInput") -> bool:
        ok_if(is_value_control_intent(input, ORDINAL_SLOT_TYPE))
        payload = unpack_value_control_intent(input.intent)
        ok_if(feedback_is_match_or_none(payload.feedback, FEEDBACK_TYPES))
        ok_if(action_is_match_or_none(payload.action, self.acquisition.actions.set))
        ok_if(target_is_match_or_none(payload.target, self.acquisition.targets))
        ok_if(payload.value is not None)
        return True

    def _set_chosen(self, value: str, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        self.acquisition.set_value(value, er_match=True)
        result_builder.add_act(
            ValueSetAct(self.id, value=value, rendered_value=self.acquisition.render(value, input))
        )

    def handle_ordinal_selection(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        spoken_choices = self.get_choices_from_active_page(self.get_choices_list(input))
        raw = unpack_value_control_intent(input.intent).value
        try:
            ordinal = int(raw)
        except (TypeError, ValueError):
            ordinal = None

        if ordinal is not None and 1 <= ordinal <= len(spoken_choices):
            self._set_chosen(spoken_choices[ordinal - 1], input, result_builder)
            return

        result_builder.add_act(
            UnusableInputValueAct(
                self.id,
                value=ordinal,
                rendered_value=str(raw) if raw is not None else "",
                reason_code="OrdinalOutOfRange",
            )
        )

    @false_if_guard_failed
    def is_ordinal_touch(self, input: "ControlInput") -> bool:
        ok_if(is_user_event_for_control(input, self.id, arg_count=2))
        ok_if(isinstance(input.request.arguments[1], int))
        return True

    def handle_ordinal_touch(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        choices = self.get_choices_list(input)
        ordinal = input.request.arguments[1]
        if ordinal < 1 or ordinal > len(choices):
            raise StateConsistencyError(
                f"Touch ordinal out of range. ordinal={ordinal} choices={choices}",
                control_id=self.id,
            )
        self._set_chosen(choices[ordinal - 1], input, result_builder)


def value_in_list(list_item_ids: ListItemIds, reason_code: str = "ValueNotInList") -> Callable[[Any, Any], Any]:
    """Validator rejecting values that are not among ``list_item_ids``."""

    def validate(state: Any, input: "ControlInput") -> Any:
        if state.value in evaluate_list_prop(list_item_ids, input):
            return True
        return ValidationFailure(reason_code=reason_code)

    return validate
