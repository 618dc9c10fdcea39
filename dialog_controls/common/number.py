"""
Number Control

Acquires an integer via the ``AMAZON.NUMBER`` value control intent. After a
disconfirmation it offers the number most often confused with the heard
one ("thirteen" vs "thirty").
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence

import structlog

from ..controls.acquisition import (
    InteractionActions,
    ValueAcquisition,
    ValueAcquisitionControl,
    ValueRenderer,
)
from ..controls.base import InputHandler
from ..controls.validation import ValidationProp
from ..intents.base import UserEventRequest
from ..intents.control_intents import Action, Target
from ..intents.predicates import is_user_event_for_control
from ..utils.evaluation import BoolProp
from ..utils.guards import false_if_guard_failed, ok_if

if TYPE_CHECKING:
    from ..controls.input import ControlInput
    from ..controls.result import ControlResultBuilder

logger = structlog.get_logger(__name__)

NUMBER_SLOT_TYPE = "AMAZON.NUMBER"


def _build_misunderstanding_map() -> Dict[int, int]:
    mapping: Dict[int, int] = {}
    for teen in range(13, 20):
        tens = (teen - 10) * 10  # 13 -> 30
        mapping[teen] = tens
        mapping[tens] = teen
        mapping[100 + teen] = 100 + tens  # 113 -> 130
        mapping[100 + tens] = 100 + teen
    return mapping


DEFAULT_MISUNDERSTANDINGS: Dict[int, int] = _build_misunderstanding_map()


def default_most_likely_misunderstanding(value: int) -> Optional[int]:
    return DEFAULT_MISUNDERSTANDINGS.get(value)


class NumberControl(ValueAcquisitionControl):
    """
    Control for a single integer.

    Args:
        id: Control id.
        required: Elicit the number when missing.
        confirmation_required: Ask "was that X?" before accepting.
        validation: ``(state, input)`` validator or list of validators.
        targets: ``target`` slot values; defaults to ``it``, ``number`` and the id.
        actions: Action slot values for set/change/clear.
        value_renderer: ``(value, input) -> str``.
        most_likely_misunderstanding: ``value -> suggestion``; defaults to
            the teen/tens confusion table.
        target_for_disambiguation: Label distinguishing this control from
            siblings in a disambiguation question.
    """

    def __init__(
        self,
        id: str,
        required: BoolProp = True,
        confirmation_required: BoolProp = False,
        validation: ValidationProp = None,
        targets: Optional[Sequence[str]] = None,
        actions: Optional[InteractionActions] = None,
        value_renderer: Optional[ValueRenderer] = None,
        most_likely_misunderstanding: Optional[Callable[[int], Optional[int]]] = None,
        target_for_disambiguation: Optional[str] = None,
        custom_handlers: Optional[Sequence[InputHandler]] = None,
    ):
        super().__init__(id, target_for_disambiguation=target_for_disambiguation, custom_handlers=custom_handlers)
        self.acquisition = ValueAcquisition(
            self,
            slot_type=NUMBER_SLOT_TYPE,
            required=required,
            confirmation_required=confirmation_required,
            validation=validation,
            targets=targets if targets is not None else [Target.IT, Target.NUMBER, id],
            actions=actions,
            value_renderer=value_renderer,
            parse_value=int,
            most_likely_misunderstanding=most_likely_misunderstanding or default_most_likely_misunderstanding,
        )

    def extra_input_handlers(self) -> List[InputHandler]:
        return [
            InputHandler("select_choice_by_touch", self.is_select_choice_by_touch, self.handle_select_choice_by_touch),
        ]

    @false_if_guard_failed
    def is_select_choice_by_touch(self, input: "ControlInput") -> bool:
        ok_if(is_user_event_for_control(input, self.id, arg_count=2))
        raw: Any = input.request.arguments[1]
        try:
            int(raw)
        except (TypeError, ValueError):
            return False
        return True

    async def handle_select_choice_by_touch(
        self,
        input: "ControlInput",
        result_builder: "ControlResultBuilder",
    ) -> None:
        request: UserEventRequest = input.request
        self.acquisition.set_value(int(request.arguments[1]), er_match=True)
        # a touched value needs no spoken confirmation
        self.state.confirmed = True
        await self.acquisition.validate_and_add_acts(input, result_builder, Action.SET)
