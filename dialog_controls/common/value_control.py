"""
Value Control

Acquires a free value of any slot type (names, cities, ...). The value is
kept as the resolved slot string.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from ..controls.acquisition import (
    InteractionActions,
    ValueAcquisition,
    ValueAcquisitionControl,
    ValueRenderer,
)
from ..controls.base import InputHandler
from ..controls.validation import ValidationProp
from ..intents.control_intents import Target
from ..utils.evaluation import BoolProp


def _default_targets(id: str, target_for_disambiguation: Optional[str]) -> List[str]:
    targets = [Target.IT.value, id]
    if target_for_disambiguation and target_for_disambiguation not in targets:
        targets.append(target_for_disambiguation)
    return targets


class ValueControl(ValueAcquisitionControl):
    """
    Control for a single free value.

    ``target_for_disambiguation`` labels this control when a sibling
    shares its targets, e.g. ``firstName`` and ``lastName`` both answering
    to ``name``.
    """

    def __init__(
        self,
        id: str,
        slot_type: str,
        required: BoolProp = True,
        confirmation_required: BoolProp = False,
        validation: ValidationProp = None,
        targets: Optional[Sequence[str]] = None,
        actions: Optional[InteractionActions] = None,
        value_renderer: Optional[ValueRenderer] = None,
        most_likely_misunderstanding: Optional[Callable[[str], Optional[str]]] = None,
        target_for_disambiguation: Optional[str] = None,
        custom_handlers: Optional[Sequence[InputHandler]] = None,
    ):
        super().__init__(id, target_for_disambiguation=target_for_disambiguation, custom_handlers=custom_handlers)
        self.acquisition = ValueAcquisition(
            self,
            slot_type=slot_type,
            required=required,
            confirmation_required=confirmation_required,
            validation=validation,
            targets=targets if targets is not None else _default_targets(id, target_for_disambiguation),
            actions=actions,
            value_renderer=value_renderer,
            most_likely_misunderstanding=most_likely_misunderstanding,
        )

