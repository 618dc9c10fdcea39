"""Ready-made leaf controls."""

from .list_control import ORDINAL_SLOT_TYPE, ListControl, ListControlState, value_in_list
from .multi_value_list import (
    MultiValueActions,
    MultiValueListControl,
    MultiValueListControlState,
    MultiValueValidationFailure,
)
from .number import NUMBER_SLOT_TYPE, NumberControl, default_most_likely_misunderstanding
from .value_control import ValueControl

__all__ = [
    "ListControl",
    "ListControlState",
    "MultiValueActions",
    "MultiValueListControl",
    "MultiValueListControlState",
    "MultiValueValidationFailure",
    "NUMBER_SLOT_TYPE",
    "NumberControl",
    "ORDINAL_SLOT_TYPE",
    "ValueControl",
    "default_most_likely_misunderstanding",
    "value_in_list",
]
