"""
System acts emitted by controls.

Usage:
    from dialog_controls.acts import ValueSetAct

    act = ValueSetAct("age", value=16, rendered_value="16")
    act.to_dict()
"""

from .base import ContentAct, InitiativeAct, SystemAct
from .content import (
    InvalidRemoveValueAct,
    InvalidValueAct,
    LiteralContentAct,
    NonUnderstandingAct,
    UnusableInputValueAct,
    ValueAddedAct,
    ValueChangedAct,
    ValueClearedAct,
    ValueConfirmedAct,
    ValueDisconfirmedAct,
    ValueRemovedAct,
    ValueSetAct,
)
from .initiative import (
    ConfirmValueAct,
    DisambiguateTargetAct,
    RequestChangedValueAct,
    RequestChangedValueByListAct,
    RequestRemovedValueByListAct,
    RequestValueAct,
    RequestValueByListAct,
    SuggestValueAct,
)

__all__ = [
    # Base
    "ContentAct",
    "InitiativeAct",
    "SystemAct",
    # Content
    "InvalidRemoveValueAct",
    "InvalidValueAct",
    "LiteralContentAct",
    "NonUnderstandingAct",
    "UnusableInputValueAct",
    "ValueAddedAct",
    "ValueChangedAct",
    "ValueClearedAct",
    "ValueConfirmedAct",
    "ValueDisconfirmedAct",
    "ValueRemovedAct",
    "ValueSetAct",
    # Initiative
    "ConfirmValueAct",
    "DisambiguateTargetAct",
    "RequestChangedValueAct",
    "RequestChangedValueByListAct",
    "RequestRemovedValueByListAct",
    "RequestValueAct",
    "RequestValueByListAct",
    "SuggestValueAct",
]
