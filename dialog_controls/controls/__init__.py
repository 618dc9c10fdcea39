"""
Control protocol, value acquisition and containers.

Usage:
    from dialog_controls.controls import ContainerControl
    from dialog_controls.common import NumberControl

    root = ContainerControl("root", children=[NumberControl("age")])
"""

from .acquisition import (
    InteractionActions,
    ValueAcquisition,
    ValueAcquisitionControl,
    ValueControlState,
)
from .base import Control, ControlState, InitiativeHandler, InputHandler
from .container import (
    ActiveDisambiguation,
    ContainerControl,
    ContainerControlState,
    DisambiguationCandidate,
    ImplicitResolutionStrategy,
    MostRecentInitiative,
)
from .dynamic import DynamicContainerControl, DynamicContainerControlState
from .input import ControlInput
from .result import ControlResult, ControlResultBuilder, SessionBehavior
from .validation import ValidationFailure, evaluate_validation

__all__ = [
    # Protocol
    "Control",
    "ControlState",
    "InitiativeHandler",
    "InputHandler",
    "ControlInput",
    "ControlResult",
    "ControlResultBuilder",
    "SessionBehavior",
    # Value acquisition
    "InteractionActions",
    "ValueAcquisition",
    "ValueAcquisitionControl",
    "ValueControlState",
    "ValidationFailure",
    "evaluate_validation",
    # Containers
    "ActiveDisambiguation",
    "ContainerControl",
    "ContainerControlState",
    "DisambiguationCandidate",
    "DynamicContainerControl",
    "DynamicContainerControlState",
    "ImplicitResolutionStrategy",
    "MostRecentInitiative",
]
