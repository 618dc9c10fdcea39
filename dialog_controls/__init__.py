"""
dialog-controls
===============

Reusable dialog controls for multi-turn conversational interfaces.

A skill builds a tree of controls every turn; each control acquires,
validates and confirms one piece of information while containers decide
which child answers an utterance.

Usage:
    from dialog_controls import ContainerControl, ControlHandler, ControlManager, NumberControl

    class AgeManager(ControlManager):
        def create_control_tree(self):
            return ContainerControl("root", children=[NumberControl("age")])

    handler = ControlHandler(AgeManager())
    response = await handler.handle("session-1", request)
"""

__version__ = "0.1.0"

from .common import ListControl, MultiValueListControl, NumberControl, ValueControl
from .controls import (
    ContainerControl,
    Control,
    ControlInput,
    ControlResultBuilder,
    DynamicContainerControl,
    ImplicitResolutionStrategy,
    SessionBehavior,
    ValidationFailure,
)
from .errors import (
    ConfigurationError,
    ControlError,
    DisambiguationInconsistencyError,
    DuplicateControlIdError,
    ProtocolViolationError,
    StateConsistencyError,
)
from .runtime import ControlHandler, ControlManager, ControlResponse, InMemoryStateStore, RedisStateStore

__all__ = [
    "__version__",
    # Controls
    "Control",
    "ContainerControl",
    "DynamicContainerControl",
    "ImplicitResolutionStrategy",
    "ListControl",
    "MultiValueListControl",
    "NumberControl",
    "ValueControl",
    "ControlInput",
    "ControlResultBuilder",
    "SessionBehavior",
    "ValidationFailure",
    # Runtime
    "ControlHandler",
    "ControlManager",
    "ControlResponse",
    "InMemoryStateStore",
    "RedisStateStore",
    # Errors
    "ConfigurationError",
    "ControlError",
    "DisambiguationInconsistencyError",
    "DuplicateControlIdError",
    "ProtocolViolationError",
    "StateConsistencyError",
]
