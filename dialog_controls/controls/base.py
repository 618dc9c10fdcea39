"""
Control Protocol - Base Classes

Every control takes part in the same four-phase turn protocol:

    can_handle -> handle -> [if no initiative act yet]
    can_take_initiative -> take_initiative

``can_handle`` and ``can_take_initiative`` decide and remember which
handler will run; they never mutate persisted state. ``handle`` and
``take_initiative`` run the remembered handler, mutate state and append
acts.

Controls are rebuilt every turn. Only their serializable state survives,
reattached by id via :meth:`Control.reestablish_state`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    List,
    Optional,
    Sequence,
    Type,
    Union,
)

import structlog

from ..errors import ConfigurationError, ProtocolViolationError, StateConsistencyError
from ..utils.evaluation import maybe_await

if TYPE_CHECKING:
    from .input import ControlInput
    from .result import ControlResultBuilder

logger = structlog.get_logger(__name__)


CanHandleFunc = Callable[["ControlInput"], Union[bool, Awaitable[bool]]]
HandleFunc = Callable[["ControlInput", "ControlResultBuilder"], Union[None, Awaitable[None]]]


# =============================================================================
# State
# =============================================================================


@dataclass
class ControlState:
    """
    Serializable state of a control.

    Subclasses add fields; every field must survive a JSON round trip.
    """

    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ControlState":
        if not isinstance(data, dict):
            raise StateConsistencyError(f"{cls.__name__} expects a dict, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise StateConsistencyError(
                f"Unknown fields for {cls.__name__}: {sorted(unknown)}",
                details={"unknown_fields": sorted(unknown)},
            )
        return cls(**data)


# =============================================================================
# Handlers
# =============================================================================


@dataclass
class InputHandler:
    """A named ``can_handle``/``handle`` pair."""

    name: str
    can_handle: CanHandleFunc
    handle: HandleFunc


@dataclass
class InitiativeHandler:
    """A named ``can_take_initiative``/``take_initiative`` pair."""

    name: str
    can_take_initiative: CanHandleFunc
    take_initiative: HandleFunc


# =============================================================================
# Control
# =============================================================================


class Control(ABC):
    """
    Abstract base for all controls.

    Args:
        id: Identifier, unique within one control tree.
        custom_handlers: Extra input handlers evaluated before the built-in
            ones. A matching custom handler wins over a built-in one.
    """

    state_class: ClassVar[Type[ControlState]] = ControlState

    def __init__(self, id: str, custom_handlers: Optional[Sequence[InputHandler]] = None):
        if not isinstance(id, str) or not id:
            raise ConfigurationError(f"Control id must be a non-empty string, got {id!r}")
        self.id = id
        self.state = self.state_class()
        self.custom_handlers: List[InputHandler] = list(custom_handlers or [])
        self._handle_func: Optional[HandleFunc] = None
        self._initiative_func: Optional[HandleFunc] = None

    # -------------------------------------------------------------------------
    # Protocol
    # -------------------------------------------------------------------------

    @abstractmethod
    async def can_handle(self, input: "ControlInput") -> bool:
        """Decide whether this control can consume the input."""
        pass

    @abstractmethod
    async def handle(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        """Consume the input. Only valid after ``can_handle`` returned True."""
        pass

    @abstractmethod
    async def can_take_initiative(self, input: "ControlInput") -> bool:
        """Decide whether this control wants to ask the user something."""
        pass

    @abstractmethod
    async def take_initiative(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        """Add an initiative act. Only valid after ``can_take_initiative`` returned True."""
        pass

    async def is_ready(self, input: "ControlInput") -> bool:
        """A control is ready when it has nothing left to ask."""
        return not await self.can_take_initiative(input)

    # -------------------------------------------------------------------------
    # Handler evaluation
    # -------------------------------------------------------------------------

    async def _first_match(self, handlers: Sequence[InputHandler], input: "ControlInput") -> Optional[InputHandler]:
        for handler in handlers:
            if await maybe_await(handler.can_handle(input)):
                return handler
        return None

    async def evaluate_input_handlers(self, input: "ControlInput", handlers: Sequence[InputHandler]) -> bool:
        """
        Pick the handler for this turn and remember it for :meth:`run_handle_func`.

        Custom handlers are evaluated first; when both a custom and a
        built-in handler match, the custom one wins and a warning is logged.
        """
        self._handle_func = None
        custom = await self._first_match(self.custom_handlers, input)
        builtin = await self._first_match(handlers, input)

        if custom is not None and builtin is not None:
            logger.warning(
                "custom_and_builtin_handlers_matched",
                control_id=self.id,
                custom=custom.name,
                builtin=builtin.name,
            )

        chosen = custom or builtin
        if chosen is None:
            return False

        logger.debug("input_handler_selected", control_id=self.id, handler=chosen.name)
        self._handle_func = chosen.handle
        return True

    async def run_handle_func(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        if self._handle_func is None:
            raise ProtocolViolationError(
                f"{self.__class__.__name__}[{self.id}]: handle called but no handler was selected. "
                "can_handle must return True first.",
                control_id=self.id,
            )
        await maybe_await(self._handle_func(input, result_builder))

    async def evaluate_initiative_handlers(
        self,
        input: "ControlInput",
        handlers: Sequence[InitiativeHandler],
    ) -> bool:
        """Pick the initiative handler. Handlers should be mutually exclusive; the first match wins."""
        self._initiative_func = None
        matches = []
        for handler in handlers:
            if await maybe_await(handler.can_take_initiative(input)):
                matches.append(handler)

        if len(matches) > 1:
            logger.error(
                "multiple_initiative_handlers_matched",
                control_id=self.id,
                handlers=[h.name for h in matches],
            )

        if not matches:
            return False

        self._initiative_func = matches[0].take_initiative
        return True

    async def run_initiative_func(self, input: "ControlInput", result_builder: "ControlResultBuilder") -> None:
        if self._initiative_func is None:
            raise ProtocolViolationError(
                f"{self.__class__.__name__}[{self.id}]: take_initiative called but no initiative handler "
                "was selected. can_take_initiative must return True first.",
                control_id=self.id,
            )
        await maybe_await(self._initiative_func(input, result_builder))

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def get_serializable_state(self) -> Dict[str, Any]:
        return self.state.to_dict()

    def set_serializable_state(self, serialized_state: Dict[str, Any]) -> None:
        self.state = self.state_class.from_dict(serialized_state)

    def reestablish_state(self, state: Optional[Dict[str, Any]], control_state_map: Dict[str, Any]) -> None:
        """Reattach last turn's state. Absent state leaves the initial state in place."""
        if state is not None:
            self.set_serializable_state(state)

    # -------------------------------------------------------------------------
    # Tree and description
    # -------------------------------------------------------------------------

    def is_container(self) -> bool:
        return False

    @property
    def children(self) -> List["Control"]:
        return []

    def get_all_targets(self) -> List[str]:
        """Every ``target`` slot value this control answers to."""
        return []

    def get_specific_target(self) -> Optional[str]:
        """Target that names this control alone; used to disambiguate siblings."""
        return None

    def render_identifier(self) -> str:
        return self.id

    def stringify_state_for_diagram(self) -> str:
        return ""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"
