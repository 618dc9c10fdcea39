"""
Dynamic Container Control

A container whose children are decided at runtime. Each dynamic child is
described by a JSON-serializable info dict kept in the container's state; when
state is reattached on the next turn the children are rebuilt from those
dicts before their own state is reattached.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from ..errors import ConfigurationError
from .base import Control
from .container import ContainerControl, ContainerControlState

logger = structlog.get_logger(__name__)


@dataclass
class DynamicContainerControlState(ContainerControlState):
    child_info: List[Dict[str, Any]] = field(default_factory=list)


class DynamicContainerControl(ContainerControl):
    """
    Container with children created from info dicts at runtime.

    Subclasses implement :meth:`create_child_from_info`. Children passed to
    the constructor are static and always kept.
    """

    state_class = DynamicContainerControlState

    def __init__(self, id: str, **kwargs: Any):
        super().__init__(id, **kwargs)
        self._dynamic_children: List[Control] = []

    @abstractmethod
    def create_child_from_info(self, info: Dict[str, Any]) -> Control:
        """Build a child control from its info dict."""
        pass

    def add_dynamic_child(self, info: Dict[str, Any]) -> Control:
        child = self.create_child_from_info(info)
        if self.child_by_id(child.id) is not None:
            raise ConfigurationError(
                f"DynamicContainerControl[{self.id}]: child id '{child.id}' already exists",
                control_id=self.id,
            )
        self.state.child_info.append(dict(info))
        self._dynamic_children.append(child)
        self.add_child(child)
        logger.debug("dynamic_child_added", control_id=self.id, child_id=child.id)
        return child

    def remove_dynamic_child(self, control: Control) -> None:
        if control not in self._dynamic_children:
            raise ConfigurationError(
                f"DynamicContainerControl[{self.id}]: {control.id} is not a dynamic child",
                control_id=self.id,
            )
        idx = self._dynamic_children.index(control)
        self._dynamic_children.pop(idx)
        self.state.child_info.pop(idx)
        self._children.remove(control)
        logger.debug("dynamic_child_removed", control_id=self.id, child_id=control.id)

    def recreate_dynamic_children(self) -> None:
        for child in self._dynamic_children:
            self._children.remove(child)
        self._dynamic_children = []
        for info in self.state.child_info:
            child = self.create_child_from_info(info)
            self._dynamic_children.append(child)
            self.add_child(child)

    def reestablish_state(self, state: Optional[Dict[str, Any]], control_state_map: Dict[str, Any]) -> None:
        if state is not None:
            self.set_serializable_state(state)
        self.recreate_dynamic_children()
        for child in self.children:
            child.reestablish_state(control_state_map.get(child.id), control_state_map)

    def stringify_state_for_diagram(self) -> str:
        text = super().stringify_state_for_diagram()
        return f"{text}[dynamic: {len(self._dynamic_children)}]"
