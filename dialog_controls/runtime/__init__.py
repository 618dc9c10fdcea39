"""Turn orchestration, rendering hooks and state storage."""

from .handler import ControlHandler
from .manager import ControlManager
from .response import ControlResponse
from .store import InMemoryStateStore, RedisStateStore, StateStore, create_state_store

__all__ = [
    "ControlHandler",
    "ControlManager",
    "ControlResponse",
    "InMemoryStateStore",
    "RedisStateStore",
    "StateStore",
    "create_state_store",
]
