"""Shared pytest fixtures for testing."""

import os
from typing import Callable, Optional

import pytest

from dialog_controls.config import Settings, get_settings
from dialog_controls.controls.base import Control
from dialog_controls.controls.input import ControlInput
from dialog_controls.controls.result import ControlResultBuilder
from dialog_controls.runtime.manager import ControlManager
from dialog_controls.runtime.store import InMemoryStateStore
from dialog_controls.utils.tree import create_control_map

# Set test environment
os.environ["DIALOG_CONTROLS_ENVIRONMENT"] = "test"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Settings that surface turn errors instead of hiding them."""
    return Settings(environment="test", internal_error_behavior="rethrow")


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def result_builder() -> ControlResultBuilder:
    return ControlResultBuilder()


# =============================================================================
# Input Fixtures
# =============================================================================


@pytest.fixture
def make_input() -> Callable[..., ControlInput]:
    """Build a ControlInput for a request, optionally indexing a control tree."""

    def _make_input(request, root: Optional[Control] = None, turn_number: int = 1) -> ControlInput:
        controls = create_control_map(root) if root is not None else {}
        return ControlInput(request=request, turn_number=turn_number, controls=controls, session_id="test-session")

    return _make_input


@pytest.fixture
def run_turn(make_input):
    """Drive one control through a full consume + initiative turn, like the handler does."""

    async def _run_turn(control: Control, request, turn_number: int = 1) -> ControlResultBuilder:
        input = make_input(request, root=control, turn_number=turn_number)
        builder = ControlResultBuilder()
        if await control.can_handle(input):
            await control.handle(input, builder)
        if not builder.has_initiative_act() and await control.can_take_initiative(input):
            await control.take_initiative(input, builder)
        return builder

    return _run_turn


# =============================================================================
# Manager Fixtures
# =============================================================================


@pytest.fixture
def manager_for() -> Callable[[Callable[[], Control]], ControlManager]:
    """Wrap a tree factory in a ControlManager."""

    def _manager_for(tree_factory: Callable[[], Control]) -> ControlManager:
        class _Manager(ControlManager):
            def create_control_tree(self) -> Control:
                return tree_factory()

        return _Manager()

    return _manager_for
