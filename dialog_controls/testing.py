"""
Testing helpers for control trees.

``TestInput`` builds requests the way NLU would have resolved them;
``TurnRunner`` plays a conversation through a :class:`ControlHandler` and
keeps every response.

Usage:
    runner = TurnRunner(AgeManager())
    response = await runner.say(TestInput.value("AMAZON.NUMBER", "16", action="set"))
    assert runner.act_names() == ["ValueSet"]
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional, Union

from .config import Settings
from .intents.base import IntentRequest, LaunchRequest, Request, SessionEndedRequest, UserEventRequest
from .intents.control_intents import (
    FALLBACK_INTENT,
    NO_INTENT,
    YES_INTENT,
    general_control_intent,
    simple_intent,
    value_control_intent,
)
from .runtime.handler import ControlHandler
from .runtime.manager import ControlManager
from .runtime.response import ControlResponse
from .runtime.store import InMemoryStateStore, StateStore


class TestInput:
    """Request builders for tests and scripted simulations."""

    __test__ = False  # not a pytest test class

    @staticmethod
    def launch() -> LaunchRequest:
        return LaunchRequest()

    @staticmethod
    def intent(name: str) -> IntentRequest:
        return IntentRequest(intent=simple_intent(name))

    @staticmethod
    def yes() -> IntentRequest:
        return TestInput.intent(YES_INTENT)

    @staticmethod
    def no() -> IntentRequest:
        return TestInput.intent(NO_INTENT)

    @staticmethod
    def fallback() -> IntentRequest:
        return TestInput.intent(FALLBACK_INTENT)

    @staticmethod
    def general(
        feedback: Optional[str] = None,
        action: Optional[str] = None,
        target: Optional[str] = None,
    ) -> IntentRequest:
        return IntentRequest(intent=general_control_intent(feedback=feedback, action=action, target=target))

    @staticmethod
    def value(
        slot_type: str,
        value: Union[str, List[str]],
        feedback: Optional[str] = None,
        action: Optional[str] = None,
        target: Optional[str] = None,
        er_match: bool = True,
    ) -> IntentRequest:
        return IntentRequest(
            intent=value_control_intent(
                slot_type,
                value,
                feedback=feedback,
                action=action,
                target=target,
                er_match=er_match,
            )
        )

    @staticmethod
    def user_event(*arguments: Any) -> UserEventRequest:
        return UserEventRequest(arguments=list(arguments))

    @staticmethod
    def session_ended(reason: Optional[str] = None) -> SessionEndedRequest:
        return SessionEndedRequest(reason=reason)

    @staticmethod
    def from_step(step: Dict[str, Any]) -> Request:
        """
        Build a request from a script step.

        Steps have exactly one key naming the builder::

            {"value": {"slot_type": "AMAZON.NUMBER", "value": "16", "action": "set"}}
            {"general": {"target": "firstName"}}
            {"intent": "AMAZON.HelpIntent"}
            {"yes": null}
            {"user_event": ["age", 16]}
        """
        if len(step) != 1:
            raise ValueError(f"Script step must have exactly one key, got {sorted(step)}")
        kind, args = next(iter(step.items()))
        if not isinstance(kind, str):
            raise ValueError(f"Script step key must be a string, got {kind!r} (quote yes/no in YAML)")
        builder = getattr(TestInput, kind, None)
        if kind.startswith("_") or kind == "from_step" or builder is None:
            raise ValueError(f"Unknown script step: {kind}")
        if args is None:
            return builder()
        if isinstance(args, dict):
            return builder(**args)
        if isinstance(args, list):
            return builder(*args)
        return builder(args)


class TurnRunner:
    """
    Drives a conversation turn by turn against one session.

    Args:
        manager: The control manager under test.
        store: Defaults to a fresh in-memory store.
        settings: Defaults to rethrowing internal errors so tests fail loudly.
    """

    def __init__(
        self,
        manager: ControlManager,
        store: Optional[StateStore] = None,
        settings: Optional[Settings] = None,
        session_id: Optional[str] = None,
    ):
        self.store = store or InMemoryStateStore()
        self.handler = ControlHandler(
            manager,
            store=self.store,
            settings=settings or Settings(internal_error_behavior="rethrow"),
        )
        self.session_id = session_id or f"test_{uuid.uuid4().hex[:12]}"
        self.responses: List[ControlResponse] = []

    async def say(self, request: Union[Request, Dict[str, Any]]) -> ControlResponse:
        response = await self.handler.handle(self.session_id, request)
        self.responses.append(response)
        return response

    async def take_initiative(self, request: Optional[Request] = None, prompt_prefix: Optional[str] = None) -> ControlResponse:
        response = await self.handler.take_initiative(
            self.session_id,
            request or TestInput.launch(),
            prompt_prefix=prompt_prefix,
        )
        self.responses.append(response)
        return response

    @property
    def last_response(self) -> Optional[ControlResponse]:
        return self.responses[-1] if self.responses else None

    def act_names(self, turn: int = -1) -> List[str]:
        return [act["name"] for act in self.responses[turn].acts]

    async def state_of(self, control_id: str) -> Optional[Dict[str, Any]]:
        state_map = await self.store.load_state_map(self.session_id)
        return state_map.get(control_id)

    async def turn_number(self) -> int:
        context = await self.store.load_context(self.session_id)
        return context["turn_number"]
