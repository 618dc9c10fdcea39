"""
Control Handler
===============

Runs one dialog turn end to end:

    1. load the turn context and increment the turn counter
    2. rebuild the control tree and reattach last turn's state
    3. consume phase: ``can_handle`` / ``handle`` on the root
    4. initiative phase, if nothing asked the user anything yet
    5. collect every control's state, render, persist

Usage:
    handler = ControlHandler(MyManager(), store=RedisStateStore())

    response = await handler.handle("session-1", request)
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple, Union

import structlog

from ..acts.content import NonUnderstandingAct
from ..config import Settings, get_settings
from ..controls.base import Control
from ..controls.input import ControlInput
from ..controls.result import ControlResultBuilder, SessionBehavior
from ..errors import ProtocolViolationError, StateConsistencyError
from ..intents.base import Request, parse_request
from ..intents.predicates import is_intent
from ..utils.tree import create_control_map, diagram, extract_state_map
from .manager import ControlManager
from .response import ControlResponse
from .store import InMemoryStateStore, StateStore

logger = structlog.get_logger(__name__)


class ControlHandler:
    """
    Turn orchestrator.

    Args:
        manager: Builds the tree and renders results.
        store: Session state storage. Defaults to an in-memory store.
        settings: Defaults to :func:`get_settings`.
    """

    def __init__(
        self,
        manager: ControlManager,
        store: Optional[StateStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.manager = manager
        self.store = store or InMemoryStateStore()
        self.settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def handle(self, session_id: str, request: Union[Request, Dict[str, Any]]) -> ControlResponse:
        """Process one inbound request."""
        return await self._run_turn(session_id, request, process_input=True)

    async def take_initiative(
        self,
        session_id: str,
        request: Union[Request, Dict[str, Any]],
        prompt_prefix: Optional[str] = None,
    ) -> ControlResponse:
        """
        Let the controls drive the conversation without consuming the input.

        For hosts whose own handler already consumed the request. The usual
        turn bookkeeping still runs; ``prompt_prefix`` is placed before the
        controls' prompt and reprompt.
        """
        response = await self._run_turn(session_id, request, process_input=False)
        if prompt_prefix:
            response.prompt_fragments.insert(0, prompt_prefix)
            response.reprompt_fragments.insert(0, prompt_prefix)
        return response

    async def _run_turn(
        self,
        session_id: str,
        request: Union[Request, Dict[str, Any]],
        process_input: bool,
    ) -> ControlResponse:
        input: Optional[ControlInput] = None
        try:
            if isinstance(request, dict):
                request = parse_request(request)

            root, input, context = await self.prepare(session_id, request)

            result_builder = ControlResultBuilder()
            await self.handle_core(root, input, result_builder, process_input=process_input)

            response = self.manager.render(result_builder.build(), input)
            await self.save(session_id, root, input, context)
            return response

        except Exception as e:
            logger.exception(
                "turn_failed",
                session_id=session_id,
                turn_number=input.turn_number if input is not None else None,
                error=str(e),
            )
            response = ControlResponse(should_end_session=True, internal_error=True)
            self.manager.handle_internal_error(input, e, response)
            if self.settings.internal_error_behavior == "rethrow":
                raise
            return response

    # -------------------------------------------------------------------------
    # Turn steps
    # -------------------------------------------------------------------------

    async def prepare(
        self,
        session_id: str,
        request: Request,
    ) -> Tuple[Control, ControlInput, Dict[str, Any]]:
        """Rebuild the tree with reattached state and build this turn's input."""
        context = await self.store.load_context(session_id)
        context["turn_number"] = int(context.get("turn_number", 0)) + 1

        root = self.manager.create_control_tree()
        state_map = await self.store.load_state_map(session_id)
        self.manager.reestablish_control_states(root, state_map)

        input = ControlInput(
            request=request,
            turn_number=context["turn_number"],
            controls=create_control_map(root),
            session_id=session_id,
        )
        return root, input, context

    async def handle_core(
        self,
        root: Control,
        input: ControlInput,
        result_builder: ControlResultBuilder,
        process_input: bool = True,
    ) -> None:
        logger.info(
            "turn_started",
            session_id=input.session_id,
            turn_number=input.turn_number,
            request=input.request.model_dump(mode="json"),
        )
        logger.debug("control_tree_at_start", diagram=diagram(root))

        if process_input:
            if await root.can_handle(input):
                await root.handle(input, result_builder)
            else:
                logger.warning("root_cannot_handle", control_id=root.id, turn_number=input.turn_number)
                if is_intent(input):
                    result_builder.add_act(NonUnderstandingAct(root.id))

        if not result_builder.has_initiative_act() and result_builder.session_behavior == SessionBehavior.OPEN:
            await self.initiative_phase(root, input, result_builder)

        logger.info(
            "turn_handled",
            turn_number=input.turn_number,
            acts=[str(act) for act in result_builder.acts],
        )
        logger.debug("control_tree_at_end", diagram=diagram(root))

    async def initiative_phase(
        self,
        root: Control,
        input: ControlInput,
        result_builder: ControlResultBuilder,
    ) -> None:
        if not await root.can_take_initiative(input):
            logger.debug("no_initiative_taken", turn_number=input.turn_number)
            return

        await root.take_initiative(input, result_builder)
        if not result_builder.has_initiative_act():
            raise ProtocolViolationError(
                f"{root.id} claimed initiative but produced no initiative act",
                control_id=root.id,
            )

    async def save(
        self,
        session_id: str,
        root: Control,
        input: ControlInput,
        context: Dict[str, Any],
    ) -> None:
        """Persist the state map merged onto the latest stored one, then the context."""
        current = extract_state_map(root)
        if self.settings.validate_state_roundtrip:
            self.validate_state_roundtrip(current)

        # ids absent from this tree keep their stored state
        prior = await self.store.load_state_map(session_id)
        merged = {**prior, **current}
        await self.store.save_state_map(session_id, merged)
        await self.store.save_context(session_id, context)

        logger.info(
            "state_saved",
            session_id=session_id,
            turn_number=input.turn_number,
            controls=len(current),
        )

    def validate_state_roundtrip(self, state_map: Dict[str, Any]) -> None:
        """
        Check the state map survives JSON and reattachment to a fresh tree.

        Raises:
            StateConsistencyError: State is not JSON-serializable or does
                not reattach to an identical map.
        """
        try:
            serialized = json.loads(json.dumps(state_map))
        except (TypeError, ValueError) as e:
            raise StateConsistencyError(f"Control state is not JSON-serializable: {e}") from e

        rebuilt = self.manager.create_control_tree()
        self.manager.reestablish_control_states(rebuilt, serialized)
        roundtrip = json.loads(json.dumps(extract_state_map(rebuilt)))

        if roundtrip != serialized:
            changed = sorted(k for k in set(serialized) | set(roundtrip) if serialized.get(k) != roundtrip.get(k))
            raise StateConsistencyError(
                "Control state changed across a serialize/reattach round trip",
                details={"control_ids": changed},
            )
