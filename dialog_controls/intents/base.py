"""
Inbound request models.

Requests arrive already resolved by the NLU layer: an intent name plus a
map of slot name to :class:`Slot`. The framework never parses free text.
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class SlotResolution(BaseModel):
    """One entity-resolution candidate for a slot."""

    value: str = Field(..., description="Resolved slot value id")
    er_match: bool = Field(True, description="Whether entity resolution matched a catalog value")


class Slot(BaseModel):
    """A named slot with its raw utterance text and resolutions."""

    name: str
    value: Optional[str] = Field(None, description="Raw text heard for this slot")
    resolutions: List[SlotResolution] = Field(default_factory=list)

    @property
    def first_resolution(self) -> Optional[SlotResolution]:
        return self.resolutions[0] if self.resolutions else None

    @property
    def resolved_value(self) -> Optional[str]:
        """First resolved value id, falling back to the raw heard text."""
        if self.resolutions:
            return self.resolutions[0].value
        return self.value

    @property
    def er_match(self) -> bool:
        if self.resolutions:
            return self.resolutions[0].er_match
        return False


class Intent(BaseModel):
    """A resolved intent."""

    name: str
    slots: Dict[str, Slot] = Field(default_factory=dict)

    def get_slot(self, name: str) -> Optional[Slot]:
        return self.slots.get(name)

    def slot_value(self, name: str) -> Optional[str]:
        """Resolved value of a slot, or ``None`` when absent or empty."""
        slot = self.slots.get(name)
        if slot is None:
            return None
        return slot.resolved_value


class _BaseRequest(BaseModel):
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex}")
    locale: str = "en-US"


class LaunchRequest(_BaseRequest):
    """The user opened the skill with no specific request."""

    type: Literal["LaunchRequest"] = "LaunchRequest"


class IntentRequest(_BaseRequest):
    """The user said something that resolved to an intent."""

    type: Literal["IntentRequest"] = "IntentRequest"
    intent: Intent


class SessionEndedRequest(_BaseRequest):
    """The session was closed by the platform or the user."""

    type: Literal["SessionEndedRequest"] = "SessionEndedRequest"
    reason: Optional[str] = None


class UserEventRequest(_BaseRequest):
    """A touch or other screen event. ``arguments`` are host-defined."""

    type: Literal["UserEventRequest"] = "UserEventRequest"
    arguments: List[Any] = Field(default_factory=list)


Request = Annotated[
    Union[LaunchRequest, IntentRequest, SessionEndedRequest, UserEventRequest],
    Field(discriminator="type"),
]

_request_adapter: TypeAdapter[Request] = TypeAdapter(Request)


def parse_request(data: Dict[str, Any]) -> Request:
    """Validate a plain dict into the matching request model."""
    return _request_adapter.validate_python(data)
