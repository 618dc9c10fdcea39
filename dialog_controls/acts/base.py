"""
System Acts - Base Types

A system act is a data-only record of something a control wants to
communicate: "the value was set", "please confirm", "which one did you
mean?". Controls append acts to a result builder during a turn; rendering
to speech or screen happens later and is the host's concern.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict


@dataclass
class SystemAct:
    """Base class for all acts. Subclasses add their payload fields."""

    control_id: str

    takes_initiative: ClassVar[bool] = False

    @classmethod
    def act_name(cls) -> str:
        """Class name without the ``Act`` suffix, e.g. ``ValueSet``."""
        name = cls.__name__
        return name[: -len("Act")] if name.endswith("Act") else name

    @property
    def name(self) -> str:
        return self.act_name()

    @property
    def payload(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "control_id"}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "control_id": self.control_id,
            "takes_initiative": self.takes_initiative,
            "payload": self.payload,
        }

    def __str__(self) -> str:
        return f"{self.name}({self.control_id})"


@dataclass
class ContentAct(SystemAct):
    """Feedback or content. Never asks the user for anything."""

    takes_initiative: ClassVar[bool] = False


@dataclass
class InitiativeAct(SystemAct):
    """Asks the user something. At most one per turn."""

    takes_initiative: ClassVar[bool] = True
