"""
Dialog Controls Errors
======================

Exception hierarchy raised by the control framework.

Validation failures are not errors: they are returned as data
(:class:`~dialog_controls.controls.validation.ValidationFailure`) and
rendered as ``InvalidValue`` acts.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ControlError(Exception):
    """Base exception for control framework errors."""

    def __init__(
        self,
        message: str,
        control_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.control_id = control_id
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "control_id": self.control_id,
            "details": self.details,
        }


class ConfigurationError(ControlError):
    """The control tree or a control's props are misconfigured."""
    pass


class DuplicateControlIdError(ConfigurationError):
    """Two controls in one tree share an identifier."""

    def __init__(self, control_id: str):
        super().__init__(
            f"Duplicate control id '{control_id}'. Control ids must be unique within a tree.",
            control_id=control_id,
        )


class ProtocolViolationError(ControlError):
    """A control was driven out of order (e.g. handle without can_handle)."""
    pass


class DisambiguationInconsistencyError(ControlError):
    """A child rejected the request it was chosen for during disambiguation."""
    pass


class StateConsistencyError(ControlError):
    """Persisted state could not be reattached to a freshly built tree."""
    pass


class GuardFailed(Exception):
    """
    Internal signal raised by guard helpers inside ``can_handle`` predicates.

    Never escapes a ``can_handle`` call; see
    :func:`dialog_controls.utils.guards.false_if_guard_failed`.
    """
    pass
