"""
Guard helpers for ``can_handle`` predicates.

A predicate is written as a sequence of ``ok_if(...)`` assertions; the
first failing assertion aborts it, and the :func:`false_if_guard_failed`
decorator turns the signal into ``False``::

    @false_if_guard_failed
    def is_bare_value(self, input):
        ok_if(is_value_control_intent(input, self.slot_type))
        ok_if(action is None)
        return True

Any other exception raised inside the predicate propagates unchanged.
"""

import inspect
from functools import wraps
from typing import Any, Callable, TypeVar

from ..errors import GuardFailed

F = TypeVar("F", bound=Callable[..., Any])


def ok_if(predicate: bool) -> None:
    """Raise :class:`GuardFailed` unless ``predicate`` is true."""
    if predicate is not True:
        raise GuardFailed()


def fail_if(predicate: bool) -> None:
    """Raise :class:`GuardFailed` if ``predicate`` is true."""
    if predicate is True:
        raise GuardFailed()


def false_if_guard_failed(func: F) -> F:
    """Decorator: a predicate that raises :class:`GuardFailed` returns ``False``."""
    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> bool:
            try:
                return await func(*args, **kwargs)
            except GuardFailed:
                return False

        return async_wrapper  # type: ignore[return-value]

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> bool:
        try:
            return func(*args, **kwargs)
        except GuardFailed:
            return False

    return wrapper  # type: ignore[return-value]
