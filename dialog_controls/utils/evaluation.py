"""Helpers for props that may be plain values, callables, or coroutines."""

import inspect
from typing import Any, Awaitable, Callable, TypeVar, Union

T = TypeVar("T")

BoolProp = Union[bool, Callable[..., Union[bool, Awaitable[bool]]]]


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it."""
    if inspect.isawaitable(value):
        return await value
    return value


async def evaluate_bool_prop(prop: BoolProp, *args: Any) -> bool:
    """Evaluate a boolean-or-predicate prop against ``args``."""
    if callable(prop):
        return bool(await maybe_await(prop(*args)))
    return bool(prop)


def evaluate_list_prop(prop: Any, *args: Any) -> list:
    """Evaluate a list-or-callable prop against ``args``."""
    if callable(prop):
        return list(prop(*args))
    return list(prop)
