"""
Validation

A validation function receives ``(state, input)`` and returns ``True`` or a
:class:`ValidationFailure`; it may be a coroutine. A control accepts one
function or an ordered list, in which case the first failure wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Literal, Optional, Sequence, Union

import structlog

from ..utils.evaluation import maybe_await

logger = structlog.get_logger(__name__)


@dataclass
class ValidationFailure:
    """Why a value was rejected. Data, not an exception."""

    reason_code: Optional[str] = None
    rendered_reason: Optional[str] = None


ValidationResult = Union[Literal[True], ValidationFailure]
ValidationFunction = Callable[[Any, Any], Union[ValidationResult, bool, Awaitable[Union[ValidationResult, bool]]]]
ValidationProp = Union[None, ValidationFunction, Sequence[ValidationFunction]]


def as_validator_list(validation: ValidationProp) -> List[ValidationFunction]:
    if validation is None:
        return []
    if callable(validation):
        return [validation]
    return list(validation)


async def evaluate_validation(validation: ValidationProp, state: Any, input: Any) -> ValidationResult:
    """Run validators in order and return ``True`` or the first failure."""
    for validator in as_validator_list(validation):
        result = await maybe_await(validator(state, input))
        if result is True:
            continue
        failure = result if isinstance(result, ValidationFailure) else ValidationFailure()
        logger.debug(
            "validation_failed",
            validator=getattr(validator, "__name__", repr(validator)),
            reason_code=failure.reason_code,
        )
        return failure
    return True
