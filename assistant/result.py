"""Per-stage result type used to chain generative calls with deterministic fallbacks.

A stage that may fail returns ``Ok(value)`` or ``Err(reason)`` instead of
raising, so each fallback chain reads top to bottom in priority order::

    result = await attempt(_classify_with_llm, text)
    intent = or_else(result, lambda: _keyword_fallback(text))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar, Union

logger = logging.getLogger("assistant.result")

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str


Result = Union[Ok[T], Err]


async def attempt(func: Callable[..., Awaitable[T]], *args, **kwargs) -> Result[T]:
    """Await ``func(*args, **kwargs)`` and capture any exception as ``Err``."""
    try:
        return Ok(await func(*args, **kwargs))
    except Exception as exc:
        logger.exception("Stage %s failed", getattr(func, "__name__", func))
        return Err(f"{type(exc).__name__}: {exc}")


def or_else(result: Result[T], fallback: Callable[[], T]) -> T:
    """Unwrap *result*, calling *fallback* when it is an ``Err``."""
    if isinstance(result, Ok):
        return result.value
    logger.warning("Falling back after error: %s", result.reason)
    return fallback()
