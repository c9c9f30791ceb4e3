"""Result types for operations that degrade instead of raising."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """A step that produced its value."""

    value: T


@dataclass(frozen=True, slots=True)
class Failure(Generic[T, E]):
    """A step that failed; ``fallback`` is what the caller should use instead."""

    error: E
    fallback: T


Result = Union[Success[T], Failure[T, E]]


def unwrap_or_fallback(result: Result[T, E]) -> T:
    """The value on success, the fallback on failure."""
    if isinstance(result, Success):
        return result.value
    return result.fallback
