"""Result type for explicit error handling.

Every fallible step of the release pipeline returns ``Result[T, E]``
instead of raising, so callers decide where a failure aborts the run.

Usage:
    def find_release(version: str) -> Result[Release, ReleaseError]:
        ...

    result = find_release("2.5.0")
    if isinstance(result, Err):
        return result
    print(result.value.url)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """A successful result.

    Attributes:
        value: The success value.
    """

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """A failed result.

    Attributes:
        error: The error payload.
    """

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Union[Ok[T], Err[E]]
