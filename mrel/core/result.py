"""Result type for explicit error handling.

Operations that can fail for expected reasons (a malformed manifest, a git
command that exits non-zero, a plugin refusing a release) return a Result
instead of raising. Callers branch on it explicitly:

    match load_manifest(path):
        case Ok(manifest):
            ...
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome holding ``value``."""

    value: T

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the contained value."""
        return Ok(f(self.value))


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome holding ``error``."""

    error: E

    def map(self, f: Callable[[T], U]) -> Err[E]:
        return self


Result: TypeAlias = Union[Ok[T], Err[E]]
