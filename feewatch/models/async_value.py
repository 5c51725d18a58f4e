"""
Tagged container for the lifecycle of a remotely fetched value.

An ``AsyncValue`` is exactly one of ``NotAsked``, ``Loading``, ``Success`` or
``Failed``. The helpers below are pure and total over all variants so that
the refresh state machine can compute the next value without side effects.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class NotAsked:
    """No fetch has been requested yet."""


@dataclass(frozen=True)
class Loading(Generic[T]):
    """A fetch is in progress, optionally keeping the last good value."""
    previous: Optional[T] = None


@dataclass(frozen=True)
class Success(Generic[T]):
    """The most recent fetch produced a value."""
    value: T


@dataclass(frozen=True)
class Failed(Generic[E]):
    """The most recent fetch cycle ended in an error."""
    error: E


AsyncValue = Union[NotAsked, Loading[T], Success[T], Failed[E]]


def initial() -> NotAsked:
    return NotAsked()


def to_loading(value: AsyncValue) -> Loading:
    """
    Move a value into ``Loading``.

    Only a ``Success`` is carried over as the retained previous value. Any
    other variant, including a ``Loading`` that retains one, yields
    ``Loading(previous=None)``.
    """
    if isinstance(value, Success):
        return Loading(previous=value.value)
    return Loading()


def succeed(value: T) -> Success[T]:
    return Success(value)


def fail(error: E) -> Failed[E]:
    return Failed(error)


def is_success(value: AsyncValue) -> bool:
    return isinstance(value, Success)


def is_loading(value: AsyncValue) -> bool:
    return isinstance(value, Loading)


def last_value(value: AsyncValue) -> Optional[T]:
    """Return the freshest usable value: the success value or the retained previous."""
    if isinstance(value, Success):
        return value.value
    if isinstance(value, Loading):
        return value.previous
    return None


def status_of(value: AsyncValue) -> str:
    """Short status name used in snapshots and logs."""
    if isinstance(value, NotAsked):
        return "not_asked"
    if isinstance(value, Loading):
        return "loading"
    if isinstance(value, Success):
        return "success"
    return "failed"
