"""Two-variant result returned by route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome; rendered as 200 with the route's ok schema."""

    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    """Expected business failure; rendered as 400 with the route's err schema."""

    value: E


Result = Ok[Any] | Err[Any]
