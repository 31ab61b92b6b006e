"""Result container returned by the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

import requests

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass
class Ok(Generic[T]):
    """Successful call: the decoded value plus request metadata."""

    value: T
    meta: dict[str, Any] = field(default_factory=dict)
    request: requests.PreparedRequest | None = None
    response: requests.Response | None = None

    @property
    def ok(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


@dataclass
class Err(Generic[E]):
    """Failed call: the terminal error plus request metadata."""

    error: E
    meta: dict[str, Any] = field(default_factory=dict)
    request: requests.PreparedRequest | None = None
    response: requests.Response | None = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def value(self) -> None:
        return None


Result = Union[Ok[T], Err[E]]
