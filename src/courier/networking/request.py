"""Request description handed to the engine for one logical call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import IO, Any, Generic, Mapping, Sequence, TypeVar, Union
from urllib.parse import urlencode

ModelT = TypeVar("ModelT")


@dataclass(frozen=True)
class BodyModel:
    """A body model to be encoded by the engine's codec."""

    model: Any


@dataclass(frozen=True)
class RawBody:
    """Pre-encoded body bytes, or a binary reader that is read once."""

    data: bytes | IO[bytes]


Body = Union[BodyModel, RawBody, None]


class ModelSlot(Generic[ModelT]):
    """Caller-owned sink the engine fills with a decoded model.

    Example:
        >>> slot = ModelSlot(dict)
        >>> slot.filled
        False
    """

    def __init__(self, model_type: type[ModelT]) -> None:
        self.model_type = model_type
        self._value: ModelT | None = None
        self._filled = False

    @property
    def value(self) -> ModelT | None:
        return self._value

    @property
    def filled(self) -> bool:
        return self._filled

    def fill(self, value: ModelT) -> None:
        self._value = value
        self._filled = True

    def __repr__(self) -> str:
        name = getattr(self.model_type, "__name__", repr(self.model_type))
        return f"ModelSlot({name})"


@dataclass
class RequestSpec:
    """Everything needed to perform one logical call.

    Only one body variant can be active: ``body`` is either ``None``, a
    ``BodyModel`` or a ``RawBody``. Header overlay values replace any default
    header of the same name; an empty sequence removes the header.
    """

    method: str
    url: str
    params: dict[str, str] | None = None
    body: Body = None
    response_model: ModelSlot[Any] | None = None
    error_model: ModelSlot[Any] | None = None
    headers: Mapping[str, Sequence[str]] | None = None
    form_encoded: bool = False
    max_retries: int | None = None
    timeout: float | None = None
    context: Mapping[str, Any] | None = field(default=None, repr=False)

    def set_parameter(self, key: str, value: str) -> None:
        """Set a query parameter, replacing any previous value for ``key``."""
        if self.params is None:
            self.params = {}
        self.params[key] = value

    def full_url(self) -> str:
        if not self.params:
            return self.url
        separator = "&" if "?" in self.url else "?"
        return f"{self.url}{separator}{urlencode(sorted(self.params.items()))}"
