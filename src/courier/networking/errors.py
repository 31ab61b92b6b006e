"""Error taxonomy for the courier networking layer.

Every error is also a context carrier: the engine attaches the prepared
request, the response (when one was obtained), a message, and free-form
extra values before handing the error back to the caller.
"""

from __future__ import annotations

from typing import Any

import requests


class HttpClientError(Exception):
    """Base error for all engine failures."""

    def __init__(self, message: str | BaseException = "") -> None:
        super().__init__(str(message))
        self._message = str(message)
        self._request: requests.PreparedRequest | None = None
        self._response: requests.Response | None = None
        self._extra: dict[str, Any] = {}

    def __str__(self) -> str:
        return self._message

    @property
    def message(self) -> str:
        return self._message

    @property
    def request(self) -> requests.PreparedRequest | None:
        return self._request

    @property
    def response(self) -> requests.Response | None:
        return self._response

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self._extra)

    def set_message(self, message: str | BaseException) -> None:
        self._message = str(message)
        self.args = (self._message,)

    def set_request(self, request: requests.PreparedRequest | None) -> None:
        self._request = request

    def set_response(self, response: requests.Response | None) -> None:
        self._response = response

    def set_extra(self, key: str, value: Any) -> None:
        self._extra[key] = value


class ConfigurationError(HttpClientError):
    """Raised when the engine is constructed with invalid input."""


class BuildError(HttpClientError):
    """The request could not be built; nothing was sent."""


class TransportError(HttpClientError):
    """No response was obtained (connection, TLS or protocol failure)."""


class RequestTimeoutError(TransportError):
    """The transport gave up waiting for the server."""


class StatusError(HttpClientError):
    """A response was obtained but its status code is not 2xx."""

    def __init__(
        self, message: str | BaseException = "", status_code: int = 0
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(HttpClientError):
    """A response body could not be parsed into the requested model."""
