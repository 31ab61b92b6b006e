"""Turn a terminal attempt outcome into a value or an enriched error."""

from __future__ import annotations

from typing import Any

import requests

from .classify import Classification, is_success_status, status_message
from .codec import ContentCodec
from .errors import (
    DecodeError,
    HttpClientError,
    RequestTimeoutError,
    StatusError,
    TransportError,
)
from .request import RequestSpec
from .retry import AttemptOutcome


def _payload_text(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


def error_for_outcome(outcome: AttemptOutcome) -> HttpClientError:
    """Build the taxonomy error for a non-successful outcome."""
    error: HttpClientError
    if outcome.status_code and not is_success_status(outcome.status_code):
        message = (
            str(outcome.error)
            if outcome.error is not None
            else status_message(outcome.status_code)
        )
        error = StatusError(message, status_code=outcome.status_code)
    elif isinstance(outcome.error, requests.exceptions.Timeout):
        error = RequestTimeoutError(outcome.error)
    elif outcome.error is not None:
        error = TransportError(outcome.error)
    else:
        error = StatusError(
            status_message(outcome.status_code),
            status_code=outcome.status_code,
        )
    if outcome.error is not None:
        error.__cause__ = outcome.error
        error.set_extra("final_error", type(outcome.error).__name__)
    error.set_request(outcome.request)
    error.set_response(outcome.response)
    return error


class ResponseDecoder:
    """Decode buffered payloads with the engine's codec."""

    def __init__(self, codec: ContentCodec) -> None:
        self._codec = codec

    def decode_success(
        self, spec: RequestSpec, outcome: AttemptOutcome
    ) -> Any:
        """Return the decoded model (or raw payload) for a 2xx outcome.

        Raises:
            DecodeError: The payload does not parse into the response model.
        """
        slot = spec.response_model
        if slot is None:
            return outcome.payload
        try:
            value = self._codec.decode(outcome.payload, slot.model_type)
        except DecodeError as exc:
            exc.set_request(outcome.request)
            exc.set_response(outcome.response)
            exc.set_extra("response_message", _payload_text(outcome.payload))
            raise
        slot.fill(value)
        return value

    def decode_failure(
        self, spec: RequestSpec, outcome: AttemptOutcome
    ) -> HttpClientError:
        """Return the terminal error, filling the error model if possible."""
        error = error_for_outcome(outcome)
        slot = spec.error_model
        if slot is None or outcome.response is None:
            return error
        try:
            slot.fill(self._codec.decode(outcome.payload, slot.model_type))
        except DecodeError:
            error.set_extra(
                "response_message", _payload_text(outcome.payload)
            )
        return error

    def decode(
        self, spec: RequestSpec, outcome: AttemptOutcome
    ) -> tuple[Any, HttpClientError | None]:
        if outcome.classification is Classification.SUCCESS:
            try:
                return self.decode_success(spec, outcome), None
            except DecodeError as exc:
                return None, exc
        return None, self.decode_failure(spec, outcome)
