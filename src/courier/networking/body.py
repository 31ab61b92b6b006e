"""Request body that can be re-sent identically on every attempt."""

from __future__ import annotations

import io
from typing import IO

import requests


class ReplayableBody:
    """Immutable payload captured once and re-exposed as a fresh stream.

    The source (bytes or a single-use reader) is consumed exactly once in
    ``capture``. Every attempt then gets its own ``BytesIO`` over the owned
    bytes, so retries transmit the same payload as the first attempt.
    """

    def __init__(self, payload: bytes | None) -> None:
        self._payload = bytes(payload) if payload is not None else None
        self._attempts = 0

    @classmethod
    def capture(cls, source: bytes | IO[bytes] | None) -> ReplayableBody:
        if source is None:
            return cls(None)
        if isinstance(source, (bytes, bytearray, memoryview)):
            return cls(bytes(source))
        return cls(source.read())

    @property
    def payload(self) -> bytes | None:
        return self._payload

    @property
    def attempts(self) -> int:
        return self._attempts

    def __len__(self) -> int:
        return len(self._payload) if self._payload is not None else 0

    def stream(self) -> IO[bytes] | None:
        if self._payload is None:
            return None
        return io.BytesIO(self._payload)

    def arm(
        self, prepared: requests.PreparedRequest
    ) -> requests.PreparedRequest:
        """Return a copy of ``prepared`` carrying a fresh body stream."""
        self._attempts += 1
        armed = prepared.copy()
        armed.body = self.stream()
        if armed.body is not None:
            # lets requests rewind the stream when a 307/308 replays the body
            armed._body_position = 0
        return armed
