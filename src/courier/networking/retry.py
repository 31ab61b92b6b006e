"""Send loop with exponential backoff for transient failures."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from time import sleep
from typing import Callable, Tuple, Union

import requests

from .body import ReplayableBody
from .classify import Classification, classify

logger = logging.getLogger(__name__)

Timeout = Union[float, Tuple[float, float], None]


@dataclass(frozen=True)
class AttemptOutcome:
    """What one send attempt produced; the payload is read exactly once."""

    attempt: int
    classification: Classification
    status_code: int = 0
    payload: bytes = b""
    response: requests.Response | None = None
    error: requests.exceptions.RequestException | None = None
    request: requests.PreparedRequest | None = None


def backoff_delay(
    retry: int, base_seconds: float = 1.0, jitter_seconds: float = 1.0
) -> float:
    """Seconds to wait before retry number ``retry`` (1-based)."""
    if retry <= 0:
        return 0.0
    return base_seconds * 2 ** (retry - 1) + random.uniform(0, jitter_seconds)


class RetryExecutor:
    """Execute a prepared request until it reaches a terminal outcome.

    At most ``1 + max_retries`` attempts are made. Only outcomes classified
    as retryable (500/503, the configured predicate, connect timeouts) are
    sent again; the last attempt is always returned, whatever its verdict.
    """

    def __init__(
        self,
        *,
        max_retries: int = 5,
        backoff_base_seconds: float = 1.0,
        backoff_jitter_seconds: float = 1.0,
        should_retry: Callable[[int], bool] | None = None,
        verify_tls: bool = True,
        diagnostics: bool = False,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self._max_retries = max_retries
        self._backoff_base_seconds = backoff_base_seconds
        self._backoff_jitter_seconds = backoff_jitter_seconds
        self._should_retry = should_retry
        self._verify_tls = verify_tls
        self._diagnostics = diagnostics

    def _sleep_before(
        self, retry: int, prepared: requests.PreparedRequest
    ) -> None:
        logger.warning(
            "Starting retry %d for %s %s", retry, prepared.method, prepared.url
        )
        sleep(
            backoff_delay(
                retry,
                self._backoff_base_seconds,
                self._backoff_jitter_seconds,
            )
        )

    def _send_once(
        self,
        session: requests.Session,
        prepared: requests.PreparedRequest,
        body: ReplayableBody,
        timeout: Timeout,
    ) -> AttemptOutcome:
        armed = body.arm(prepared)
        attempt = body.attempts
        try:
            response = session.send(
                armed, timeout=timeout, verify=self._verify_tls
            )
        except requests.exceptions.RequestException as exc:
            if self._diagnostics:
                logger.debug("send failed on attempt %d: %s", attempt, exc)
            return AttemptOutcome(
                attempt=attempt,
                classification=classify(0, exc, self._should_retry),
                error=exc,
                request=armed,
            )

        try:
            payload = response.content or b""
        except requests.exceptions.RequestException as exc:
            return AttemptOutcome(
                attempt=attempt,
                classification=classify(
                    response.status_code, exc, self._should_retry
                ),
                status_code=response.status_code,
                response=response,
                error=exc,
                request=armed,
            )
        finally:
            response.close()

        if self._diagnostics:
            logger.debug(
                "attempt %d status %d body %r",
                attempt,
                response.status_code,
                payload,
            )
        return AttemptOutcome(
            attempt=attempt,
            classification=classify(
                response.status_code, None, self._should_retry
            ),
            status_code=response.status_code,
            payload=payload,
            response=response,
            request=armed,
        )

    def execute(
        self,
        session: requests.Session | None,
        prepared: requests.PreparedRequest | None,
        body: ReplayableBody | None = None,
        *,
        max_retries: int | None = None,
        timeout: Timeout = None,
    ) -> AttemptOutcome | None:
        """Run the send loop and return the terminal outcome.

        Returns None without sending when ``session`` or ``prepared`` is
        missing.
        """
        if session is None or prepared is None:
            if self._diagnostics:
                logger.debug(
                    "nothing to send: session=%r request=%r", session, prepared
                )
            return None
        if max_retries is None:
            max_retries = self._max_retries
        elif max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if body is None:
            raw = prepared.body
            if isinstance(raw, str):
                raw = raw.encode("utf-8")
            body = ReplayableBody(raw if isinstance(raw, bytes) else None)

        retry = 0
        while True:
            if retry > 0:
                self._sleep_before(retry, prepared)
            outcome = self._send_once(session, prepared, body, timeout)
            if (
                outcome.classification is Classification.RETRYABLE
                and retry < max_retries
            ):
                retry += 1
                continue
            return outcome
