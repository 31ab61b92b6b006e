"""Map one attempt's status code and transport error to a verdict."""

from __future__ import annotations

import traceback
from enum import Enum
from typing import Callable, Iterator

import requests

RETRYABLE_STATUS_CODES = frozenset({500, 503})


class Classification(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code <= 299


# Frames that only run while a connection (TCP or TLS) is being set up.
_CONNECT_FRAMES = frozenset({"connect", "do_handshake", "_validate_conn"})


def _chain(error: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def timed_out_during_connect(error: BaseException) -> bool:
    """Return True when a timeout was raised while the connection was set up.

    urllib3 reports a stalled TLS handshake as a read timeout, so the frames
    that raised it tell a handshake stall apart from a slow response.
    """
    for link in _chain(error):
        for frame, _ in traceback.walk_tb(link.__traceback__):
            if frame.f_code.co_name in _CONNECT_FRAMES:
                return True
    return False


def is_retryable_exception(error: BaseException | None) -> bool:
    """Return True for transport errors worth another attempt.

    Only timeouts hit before the request was sent qualify: connect timeouts
    and read timeouts raised during the TLS handshake. Sending those again
    is safe because the server never saw the request.
    """
    if isinstance(error, requests.exceptions.ConnectTimeout):
        return True
    if isinstance(error, requests.exceptions.ReadTimeout):
        return timed_out_during_connect(error)
    return False


def status_message(status_code: int) -> str:
    return f"Server returned statuscode {status_code}"


def classify(
    status_code: int,
    error: BaseException | None,
    should_retry: Callable[[int], bool] | None = None,
) -> Classification:
    if error is None and is_success_status(status_code):
        return Classification.SUCCESS
    if status_code in RETRYABLE_STATUS_CODES:
        return Classification.RETRYABLE
    if status_code and should_retry is not None and should_retry(status_code):
        return Classification.RETRYABLE
    if is_retryable_exception(error):
        return Classification.RETRYABLE
    return Classification.TERMINAL
