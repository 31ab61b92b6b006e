# pyright: reportUnknownParameterType=false, reportUnknownMemberType=false
import io
from unittest.mock import Mock, patch

import pytest
import requests
from urllib3.exceptions import ReadTimeoutError

from courier.networking.body import ReplayableBody
from courier.networking.classify import (
    Classification,
    classify,
    status_message,
)
from courier.networking.retry import RetryExecutor, backoff_delay


def _mock_response(*, content: bytes = b"", status: int = 200):
    response = Mock()
    response.content = content
    response.status_code = status
    return response


def _prepared(data: bytes | None = b"payload") -> requests.PreparedRequest:
    return requests.Request("POST", "http://example.com", data=data).prepare()


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (200, Classification.SUCCESS),
        (204, Classification.SUCCESS),
        (299, Classification.SUCCESS),
        (500, Classification.RETRYABLE),
        (503, Classification.RETRYABLE),
        (502, Classification.TERMINAL),
        (404, Classification.TERMINAL),
        (302, Classification.TERMINAL),
    ],
)
def test_classify_status_codes(status, expected):
    assert classify(status, None) is expected


def test_classify_uses_retry_predicate():
    assert classify(429, None, lambda code: code == 429) is Classification.RETRYABLE
    assert classify(404, None, lambda code: code == 429) is Classification.TERMINAL


def test_classify_retries_500_even_with_transport_error():
    error = requests.exceptions.ChunkedEncodingError("cut")

    assert classify(500, error) is Classification.RETRYABLE


def test_classify_connect_timeout_is_retryable():
    error = requests.exceptions.ConnectTimeout("handshake timed out")

    assert classify(0, error) is Classification.RETRYABLE
    assert classify(0, requests.exceptions.ReadTimeout("slow")) is (
        Classification.TERMINAL
    )
    assert classify(0, requests.exceptions.ConnectionError("refused")) is (
        Classification.TERMINAL
    )


def test_status_message_wording():
    assert status_message(404) == "Server returned statuscode 404"


@patch("courier.networking.retry.random.uniform", return_value=0.25)
def test_backoff_delay_doubles_per_retry(_mock_uniform):
    delays = [backoff_delay(retry) for retry in range(0, 5)]

    assert delays == [0.0, 1.25, 2.25, 4.25, 8.25]


def test_backoff_jitter_is_bounded():
    for retry in range(1, 6):
        delay = backoff_delay(retry)
        base = 2 ** (retry - 1)
        assert base <= delay <= base + 1


@patch("courier.networking.retry.sleep")
@patch("requests.Session.send")
def test_executor_stops_after_budget(mock_send, mock_sleep):
    mock_send.return_value = _mock_response(status=500)
    executor = RetryExecutor(max_retries=3)

    outcome = executor.execute(requests.Session(), _prepared())

    assert outcome is not None
    assert outcome.status_code == 500
    assert outcome.attempt == 4
    assert outcome.classification is Classification.RETRYABLE
    assert mock_send.call_count == 4
    assert mock_sleep.call_count == 3


@patch("courier.networking.retry.sleep")
@patch("requests.Session.send")
def test_executor_per_call_override_zero_retries(mock_send, mock_sleep):
    mock_send.return_value = _mock_response(status=503)
    executor = RetryExecutor(max_retries=5)

    outcome = executor.execute(requests.Session(), _prepared(), max_retries=0)

    assert outcome is not None
    assert outcome.attempt == 1
    assert mock_send.call_count == 1
    mock_sleep.assert_not_called()


@patch("courier.networking.retry.sleep")
@patch("requests.Session.send")
def test_executor_replays_identical_body(mock_send, mock_sleep):
    seen: list[bytes] = []

    def _send(request, **kwargs):
        seen.append(request.body.read())
        status = 503 if len(seen) < 3 else 200
        return _mock_response(content=b"ok", status=status)

    mock_send.side_effect = _send
    body = ReplayableBody.capture(io.BytesIO(b'{"id": 1}'))

    outcome = RetryExecutor().execute(
        requests.Session(), _prepared(body.payload), body
    )

    assert outcome is not None
    assert outcome.classification is Classification.SUCCESS
    assert seen == [b'{"id": 1}'] * 3
    assert body.attempts == 3
    assert mock_sleep.call_count == 2


@patch("courier.networking.retry.sleep")
@patch("requests.Session.send")
def test_executor_sleeps_grow_exponentially(mock_send, mock_sleep):
    mock_send.return_value = _mock_response(status=500)
    executor = RetryExecutor(max_retries=3, backoff_jitter_seconds=0)

    executor.execute(requests.Session(), _prepared())

    assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]


@patch("courier.networking.retry.sleep")
@patch("requests.Session.send")
def test_executor_retries_connect_timeout_on_same_budget(mock_send, mock_sleep):
    mock_send.side_effect = requests.exceptions.ConnectTimeout("handshake")
    executor = RetryExecutor(max_retries=2)

    outcome = executor.execute(requests.Session(), _prepared())

    assert outcome is not None
    assert outcome.status_code == 0
    assert isinstance(outcome.error, requests.exceptions.ConnectTimeout)
    assert mock_send.call_count == 3


@patch("requests.Session.send")
def test_executor_does_not_retry_connection_refused(mock_send):
    mock_send.side_effect = requests.exceptions.ConnectionError("refused")

    outcome = RetryExecutor().execute(requests.Session(), _prepared())

    assert outcome is not None
    assert outcome.classification is Classification.TERMINAL
    assert mock_send.call_count == 1


@patch("requests.Session.send")
def test_executor_passes_timeout_and_tls_settings(mock_send):
    mock_send.return_value = _mock_response()
    executor = RetryExecutor(verify_tls=False)

    executor.execute(requests.Session(), _prepared(), timeout=(1.0, 3.0))

    assert mock_send.call_args.kwargs == {"timeout": (1.0, 3.0), "verify": False}


@patch("requests.Session.send")
def test_executor_without_request_or_session_sends_nothing(mock_send):
    executor = RetryExecutor()

    assert executor.execute(requests.Session(), None) is None
    assert executor.execute(None, _prepared()) is None
    mock_send.assert_not_called()


def test_executor_rejects_negative_budget():
    with pytest.raises(ValueError):
        RetryExecutor(max_retries=-1)


def _timeout_raised_in(frame_name: str) -> requests.exceptions.ReadTimeout:
    """Build the exception chain urllib3 and requests produce for a timeout.

    The socket timeout is raised from a function called ``frame_name``, then
    wrapped the way urllib3 wraps it and re-raised the way requests does.
    """

    def raise_socket_timeout():
        raise TimeoutError("timed out")

    raise_socket_timeout.__code__ = raise_socket_timeout.__code__.replace(
        co_name=frame_name
    )
    try:
        try:
            raise_socket_timeout()
        except TimeoutError as exc:
            raise ReadTimeoutError(None, "/", "Read timed out.") from exc
    except ReadTimeoutError as exc:
        try:
            raise requests.exceptions.ReadTimeout(exc)
        except requests.exceptions.ReadTimeout as wrapped:
            return wrapped


def test_classify_handshake_read_timeout_is_retryable():
    assert classify(0, _timeout_raised_in("do_handshake")) is (
        Classification.RETRYABLE
    )
    assert classify(0, _timeout_raised_in("connect")) is (
        Classification.RETRYABLE
    )


def test_classify_response_read_timeout_is_terminal():
    assert classify(0, _timeout_raised_in("readinto")) is (
        Classification.TERMINAL
    )
