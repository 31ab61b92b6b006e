# pyright: reportUnknownParameterType=false, reportUnknownMemberType=false
from unittest.mock import Mock, patch

from courier.networking.client import HttpClient
from courier.networking.config import HttpClientConfig
from courier.networking.errors import StatusError


def _mock_response(
    *,
    content: bytes = b"",
    status: int = 200,
    url: str = "http://example.com",
    reason: str = "OK",
):
    response = Mock()
    response.content = content
    response.status_code = status
    response.url = url
    response.reason = reason
    response.elapsed.total_seconds.return_value = 0.1
    response.headers = {"Content-Type": "application/json"}
    return response


def test_get_404_is_err_result_with_status_metadata():
    client = HttpClient(HttpClientConfig(timeout_seconds=5.0))

    with patch("requests.Session.send") as mock_send:
        mock_send.return_value = _mock_response(
            content=b"not found",
            status=404,
            reason="Not Found",
        )
        result = client.get("http://example.com/missing")

    assert not result.ok
    assert isinstance(result.error, StatusError)
    assert result.error.status_code == 404
    assert result.meta["status_code"] == 404
    assert result.meta["reason"] == "Not Found"
    assert mock_send.call_count == 1


def test_get_500_is_retried_then_err_result_with_status_metadata():
    client = HttpClient(HttpClientConfig(timeout_seconds=5.0, max_retries=2))

    with patch("requests.Session.send") as mock_send, patch(
        "courier.networking.retry.sleep"
    ) as mock_sleep:
        mock_send.return_value = _mock_response(
            content=b"server error",
            status=500,
            reason="Internal Server Error",
        )
        result = client.get("http://example.com/error")

    assert not result.ok
    assert isinstance(result.error, StatusError)
    assert str(result.error) == "Server returned statuscode 500"
    assert result.meta["status_code"] == 500
    assert result.meta["reason"] == "Internal Server Error"
    assert result.meta["attempts"] == 3
    assert mock_sleep.call_count == 2


def test_get_302_is_terminal_err_result():
    client = HttpClient(HttpClientConfig(timeout_seconds=5.0))

    with patch("requests.Session.send") as mock_send:
        mock_send.return_value = _mock_response(
            content=b"",
            status=302,
            reason="Found",
        )
        result = client.get("http://example.com/redirect")

    assert not result.ok
    assert isinstance(result.error, StatusError)
    assert str(result.error) == "Server returned statuscode 302"
    assert result.meta["status_code"] == 302
    assert mock_send.call_count == 1


def test_get_204_is_ok_result_with_empty_payload():
    client = HttpClient(HttpClientConfig(timeout_seconds=5.0))

    with patch("requests.Session.send") as mock_send:
        mock_send.return_value = _mock_response(status=204, reason="No Content")
        result = client.get("http://example.com/empty")

    assert result.ok
    assert result.value == b""
    assert result.meta["status_code"] == 204
