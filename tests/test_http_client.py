"""Tests for the shared HTTP helpers."""

from unittest.mock import MagicMock, patch

import requests

from depfetch.common import http_client


def _response(status, content=b"", headers=None):
    response = MagicMock()
    response.status_code = status
    response.content = content
    response.headers = headers or {}
    return response


class TestRobustGet:
    """Retry, failure and cache behavior of robust_get."""

    @patch("depfetch.common.http_client.requests.get")
    def test_success(self, mock_get):
        mock_get.return_value = _response(200, b"data", {"Content-Type": "text/xml"})
        status, headers, body = http_client.robust_get("https://repo.example.com/a.xml")
        assert status == 200
        assert headers == {"Content-Type": "text/xml"}
        assert body == b"data"

    @patch("depfetch.common.http_client.requests.get")
    def test_retries_server_errors(self, mock_get):
        mock_get.side_effect = [_response(503), _response(200, b"ok")]
        status, _, body = http_client.robust_get("https://repo.example.com/b.xml")
        assert (status, body) == (200, b"ok")
        assert mock_get.call_count == 2

    @patch("depfetch.common.http_client.requests.get")
    def test_exhausted_retries_return_zero(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")
        assert http_client.robust_get("https://repo.example.com/c.xml") == (0, {}, b"")
        assert mock_get.call_count == http_client.Constants.HTTP_RETRY_MAX

    @patch("depfetch.common.http_client.requests.get")
    def test_not_found_is_not_retried(self, mock_get):
        mock_get.return_value = _response(404)
        status, _, _ = http_client.robust_get("https://repo.example.com/d.xml")
        assert status == 404
        assert mock_get.call_count == 1

    @patch("depfetch.common.http_client.requests.get")
    def test_responses_are_cached(self, mock_get):
        mock_get.return_value = _response(200, b"cached")
        http_client.robust_get("https://repo.example.com/e.xml")
        http_client.robust_get("https://repo.example.com/e.xml")
        assert mock_get.call_count == 1

    @patch("depfetch.common.http_client.requests.get")
    def test_cache_can_be_bypassed(self, mock_get):
        mock_get.return_value = _response(200, b"fresh")
        http_client.robust_get("https://repo.example.com/f.aar", cache=False)
        http_client.robust_get("https://repo.example.com/f.aar", cache=False)
        assert mock_get.call_count == 2


class TestRobustHead:
    """HEAD probing."""

    @patch("depfetch.common.http_client.requests.head")
    def test_returns_status(self, mock_head):
        mock_head.return_value = _response(404)
        assert http_client.robust_head("https://repo.example.com/x.jar") == 404

    @patch("depfetch.common.http_client.requests.head")
    def test_failure_returns_zero(self, mock_head):
        mock_head.side_effect = requests.Timeout("slow")
        assert http_client.robust_head("https://repo.example.com/x.jar") == 0
