"""Unit tests for the Neocities API client."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from neosync.api import NeoClient
from neosync.exceptions import (
    NeoAPIError,
    NeoAuthenticationError,
    NeoConfigError,
    NeoDownloadError,
    NeoInvalidResponseError,
    NeoNetworkError,
    NeoNotFoundError,
    NeoRateLimitError,
)


def response(status_code=200, json=None, text=None, headers=None, method="GET"):
    request = httpx.Request(method, "https://neocities.org/api/test")
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers, request=request)
    return httpx.Response(
        status_code, text=text or "", headers=headers, request=request
    )


@pytest.fixture
def client():
    return NeoClient(api_key="test_key", retry_delay=0)


class TestNeoClientInit:
    def test_defaults(self):
        client = NeoClient(api_key="k")
        assert client.api_url == "https://neocities.org/api"
        assert client.host == "neocities.org"
        assert client.max_retries == 3

    def test_strips_trailing_slash(self):
        assert NeoClient(api_key="k", api_url="https://x/api/").api_url == "https://x/api"

    def test_requires_api_key(self):
        with pytest.raises(NeoConfigError):
            NeoClient(api_key="")

    def test_bearer_header(self, client):
        http = client._get_client()
        assert http.headers["Authorization"] == "Bearer test_key"
        client.close()

    def test_context_manager_closes(self):
        with NeoClient(api_key="k") as client:
            http = client._get_client()
        assert http.is_closed


class TestRequest:
    """Tests for _request error mapping and retries."""

    @patch("httpx.Client.request")
    def test_success(self, mock_request, client):
        mock_request.return_value = response(json={"result": "success"})

        assert client._request("GET", "/info") == {"result": "success"}
        assert mock_request.call_args[0][:2] == ("GET", "https://neocities.org/api/info")

    @patch("httpx.Client.request")
    def test_empty_body(self, mock_request, client):
        mock_request.return_value = response(text="")
        assert client._request("POST", "/delete") == {}

    @patch("httpx.Client.request")
    def test_unauthorized(self, mock_request, client):
        mock_request.return_value = response(
            401,
            json={
                "result": "error",
                "error_type": "invalid_auth",
                "message": "invalid credentials",
            },
        )

        with pytest.raises(NeoAuthenticationError) as exc_info:
            client._request("GET", "/list")

        assert exc_info.value.error_type == "invalid_auth"
        assert mock_request.call_count == 1

    @patch("httpx.Client.request")
    def test_not_found(self, mock_request, client):
        mock_request.return_value = response(404, json={"message": "missing"})

        with pytest.raises(NeoNotFoundError, match="missing"):
            client._request("GET", "/info")

    @patch("httpx.Client.request")
    def test_client_error_keeps_server_message(self, mock_request, client):
        mock_request.return_value = response(
            400,
            json={
                "result": "error",
                "error_type": "invalid_file_type",
                "message": "a.exe is not a valid file type",
            },
        )

        with pytest.raises(NeoAPIError, match="status 400: a.exe") as exc_info:
            client._request("POST", "/upload")

        assert exc_info.value.error_type == "invalid_file_type"
        assert mock_request.call_count == 1

    @patch("httpx.Client.request")
    def test_server_error_is_retried(self, mock_request, client):
        mock_request.side_effect = [
            response(502, text="bad gateway"),
            response(json={"result": "success"}),
        ]

        assert client._request("GET", "/list") == {"result": "success"}
        assert mock_request.call_count == 2

    @patch("httpx.Client.request")
    def test_server_error_gives_up(self, mock_request, client):
        mock_request.return_value = response(500, text="oops")

        with pytest.raises(NeoAPIError, match="status 500"):
            client._request("GET", "/list")

        assert mock_request.call_count == client.max_retries + 1

    @patch("neosync.api.time.sleep")
    @patch("httpx.Client.request")
    def test_rate_limit_honours_retry_after(self, mock_request, mock_sleep, client):
        mock_request.side_effect = [
            response(429, json={"message": "slow down"}, headers={"Retry-After": "2"}),
            response(json={"result": "success"}),
        ]

        client._request("GET", "/list")

        mock_sleep.assert_called_once_with(2.0)

    @patch("httpx.Client.request")
    def test_rate_limit_exhausted(self, mock_request, client):
        mock_request.return_value = response(429, json={"message": "slow down"})

        with pytest.raises(NeoRateLimitError):
            client._request("GET", "/list")

    @patch("httpx.Client.request")
    def test_network_error_is_retried(self, mock_request, client):
        mock_request.side_effect = [
            httpx.ConnectError("refused"),
            response(json={"result": "success"}),
        ]

        assert client._request("GET", "/list") == {"result": "success"}

    @patch("httpx.Client.request")
    def test_network_error_gives_up(self, mock_request, client):
        mock_request.side_effect = httpx.ConnectError("refused")

        with pytest.raises(NeoNetworkError, match="refused"):
            client._request("GET", "/list")

        assert mock_request.call_count == client.max_retries + 1

    @patch("httpx.Client.request")
    def test_html_response_is_auth_error(self, mock_request, client):
        mock_request.return_value = response(
            text="<html>login</html>", headers={"Content-Type": "text/html"}
        )

        with pytest.raises(NeoAuthenticationError):
            client._request("GET", "/list")

    @patch("httpx.Client.request")
    def test_unexpected_content_type(self, mock_request, client):
        mock_request.return_value = response(
            text="hello", headers={"Content-Type": "text/plain"}
        )

        with pytest.raises(NeoInvalidResponseError):
            client._request("GET", "/list")


class TestRetryDelay:
    def test_exponential_backoff_with_jitter(self):
        client = NeoClient(api_key="k", retry_delay=1.0)
        for attempt in range(4):
            base = 2**attempt
            delay = client._calculate_retry_delay(attempt)
            assert base * 0.75 <= delay <= base * 1.25


class TestEndpoints:
    """Tests for the endpoint wrappers."""

    @patch("httpx.Client.request")
    def test_list_files(self, mock_request, client):
        mock_request.return_value = response(
            json={
                "result": "success",
                "files": [
                    {"path": "index.html", "is_directory": False, "sha1_hash": "ab"},
                    {"path": "img", "is_directory": True},
                ],
            }
        )

        result = client.list_files()

        assert [f.path for f in result.files] == ["index.html"]
        assert mock_request.call_args[1]["params"] is None

    @patch("httpx.Client.request")
    def test_list_files_without_result_field(self, mock_request, client):
        mock_request.return_value = response(
            json={
                "files": [
                    {"path": "a.html", "is_directory": False, "sha1_hash": "ab"}
                ]
            }
        )

        result = client.list_files()

        assert [f.path for f in result.files] == ["a.html"]

    @patch("httpx.Client.request")
    def test_list_files_without_files_array(self, mock_request, client):
        mock_request.return_value = response(json={"message": "hello"})

        with pytest.raises(NeoInvalidResponseError):
            client.list_files()

    @patch("httpx.Client.request")
    def test_get_info_without_result_field(self, mock_request, client):
        mock_request.return_value = response(json={"sitename": "youpi", "hits": 1})

        assert client.get_info().sitename == "youpi"

    @patch("httpx.Client.request")
    def test_list_files_error_result(self, mock_request, client):
        mock_request.return_value = response(
            json={"result": "error", "message": "site not found"}
        )

        with pytest.raises(NeoAPIError, match="site not found"):
            client.list_files()

    @patch("httpx.Client.request")
    def test_get_site_identifier(self, mock_request, client):
        mock_request.return_value = response(
            json={"result": "success", "info": {"sitename": "youpi", "hits": 3}}
        )

        assert client.get_site_identifier() == "youpi"

    def test_site_url(self):
        client = NeoClient(api_key="k", host="example.org")
        assert client.site_url("me", "a b/c.html") == "https://me.example.org/a%20b/c.html"

    @patch("httpx.Client.request")
    def test_upload_file(self, mock_request, client, tmp_path):
        f = tmp_path / "style.css"
        f.write_bytes(b"body {}")
        mock_request.return_value = response(json={"result": "success"})

        client.upload_file(f, "css/style.css")

        args, kwargs = mock_request.call_args
        assert args[0] == "POST"
        assert args[1].endswith("/upload")
        assert kwargs["files"] == {"css/style.css": ("style.css", b"body {}")}

    @patch("httpx.Client.request")
    def test_upload_retry_resends_content(self, mock_request, client, tmp_path):
        f = tmp_path / "a.html"
        f.write_bytes(b"hello")
        mock_request.side_effect = [
            httpx.ReadTimeout("slow"),
            response(json={"result": "success"}),
        ]

        client.upload_file(f, "a.html")

        first = mock_request.call_args_list[0][1]["files"]
        second = mock_request.call_args_list[1][1]["files"]
        assert first == second == {"a.html": ("a.html", b"hello")}

    @patch("httpx.Client.request")
    def test_delete_files(self, mock_request, client):
        mock_request.return_value = response(json={"result": "success"})

        client.delete_files(["a.html", "b/c.html"])

        kwargs = mock_request.call_args[1]
        assert kwargs["data"] == {"filenames[]": ["a.html", "b/c.html"]}
        assert "idempotent" not in kwargs

    @patch("httpx.Client.request")
    def test_delete_not_retried_after_server_error(self, mock_request, client):
        """A 5xx may come after the file was already removed."""
        mock_request.side_effect = [
            response(502, text="bad gateway"),
            response(json={"result": "error", "message": "a.html was not found"}),
        ]

        with pytest.raises(NeoAPIError, match="status 502"):
            client.delete_files(["a.html"])

        assert mock_request.call_count == 1

    @patch("httpx.Client.request")
    def test_delete_not_retried_after_read_timeout(self, mock_request, client):
        mock_request.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(NeoNetworkError):
            client.delete_files(["a.html"])

        assert mock_request.call_count == 1

    @patch("httpx.Client.request")
    def test_delete_retried_when_never_sent(self, mock_request, client):
        mock_request.side_effect = [
            httpx.ConnectError("refused"),
            response(429, json={"message": "slow down"}),
            response(json={"result": "success"}),
        ]

        assert client.delete_files(["a.html"]) == {"result": "success"}
        assert mock_request.call_count == 3


class TestDownloadFile:
    """Tests for direct file downloads."""

    def _stream(self, status=200, chunks=(b"hello ", b"world")):
        resp = MagicMock()
        resp.headers = {"Content-Length": str(sum(len(c) for c in chunks))}
        resp.iter_bytes.return_value = list(chunks)
        if status >= 400:
            request = httpx.Request("GET", "https://me.neocities.org/x")
            resp.raise_for_status.side_effect = httpx.HTTPStatusError(
                "404", request=request, response=httpx.Response(status, request=request)
            )
        ctx = MagicMock()
        ctx.__enter__.return_value = resp
        return ctx

    @patch("neosync.api.httpx.stream")
    def test_download(self, mock_stream, client, tmp_path):
        mock_stream.return_value = self._stream()
        progress = []

        path = client.download_file(
            "https://me.neocities.org/index.html",
            tmp_path / "index.html",
            progress_callback=lambda done, total: progress.append((done, total)),
        )

        assert Path(path).read_bytes() == b"hello world"
        assert progress[-1] == (11, 11)

    @patch("neosync.api.httpx.stream")
    def test_download_http_error(self, mock_stream, client, tmp_path):
        mock_stream.return_value = self._stream(status=404)

        with pytest.raises(NeoDownloadError):
            client.download_file("https://me.neocities.org/x", tmp_path / "x")

    @patch("neosync.api.httpx.stream")
    def test_download_network_error(self, mock_stream, client, tmp_path):
        mock_stream.side_effect = httpx.ConnectError("refused")

        with pytest.raises(NeoNetworkError):
            client.download_file("https://me.neocities.org/x", tmp_path / "x")

    @patch("neosync.api.httpx.stream")
    def test_download_write_error(self, mock_stream, client, tmp_path):
        mock_stream.return_value = self._stream()

        with pytest.raises(NeoDownloadError, match="write"):
            client.download_file("https://me.neocities.org/x", tmp_path / "no" / "x")
