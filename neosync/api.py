"""API client for Neocities."""

from __future__ import annotations

import logging
import random
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import quote

import httpx

from .exceptions import (
    NeoAPIError,
    NeoAuthenticationError,
    NeoConfigError,
    NeoDownloadError,
    NeoInvalidResponseError,
    NeoNetworkError,
    NeoNotFoundError,
    NeoRateLimitError,
)
from .models import FileListResult, SiteInfo
from .utils import (
    DEFAULT_API_URL,
    DEFAULT_HOST,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
)

if TYPE_CHECKING:
    from .sync.session import SyncSession

logger = logging.getLogger(__name__)


class NeoClient:
    """Client for the Neocities site API.

    A single client is shared by all worker threads of a sync; the
    underlying ``httpx.Client`` pools connections across them.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        host: str = DEFAULT_HOST,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
    ):
        """Initialize Neocities API client.

        Args:
            api_key: API key sent as bearer credential
            api_url: API base URL (default: https://neocities.org/api)
            host: Domain sites are served from, for direct file URLs
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
        """
        if not api_key:
            raise NeoConfigError("API key not configured")

        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.host = host
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    @classmethod
    def from_session(cls, session: SyncSession) -> NeoClient:
        """Create a client from a :class:`~neosync.sync.session.SyncSession`."""
        return cls(api_key=session.api_key, api_url=session.api_url, host=session.host)

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    timeout=httpx.Timeout(self.timeout),
                    follow_redirects=True,
                )
            return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        with self._client_lock:
            if self._client is not None and not self._client.is_closed:
                self._client.close()
            self._client = None

    def __enter__(self) -> NeoClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures only; auth and client errors are final
        return isinstance(exception, (NeoNetworkError, NeoRateLimitError))

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Add jitter: +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str | None, str | None]:
        """Extract (message, error_type) from a Neocities error body."""
        try:
            if response.content:
                data = response.json()
                if isinstance(data, dict):
                    return data.get("message"), data.get("error_type")
        except ValueError:
            pass
        return None, None

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[NeoAPIError, bool]:
        """Map an HTTP error to an exception and decide whether to retry.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code
        message, error_type = self._error_details(e.response)

        if status_code == 401:
            return (
                NeoAuthenticationError(
                    message or "Invalid API key or unauthorized access", error_type
                ),
                False,
            )
        if status_code == 404:
            return NeoNotFoundError(message or "Resource not found", error_type), False
        if status_code == 429:
            error = NeoRateLimitError(
                message or "Rate limit exceeded - please try again later", error_type
            )
            return error, attempt < self.max_retries

        error_msg = f"API request failed with status {status_code}"
        if message:
            error_msg = f"{error_msg}: {message}"
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return NeoAPIError(error_msg, error_type), should_retry

    def _request(
        self, method: str, endpoint: str, idempotent: bool = True, **kwargs: Any
    ) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            idempotent: When False, the request is only retried if it never
                reached the server (connect failures and 429)
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            NeoAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()
        last_exception: NeoAPIError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    if "text/html" in content_type:
                        raise NeoAuthenticationError(
                            "Invalid API key - server returned HTML instead of JSON"
                        )
                    raise NeoInvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )

                if not response.content:
                    return {}
                try:
                    return response.json()
                except ValueError as e:
                    raise NeoInvalidResponseError(
                        "Invalid JSON response from server"
                    ) from e

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                if not idempotent and not isinstance(error, NeoRateLimitError):
                    should_retry = False
                last_exception = error
                if should_retry:
                    delay = self._calculate_retry_delay(attempt)
                    if isinstance(error, NeoRateLimitError):
                        retry_after = e.response.headers.get("Retry-After")
                        if retry_after and retry_after.isdigit():
                            delay = float(retry_after)
                    logger.debug(
                        "%s %s failed (%s), retrying in %.1fs",
                        method,
                        endpoint,
                        error,
                        delay,
                    )
                    time.sleep(delay)
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = NeoNetworkError(f"Network error: {e}")
                last_exception = error
                not_sent = isinstance(e, (httpx.ConnectError, httpx.ConnectTimeout))
                if (idempotent or not_sent) and self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        "%s %s network error, retrying in %.1fs", method, endpoint, delay
                    )
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise NeoAPIError("Request failed after all retry attempts")

    @staticmethod
    def _check_result(data: Any, what: str) -> dict[str, Any]:
        """Reject bodies that report a failure.

        A missing ``result`` field is accepted; the models validate the
        payload itself.
        """
        if not isinstance(data, dict):
            raise NeoInvalidResponseError(f"Unexpected {what} response: {data!r}")
        if "result" in data and data["result"] != "success":
            message = data.get("message") or f"{what} did not report success"
            raise NeoAPIError(message, data.get("error_type"))
        return data

    # =========================
    # Site Operations
    # =========================

    def list_files(self, path: str | None = None) -> FileListResult:
        """List every file and directory of the site.

        Args:
            path: Optional directory to restrict the listing to

        Returns:
            Parsed listing

        Raises:
            NeoAPIError: If the call fails or the response is not usable
        """
        params = {"path": path} if path else None
        data = self._check_result(
            self._request("GET", "/list", params=params), "list"
        )
        return FileListResult.from_api_response(data)

    def get_info(self, sitename: str | None = None) -> SiteInfo:
        """Get metadata of the authenticated site (or of ``sitename``)."""
        params = {"sitename": sitename} if sitename else None
        data = self._check_result(
            self._request("GET", "/info", params=params), "info"
        )
        return SiteInfo.from_api_response(data)

    def get_site_identifier(self) -> str:
        """Return the sitename of the authenticated site."""
        return self.get_info().sitename

    def site_url(self, sitename: str, relative_path: str) -> str:
        """Build the direct URL of a site file.

        Examples:
            >>> client = NeoClient(api_key="k")
            >>> client.site_url("mysite", "blog/hello world.html")
            'https://mysite.neocities.org/blog/hello%20world.html'
        """
        return f"https://{sitename}.{self.host}/{quote(relative_path)}"

    # =========================
    # File Operations
    # =========================

    def upload_file(self, file_path: Path, relative_path: str) -> Any:
        """Upload one file to the site.

        The multipart field name is the target path on the site.

        Args:
            file_path: Local file to read
            relative_path: Destination path relative to the site root

        Returns:
            Response JSON (``{"result": "success", ...}`` on success)
        """
        # Read up front so a retried request sends the whole body again
        content = file_path.read_bytes()
        files = {relative_path: (Path(relative_path).name, content)}
        return self._request("POST", "/upload", files=files)

    def delete_files(self, relative_paths: list[str]) -> Any:
        """Delete files from the site.

        A request that may have reached the server is not retried: a repeat
        would fail on the already deleted file.

        Args:
            relative_paths: Paths relative to the site root

        Returns:
            Response JSON (``{"result": "success", ...}`` on success)
        """
        return self._request(
            "POST",
            "/delete",
            idempotent=False,
            data={"filenames[]": list(relative_paths)},
        )

    def download_file(
        self,
        url: str,
        output_path: Path,
        progress_callback: Callable[[int, int], None] | None = None,
        timeout: int = 60,
    ) -> Path:
        """Download a file by its direct URL.

        No credential is sent; site files are public.

        Args:
            url: Direct URL of the file
            output_path: Where to write the file
            progress_callback: Optional callback function(bytes_downloaded, total_bytes)
            timeout: Request timeout in seconds (default: 60)

        Returns:
            Path where the file was saved

        Raises:
            NeoDownloadError: If the download or the write fails
            NeoNetworkError: On transport failure
        """
        try:
            with httpx.stream(
                "GET", url, timeout=timeout, follow_redirects=True
            ) as response:
                response.raise_for_status()

                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0

                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)

                return output_path

        except httpx.HTTPStatusError as e:
            raise NeoDownloadError(f"Download failed: {e}") from e
        except httpx.RequestError as e:
            raise NeoNetworkError(f"Network error during download: {e}") from e
        except OSError as e:
            raise NeoDownloadError(f"Failed to write file: {e}") from e
