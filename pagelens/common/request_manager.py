"""Request manager for outbound HTTP.

AsyncRequestManager encapsulates the httpx.AsyncClient used for catalog
listings, catalog file downloads and target page fetches. It is responsible
for:

- Sending the right User-Agent
- Turning network failures and non-2xx statuses into FetchError
- Decoding response bytes with the charset declared by the server
"""

from __future__ import annotations

import codecs
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from pagelens.common.exceptions import FetchError

logger = logging.getLogger(__name__)

CHARSET_RE = re.compile(r"charset=([^()<>@,;:\"/[\]?.=\s]*)", re.IGNORECASE)
DEFAULT_CHARSET = "utf-8"


def extract_charset(content_type: str | None) -> str:
    """Return the charset declared in a content-type header value.

    Args:
        content_type: Raw content-type header value, possibly None.

    Returns:
        Lower-cased charset name, or "utf-8" when absent or unknown.

    Examples:
        >>> extract_charset("text/html; charset=Windows-1251")
        'windows-1251'
        >>> extract_charset("text/plain")
        'utf-8'
    """
    if not content_type:
        return DEFAULT_CHARSET
    match = CHARSET_RE.search(content_type)
    if match is None or not match.group(1):
        return DEFAULT_CHARSET
    charset = match.group(1).lower()
    try:
        codecs.lookup(charset)
    except LookupError:
        logger.debug(f"Unknown charset {charset!r}, using {DEFAULT_CHARSET}")
        return DEFAULT_CHARSET
    return charset


def decode_body(content: bytes, content_type: str | None) -> str:
    """Decode response bytes using the declared charset."""
    return content.decode(extract_charset(content_type), errors="replace")


@dataclass(frozen=True)
class FetchedPage:
    """Decoded response of a successful fetch.

    Attributes:
        url: The URL that was requested.
        text: Response body decoded to text.
        headers: Response headers (lower-cased names).
    """

    url: str
    text: str
    headers: dict[str, str]


class AsyncRequestManager:
    """Manages outbound HTTP requests.

    Example::

        async with AsyncRequestManager(default_user_agent="pagelens") as rm:
            page = await rm.fetch("https://example.com/")
            print(page.text)
    """

    def __init__(
        self,
        default_user_agent: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            default_user_agent: User-Agent sent when the caller supplies none.
            timeout: Request timeout in seconds. None means no timeout (default).
            transport: Optional httpx transport, used by tests.
        """
        self.default_user_agent = default_user_agent
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _get(self, url: str, user_agent: str | None) -> httpx.Response:
        headers = {"User-Agent": user_agent or self.default_user_agent}
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise FetchError(
                url, response.reason_phrase or f"HTTP {response.status_code}"
            )
        return response

    async def fetch(self, url: str, user_agent: str | None = None) -> FetchedPage:
        """Fetch a URL and decode its body to text.

        Args:
            url: Absolute URL to fetch.
            user_agent: User-Agent to send; defaults to the configured one.

        Returns:
            FetchedPage with the decoded text.

        Raises:
            FetchError: On network failure or a non-2xx status.
        """
        response = await self._get(url, user_agent)
        text = decode_body(response.content, response.headers.get("content-type"))
        return FetchedPage(url=url, text=text, headers=dict(response.headers))

    async def get_json(self, url: str) -> Any:
        """Fetch a URL and decode its body as JSON.

        Raises:
            FetchError: On network failure, a non-2xx status or invalid JSON.
        """
        response = await self._get(url, None)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, f"Invalid JSON ({e})") from e
