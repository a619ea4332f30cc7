"""Remote fetcher: download a URL's bytes."""

from __future__ import annotations

import httpx
from loguru import logger


class FetchError(Exception):
    """Download failure with a user-facing short message."""

    def __init__(self, short_message: str, detail: str = ""):
        self.short_message = short_message
        self.detail = detail
        super().__init__(detail or short_message)


class RemoteFetcher:
    """Fetches binary content over HTTP(S).

    Each fetch is attempted exactly once. ``timeout=None`` disables the
    client timeout entirely, so a stalled server stalls only the caller.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPStatusError as e:
            detail = f"GET {url} returned {e.response.status_code}"
            logger.error(detail)
            raise FetchError("HTTP error", detail) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Fetch error for {url}: {e}")
            raise FetchError("download failed", str(e) or type(e).__name__) from e
