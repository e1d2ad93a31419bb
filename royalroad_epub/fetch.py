"""Async HTTP access to the story site."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional
from urllib.parse import urljoin

import httpx

from .errors import DecodeError, NetworkError

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.royalroad.com"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; royalroad-epub/0.1) Python/httpx"


@dataclass(frozen=True)
class FetchedResource:
    """Response of a single GET request."""

    url: str
    status_code: int
    content_type: str
    content: bytes
    charset: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class ResourceFetcher:
    """Fetch pages and images through one shared :class:`httpx.AsyncClient`.

    Use as an async context manager. Links are resolved against
    ``base_url`` so relative chapter links from the story page can be
    passed as they are. There is no retry: the first failure is raised.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport
        self.request_count = 0
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ResourceFetcher":
        self._client = httpx.AsyncClient(
            headers={"User-Agent": self.user_agent},
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def resolve(self, url: str) -> str:
        return urljoin(self.base_url, url)

    async def fetch(self, url: str) -> FetchedResource:
        if self._client is None:
            raise RuntimeError("ResourceFetcher must be used as an async context manager")

        target = url
        try:
            # malformed links fail in urljoin (ValueError) or in httpx.URL (InvalidURL)
            target = self.resolve(url)
            self.request_count += 1
            LOGGER.debug("GET %s", target)
            response = await self._client.get(target)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            raise NetworkError(target, reason=str(exc) or type(exc).__name__) from exc

        resource = FetchedResource(
            url=str(response.url),
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
            content=response.content,
            charset=response.charset_encoding,
        )
        if not resource.ok:
            raise NetworkError(target, status_code=resource.status_code, reason=response.reason_phrase)
        return resource

    async def fetch_text(self, url: str) -> str:
        resource = await self.fetch(url)
        encoding = resource.charset or "utf-8"
        try:
            return resource.content.decode(encoding)
        except (UnicodeDecodeError, LookupError) as exc:
            raise DecodeError(resource.url, encoding) from exc


__all__ = ["DEFAULT_BASE_URL", "DEFAULT_USER_AGENT", "FetchedResource", "ResourceFetcher"]
