"""Async HTTP fetcher with redirect-chain tracking."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urljoin

import aiohttp

from seo_mcp.constants import DEFAULT_USER_AGENT
from seo_mcp.utils.errors import UrlFetchError

logger = logging.getLogger(__name__)

_REDIRECT_STATUSES = (301, 302, 303, 307, 308)


@dataclass
class HttpResponse:
    status: int
    headers: dict[str, str]
    body: str
    url: str
    redirect_chain: list[str] = field(default_factory=list)
    response_time: int = 0  # milliseconds


class HttpFetcher:
    """Thin aiohttp wrapper used by every analyzer that reads the web.

    Redirects are followed manually so the chain of intermediate URLs can
    be reported back to the caller.

    Usage::

        fetcher = HttpFetcher(timeout=15)
        response = await fetcher.get("https://example.com")
    """

    _HEADERS = {
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
    }

    def __init__(
        self,
        timeout: float = 15,
        user_agent: str = DEFAULT_USER_AGENT,
        max_redirects: int = 10,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._user_agent = user_agent
        self._max_redirects = max_redirects

    async def get(
        self,
        url: str,
        follow_redirects: bool = True,
        user_agent: Optional[str] = None,
        method: str = "GET",
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """Fetch *url* and return status, lowercase headers and body text.

        Raises:
            UrlFetchError: on timeout or connection failure.
        """
        headers = dict(self._HEADERS)
        headers["User-Agent"] = user_agent or self._user_agent
        client_timeout = aiohttp.ClientTimeout(total=timeout) if timeout else self._timeout

        redirect_chain: list[str] = []
        current = url
        start = time.monotonic()

        try:
            async with aiohttp.ClientSession(timeout=client_timeout, headers=headers) as session:
                while True:
                    async with session.request(
                        method, current, allow_redirects=False, ssl=False
                    ) as resp:
                        location = resp.headers.get("Location")
                        if (
                            follow_redirects
                            and resp.status in _REDIRECT_STATUSES
                            and location
                            and len(redirect_chain) < self._max_redirects
                        ):
                            redirect_chain.append(current)
                            current = urljoin(current, location)
                            continue

                        body = "" if method == "HEAD" else await resp.text(errors="replace")
                        resp_headers = {k.lower(): v for k, v in resp.headers.items()}
                        return HttpResponse(
                            status=resp.status,
                            headers=resp_headers,
                            body=body,
                            url=current,
                            redirect_chain=redirect_chain,
                            response_time=int((time.monotonic() - start) * 1000),
                        )
        except asyncio.TimeoutError as exc:
            raise UrlFetchError(current, "request timed out") from exc
        except aiohttp.ClientError as exc:
            raise UrlFetchError(current, str(exc)) from exc

    async def head(self, url: str, timeout: float = 5) -> HttpResponse:
        return await self.get(url, method="HEAD", timeout=timeout)

    async def head_many(
        self, urls: list[str], concurrency: int = 10, timeout: float = 5
    ) -> list[Optional[HttpResponse]]:
        """HEAD every URL with at most *concurrency* requests in flight.

        Results line up with *urls*; a URL whose request fails for any
        reason yields ``None``.
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def _one(url: str) -> HttpResponse:
            async with semaphore:
                return await self.head(url, timeout=timeout)

        results = await asyncio.gather(*(_one(u) for u in urls), return_exceptions=True)
        responses: list[Optional[HttpResponse]] = []
        for url, result in zip(urls, results):
            if isinstance(result, UrlFetchError):
                logger.debug("HEAD failed for %s: %s", url, result)
                responses.append(None)
            elif isinstance(result, Exception):
                logger.warning("Unexpected error during HEAD %s: %r", url, result)
                responses.append(None)
            elif isinstance(result, BaseException):
                raise result
            else:
                responses.append(result)
        return responses
