"""
HTTP fetcher for player scripts. Wraps aiohttp with common defaults,
headers, timeout, and optional proxy support.
"""
from __future__ import annotations
import aiohttp
import asyncio
from dataclasses import dataclass
from typing import Optional

from .base import NetworkError

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class FetchResponse:
    status: int
    text: str
    url: str


class Fetcher:
    def __init__(self, *, timeout: int = 10, proxy: str | None = None, user_agent: str = DEFAULT_UA):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=4)
        self.proxy = proxy
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch(self, url: str, *, headers: dict | None = None) -> FetchResponse:
        """GET `url`. Status is returned as-is; transport failures raise NetworkError."""
        session = await self._get_session()
        try:
            async with session.get(
                url,
                headers=headers or {},
                allow_redirects=True,
                proxy=self.proxy,
            ) as resp:
                text = await resp.text(encoding="utf-8", errors="replace")
                return FetchResponse(status=resp.status, text=text, url=str(resp.url))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Request to {url} failed: {e}", url=url) from e
