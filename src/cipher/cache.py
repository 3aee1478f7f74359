"""
Cipher cache: loads each player script at most once and memoizes its cipher.

Usage:
    manager = CipherManager(Fetcher())
    cipher = await manager.get_cipher("/s/player/abc123/base.js")
    print(cipher.apply(signature))
    await manager.close()

Ciphers are keyed by the script address as given by the caller. A new player
deployment always ships under a new address, so a cached entry never goes
stale and is never evicted.

Load policies use asyncio locks: share a manager between tasks of one event
loop, never across event loops or threads.
"""
from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterator, Optional, Protocol

from .base import NetworkError, SignatureCipher
from .fetcher import FetchResponse
from .grammar import extract_cipher

log = logging.getLogger("signet.cipher")

DEFAULT_STATIC_HOST = "https://s.ytimg.com"


class ScriptFetcher(Protocol):
    async def fetch(self, url: str, *, headers: dict | None = None) -> FetchResponse: ...


def resolve_script_url(script_url: str, static_host: str = DEFAULT_STATIC_HOST) -> str:
    """Complete protocol-relative and root-relative script addresses."""
    if script_url.startswith("//"):
        return "https:" + script_url
    if script_url.startswith("/"):
        return static_host.rstrip("/") + script_url
    return script_url


# ──────────────────────────────
#  Storage
# ──────────────────────────────
class CipherCache:
    """Append-only script address → cipher map."""

    def __init__(self):
        self._ciphers: dict[str, SignatureCipher] = {}

    def get(self, script_url: str) -> Optional[SignatureCipher]:
        return self._ciphers.get(script_url)

    def put(self, script_url: str, cipher: SignatureCipher) -> None:
        existing = self._ciphers.get(script_url)
        if existing is not None:
            if existing != cipher:
                raise ValueError(f"Cipher for {script_url} is already cached")
            return
        self._ciphers[script_url] = cipher

    def keys(self) -> Iterator[str]:
        return iter(list(self._ciphers))

    def clear(self) -> None:
        self._ciphers.clear()

    def __contains__(self, script_url: object) -> bool:
        return script_url in self._ciphers

    def __len__(self):
        return len(self._ciphers)


# ──────────────────────────────
#  Load policies
# ──────────────────────────────
class GlobalLoadPolicy:
    """One lock for every miss: only one script load in flight per process."""

    name = "global"

    def __init__(self):
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def section(self, script_url: str) -> AsyncIterator[None]:
        async with self._lock:
            yield


class SingleFlightLoadPolicy:
    """One lock per address: unrelated scripts load in parallel.

    A lock lives only while some task holds or waits on it, so failed loads
    leave nothing behind.
    """

    name = "single-flight"

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def section(self, script_url: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(script_url, asyncio.Lock())
        self._users[script_url] = self._users.get(script_url, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[script_url] -= 1
            if not self._users[script_url]:
                del self._users[script_url]
                del self._locks[script_url]

    def __len__(self):
        return len(self._locks)


LOAD_POLICIES = {
    GlobalLoadPolicy.name: GlobalLoadPolicy,
    SingleFlightLoadPolicy.name: SingleFlightLoadPolicy,
}


def make_load_policy(name: str):
    try:
        return LOAD_POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown load policy {name!r}, expected one of {sorted(LOAD_POLICIES)}") from None


# ──────────────────────────────
#  Manager
# ──────────────────────────────
class CipherManager:
    def __init__(
        self,
        fetcher: ScriptFetcher,
        *,
        cache: CipherCache | None = None,
        policy=None,
        static_host: str = DEFAULT_STATIC_HOST,
    ):
        self.fetcher = fetcher
        self.cache = cache if cache is not None else CipherCache()
        self.policy = policy if policy is not None else GlobalLoadPolicy()
        self.static_host = static_host

    async def close(self):
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()

    async def get_cipher(self, script_url: str) -> SignatureCipher:
        cipher = self.cache.get(script_url)
        if cipher is not None:
            return cipher

        async with self.policy.section(script_url):
            # Another task may have finished loading while we waited
            cipher = self.cache.get(script_url)
            if cipher is not None:
                return cipher

            log.debug("Parsing cipher from player script %s.", script_url)
            resp = await self.fetcher.fetch(resolve_script_url(script_url, self.static_host))
            if resp.status != 200:
                raise NetworkError(
                    f"Received non-success response code {resp.status}",
                    url=script_url, status=resp.status,
                )

            cipher = extract_cipher(resp.text)
            self.cache.put(script_url, cipher)

        if cipher.is_empty():
            log.warning("No operations detected from cipher extracted from %s.", script_url)
        else:
            log.info("Cached cipher with %d operations for %s", len(cipher), script_url)
        return cipher
