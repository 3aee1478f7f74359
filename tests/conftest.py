import asyncio

import pytest

from src.cipher.fetcher import FetchResponse

# Operations object with all four helper shapes; the decipher function calls
# swap(3), reverse, slice(2). "ABCDEF" deciphers to "ACBD".
PLAYER_SCRIPT = (
    'var Xy={Ab:function(a){a.reverse()},\n'
    'c$:function(a,b){var c=a[0];a[0]=a[b%a.length];a[b]=c},\n'
    'dE:function(a,b){return a.slice(b)},\n'
    'fG:function(a,b){a.splice(0,b)}};\n'
    'var Qz=function(a){a=a.split("");Xy.c$(a,3);Xy.Ab(a,45);a=Xy.dE(a,2);return a.join("")};\n'
)


class FakeFetcher:
    """Stands in for Fetcher; records every requested URL."""

    def __init__(self, text=PLAYER_SCRIPT, status=200, delay=0.0):
        self.text = text
        self.status = status
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, url, *, headers=None):
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return FetchResponse(status=self.status, text=self.text, url=url)


@pytest.fixture
def player_script():
    return PLAYER_SCRIPT


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def fetcher():
    return FakeFetcher()
