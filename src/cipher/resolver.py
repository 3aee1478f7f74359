"""
Signature resolver: turns ciphered stream and manifest URLs into valid ones.

Playback URLs carry the scrambled signature separately (TrackFormat.signature);
the deciphered value goes back in as a query parameter. Manifest URLs carry it
inline as a `/s/<signature>/` path segment, rewritten to `/signature/<value>/`.
"""
from __future__ import annotations
import re
from typing import Optional
from urllib.parse import quote, unquote_plus, urlsplit, urlunsplit

from .base import TrackFormat
from .cache import CipherManager

SIGNATURE_PARAM = "signature"
RATEBYPASS_PARAM = "ratebypass"
MANIFEST_SIGNATURE_RE = re.compile(r"/s/([^/]+)/")


def set_query_params(url: str, params: dict[str, str]) -> str:
    """Set `params` on the URL query, replacing same-named ones.

    Other pairs are kept verbatim and in order; they are never decoded.
    """
    parts = urlsplit(url)
    query = [
        pair for pair in parts.query.split("&")
        if pair and unquote_plus(pair.split("=", 1)[0]) not in params
    ]
    query.extend(f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in params.items())
    return urlunsplit(parts._replace(query="&".join(query)))


def find_manifest_signature(manifest_url: str) -> Optional[re.Match]:
    return MANIFEST_SIGNATURE_RE.search(manifest_url)


class SignatureResolver:
    def __init__(self, manager: CipherManager):
        self.manager = manager

    async def close(self):
        await self.manager.close()

    async def decipher(self, signature: str, script_url: str) -> str:
        cipher = await self.manager.get_cipher(script_url)
        return cipher.apply(signature)

    async def resolve_playback_url(self, track_format: TrackFormat, script_url: str) -> str:
        if track_format.signature is None:
            return track_format.url

        signature = await self.decipher(track_format.signature, script_url)
        return set_query_params(track_format.url, {
            RATEBYPASS_PARAM: "yes",
            SIGNATURE_PARAM: signature,
        })

    async def resolve_manifest_url(self, manifest_url: str, script_url: str) -> str:
        m = find_manifest_signature(manifest_url)
        if not m:
            return manifest_url

        signature = await self.decipher(m.group(1), script_url)
        return f"{manifest_url[:m.start()]}/signature/{signature}/{manifest_url[m.end():]}"
