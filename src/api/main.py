import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request, HTTPException

from src.cipher.base import FormatError, NetworkError, TrackFormat
from src.cipher.config import load_settings, build_manager
from src.cipher.resolver import SignatureResolver

log = logging.getLogger("signet.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests install their own resolver before startup
    if getattr(app.state, "resolver", None) is None:
        settings = load_settings()
        logging.basicConfig(level=settings.log_level)
        app.state.resolver = SignatureResolver(build_manager(settings))
    yield
    await app.state.resolver.close()


app = FastAPI(title="Signet | Signature Cipher", lifespan=lifespan)


def get_resolver(request: Request) -> SignatureResolver:
    return request.app.state.resolver


async def _guard(coro):
    """Map cipher failures to HTTP errors."""
    try:
        return await coro
    except NetworkError as e:
        log.warning(f"Player script fetch failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except FormatError as e:
        log.error(f"Player script not recognised: {e}")
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/cipher")
async def get_cipher(script: str, resolver: SignatureResolver = Depends(get_resolver)):
    cipher = await _guard(resolver.manager.get_cipher(script))
    return {"script": script, **cipher.to_dict()}


@app.get("/resolve/playback")
async def resolve_playback(script: str, url: str, signature: Optional[str] = None,
                           resolver: SignatureResolver = Depends(get_resolver)):
    track_format = TrackFormat(url=url, signature=signature)
    return {"url": await _guard(resolver.resolve_playback_url(track_format, script))}


@app.get("/resolve/manifest")
async def resolve_manifest(script: str, url: str, resolver: SignatureResolver = Depends(get_resolver)):
    return {"url": await _guard(resolver.resolve_manifest_url(url, script))}
