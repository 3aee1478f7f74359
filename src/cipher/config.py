"""
Settings for the cipher resolver. Read from the environment (and a .env file
if present) once at startup.
"""
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .cache import DEFAULT_STATIC_HOST, CipherCache, CipherManager, make_load_policy
from .fetcher import Fetcher


@dataclass(frozen=True)
class Settings:
    static_host: str = DEFAULT_STATIC_HOST
    timeout: int = 10
    proxy: Optional[str] = None
    load_policy: str = "global"       # "global" | "single-flight"
    log_level: str = "INFO"


def load_settings() -> Settings:
    load_dotenv()
    timeout = os.getenv("SIGNET_HTTP_TIMEOUT")
    try:
        timeout = int(timeout) if timeout else Settings.timeout
    except ValueError:
        raise ValueError(f"SIGNET_HTTP_TIMEOUT must be an integer, got {timeout!r}") from None

    settings = Settings(
        static_host=os.getenv("SIGNET_STATIC_HOST") or DEFAULT_STATIC_HOST,
        timeout=timeout,
        proxy=os.getenv("SIGNET_HTTP_PROXY") or None,
        load_policy=os.getenv("SIGNET_LOAD_POLICY") or Settings.load_policy,
        log_level=(os.getenv("SIGNET_LOG_LEVEL") or Settings.log_level).upper(),
    )
    # Fail at startup rather than on the first cache miss
    make_load_policy(settings.load_policy)
    return settings


def build_manager(settings: Settings) -> CipherManager:
    return CipherManager(
        Fetcher(timeout=settings.timeout, proxy=settings.proxy),
        cache=CipherCache(),
        policy=make_load_policy(settings.load_policy),
        static_host=settings.static_host,
    )
