"""
Command line entry point.

    python -m src.main --script //www.example.com/s/player/base.js --token ABCDEF
    python -m src.main --script /s/player/base.js --url "https://host/videoplayback?id=1" --signature ABCDEF
    python -m src.main --script /s/player/base.js --manifest "https://host/api/manifest/dash/s/ABCDEF/x"
"""
import argparse
import asyncio
import logging
import sys

from src.cipher.base import CipherError, TrackFormat
from src.cipher.config import load_settings, build_manager
from src.cipher.resolver import SignatureResolver


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Decipher stream signatures using a player script.")
    parser.add_argument("--script", required=True, help="Player script address (absolute, // or / relative)")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--token", help="Scrambled signature to decipher")
    group.add_argument("--url", help="Playback URL to sign (use with --signature)")
    group.add_argument("--manifest", help="Manifest URL with an inline /s/<signature>/ segment")
    parser.add_argument("--signature", help="Scrambled signature for --url")
    return parser.parse_args(argv)


async def run(args, resolver: SignatureResolver) -> str:
    if args.token is not None:
        return await resolver.decipher(args.token, args.script)
    if args.url is not None:
        return await resolver.resolve_playback_url(TrackFormat(url=args.url, signature=args.signature), args.script)
    return await resolver.resolve_manifest_url(args.manifest, args.script)


async def _main(args) -> int:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")
    resolver = SignatureResolver(build_manager(settings))
    try:
        print(await run(args, resolver))
    except CipherError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await resolver.close()
    return 0


def main(argv=None) -> int:
    return asyncio.run(_main(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
