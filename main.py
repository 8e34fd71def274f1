#!/usr/bin/env python3
"""
KCC Multiplex Showtimes - Terminal Interface

    python main.py                 # scrape today's showtimes locally
    python main.py --json          # same, as structured JSON
    python main.py --remote URL    # ask a running API instead
    python main.py serve           # run the HTTP API
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

import httpx

from scrapers.base import DateNotAvailable
from scrapers.config import settings
from scrapers.kcc import SITE_NAME, ShowtimeService, render_summary
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="cli")


def print_header(date: str):
    """Print the application header."""
    print()
    print("=" * 60)
    print(f"  {SITE_NAME.upper()} - {date}")
    print("=" * 60)
    print()


async def run_local(as_json: bool = False) -> int:
    """Drive the booking page in a local browser."""
    service = ShowtimeService(settings)
    date = service.today()
    try:
        result = await service.scraper.scrape(date)
    except DateNotAvailable as e:
        if as_json:
            print(json.dumps({"date": date, "error": str(e)}, ensure_ascii=False))
        else:
            print_header(date)
            print(f"  {e}")
        return 1
    finally:
        await service.close()

    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_header(date)
        print(render_summary(result))
    return 0


async def fetch_remote(base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> dict:
    """Fetch today's showtimes from a running API."""
    timeout = settings.long_timeout_ms / 1000 * 4
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        resp = await client.get(f"{base_url.rstrip('/')}/kcc")
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code != 200:
            error = data.get("error") if isinstance(data, dict) else None
            raise RuntimeError(error or f"HTTP {resp.status_code}")
        if not isinstance(data, dict):
            raise RuntimeError("Response was not a JSON object")
        return data


def serve(host: Optional[str] = None, port: Optional[int] = None):
    """Run the API under uvicorn."""
    import uvicorn

    uvicorn.run(
        "api.index:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{SITE_NAME} showtimes for today")
    parser.add_argument("command", nargs="?", choices=["show", "serve"], default="show")
    parser.add_argument("--json", action="store_true", help="print structured JSON")
    parser.add_argument("--remote", metavar="URL", help="query a running API instead of scraping")
    parser.add_argument("--host", help="bind address for serve")
    parser.add_argument("--port", type=int, help="port for serve")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=settings.log_level, job_name="kcc-cli")

    if args.command == "serve":
        serve(args.host, args.port)
        return 0

    if args.remote:
        try:
            data = asyncio.run(fetch_remote(args.remote))
        except (httpx.HTTPError, RuntimeError) as e:
            logger.error("Remote fetch failed: %s", e)
            return 1
        if args.json:
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else:
            print_header(data["date"])
            print(data["message"])
        return 0

    return asyncio.run(run_local(as_json=args.json))


if __name__ == "__main__":
    sys.exit(main())
