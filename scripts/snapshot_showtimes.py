#!/usr/bin/env python3
"""
Write today's KCC Multiplex showtimes to data/kcc_showtimes.json.

Meant for a scheduled job: the file keeps the structured movie -> cinema ->
showtimes mapping next to the rendered message, so other tools can consume
the listings without driving a browser.
"""

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from scrapers.base import DateNotAvailable
from scrapers.config import settings
from scrapers.kcc import ShowtimeService, render_summary
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="snapshot")

OUTPUT_PATH = Path(__file__).parent.parent / 'data' / 'kcc_showtimes.json'


def build_snapshot(date: str, showtimes: dict, message: str) -> dict:
    """Assemble the JSON document written to disk."""
    return {
        "date": date,
        "generated_at": datetime.now(settings.tz).isoformat(),
        "total_movies": len(showtimes),
        "showtimes": showtimes,
        "message": message,
    }


async def main(output_path: Path = OUTPUT_PATH) -> int:
    """Scrape once and write the snapshot."""
    setup_logging(level=settings.log_level, job_name="kcc-snapshot")
    service = ShowtimeService(settings)
    date = service.today()

    try:
        result = await service.scraper.scrape(date)
        data = build_snapshot(date, result.movies, render_summary(result))
    except DateNotAvailable as e:
        logger.warning("%s", e)
        data = build_snapshot(date, {}, str(e))
    finally:
        await service.close()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    logger.info("Wrote %d movies for %s to %s", data["total_movies"], date, output_path)
    return 0


if __name__ == '__main__':
    sys.exit(asyncio.run(main()))
