"""
KCC Multiplex showtime scraper.

Website: https://kccmultiplex.lk/buy-tickets/
Platform: booking widget rendered by client-side script

There is no public API. The booking page is a four-step radio flow:

  1. date    - input[name="date"][value="dd-mm-yyyy"], label "date-dd-mm-yyyy"
  2. movie   - input[name="movie"] appears after a date is picked
  3. cinema  - input[name="cinema"] appears after a movie is picked
  4. times   - showtime buttons appear after a cinema is picked

Each step is rendered by the page's own script with no completion event, so
after every click we pause for ``settle_ms`` before reading the DOM. Labels
are force-clicked because the radios sit under styled overlays.
"""

import asyncio
import re
from datetime import datetime
from typing import Awaitable, Optional, Sequence

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from .base import (
    BaseScraper,
    DateNotAvailable,
    SelectionOption,
    ShowtimeResult,
    UpstreamTimeout,
    date_key,
)
from .cache import ResultCache
from .config import Settings, settings as default_settings
from .dom import (
    CINEMA,
    DATE,
    MOVIE,
    SHOWTIME_MATCHERS,
    ShowtimeMatcher,
    input_selector,
    label_selector,
    parse_html,
    scan_showtimes,
    usable_options,
)
from .session import BrowserSession
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="kcc")

SITE_NAME = "KCC Multiplex"
MOVIE_HEADING = re.compile(r"select a movie", re.I)


def render_summary(result: ShowtimeResult, site_name: str = SITE_NAME) -> str:
    """
    Format a result for reading aloud or printing.

    Movies and cinemas keep the order the page listed them in.
    """
    lines = [f"🎬 {site_name} showtimes for {result.date_key}:", ""]
    for movie, cinemas in result.movies.items():
        lines.append(f"🎞️ {movie}")
        for cinema, times in cinemas.items():
            lines.append(f"  🍿 {cinema}: {', '.join(times)}")
        lines.append("")
    return "\n".join(lines).strip()


class KCCScraper(BaseScraper):
    """Walks the KCC booking flow in a page from the shared browser."""

    def __init__(
        self,
        session: BrowserSession,
        settings: Settings = default_settings,
        matchers: Sequence[ShowtimeMatcher] = SHOWTIME_MATCHERS,
    ):
        self.session = session
        self.settings = settings
        self.matchers = tuple(matchers)

    async def scrape(self, key: str) -> ShowtimeResult:
        """Collect every movie x cinema x showtime offered on ``key``."""
        async with self.session.page() as page:
            await self._load(page)
            await self._select_date(page, key)
            await self._wait_for_movies(page)

            result = ShowtimeResult(date_key=key)
            movies = await self._options(page, MOVIE)
            logger.info("Found %d movies for %s", len(movies), key)

            for movie in movies:
                if not await self._pick(page, movie):
                    continue
                # a repeated title replaces the earlier entry
                result.start_movie(movie.label)

                await self._optional(
                    page.wait_for_selector(
                        input_selector(CINEMA), state="attached", timeout=self.settings.short_timeout_ms
                    ),
                    f"cinemas for {movie.label!r}",
                )
                cinemas = await self._options(page, CINEMA)
                logger.debug("%s: %d cinemas", movie.label, len(cinemas))

                for cinema in cinemas:
                    if not await self._pick(page, cinema):
                        result.add_cinema(movie.label, cinema.label, [])
                        continue
                    soup = parse_html(await page.content())
                    result.add_cinema(movie.label, cinema.label, scan_showtimes(soup, self.matchers))

        return result

    async def fetch_summary(self, key: str) -> str:
        try:
            result = await self.scrape(key)
        except DateNotAvailable as exc:
            logger.warning("%s", exc)
            return str(exc)
        return render_summary(result)

    async def _load(self, page: Page) -> None:
        logger.debug("Loading %s", self.settings.booking_url)
        # The site never goes network-idle; the radios are in the initial HTML
        await page.goto(
            self.settings.booking_url,
            wait_until="domcontentloaded",
            timeout=self.settings.long_timeout_ms,
        )

    async def _select_date(self, page: Page, key: str) -> None:
        timeout = self.settings.medium_timeout_ms
        try:
            await page.wait_for_selector(input_selector(DATE, key), state="attached", timeout=timeout)
            label = page.locator(label_selector(f"date-{key}"))
            await label.scroll_into_view_if_needed(timeout=timeout)
            await label.click(force=True, timeout=timeout)
        except PlaywrightTimeoutError:
            raise DateNotAvailable(key) from None
        logger.debug("Selected date %s", key)

    async def _wait_for_movies(self, page: Page) -> None:
        timeout = self.settings.long_timeout_ms
        heading = page.get_by_role("heading", name=MOVIE_HEADING)
        await self._optional(heading.wait_for(timeout=timeout), "movie heading")
        try:
            await page.wait_for_selector(input_selector(MOVIE), state="attached", timeout=timeout)
        except PlaywrightTimeoutError as exc:
            raise UpstreamTimeout(f"Movie list did not appear within {timeout} ms") from exc

    async def _options(self, page: Page, group: str) -> list[SelectionOption]:
        return usable_options(parse_html(await page.content()), group)

    async def _pick(self, page: Page, option: SelectionOption) -> bool:
        """
        Force-click an option's label and let the page re-render.

        Only a click timeout is treated as markup drift. Any other Playwright
        error (a closed page or a crashed browser) aborts the run.
        """
        try:
            await page.locator(label_selector(option.id)).click(
                force=True, timeout=self.settings.medium_timeout_ms
            )
        except PlaywrightTimeoutError as exc:
            logger.warning("Could not select %r (%s): %s", option.label, option.id, exc)
            return False
        await page.wait_for_timeout(self.settings.settle_ms)
        return True

    async def _optional(self, wait: Awaitable, what: str) -> bool:
        try:
            await wait
        except PlaywrightTimeoutError:
            logger.debug("Gave up waiting for %s", what)
            return False
        return True


class ShowtimeService:
    """The shared browser, the scraper and the cache, owned together."""

    def __init__(
        self,
        settings: Settings = default_settings,
        session: Optional[BrowserSession] = None,
        cache: Optional[ResultCache] = None,
    ):
        self.settings = settings
        self.session = session or BrowserSession(settings)
        self.cache = cache or ResultCache(
            ttl_seconds=settings.cache_ttl_seconds,
            single_flight=settings.single_flight,
        )
        self.scraper = KCCScraper(self.session, settings)

    def today(self, now: Optional[datetime] = None) -> str:
        return date_key(now, tz=self.settings.tz, fmt=self.settings.date_format)

    async def get_message(self, key: str) -> str:
        return await self.cache.get_or_compute(key, lambda: self.scraper.fetch_summary(key))

    async def close(self) -> None:
        await self.session.close()


async def main():
    """Run the KCC scraper once for today."""
    service = ShowtimeService()
    try:
        key = service.today()
        print(f"Scraping {SITE_NAME} for {key}...")
        print(await service.get_message(key))
    finally:
        await service.close()


if __name__ == '__main__':
    asyncio.run(main())
