"""In-memory stand-ins for the KCC booking page and a Playwright browser."""

import asyncio
import html
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scrapers.config import Settings


FAST_SETTINGS = Settings(
    settle_ms=5,
    short_timeout_ms=10,
    medium_timeout_ms=20,
    long_timeout_ms=30,
    cache_ttl_seconds=600,
)


@dataclass
class FakeCinema:
    id: str
    label: Optional[str]
    times: list[str] = field(default_factory=list)
    # which showtime markup the page uses: "container", "class" or "label"
    markup: str = "container"


@dataclass
class FakeMovie:
    id: str
    label: Optional[str]
    cinemas: list[FakeCinema] = field(default_factory=list)


class FakeSite:
    """
    Renders the booking flow as HTML based on what has been clicked.

    Only labels are clickable, as on the real page.
    """

    def __init__(
        self,
        dates: list[str],
        movies: list[FakeMovie],
        show_heading: bool = True,
        render_movies: bool = True,
    ):
        self.dates = dates
        self.movies = movies
        self.show_heading = show_heading
        self.render_movies = render_movies
        self.selected_date: Optional[str] = None
        self.selected_movie: Optional[FakeMovie] = None
        self.selected_cinema: Optional[FakeCinema] = None
        self.clicks: list[str] = []
        self.pauses: list[int] = []
        self.visited: list[tuple[str, str]] = []
        # option id -> error raised when its label is clicked
        self.click_errors: dict[str, Exception] = {}

    def render(self) -> str:
        parts = ["<html><body>", "<h2>Select a date</h2>"]
        for d in self.dates:
            parts.append(_radio("date", f"date-{d}", d, d))
        if self.selected_date and self.render_movies:
            if self.show_heading:
                parts.append("<h2>Select a Movie</h2>")
            for movie in self.movies:
                parts.append(_radio("movie", movie.id, movie.id, movie.label))
        if self.selected_movie:
            for cinema in self.selected_movie.cinemas:
                parts.append(_radio("cinema", cinema.id, cinema.id, cinema.label))
        if self.selected_cinema:
            parts.append(_showtimes(self.selected_cinema))
        parts.append("</body></html>")
        return "\n".join(parts)

    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.render(), "lxml")

    def click_label(self, selector: str) -> None:
        label = self.soup().select_one(selector)
        if label is None:
            raise PlaywrightTimeoutError(f"Timeout waiting for locator({selector!r})")
        target = label["for"]
        if target in self.click_errors:
            raise self.click_errors[target]
        self.clicks.append(target)
        if target.startswith("date-"):
            self.selected_date = target[len("date-"):]
            self.selected_movie = None
            self.selected_cinema = None
            return
        for movie in self.movies:
            if movie.id == target:
                self.selected_movie = movie
                self.selected_cinema = None
                return
        if self.selected_movie:
            for cinema in self.selected_movie.cinemas:
                if cinema.id == target:
                    self.selected_cinema = cinema
                    self.visited.append((self.selected_movie.label, cinema.label))
                    return


def _radio(name: str, input_id: str, value: str, label: Optional[str]) -> str:
    radio = (
        f'<input type="radio" name="{name}" id="{html.escape(input_id)}" '
        f'value="{html.escape(value)}">'
    )
    if label is None:
        return radio
    return radio + f'<label for="{html.escape(input_id)}"><span>{html.escape(label)}</span></label>'


def _showtimes(cinema: FakeCinema) -> str:
    if cinema.markup == "container":
        buttons = "".join(f"<button> {html.escape(t)} </button>" for t in cinema.times)
        return f'<div class="showtimes">{buttons}</div>'
    if cinema.markup == "class":
        buttons = "".join(f"<button>{html.escape(t)}</button>" for t in cinema.times)
        return f'<div class="session-showtime-list">{buttons}</div>'
    return "".join(
        f'<input type="radio" name="showtime" id="showtime-{i}">'
        f'<label for="showtime-{i}">{html.escape(t)}</label>'
        for i, t in enumerate(cinema.times)
    )


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str):
        self.page = page
        self.selector = selector

    async def scroll_into_view_if_needed(self, timeout: Optional[float] = None):
        if self.page.site.soup().select_one(self.selector) is None:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")

    async def click(self, force: bool = False, timeout: Optional[float] = None):
        assert force, "labels sit under overlays and must be force-clicked"
        self.page.site.click_label(self.selector)


class FakeHeading:
    def __init__(self, page: "FakePage", name):
        self.page = page
        self.name = name

    async def wait_for(self, timeout: Optional[float] = None):
        for heading in self.page.site.soup().find_all(["h1", "h2", "h3"]):
            if self.name.search(heading.get_text()):
                return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded")


class FakePage:
    def __init__(self, site: FakeSite):
        self.site = site
        self.url: Optional[str] = None
        self.goto_kwargs: dict = {}

    async def goto(self, url: str, **kwargs):
        self.url = url
        self.goto_kwargs = kwargs

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: Optional[float] = None):
        if self.site.soup().select_one(selector) is None:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def get_by_role(self, role: str, name=None) -> FakeHeading:
        assert role == "heading"
        return FakeHeading(self, name)

    async def wait_for_timeout(self, ms: float):
        self.site.pauses.append(ms)

    async def content(self) -> str:
        return self.site.render()


class FakeContext:
    def __init__(self, browser: "FakeBrowser"):
        self.browser = browser
        self.page: Optional[FakePage] = None
        self.closed = False

    async def new_page(self) -> FakePage:
        if self.browser.site is None:
            raise AssertionError("no site configured")
        self.page = FakePage(self.browser.site)
        return self.page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, site: Optional[FakeSite] = None):
        self.site = site
        self.connected = True
        self.contexts: list[FakeContext] = []
        self.closed = False

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **kwargs) -> FakeContext:
        context = FakeContext(self)
        self.contexts.append(context)
        return context

    async def close(self):
        self.closed = True
        self.connected = False

    @property
    def open_contexts(self) -> int:
        return sum(1 for c in self.contexts if not c.closed)


class FakeLauncher:
    """Counts launches; hands out FakeBrowsers bound to one site."""

    def __init__(self, site: Optional[FakeSite] = None, error: Optional[Exception] = None, delay: float = 0):
        self.site = site
        self.error = error
        self.delay = delay
        self.calls = 0
        self.stops = 0
        self.browsers: list[FakeBrowser] = []

    async def __call__(self, settings):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        browser = FakeBrowser(self.site)
        self.browsers.append(browser)
        return browser, self._stop

    async def _stop(self):
        self.stops += 1


def inception_site() -> FakeSite:
    return FakeSite(
        dates=["09-11-2025"],
        movies=[
            FakeMovie("movie-101", "Inception", [
                FakeCinema("cinema-1", "Hall 1", ["10:00 AM", "1:30 PM"]),
            ]),
        ],
    )
