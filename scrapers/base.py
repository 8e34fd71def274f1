"""Base scraper class, errors and data models for showtime extraction."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo


# KCC Multiplex is in Colombo - the booking page keys dates by local day
SITE_TZ = ZoneInfo("Asia/Colombo")
SITE_DATE_FORMAT = "%d-%m-%Y"

NO_SHOWTIMES = "No showtimes available"


def now_site(tz: ZoneInfo = SITE_TZ) -> datetime:
    """Get current datetime in the site's timezone."""
    return datetime.now(tz)


def to_site(dt: datetime, tz: ZoneInfo = SITE_TZ) -> datetime:
    """
    Convert a datetime to the site's timezone.

    - If naive, assumes it's UTC (server clocks) and converts
    - If aware, converts to the site timezone
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(tz)


def date_key(
    dt: Optional[datetime] = None,
    tz: ZoneInfo = SITE_TZ,
    fmt: str = SITE_DATE_FORMAT,
) -> str:
    """
    Build the date value the booking page's date radios use.

    The calendar day is taken in the site's timezone, so 20:00 UTC on the
    8th is already the 9th in Colombo.
    """
    local = now_site(tz) if dt is None else to_site(dt, tz)
    return local.strftime(fmt)


class ScraperError(Exception):
    """Base class for extraction failures."""


class DateNotAvailable(ScraperError):
    """The site does not offer the requested date today."""

    def __init__(self, key: str):
        super().__init__(f"Date {key} not available")
        self.key = key


class UpstreamTimeout(ScraperError):
    """A required stage of the booking flow never appeared."""


class BrowserLaunchError(ScraperError):
    """The shared browser process could not be started."""


@dataclass(frozen=True)
class SelectionOption:
    """A radio option offered at one selection stage (date, movie, cinema)."""
    id: str
    label: Optional[str] = None

    @property
    def usable(self) -> bool:
        return bool(self.id) and bool(self.label)


@dataclass
class ShowtimeResult:
    """Movie -> cinema -> showtimes, in the order the page listed them."""
    date_key: str
    movies: dict[str, dict[str, list[str]]] = field(default_factory=dict)

    def start_movie(self, title: str) -> dict[str, list[str]]:
        """Begin a fresh cinema map for ``title``, replacing any earlier one."""
        self.movies[title] = {}
        return self.movies[title]

    def add_movie(self, title: str) -> dict[str, list[str]]:
        return self.movies.setdefault(title, {})

    def add_cinema(self, title: str, cinema: str, showtimes: list[str]) -> None:
        self.add_movie(title)[cinema] = list(showtimes) if showtimes else [NO_SHOWTIMES]

    def to_dict(self) -> dict:
        return {"date": self.date_key, "movies": self.movies}


class BaseScraper(ABC):
    """Abstract base class for booking-flow scrapers."""

    @abstractmethod
    async def scrape(self, key: str) -> ShowtimeResult:
        """
        Walk the booking flow for a single day.

        Args:
            key: Date value as the site expects it.

        Returns:
            ShowtimeResult with every movie and cinema found.

        Raises:
            DateNotAvailable: if the site does not offer that day.
        """
        pass

    @abstractmethod
    async def fetch_summary(self, key: str) -> str:
        """
        Human-readable summary for a day, including degraded results.

        Returns:
            Summary text, or the "not available" message for missing dates.
        """
        pass
