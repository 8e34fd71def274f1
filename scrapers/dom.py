"""
DOM snapshot parsing for the KCC booking page.

The booking flow is a chain of radio groups. Every option is an
``<input type="radio" name="...">`` with an id, and its text lives in a
separate ``<label for="{id}">``:

- input[name="date"]    value="dd-mm-yyyy", label[for="date-dd-mm-yyyy"]
- input[name="movie"]   one per film showing on the selected day
- input[name="cinema"]  one per hall showing the selected film

The final showtime step has changed markup more than once, so it is matched
with an ordered list of selectors; the first one that finds anything wins.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .base import SelectionOption


DATE = "date"
MOVIE = "movie"
CINEMA = "cinema"


@dataclass(frozen=True)
class ShowtimeMatcher:
    """A named CSS selector for showtime elements."""
    name: str
    selector: str


SHOWTIME_MATCHERS: tuple[ShowtimeMatcher, ...] = (
    ShowtimeMatcher("showtimes-container", ".showtimes button"),
    ShowtimeMatcher("showtime-class", '[class*="showtime"] button'),
    ShowtimeMatcher("showtime-label", 'label[for^="showtime-"]'),
)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def css_string(value: str) -> str:
    """Quote a value for use inside a CSS attribute selector."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def input_selector(group: str, value: Optional[str] = None) -> str:
    if value is None:
        return f"input[name={css_string(group)}]"
    return f"input[name={css_string(group)}][value={css_string(value)}]"


def label_selector(option_id: str) -> str:
    return f"label[for={css_string(option_id)}]"


def clean_text(el: Tag) -> str:
    return " ".join(el.get_text(" ", strip=True).split())


def is_hidden(el: Tag) -> bool:
    """True for elements hidden by attribute or inline style."""
    for node in [el, *el.parents]:
        if not isinstance(node, Tag):
            continue
        if node.has_attr("hidden") or node.get("aria-hidden") == "true":
            return True
        style = (node.get("style") or "").replace(" ", "").lower()
        if "display:none" in style or "visibility:hidden" in style:
            return True
    return False


def list_options(soup: BeautifulSoup, group: str) -> list[SelectionOption]:
    """
    All radio options of a group in document order.

    Options whose label is missing or blank come back with ``label=None``.
    """
    options = []
    for radio in soup.select(input_selector(group)):
        option_id = radio.get("id") or ""
        label = soup.find("label", attrs={"for": option_id}) if option_id else None
        text = clean_text(label) if label is not None else ""
        options.append(SelectionOption(id=option_id, label=text or None))
    return options


def usable_options(soup: BeautifulSoup, group: str) -> list[SelectionOption]:
    return [option for option in list_options(soup, group) if option.usable]


def scan_showtimes(
    soup: BeautifulSoup,
    matchers: Sequence[ShowtimeMatcher] = SHOWTIME_MATCHERS,
) -> list[str]:
    """Showtime labels from the first matcher that finds any."""
    for matcher in matchers:
        texts = _visible_texts(soup.select(matcher.selector))
        if texts:
            return texts
    return []


def _visible_texts(elements: Iterable[Tag]) -> list[str]:
    texts = []
    for el in elements:
        if is_hidden(el):
            continue
        text = clean_text(el)
        if text:
            texts.append(text)
    return texts
