from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import Iterable, Union
from urllib.parse import urljoin

from scraper.models import Link


class _AnchorParser(HTMLParser):
    """Collects <a href> elements with the text of everything nested inside them."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._depth = 0
        self._current_href: str | None = None
        self._current_text_parts: list[str] = []
        self.links: list[Link] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag.lower() != "a":
            return

        # Nested anchors are invalid HTML; the outer one keeps collecting text.
        self._depth += 1
        if self._depth > 1:
            return

        href = None
        for k, v in attrs:
            if k.lower() == "href" and v:
                href = v.strip()
                break

        self._current_href = href
        self._current_text_parts = []

    def handle_endtag(self, tag: str) -> None:
        if tag.lower() != "a" or self._depth == 0:
            return

        self._depth -= 1
        if self._depth > 0:
            return

        if self._current_href:
            text = " ".join("".join(self._current_text_parts).split())
            self.links.append(Link(href=self._current_href, label=text))

        self._current_href = None
        self._current_text_parts = []

    def handle_data(self, data: str) -> None:
        if self._depth > 0:
            self._current_text_parts.append(data)


def extract_links(html: str, base_url: str | None = None) -> list[Link]:
    """All anchors with an href, in document order.

    Hrefs are returned as written unless ``base_url`` is given, in which case they
    are joined onto it.
    """
    parser = _AnchorParser()
    parser.feed(html or "")
    parser.close()

    if base_url is None:
        return parser.links
    return [Link(href=urljoin(base_url, l.href), label=l.label) for l in parser.links]


def filter_links(
    links: Iterable[Link],
    *,
    href_matching: Union[str, re.Pattern[str], None] = None,
    label_contains: str | None = None,
) -> list[Link]:
    out: list[Link] = []
    for l in links:
        if isinstance(href_matching, re.Pattern):
            if not href_matching.search(l.href):
                continue
        elif href_matching and href_matching not in l.href:
            continue
        if label_contains and label_contains.lower() not in (l.label or "").lower():
            continue
        out.append(l)
    return out
