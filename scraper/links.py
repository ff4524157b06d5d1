from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup

from scraper.manipulators import Matcher
from scraper.models import Field, Link
from utils.html_links import extract_links, filter_links

logger = logging.getLogger(__name__)


def links_in(document: BeautifulSoup, matching: Matcher | None = None) -> list[Link]:
    links = extract_links(str(document))
    if matching is not None:
        links = filter_links(links, href_matching=matching)
    logger.debug(f"Found {len(links)} links")
    return links


def links_as_fields(links: Iterable[Link]) -> list[Field]:
    """One field per link, labeled by the anchor text and valued by the href."""
    return [Field.of(link.label, link.href) for link in links]


def query_parameter_values(links: Iterable[Link], name: str) -> list[str]:
    out: list[str] = []
    for link in links:
        values = parse_qs(urlparse(link.href).query).get(name)
        if values:
            out.append(values[0])
    return out
