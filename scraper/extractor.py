from __future__ import annotations

import logging

from scraper.base import clean_text
from scraper.fetch import Fetcher
from scraper.fields import FieldExtractor
from scraper.html_extractor import HtmlExtractor
from scraper.links import links_as_fields, links_in, query_parameter_values
from scraper.manipulators import Matcher
from scraper.models import Field, Link

logger = logging.getLogger(__name__)


class Extractor(HtmlExtractor):
    """An ``HtmlExtractor`` that also knows what to produce from the narrowed page.

    By default ``get_fields()`` runs the field heuristics plus any designated
    fields. ``links()`` switches to link harvesting, ``parameter()`` to harvesting
    one query parameter from those links, and ``as_text()`` makes ``execute()``
    return text instead of markup.
    """

    def __init__(self, fetcher: Fetcher | None = None) -> None:
        super().__init__(fetcher)
        self._fields = FieldExtractor()
        self._links_mode = False
        self._link_matcher: Matcher | None = None
        self._parameter: str | None = None
        self._as_text = False

    def field(self, label: str, tag: str) -> Extractor:
        self._fields.field(label, tag)
        return self

    def default_fields(self, enabled: bool = True) -> Extractor:
        self._fields.use_heuristics = enabled
        return self

    def links(self, matching: Matcher | None = None) -> Extractor:
        self._links_mode = True
        self._link_matcher = matching
        return self

    def parameter(self, name: str) -> Extractor:
        self._links_mode = True
        self._parameter = name
        return self

    def as_text(self) -> Extractor:
        self._as_text = True
        return self

    def execute(self) -> str:
        document = self.source()
        if self._as_text:
            return clean_text(document.get_text(" "))
        return str(document)

    def get_links(self) -> list[Link]:
        return links_in(self.source(), self._link_matcher)

    def get_fields(self) -> list[Field]:
        if self._links_mode:
            return links_as_fields(self.get_links())

        fields = self._fields.extract(self.source())
        logger.debug(f"Extracted {len(fields)} fields from {self.current_url}")
        return fields

    def get_results(self) -> list[str]:
        if not self._links_mode:
            return [self.execute()]

        links = self.get_links()
        if self._parameter:
            return query_parameter_values(links, self._parameter)
        return [link.href for link in links]
