from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from scraper.base import parse_html, validate_url
from scraper.errors import TransportError
from scraper.fetch import Fetcher
from scraper.manipulators import (
    Matcher,
    PairExtract,
    SelectByClass,
    SelectById,
    SelectOccurrence,
    SliceAfter,
    Step,
    execute_chain,
    with_matcher,
)

logger = logging.getLogger(__name__)


class HtmlExtractor:
    """Collects narrowing steps and runs them against a fetched page.

    Builder methods return ``self`` so a pipeline reads as one expression::

        html().url("https://example.org/list").table(matching="Title").source()

    Nothing is fetched until ``source()`` (or ``execute()``) is called; each call
    fetches the page again and folds the steps over it in the order they were added.
    """

    def __init__(self, fetcher: Fetcher | None = None) -> None:
        self.fetcher = fetcher or Fetcher()
        self._url: str | None = None
        self._steps: tuple[Step, ...] = ()
        self._session_support_url: str | None = None
        self.fetch_failed = False

    @property
    def current_url(self) -> str | None:
        return self._url

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    def url(self, url: str) -> HtmlExtractor:
        self._url = validate_url(url)
        return self

    def add(self, step: Step) -> HtmlExtractor:
        self._steps = self._steps + (step,)
        return self

    def matching(self, matcher: Matcher) -> HtmlExtractor:
        """Restrict the most recently added step to candidates matching ``matcher``.

        ``matcher`` is a plain substring or a compiled regular expression, tested
        against each candidate's serialized markup.
        """
        if not self._steps:
            raise ValueError("matching() needs a preceding step")
        self._steps = self._steps[:-1] + (with_matcher(self._steps[-1], matcher),)
        return self

    def element(self, tag: str, occurrence: int = 0) -> HtmlExtractor:
        return self.add(SelectOccurrence(tag, occurrence))

    def table(self, occurrence: int = 0, matching: Matcher | None = None) -> HtmlExtractor:
        return self.add(SelectOccurrence("table", occurrence, matching))

    def with_id(self, element_id: str, tag: str | None = None) -> HtmlExtractor:
        return self.add(SelectById(element_id, tag))

    def table_with_id(self, element_id: str) -> HtmlExtractor:
        return self.with_id(element_id, "table")

    def div_with_id(self, element_id: str) -> HtmlExtractor:
        return self.with_id(element_id, "div")

    def of_class(
        self, class_name: str, occurrence: int = 0, tag: str | None = None
    ) -> HtmlExtractor:
        return self.add(SelectByClass(class_name, tag, occurrence))

    def after(self, tag: str, occurrence: int = 0) -> HtmlExtractor:
        return self.add(SliceAfter(tag, occurrence))

    def pair(self, open_tag: str, close_tag: str) -> HtmlExtractor:
        return self.add(PairExtract(open_tag, close_tag))

    def add_session_support(self, initial_page_url: str) -> HtmlExtractor:
        self._session_support_url = validate_url(initial_page_url)
        return self

    def clear_session_support(self) -> HtmlExtractor:
        self._session_support_url = None
        return self

    def _fetch(self, url: str) -> str:
        if self._session_support_url:
            return self.fetcher.fetch_with_session(self._session_support_url, url)
        return self.fetcher.fetch(url)

    def source(self) -> BeautifulSoup:
        if self._url is None:
            raise ValueError("url() must be set before extracting")

        self.fetch_failed = False
        try:
            markup = self._fetch(self._url)
        except TransportError as exc:
            logger.error(f"{exc}; continuing with an empty document")
            self.fetch_failed = True
            return parse_html("")

        return execute_chain(self._steps, parse_html(markup))

    def execute(self) -> str:
        return str(self.source())


def html(fetcher: Fetcher | None = None) -> HtmlExtractor:
    return HtmlExtractor(fetcher)
