from __future__ import annotations

import logging
from typing import Protocol

from scraper.base import base_url_of, resolve_link, validate_url
from scraper.errors import MalformedURLError, NotFoundError
from scraper.extractor import Extractor
from scraper.fetch import Fetcher
from scraper.models import Field, Link, Record
from scraper.pagination import (
    SESSION_ID_PLACEHOLDER,
    PageIterator,
    fetch_session_id,
    paginate,
)

logger = logging.getLogger(__name__)


class DetailSource(Protocol):
    """Anything that can be pointed at a URL and asked for fields (Scraper, Extractor)."""

    fetch_failed: bool

    def url(self, url: str): ...

    def get_fields(self) -> list[Field]: ...


class Scraper:
    """Drives an ``Extractor`` across pages and from listing pages to detail pages.

    Typical listing/detail crawl::

        listing = Scraper(fetcher=fetcher)
        listing.url(start_url).pages(2).iterator(TemplatePageIterator(template))
        listing.extractor().table(matching="Title").links(matching="mode=VIEW")
        records = listing.details(Scraper(fetcher=fetcher))

    ``pages`` counts the pages fetched after the first one. The session id, when
    ``session_id_name`` is set, is resolved from the page passed to ``url()`` and
    substituted for ``$SESSION_ID$`` in every generated page URL.
    """

    def __init__(
        self, extractor: Extractor | None = None, *, fetcher: Fetcher | None = None
    ) -> None:
        self.fetcher = fetcher or (extractor.fetcher if extractor else Fetcher())
        self._extractor = extractor or Extractor(self.fetcher)
        self._url: str | None = None
        self._base_url: str | None = None
        self._iterator: PageIterator | None = None
        self._pages = 0
        self._session_id_name: str | None = None
        self._session_id: str | None = None
        self._placeholder = SESSION_ID_PLACEHOLDER
        self._convert_urls = True
        self._listing: list[Field] | None = None

    # ---- builder-style configuration

    def url(self, url: str) -> Scraper:
        self._url = validate_url(url)
        self._base_url = base_url_of(self._url)
        self._extractor.url(self._url)
        self._listing = None
        if self._session_id_name:
            self._session_id = fetch_session_id(self.fetcher, self._url, self._session_id_name)
        return self

    def extractor(self) -> Extractor:
        return self._extractor

    def iterator(self, iterator: PageIterator) -> Scraper:
        logger.debug(f"Setting page iterator: {iterator}")
        self._iterator = iterator
        return self

    def pages(self, pages: int) -> Scraper:
        if pages < 0:
            raise ValueError(f"pages must be >= 0, got {pages}")
        self._pages = pages
        return self

    def session_id_name(self, keyword: str | None) -> Scraper:
        self._session_id_name = keyword
        return self

    def session_placeholder(self, placeholder: str) -> Scraper:
        self._placeholder = placeholder
        return self

    def convert_urls(self, enabled: bool = True) -> Scraper:
        self._convert_urls = enabled
        return self

    @property
    def base_url(self) -> str | None:
        return self._base_url

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def fetch_failed(self) -> bool:
        return self._extractor.fetch_failed

    # ---- single page

    def get_result(self) -> str:
        return self._extractor.execute()

    # ---- first page plus pagination

    def _paged(self, collect):
        if self._url is None:
            raise ValueError("url() must be set before extracting")

        results = list(collect())
        if self._iterator is None or self._pages == 0:
            return results

        def _fetch_page(page_url: str):
            self._extractor.url(page_url)
            return collect()

        try:
            results.extend(
                paginate(
                    self._iterator,
                    self._pages,
                    _fetch_page,
                    session_id=self._session_id,
                    placeholder=self._placeholder,
                )
            )
        finally:
            self._extractor.url(self._url)
        return results

    def get_fields(self) -> list[Field]:
        return self._paged(self._extractor.get_fields)

    def get_results(self) -> list[str]:
        return self._paged(self._extractor.get_results)

    def get_links(self) -> list[Link]:
        return self._paged(self._extractor.get_links)

    # ---- listing -> detail

    def listing(self) -> list[Field]:
        """Fields harvested from the listing page(s); their values are the detail links."""
        self._listing = self.get_fields()
        logger.info(f"Listing yielded {len(self._listing)} links")
        return self._listing

    def resolve(self, href: str) -> str:
        if not self._convert_urls:
            return href
        base = None
        if self._iterator is not None:
            base = self._iterator.base_url()
        base = base or self._base_url
        if base is None:
            return href
        return resolve_link(base, href)

    def details(self, detail: DetailSource) -> list[Record]:
        links = self._listing if self._listing is not None else self.listing()

        records: list[Record] = []
        for link in links:
            try:
                detail_url = self.resolve(link.value)
                logger.debug(f"Using link = {detail_url}")
                detail.url(detail_url)
                fields = detail.get_fields()
            except MalformedURLError as exc:
                logger.info(f"Bad URL in listing link {link.label!r}: {exc}")
                continue
            except NotFoundError as exc:
                logger.warning(f"Skipping {link.value}: {exc}")
                continue

            if detail.fetch_failed:
                logger.warning(f"Skipping {detail_url}: fetch failed")
                continue

            records.append(Record.from_fields(fields, url=detail_url))

        logger.info(f"Built {len(records)} records from {len(links)} listing links")
        return records
