from __future__ import annotations

import pytest

from scraper.base import validate_url
from scraper.errors import NotFoundError
from scraper.models import Link
from scraper.pagination import (
    SESSION_ID_PLACEHOLDER,
    LinkPageIterator,
    TemplatePageIterator,
    extract_session_id,
    fetch_session_id,
    paginate,
    resolve_session_url,
)


class EndlessPages:
    def __init__(self, template: str = "http://example.org/list?page={n}") -> None:
        self.template = template
        self.calls = 0

    def next(self) -> str:
        self.calls += 1
        return self.template.format(n=self.calls + 1)

    def has_next(self) -> bool:
        return True

    def base_url(self) -> str | None:
        return None


def test_paginate_fetches_exactly_requested_pages_in_order():
    pages = EndlessPages()
    fetched: list[str] = []

    def fetch_page(url: str) -> list[str]:
        fetched.append(url)
        return [f"{url}#a", f"{url}#b"]

    results = paginate(pages, 3, fetch_page)

    assert pages.calls == 3
    assert fetched == [
        "http://example.org/list?page=2",
        "http://example.org/list?page=3",
        "http://example.org/list?page=4",
    ]
    assert len(results) == 6
    assert results[0] == "http://example.org/list?page=2#a"
    assert results[-1] == "http://example.org/list?page=4#b"


def test_paginate_zero_pages_does_nothing():
    pages = EndlessPages()
    assert paginate(pages, 0, lambda url: [url]) == []
    assert pages.calls == 0


def test_paginate_stops_when_iterator_is_exhausted():
    pages = TemplatePageIterator("http://example.org/list?page={page}", last_page=3)
    fetched: list[str] = []

    paginate(pages, 5, lambda url: fetched.append(url) or [url])

    assert fetched == ["http://example.org/list?page=2", "http://example.org/list?page=3"]


def test_paginate_substitutes_session_id():
    pages = EndlessPages("http://example.org/list;jsessionid=$SESSION_ID$?page={n}")

    fetched = paginate(pages, 2, lambda url: [url], session_id="ABC123")

    assert fetched == [
        "http://example.org/list;jsessionid=ABC123?page=2",
        "http://example.org/list;jsessionid=ABC123?page=3",
    ]


def test_paginate_skips_malformed_page_urls():
    urls = ["http://example.org/p2", "not a url", "http://example.org/p4"]

    results = paginate(LinkPageIterator(urls), 3, lambda url: [validate_url(url)])

    assert results == ["http://example.org/p2", "http://example.org/p4"]


def test_resolve_session_url():
    url = f"http://example.org/a?sid={SESSION_ID_PLACEHOLDER}&b={SESSION_ID_PLACEHOLDER}"

    assert resolve_session_url(url, "XYZ") == "http://example.org/a?sid=XYZ&b=XYZ"
    assert resolve_session_url("http://example.org/a", "XYZ") == "http://example.org/a"
    assert resolve_session_url(url, None) == url
    assert resolve_session_url("http://example.org/{sid}", "XYZ", "{sid}") == (
        "http://example.org/XYZ"
    )


def test_extract_session_id():
    assert extract_session_id('<a href="/list.do;jsessionid=A1B2C3?page=2">', "jsessionid") == "A1B2C3"
    assert extract_session_id('var cfg = {"sid": "f00d", "x": 1};', "sid") == "f00d"
    assert extract_session_id("<p>SessionId: 9981</p>", "sessionid") == "9981"
    assert extract_session_id("<p>no session</p>", "jsessionid") is None


def test_fetch_session_id(site, fetcher):
    site.pages["http://example.org/"] = '<a href="/next;jsessionid=S1">next</a>'

    assert fetch_session_id(fetcher, "http://example.org/", "jsessionid") == "S1"
    assert fetch_session_id(fetcher, "http://example.org/missing", "jsessionid") is None


def test_template_iterator():
    pages = TemplatePageIterator(
        "http://example.org/ids-page-{page}.html", first_page=2, base_url="http://example.org"
    )

    assert pages.has_next()
    assert pages.next() == "http://example.org/ids-page-2.html"
    assert pages.next() == "http://example.org/ids-page-3.html"
    assert pages.base_url() == "http://example.org"


def test_link_iterator_walks_links_once():
    pages = LinkPageIterator([Link("http://example.org/1", "one"), "http://example.org/2"])

    assert pages.next() == "http://example.org/1"
    assert pages.has_next()
    assert pages.next() == "http://example.org/2"
    assert not pages.has_next()
    assert pages.base_url() is None


def test_link_iterator_past_the_end_raises_index_error():
    pages = LinkPageIterator(["http://example.org/1"])
    pages.next()

    with pytest.raises(IndexError):
        pages.next()


def test_paginate_skips_pages_without_the_narrowed_element():
    def fetch_page(url: str) -> list[str]:
        if url.endswith("/2"):
            raise NotFoundError("No element <table>[0] (0 candidates)")
        return [url]

    urls = ["http://example.org/2", "http://example.org/3"]
    results = paginate(LinkPageIterator(urls), 2, fetch_page)

    assert results == ["http://example.org/3"]
