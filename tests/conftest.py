from __future__ import annotations

import pytest
import requests

from scraper.base import HttpConfig
from scraper.fetch import Fetcher


class FakeResponse:
    def __init__(self, url: str, text: str, status_code: int = 200) -> None:
        self.url = url
        self.text = text
        self.status_code = status_code
        self.headers: dict[str, str] = {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} for {self.url}")


class FakeSite:
    """URL -> markup map standing in for the network.

    URLs missing from ``pages`` answer 404; URLs in ``broken`` raise a
    connection error. Every session opened and every request made is recorded.
    """

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.broken: set[str] = set()
        self.requests: list[str] = []
        self.sessions: list[FakeSession] = []

    def session(self) -> FakeSession:
        s = FakeSession(self)
        self.sessions.append(s)
        return s


class FakeSession:
    def __init__(self, site: FakeSite) -> None:
        self.site = site
        self.headers: dict[str, str] = {}
        self.requests: list[str] = []
        self.closed = False

    def __enter__(self) -> FakeSession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True

    def get(self, url: str, params=None, timeout=None) -> FakeResponse:
        self.requests.append(url)
        self.site.requests.append(url)
        if url in self.site.broken:
            raise requests.ConnectionError(f"connection refused: {url}")
        if url not in self.site.pages:
            return FakeResponse(url, "not found", status_code=404)
        return FakeResponse(url, self.site.pages[url])


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def fetcher(site: FakeSite) -> Fetcher:
    return Fetcher(HttpConfig(max_retries=0), session_factory=site.session)
