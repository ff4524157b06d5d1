from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Protocol, TypeVar

from scraper.errors import MalformedURLError, NotFoundError, TransportError
from scraper.fetch import Fetcher
from scraper.models import Link

logger = logging.getLogger(__name__)

SESSION_ID_PLACEHOLDER = "$SESSION_ID$"

T = TypeVar("T")


class PageIterator(Protocol):
    """Supplies the URLs of the pages after the first one, one per ``next()`` call."""

    def next(self) -> str: ...

    def has_next(self) -> bool: ...

    def base_url(self) -> str | None: ...


class TemplatePageIterator:
    """Numbered pages from a URL template such as ``https://x.org/list?page={page}``."""

    def __init__(
        self,
        template: str,
        *,
        first_page: int = 2,
        last_page: int | None = None,
        base_url: str | None = None,
    ) -> None:
        self.template = template
        self._page = first_page
        self._last_page = last_page
        self._base_url = base_url

    def next(self) -> str:
        url = self.template.replace("{page}", str(self._page))
        self._page += 1
        return url

    def has_next(self) -> bool:
        return self._last_page is None or self._page <= self._last_page

    def base_url(self) -> str | None:
        return self._base_url


class LinkPageIterator:
    """Pages taken from a list of already harvested links (or plain URLs)."""

    def __init__(self, links: Iterable[Link | str], *, base_url: str | None = None) -> None:
        self._urls = [l.href if isinstance(l, Link) else l for l in links]
        self._index = 0
        self._base_url = base_url

    def next(self) -> str:
        if self._index >= len(self._urls):
            raise IndexError("no more pages")
        url = self._urls[self._index]
        self._index += 1
        return url

    def has_next(self) -> bool:
        return self._index < len(self._urls)

    def base_url(self) -> str | None:
        return self._base_url


def resolve_session_url(
    url: str,
    session_id: str | None,
    placeholder: str = SESSION_ID_PLACEHOLDER,
) -> str:
    if placeholder not in url:
        return url
    if session_id is None:
        logger.warning(f"{url} needs a session id but none was resolved")
        return url
    return url.replace(placeholder, session_id)


def extract_session_id(markup: str, keyword: str) -> str | None:
    """Find ``keyword=value`` (or ``keyword: value``) in a page and return the value.

    Matches e.g. ``;jsessionid=ABC123`` in a link or ``"sid": "ABC123"`` in a script.
    """
    pattern = re.compile(
        re.escape(keyword) + r"""["']?\s*[=:]\s*["']?([^"'&;,\s<>?#]+)""",
        re.IGNORECASE,
    )
    m = pattern.search(markup or "")
    if not m:
        return None
    return m.group(1)


def fetch_session_id(fetcher: Fetcher, url: str, keyword: str) -> str | None:
    try:
        markup = fetcher.fetch(url)
    except TransportError as exc:
        logger.error(f"Could not resolve session id: {exc}")
        return None

    session_id = extract_session_id(markup, keyword)
    if session_id is None:
        logger.warning(f"No {keyword!r} session id found in {url}")
    else:
        logger.info(f"Resolved {keyword} session id from {url}")
    return session_id


def paginate(
    iterator: PageIterator,
    pages: int,
    fetch_page: Callable[[str], list[T]],
    *,
    session_id: str | None = None,
    placeholder: str = SESSION_ID_PLACEHOLDER,
) -> list[T]:
    """Pull up to ``pages`` further page URLs and concatenate their results in order.

    Stops early when the iterator reports no more pages. A generated URL that is
    not a valid URL, or a page missing the narrowed element, is logged and
    skipped; the remaining pages still run.
    """
    out: list[T] = []
    for n in range(pages):
        if not iterator.has_next():
            logger.info(f"Page iterator exhausted after {n} of {pages} pages")
            break

        page_url = resolve_session_url(iterator.next(), session_id, placeholder)
        logger.debug(f"Next page url = {page_url}")
        try:
            found = fetch_page(page_url)
        except MalformedURLError as exc:
            logger.warning(f"Skipping page: {exc}")
            continue
        except NotFoundError as exc:
            logger.warning(f"Nothing to extract from {page_url}: {exc}")
            continue

        logger.info(f"Page {n + 2}: {len(found)} results from {page_url}")
        out.extend(found)
    return out
