from __future__ import annotations

import logging
import random
from typing import Callable

import requests

from scraper.base import HttpConfig, get_with_retries, sleep_seconds
from scraper.errors import TransportError

logger = logging.getLogger(__name__)


class Fetcher:
    """Blocking HTTP transport.

    Every call opens its own ``requests.Session`` and closes it before returning,
    including when the request fails. Failures surface as ``TransportError``.
    """

    def __init__(
        self,
        config: HttpConfig | None = None,
        *,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.config = config or HttpConfig()
        self._session_factory = session_factory

    def _open_session(self) -> requests.Session:
        session = self._session_factory()
        if self.config.user_agent:
            session.headers.update({"User-Agent": self.config.user_agent})
        return session

    def _get(self, session: requests.Session, url: str) -> str:
        if self.config.request_delay_seconds > 0:
            sleep_seconds(
                self.config.request_delay_seconds
                + random.uniform(0.0, self.config.request_jitter_seconds)
            )

        try:
            resp = get_with_retries(session, url, config=self.config)
        except requests.RequestException as exc:
            raise TransportError(url, exc) from exc

        logger.debug(f"Fetched {url} ({len(resp.text)} chars)")
        return resp.text

    def fetch(self, url: str) -> str:
        with self._open_session() as session:
            return self._get(session, url)

    def fetch_with_session(self, initial_url: str, url: str) -> str:
        """Visit ``initial_url`` first (body discarded), then ``url`` on the same session.

        Some sites only serve inner pages once the listing page has set a cookie.
        """
        with self._open_session() as session:
            self._get(session, initial_url)
            return self._get(session, url)
