from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from scraper.errors import MalformedURLError

logger = logging.getLogger(__name__)

HTML_PARSER = "html.parser"


@dataclass(frozen=True)
class HttpConfig:
    timeout_seconds: int = 30
    user_agent: str = ""
    max_retries: int = 3
    backoff_base_seconds: float = 0.5
    backoff_jitter_seconds: float = 0.25
    request_delay_seconds: float = 0.0
    request_jitter_seconds: float = 0.0

    @classmethod
    def from_settings(cls, settings: dict[str, Any]) -> HttpConfig:
        http_cfg = settings.get("http", {}) or {}
        return cls(
            timeout_seconds=int(http_cfg.get("timeout_seconds", 30)),
            user_agent=str(http_cfg.get("user_agent", "") or "").strip(),
            max_retries=int(http_cfg.get("max_retries", 3)),
            backoff_base_seconds=float(http_cfg.get("backoff_base_seconds", 0.5)),
            backoff_jitter_seconds=float(http_cfg.get("backoff_jitter_seconds", 0.25)),
            request_delay_seconds=float(http_cfg.get("request_delay_seconds", 0.0)),
            request_jitter_seconds=float(http_cfg.get("request_jitter_seconds", 0.0)),
        )


def clean_text(value: str | None) -> str:
    return " ".join((value or "").strip().split())


def strip_label(value: str | None) -> str:
    """Trim a label and drop one trailing colon ("Agency:" -> "Agency")."""
    label = (value or "").strip()
    if label.endswith(":"):
        label = label[:-1]
    return label


def parse_html(markup: str | None) -> BeautifulSoup:
    return BeautifulSoup(markup or "", HTML_PARSER)


def element_text(element: Tag) -> str:
    return clean_text(element.get_text(" "))


def sleep_seconds(seconds: float) -> None:
    if seconds <= 0:
        return
    time.sleep(seconds)


def compute_backoff_seconds(
    attempt: int,
    *,
    base: float,
    jitter: float,
    max_backoff_seconds: float = 30.0,
) -> float:
    exp = base * (2**attempt)
    exp = min(exp, max_backoff_seconds)
    if jitter > 0:
        exp += random.uniform(0.0, jitter)
    return exp


def get_with_retries(
    session,
    url: str,
    *,
    config: HttpConfig,
    retry_statuses=(429, 500, 502, 503, 504),
) -> requests.Response:
    last_err: Exception | None = None

    for attempt in range(config.max_retries + 1):
        try:
            resp = session.get(url, timeout=config.timeout_seconds)
            if resp.status_code in retry_statuses:
                if attempt >= config.max_retries:
                    resp.raise_for_status()

                logger.debug(f"HTTP {resp.status_code} for {url}, retry {attempt + 1}")
                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        sleep_seconds(float(retry_after))
                    except ValueError:
                        pass

                sleep_seconds(
                    compute_backoff_seconds(
                        attempt,
                        base=config.backoff_base_seconds,
                        jitter=config.backoff_jitter_seconds,
                    )
                )
                continue

            resp.raise_for_status()
            return resp
        except requests.RequestException as e:
            last_err = e
            if attempt >= config.max_retries:
                raise

            logger.debug(f"Request to {url} failed ({e}), retry {attempt + 1}")
            sleep_seconds(
                compute_backoff_seconds(
                    attempt,
                    base=config.backoff_base_seconds,
                    jitter=config.backoff_jitter_seconds,
                )
            )

    assert last_err is not None
    raise last_err


def validate_url(url: str | None) -> str:
    s = (url or "").strip()
    if not s:
        raise MalformedURLError(url, "empty URL")

    p = urlparse(s)
    if p.scheme.lower() not in ("http", "https"):
        raise MalformedURLError(url, f"unsupported scheme {p.scheme!r}")
    if not p.netloc:
        raise MalformedURLError(url, "missing host")
    return s


def base_url_of(url: str) -> str:
    """Scheme and host of ``url``, without path (e.g. ``https://example.org``)."""
    p = urlparse(validate_url(url))
    return f"{p.scheme.lower()}://{p.netloc.lower()}"


def is_relative_url(href: str | None) -> bool:
    return not (href or "").strip().lower().startswith(("http://", "https://"))


def resolve_link(base_url: str, href: str) -> str:
    href = (href or "").strip()
    if not is_relative_url(href):
        return href
    return urljoin(base_url.rstrip("/") + "/", href)
