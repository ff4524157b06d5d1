from __future__ import annotations


class ScraperError(Exception):
    """Base class for everything the extraction core raises."""


class MalformedURLError(ScraperError, ValueError):
    def __init__(self, url: str | None, reason: str = "not a valid http(s) URL") -> None:
        super().__init__(f"{url!r}: {reason}")
        self.url = url


class TransportError(ScraperError):
    def __init__(self, url: str, cause: Exception | None = None) -> None:
        message = f"Failed to fetch {url}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.url = url
        self.cause = cause


class NotFoundError(ScraperError, LookupError):
    pass
