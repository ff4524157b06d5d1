"""Build scrapers from the ``jobs:`` section of settings.yaml.

Example::

    jobs:
      grants:
        mode: listing_detail
        url: https://example.org/search?mode=LIST
        steps:
          - {type: table, matching: "Opportunity Title"}
        links: {matching: "mode=VIEW"}
        pages: 2
        page_url_template: "https://example.org/search?page={page}&sid=$SESSION_ID$"
        session_id_name: jsessionid
        detail:
          fields: [{label: title, tag: h1}]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from scraper.extractor import Extractor
from scraper.fetch import Fetcher
from scraper.manipulators import (
    Matcher,
    PairExtract,
    SelectByClass,
    SelectById,
    SelectOccurrence,
    SliceAfter,
    Step,
)
from scraper.models import Record
from scraper.pagination import TemplatePageIterator
from scraper.scraper import Scraper

logger = logging.getLogger(__name__)

MODES = ("fields", "strings", "links", "text", "markup", "listing_detail")


@dataclass(frozen=True)
class JobResult:
    name: str
    mode: str
    rows: list[dict[str, Any]]


def _matcher(cfg: dict[str, Any]) -> Matcher | None:
    pattern = cfg.get("pattern")
    if pattern:
        return re.compile(str(pattern))
    matching = cfg.get("matching")
    if matching:
        return str(matching)
    return None


def build_step(cfg: dict[str, Any]) -> Step:
    kind = str(cfg.get("type", "")).strip().lower()
    matcher = _matcher(cfg)
    occurrence = int(cfg.get("occurrence", 0))

    if kind == "table":
        return SelectOccurrence("table", occurrence, matcher)
    if kind == "element":
        return SelectOccurrence(_required(cfg, "tag"), occurrence, matcher)
    if kind == "id":
        return SelectById(_required(cfg, "id"), cfg.get("tag"), matcher)
    if kind == "class":
        return SelectByClass(_required(cfg, "class"), cfg.get("tag"), occurrence, matcher)
    if kind == "after":
        return SliceAfter(_required(cfg, "tag"), occurrence, matcher)
    if kind == "pair":
        return PairExtract(_required(cfg, "open"), _required(cfg, "close"), matcher)
    raise ValueError(f"Unknown step type {kind!r}")


def _required(cfg: dict[str, Any], key: str) -> str:
    value = str(cfg.get(key) or "").strip()
    if not value:
        raise ValueError(f"Step {cfg!r} is missing {key!r}")
    return value


def build_extractor(cfg: dict[str, Any], fetcher: Fetcher) -> Extractor:
    extractor = Extractor(fetcher)
    for step_cfg in cfg.get("steps") or []:
        extractor.add(build_step(step_cfg))

    for field_cfg in cfg.get("fields") or []:
        extractor.field(str(field_cfg["label"]), str(field_cfg["tag"]))
    extractor.default_fields(bool(cfg.get("default_fields", True)))

    links_cfg = cfg.get("links")
    if links_cfg is not None:
        extractor.links(_matcher(links_cfg if isinstance(links_cfg, dict) else {}))
    if cfg.get("parameter"):
        extractor.parameter(str(cfg["parameter"]))
    if cfg.get("session_support_url"):
        extractor.add_session_support(str(cfg["session_support_url"]))
    return extractor


def build_scraper(name: str, cfg: dict[str, Any], fetcher: Fetcher) -> Scraper:
    url = str(cfg.get("url") or "").strip()
    if not url:
        raise ValueError(f"Job {name!r} has no url")

    extractor = build_extractor(cfg, fetcher)
    if cfg.get("mode") == "text":
        extractor.as_text()

    scraper = Scraper(extractor, fetcher=fetcher)
    scraper.session_id_name(cfg.get("session_id_name"))
    scraper.convert_urls(bool(cfg.get("convert_urls", True)))

    template = str(cfg.get("page_url_template") or "").strip()
    if template:
        last_page = cfg.get("last_page")
        scraper.iterator(
            TemplatePageIterator(
                template,
                first_page=int(cfg.get("first_page", 2)),
                last_page=int(last_page) if last_page is not None else None,
            )
        )
        scraper.pages(int(cfg.get("pages", 0)))

    return scraper.url(url)


def run_job(name: str, cfg: dict[str, Any], fetcher: Fetcher) -> JobResult:
    mode = str(cfg.get("mode", "fields")).strip()
    if mode not in MODES:
        raise ValueError(f"Job {name!r}: unknown mode {mode!r} (expected one of {MODES})")
    if mode == "links" and cfg.get("links") is None:
        cfg = {**cfg, "links": {}}

    scraper = build_scraper(name, cfg, fetcher)
    logger.info(f"[{name}] Running {mode} job against {cfg['url']}")

    rows: list[dict[str, Any]]
    if mode == "listing_detail":
        detail_cfg = cfg.get("detail") or {}
        detail = Scraper(build_extractor(detail_cfg, fetcher), fetcher=fetcher)
        records: list[Record] = scraper.details(detail)
        rows = [r.to_dict() for r in records]
    elif mode == "links":
        rows = [{"href": l.href, "label": l.label} for l in scraper.get_links()]
    elif mode in ("strings", "text", "markup"):
        rows = [{"value": v} for v in scraper.get_results()]
    else:
        rows = [f.to_dict() for f in scraper.get_fields()]

    logger.info(f"[{name}] {len(rows)} rows")
    return JobResult(name=name, mode=mode, rows=rows)
