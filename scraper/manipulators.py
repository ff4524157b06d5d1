"""Document-narrowing steps.

A chain is an ordered sequence of steps. ``execute_chain`` folds them left to
right: each step receives the document produced by the previous one and
returns a freshly parsed fragment. An empty chain returns the document as-is.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from functools import reduce
from typing import Iterable, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from scraper.base import parse_html
from scraper.errors import NotFoundError
from scraper.models import TagOccurrence

logger = logging.getLogger(__name__)

Matcher = Union[str, re.Pattern[str]]


def matches(matcher: Matcher | None, markup: str) -> bool:
    if matcher is None:
        return True
    if isinstance(matcher, re.Pattern):
        return matcher.search(markup) is not None
    return matcher in markup


def _find_candidates(
    document: BeautifulSoup, target: TagOccurrence, matcher: Matcher | None
) -> list[Tag]:
    name = target.tag or True
    if not target.by_attribute:
        found = document.find_all(name)
    elif target.attribute == "class":
        # class is multi-valued in HTML; any one of the element's classes may match
        found = document.find_all(name, class_=target.attribute_value)
    else:
        found = document.find_all(name, attrs={target.attribute: target.attribute_value})

    if matcher is not None:
        found = [el for el in found if matches(matcher, str(el))]
    return found


def select_element(
    document: BeautifulSoup, target: TagOccurrence, matcher: Matcher | None = None
) -> Tag:
    candidates = _find_candidates(document, target, matcher)
    if not 0 <= target.occurrence < len(candidates):
        suffix = f" matching {matcher!r}" if matcher is not None else ""
        raise NotFoundError(
            f"No element {target.describe()}{suffix} ({len(candidates)} candidates)"
        )
    return candidates[target.occurrence]


def _markup_from(element: Tag) -> str:
    """Serialize ``element`` and everything after it to the end of the document."""
    parts = [str(element)]
    node = element
    while node is not None and node.parent is not None:
        parts.extend(str(sibling) for sibling in node.next_siblings)
        node = node.parent
    return "".join(parts)


@dataclass(frozen=True)
class SelectOccurrence:
    tag: str
    occurrence: int = 0
    matcher: Matcher | None = None

    @property
    def target(self) -> TagOccurrence:
        return TagOccurrence(self.tag, self.occurrence)

    def apply(self, document: BeautifulSoup) -> BeautifulSoup:
        return parse_html(str(select_element(document, self.target, self.matcher)))


@dataclass(frozen=True)
class SelectById:
    element_id: str
    tag: str | None = None
    matcher: Matcher | None = None

    @property
    def target(self) -> TagOccurrence:
        return TagOccurrence(self.tag, 0, attribute="id", attribute_value=self.element_id)

    def apply(self, document: BeautifulSoup) -> BeautifulSoup:
        return parse_html(str(select_element(document, self.target, self.matcher)))


@dataclass(frozen=True)
class SelectByClass:
    class_name: str
    tag: str | None = None
    occurrence: int = 0
    matcher: Matcher | None = None

    @property
    def target(self) -> TagOccurrence:
        return TagOccurrence(
            self.tag, self.occurrence, attribute="class", attribute_value=self.class_name
        )

    def apply(self, document: BeautifulSoup) -> BeautifulSoup:
        return parse_html(str(select_element(document, self.target, self.matcher)))


@dataclass(frozen=True)
class SliceAfter:
    """Keep the nth ``tag`` and all content after it."""

    tag: str
    occurrence: int = 0
    matcher: Matcher | None = None

    @property
    def target(self) -> TagOccurrence:
        return TagOccurrence(self.tag, self.occurrence)

    def apply(self, document: BeautifulSoup) -> BeautifulSoup:
        element = select_element(document, self.target, self.matcher)
        return parse_html(_markup_from(element))


@dataclass(frozen=True)
class PairExtract:
    """Pair each ``open_tag`` with the next ``close_tag`` as a <dt>/<dd> list.

    The result is always a single <dl>, so field extraction can read it with the
    definition-list strategy whatever the original tag names were.
    """

    open_tag: str
    close_tag: str
    matcher: Matcher | None = None

    def apply(self, document: BeautifulSoup) -> BeautifulSoup:
        parts = ["<dl>"]
        for label in document.find_all(self.open_tag):
            if not matches(self.matcher, str(label)):
                continue
            value = label.find_next(self.close_tag)
            if value is None:
                break
            parts.append(f"<dt>{label.decode_contents()}</dt>")
            parts.append(f"<dd>{value.decode_contents()}</dd>")
        parts.append("</dl>")
        return parse_html("".join(parts))


Step = Union[SelectOccurrence, SelectById, SelectByClass, SliceAfter, PairExtract]


def with_matcher(step: Step, matcher: Matcher) -> Step:
    return replace(step, matcher=matcher)


def execute_chain(steps: Iterable[Step], document: BeautifulSoup) -> BeautifulSoup:
    def _apply(fragment: BeautifulSoup, step: Step) -> BeautifulSoup:
        logger.debug(f"Applying {step}")
        return step.apply(fragment)

    return reduce(_apply, steps, document)
