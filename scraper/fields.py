"""Schema-free field extraction.

Four strategies run in a fixed order over a fragment and their results are
concatenated without de-duplication:

1. list items   ``<li>Label: value</li>`` or ``<li><b>Label</b> value</li>``
2. tables       two cells per row as label/value pairs, otherwise header rows
3. definitions  ``<dt>``/``<dd>`` pairs inside each ``<dl>``
4. designated   explicit (label, tag) lookups, first matching element only

Markup that fits none of the shapes simply yields no fields.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from bs4 import BeautifulSoup
from bs4.element import Tag

from scraper.base import clean_text, element_text, strip_label
from scraper.errors import NotFoundError
from scraper.models import DesignatedField, Field

logger = logging.getLogger(__name__)

# Ignored when deciding whether a list item has the <li><x>label</x> value</li> shape.
BREAK_TAG = "br"


def value_text(element: Tag) -> str:
    """Value of a cell: first anchor href if any, else the anchor text, else the text."""
    anchors = element.find_all("a")
    if not anchors:
        return element_text(element)

    for anchor in anchors:
        href = anchor.get("href")
        if href:
            return href.strip()
    return element_text(anchors[0])


def _tag_count_without_breaks(item: Tag) -> int:
    # Start and end tag for every element; void elements only have a start tag.
    count = 2
    for child in item.find_all(True):
        if child.name == BREAK_TAG:
            continue
        count += 1 if child.is_empty_element else 2
    return count


def _first_child_element(item: Tag) -> Tag | None:
    for child in item.find_all(True):
        if child.name != BREAK_TAG:
            return child
    return None


def fields_from_list_items(document: BeautifulSoup) -> list[Field]:
    out: list[Field] = []
    for item in document.find_all("li"):
        text = element_text(item)
        # trailing colons are dropped before splitting ("Label:" is one part)
        parts = text.rstrip(":").split(":")
        if len(parts) == 2:
            out.append(Field.of(parts[0], parts[1].strip()))
            continue

        if _tag_count_without_breaks(item) != 4:
            continue

        label_element = _first_child_element(item)
        if label_element is None:
            continue
        label = strip_label(element_text(label_element))
        # no separator between inline nodes: "<b>Name</b>: x" reads "Name: x"
        all_text = strip_label(clean_text(item.get_text()))
        if not all_text.startswith(label):
            logger.debug(f"List item label {label!r} is not a prefix of {all_text!r}")
            continue

        value = all_text[len(label) + 1 :] if len(all_text) > len(label) else ""
        out.append(Field.of(label, value.strip()))
    return out


def _fields_from_cell_pairs(cells: list[Tag]) -> list[Field]:
    out: list[Field] = []
    last: Field | None = None
    for label_cell, value_cell in zip(cells[0::2], cells[1::2]):
        label = strip_label(element_text(label_cell))
        value = value_text(value_cell)
        if not label and last is not None:
            last.add_value(value)
            continue
        last = Field.of(label, value)
        out.append(last)
    return out


def _fields_from_header_rows(rows: list[Tag]) -> list[Field]:
    out: list[Field] = []
    headers: list[str] = []
    for row in rows:
        header_cells = row.find_all("th")
        if header_cells:
            headers = [element_text(th) for th in header_cells]

        cells = row.find_all("td")
        for n in range(len(headers), len(cells)):
            headers.append(f"col{n}")
        for header, cell in zip(headers, cells):
            out.append(Field.of(header, value_text(cell)))
    return out


def fields_from_table(table: Tag) -> list[Field]:
    cells = table.find_all("td")
    rows = table.find_all("tr")
    logger.debug(f"Table with {len(cells)} cells in {len(rows)} rows")
    if len(cells) == 2 * len(rows):
        return _fields_from_cell_pairs(cells)
    return _fields_from_header_rows(rows)


def fields_from_tables(document: BeautifulSoup) -> list[Field]:
    out: list[Field] = []
    for table in document.find_all("table"):
        out.extend(fields_from_table(table))
    return out


def fields_from_definition_lists(document: BeautifulSoup) -> list[Field]:
    out: list[Field] = []
    for dl in document.find_all("dl"):
        labels = dl.find_all("dt")
        values = dl.find_all("dd")
        for label, value in zip(labels, values):
            out.append(Field.of(element_text(label), value_text(value)))
    return out


def designated_fields(
    document: BeautifulSoup, designated: Iterable[DesignatedField]
) -> list[Field]:
    out: list[Field] = []
    for wanted in designated:
        element = document.find(wanted.source_tag)
        if element is None:
            raise NotFoundError(
                f"No <{wanted.source_tag}> element for field {wanted.label!r}"
            )
        value = element_text(element)
        logger.debug(f"Designated field {wanted.label}={value!r}")
        out.append(Field.of(wanted.label, value))
    return out


HEURISTICS: tuple[Callable[[BeautifulSoup], list[Field]], ...] = (
    fields_from_list_items,
    fields_from_tables,
    fields_from_definition_lists,
)


class FieldExtractor:
    def __init__(
        self,
        designated: Iterable[DesignatedField] = (),
        *,
        use_heuristics: bool = True,
    ) -> None:
        self.designated: list[DesignatedField] = list(designated)
        self.use_heuristics = use_heuristics

    def field(self, label: str, tag: str) -> FieldExtractor:
        self.designated.append(DesignatedField(label, tag))
        return self

    def extract(self, document: BeautifulSoup) -> list[Field]:
        out: list[Field] = []
        if self.use_heuristics:
            for strategy in HEURISTICS:
                found = strategy(document)
                logger.debug(f"{strategy.__name__}: {len(found)} fields")
                out.extend(found)
        out.extend(designated_fields(document, self.designated))
        return out


def extract_fields(document: BeautifulSoup) -> list[Field]:
    return FieldExtractor().extract(document)
