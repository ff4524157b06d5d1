from __future__ import annotations

import re

import pytest

from scraper.base import parse_html
from scraper.errors import NotFoundError
from scraper.fields import extract_fields
from scraper.manipulators import (
    PairExtract,
    SelectByClass,
    SelectById,
    SelectOccurrence,
    SliceAfter,
    execute_chain,
    with_matcher,
)

PAGE = """
<html><body>
  <div id="nav"><table class="layout"><tr><td>Home</td></tr></table></div>
  <div id="content">
    <table class="results"><tr><th>Opportunity Title</th></tr><tr><td>Clean Water</td></tr></table>
    <span class="fld agency-name">Agency: Department of Agriculture</span>
    <span class="fld agency-name">Office: Agricultural Research Service</span>
    <table class="results"><tr><td>Document Type</td><td>Grants Notice</td></tr></table>
  </div>
  <h4>Description</h4><p>ignored</p><dd>The focus of this two-year program</dd>
  <h4>Eligible Applicants</h4><dd>Nonprofits</dd>
  <h4>Contact</h4><dd><a href="mailto:grants@example.org">Email</a></dd>
  <p>closing remarks</p>
</body></html>
"""


@pytest.fixture
def doc():
    return parse_html(PAGE)


def test_empty_chain_returns_document_unchanged(doc):
    assert execute_chain((), doc) is doc


def test_select_nth_occurrence_is_zero_based(doc):
    fragment = SelectOccurrence("table", 1).apply(doc)

    assert str(fragment).startswith("<table")
    assert "Opportunity Title" in str(fragment)


def test_matcher_filters_candidates_before_indexing(doc):
    fragment = SelectOccurrence("table", 0, "Document Type").apply(doc)
    assert "Grants Notice" in str(fragment)

    fragment = SelectOccurrence("table", 0, re.compile(r"Opportunity\s+Title")).apply(doc)
    assert "Clean Water" in str(fragment)


def test_occurrence_beyond_candidates_raises_not_found(doc):
    with pytest.raises(NotFoundError):
        SelectOccurrence("table", 7).apply(doc)
    with pytest.raises(NotFoundError):
        SelectOccurrence("table", 0, "no such text").apply(doc)


def test_select_by_id(doc):
    fragment = SelectById("content", "div").apply(doc)
    assert "Home" not in str(fragment)
    assert "Grants Notice" in str(fragment)

    assert "Home" in str(SelectById("nav").apply(doc))


def test_select_by_id_missing_raises_not_found(doc):
    with pytest.raises(NotFoundError):
        SelectById("sidebar").apply(doc)


def test_select_by_class_with_occurrence(doc):
    first = SelectByClass("agency-name").apply(doc)
    second = SelectByClass("agency-name", "span", 1).apply(doc)

    assert "Department of Agriculture" in str(first)
    assert "Agricultural Research Service" in str(second)

    with pytest.raises(NotFoundError):
        SelectByClass("agency-name", "span", 2).apply(doc)


def test_slice_after_keeps_element_and_following_content(doc):
    fragment = str(SliceAfter("table", 2).apply(doc))

    assert fragment.startswith("<table")
    assert "Grants Notice" in fragment
    assert "closing remarks" in fragment
    assert "Opportunity Title" not in fragment
    assert "Home" not in fragment


def test_pair_extract_builds_definition_list(doc):
    fragment = PairExtract("h4", "dd").apply(doc)

    assert len(fragment.find_all("dt")) == 3
    fields = extract_fields(fragment)
    assert [(f.label, f.value) for f in fields] == [
        ("Description", "The focus of this two-year program"),
        ("Eligible Applicants", "Nonprofits"),
        ("Contact", "mailto:grants@example.org"),
    ]


def test_pair_extract_with_matcher(doc):
    fragment = with_matcher(PairExtract("h4", "dd"), "Eligible").apply(doc)
    assert [f.label for f in extract_fields(fragment)] == ["Eligible Applicants"]


def test_steps_run_in_insertion_order(doc):
    inside_content_first = execute_chain(
        (SelectById("content"), SelectOccurrence("table", 0)), doc
    )
    table_first = execute_chain((SelectOccurrence("table", 0),), doc)

    assert "Opportunity Title" in str(inside_content_first)
    assert "Home" in str(table_first)

    with pytest.raises(NotFoundError):
        execute_chain((SelectOccurrence("table", 0), SelectById("content")), doc)


def test_slice_then_pair(doc):
    fragment = execute_chain((SliceAfter("h4", 1), PairExtract("h4", "dd")), doc)
    assert [f.label for f in extract_fields(fragment)] == ["Eligible Applicants", "Contact"]
