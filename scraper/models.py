from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from scraper.base import strip_label

VALUE_SEPARATOR = ";"


@dataclass
class Field:
    """A labeled value pulled out of markup.

    Labels are trimmed and lose a trailing colon on construction. A field holds
    more than one value when a label-less continuation row follows it in a
    two-column table; ``value`` renders those joined with ``;``.
    """

    label: str
    values: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.label = strip_label(self.label)
        self.values = list(self.values)

    @classmethod
    def of(cls, label: str, value: str) -> Field:
        return cls(label, [value])

    @property
    def value(self) -> str:
        return VALUE_SEPARATOR.join(self.values)

    def add_value(self, value: str) -> None:
        self.values.append(value)

    def to_dict(self) -> dict[str, object]:
        return {"label": self.label, "values": list(self.values)}


@dataclass(frozen=True)
class Record:
    fields: tuple[Field, ...]
    url: str | None = None

    @classmethod
    def from_fields(cls, fields: Iterable[Field], url: str | None = None) -> Record:
        # Copy so later mutation of the extraction results cannot leak in.
        return cls(
            fields=tuple(Field(f.label, list(f.values)) for f in fields),
            url=url,
        )

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def get(self, label: str) -> str | None:
        return field_value(self.fields, label)

    def to_dict(self) -> dict[str, object]:
        return {"url": self.url, "fields": [f.to_dict() for f in self.fields]}


@dataclass(frozen=True)
class Link:
    href: str
    label: str


@dataclass(frozen=True)
class DesignatedField:
    label: str
    source_tag: str


@dataclass(frozen=True)
class TagOccurrence:
    """Which element a step targets: the nth ``tag``, or ``tag`` with an attribute value.

    ``tag`` may be None to match any element (only meaningful with an attribute).
    """

    tag: str | None
    occurrence: int = 0
    attribute: str | None = None
    attribute_value: str | None = None

    @property
    def by_attribute(self) -> bool:
        return self.attribute is not None

    def describe(self) -> str:
        name = self.tag or "*"
        if self.by_attribute:
            return f"<{name} {self.attribute}={self.attribute_value!r}>[{self.occurrence}]"
        return f"<{name}>[{self.occurrence}]"


def field_value(fields: Iterable[Field], label: str) -> str | None:
    """Rendered value of the first field labeled ``label``.

    Exact label match wins; otherwise the first case-insensitive match.
    """
    fields = list(fields)
    for f in fields:
        if f.label == label:
            return f.value
    wanted = label.casefold()
    for f in fields:
        if f.label.casefold() == wanted:
            return f.value
    return None
