"""Canonical data structures shared by readers and pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True, slots=True)
class RawDocument:
    """Uploaded bytes plus the declared name and MIME type."""

    file_name: str
    payload: bytes
    mime_type: str = ""


@dataclass(slots=True)
class ReaderOutput:
    """Markup and plain text recovered by a format reader.

    ``html`` is empty when the format has no recoverable structure (PDF);
    the pipeline then segments ``text`` line by line.
    """

    html: str
    text: str
    format_name: str
    messages: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Paragraph:
    text: str
    source: str
    html: str
    heading: int | None = None
    strong: str | None = None
    emphasis: str | None = None
    unparsed: bool = False


@dataclass(frozen=True, slots=True)
class ListBlock:
    ordered: bool
    items: tuple[str, ...]
    source: str
    html: str

    @property
    def text(self) -> str:
        return " ".join(self.items)

    @property
    def strong(self) -> str | None:
        return None

    @property
    def emphasis(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class Label:
    """A recognized caption (``name``) mapped to a metadata ``field``."""

    name: str
    field: str
    value: str
    source: str
    html: str
    strong: str | None = None
    emphasis: str | None = None

    @property
    def text(self) -> str:
        return f"{self.name} {self.value}".strip()


Block = Union[Paragraph, ListBlock, Label]


@dataclass(slots=True)
class Entry:
    """Contiguous run of blocks describing one catalog item."""

    title: str
    html: str
    text: str
    blocks: list[Block] = field(default_factory=list)


_METADATA_KEYS = {
    "official": "official",
    "scientific": "scientific",
    "genus": "genus",
    "species": "species",
    "authors_display": "authorsDisplay",
    "authors_period": "authorsPeriod",
    "other_names": "otherNames",
    "author": "author",
    "synonyms": "synonyms",
    "family": "family",
}

METADATA_FIELDS = tuple(_METADATA_KEYS)


@dataclass(slots=True)
class Metadata:
    """Best-effort structured fields pulled out of one entry."""

    official: str | None = None
    scientific: str | None = None
    genus: str | None = None
    species: str | None = None
    authors_display: str | None = None
    authors_period: str | None = None
    other_names: str | None = None
    author: str | None = None
    synonyms: str | None = None
    family: str | None = None
    synonyms_label_present: bool = False

    def is_empty(self, name: str) -> bool:
        return not getattr(self, name)

    def fill(self, name: str, value: str | None) -> bool:
        """Set ``name`` only when it is still empty; return True when set."""

        if not value or not self.is_empty(name):
            return False
        setattr(self, name, value)
        return True

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            key: getattr(self, attr) for attr, key in _METADATA_KEYS.items() if getattr(self, attr)
        }
        payload["synonymsLabelPresent"] = self.synonyms_label_present
        return payload


@dataclass(slots=True)
class SanitizedContent:
    html: str
    text: str
    short_description: str | None = None


@dataclass(slots=True)
class ParsedEntry:
    index: int
    entry: Entry
    metadata: Metadata
    content: SanitizedContent
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class DocumentStats:
    paragraphs: int
    html_length: int
    sections: int
    dom_nodes: int

    def to_dict(self) -> dict[str, int]:
        return {
            "paragraphs": self.paragraphs,
            "htmlLength": self.html_length,
            "sections": self.sections,
            "domNodes": self.dom_nodes,
        }


@dataclass(slots=True)
class ParsedDocument:
    """Pipeline output for one uploaded document, before persistence."""

    file_name: str
    format_name: str
    html: str
    text: str
    blocks: list[Block]
    entries: list[ParsedEntry]
    stats: DocumentStats
    warnings: list[str] = field(default_factory=list)

    @property
    def low_confidence(self) -> bool:
        return any(isinstance(block, Paragraph) and block.unparsed for block in self.blocks)
