"""Field-caption vocabulary used by segmentation, splitting and extraction.

Captions map to :class:`~taxodoc.ingestion.models.Metadata` attribute names.
The packaged table covers the Thai editorial captions plus their English
equivalents; a different table can be loaded from JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import json
from pathlib import Path
import re

from taxodoc.ingestion.models import METADATA_FIELDS
from taxodoc.ingestion.normalization import label_key

_DEFAULT_LABELS_PATH = Path(__file__).parent / "data" / "labels.json"

AUTHOR_FIELD = "author"
SYNONYMS_FIELD = "synonyms"

_SEPARATOR = r"[:\-–—：]"


@dataclass(frozen=True, slots=True)
class LabelPattern:
    """Caption regex for one metadata field.

    ``colon_required`` captions only match when followed by a colon, which
    keeps ordinary English sentences ("Family members ...") out.
    """

    field: str
    name: str
    pattern: str
    colon_required: bool = False
    aliases: tuple[str, ...] = ()

    def line_regex(self) -> re.Pattern[str]:
        if self.colon_required:
            source = rf"^\s*(?:{self.pattern})\s*[:：]\s*(?P<value>.*)$"
        else:
            source = rf"^\s*(?:{self.pattern})(?:\s*{_SEPARATOR}\s*|\s+|$)(?P<value>.*)$"
        return re.compile(source, re.IGNORECASE | re.DOTALL)

    def search_regex(self) -> re.Pattern[str]:
        if self.colon_required:
            source = rf"\b(?:{self.pattern})\s*[:：]"
        else:
            source = rf"(?:{self.pattern})"
        return re.compile(source, re.IGNORECASE)

    def keys(self) -> frozenset[str]:
        return frozenset(label_key(name) for name in (self.name, *self.aliases) if label_key(name))


@dataclass(frozen=True, slots=True)
class LabelMatch:
    label: LabelPattern
    caption: str
    value: str

    @property
    def field(self) -> str:
        return self.label.field


@dataclass(slots=True)
class _CompiledLabel:
    label: LabelPattern
    line: re.Pattern[str]
    search: re.Pattern[str]
    keys: frozenset[str] = field(default_factory=frozenset)


class LabelVocabulary:
    """Ordered caption table; the first matching caption wins."""

    def __init__(self, labels: list[LabelPattern] | tuple[LabelPattern, ...]) -> None:
        if not labels:
            raise ValueError("Label vocabulary must contain at least one caption")
        self._labels = tuple(labels)
        self._compiled = tuple(
            _CompiledLabel(label=label, line=label.line_regex(), search=label.search_regex(), keys=label.keys())
            for label in self._labels
        )

    @classmethod
    def from_path(cls, path: str | Path | None) -> "LabelVocabulary":
        return load_label_vocabulary(path)

    @property
    def labels(self) -> tuple[LabelPattern, ...]:
        return self._labels

    def patterns_for(self, field_name: str) -> list[LabelPattern]:
        return [label for label in self._labels if label.field == field_name]

    def match_line(self, line: str) -> LabelMatch | None:
        """Match a caption at the start of ``line`` and return the trailing value."""

        if not line or not line.strip():
            return None
        for compiled in self._compiled:
            match = compiled.line.match(line)
            if match is None:
                continue
            value = match.group("value").strip()
            caption = line[: match.start("value")].strip()
            return LabelMatch(label=compiled.label, caption=caption, value=value)
        return None

    def match_caption(self, caption: str | None) -> LabelPattern | None:
        """Resolve a bold/italic caption run to its label, ignoring case, tone marks and punctuation."""

        if not caption or not caption.strip():
            return None
        line_match = self.match_line(caption)
        if line_match is not None:
            return line_match.label
        key = label_key(caption)
        if not key:
            return None
        for compiled in self._compiled:
            if key in compiled.keys:
                return compiled.label
        return None

    def search(self, field_name: str, text: str | None) -> bool:
        """Return True when a caption for ``field_name`` occurs anywhere in ``text``."""

        if not text:
            return False
        return any(
            compiled.search.search(text) is not None
            for compiled in self._compiled
            if compiled.label.field == field_name
        )

    def is_marker(self, text: str | None) -> bool:
        """Author attribution followed by non-space content."""

        if not text:
            return False
        match = self.match_line(text)
        return match is not None and match.field == AUTHOR_FIELD and bool(match.value)


def _parse_labels(payload: object) -> tuple[LabelPattern, ...]:
    if isinstance(payload, dict):
        payload = payload.get("labels", [])
    if not isinstance(payload, list):
        raise ValueError("Label table must be a list or an object with 'labels'")

    labels: list[LabelPattern] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"Label #{index} must be an object")
        field_name = str(item.get("field", "")).strip()
        if field_name not in METADATA_FIELDS:
            raise ValueError(f"Label #{index} maps to unknown field '{field_name}'")
        name = str(item.get("name", "")).strip()
        pattern = str(item.get("pattern", "")).strip() or re.escape(name)
        if not name:
            raise ValueError(f"Label #{index} needs a 'name'")
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ValueError(f"Label #{index} has an invalid pattern: {exc}") from exc
        aliases = item.get("aliases", [])
        if not isinstance(aliases, list):
            raise ValueError(f"Label #{index} aliases must be a list")
        labels.append(
            LabelPattern(
                field=field_name,
                name=name,
                pattern=pattern,
                colon_required=bool(item.get("colon_required", False)),
                aliases=tuple(str(alias) for alias in aliases),
            )
        )
    return tuple(labels)


@lru_cache(maxsize=8)
def load_label_vocabulary(path: str | Path | None = None) -> LabelVocabulary:
    """Load the caption table from JSON; the packaged table when ``path`` is None."""

    source = Path(path) if path is not None else _DEFAULT_LABELS_PATH
    return LabelVocabulary(_parse_labels(json.loads(source.read_text(encoding="utf-8"))))


def default_vocabulary() -> LabelVocabulary:
    return load_label_vocabulary()
