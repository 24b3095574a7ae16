"""Unicode cleanup and garble repair for text recovered from office documents.

Lossy PDF/DOCX extraction of Thai text drops or duplicates combining vowel
and tone marks and leaves U+FFFD where a glyph could not be mapped.  The
normalizer keeps the replacement character visible as ``?`` so the repair
table can match the known corrupted renderings, then collapses duplicated
marks and whitespace.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import json
from pathlib import Path
import re
import unicodedata

_DEFAULT_REPAIRS_PATH = Path(__file__).parent / "data" / "garble_repairs.json"

_WHITESPACE_RE = re.compile(r"\s+")
_ZERO_WIDTH_RE = re.compile(r"[\u200b-\u200d\u2060\ufeff]")
# C0/C1 controls other than tab, newline and carriage return
_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_THAI_MARKS = r"\u0e31\u0e34-\u0e3a\u0e47-\u0e4e"
_DUPLICATE_MARK_RE = re.compile(rf"([{_THAI_MARKS}])\1+")
_CAPTION_PUNCT_RE = re.compile(r"[\s.:;,、\-–—ๆ()\[\]]+")

REPLACEMENT_MARKER = "?"
# Repairs and collapses can expose new matches; bounded so a bad table cannot loop.
_MAX_PASSES = 8


@dataclass(frozen=True, slots=True)
class GarbleRepair:
    """One substitution from an observed corrupted rendering to the correct phrase."""

    pattern: str
    replacement: str
    regex: bool = False

    def compile(self) -> re.Pattern[str]:
        source = self.pattern if self.regex else re.escape(self.pattern)
        return re.compile(source)


def _parse_repairs(payload: object) -> tuple[GarbleRepair, ...]:
    if isinstance(payload, dict):
        payload = payload.get("repairs", [])
    if not isinstance(payload, list):
        raise ValueError("Garble repair table must be a list or an object with 'repairs'")

    repairs: list[GarbleRepair] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict) or "pattern" not in item or "replacement" not in item:
            raise ValueError(f"Garble repair #{index} needs 'pattern' and 'replacement'")
        pattern = unicodedata.normalize("NFC", str(item["pattern"]))
        if not pattern:
            raise ValueError(f"Garble repair #{index} has an empty pattern")
        repairs.append(
            GarbleRepair(
                pattern=pattern,
                replacement=unicodedata.normalize("NFC", str(item["replacement"])),
                regex=bool(item.get("regex", False)),
            )
        )
    return tuple(repairs)


@lru_cache(maxsize=8)
def load_garble_repairs(path: str | Path | None = None) -> tuple[GarbleRepair, ...]:
    """Load a repair table from JSON; the packaged table when ``path`` is None."""

    source = Path(path) if path is not None else _DEFAULT_REPAIRS_PATH
    return _parse_repairs(json.loads(source.read_text(encoding="utf-8")))


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def collapse_duplicate_marks(text: str) -> str:
    """Collapse runs of an identical Thai combining mark to a single mark."""

    return _DUPLICATE_MARK_RE.sub(r"\1", text)


def _clean_characters(text: str) -> str:
    cleaned = unicodedata.normalize("NFC", text)
    cleaned = cleaned.replace("\u00a0", " ")
    cleaned = _ZERO_WIDTH_RE.sub("", cleaned)
    cleaned = _CONTROL_RE.sub("", cleaned)
    cleaned = cleaned.replace("\ufffd", REPLACEMENT_MARKER)
    # stripping zero-width characters can leave adjacent marks out of canonical order
    return unicodedata.normalize("NFC", cleaned)


class TextNormalizer:
    """Normalizer bound to one garble-repair table."""

    def __init__(self, repairs: tuple[GarbleRepair, ...] | list[GarbleRepair] | None = None) -> None:
        table = load_garble_repairs() if repairs is None else tuple(repairs)
        self._repairs = tuple(repair.compile() for repair in table)
        self._replacements = tuple(repair.replacement for repair in table)

    @classmethod
    def from_path(cls, path: str | Path | None) -> "TextNormalizer":
        return cls(load_garble_repairs(path))

    def repair(self, text: str) -> str:
        """Apply the repair table in order until no entry matches."""

        result = text
        for _ in range(_MAX_PASSES):
            previous = result
            for pattern, replacement in zip(self._repairs, self._replacements):
                result = pattern.sub(lambda _match, value=replacement: value, result)
            if result == previous:
                break
        return result

    def normalize(self, raw: str | None) -> str:
        """Return NFC text with garbles repaired, marks and whitespace collapsed."""

        if not raw:
            return ""
        result = _clean_characters(raw)
        for _ in range(_MAX_PASSES):
            previous = result
            result = self.repair(result)
            result = unicodedata.normalize("NFC", collapse_duplicate_marks(result))
            result = normalize_whitespace(result)
            if result == previous:
                break
        return result

    def normalize_document(self, raw: str | None) -> str:
        """Normalize each line separately so line structure survives."""

        if not raw:
            return ""
        lines = raw.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        return "\n".join(self.normalize(line) for line in lines).strip("\n")

    def normalize_markup(self, html: str | None) -> str:
        """Character cleanup, repairs and mark collapse without touching whitespace."""

        if not html:
            return ""
        result = _clean_characters(html)
        for _ in range(_MAX_PASSES):
            previous = result
            result = unicodedata.normalize("NFC", collapse_duplicate_marks(self.repair(result)))
            if result == previous:
                break
        return result


@lru_cache(maxsize=1)
def default_normalizer() -> TextNormalizer:
    return TextNormalizer()


def normalize(raw: str | None) -> str:
    """Normalize ``raw`` with the packaged repair table."""

    return default_normalizer().normalize(raw)


def normalize_document(raw: str | None) -> str:
    return default_normalizer().normalize_document(raw)


def normalize_markup(html: str | None) -> str:
    return default_normalizer().normalize_markup(html)


def strip_marks(text: str) -> str:
    """Drop combining marks (Thai vowels/tones, Latin accents) after NFKD."""

    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch) and unicodedata.category(ch) != "Mn")


def label_key(text: str | None) -> str:
    """Case-, diacritic- and tone-insensitive key used to compare captions."""

    if not text:
        return ""
    return _CAPTION_PUNCT_RE.sub("", strip_marks(normalize(text))).casefold()


def compact(text: str | None) -> str:
    """Normalized text with all whitespace removed, for containment checks."""

    return _WHITESPACE_RE.sub("", normalize(text))
