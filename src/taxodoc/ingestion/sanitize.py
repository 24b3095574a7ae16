"""Strip material already captured as metadata from an entry body."""

from __future__ import annotations

from html import unescape
import logging
import re

from bs4 import BeautifulSoup, Tag

from taxodoc.ingestion.models import Metadata, SanitizedContent
from taxodoc.ingestion.normalization import TextNormalizer, default_normalizer
from taxodoc.ingestion.vocabulary import LabelVocabulary, default_vocabulary

logger = logging.getLogger(__name__)

REMOVED_FIELDS = ("scientific", "family", "other_names", "synonyms")

_TAG_RE = re.compile(r"<[^>]+>")
_SPACE_RE = re.compile(r"\s+")
_SLUG_INVALID_RE = re.compile(r"[^0-9a-z\u0e00-\u0e7f]+")
_SLUG_FALLBACK = "entry"


def slugify(text: str | None, max_length: int = 120) -> str:
    """URL slug that keeps Thai letters and lowercases everything else."""

    normalized = default_normalizer().normalize(text).casefold()
    slug = _SLUG_INVALID_RE.sub("-", normalized).strip("-")
    slug = slug[:max_length].strip("-")
    return slug or _SLUG_FALLBACK


def html_to_text(html: str | None, normalizer: TextNormalizer | None = None) -> str:
    """Plain text of ``html`` with one line per block element."""

    if not html:
        return ""
    norm = normalizer or default_normalizer()
    raw = BeautifulSoup(html, "lxml").get_text("\n")
    return "\n".join(line for line in norm.normalize_document(raw).split("\n") if line)


def _compact(text: str, normalizer: TextNormalizer) -> str:
    return _SPACE_RE.sub("", normalizer.normalize(text))


def _top_level(body: Tag) -> list[Tag]:
    return [child for child in body.children if isinstance(child, Tag)]


def _find_header(body: Tag, metadata: Metadata, normalizer: TextNormalizer) -> Tag | None:
    scientific = _compact(metadata.scientific or "", normalizer)
    if scientific:
        for element in _top_level(body):
            emphasis = element if element.name in ("em", "i") else element.find(["em", "i"])
            if emphasis is None:
                continue
            emphasized = _compact(emphasis.get_text(" "), normalizer)
            whole = _compact(element.get_text(" "), normalizer)
            if emphasized and (emphasized in scientific or scientific in emphasized or scientific in whole):
                return element

    official = _compact(metadata.official or "", normalizer)
    if official:
        for element in _top_level(body):
            strong = element if element.name in ("strong", "b") else element.find(["strong", "b"])
            if strong is None:
                continue
            bold = _compact(strong.get_text(" "), normalizer)
            if bold and (official in bold or bold in official):
                return element
    return None


def _is_removed_caption(element: Tag, vocabulary: LabelVocabulary, normalizer: TextNormalizer) -> bool:
    strong = element.find(["strong", "b"])
    if strong is not None:
        label = vocabulary.match_caption(normalizer.normalize(strong.get_text(" ")))
        if label is not None:
            return label.field in REMOVED_FIELDS
    match = vocabulary.match_line(normalizer.normalize(element.get_text(" ")))
    return match is not None and match.field in REMOVED_FIELDS


def _sanitize_structural(
    html: str,
    metadata: Metadata,
    vocabulary: LabelVocabulary,
    normalizer: TextNormalizer,
) -> SanitizedContent:
    soup = BeautifulSoup(html, "lxml")
    body = soup.body
    if body is None:
        return SanitizedContent(html="", text="")

    header = _find_header(body, metadata, normalizer)
    if header is not None:
        header.decompose()

    for paragraph in body.find_all(["p", "li"]):
        if _is_removed_caption(paragraph, vocabulary, normalizer):
            paragraph.decompose()

    short_description = None
    for element in _top_level(body):
        if normalizer.normalize(element.get_text(" ")):
            short_description = str(element)
            element.decompose()
            break

    remainder = "".join(str(child) for child in body.contents).strip()
    return SanitizedContent(
        html=remainder,
        text=html_to_text(remainder, normalizer),
        short_description=short_description,
    )


def _sanitize_by_pattern(html: str, vocabulary: LabelVocabulary, normalizer: TextNormalizer) -> SanitizedContent:
    result = html
    for field_name in REMOVED_FIELDS:
        for label in vocabulary.patterns_for(field_name):
            regex = re.compile(
                rf"<p\b[^>]*>\s*<(strong|b)\b[^>]*>[^<]*?(?:{label.pattern})[\s\S]*?</\1>[\s\S]*?</p>",
                re.IGNORECASE,
            )
            result = regex.sub("", result)
    text = normalizer.normalize(unescape(_TAG_RE.sub(" ", result)))
    return SanitizedContent(html=result.strip(), text=text)


def sanitize(
    html: str | None,
    metadata: Metadata,
    vocabulary: LabelVocabulary | None = None,
    normalizer: TextNormalizer | None = None,
) -> SanitizedContent:
    """Remove the repeated header and captured captions; never raises."""

    vocab = vocabulary or default_vocabulary()
    norm = normalizer or default_normalizer()
    source = html or ""
    try:
        return _sanitize_structural(source, metadata, vocab, norm)
    except Exception:
        logger.warning("Structural sanitization failed; using pattern removal", exc_info=True)
    try:
        return _sanitize_by_pattern(source, vocab, norm)
    except Exception:
        logger.warning("Pattern sanitization failed; keeping entry body unmodified", exc_info=True)
    return SanitizedContent(html=source, text=norm.normalize(unescape(_TAG_RE.sub(" ", source))))
