"""Three-pass metadata extraction for a single entry."""

from __future__ import annotations

import logging
import re

from bs4 import BeautifulSoup, Tag

from taxodoc.ingestion.models import Block, Entry, Label, Metadata
from taxodoc.ingestion.normalization import TextNormalizer, default_normalizer
from taxodoc.ingestion.vocabulary import SYNONYMS_FIELD, LabelVocabulary, default_vocabulary

logger = logging.getLogger(__name__)

_THAI_ONLY_RE = re.compile(r"[^\u0E00-\u0E7F\s]")
_LEADING_SEPARATOR_RE = re.compile(r"^[\s:\-–—：]+")
_EMPHASIS_PREFERRED = ("scientific", "genus", "species", "family")
_REGEX_FALLBACK_FIELDS = ("family", "synonyms", "other_names", "author")


def _split_binomial(value: str) -> tuple[str | None, str | None]:
    tokens = value.split()
    genus = tokens[0] if tokens else None
    species = tokens[1] if len(tokens) > 1 else None
    return genus, species


def _fill_scientific(metadata: Metadata, value: str) -> None:
    if metadata.fill("scientific", value):
        genus, species = _split_binomial(metadata.scientific or "")
        metadata.fill("genus", genus)
        metadata.fill("species", species)


def _emphasis_hosts(soup: BeautifulSoup) -> list[Tag]:
    ordered: list[Tag] = list(soup.select("strong em, b em, strong i, b i"))
    ordered.extend(tag for tag in soup.find_all(["em", "i"]) if tag not in ordered)
    return ordered


def _markup_pass(
    entry: Entry,
    metadata: Metadata,
    vocabulary: LabelVocabulary,
    normalizer: TextNormalizer,
) -> None:
    soup = BeautifulSoup(entry.html, "lxml")
    for emphasis in _emphasis_hosts(soup):
        host = emphasis.parent
        if host is None:
            continue
        if host.name in ("strong", "b") and host.parent is not None and host.parent.name not in ("body", "html"):
            host = host.parent
        emphasized = normalizer.normalize(emphasis.get_text(" "))
        if not emphasized:
            continue
        host_text = normalizer.normalize(host.get_text(" "))
        if vocabulary.match_line(host_text) is not None or vocabulary.match_caption(host_text) is not None:
            # captioned lines belong to the label pass
            continue

        _fill_scientific(metadata, emphasized)
        before, _, after = host_text.partition(emphasized)
        official = normalizer.normalize(_THAI_ONLY_RE.sub("", before))
        metadata.fill("official", official)
        metadata.fill("authors_display", normalizer.normalize(after))
        return


def _caption_value(block: Block, vocabulary: LabelVocabulary) -> tuple[str, str] | None:
    if isinstance(block, Label):
        return block.field, block.value
    if not block.strong:
        return None
    label = vocabulary.match_caption(block.strong)
    if label is None:
        return None
    text = block.text
    value = text[len(block.strong):] if text.startswith(block.strong) else text.replace(block.strong, "", 1)
    return label.field, _LEADING_SEPARATOR_RE.sub("", value).strip()


def _label_pass(
    entry: Entry,
    metadata: Metadata,
    vocabulary: LabelVocabulary,
    normalizer: TextNormalizer,
) -> None:
    for block in entry.blocks:
        captioned = _caption_value(block, vocabulary)
        if captioned is None:
            continue
        field_name, value = captioned
        if field_name == SYNONYMS_FIELD:
            metadata.synonyms_label_present = True
        value = normalizer.normalize(value)
        if field_name in _EMPHASIS_PREFERRED and block.emphasis and block.emphasis in value:
            value = block.emphasis
        if not value:
            continue
        if field_name == "scientific":
            _fill_scientific(metadata, value)
        else:
            metadata.fill(field_name, value)


def _fragment_text(fragment: str, normalizer: TextNormalizer) -> str:
    return normalizer.normalize(BeautifulSoup(fragment, "lxml").get_text(" "))


def _caption_regexes(pattern: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    flags = re.IGNORECASE | re.DOTALL
    after = re.compile(
        rf"<(p|li)\b[^>]*>\s*<(strong|b)\b[^>]*>\s*(?:{pattern})\s*[:：\-–—]?\s*</\2>(?P<value>.*?)</\1>",
        flags,
    )
    inside = re.compile(
        rf"<(p|li)\b[^>]*>\s*<(strong|b)\b[^>]*>\s*(?:{pattern})\s*[:：\-–—]?\s+(?P<value>.*?)\s*</\2>\s*</\1>",
        flags,
    )
    return after, inside


def _regex_pass(
    entry: Entry,
    metadata: Metadata,
    vocabulary: LabelVocabulary,
    normalizer: TextNormalizer,
) -> None:
    markup = normalizer.normalize_markup(entry.html)
    for field_name in _REGEX_FALLBACK_FIELDS:
        for label in vocabulary.patterns_for(field_name):
            after, inside = _caption_regexes(label.pattern)
            if field_name == SYNONYMS_FIELD and (after.search(markup) or inside.search(markup)):
                metadata.synonyms_label_present = True
            if not metadata.is_empty(field_name):
                continue
            for regex in (after, inside):
                match = regex.search(markup)
                if match is None:
                    continue
                value = _fragment_text(match.group("value"), normalizer)
                if metadata.fill(field_name, value):
                    logger.debug("Filled %s from markup fallback", field_name)
                    break


def extract(
    entry: Entry,
    vocabulary: LabelVocabulary | None = None,
    normalizer: TextNormalizer | None = None,
) -> Metadata:
    """Best-effort metadata for ``entry``; missing fields stay ``None``."""

    vocab = vocabulary or default_vocabulary()
    norm = normalizer or default_normalizer()
    metadata = Metadata()

    if entry.html:
        _markup_pass(entry, metadata, vocab, norm)
    _label_pass(entry, metadata, vocab, norm)
    if entry.html:
        _regex_pass(entry, metadata, vocab, norm)

    if not metadata.synonyms_label_present and vocab.search(SYNONYMS_FIELD, norm.normalize(entry.text)):
        metadata.synonyms_label_present = True
    return metadata
