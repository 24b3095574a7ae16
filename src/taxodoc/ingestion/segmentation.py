"""Classify normalized text or reader markup into paragraph, list and label blocks."""

from __future__ import annotations

from html import escape
import logging
import re

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag

from taxodoc.ingestion.models import Block, Label, ListBlock, Paragraph
from taxodoc.ingestion.normalization import TextNormalizer, default_normalizer
from taxodoc.ingestion.vocabulary import LabelMatch, LabelVocabulary, default_vocabulary

logger = logging.getLogger(__name__)

BULLET_RE = re.compile(r"^\s*[•\-–—▪●◦*]\s+(?P<item>\S.*)$")
ORDINAL_RE = re.compile(r"^\s*(?:\d+|[๐-๙]+)[.)]\s+(?P<item>\S.*)$")

UNPARSED_MARKER = "[unparsed]"
FALLBACK_PREFIX_CHARS = 500

_HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_CONTAINER_TAGS = {"body", "div", "section", "article", "main", "header", "footer"}
_SKIPPED_TAGS = {"script", "style", "head", "title", "meta", "link"}
_LEADING_SEPARATOR_RE = re.compile(r"^[\s:\-–—：]+")
_PAGE_NUMBER_RE = re.compile(r"^[\d๐-๙]{1,3}$")
_INDD_RE = re.compile(r"\.indd\b", re.IGNORECASE)
_GARBLED_RATIO = 0.7
_GARBLED_MIN_LENGTH = 5


def _list_item(line: str) -> tuple[bool, str] | None:
    match = BULLET_RE.match(line)
    if match is not None:
        return False, match.group("item").strip()
    match = ORDINAL_RE.match(line)
    if match is not None:
        return True, match.group("item").strip()
    return None


def _is_structural(line: str, vocabulary: LabelVocabulary) -> bool:
    return _list_item(line) is not None or vocabulary.match_line(line) is not None


def _render_paragraph(text: str) -> str:
    return f"<p>{escape(text)}</p>"


def _render_label(name: str, value: str) -> str:
    if value:
        return f"<p><strong>{escape(name)}</strong> {escape(value)}</p>"
    return f"<p><strong>{escape(name)}</strong></p>"


def _render_list(ordered: bool, items: list[str] | tuple[str, ...]) -> str:
    tag = "ol" if ordered else "ul"
    body = "".join(f"<li>{escape(item)}</li>" for item in items)
    return f"<{tag}>{body}</{tag}>"


def fallback_block(text: str | None) -> Paragraph:
    """Single low-confidence paragraph carrying a bounded prefix of ``text``."""

    prefix = (text or "").strip()[:FALLBACK_PREFIX_CHARS].strip()
    content = f"{UNPARSED_MARKER} {prefix}".strip()
    return Paragraph(
        text=content,
        source=prefix or UNPARSED_MARKER,
        html=_render_paragraph(content),
        unparsed=True,
    )


def segment(text: str | None, vocabulary: LabelVocabulary | None = None) -> list[Block]:
    """Segment normalized plain text line by line.

    Bullet and ordinal runs become list blocks, caption lines become labels
    (continuation lines are folded into the value) and the remaining runs of
    non-blank lines become paragraphs.
    """

    vocab = vocabulary or default_vocabulary()
    lines = (text or "").replace("\r\n", "\n").replace("\r", "\n").split("\n")
    blocks: list[Block] = []

    index = 0
    while index < len(lines):
        line = lines[index]
        if not line.strip():
            index += 1
            continue

        item = _list_item(line)
        if item is not None:
            ordered = item[0]
            items: list[str] = []
            source: list[str] = []
            while index < len(lines):
                current = _list_item(lines[index])
                if current is None or current[0] != ordered:
                    break
                items.append(current[1])
                source.append(lines[index].strip())
                index += 1
            blocks.append(
                ListBlock(
                    ordered=ordered,
                    items=tuple(items),
                    source="\n".join(source),
                    html=_render_list(ordered, items),
                )
            )
            continue

        run = [line.strip()]
        index += 1
        while index < len(lines) and lines[index].strip() and not _is_structural(lines[index], vocab):
            run.append(lines[index].strip())
            index += 1

        match = vocab.match_line(line)
        if match is not None:
            value = " ".join(part for part in [match.value, *run[1:]] if part)
            blocks.append(_make_label(match, value, "\n".join(run)))
        else:
            paragraph = " ".join(run)
            blocks.append(Paragraph(text=paragraph, source="\n".join(run), html=_render_paragraph(paragraph)))

    if not blocks:
        logger.info("Segmentation produced no blocks; emitting unparsed fallback")
        return [fallback_block(text)]
    return blocks


def _make_label(
    match: LabelMatch,
    value: str,
    source: str,
    html: str | None = None,
    strong: str | None = None,
    emphasis: str | None = None,
) -> Label:
    return Label(
        name=match.label.name,
        field=match.field,
        value=value,
        source=source,
        html=html if html is not None else _render_label(match.label.name, value),
        strong=strong,
        emphasis=emphasis,
    )


def _first_run(tag: Tag, names: tuple[str, ...], normalizer: TextNormalizer) -> str | None:
    found = tag.find(names)
    if found is None:
        return None
    text = normalizer.normalize(found.get_text(" "))
    return text or None


def _caption_label(
    text: str,
    strong: str | None,
    vocabulary: LabelVocabulary,
) -> LabelMatch | None:
    match = vocabulary.match_line(text)
    if match is not None:
        return match
    if not strong or not text.startswith(strong):
        return None
    label = vocabulary.match_caption(strong)
    if label is None:
        return None
    value = _LEADING_SEPARATOR_RE.sub("", text[len(strong):]).strip()
    return LabelMatch(label=label, caption=strong, value=value)


def _iter_nodes(root: Tag):
    for child in root.children:
        if isinstance(child, (Comment, Doctype)):
            continue
        if isinstance(child, NavigableString):
            if child.strip():
                yield child
            continue
        if not isinstance(child, Tag) or child.name in _SKIPPED_TAGS:
            continue
        if child.name in _CONTAINER_TAGS and child.find(["p", "ul", "ol", "table", *_HEADING_TAGS]) is not None:
            yield from _iter_nodes(child)
            continue
        yield child


def segment_markup(
    html: str | None,
    vocabulary: LabelVocabulary | None = None,
    normalizer: TextNormalizer | None = None,
) -> list[Block]:
    """Segment reader markup (DOCX via mammoth, uploaded HTML) node by node."""

    vocab = vocabulary or default_vocabulary()
    norm = normalizer or default_normalizer()
    if not html or not html.strip():
        return [fallback_block("")]

    soup = BeautifulSoup(html, "lxml")
    root = soup.body or soup
    nodes = list(_iter_nodes(root))
    blocks: list[Block] = []
    pending_items: list[str] = []
    pending_source: list[str] = []
    pending_ordered = False

    def flush_items() -> None:
        if pending_items:
            blocks.append(
                ListBlock(
                    ordered=pending_ordered,
                    items=tuple(pending_items),
                    source="\n".join(pending_source),
                    html=_render_list(pending_ordered, pending_items),
                )
            )
            pending_items.clear()
            pending_source.clear()

    index = 0
    while index < len(nodes):
        node = nodes[index]
        index += 1

        if isinstance(node, NavigableString):
            text = norm.normalize(str(node))
            flush_items()
            if text:
                blocks.append(Paragraph(text=text, source=text, html=_render_paragraph(text)))
            continue

        if node.name in ("ul", "ol"):
            flush_items()
            items = [norm.normalize(li.get_text(" ")) for li in node.find_all("li")]
            items = [item for item in items if item]
            if items:
                blocks.append(
                    ListBlock(ordered=node.name == "ol", items=tuple(items), source="\n".join(items), html=str(node))
                )
            continue

        text = norm.normalize(node.get_text(" "))
        if not text:
            continue
        strong = _first_run(node, ("strong", "b"), norm)
        emphasis = _first_run(node, ("em", "i"), norm)

        if node.name in _HEADING_TAGS:
            flush_items()
            blocks.append(
                Paragraph(
                    text=text,
                    source=text,
                    html=str(node),
                    heading=_HEADING_TAGS[node.name],
                    strong=strong,
                    emphasis=emphasis,
                )
            )
            continue

        item = _list_item(text)
        if item is not None:
            if pending_items and pending_ordered != item[0]:
                flush_items()
            pending_ordered = item[0]
            pending_items.append(item[1])
            pending_source.append(text)
            continue
        flush_items()

        match = _caption_label(text, strong, vocab)
        if match is not None:
            source = [text]
            html_parts = [str(node)]
            value = match.value
            if not value and index < len(nodes):
                follower = nodes[index]
                follower_text = (
                    norm.normalize(follower.get_text(" ") if isinstance(follower, Tag) else str(follower))
                )
                if (
                    follower_text
                    and not (isinstance(follower, Tag) and follower.name in (*_HEADING_TAGS, "ul", "ol"))
                    and not _is_structural(follower_text, vocab)
                    and not (
                        isinstance(follower, Tag)
                        and vocab.match_caption(_first_run(follower, ("strong", "b"), norm)) is not None
                    )
                ):
                    value = follower_text
                    source.append(follower_text)
                    html_parts.append(str(follower))
                    index += 1
            blocks.append(
                _make_label(
                    match,
                    value,
                    "\n".join(source),
                    html="".join(html_parts),
                    strong=strong,
                    emphasis=emphasis,
                )
            )
            continue

        blocks.append(Paragraph(text=text, source=text, html=str(node), strong=strong, emphasis=emphasis))

    flush_items()
    if not blocks:
        logger.info("Markup segmentation produced no blocks; emitting unparsed fallback")
        return [fallback_block(norm.normalize(soup.get_text(" ")))]
    return blocks


def render_blocks(blocks: list[Block]) -> str:
    return "\n".join(block.html for block in blocks)


def _is_layout_noise(block: Block) -> bool:
    if not isinstance(block, Paragraph) or block.unparsed or block.heading is not None:
        return False
    text = block.text.strip()
    if _INDD_RE.search(text):
        return True
    if _PAGE_NUMBER_RE.match(text):
        return True
    if len(text) > _GARBLED_MIN_LENGTH:
        questions = text.count("?")
        if questions > len(text) * _GARBLED_RATIO:
            return True
    return False


def drop_layout_noise(blocks: list[Block]) -> tuple[list[Block], int]:
    """Remove print-layout slug lines, bare page numbers and unreadable paragraphs."""

    kept = [block for block in blocks if not _is_layout_noise(block)]
    return kept, len(blocks) - len(kept)
