"""Split a document's block sequence into per-item entries.

Source documents concatenate many catalog items and close each one with an
"author of description" attribution, so that attribution is the only
boundary available: the group being accumulated is flushed right after it.
"""

from __future__ import annotations

import logging

from taxodoc.ingestion.models import Block, Entry, Label, Paragraph
from taxodoc.ingestion.segmentation import render_blocks
from taxodoc.ingestion.vocabulary import AUTHOR_FIELD, SYNONYMS_FIELD, LabelVocabulary, default_vocabulary

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 200
PLACEHOLDER_TITLE = "topic"


def is_marker(block: Block, vocabulary: LabelVocabulary | None = None) -> bool:
    """Return True when ``block`` closes the entry being accumulated."""

    vocab = vocabulary or default_vocabulary()
    if isinstance(block, Label):
        return block.field == AUTHOR_FIELD and bool(block.value.strip())
    return any(vocab.is_marker(run) for run in (block.strong, block.emphasis) if run)


def _is_synonyms_caption(block: Block, vocabulary: LabelVocabulary) -> bool:
    if isinstance(block, Label):
        return block.field == SYNONYMS_FIELD
    if block.strong:
        label = vocabulary.match_caption(block.strong)
        return label is not None and label.field == SYNONYMS_FIELD
    return False


def pick_title(blocks: list[Block], vocabulary: LabelVocabulary | None = None) -> str:
    """Heading, then first emphasized run or label value, then leading text."""

    vocab = vocabulary or default_vocabulary()
    cut = next((i for i, block in enumerate(blocks) if _is_synonyms_caption(block, vocab)), None)
    scan = blocks[:cut] if cut is not None else blocks

    for block in scan:
        if isinstance(block, Paragraph) and block.heading is not None and block.text.strip():
            return block.text.strip()[:TITLE_MAX_CHARS]

    for block in scan:
        if isinstance(block, Label) and block.value.strip():
            return block.value.strip()[:TITLE_MAX_CHARS]
        run = block.strong or block.emphasis
        if run and run.strip():
            return run.strip()[:TITLE_MAX_CHARS]

    for block in scan or blocks:
        if block.text.strip():
            return block.text.strip()[:TITLE_MAX_CHARS]

    return PLACEHOLDER_TITLE


def _build_entry(group: list[Block], vocabulary: LabelVocabulary) -> Entry:
    return Entry(
        title=pick_title(group, vocabulary),
        html=render_blocks(group),
        text="\n".join(block.text for block in group if block.text.strip()),
        blocks=list(group),
    )


def split(blocks: list[Block], vocabulary: LabelVocabulary | None = None) -> list[Entry]:
    vocab = vocabulary or default_vocabulary()
    groups: list[list[Block]] = []
    current: list[Block] = []
    for block in blocks:
        current.append(block)
        if is_marker(block, vocab):
            groups.append(current)
            current = []
    if current:
        groups.append(current)

    if len(groups) > 1:
        logger.debug("Split %d blocks into %d entries", len(blocks), len(groups))
    return [_build_entry(group, vocab) for group in groups]
