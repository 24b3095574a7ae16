from __future__ import annotations

import pytest

from taxodoc.ingestion.models import Paragraph
from taxodoc.ingestion.segmentation import segment, segment_markup
from taxodoc.ingestion.splitting import PLACEHOLDER_TITLE, is_marker, pick_title, split


def _entry_text(number: int) -> str:
    return "\n".join(
        [
            f"Scientific name: Species number{number}",
            "",
            f"Description line {number}.",
            "",
            f"Author of description: Curator {number}",
        ]
    )


@pytest.mark.parametrize("count", [1, 2, 5])
def test_split_yields_one_entry_per_author_marker(count: int) -> None:
    text = "\n\n".join(_entry_text(number) for number in range(count))

    entries = split(segment(text))

    assert len(entries) == count
    assert [entry.title for entry in entries] == [f"Species number{number}" for number in range(count)]


def test_split_without_marker_keeps_single_entry() -> None:
    entries = split(segment("First paragraph.\n\nSecond paragraph.\n\n- a\n- b"))

    assert len(entries) == 1
    assert len(entries[0].blocks) == 3
    assert entries[0].text == "First paragraph.\nSecond paragraph.\na b"


def test_split_flushes_trailing_blocks_after_last_marker() -> None:
    entries = split(segment(_entry_text(1) + "\n\nAppendix without attribution."))

    assert len(entries) == 2
    assert entries[1].text == "Appendix without attribution."


def test_marker_can_be_bold_run_inside_paragraph() -> None:
    blocks = segment_markup(
        "<p>Body text.</p><p><strong>ผู้เขียนคำอธิบาย สมชาย</strong> (2564)</p><p>Next body.</p>"
    )

    assert [is_marker(block) for block in blocks] == [False, True, False]
    assert len(split(blocks)) == 2


def test_pick_title_prefers_heading_over_label_value() -> None:
    blocks = segment_markup("<p><strong>วงศ์</strong> Lamiaceae</p><h2>สัก</h2>")

    assert pick_title(blocks) == "สัก"


def test_pick_title_ignores_blocks_after_synonyms_caption() -> None:
    blocks = segment("A plain opening line.\n\nSynonyms: Tectona theka Lour.")

    assert pick_title(blocks) == "A plain opening line."


def test_pick_title_truncates_plain_text_and_falls_back_to_placeholder() -> None:
    long_text = "ก" * 300

    assert pick_title([Paragraph(text=long_text, source=long_text, html="")]) == "ก" * 200
    assert pick_title([Paragraph(text=" ", source=" ", html="")]) == PLACEHOLDER_TITLE
