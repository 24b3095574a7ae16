from __future__ import annotations

import json
from pathlib import Path

import pytest

from taxodoc.ingestion.vocabulary import LabelVocabulary, default_vocabulary, load_label_vocabulary


def test_english_captions_require_a_colon() -> None:
    vocabulary = default_vocabulary()

    match = vocabulary.match_line("Scientific name: Tectona grandis")

    assert match is not None
    assert match.field == "scientific"
    assert match.value == "Tectona grandis"
    assert vocabulary.match_line("Family members are diverse") is None


def test_thai_captions_match_without_separator() -> None:
    vocabulary = default_vocabulary()

    family = vocabulary.match_line("วงศ์ Lamiaceae")
    author = vocabulary.match_line("ผู้เขียนคำอธิบาย สมชาย ใจดี")
    other_names = vocabulary.match_line("ชื่ออื่น ๆ เส่บายี้")

    assert family is not None and (family.field, family.value) == ("family", "Lamiaceae")
    assert author is not None and (author.field, author.value) == ("author", "สมชาย ใจดี")
    assert other_names is not None and (other_names.field, other_names.value) == ("other_names", "เส่บายี้")
    assert vocabulary.match_line("วงศ์ไม้สัก") is None


def test_match_caption_resolves_bold_runs_without_colon() -> None:
    vocabulary = default_vocabulary()

    synonyms = vocabulary.match_caption("Synonyms")
    thai = vocabulary.match_caption("ชื่อพ้อง")

    assert synonyms is not None and synonyms.field == "synonyms"
    assert thai is not None and thai.field == "synonyms"
    assert vocabulary.match_caption("Tectona grandis") is None


def test_author_marker_needs_a_value() -> None:
    vocabulary = default_vocabulary()

    assert vocabulary.is_marker("Author of description: Somchai")
    assert vocabulary.is_marker("ผู้เขียนคำอธิบาย สุดา")
    assert not vocabulary.is_marker("Author of description:")
    assert not vocabulary.is_marker("Family: Lamiaceae")


def test_search_finds_caption_anywhere_in_text() -> None:
    vocabulary = default_vocabulary()

    assert vocabulary.search("synonyms", "ไม้ต้น\nชื่อพ้อง\nหมายเหตุ")
    assert vocabulary.search("synonyms", "Notes. Synonyms: none recorded")
    assert not vocabulary.search("synonyms", "Synonymous usage is rare")


def test_custom_vocabulary_loads_from_json(tmp_path: Path) -> None:
    table = tmp_path / "labels.json"
    table.write_text(
        json.dumps({"labels": [{"field": "family", "name": "Familia", "colon_required": True}]}),
        encoding="utf-8",
    )

    vocabulary = LabelVocabulary.from_path(table)

    match = vocabulary.match_line("Familia: Fabaceae")
    assert match is not None and match.value == "Fabaceae"
    assert vocabulary.match_line("Family: Fabaceae") is None


def test_vocabulary_rejects_unknown_fields(tmp_path: Path) -> None:
    table = tmp_path / "labels.json"
    table.write_text(json.dumps([{"field": "habitat", "name": "Habitat"}]), encoding="utf-8")

    with pytest.raises(ValueError, match="unknown field 'habitat'"):
        load_label_vocabulary(table)
