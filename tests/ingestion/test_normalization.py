from __future__ import annotations

import json
from pathlib import Path

import pytest

from taxodoc.ingestion.normalization import (
    TextNormalizer,
    compact,
    label_key,
    load_garble_repairs,
    normalize,
    normalize_document,
    normalize_markup,
)

SAMPLES = [
    "",
    "  Tectona   grandis\u00a0L.f.  ",
    "ชื่\ufffdออ่\ufffdน ๆ  เส่บายี้",
    "ก่่่า\u200b\u200dดี",
    "ผู\ufffd้เขียนคำอธิบ\ufffdาย: สมชาย",
    "ชื่ออ่??น: ต้นสัก",
    "\ufeffFamily:\tLamiaceae\x07",
    "ก่\u200bู",
]


def test_normalize_cleans_spaces_zero_width_and_controls() -> None:
    assert normalize("a\u00a0\u200bb   c \x00") == "a b c"
    assert normalize(None) == ""


def test_normalize_keeps_unrepaired_replacement_marker_visible() -> None:
    assert normalize("Tectona\ufffdgrandis") == "Tectona?grandis"


@pytest.mark.parametrize("raw", SAMPLES)
def test_normalize_is_idempotent(raw: str) -> None:
    once = normalize(raw)
    assert normalize(once) == once


def test_normalize_collapses_repeated_thai_marks() -> None:
    assert normalize("ก่่่า") == "ก่า"
    assert normalize("ดีีี") == "ดี"


def test_normalize_repairs_known_garbled_captions() -> None:
    assert normalize("ชื่\ufffdออ่\ufffdน") == "ชื่ออื่น"
    assert normalize("ผู\ufffd้เขียนคำอธิบ\ufffdาย") == "ผู้เขียนคำอธิบาย"
    assert normalize("ไม้\ufffdมี") == "ไม่มี"


def test_normalize_regex_repair_handles_dropped_vowel_run() -> None:
    assert normalize("ชื่ออ่??น: ต้นสัก") == "ชื่ออื่น: ต้นสัก"
    assert normalize("ชื่ออ่น ๆ") == "ชื่ออื่น ๆ"


def test_normalize_document_preserves_line_structure() -> None:
    raw = "  Scientific name:  Tectona grandis \r\n\r\nFamily:\u00a0Lamiaceae\n"
    assert normalize_document(raw) == "Scientific name: Tectona grandis\n\nFamily: Lamiaceae"


def test_normalize_markup_repairs_text_without_touching_whitespace() -> None:
    html = "<p>\n  <strong>ชื่\ufffdอพ้\ufffdอง</strong>\n</p>"
    assert normalize_markup(html) == "<p>\n  <strong>ชื่อพ้อง</strong>\n</p>"


def test_custom_repair_table_is_loaded_from_json(tmp_path: Path) -> None:
    table = tmp_path / "repairs.json"
    table.write_text(
        json.dumps({"repairs": [{"pattern": "Tectona grandiss", "replacement": "Tectona grandis"}]}),
        encoding="utf-8",
    )

    normalizer = TextNormalizer.from_path(table)

    assert normalizer.normalize("Tectona   grandiss L.f.") == "Tectona grandis L.f."
    assert normalizer.normalize("ชื่\ufffdอ") == "ชื่?อ"


def test_repair_table_rejects_empty_patterns(tmp_path: Path) -> None:
    table = tmp_path / "broken.json"
    table.write_text(json.dumps([{"pattern": "", "replacement": "x"}]), encoding="utf-8")

    with pytest.raises(ValueError, match="empty pattern"):
        load_garble_repairs(table)


def test_label_key_ignores_case_tone_marks_and_punctuation() -> None:
    assert label_key("ชื่อพ้อง:") == label_key("ชื่อพอง")
    assert label_key(" Family : ") == "family"
    assert label_key(None) == ""


def test_compact_removes_all_whitespace() -> None:
    assert compact(" Tectona \n grandis ") == "Tectonagrandis"


def test_normalize_reorders_marks_left_adjacent_by_zero_width_removal() -> None:
    result = normalize("ก่\u200bู")

    assert result == "กู่"
    assert normalize(result) == result
