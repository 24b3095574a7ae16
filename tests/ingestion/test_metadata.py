from __future__ import annotations

from taxodoc.ingestion.metadata import extract
from taxodoc.ingestion.models import Entry
from taxodoc.ingestion.segmentation import segment, segment_markup
from taxodoc.ingestion.splitting import split

TEAK_HTML = (
    "<p><strong>สัก <em>Tectona grandis</em> L.f.</strong></p>"
    "<p>ไม้ต้นขนาดใหญ่ ผลัดใบ</p>"
    "<p><strong>วงศ์</strong> Lamiaceae</p>"
    "<p><strong>ชื่ออื่น ๆ</strong> เส่บายี้</p>"
    "<p><strong>ผู้เขียนคำอธิบาย</strong> สมชาย</p>"
)


def test_plain_text_labels_fill_metadata() -> None:
    text = "Scientific name: Tectona grandis\nFamily: Lamiaceae\n\nAuthor of description: Somchai"

    entries = split(segment(text))
    metadata = extract(entries[0])

    assert len(entries) == 1
    assert metadata.scientific == "Tectona grandis"
    assert metadata.genus == "Tectona"
    assert metadata.species == "grandis"
    assert metadata.family == "Lamiaceae"
    assert metadata.author == "Somchai"
    assert metadata.synonyms is None
    assert not metadata.synonyms_label_present


def test_markup_pass_reads_header_line_around_emphasis() -> None:
    entry = split(segment_markup(TEAK_HTML))[0]

    metadata = extract(entry)

    assert metadata.official == "สัก"
    assert metadata.scientific == "Tectona grandis"
    assert (metadata.genus, metadata.species) == ("Tectona", "grandis")
    assert metadata.authors_display == "L.f."
    assert metadata.family == "Lamiaceae"
    assert metadata.other_names == "เส่บายี้"
    assert metadata.author == "สมชาย"


def test_label_pass_does_not_override_markup_guess() -> None:
    html = TEAK_HTML.replace(
        "<p>ไม้ต้นขนาดใหญ่ ผลัดใบ</p>",
        "<p><strong>ชื่อวิทยาศาสตร์</strong> Tectona hamiltoniana Wall.</p>",
    )

    metadata = extract(split(segment_markup(html))[0])

    assert metadata.scientific == "Tectona grandis"


def test_synonyms_caption_without_value_is_flagged() -> None:
    entry = split(segment_markup("<p><strong>ชื่อพ้อง</strong></p><h3>หมายเหตุ</h3><p>ข้อความ</p>"))[0]

    metadata = extract(entry)

    assert metadata.synonyms is None
    assert metadata.synonyms_label_present


def test_regex_fallback_reads_captions_segmentation_missed() -> None:
    entry = Entry(
        title="broken",
        html=(
            "<div><p><b>Family:</b> Fabaceae</p>"
            "<p><strong>Synonyms: Butea frondosa Koen.</strong></p></div>"
        ),
        text="",
        blocks=[],
    )

    metadata = extract(entry)

    assert metadata.family == "Fabaceae"
    assert metadata.synonyms == "Butea frondosa Koen."
    assert metadata.synonyms_label_present


def test_extracted_values_are_normalized() -> None:
    entry = Entry(
        title="spaced",
        html="<p><strong>วงศ์</strong>   Lamia\u00a0ceae  </p>",
        text="",
        blocks=[],
    )

    assert extract(entry).family == "Lamia ceae"
