from studyguide.schemas.document import Page
from studyguide.services.toc.toc_detector import (
    detect_toc_regions,
    extract_toc_text,
    get_sampled_text,
    score_toc_page,
)

PROSE = "Lorem ipsum dolor sit amet, consectetur adipiscing elit.\nSed do eiusmod tempor incididunt ut labore."


def _contents_page(header: str) -> str:
    lines = [f"Chapter {i} Something worth reading ........ {i * 10}" for i in range(1, 11)]
    return header + "\n" + "\n".join(lines)


def _document(toc_pages: dict, total: int = 40):
    return [Page(page_number=n, text=toc_pages.get(n, PROSE)) for n in range(1, total + 1)]


def test_contents_page_scores_high():
    score, page_type = score_toc_page(_contents_page("Table of Contents"))
    assert score == 90
    assert page_type == "general"


def test_analytical_header_sets_type():
    score, page_type = score_toc_page(_contents_page("Índice analítico"))
    assert score >= 30
    assert page_type == "analytical"


def test_prose_page_scores_zero():
    assert score_toc_page(PROSE) == (0, "unknown")
    assert score_toc_page("") == (0, "unknown")


def test_regions_group_close_pages_and_split_far_ones():
    pages = _document(
        {
            2: _contents_page("Contents"),
            3: _contents_page("Contents (cont.)"),
            31: _contents_page("Subject index"),
        }
    )

    detection = detect_toc_regions(pages)

    assert detection.has_toc is True
    assert [(r.type, r.start_page, r.end_page) for r in detection.regions] == [
        ("general", 2, 3),
        ("analytical", 31, 31),
    ]


def test_untyped_pages_join_typed_region():
    headerless = "\n".join(f"Section {i} of the book ........ {i}" for i in range(1, 12))
    pages = _document({5: _contents_page("Índice general"), 6: headerless})

    detection = detect_toc_regions(pages)

    assert len(detection.regions) == 1
    assert detection.regions[0].type == "general"
    assert detection.regions[0].end_page == 6


def test_extract_toc_text_prefers_analytical_region():
    pages = _document({2: _contents_page("Contents"), 31: _contents_page("Subject index")})
    detection = detect_toc_regions(pages)

    text = extract_toc_text(detection)

    assert text.startswith("Subject index")
    assert "Contents" in text


def test_extract_toc_text_respects_budget():
    pages = _document({2: _contents_page("Contents"), 3: _contents_page("Contents")})
    assert len(extract_toc_text(detect_toc_regions(pages), max_chars=50)) == 50


def test_no_toc_detected():
    detection = detect_toc_regions(_document({}))
    assert detection.has_toc is False
    assert extract_toc_text(detection) == ""


def test_sampled_text_with_index_block():
    pages = _document({})

    sample = get_sampled_text(pages, max_tokens=2000, toc_text="1. Intro ..... 3")

    assert sample.startswith("=== DOCUMENT INDEX ===\n1. Intro ..... 3\n=== END OF INDEX ===")
    assert "--- Page 1 ---" in sample
    assert len(sample) <= 8000


def test_sampled_text_without_index_starts_with_first_pages():
    pages = [Page(page_number=n, text=f"page {n} text") for n in range(1, 30)]

    sample = get_sampled_text(pages, max_tokens=8000)

    assert sample.startswith("page 1 text\n\npage 2 text\n\npage 3 text\n\npage 4 text\n\npage 5 text")
    assert "--- Page 6 ---" in sample
