from studyguide.schemas.document import DocumentText, Page, StructureNode
from studyguide.services.locator import section_locator
from studyguide.services.locator.section_locator import find_title, locate_section
from studyguide.services.text.normalizer import build_normalized_text


def _paged_document(total: int) -> DocumentText:
    pages = [Page(page_number=n, text=f"Page {n} body. " * 12) for n in range(1, total + 1)]
    return DocumentText(pages=pages)


def _single_page_document(text: str) -> DocumentText:
    return DocumentText(pages=[Page(page_number=1, text=text)])


BODY = "This paragraph explains the topic in enough words to be useful for a reader. " * 3


def test_explicit_page_range_is_high_confidence():
    doc = _paged_document(40)
    nodes = [
        StructureNode(id=1, title="Chapter One", level=1, page_start=1, page_end=11),
        StructureNode(id=2, title="Chapter Two", level=1, page_start=12, page_end=20),
    ]

    result = locate_section(doc, nodes, 2)

    assert result.confidence == "high"
    assert result.text == "\n\n".join(p.text for p in doc.pages[11:20]).strip()
    assert result.text.startswith("Page 12 body.")


def test_page_range_ends_before_next_sibling():
    doc = _paged_document(40)
    nodes = [
        StructureNode(id="a", title="First", level=1, page_start=12),
        StructureNode(id="a.1", title="Nested", level=2, page_start=13),
        StructureNode(id="b", title="Second", level=1, page_start=15),
    ]

    result = locate_section(doc, nodes, "a")

    assert result.confidence == "high"
    assert result.text == "\n\n".join(p.text for p in doc.pages[11:14]).strip()


def test_page_range_gets_minimum_span_when_next_starts_same_page():
    doc = _paged_document(40)
    nodes = [
        StructureNode(id=1, title="First", level=1, page_start=10),
        StructureNode(id=2, title="Second", level=1, page_start=10),
    ]

    result = locate_section(doc, nodes, 1)

    assert result.text == "\n\n".join(p.text for p in doc.pages[9:14]).strip()


def test_page_range_is_clamped_to_document():
    doc = _paged_document(10)
    nodes = [StructureNode(id=1, title="Tail", level=1, page_start=8, page_end=99)]

    result = locate_section(doc, nodes, 1)

    assert result.text.endswith(doc.pages[-1].text.strip())


def test_exact_title_match_is_medium_and_stops_at_next_sibling():
    text = f"Preface text.\n\nIntroduction\n{BODY}\n\nMethods\n{BODY}"
    doc = _single_page_document(text)
    nodes = [
        StructureNode(id=1, title="Introduction", level=1),
        StructureNode(id=2, title="Methods", level=1),
    ]

    result = locate_section(doc, nodes, 1)

    assert result.confidence == "medium"
    assert result.text == f"Introduction\n{BODY}".strip()


def test_case_insensitive_title_match_is_medium():
    doc = _single_page_document(f"Notes\n\nSUMMARY OF RESULTS\n{BODY}")
    nodes = [StructureNode(id=1, title="Summary of Results", level=1)]

    result = locate_section(doc, nodes, 1)

    assert result.confidence == "medium"
    assert result.text.startswith("SUMMARY OF RESULTS")


def test_accent_insensitive_title_match_is_low():
    doc = _single_page_document(f"Prefacio\n\nINTRODUCCION\n{BODY}")
    nodes = [StructureNode(id=1, title="Introducción", level=1)]

    result = locate_section(doc, nodes, 1)

    assert result.confidence == "low"
    assert result.text.startswith("INTRODUCCION")


def test_keyword_title_match_finds_reworded_heading():
    text = f"Opening remarks\n3. Systems, linear\n{BODY}"
    normalized = build_normalized_text(text)

    hit = find_title(text, "Analysis of Linear Systems", normalized)

    assert hit is not None
    assert hit.confidence == "low"
    assert text[hit.index:].startswith("3. Systems, linear")


def test_keyword_search_reuses_the_normalized_lines(monkeypatch):
    text = "\n".join(f"Filler line number {i} with words" for i in range(500)) + f"\n3. Systems, linear\n{BODY}"
    normalized = build_normalized_text(text)
    calls = []
    real_normalize = section_locator.normalize

    def counting_normalize(value):
        calls.append(value)
        return real_normalize(value)

    monkeypatch.setattr(section_locator, "normalize", counting_normalize)

    hit = find_title(text, "Analysis of Linear Systems", normalized)

    assert text[hit.index:].startswith("3. Systems, linear")
    assert len(calls) <= 2


def test_proportional_fallback_when_titles_are_missing():
    pages = [Page(page_number=n, text=f"Lorem ipsum dolor sit amet {n}. " * 3) for n in range(1, 11)]
    doc = DocumentText(pages=pages)
    nodes = [
        StructureNode(id=1, title="Alpha Qwerty Zeta", level=1),
        StructureNode(id=2, title="Omega Yuiop Kappa", level=1),
    ]

    result = locate_section(doc, nodes, 2)

    assert result.confidence == "medium"
    assert result.text == "\n\n".join(p.text for p in pages[5:10]).strip()


def test_unknown_node_and_empty_document_never_raise():
    nodes = [StructureNode(id=1, title="Anything", level=1)]

    assert locate_section(_paged_document(3), nodes, 42).text == ""
    empty = locate_section(DocumentText(pages=[]), nodes, 1)
    assert empty.text == ""
    assert empty.confidence == "low"


def test_node_ids_compare_as_strings():
    doc = _paged_document(5)
    nodes = [StructureNode(id=3, title="Three", level=1, page_start=1, page_end=2)]

    assert locate_section(doc, nodes, "3").confidence == "high"
