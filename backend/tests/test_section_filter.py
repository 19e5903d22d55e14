from studyguide.schemas.document import StructureNode
from studyguide.services.pipeline.section_filter import (
    is_structural_title,
    rejection_reason,
    select_study_sections,
    toc_line_ratio,
)


def test_structural_titles_are_recognized():
    for title in [
        "Índice",
        "Table of Contents",
        "Contents",
        "Bibliografía",
        "Bibliography",
        "Bibliografía recomendada",
        "Índice analítico",
        "Anexo III",
        "References",
        "Apéndice A",
        "Appendix B: Tables",
        "Glossary",
        "Agradecimientos",
        "List of Figures",
        "Chapter 9 Appendices",
        "About the Author",
    ]:
        assert is_structural_title(title), title


def test_content_titles_are_kept():
    for title in [
        "Introduction",
        "Indices and logarithms",
        "Referencing styles in science",
        "The contents of the cell",
        "Capítulo 2: Dinámica",
        "Índice de precios al consumidor",
        "Índice de Desarrollo Humano",
        "Referencias cruzadas y fórmulas",
        "Bibliographic databases",
        "Glossary building in NLP",
        "Glosario técnico del proyecto en la práctica",
        "Apéndices de la ley",
        "Anexos del tratado y su vigencia",
        "Annexation of Texas",
        "Agradecimientos y dedicatorias en la tesis",
    ]:
        assert not is_structural_title(title), title


def test_select_study_sections_keeps_order_and_levels():
    nodes = [
        StructureNode(id=1, title="Índice", level=1),
        StructureNode(id=2, title="Foundations", level=1),
        StructureNode(id=3, title="Sets", level=2),
        StructureNode(id=4, title="Finite sets", level=3),
        StructureNode(id=5, title="Bibliography", level=1),
        StructureNode(id=6, title="Functions", level=1),
    ]

    assert [n.id for n in select_study_sections(nodes)] == [2, 3, 6]


def test_rejection_reasons():
    prose = "A real paragraph of explanatory prose about the section topic. " * 3
    toc = "\n".join(f"Chapter {i} ........ {i * 7}" for i in range(1, 20))

    assert rejection_reason("tiny", 100) == "too-short"
    assert rejection_reason(toc, 100) == "toc-like"
    assert rejection_reason(prose, 100) is None
    assert toc_line_ratio(toc) == 1.0
    assert toc_line_ratio("") == 0.0
