import pytest

from studyguide.schemas.topic import Topic
from studyguide.services.study.connections import (
    enrich_connections,
    find_related_topic,
    parse_connection_target,
    similarity,
)


def _topic(topic_id, title, connections=()):
    return Topic(id=topic_id, section_title=title, summary="s", connections=list(connections))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Related to 'Supply and Demand': both describe prices", "Supply and Demand"),
        ('Builds on "Newton\'s Laws" from earlier', "Newton's Laws"),
        ("Compare with “Market Equilibrium” later on", "Market Equilibrium"),
        ("Connects with Thermodynamics: energy is conserved", "Thermodynamics"),
        ("Se relaciona con la oferta monetaria", "la oferta monetaria"),
        ("See the chapter on Cell Division.", "Cell Division"),
        ("Ver capítulo Fotosíntesis; misma idea", "Fotosíntesis"),
    ],
)
def test_parse_connection_target(text, expected):
    assert parse_connection_target(text) == expected


def test_parse_connection_target_without_a_name():
    assert parse_connection_target("") is None
    assert parse_connection_target("This idea appears everywhere") is None
    # too short after "with"
    assert parse_connection_target("Goes with it") is None


def test_similarity():
    assert similarity("motion", "motion") == 1.0
    assert similarity("", "motion") == 0.0
    assert similarity("forces", "forces and motion") == pytest.approx(6 / 17)
    assert similarity("laws of motion", "motion laws summary") == pytest.approx(2 / 3)
    assert similarity("an ox", "an ox too") == pytest.approx(5 / 9)
    assert similarity("a b", "c d") == 0.0


def test_find_related_topic_picks_best_title():
    topics = [_topic(1, "Newton's Laws of Motion"), _topic(2, "Energy"), _topic(3, "Laws of Thermodynamics")]

    related, score = find_related_topic("Newton's laws", topics)

    assert related.id == 1
    assert score > 0.3
    assert find_related_topic("Organic chemistry", topics) is None
    assert find_related_topic("ab", topics) is None


def test_enrich_connections_never_points_back_to_itself():
    topics = [
        _topic(1, "Energy", ["Related to 'Energy' in general", "Builds on 'Work and Power'", "Loosely tied to history"]),
        _topic(2, "Work and Power"),
    ]

    enriched = enrich_connections(topics[0], topics)

    assert [(c.target_topic_id, c.target_title) for c in enriched] == [
        (None, None),
        (2, "Work and Power"),
        (None, None),
    ]
    assert enriched[2].text == "Loosely tied to history"
