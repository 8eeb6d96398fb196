import pytest

from core.enums import ALL_ENDPOINTS, QueryType, StructuredEndpoint
from services.classifier import (
    classify_query,
    extract_entities,
    extract_search_terms,
    extract_spell_name,
)


@pytest.mark.parametrize(
    "query, room_id",
    [
        ("What is room A12?", "A12"),
        ("Tell me about b7", "B7"),
        ("What's in room C-105?", "C105"),
        ("d 42 has a secret door", "D42"),
    ],
)
def test_room_id_routes_hybrid_to_rooms(query, room_id):
    result = classify_query(query)

    assert result.entities.room_id == room_id
    assert result.entities.region == room_id[0]
    assert result.type == QueryType.HYBRID
    assert result.confidence == 0.9
    assert result.routing.structured_endpoints == (StructuredEndpoint.ROOMS,)
    assert result.routing.query_vector_backend
    assert result.routing.query_structured_backend


def test_region_without_room_routes_to_rooms():
    result = classify_query("Give me an overview of region B")

    assert result.entities.room_id is None
    assert result.entities.region == "B"
    assert result.type == QueryType.HYBRID
    assert result.confidence == 0.8
    assert result.routing.structured_endpoints == (StructuredEndpoint.ROOMS,)


def test_structured_confidence_grows_with_keywords_and_is_capped():
    queries = [
        "list all",
        "list all spells",
        "list all spells and count them",
        "find and list all spells, count them by school",
    ]
    results = [classify_query(q) for q in queries]

    assert all(r.type == QueryType.STRUCTURED for r in results)
    confidences = [r.confidence for r in results]
    assert confidences == sorted(confidences)
    assert confidences[0] == 0.8
    assert confidences[-1] == 0.95
    assert all(c <= 0.95 for c in confidences)


def test_structured_without_categories_defaults_to_spells_and_monsters():
    result = classify_query("list all")

    assert result.routing.structured_endpoints == (
        StructuredEndpoint.SPELLS,
        StructuredEndpoint.MONSTERS,
    )


def test_level_spell_listing_is_structured():
    result = classify_query("List all level 3 wizard spells")

    assert result.type == QueryType.STRUCTURED
    assert result.confidence == 0.95
    assert result.entities.level == 3
    assert result.entities.room_id is None
    assert result.routing.structured_endpoints == (StructuredEndpoint.SPELLS,)
    assert "list" in result.reasoning


def test_rules_question_is_semantic_with_all_endpoints():
    result = classify_query("How does concentration work?")

    assert result.type == QueryType.SEMANTIC
    # "how does" and "how do" both match
    assert result.confidence == 0.8
    assert result.routing.structured_endpoints == ALL_ENDPOINTS
    assert result.entities.room_id is None
    assert result.entities.region is None
    assert result.entities.level is None
    assert result.entities.search_terms == "concentration"


def test_no_signals_falls_back_to_semantic():
    result = classify_query("Grimlock ambush tactics")

    assert result.type == QueryType.SEMANTIC
    assert result.confidence == 0.6
    assert result.routing.structured_endpoints == ALL_ENDPOINTS
    assert result.reasoning


def test_mixed_signals_are_hybrid():
    result = classify_query("Explain how many spells a wizard can prepare")

    assert result.type == QueryType.HYBRID
    assert result.confidence == 0.7
    assert result.routing.structured_endpoints == (StructuredEndpoint.SPELLS,)


@pytest.mark.parametrize(
    "query",
    [
        "What is room A12?",
        "How does concentration work?",
        "List all level 3 wizard spells",
        "Grimlock ambush tactics",
        "",
    ],
)
def test_every_classification_queries_both_backends(query):
    result = classify_query(query)

    assert result.routing.query_vector_backend
    assert result.routing.query_structured_backend
    assert result.routing.structured_endpoints
    assert 0.0 <= result.confidence <= 1.0
    assert result.reasoning


def test_entities_level_and_challenge_rating():
    assert extract_entities("Which 3rd level spells heal?").level == 3
    assert extract_entities("Find all monsters of cr 1/2").cr == "1/2"
    assert extract_entities("creatures with challenge rating 5").cr == "5"


def test_lowercase_room_sets_region():
    entities = extract_entities("Who lives in a12")

    assert entities.room_id == "A12"
    assert entities.region == "A"


def test_spell_name_from_cast_phrase():
    assert extract_spell_name("How do I cast Fireball?") == "Fireball"


def test_spell_name_heuristic_matches_plain_prose():
    # Known limitation of the name heuristics
    assert extract_spell_name("What spell should I prepare").lower() == "what"


@pytest.mark.parametrize(
    "query",
    [
        "What is the Fireball spell?",
        "Tell me about the ancient red dragon!",
        "What is the?",
        "goblin",
    ],
)
def test_search_terms_are_idempotent_and_non_empty(query):
    once = extract_search_terms(query)

    assert once
    assert extract_search_terms(once) == once


def test_search_terms_drop_stop_words_and_punctuation():
    assert extract_search_terms("What is the Fireball spell?") == "fireball"


def test_search_terms_fall_back_to_query():
    assert extract_search_terms("What is the?") == "What is the?"
