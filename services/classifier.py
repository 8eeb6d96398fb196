# services/classifier.py
"""
Query classifier: maps a raw chat query to a routing decision.

Classification types (analytics/debugging only):
- structured: lists, lookups, entity queries ("list", "all", "find", ...)
- semantic:   explanations, lore, rules ("how does", "explain", ...)
- hybrid:     room/region lookups, or mixed signals

Every branch routes to BOTH the semantic-search and the structured-data
backend. The label only narrows which structured endpoints are queried.
The room/region short-circuits restrict structured lookups to `rooms`.

Pure function, no I/O. Name heuristics are best-effort and match ordinary
prose too ("what spell should I prepare" -> spell name "what").
"""
import re
from typing import List, Optional, Tuple

from core.domain import Classification, ExtractedEntities, RoutingDirective
from core.enums import ALL_ENDPOINTS, QueryType, StructuredEndpoint

# ============= Keyword tables =============

STRUCTURED_KEYWORDS: Tuple[str, ...] = (
    "list",
    "all",
    "how many",
    "count",
    "level",
    "cr",
    "challenge rating",
    "type",
    "category",
    "school",
    "class",
    "find",
    "show me",
    "what are",
    "which",
)

SEMANTIC_KEYWORDS: Tuple[str, ...] = (
    "how does",
    "how do",
    "what is",
    "what are",
    "explain",
    "describe",
    "tell me about",
    "what happens",
    "what's",
    "overview",
    "guide",
    "rules for",
    "mechanics",
    "strategy",
    "lore",
    "story",
    "background",
    "history",
)

# Vocabulary mapping to structured-data tables
ENTITY_KEYWORDS: Tuple[Tuple[StructuredEndpoint, Tuple[str, ...]], ...] = (
    (StructuredEndpoint.SPELLS,
     ("spell", "spells", "cantrip", "cantrips", "ritual", "rituals", "cast", "casting")),
    (StructuredEndpoint.MONSTERS,
     ("monster", "monsters", "creature", "creatures", "enemy", "enemies", "cr", "challenge rating")),
    (StructuredEndpoint.EQUIPMENT,
     ("equipment", "item", "items", "weapon", "weapons", "armor", "armour", "tool", "tools", "gear")),
    (StructuredEndpoint.ROOMS,
     ("room", "rooms", "chamber", "chambers", "area", "corridor", "hallway")),
)

STOP_WORDS = frozenset((
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could", "should",
    "what", "which", "who", "whom", "how", "when", "where", "why",
    "i", "me", "my", "we", "our", "you", "your", "he", "she", "it", "they", "them",
    "this", "that", "these", "those", "am", "of", "for", "to", "in", "on", "at",
    "by", "with", "about", "against", "between", "into", "through", "during",
    "before", "after", "above", "below", "from", "up", "down", "out", "off",
    "over", "under", "again", "further", "then", "once", "here", "there",
    "all", "each", "few", "more", "most", "other", "some", "such",
    "no", "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    "can", "just", "now", "also", "get", "tell", "work", "use", "make",
    # domain category words: we want the subject, not the table
    "spell", "spells", "monster", "monsters", "creature", "creatures",
    "stats", "stat", "statistics", "abilities", "ability", "attacks", "attack",
    "describe", "explain", "show", "find", "look", "looking", "need",
    "room", "rooms", "region", "area", "level", "class", "classes",
    "equipment", "item", "items", "weapon", "weapons", "armor",
    "traps", "trap", "treasure", "loot",
))

# ============= Patterns =============

ROOM_ID_PATTERN = re.compile(r"\b([A-D])[-\s]?(\d{1,3})\b", re.IGNORECASE)
REGION_PATTERN = re.compile(r"\b(region|area)\s*([A-D])\b", re.IGNORECASE)
SPELL_LEVEL_PATTERN = re.compile(r"\blevel\s*(\d)\b|\b(\d)(?:st|nd|rd|th)?\s*level\b", re.IGNORECASE)
CR_PATTERN = re.compile(
    r"\bcr\s*(\d+(?:/\d+)?)\b|\bchallenge\s*rating\s*(\d+(?:/\d+)?)\b", re.IGNORECASE
)

SPELL_NAME_PATTERNS = (
    re.compile(r"cast(?:ing)?\s+(?:the\s+)?[\"']?([a-z\s]+)[\"']?\s*(?:spell)?", re.IGNORECASE),
    re.compile(r"(?:the\s+)?[\"']?([a-z\s]+)[\"']?\s+spell", re.IGNORECASE),
    re.compile(r"spell\s+(?:called\s+)?[\"']?([a-z\s]+)[\"']?", re.IGNORECASE),
)

MONSTER_NAME_PATTERNS = (
    re.compile(r"(?:fight(?:ing)?|encounter(?:ing)?|facing)\s+(?:a\s+)?[\"']?([a-z\s]+)[\"']?", re.IGNORECASE),
    re.compile(r"[\"']?([a-z\s]+)[\"']?\s+(?:monster|creature|enemy)", re.IGNORECASE),
    re.compile(r"(?:about|the)\s+[\"']?([a-z\s]+)[\"']?\s+(?:stats?|abilities|attacks)", re.IGNORECASE),
)

_PUNCTUATION = re.compile(r"[^\w\s]")

ROOM_CONFIDENCE = 0.9
REGION_CONFIDENCE = 0.8
MIXED_CONFIDENCE = 0.7
DEFAULT_STRUCTURED_ENDPOINTS = (StructuredEndpoint.SPELLS, StructuredEndpoint.MONSTERS)


# ============= Entity extraction =============

def _first_group(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    captured = match.group(1) or ""
    captured = captured.strip()
    return captured or None


def extract_spell_name(query: str) -> Optional[str]:
    """Extract a potential spell name from the query."""
    for pattern in SPELL_NAME_PATTERNS:
        name = _first_group(pattern, query)
        if name:
            return name
    return None


def extract_monster_name(query: str) -> Optional[str]:
    """Extract a potential monster/creature name from the query."""
    for pattern in MONSTER_NAME_PATTERNS:
        name = _first_group(pattern, query)
        if name:
            return name
    return None


def extract_search_terms(query: str) -> str:
    """
    Strip punctuation and stop words so structured lookups match on the subject.

    Falls back to the original query when nothing survives filtering.
    """
    tokens = _PUNCTUATION.sub(" ", query.lower()).split()
    kept = [t for t in tokens if len(t) > 1 and t not in STOP_WORDS]
    return " ".join(kept) or query


def extract_entities(query: str) -> ExtractedEntities:
    room_id = region = cr = None
    level = None

    room_match = ROOM_ID_PATTERN.search(query)
    if room_match:
        region = room_match.group(1).upper()
        room_id = f"{region}{room_match.group(2)}"

    region_match = REGION_PATTERN.search(query)
    if region_match:
        region = region_match.group(2).upper()

    level_match = SPELL_LEVEL_PATTERN.search(query)
    if level_match:
        level = int(level_match.group(1) or level_match.group(2))

    cr_match = CR_PATTERN.search(query)
    if cr_match:
        cr = cr_match.group(1) or cr_match.group(2)

    return ExtractedEntities(
        room_id=room_id,
        region=region,
        spell_name=extract_spell_name(query),
        monster_name=extract_monster_name(query),
        level=level,
        cr=cr,
        search_terms=extract_search_terms(query),
    )


# ============= Scoring =============

def _score_structured(lower_query: str) -> Tuple[float, List[str], List[StructuredEndpoint]]:
    matched = [kw for kw in STRUCTURED_KEYWORDS if kw in lower_query]
    detected = [
        endpoint for endpoint, keywords in ENTITY_KEYWORDS
        if any(kw in lower_query for kw in keywords)
    ]
    return len(matched) + 0.5 * len(detected), matched, detected


def _score_semantic(lower_query: str) -> Tuple[float, List[str]]:
    matched = [kw for kw in SEMANTIC_KEYWORDS if kw in lower_query]
    return float(len(matched)), matched


def _routing(endpoints) -> RoutingDirective:
    return RoutingDirective(
        query_vector_backend=True,
        query_structured_backend=True,
        structured_endpoints=tuple(StructuredEndpoint.ordered(endpoints)),
    )


# ============= Classifier =============

def classify_query(query: str) -> Classification:
    """
    Classify a user query and decide which backends and endpoints to hit.

    Rules, first match wins:
      1. room id present           -> hybrid, 0.9, rooms only
      2. region present (no room)  -> hybrid, 0.8, rooms only
      3. structured > semantic and structured >= 2 -> structured
      4. both scores positive      -> hybrid, 0.7
      5. otherwise                 -> semantic
    """
    lower_query = query.lower().strip()
    entities = extract_entities(query)

    structured_score, structured_matches, detected = _score_structured(lower_query)
    semantic_score, semantic_matches = _score_semantic(lower_query)

    if entities.room_id:
        return Classification(
            type=QueryType.HYBRID,
            confidence=ROOM_CONFIDENCE,
            routing=_routing([StructuredEndpoint.ROOMS]),
            entities=entities,
            reasoning=(
                f"Query mentions specific room {entities.room_id}, routing to both RAG "
                f"for context and SQLite for structured room data."
            ),
        )

    if entities.region:
        return Classification(
            type=QueryType.HYBRID,
            confidence=REGION_CONFIDENCE,
            routing=_routing([StructuredEndpoint.ROOMS]),
            entities=entities,
            reasoning=(
                f"Query mentions Region {entities.region}, routing to both RAG for lore "
                f"and SQLite for room listings."
            ),
        )

    detected_label = ", ".join(e.value for e in detected)

    if structured_score > semantic_score and structured_score >= 2:
        return Classification(
            type=QueryType.STRUCTURED,
            confidence=round(min(0.95, 0.6 + structured_score * 0.1), 2),
            routing=_routing(detected or DEFAULT_STRUCTURED_ENDPOINTS),
            entities=entities,
            reasoning=(
                f"Structured query detected (keywords: {', '.join(structured_matches)}). "
                f"Routing to both RAG and SQLite for {detected_label or 'entity lookup'}."
            ),
        )

    if structured_score > 0 and semantic_score > 0:
        return Classification(
            type=QueryType.HYBRID,
            confidence=MIXED_CONFIDENCE,
            routing=_routing(detected or ALL_ENDPOINTS),
            entities=entities,
            reasoning=(
                f"Mixed query type (structured: {', '.join(structured_matches) or detected_label}, "
                f"semantic: {', '.join(semantic_matches)}). "
                f"Routing to both sources ({detected_label or 'all endpoints'})."
            ),
        )

    if semantic_score > 0:
        confidence = round(min(0.9, 0.6 + semantic_score * 0.1), 2)
        reasoning = (
            f"Semantic query detected (keywords: {', '.join(semantic_matches)}). "
            f"Routing to both RAG and SQLite (all endpoints) for comprehensive results."
        )
    else:
        confidence = 0.6
        reasoning = (
            "No strong signals detected, routing to both RAG and SQLite "
            "(all endpoints) for comprehensive context."
        )

    return Classification(
        type=QueryType.SEMANTIC,
        confidence=confidence,
        routing=_routing(ALL_ENDPOINTS),
        entities=entities,
        reasoning=reasoning,
    )
