# services/orchestrator.py
"""
Chat orchestration: classify -> fan out -> assemble context -> synthesize.

Every backend call is guarded independently. A failed or slow backend only
removes its contribution from the context; it never fails the request.
When no context at all is available the synthesis backend is NOT called and
a fixed answer is returned instead:
- every selected backend failed     -> ContextStatus.UNAVAILABLE
- backends answered but found nothing -> ContextStatus.EMPTY
Synthesis failures propagate as SynthesisError.
"""
import asyncio
import logging
import re
import time
from dataclasses import replace
from typing import Awaitable, List, Dict, Optional, Tuple

from config import settings
from core.domain import (
    BackendError, BackendResult, Classification, ContextEntry, ExtractedEntities,
    SynthesisError, SynthesizedAnswer
)
from core.enums import BackendStatus, ContextStatus, ErrorCode, QueryType, StructuredEndpoint
from core.interfaces import (
    ILLMService, IReferenceClient, ISemanticSearchClient, IStructuredDataClient
)
from services.classifier import classify_query
from services.context_builder import build_context, cited_sources, hit_entry, row_entry, srd_entry

logger = logging.getLogger(settings.LOGGER_NAME)

SEMANTIC_BACKEND = "rag"
REFERENCE_PREFIX = "srd"

SRD_CLASS_PATTERN = re.compile(
    r"\b(barbarian|bard|cleric|druid|fighter|monk|paladin|ranger|rogue|sorcerer|warlock|wizard)s?\b",
    re.IGNORECASE,
)
SRD_RACE_PATTERN = re.compile(
    r"\b(half-elf|half-orc|dragonborn|dwarf|elf|gnome|halfling|human|tiefling)\b",
    re.IGNORECASE,
)

SYSTEM_PROMPT = """You are a rules and lore assistant for Dungeons & Dragons 5th edition and the \
World's Largest Dungeon adventure.

Answer ONLY from the numbered context entries supplied by the user message. Each entry starts \
with a tag in square brackets, for example [rooms:A12] or [rag:chunk-7].
- Cite every fact by repeating the tag of the entry it came from, exactly as written.
- If the context does not contain the answer, say so plainly. Do not invent rules, \
stats, rooms or lore.
- Prefer exact database entries over narrative excerpts when they disagree.
- Keep the answer concise and use markdown for lists and stat blocks."""

USER_PROMPT_TEMPLATE = """Context:
{context}

Question: {question}"""

UNAVAILABLE_ANSWER = (
    "I couldn't reach any of my reference sources just now, so I can't give you a grounded "
    "answer. Please try again in a moment."
)
EMPTY_ANSWER = (
    "I couldn't find anything in the SRD or the World's Largest Dungeon material that covers "
    "that question. Try naming a specific room, spell or monster."
)


def cr_to_float(cr: str) -> Optional[float]:
    """'1/2' -> 0.5, '3' -> 3.0"""
    try:
        if "/" in cr:
            num, den = cr.split("/", 1)
            return int(num) / int(den)
        return float(cr)
    except (ValueError, ZeroDivisionError):
        return None


def apply_hints(classification: Classification, hints: Optional[Dict[str, str]]) -> Classification:
    """
    Narrow a classification with caller-supplied hints.

    A region hint only fills an empty region. A category hint only narrows the
    structured endpoints when that category is already selected.
    """
    if not hints:
        return classification

    entities = classification.entities
    routing = classification.routing

    region = hints.get("region")
    if region and not entities.region:
        entities = replace(entities, region=region.upper())

    category = hints.get("category")
    if category:
        endpoint = StructuredEndpoint(category)
        if endpoint in routing.structured_endpoints and len(routing.structured_endpoints) > 1:
            routing = replace(routing, structured_endpoints=(endpoint,))

    if entities is classification.entities and routing is classification.routing:
        return classification
    return replace(classification, entities=entities, routing=routing)


class ChatOrchestrator:

    def __init__(
        self,
        semantic: ISemanticSearchClient,
        structured: IStructuredDataClient,
        llm: ILLMService,
        reference: Optional[IReferenceClient] = None,
        backend_timeout: float = settings.BACKEND_TIMEOUT_SECONDS,
        rag_top_k: int = settings.RAG_TOP_K,
    ):
        self.semantic = semantic
        self.structured = structured
        self.llm = llm
        self.reference = reference
        self.backend_timeout = backend_timeout
        self.rag_top_k = rag_top_k

    # ============ Backend calls ============

    async def _semantic_call(self, query: str, entities: ExtractedEntities) -> List[ContextEntry]:
        filters = {"region": entities.region} if entities.region else None
        hits = await self.semantic.search(query, top_k=self.rag_top_k, filters=filters)
        return [hit_entry(h) for h in hits]

    async def _structured_call(self, endpoint: StructuredEndpoint,
                               entities: ExtractedEntities) -> List[ContextEntry]:
        rows = await self.structured.fetch(endpoint, entities)
        return [row_entry(endpoint, row, self.structured.row_url(endpoint, row)) for row in rows]

    async def _reference_call(self, lookup: Awaitable) -> List[ContextEntry]:
        found = await lookup
        if found is None:
            return []
        records = found if isinstance(found, list) else [found]
        return [srd_entry(r) for r in records]

    def _reference_lookups(self, query: str,
                           classification: Classification) -> List[Tuple[str, Awaitable]]:
        """SRD lookups worth making for this query; each is one guarded call."""
        if self.reference is None:
            return []

        entities = classification.entities
        endpoints = classification.routing.structured_endpoints
        structured = classification.type == QueryType.STRUCTURED
        lookups: List[Tuple[str, Awaitable]] = []

        if entities.spell_name:
            lookups.append(("spell", self.reference.get_spell(entities.spell_name)))
        if structured and entities.level is not None and StructuredEndpoint.SPELLS in endpoints:
            lookups.append(("spell-search", self.reference.search_spells(level=entities.level)))

        if entities.monster_name:
            lookups.append(("monster", self.reference.get_monster(entities.monster_name)))
        if structured and entities.cr and StructuredEndpoint.MONSTERS in endpoints:
            cr = cr_to_float(entities.cr)
            if cr is not None:
                lookups.append(("monster-search", self.reference.search_monsters(challenge_rating=cr)))

        class_match = SRD_CLASS_PATTERN.search(query)
        if class_match:
            name = class_match.group(1).lower()
            if entities.level is not None and entities.level > 0:
                lookups.append(("class-level", self.reference.get_class_level(name, entities.level)))
            else:
                lookups.append(("class", self.reference.get_class(name)))

        race_match = SRD_RACE_PATTERN.search(query)
        if race_match:
            lookups.append(("race", self.reference.get_race(race_match.group(1).lower())))

        return [(f"{REFERENCE_PREFIX}:{label}", call) for label, call in lookups]

    async def _guarded(self, backend: str, call: Awaitable) -> BackendResult:
        """Await one backend call with a timeout; any failure becomes a failed result."""
        started = time.perf_counter()

        def elapsed() -> float:
            return round((time.perf_counter() - started) * 1000, 1)

        try:
            entries = await asyncio.wait_for(call, timeout=self.backend_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{backend}] timed out after {self.backend_timeout}s")
            return BackendResult(backend, BackendStatus.UNREACHABLE,
                                 error=f"Timed out after {self.backend_timeout}s", elapsed_ms=elapsed())
        except BackendError as e:
            status = BackendStatus.UNREACHABLE if e.unreachable else BackendStatus.FAILURE
            logger.warning(f"[{backend}] {status.value}: {e.message}")
            return BackendResult(backend, status, error=e.message, elapsed_ms=elapsed())
        except Exception as e:
            logger.error(f"[{backend}] unexpected failure: {e}", exc_info=True)
            return BackendResult(backend, BackendStatus.FAILURE, error=str(e), elapsed_ms=elapsed())

        return BackendResult(backend, BackendStatus.SUCCESS, entries=entries, elapsed_ms=elapsed())

    # ============ Orchestration ============

    async def retrieve(self, query: str, classification: Classification) -> List[BackendResult]:
        """Scatter every selected backend call concurrently and gather all outcomes."""
        entities = classification.entities
        routing = classification.routing
        calls: List[Tuple[str, Awaitable]] = []

        if routing.query_vector_backend:
            calls.append((SEMANTIC_BACKEND, self._semantic_call(query, entities)))
        if routing.query_structured_backend:
            for endpoint in routing.structured_endpoints:
                calls.append((f"sqlite:{endpoint.value}", self._structured_call(endpoint, entities)))
        for name, lookup in self._reference_lookups(query, classification):
            calls.append((name, self._reference_call(lookup)))

        results = await asyncio.gather(*(self._guarded(name, call) for name, call in calls))

        for r in results:
            logger.info(f"[{r.backend}] {r.status.value} in {r.elapsed_ms}ms, {len(r.entries)} entries")
        return list(results)

    async def answer(self, message: str, hints: Optional[Dict[str, str]] = None) -> SynthesizedAnswer:
        started = time.perf_counter()
        query = message.strip()

        classification = apply_hints(classify_query(query), hints)
        logger.info(
            f"Query '{query[:80]}' classified as {classification.type.value} "
            f"({classification.confidence}); endpoints="
            f"{[e.value for e in classification.routing.structured_endpoints]}"
        )

        results = await self.retrieve(query, classification)
        context, entries = build_context(results)

        if not entries:
            primary = [r for r in results if not r.backend.startswith(REFERENCE_PREFIX)]
            if primary and all(not r.ok for r in primary):
                status, text = ContextStatus.UNAVAILABLE, UNAVAILABLE_ANSWER
            else:
                status, text = ContextStatus.EMPTY, EMPTY_ANSWER
            logger.warning(f"No context for query ({status.value}); synthesis skipped")
            return SynthesizedAnswer(
                answer=text,
                sources=[],
                query_type=classification.type,
                context_status=status,
                confidence=classification.confidence,
                reasoning=classification.reasoning,
            )

        prompt = USER_PROMPT_TEMPLATE.format(context=context, question=query)
        try:
            text = await asyncio.wait_for(
                self.llm.generate(SYSTEM_PROMPT, prompt),
                timeout=settings.LLM_TIMEOUT_SECONDS + 5,
            )
        except asyncio.TimeoutError:
            raise SynthesisError("LLM request timed out", ErrorCode.LLM_TIMEOUT)

        sources = cited_sources(text, entries)
        logger.info(
            f"Answered in {round((time.perf_counter() - started) * 1000)}ms "
            f"with {len(entries)} context entries, {len(sources)} sources"
        )
        return SynthesizedAnswer(
            answer=text,
            sources=sources,
            query_type=classification.type,
            context_status=ContextStatus.GROUNDED,
            confidence=classification.confidence,
            reasoning=classification.reasoning,
        )
