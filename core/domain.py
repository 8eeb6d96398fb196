# core/domain.py
"""Request-scoped domain models for classification, retrieval and synthesis."""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple

from core.enums import (
    BackendStatus, ContextStatus, ErrorCode, QueryType, SourceOrigin, StructuredEndpoint
)

# ============= Classification =============

@dataclass(frozen=True)
class ExtractedEntities:
    """Entities pulled out of the query text. None means no match."""
    room_id: Optional[str] = None
    region: Optional[str] = None
    spell_name: Optional[str] = None
    monster_name: Optional[str] = None
    level: Optional[int] = None
    cr: Optional[str] = None
    search_terms: Optional[str] = None


@dataclass(frozen=True)
class RoutingDirective:
    query_vector_backend: bool = True
    query_structured_backend: bool = True
    structured_endpoints: Tuple[StructuredEndpoint, ...] = ()

    def __post_init__(self):
        if not (self.query_vector_backend or self.query_structured_backend):
            raise ValueError("Routing must select at least one backend")


@dataclass(frozen=True)
class Classification:
    type: QueryType
    confidence: float
    routing: RoutingDirective
    entities: ExtractedEntities
    reasoning: str


# ============= Retrieval =============

@dataclass
class SemanticHit:
    """One chunk returned by the semantic-search server"""
    id: str
    text: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SrdRecord:
    """Formatted record from the 5e SRD reference API"""
    kind: str       # spell, monster, class, class_level, race
    index: str
    name: str
    text: str
    url: str


@dataclass
class ContextEntry:
    tag: str
    title: str
    text: str
    origin: SourceOrigin
    reference: str
    score: float = 1.0


@dataclass
class BackendResult:
    """Outcome of one guarded backend call. Failures carry no entries."""
    backend: str
    status: BackendStatus
    entries: List[ContextEntry] = field(default_factory=list)
    error: Optional[str] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == BackendStatus.SUCCESS


# ============= Synthesis =============

@dataclass
class SourceReference:
    title: str
    url: str
    origin: SourceOrigin
    tag: str


@dataclass
class SynthesizedAnswer:
    answer: str
    sources: List[SourceReference]
    query_type: QueryType
    context_status: ContextStatus
    confidence: float = 0.0
    reasoning: str = ""


# ============= Errors =============

class BackendError(Exception):
    """Raised by backend clients; the orchestrator downgrades it to a failed result."""

    def __init__(self, backend: str, message: str, unreachable: bool = False):
        self.backend = backend
        self.message = message
        self.unreachable = unreachable
        super().__init__(message)

    def __str__(self):
        return f"[{self.backend}] {self.message}"


class SynthesisError(Exception):
    """Raised when the synthesis backend cannot produce an answer"""

    def __init__(self, message: str, error_code: ErrorCode):
        self.message = message
        self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging
        return f"[{self.error_code.value}] {self.message}"
