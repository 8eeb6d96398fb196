# core/enums.py
"""Shared enumerations used across the application."""
from enum import Enum


class QueryType(str, Enum):
    """Classification label, kept for analytics and debugging."""
    SEMANTIC = "semantic"
    STRUCTURED = "structured"
    HYBRID = "hybrid"


class StructuredEndpoint(str, Enum):
    """Tables exposed by the structured-data server."""
    SPELLS = "spells"
    MONSTERS = "monsters"
    EQUIPMENT = "equipment"
    ROOMS = "rooms"

    @staticmethod
    def ordered(endpoints) -> list:
        """De-duplicate and return endpoints in canonical table order."""
        wanted = set(endpoints)
        return [e for e in ALL_ENDPOINTS if e in wanted]


ALL_ENDPOINTS = (
    StructuredEndpoint.SPELLS,
    StructuredEndpoint.MONSTERS,
    StructuredEndpoint.EQUIPMENT,
    StructuredEndpoint.ROOMS,
)


class SourceOrigin(str, Enum):
    """Where a context entry came from."""
    STRUCTURED = "structured"
    SEMANTIC = "semantic"
    REFERENCE = "reference"


class BackendStatus(str, Enum):
    """Outcome of one backend call."""
    SUCCESS = "success"
    FAILURE = "failure"
    UNREACHABLE = "unreachable"


class ContextStatus(str, Enum):
    """How much grounding the answer had."""
    GROUNDED = "grounded"
    EMPTY = "empty"              # backends answered, nothing matched
    UNAVAILABLE = "unavailable"  # every selected backend failed


class HealthStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for user-facing error envelopes."""
    LLM_NOT_CONFIGURED = "LLM_NOT_CONFIGURED"
    LLM_UNREACHABLE = "LLM_UNREACHABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_BAD_RESPONSE = "LLM_BAD_RESPONSE"
