# core/interfaces.py
"""Core interfaces for the chat orchestration layer"""
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional

from core.domain import ExtractedEntities, SemanticHit, SrdRecord
from core.enums import StructuredEndpoint

# ============= Semantic Search Interface =============
class ISemanticSearchClient(ABC):
    """Opaque vector-search backend (the RAG server)"""

    base_url: str

    @abstractmethod
    async def search(self, query: str, top_k: int = 5,
                     filters: Optional[Dict[str, Any]] = None) -> List[SemanticHit]:
        """Return hits ordered by the backend; raises BackendError on failure."""
        pass

    @abstractmethod
    async def health(self) -> Optional[Dict[str, Any]]:
        """Health payload, or None when unreachable"""
        pass

# ============= Structured Data Interface =============
class IStructuredDataClient(ABC):
    """Per-table read endpoints of the structured-data server"""

    base_url: str

    @abstractmethod
    async def fetch(self, endpoint: StructuredEndpoint,
                    entities: ExtractedEntities) -> List[Dict[str, Any]]:
        """
        Fetch rows from one table, filtered by the extracted entities.

        Raises BackendError on network failure, non-2xx or malformed body.
        """
        pass

    @abstractmethod
    def row_url(self, endpoint: StructuredEndpoint, row: Dict[str, Any]) -> str:
        """Resolvable URL for a single row"""
        pass

    @abstractmethod
    async def health(self) -> Optional[Dict[str, Any]]:
        pass

# ============= Reference API Interface =============
class IReferenceClient(ABC):
    """
    Supplementary reference lookups (5e SRD API).

    Not-found is a normal outcome: lookups return None / [] and never raise.
    """

    @abstractmethod
    async def get_spell(self, name: str) -> Optional[SrdRecord]:
        pass

    @abstractmethod
    async def get_monster(self, name: str) -> Optional[SrdRecord]:
        pass

    @abstractmethod
    async def get_class(self, name: str) -> Optional[SrdRecord]:
        pass

    @abstractmethod
    async def get_class_level(self, class_name: str, level: int) -> Optional[SrdRecord]:
        pass

    @abstractmethod
    async def get_race(self, name: str) -> Optional[SrdRecord]:
        pass

    @abstractmethod
    async def search_spells(self, name: Optional[str] = None, level: Optional[int] = None,
                            school: Optional[str] = None) -> List[SrdRecord]:
        pass

    @abstractmethod
    async def search_monsters(self, name: Optional[str] = None,
                              challenge_rating: Optional[float] = None) -> List[SrdRecord]:
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        pass

# ============= Synthesis Interface =============
class ILLMService(ABC):
    """Hosted chat-completion model"""

    @abstractmethod
    async def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return the answer text; raises SynthesisError on any failure."""
        pass

    @abstractmethod
    def get_config(self) -> Dict[str, Any]:
        """Model identifier and whether credentials are configured"""
        pass

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """{'accessible': bool, 'error': Optional[str]}"""
        pass
