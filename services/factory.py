# services/factory.py
from functools import lru_cache

from fastapi import Depends

from config import settings
from core.interfaces import (
    ILLMService, IReferenceClient, ISemanticSearchClient, IStructuredDataClient
)
from infrastructure.http_client import HttpJsonClient
from infrastructure.rag_client import RagClient
from infrastructure.sqlite_client import SqliteClient
from infrastructure.srd_client import SrdClient
from services.health_service import HealthService
from services.llm_service import LLMService
from services.orchestrator import ChatOrchestrator

# Provider functions for each component.
# Clients hold a pooled requests.Session, so one instance per process.

@lru_cache(maxsize=1)
def get_semantic_client() -> ISemanticSearchClient:
    return RagClient(HttpJsonClient("rag", settings.RAG_SERVER_URL, settings.BACKEND_TIMEOUT_SECONDS))

@lru_cache(maxsize=1)
def get_structured_client() -> IStructuredDataClient:
    return SqliteClient(HttpJsonClient("sqlite", settings.SQLITE_SERVER_URL, settings.BACKEND_TIMEOUT_SECONDS))

@lru_cache(maxsize=1)
def get_reference_client() -> IReferenceClient:
    return SrdClient(HttpJsonClient("srd", settings.SRD_API_URL, settings.BACKEND_TIMEOUT_SECONDS))

@lru_cache(maxsize=1)
def get_llm_service() -> ILLMService:
    return LLMService()

# Main service providers using FastAPI DI
def get_orchestrator(
    semantic: ISemanticSearchClient = Depends(get_semantic_client),
    structured: IStructuredDataClient = Depends(get_structured_client),
    reference: IReferenceClient = Depends(get_reference_client),
    llm: ILLMService = Depends(get_llm_service),
) -> ChatOrchestrator:
    """
    Create the chat orchestrator with full dependency injection.

    Tests override individual providers through app.dependency_overrides.
    """
    return ChatOrchestrator(
        semantic=semantic,
        structured=structured,
        llm=llm,
        reference=reference if settings.SRD_LOOKUPS_ENABLED else None,
    )

def get_health_service(
    semantic: ISemanticSearchClient = Depends(get_semantic_client),
    structured: IStructuredDataClient = Depends(get_structured_client),
    reference: IReferenceClient = Depends(get_reference_client),
    llm: ILLMService = Depends(get_llm_service),
) -> HealthService:
    return HealthService(semantic=semantic, structured=structured, reference=reference, llm=llm)

def clear_instances() -> None:
    """Drop cached clients (application shutdown)."""
    for provider in (get_semantic_client, get_structured_client, get_reference_client, get_llm_service):
        provider.cache_clear()
