# infrastructure/rag_client.py
"""HTTP client for the semantic-search (RAG) server"""
import logging
from typing import List, Dict, Any, Optional

from config import settings
from core.domain import BackendError, SemanticHit
from core.interfaces import ISemanticSearchClient
from infrastructure.http_client import HttpJsonClient

logger = logging.getLogger(settings.LOGGER_NAME)


class RagClient(ISemanticSearchClient):
    """
    POST {base}/search  {query, top_k, filters} -> {results: [{id, text, score, metadata}]}
    GET  {base}/health
    """

    def __init__(self, http: HttpJsonClient):
        self.http = http
        self.base_url = http.base_url

    async def search(self, query: str, top_k: int = 5,
                     filters: Optional[Dict[str, Any]] = None) -> List[SemanticHit]:
        payload: Dict[str, Any] = {"query": query, "top_k": top_k}
        if filters:
            payload["filters"] = filters

        body = await self.http.apost_json("/search", payload)
        results = body.get("results") if isinstance(body, dict) else body
        if not isinstance(results, list):
            raise BackendError(self.http.name, "Search response has no results list")

        hits = []
        for i, item in enumerate(results):
            if not isinstance(item, dict):
                continue
            text = item.get("text") or item.get("content") or ""
            if not text.strip():
                continue
            try:
                score = float(item.get("score", 0.0))
            except (TypeError, ValueError):
                score = 0.0
            hits.append(SemanticHit(
                id=str(item.get("id") or f"chunk-{i}"),
                text=text,
                score=score,
                metadata=item.get("metadata") or {},
            ))

        logger.info(f"[RAG] {len(hits)} hits for '{query[:60]}'")
        return hits

    async def health(self) -> Optional[Dict[str, Any]]:
        return await self.http.probe("/health")
