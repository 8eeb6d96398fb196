# infrastructure/sqlite_client.py
"""HTTP client for the structured-data (SQLite) server"""
import logging
from typing import List, Dict, Any, Optional
from urllib.parse import urlencode

from config import settings
from core.domain import BackendError, ExtractedEntities
from core.enums import StructuredEndpoint
from core.interfaces import IStructuredDataClient
from infrastructure.http_client import HttpJsonClient

logger = logging.getLogger(settings.LOGGER_NAME)

# Column that identifies a row in each table
ROW_KEYS = {
    StructuredEndpoint.SPELLS: "name",
    StructuredEndpoint.MONSTERS: "name",
    StructuredEndpoint.EQUIPMENT: "name",
    StructuredEndpoint.ROOMS: "room_id",
}


def build_filters(endpoint: StructuredEndpoint, entities: ExtractedEntities,
                  limit: int) -> Dict[str, Any]:
    """Translate extracted entities into query parameters for one table."""
    params: Dict[str, Any] = {}

    if endpoint == StructuredEndpoint.ROOMS:
        if entities.room_id:
            params["room_id"] = entities.room_id
        elif entities.region:
            params["region"] = entities.region
        else:
            params["search"] = entities.search_terms
    elif endpoint == StructuredEndpoint.SPELLS:
        if entities.spell_name:
            params["name"] = entities.spell_name
        elif entities.search_terms:
            params["search"] = entities.search_terms
        if entities.level is not None:
            params["level"] = entities.level
    elif endpoint == StructuredEndpoint.MONSTERS:
        if entities.monster_name:
            params["name"] = entities.monster_name
        elif entities.search_terms:
            params["search"] = entities.search_terms
        if entities.cr:
            params["cr"] = entities.cr
    else:
        if entities.search_terms:
            params["search"] = entities.search_terms

    params["limit"] = limit
    return {k: v for k, v in params.items() if v is not None and v != ""}


def _extract_rows(endpoint: StructuredEndpoint, body: Any) -> Optional[List[Dict[str, Any]]]:
    if isinstance(body, list):
        rows = body
    elif isinstance(body, dict):
        rows = next(
            (body[key] for key in ("results", "data", endpoint.value) if isinstance(body.get(key), list)),
            None,
        )
    else:
        rows = None
    if rows is None:
        return None
    return [row for row in rows if isinstance(row, dict)]


class SqliteClient(IStructuredDataClient):
    """GET {base}/api/{spells|monsters|equipment|rooms}?filters -> JSON array of rows"""

    def __init__(self, http: HttpJsonClient, limit: int = settings.STRUCTURED_RESULT_LIMIT):
        self.http = http
        self.base_url = http.base_url
        self.limit = limit

    async def fetch(self, endpoint: StructuredEndpoint,
                    entities: ExtractedEntities) -> List[Dict[str, Any]]:
        params = build_filters(endpoint, entities, self.limit)
        body = await self.http.aget_json(f"/api/{endpoint.value}", params=params)

        rows = _extract_rows(endpoint, body)
        if rows is None:
            raise BackendError(self.http.name, f"Unexpected response shape from /api/{endpoint.value}")

        logger.info(f"[SQLite] {endpoint.value}: {len(rows)} rows for {params}")
        return rows[: self.limit]

    def row_url(self, endpoint: StructuredEndpoint, row: Dict[str, Any]) -> str:
        source = row.get("source")
        if isinstance(source, str) and source.startswith(("http://", "https://")):
            return source
        key = ROW_KEYS[endpoint]
        return f"{self.base_url}/api/{endpoint.value}?{urlencode({key: row.get(key, '')})}"

    async def health(self) -> Optional[Dict[str, Any]]:
        return await self.http.probe("/health")
