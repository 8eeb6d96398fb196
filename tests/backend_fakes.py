# tests/backend_fakes.py
"""In-memory stand-ins for the backend interfaces and for requests.Session"""
import asyncio
from typing import Any, Dict, List, Optional

import requests

from core.domain import SemanticHit, SrdRecord
from core.enums import StructuredEndpoint
from core.interfaces import (
    ILLMService, IReferenceClient, ISemanticSearchClient, IStructuredDataClient
)


class FakeSemantic(ISemanticSearchClient):
    def __init__(self, hits=None, error: Optional[Exception] = None, delay: float = 0.0, healthy=True):
        self.base_url = "http://rag.test"
        self.hits = hits or []
        self.error = error
        self.delay = delay
        self.healthy = healthy
        self.calls: List[Dict[str, Any]] = []

    async def search(self, query, top_k=5, filters=None):
        self.calls.append({"query": query, "top_k": top_k, "filters": filters})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.hits)

    async def health(self):
        return {"status": "ok"} if self.healthy else None


class FakeStructured(IStructuredDataClient):
    """rows / errors are keyed by endpoint value ("spells", "rooms", ...)"""

    def __init__(self, rows=None, errors=None, delay: float = 0.0, healthy=True):
        self.base_url = "http://sqlite.test"
        self.rows = rows or {}
        self.errors = errors or {}
        self.delay = delay
        self.healthy = healthy
        self.calls = []

    async def fetch(self, endpoint: StructuredEndpoint, entities):
        self.calls.append((endpoint, entities))
        if self.delay:
            await asyncio.sleep(self.delay)
        if endpoint.value in self.errors:
            raise self.errors[endpoint.value]
        return list(self.rows.get(endpoint.value, []))

    def row_url(self, endpoint, row):
        key = row.get("room_id") or row.get("name")
        return f"{self.base_url}/api/{endpoint.value}?key={key}"

    async def health(self):
        return {"status": "ok"} if self.healthy else None


class FakeReference(IReferenceClient):
    def __init__(self, records: Optional[Dict[str, SrdRecord]] = None, healthy=True):
        self.records = records or {}
        self.healthy = healthy
        self.calls = []

    async def get_spell(self, name):
        self.calls.append(("spell", name))
        return self.records.get(f"spell:{name.lower()}")

    async def get_monster(self, name):
        self.calls.append(("monster", name))
        return self.records.get(f"monster:{name.lower()}")

    async def get_class(self, name):
        self.calls.append(("class", name))
        return self.records.get(f"class:{name.lower()}")

    async def get_class_level(self, class_name, level):
        self.calls.append(("class_level", class_name, level))
        return self.records.get(f"class_level:{class_name.lower()}:{level}")

    async def get_race(self, name):
        self.calls.append(("race", name))
        return self.records.get(f"race:{name.lower()}")

    async def search_spells(self, name=None, level=None, school=None):
        self.calls.append(("search_spells", level))
        return []

    async def search_monsters(self, name=None, challenge_rating=None):
        self.calls.append(("search_monsters", challenge_rating))
        return []

    async def check_health(self):
        return self.healthy


class FakeLLM(ILLMService):
    def __init__(self, answer: str = "An answer.", error: Optional[Exception] = None, accessible=True):
        self.answer = answer
        self.error = error
        self.accessible = accessible
        self.calls = []

    async def generate(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.answer

    def get_config(self):
        return {"model": "test/model", "api_key_configured": True}

    async def check_health(self):
        return {"accessible": self.accessible, "error": None}


def hit(chunk_id: str, text: str, score: float = 0.5, **metadata) -> SemanticHit:
    return SemanticHit(id=chunk_id, text=text, score=score, metadata=metadata)


def srd_record(kind: str, index: str, name: str, collection: str) -> SrdRecord:
    return SrdRecord(
        kind=kind, index=index, name=name, text=f"**{name}**",
        url=f"https://www.dnd5eapi.co/api/2014/{collection}/{index}",
    )


# ============= requests stand-ins =============

class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"HTTP {self.status_code}", response=self)


class FakeSession:
    """
    Routes requests by URL (query string excluded).

    `routes` maps url -> FakeResponse or an exception instance to raise.
    Unknown URLs answer 404.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.headers: Dict[str, str] = {}
        self.routes = routes or {}
        self.requests: List[Dict[str, Any]] = []

    def _respond(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        outcome = self.routes.get(url, FakeResponse(404, {"error": "Not found"}))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def request(self, method, url, **kwargs):
        return self._respond(method, url, **kwargs)

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)
