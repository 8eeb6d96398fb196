# infrastructure/http_client.py
"""Blocking JSON-over-HTTP helper exposed through async methods"""
import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from config import settings
from core.domain import BackendError

logger = logging.getLogger(settings.LOGGER_NAME)


class HttpJsonClient:
    """
    Thin requests.Session wrapper shared by the backend clients.

    Blocking calls run in a worker thread (asyncio.to_thread) so several
    backends can be awaited together. Every failure surfaces as BackendError;
    a 404 is returned as None when `allow_not_found` is set.
    """

    def __init__(self, name: str, base_url: str, timeout: float,
                 session: Optional[requests.Session] = None):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, params: Optional[Dict[str, Any]] = None,
                 json: Any = None, timeout: Optional[float] = None,
                 allow_not_found: bool = False) -> Any:
        url = self.url_for(path)
        try:
            response = self._session.request(
                method, url, params=params, json=json, timeout=timeout or self.timeout
            )
        except requests.exceptions.Timeout:
            raise BackendError(self.name, f"Request to {url} timed out", unreachable=True)
        except requests.exceptions.ConnectionError:
            raise BackendError(self.name, f"Cannot connect to {url}", unreachable=True)
        except requests.exceptions.RequestException as e:
            raise BackendError(self.name, f"Request to {url} failed: {e}")

        if allow_not_found and response.status_code == 404:
            logger.info(f"[{self.name}] Not found: {url}")
            return None

        if not response.ok:
            raise BackendError(self.name, f"{url} returned HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError:
            raise BackendError(self.name, f"{url} returned a malformed JSON body")

    def get_json(self, path: str, **kwargs) -> Any:
        return self._request("GET", path, **kwargs)

    def post_json(self, path: str, payload: Any, **kwargs) -> Any:
        return self._request("POST", path, json=payload, **kwargs)

    async def aget_json(self, path: str, **kwargs) -> Any:
        # Run the blocking request in a separate thread
        return await asyncio.to_thread(self.get_json, path, **kwargs)

    async def apost_json(self, path: str, payload: Any, **kwargs) -> Any:
        return await asyncio.to_thread(self.post_json, path, payload, **kwargs)

    async def probe(self, path: str = "/health") -> Optional[Any]:
        """Health probe: parsed body on success, None on any failure."""
        try:
            return await self.aget_json(path, timeout=settings.HEALTH_TIMEOUT_SECONDS)
        except BackendError as e:
            logger.warning(f"[{self.name}] Health probe failed: {e.message}")
            return None
