# services/health_service.py
"""Service status reporting for /health and /status"""
import asyncio
import logging
import time
from typing import Dict, Any

from config import settings
from core.enums import HealthStatus
from core.interfaces import (
    ILLMService, IReferenceClient, ISemanticSearchClient, IStructuredDataClient
)
from utils.source_mapper import get_github_config

logger = logging.getLogger(settings.LOGGER_NAME)

_STARTED_AT = time.monotonic()


def uptime_seconds() -> int:
    return int(time.monotonic() - _STARTED_AT)


def overall_status(services: Dict[str, bool]) -> HealthStatus:
    """ok iff rag, sqlite and llm are up; degraded if rag or sqlite is up."""
    if services["rag"] and services["sqlite"] and services["llm"]:
        return HealthStatus.OK
    if services["rag"] or services["sqlite"]:
        return HealthStatus.DEGRADED
    return HealthStatus.ERROR


class HealthService:

    def __init__(
        self,
        semantic: ISemanticSearchClient,
        structured: IStructuredDataClient,
        reference: IReferenceClient,
        llm: ILLMService,
    ):
        self.semantic = semantic
        self.structured = structured
        self.reference = reference
        self.llm = llm

    def config(self, include_model: bool = True) -> Dict[str, Any]:
        llm_config = self.llm.get_config()
        config: Dict[str, Any] = {
            "ragServerUrl": self.semantic.base_url,
            "sqliteServerUrl": self.structured.base_url,
        }
        if include_model:
            config["srdApiUrl"] = settings.SRD_API_URL
            config["openrouterModel"] = llm_config["model"]
        config["openrouterConfigured"] = llm_config["api_key_configured"]
        config["gitHub"] = get_github_config()
        return config

    async def _safe(self, name: str, probe) -> Any:
        try:
            return await probe
        except Exception as e:
            logger.warning(f"[Health] {name} probe raised: {e}")
            return None

    async def check(self) -> Dict[str, Any]:
        """Probe every collaborator concurrently. Never raises."""
        started = time.perf_counter()

        rag, sqlite, srd, llm = await asyncio.gather(
            self._safe("rag", self.semantic.health()),
            self._safe("sqlite", self.structured.health()),
            self._safe("srd", self.reference.check_health()),
            self._safe("llm", self.llm.check_health()),
        )

        services = {
            "rag": rag is not None,
            "sqlite": sqlite is not None,
            "srd": bool(srd),
            "llm": bool(llm and llm.get("accessible")),
        }
        status = overall_status(services)

        duration = round((time.perf_counter() - started) * 1000)
        logger.info(f"[Health] Check completed in {duration}ms - status: {status.value}")

        return {
            "status": status,
            "services": services,
            "config": self.config(),
            "uptime": uptime_seconds(),
            "version": settings.APP_VERSION,
        }

    def status(self) -> Dict[str, Any]:
        return {
            "service": settings.SERVICE_NAME,
            "status": "running",
            "config": self.config(include_model=False),
            "uptime": uptime_seconds(),
            "version": settings.APP_VERSION,
        }
