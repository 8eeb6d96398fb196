# api/endpoints.py
"""
API endpoints for the dungeon chat service.

POST /chat    - classify, retrieve, synthesize
GET  /health  - live probe of every backend
GET  /status  - configuration echo, no probing
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.schemas import (
    ChatRequest, ChatResponse, HealthResponse, RateLimitExceeded, SourceItem, StatusResponse
)
from config import settings
from core.enums import HealthStatus
from infrastructure.rate_limit_store import chat_rate_limiter
from services.factory import get_health_service, get_orchestrator
from services.health_service import HealthService
from services.orchestrator import ChatOrchestrator

logger = logging.getLogger(settings.LOGGER_NAME)

router = APIRouter()


# ---------- Rate limiting ----------
def enforce_chat_rate_limit(request: Request) -> None:
    client = request.client.host if request.client else "unknown"
    retry_after = chat_rate_limiter.hit(client)
    if retry_after is not None:
        logger.warning(f"Rate limit exceeded for {client}")
        raise RateLimitExceeded(retry_after)


# ---------- Chat ----------
@router.post("/chat", response_model=ChatResponse, dependencies=[Depends(enforce_chat_rate_limit)])
async def chat_endpoint(
    chat_request: ChatRequest,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    result = await orchestrator.answer(chat_request.message, chat_request.hints())

    return ChatResponse(
        answer=result.answer,
        sources=[
            SourceItem(title=s.title, url=s.url, type=s.origin, tag=s.tag)
            for s in result.sources
        ],
        query_type=result.query_type,
        context_status=result.context_status,
        confidence=result.confidence,
        reasoning=result.reasoning,
    )


# ---------- Health Check ----------
@router.get("/health", response_model=HealthResponse)
async def health_check(health_service: HealthService = Depends(get_health_service)):
    """
    System health check endpoint.

    Returns:
        - status: ok / degraded / error (HTTP 503 on error)
        - services: reachability of rag, sqlite, srd and llm
        - config: backend URLs, model and GitHub source settings
        - uptime: seconds since start
    """
    report = await health_service.check()
    body = HealthResponse(**report)
    status_code = 503 if report["status"] == HealthStatus.ERROR else 200
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# ---------- Service status ----------
@router.get("/status", response_model=StatusResponse)
async def get_status(health_service: HealthService = Depends(get_health_service)) -> StatusResponse:
    return StatusResponse(**health_service.status())
