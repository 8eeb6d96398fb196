# api/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict

from core.enums import ContextStatus, HealthStatus, QueryType, SourceOrigin, StructuredEndpoint

class ChatContext(BaseModel):
    """Caller hints that narrow routing"""
    region: Optional[str] = Field(None, pattern=r"^[A-Da-d]$")
    category: Optional[StructuredEndpoint] = None

MAX_MESSAGE_CHARS = 2000

class ChatRequest(BaseModel):
    message: str
    context: Optional[ChatContext] = None

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("message must not be empty")
        if len(stripped) > MAX_MESSAGE_CHARS:
            raise ValueError(f"message must be at most {MAX_MESSAGE_CHARS} characters")
        return value

    def hints(self) -> Optional[Dict[str, str]]:
        if not self.context:
            return None
        hints = {}
        if self.context.region:
            hints["region"] = self.context.region.upper()
        if self.context.category:
            hints["category"] = self.context.category.value
        return hints or None

class SourceItem(BaseModel):
    title: str
    url: str
    type: SourceOrigin
    tag: str

class ChatResponse(BaseModel):
    answer: str
    sources: List[SourceItem]
    query_type: QueryType
    context_status: ContextStatus
    confidence: float
    reasoning: str

class GitHubConfig(BaseModel):
    owner: str
    repo: str
    branch: str

class ServiceConfig(BaseModel):
    ragServerUrl: str
    sqliteServerUrl: str
    srdApiUrl: Optional[str] = None
    openrouterModel: Optional[str] = None
    openrouterConfigured: bool
    gitHub: GitHubConfig

class ServicesHealth(BaseModel):
    rag: bool
    sqlite: bool
    srd: bool
    llm: bool

class HealthResponse(BaseModel):
    status: HealthStatus
    services: ServicesHealth
    config: ServiceConfig
    uptime: int
    version: str

class StatusResponse(BaseModel):
    service: str
    status: str
    config: ServiceConfig
    uptime: int
    version: str

class ErrorResponse(BaseModel):
    error: str
    message: str

class RateLimitResponse(ErrorResponse):
    retryAfter: int

class RateLimitExceeded(Exception):
    """Raised when a client exceeds the chat request quota"""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded, retry after {retry_after}s")
