# config.py
"""Service configuration loaded from environment / .env"""
from typing import List
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOGGER_NAME: str = "dungeon_chat"
    LOG_FILE_PATH: str = get_log_file_path()
    LOG_LEVEL: str = "INFO"
    LOG_MAX_BYTES: int = 5 * 1024 * 1024
    LOG_BACKUP_COUNT: int = 5

    # App metadata
    APP_TITLE: str = "Dungeon Chat API"
    APP_VERSION: str = "1.0.0"
    SERVICE_NAME: str = "chat-api"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # Backends
    RAG_SERVER_URL: str = "http://localhost:8000"
    SQLITE_SERVER_URL: str = "http://localhost:3001"
    SRD_API_URL: str = "https://www.dnd5eapi.co/api/2014"

    # Synthesis backend (OpenRouter chat completions)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_MODEL: str = "openai/gpt-oss-120b"
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_TOKENS: int = 1500
    LLM_TEMPERATURE: float = 0.3

    # Per-call timeouts
    BACKEND_TIMEOUT_SECONDS: float = 10.0
    HEALTH_TIMEOUT_SECONDS: float = 5.0

    # Retrieval sizing
    RAG_TOP_K: int = 5
    STRUCTURED_RESULT_LIMIT: int = 5
    SRD_SEARCH_LIMIT: int = 5
    SRD_LOOKUPS_ENABLED: bool = True

    # Context assembly bounds
    MAX_CONTEXT_CHARS: int = 12000
    MAX_ENTRY_CHARS: int = 2500

    # Source links for semantic chunks
    GITHUB_OWNER: str = "Mnehmos"
    GITHUB_REPO: str = "The-Worlds-Largest-Dungeon"
    GITHUB_BRANCH: str = "master"

    # Security
    ALLOWED_ORIGINS: str = "https://mnehmos.github.io,http://localhost:4321,http://localhost:3000"
    RATE_LIMIT_MAX_REQUESTS: int = 30
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    @property
    def allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def openrouter_configured(self) -> bool:
        return bool(self.OPENROUTER_API_KEY)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
