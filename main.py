# main.py
"""Chat API application: routing, error envelopes and startup"""
import logging
import time
from http import HTTPStatus
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from services.logger_config import setup_logging
from api.endpoints import router
from api.schemas import RateLimitExceeded
from core.domain import SynthesisError
from core.enums import ErrorCode
from services.factory import clear_instances
from services.llm_service import LLMService

setup_logging()
logger = logging.getLogger(settings.LOGGER_NAME)

SYNTHESIS_STATUS_CODES = {
    ErrorCode.LLM_NOT_CONFIGURED: 503,
    ErrorCode.LLM_UNREACHABLE: 502,
    ErrorCode.LLM_BAD_RESPONSE: 502,
    ErrorCode.LLM_TIMEOUT: 504,
}

ENDPOINTS_HELP = {
    "health": "GET /health - Health check with service status",
    "status": "GET /status - Quick status without health checks",
    "chat": "POST /chat - Main chat endpoint",
}

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    llm_config = LLMService().get_config()
    logger.info("Starting application...")
    logger.info(f"RAG Server:    {settings.RAG_SERVER_URL}")
    logger.info(f"SQLite Server: {settings.SQLITE_SERVER_URL}")
    logger.info(f"OpenRouter:    {'configured' if llm_config['api_key_configured'] else 'NOT CONFIGURED'}")
    logger.info(f"Model:         {llm_config['model']}")
    logger.info(f"Allowed CORS origins: {settings.allowed_origins_list}")
    yield

    logger.info("Shutting down application...")
    clear_instances()
    logger.info("Application shutdown complete")

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration = round((time.perf_counter() - started) * 1000)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({duration}ms)")
    return response

# ---------- Error envelopes ----------
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={
            "error": "Not Found",
            "message": "The requested endpoint does not exist",
            "endpoints": ENDPOINTS_HELP,
        })
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": HTTPStatus(exc.status_code).phrase, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(status_code=422, content={"error": "Validation Error", "message": details})

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": "Please wait before making more requests",
            "retryAfter": exc.retry_after,
        },
        headers={"Retry-After": str(exc.retry_after)},
    )

@app.exception_handler(SynthesisError)
async def synthesis_error_handler(request: Request, exc: SynthesisError):
    logger.error(f"Synthesis failed: {exc}")
    return JSONResponse(
        status_code=SYNTHESIS_STATUS_CODES.get(exc.error_code, 502),
        content={"error": exc.error_code.value, "message": exc.message},
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "An unexpected error occurred"},
    )

app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level="info"
    )
