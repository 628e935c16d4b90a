"""
Chat backend: the streaming chat turn API with document tools.
"""

# Suppress LiteLLM verbose logging BEFORE any transitive import of litellm.
# litellm._logging reads LITELLM_LOG at import time and defaults to DEBUG.
import os
from pathlib import Path as _Path

from dotenv import dotenv_values as _dotenv_values

# Load .env values without setting them in os.environ yet (just to read feature flag)
_env_path = _Path(__file__).parent.parent / ".env"
_env_values = _dotenv_values(_env_path) if _env_path.exists() else {}

# Check feature flag: FEATURE_SUPPRESS_LITELLM_LOGGING (default: true)
_suppress_litellm = _env_values.get("FEATURE_SUPPRESS_LITELLM_LOGGING", "true").lower() in ("true", "1", "yes")

if _suppress_litellm and "LITELLM_LOG" not in os.environ:
    os.environ["LITELLM_LOG"] = "ERROR"

del _Path, _dotenv_values, _env_path, _env_values, _suppress_litellm

# ruff: noqa: E402
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chatblocks.core.middleware import AuthMiddleware
from chatblocks.core.otel_config import setup_opentelemetry
from chatblocks.domain.errors import DomainError
from chatblocks.infrastructure.app_factory import app_factory
from chatblocks.modules.persistence import init_database
from chatblocks.routes.chat_routes import router as chat_router
from chatblocks.routes.config_routes import router as config_router
from chatblocks.routes.document_routes import router as document_router
from chatblocks.routes.health_routes import router as health_router
from chatblocks.routes.vote_routes import router as vote_router
from chatblocks.version import VERSION

# Load environment variables from the parent directory
load_dotenv(dotenv_path="../.env")

# Setup OpenTelemetry logging
otel_config = setup_opentelemetry("chatblocks-backend", VERSION)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting chatblocks backend")

    config = app_factory.get_config_manager()
    init_database()
    logger.info(f"Backend initialized with {len(config.models_config.models)} models")

    yield

    logger.info("Shutting down chatblocks backend")


app = FastAPI(
    title="Chatblocks Backend",
    description="Streaming chat backend with document tools",
    version=VERSION,
    lifespan=lifespan,
)

config = app_factory.get_config_manager()

app.add_middleware(
    AuthMiddleware,
    debug_mode=config.app_settings.debug_mode,
    auth_header_name=config.app_settings.auth_user_header,
    test_user=config.app_settings.test_user,
)

otel_config.instrument_fastapi(app)
otel_config.instrument_httpx()


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Map domain errors to their status code with the message as detail."""
    if exc.status_code >= 500:
        logger.error("Request failed: %s", exc, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Unexpected failures become a generic 500 without internal details."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "An error occurred while processing your request"})


app.include_router(health_router)
app.include_router(config_router)
app.include_router(chat_router)
app.include_router(vote_router)
app.include_router(document_router)


if __name__ == "__main__":
    import uvicorn

    # Use environment variable for host binding, default to localhost for security
    host = os.getenv("CHATBLOCKS_HOST", "127.0.0.1")
    port = int(os.getenv("PORT", config.app_settings.port))

    uvicorn.run(app, host=host, port=port)
