import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from staffauth.adapters.sqlite.migrator import SQLiteMigrator
from staffauth.api.deps import get_settings, load_settings_cache
from staffauth.domain.errors import ErrorCode
from staffauth.rules.loader import load_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        load_rules(settings.rules_path)
        logger.info("Rules loaded from %s", settings.rules_path)
    except Exception as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    SQLiteMigrator(settings.db_path).run_migrations()

    # Install secret is read once here and stays fixed until restart
    load_settings_cache(settings.db_path)

    yield


app = FastAPI(
    title="Staff Auth API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # 422 is reserved for conflicts; malformed bodies are plain validation errors
    errors = [
        {
            "code": err.get("type", "invalid"),
            "message": err.get("msg", "Invalid value"),
            "field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": {
                "code": ErrorCode.VALIDATION.value,
                "message": "Request validation failed",
                "errors": errors,
            }
        },
    )


# --- Routers ---
from staffauth.api.routes import authentication, session  # noqa: E402

app.include_router(authentication.router, prefix="/authentication", tags=["Authentication"])
app.include_router(session.router, prefix="", tags=["Session"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "staffauth"}
