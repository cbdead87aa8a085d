"""
Issue Triage API

Thin FastAPI service that classifies, scores and ranks repository issues.
"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from triage.config import get_settings
from triage.middleware import RequestIDLogFilter, RequestIDMiddleware
from triage.routers import classification, tasks
from triage.services.config_loader import ConfigLoader
from triage.services.engine import create_engine
from triage.services.http_client import close_shared_client

logger = logging.getLogger(__name__)

settings = get_settings()

# Health check cache: (result_dict, timestamp)
_health_cache: tuple[dict[str, Any], float] | None = None
_HEALTH_CACHE_TTL = 30  # seconds

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIDLogFilter) for f in handler.filters):
            handler.addFilter(RequestIDLogFilter())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the engine on startup, close HTTP on shutdown."""
    s = get_settings()
    configure_logging(s.debug)
    loader = ConfigLoader(
        config_paths=[s.classification_config_path],
        profiles_dir=s.profiles_dir,
        cache_ttl=s.config_cache_ttl,
    )
    app.state.config_loader = loader
    app.state.engine = await create_engine(
        loader, rule_time_budget_ms=s.rule_time_budget_ms
    )
    logger.info(
        "Classification engine ready (config %s, %d rules)",
        app.state.engine.config.version,
        len(app.state.engine.config.all_rules),
    )
    yield
    await close_shared_client()


app = FastAPI(
    title="Issue Triage API",
    description="Rule-based issue classification, priority estimation and scoring",
    version="0.1.0",
    lifespan=lifespan,
)

# Request ID runs first (outermost middleware)
app.add_middleware(RequestIDMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(classification.router, prefix="/api/triage")
app.include_router(tasks.router, prefix="/api/triage")


def _check_config() -> str:
    """Verify a classification config with rules is loaded. Returns 'ok' or 'fail'."""
    engine = getattr(app.state, "engine", None)
    if engine is not None and engine.config.all_rules:
        return "ok"
    return "fail"


def _check_issue_source() -> str:
    return "ok" if get_settings().github_repo else "unconfigured"


def _run_health_checks() -> dict[str, Any]:
    """Run all health checks, returning the full response body."""
    global _health_cache
    now = time.time()
    if _health_cache is not None:
        cached_result, cached_at = _health_cache
        if now - cached_at < _HEALTH_CACHE_TTL:
            return cached_result

    checks = {"config": _check_config(), "issue_source": _check_issue_source()}
    failed = [k for k, v in checks.items() if v == "fail"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded, failed: %s", ", ".join(failed))
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "issue-triage-api",
        "version": "0.1.0",
        "checks": checks,
    }
    _health_cache = (result, now)
    return result


@app.get("/api/triage/health")
async def health_check() -> JSONResponse:
    """Health check verifying the engine configuration."""
    result = _run_health_checks()
    status_code = 200 if result["status"] in ("ok", "degraded") else 503
    return JSONResponse(content=result, status_code=status_code)
