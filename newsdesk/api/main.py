import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from newsdesk import __version__
from newsdesk.api.deps import get_settings, load_cached_rules
from newsdesk.app_shell.config import validate_ops_rules

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    rules = load_cached_rules(settings.rules_path)
    validate_ops_rules(rules, settings.data_dir)
    logger.info("Rules loaded from %s", settings.rules_path)

    yield


app = FastAPI(
    title="Newsdesk Publishing Engine API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from newsdesk.api.routes import editorial, emergency, policy, publish  # noqa: E402

app.include_router(editorial.router, prefix="/api/editorial", tags=["Editorial"])
app.include_router(publish.router, prefix="/api/publish", tags=["Publish"])
app.include_router(policy.router, prefix="/api/policy", tags=["Policy"])
app.include_router(emergency.router, prefix="/api/emergency", tags=["Emergency"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    """Health check endpoint."""
    return {"status": "ok", "service": "newsdesk"}
