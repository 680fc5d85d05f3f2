"""
Wealth RM Client Ranking API Server.

    uvicorn api.server:app --port 8420
"""
# ruff: noqa: S104
# S104: Development server binding (guarded by __name__ check)

import logging
import os
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.ranking_router import ranking_router
from api.response_models import RankingResponse
from wealth_rm import config
from wealth_rm.observability import CorrelationIdMiddleware

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Wealth RM Client Ranking API",
    description="Filtered, prioritised client list for relationship managers",
    version="1.0.0",
)

# CORS middleware - configurable via CORS_ORIGINS env var
# Dev default: allow all origins; Production: set CORS_ORIGINS to comma-separated list
cors_origins_env = os.getenv("CORS_ORIGINS", "*")
cors_origins = (
    ["*"] if cors_origins_env == "*" else [o.strip() for o in cors_origins_env.split(",")]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(ranking_router, prefix="/api/v1/clients")


@app.get("/api/health", response_model=RankingResponse)
def health():
    """Liveness probe."""
    return {
        "status": "ok",
        "data": {"service": "wealth-rm-ranking"},
        "computed_at": datetime.now(UTC).isoformat(),
        "params": {},
    }


if __name__ == "__main__":
    from wealth_rm.observability import configure_logging

    configure_logging(config.LOG_LEVEL)
    port = int(os.getenv("PORT", "8420"))
    logger.info("Starting API server on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port)
