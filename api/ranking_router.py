"""
Client Ranking API Router

Exposes the ranking engine to the dashboard: ranked/filtered client list,
active-filter badge count, recently viewed clients, relationship health.

Usage in server.py:
    from api.ranking_router import ranking_router
    app.include_router(ranking_router, prefix="/api/v1/clients")
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from api.auth import require_auth
from api.response_models import (
    ActiveFilterCountResponse,
    FilterOptionsModel,
    HealthRequest,
    RankingResponse,
    RankRequest,
    TouchResponse,
)
from wealth_rm.clients import Feeds, RankingEngine, get_engine
from wealth_rm.clients.filters import count_active_filters
from wealth_rm.clients.models import FilterOptions, iter_clients
from wealth_rm.intelligence.relationship_health import score_book, summarize_relationship_health

logger = logging.getLogger(__name__)

ranking_router = APIRouter(
    tags=["Clients"],
    dependencies=[Depends(require_auth)],
)


def engine_dependency() -> RankingEngine:
    """Overridable in tests via app.dependency_overrides."""
    return get_engine()


def _wrap_response(data: dict | list, params: dict | None = None) -> dict:
    """Wrap response in standard envelope."""
    return {
        "status": "ok",
        "data": data,
        "computed_at": datetime.now(UTC).isoformat(),
        "params": params or {},
    }


@ranking_router.post("/rank", response_model=RankingResponse)
def rank_clients(body: RankRequest, engine: RankingEngine = Depends(engine_dependency)):
    """
    Filter and order the supplied clients.

    With useHealthScores, relationship health is scored from the feeds and
    drives the attention level and tie-break instead of the contact/alert
    heuristic.
    """
    feeds = Feeds.from_raw(body.tasks, body.appointments, body.alerts)
    options = FilterOptions.from_dict(body.filters.to_options_dict())

    health = body.health
    if body.use_health_scores and health is None:
        clients = list(iter_clients(body.clients))
        health = score_book(clients, feeds.tasks, feeds.appointments, feeds.alerts)

    try:
        ranked = engine.rank(
            body.clients,
            feeds=feeds,
            semantic_results=body.semantic_results,
            query=body.query,
            filter_options=options,
            recent_only=body.recent_only,
            health=health,
        )
    except (TypeError, ValueError) as e:
        logger.exception("rank_clients failed")
        raise HTTPException(status_code=500, detail=str(e)) from e

    return _wrap_response(
        {
            "clients": [r.to_dict() for r in ranked],
            "total": len(body.clients),
            "returned": len(ranked),
            "activeFilters": count_active_filters(options),
        },
        {
            "query": body.query,
            "recentOnly": body.recent_only,
            "useHealthScores": body.use_health_scores,
            "filters": options.to_dict(),
        },
    )


@ranking_router.post("/filters/active-count", response_model=ActiveFilterCountResponse)
def active_filter_count(body: FilterOptionsModel):
    """Badge count: filter dimensions narrowed from their defaults."""
    options = FilterOptions.from_dict(body.to_options_dict())
    return {"count": count_active_filters(options)}


@ranking_router.post("/{client_id}/touch", response_model=TouchResponse)
def touch_client(client_id: str, engine: RankingEngine = Depends(engine_dependency)):
    """Record that a client detail view was opened."""
    recent = engine.touch_recent(client_id)
    return {"success": client_id in recent, "clientId": client_id, "recentCount": len(recent)}


@ranking_router.get("/recent", response_model=RankingResponse)
def recent_clients(engine: RankingEngine = Depends(engine_dependency)):
    """Recently viewed clients, newest first, as id -> epoch millis."""
    snapshot = engine.recency_store.snapshot()
    ordered = sorted(snapshot.items(), key=lambda kv: -kv[1])
    return _wrap_response(
        [{"clientId": key, "accessedAt": stamp} for key, stamp in ordered],
        {"capacity": engine.recency_store.capacity},
    )


@ranking_router.post("/health", response_model=RankingResponse)
def relationship_health(body: HealthRequest):
    """Relationship health per client plus the book-level summary."""
    feeds = Feeds.from_raw(body.tasks, body.appointments, body.alerts)
    clients = list(iter_clients(body.clients))
    records = score_book(clients, feeds.tasks, feeds.appointments, feeds.alerts)
    summary = summarize_relationship_health(records)
    return _wrap_response(
        {
            "records": [r.to_dict() for r in records],
            "summary": summary.to_dict(),
        },
        {"clients": len(clients)},
    )
