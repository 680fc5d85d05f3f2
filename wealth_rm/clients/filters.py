"""
Filter Predicate Evaluator for the client list.

A client matches when every predicate holds. Each predicate is vacuous
when its governing condition is absent: a client with no tier passes the
tier filter, a client with no risk profile passes the risk filter, a
blank query matches everyone.
"""

import logging
from collections.abc import Mapping

from wealth_rm import config

from .completeness import is_incomplete
from .models import FILTER_FIELDS, Client, FilterOptions, SemanticMatch

logger = logging.getLogger(__name__)


def matches_tier(client: Client, options: FilterOptions) -> bool:
    if not client.tier:
        return True
    return client.tier in options.included_tiers


def matches_risk(client: Client, options: FilterOptions) -> bool:
    if not client.risk_profile:
        return True
    return client.risk_profile.lower() in options.risk_profiles


def matches_aum(
    client: Client,
    options: FilterOptions,
    absolute_max: float = config.ABSOLUTE_MAX_AUM,
) -> bool:
    """Inclusive range; a max pushed to the slider's top is unbounded."""
    aum = client.aum
    return aum >= options.min_aum and (aum <= options.max_aum or options.max_aum >= absolute_max)


def matches_pending(client: Client, options: FilterOptions) -> bool:
    return not options.pending_only or is_incomplete(client)


def matches_recent(client: Client, recent_only: bool, recency_map: Mapping[str, int]) -> bool:
    return not recent_only or client.key in recency_map


def text_matches(client: Client, query: str) -> bool:
    """Case-insensitive name/email substring, or raw substring of the phone."""
    needle = query.strip().lower()
    if not needle:
        return True
    if needle in (client.full_name or "").lower():
        return True
    if client.email and needle in client.email.lower():
        return True
    return bool(client.phone) and query in client.phone


def is_semantic_mode(
    query: str,
    semantic_map: Mapping[str, SemanticMatch],
    min_query_length: int = 3,
) -> bool:
    """Semantic results replace text search once the query is long enough and results exist."""
    return len((query or "").strip()) >= min_query_length and len(semantic_map) > 0


def matches_search(
    client: Client,
    query: str,
    semantic_mode: bool,
    semantic_map: Mapping[str, SemanticMatch],
) -> bool:
    if not (query or "").strip():
        return True
    if semantic_mode:
        return client.key in semantic_map
    return text_matches(client, query)


def matches(
    client: Client,
    options: FilterOptions,
    query: str = "",
    semantic_mode: bool = False,
    semantic_map: Mapping[str, SemanticMatch] | None = None,
    recent_only: bool = False,
    recency_map: Mapping[str, int] | None = None,
    absolute_max: float = config.ABSOLUTE_MAX_AUM,
) -> bool:
    """Whether `client` passes every filter and the search query."""
    semantic_map = semantic_map or {}
    recency_map = recency_map or {}

    results = {
        "tier": matches_tier(client, options),
        "risk": matches_risk(client, options),
        "aum": matches_aum(client, options, absolute_max),
        "pending": matches_pending(client, options),
        "recent": matches_recent(client, recent_only, recency_map),
        "search": matches_search(client, query, semantic_mode, semantic_map),
    }
    matched = all(results.values())
    if not matched and logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Filtered out client %s",
            client.id,
            extra={"client_id": client.id, "predicates": results},
        )
    return matched


def count_active_filters(
    options: FilterOptions | None,
    defaults: FilterOptions | None = None,
) -> int:
    """Number of filter dimensions narrowed from their defaults (badge count)."""
    if options is None:
        return 0
    defaults = defaults or FilterOptions.defaults()
    return sum(1 for name in FILTER_FIELDS if not options.is_default(name, defaults))
